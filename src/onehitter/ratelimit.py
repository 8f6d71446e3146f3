"""Rate limiting — hooks run around every validation attempt.

The engine calls ``before_validate`` first; only when it allows the attempt
does it call exactly one of ``on_success`` / ``on_failure`` afterwards.
Hooks may be plain methods or coroutines.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from onehitter.config import RateLimitConfig


@runtime_checkable
class RateLimiter(Protocol):
    """Protocol for validation rate limiters.

    Exceptions raised by a limiter abort the validation attempt and reach the
    caller unchanged.
    """

    def before_validate(self, contact: str) -> bool | Awaitable[bool]:
        """Return True to allow the attempt, False to report it as blocked."""
        ...

    def on_success(self, contact: str) -> None | Awaitable[None]:
        """Called after an attempt that returned OK."""
        ...

    def on_failure(self, contact: str) -> None | Awaitable[None]:
        """Called after an attempt that returned NOT_FOUND or EXPIRED."""
        ...


class NoopRateLimiter:
    """Allows everything, remembers nothing."""

    def before_validate(self, contact: str) -> bool:
        return True

    def on_success(self, contact: str) -> None:
        pass

    def on_failure(self, contact: str) -> None:
        pass


@dataclass(slots=True)
class _Bucket:
    failures: list[float] = field(default_factory=list)
    cooldown_until: float | None = None


class InMemoryRateLimiter:
    """Thread-safe per-contact failure window with a cooldown.

    A contact that collects ``max_failures`` failures inside ``window_seconds``
    is blocked for ``cooldown_seconds``. When the cooldown has elapsed the
    failure history is cleared. A success forgives all prior failures.

    Suitable for single-process deployments only: state is not shared between
    processes or service instances.
    """

    def __init__(
        self,
        max_failures: int = 5,
        window_seconds: float = 300.0,
        cooldown_seconds: float = 60.0,
        *,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self._time_func = time_func or time.monotonic
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        *,
        time_func: Callable[[], float] | None = None,
    ) -> InMemoryRateLimiter:
        return cls(
            max_failures=config.max_failures,
            window_seconds=config.window_seconds,
            cooldown_seconds=config.cooldown_seconds,
            time_func=time_func,
        )

    def _prune(self, contact: str, now: float) -> _Bucket:
        bucket = self._buckets.get(contact)
        if bucket is None:
            bucket = self._buckets[contact] = _Bucket()
        bucket.failures = [t for t in bucket.failures if now - t <= self.window_seconds]
        return bucket

    def before_validate(self, contact: str) -> bool:
        now = self._time_func()
        with self._lock:
            bucket = self._prune(contact, now)
            if bucket.cooldown_until is not None:
                if bucket.cooldown_until > now:
                    return False
                # Cooldown elapsed: start over
                bucket.cooldown_until = None
                bucket.failures.clear()
            return len(bucket.failures) < self.max_failures

    def on_failure(self, contact: str) -> None:
        now = self._time_func()
        with self._lock:
            bucket = self._prune(contact, now)
            bucket.failures.append(now)
            if len(bucket.failures) >= self.max_failures:
                bucket.cooldown_until = now + self.cooldown_seconds

    def on_success(self, contact: str) -> None:
        with self._lock:
            self._buckets.pop(contact, None)

    def failure_count(self, contact: str) -> int:
        """Failures currently inside the window for ``contact``."""
        with self._lock:
            return len(self._prune(contact, self._time_func()).failures)

    def reset(self, contact: str | None = None) -> None:
        """Reset limiter state. If contact is None, reset all contacts."""
        with self._lock:
            if contact is None:
                self._buckets.clear()
            else:
                self._buckets.pop(contact, None)
