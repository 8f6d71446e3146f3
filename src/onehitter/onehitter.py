"""OneHitter — instance-based OTP engine and entry point."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

from onehitter.config import OneHitterConfig
from onehitter.core.codes import make_code
from onehitter.core.hashing import Hasher
from onehitter.core.schemas import OtpAttempt, OtpRecord, ValidateStatus
from onehitter.errors import ConfigurationError
from onehitter.ratelimit import InMemoryRateLimiter, NoopRateLimiter, RateLimiter
from onehitter.sender import OtpMailer, SmtpTransport, Transport
from onehitter.storage.base import StorageAdapter
from onehitter.storage.durable import DurableAdapter
from onehitter.storage.embedded import EmbeddedAdapter
from onehitter.utils import utc_now

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger("onehitter.engine")


async def _call_hook(result):
    """Await limiter hook results that are awaitable; pass plain values through."""
    if inspect.isawaitable(result):
        return await result
    return result


class OneHitter:
    """Main OneHitter instance — generates, stores and validates one-time passwords.

    Args:
        config: Immutable configuration. Defaults to ``OneHitterConfig()``
            (six digits, 30 minute TTL, durable driver, no limiter).
        rate_limiter: Custom limiter. Takes precedence over ``config.rate_limit``.
            Without either, every attempt is allowed.
        mailer: Custom mailer used by ``send``. Defaults to an ``OtpMailer``
            built from ``config.message``.
        transport: Transport for the default mailer. Defaults to SMTP when
            ``config.smtp`` is set.

    Storage: pass ``handle=`` (an ``AsyncEngine`` the caller owns) to any
    storage operation to use the durable adapter for that call. Without a
    handle the configured driver is used; the embedded store is built here
    and opened on first use.
    """

    def __init__(
        self,
        config: OneHitterConfig | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        mailer: OtpMailer | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config or OneHitterConfig()
        self._hasher = Hasher.from_config(self._config)

        if rate_limiter is not None:
            self._limiter = rate_limiter
        elif self._config.rate_limit is not None:
            self._limiter = InMemoryRateLimiter.from_config(self._config.rate_limit)
        else:
            self._limiter = NoopRateLimiter()

        if mailer is None:
            if transport is None and self._config.smtp is not None:
                transport = SmtpTransport(self._config.smtp)
            mailer = OtpMailer(
                self._config.message,
                transport=transport,
                expiry_seconds=self._config.ttl_seconds,
            )
        self._mailer = mailer

        self._embedded: EmbeddedAdapter | None = None
        if self._config.driver == "embedded":
            self._embedded = EmbeddedAdapter(self._hasher, self._config.sqlite_path)

    @property
    def config(self) -> OneHitterConfig:
        """Read-only access to the config."""
        return self._config

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    # ------ Adapter selection ------

    def adapter_for(self, handle: AsyncEngine | None = None) -> StorageAdapter:
        """Storage adapter for one call.

        A handle always selects the durable adapter, whatever the configured
        driver. Without one the configured driver is used.

        Raises:
            ConfigurationError: If the durable driver is configured and no handle is given.
        """
        if handle is not None:
            return DurableAdapter(handle, self._hasher)
        if self._embedded is not None:
            return self._embedded
        raise ConfigurationError(
            "The durable driver needs a storage handle: pass handle=<AsyncEngine> "
            "or configure driver='embedded'",
            code="handle_required",
        )

    # ------ Core OTP operations ------

    def make(self) -> str:
        """Generate a new code using the configured policy."""
        return make_code(self._config.code)

    async def create(self, record: OtpRecord, *, handle: AsyncEngine | None = None) -> int:
        """Store a code (hashed) and return its storage id.

        Raises:
            ConfigurationError: No pepper in production, or no handle for the durable driver.
            StorageError: If the backend fails.
        """
        adapter = self.adapter_for(handle)
        return await adapter.create(record)

    async def validate(self, attempt: OtpAttempt, *, handle: AsyncEngine | None = None) -> bool:
        """True only when ``validate_status`` returns OK."""
        return await self.validate_status(attempt, handle=handle) == ValidateStatus.OK

    async def validate_status(
        self,
        attempt: OtpAttempt,
        *,
        handle: AsyncEngine | None = None,
    ) -> ValidateStatus:
        """Consume a code and report how it went.

        Returns:
            BLOCKED if the rate limiter refused the attempt (nothing consumed),
            otherwise the adapter's OK, NOT_FOUND or EXPIRED.

        Raises:
            ConfigurationError: No pepper in production, or no handle for the durable driver.
            StorageError: If the backend fails.
        """
        allowed = await _call_hook(self._limiter.before_validate(attempt.contact))
        if not allowed:
            logger.info("OTP validation blocked by rate limiter")
            return ValidateStatus.BLOCKED

        adapter = self.adapter_for(handle)
        status = await adapter.consume_and_status(attempt, utc_now(), self._config.ttl_seconds)

        if status == ValidateStatus.OK:
            await _call_hook(self._limiter.on_success(attempt.contact))
        else:
            await _call_hook(self._limiter.on_failure(attempt.contact))

        logger.debug("OTP validation via %s adapter: %s", adapter.name, status.value)
        return status

    async def send(self, to: str, otp: str) -> None:
        """Deliver a code to ``to`` with the configured mailer.

        Raises:
            DeliveryError: If the sender, recipient or transport is missing, or delivery fails.
        """
        await self._mailer.send(to, otp)

    # ------ Maintenance ------

    async def purge_expired(self, *, handle: AsyncEngine | None = None) -> int:
        """Delete codes older than the configured TTL. Returns count deleted.

        Run on a schedule against the durable backend to stand in for a
        storage-level expiry sweep. Returns 0 when no TTL is configured.
        """
        if not self._config.enforces_expiry:
            return 0
        adapter = self.adapter_for(handle)
        return await adapter.purge_expired(utc_now(), self._config.ttl_seconds)

    # ------ Lifecycle ------

    async def dispose(self) -> None:
        """Close the embedded store if it was opened. Caller-owned handles are untouched."""
        if self._embedded is not None:
            await self._embedded.dispose()

    # ------ Framework integrations ------

    def fastapi_router(self, *, handle: AsyncEngine | None = None):
        """Return a FastAPI APIRouter with /request and /verify endpoints.

        Usage:
            app.include_router(onehitter.fastapi_router(handle=engine), prefix="/otp")
        """
        from onehitter.integrations.fastapi.router import create_otp_router

        return create_otp_router(self, handle=handle)
