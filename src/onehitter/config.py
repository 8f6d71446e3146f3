"""OneHitter configuration — immutable dataclasses passed to the engine.

Nothing in the package reads the environment on its own. ``OneHitterConfig.from_env()``
is the only place environment variables are consulted, and only when called.
"""

from __future__ import annotations

import math
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from onehitter.sender import MessageContext

Driver = Literal["durable", "embedded"]

DEFAULT_TTL_SECONDS = 1800
DEFAULT_SUBJECT = "One-time password"

# Legacy driver names accepted from the environment.
_DRIVER_ALIASES: dict[str, Driver] = {
    "durable": "durable",
    "mongodb": "durable",
    "postgresql": "durable",
    "embedded": "embedded",
    "sqlite": "embedded",
}


@dataclass(frozen=True, slots=True)
class CodePolicy:
    """Shape of generated codes.

    ``length`` is resolved by the generator: invalid or non-positive values
    mean 6, anything above 64 is capped. With every class flag off the
    generator uses digits.
    """

    length: int = 6
    upper: bool = False
    lower: bool = False
    digits: bool = True
    special: bool = False


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Tunables for the built-in in-memory limiter.

    Example:
        RateLimitConfig()                                   # 5 failures / 5 min, 60s cooldown
        RateLimitConfig(max_failures=3, cooldown_seconds=300)
    """

    max_failures: int = 5
    window_seconds: float = 300.0
    cooldown_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_failures <= 0:
            raise ValueError(f"max_failures must be positive, got {self.max_failures}")
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")
        if self.cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must not be negative, got {self.cooldown_seconds}")


TextOverride = str | Callable[["MessageContext"], str] | None


@dataclass(frozen=True, slots=True)
class MessageConfig:
    """Content of the delivery message.

    ``subject``, ``text`` and ``html`` accept a string or a callable taking the
    ``MessageContext``. ``template`` returns a mapping with any of ``subject``,
    ``text``, ``html``, ``sender``; explicit fields win over the template.
    """

    sender: str | None = None
    url: str = ""
    subject: TextOverride = None
    text: TextOverride = None
    html: TextOverride = None
    template: Callable[["MessageContext"], Mapping[str, str]] | None = None


@dataclass(frozen=True, slots=True)
class SmtpConfig:
    """SMTP relay used by the default transport."""

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    starttls: bool = True
    timeout: float = 10.0


@dataclass(frozen=True, slots=True)
class OneHitterConfig:
    """Everything the engine needs. Built once, passed to ``OneHitter``."""

    code: CodePolicy = field(default_factory=CodePolicy)
    ttl_seconds: float | None = DEFAULT_TTL_SECONDS
    pepper: str | None = None
    production: bool = False
    allow_insecure_hash: bool = False
    driver: Driver = "durable"
    sqlite_path: str = ":memory:"
    rate_limit: RateLimitConfig | None = None
    message: MessageConfig = field(default_factory=MessageConfig)
    smtp: SmtpConfig | None = None

    def __post_init__(self) -> None:
        if self.driver not in ("durable", "embedded"):
            raise ValueError(
                f"Unknown driver '{self.driver}'. Valid drivers: durable, embedded"
            )

    @property
    def enforces_expiry(self) -> bool:
        return ttl_is_enforced(self.ttl_seconds)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OneHitterConfig:
        """Build a config from environment variables (``os.environ`` by default).

        Limiter window and cooldown read ``ONEHITTER_LIMIT_*_SECONDS``; the older
        ``ONEHITTER_LIMIT_*_MS`` names are still honoured when those are unset.
        """
        env = os.environ if environ is None else environ

        driver_raw = (env.get("DB_DRIVER") or "durable").strip().lower()
        if driver_raw not in _DRIVER_ALIASES:
            raise ValueError(f"Unknown DB_DRIVER '{driver_raw}'")

        rate_limit = None
        if _bool_of(env, "ONEHITTER_ENABLE_INMEM_LIMITER"):
            defaults = RateLimitConfig()
            rate_limit = RateLimitConfig(
                max_failures=int(_number_of(env, "ONEHITTER_LIMIT_MAX", defaults.max_failures)),
                window_seconds=_seconds_of(env, "ONEHITTER_LIMIT_WINDOW", defaults.window_seconds),
                cooldown_seconds=_seconds_of(env, "ONEHITTER_LIMIT_COOLDOWN", defaults.cooldown_seconds),
            )

        smtp = None
        if env.get("SMTP_HOST"):
            smtp = SmtpConfig(
                host=env["SMTP_HOST"],
                port=int(_number_of(env, "SMTP_PORT", 587)),
                username=env.get("SMTP_USERNAME") or None,
                password=env.get("SMTP_PASSWORD") or None,
                starttls=_bool_of(env, "SMTP_STARTTLS", True),
            )

        return cls(
            code=CodePolicy(
                length=int(_number_of(env, "OTP_LENGTH", 6)),
                upper=_bool_of(env, "OTP_LETTERS_UPPER"),
                lower=_bool_of(env, "OTP_LETTERS_LOWER"),
                digits=_bool_of(env, "OTP_DIGITS", True),
                special=_bool_of(env, "OTP_SPECIAL_CHARS"),
            ),
            ttl_seconds=_number_of(env, "OTP_EXPIRY", DEFAULT_TTL_SECONDS),
            pepper=env.get("OTP_PEPPER") or None,
            production=(env.get("ONEHITTER_ENV") or "").strip().lower() == "production",
            allow_insecure_hash=_bool_of(env, "ONEHITTER_ALLOW_INSECURE_HASH"),
            driver=_DRIVER_ALIASES[driver_raw],
            sqlite_path=env.get("SQLITE_PATH") or ":memory:",
            rate_limit=rate_limit,
            message=MessageConfig(
                sender=env.get("OTP_MESSAGE_FROM") or None,
                url=env.get("OTP_URL", ""),
                subject=env.get("OTP_MESSAGE_SUBJECT") or None,
            ),
            smtp=smtp,
        )


def ttl_is_enforced(ttl_seconds: Any) -> bool:
    """True when ``ttl_seconds`` is a positive finite number."""
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, (int, float)):
        return False
    return math.isfinite(ttl_seconds) and ttl_seconds > 0


def _bool_of(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = env.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1")


def _number_of(env: Mapping[str, str], key: str, default: float | None) -> float | None:
    value = env.get(key)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def _seconds_of(env: Mapping[str, str], prefix: str, default: float) -> float:
    """``<prefix>_SECONDS``, else the legacy ``<prefix>_MS`` in milliseconds."""
    seconds = _number_of(env, f"{prefix}_SECONDS", None)
    if seconds is not None:
        return seconds
    millis = _number_of(env, f"{prefix}_MS", None)
    if millis is not None:
        return millis / 1000
    return default
