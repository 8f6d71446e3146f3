"""OneHitter — single-use one-time passwords for Python services."""

__version__ = "0.4.0"

from onehitter.auth_service import OtpAuthService
from onehitter.config import CodePolicy, MessageConfig, OneHitterConfig, RateLimitConfig, SmtpConfig, TextOverride
from onehitter.core.codes import make_code
from onehitter.core.hashing import Hasher
from onehitter.core.schemas import OtpAttempt, OtpRecord, ValidateStatus
from onehitter.db import create_engine, ensure_schema
from onehitter.errors import ConfigurationError, DeliveryError, OneHitterError, StorageError
from onehitter.events import AuthFailure, AuthSuccess, HookRegistry
from onehitter.onehitter import OneHitter
from onehitter.ratelimit import InMemoryRateLimiter, NoopRateLimiter, RateLimiter
from onehitter.sender import OtpMailer, SmtpTransport, Transport
from onehitter.storage import DurableAdapter, EmbeddedAdapter, StorageAdapter

__all__ = [
    "AuthFailure",
    "AuthSuccess",
    "CodePolicy",
    "ConfigurationError",
    "DeliveryError",
    "DurableAdapter",
    "EmbeddedAdapter",
    "Hasher",
    "HookRegistry",
    "InMemoryRateLimiter",
    "MessageConfig",
    "NoopRateLimiter",
    "OneHitter",
    "OneHitterConfig",
    "OneHitterError",
    "OtpAttempt",
    "OtpAuthService",
    "OtpMailer",
    "OtpRecord",
    "RateLimitConfig",
    "RateLimiter",
    "SmtpConfig",
    "SmtpTransport",
    "StorageAdapter",
    "StorageError",
    "TextOverride",
    "Transport",
    "ValidateStatus",
    "create_engine",
    "ensure_schema",
    "make_code",
]
