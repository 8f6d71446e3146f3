"""OneHitter SQLAlchemy models — central registry."""

from onehitter.models.base import Base
from onehitter.models.otp import PendingOtp

__all__ = [
    "Base",
    "PendingOtp",
]
