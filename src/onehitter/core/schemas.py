"""OTP schemas — caller-facing inputs, validation statuses, and HTTP models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class ValidateStatus(StrEnum):
    """Result vocabulary of ``validate_status``. None of these are errors."""

    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    BLOCKED = "blocked"


class OtpRecord(BaseModel):
    """A freshly generated code to store. ``created_at`` defaults to now."""
    contact: str
    otp: str
    created_at: datetime | None = None


class OtpAttempt(BaseModel):
    """A code submitted for validation."""
    contact: str
    otp: str


class OTPRequest(BaseModel):
    """HTTP input: send a code to a contact."""
    contact: str


class OTPVerifyRequest(BaseModel):
    """HTTP input: check a submitted code."""
    contact: str
    otp: str


class OTPVerifyResponse(BaseModel):
    status: ValidateStatus
    valid: bool
