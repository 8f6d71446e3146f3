"""FastAPI OTP router — factory that creates request/verify endpoints bound to a OneHitter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException

from onehitter.core.schemas import (
    OTPRequest,
    OTPVerifyRequest,
    OTPVerifyResponse,
    OtpAttempt,
    OtpRecord,
    ValidateStatus,
)
from onehitter.errors import DeliveryError, OneHitterError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from onehitter.onehitter import OneHitter


def _error_detail(e: OneHitterError) -> dict:
    """Build HTTPException detail dict from a OneHitterError."""
    detail = {"error": e.code, "message": e.message}
    if e.extra:
        detail.update(e.extra)
    return detail


def create_otp_router(onehitter: OneHitter, *, handle: AsyncEngine | None = None) -> APIRouter:
    """Create a router with POST /request and POST /verify.

    ``handle`` is forwarded to every storage call; the application keeps
    ownership of it.
    """
    router = APIRouter()

    @router.post("/request", status_code=202)
    async def request_otp_endpoint(data: OTPRequest):
        code = onehitter.make()
        await onehitter.create(OtpRecord(contact=data.contact, otp=code), handle=handle)
        try:
            await onehitter.send(data.contact, code)
        except DeliveryError as e:
            raise HTTPException(status_code=502, detail=_error_detail(e))
        return {"message": "If the address is valid, a code has been sent."}

    @router.post("/verify", response_model=OTPVerifyResponse)
    async def verify_otp_endpoint(data: OTPVerifyRequest):
        status = await onehitter.validate_status(
            OtpAttempt(contact=data.contact, otp=data.otp), handle=handle,
        )
        if status == ValidateStatus.BLOCKED:
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": "Too many attempts. Please try again later.",
                },
            )
        return OTPVerifyResponse(status=status, valid=status == ValidateStatus.OK)

    return router
