"""OTP auth service — validates codes and fans outcomes out to event listeners.

A thin layer over ``OneHitter.validate_status``: on OK it emits ``auth_success``,
otherwise ``auth_failure`` with the status as the reason. Listeners (sessions,
audit logs, metrics) react without coupling to the validation logic.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from onehitter.core.schemas import OtpAttempt, ValidateStatus
from onehitter.events import AuthFailure, AuthSuccess, FailureReason, HookRegistry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from onehitter.onehitter import OneHitter

logger = logging.getLogger("onehitter.auth_service")

SuccessBuilder = Callable[[str, dict[str, Any]], AuthSuccess]
FailureBuilder = Callable[[str, FailureReason, dict[str, Any]], AuthFailure]


def default_success_payload(user_id: str, extra: dict[str, Any]) -> AuthSuccess:
    return AuthSuccess(user_id=user_id, auth_time=datetime.now(UTC), extra=extra)


def default_failure_payload(user_id: str, reason: FailureReason, extra: dict[str, Any]) -> AuthFailure:
    return AuthFailure(user_id=user_id, auth_time=datetime.now(UTC), reason=reason, extra=extra)


class OtpAuthService:
    """Authenticates users by OTP and broadcasts the outcome.

    Args:
        onehitter: The engine doing the validation (with its own limiter and driver).
        hooks: Registry to emit on. A fresh one is created if omitted.
        build_payload: Builds the ``auth_success`` event from (user_id, extra).
        build_failure_payload: Builds the ``auth_failure`` event from
            (user_id, reason, extra).
    """

    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"

    def __init__(
        self,
        onehitter: OneHitter,
        *,
        hooks: HookRegistry | None = None,
        build_payload: SuccessBuilder | None = None,
        build_failure_payload: FailureBuilder | None = None,
    ) -> None:
        self._onehitter = onehitter
        self._hooks = hooks or HookRegistry()
        self._build_payload = build_payload or default_success_payload
        self._build_failure_payload = build_failure_payload or default_failure_payload

    @property
    def hooks(self) -> HookRegistry:
        return self._hooks

    def on(self, event_name: str):
        """Decorator to register a listener.

        Usage:
            @service.on("auth_success")
            async def start_session(event):
                ...
        """
        def decorator(fn):
            self._hooks.register(event_name, fn)
            return fn
        return decorator

    async def authenticate_user(
        self,
        otp: str,
        user_id: str,
        *,
        extra: dict[str, Any] | None = None,
        handle: AsyncEngine | None = None,
    ) -> bool:
        """Validate ``otp`` for ``user_id`` (used as the OTP contact) and emit the outcome.

        Returns:
            True on success, False otherwise.
        """
        logger.debug("Attempting OTP authentication")
        extra = dict(extra or {})
        status = await self._onehitter.validate_status(
            OtpAttempt(contact=user_id, otp=otp), handle=handle,
        )

        if status == ValidateStatus.OK:
            await self._hooks.emit(self.AUTH_SUCCESS, self._build_payload(user_id, extra))
            return True

        reason: FailureReason = status.value
        await self._hooks.emit(
            self.AUTH_FAILURE, self._build_failure_payload(user_id, reason, extra),
        )
        return False
