"""Code delivery by email — message composition and transports.

``OtpMailer`` builds the message from a ``MessageConfig`` and hands it to a
``Transport``. The default transport relays through SMTP; tests and custom
providers plug in anything with an async ``send(message)``.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol, runtime_checkable

from onehitter.config import DEFAULT_SUBJECT, DEFAULT_TTL_SECONDS, MessageConfig, SmtpConfig, ttl_is_enforced
from onehitter.errors import DeliveryError

logger = logging.getLogger("onehitter.sender")


@dataclass(frozen=True, slots=True)
class MessageContext:
    """Values available to message templates."""

    to: str
    otp: str
    url: str
    expiry_seconds: float
    minutes_text: str


@dataclass(frozen=True, slots=True)
class ResolvedMessage:
    subject: str
    text: str
    html: str | None
    sender: str | None


def format_expiry(expiry: float | None) -> tuple[float, int, str]:
    """Resolve an expiry into (seconds, minutes, human text).

    Non-positive or missing values fall back to 30 minutes. Minutes are
    rounded and never below one.
    """
    seconds = expiry if ttl_is_enforced(expiry) else DEFAULT_TTL_SECONDS
    minutes = max(1, round(seconds / 60))
    text = "1 minute" if minutes == 1 else f"{minutes} minutes"
    return seconds, minutes, text


def default_text(ctx: MessageContext) -> str:
    return (
        f"This is your one-time password to access {ctx.url}\n"
        f"\n"
        f"{ctx.otp}\n"
        f"\n"
        f"Once used, this one-time password can not be used again. "
        f"That's why it's called one-time password. "
        f"This password also expires in {ctx.minutes_text}."
    )


def _render(value, ctx: MessageContext) -> str | None:
    if value is None:
        return None
    if callable(value):
        return value(ctx)
    return value


def resolve_message(ctx: MessageContext, config: MessageConfig) -> ResolvedMessage:
    """Apply the template, then explicit overrides, then defaults."""
    override: dict[str, str] = {}
    if config.template is not None:
        override.update(config.template(ctx) or {})

    for key in ("subject", "text", "html"):
        rendered = _render(getattr(config, key), ctx)
        if rendered:
            override[key] = rendered
    if config.sender:
        override["sender"] = config.sender

    return ResolvedMessage(
        subject=override.get("subject") or DEFAULT_SUBJECT,
        text=override.get("text") or default_text(ctx),
        html=override.get("html") or None,
        sender=override.get("sender") or None,
    )


@runtime_checkable
class Transport(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


class SmtpTransport:
    """Relays messages through an SMTP server. Blocking I/O runs in a worker thread."""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    async def send(self, message: EmailMessage) -> None:
        await asyncio.to_thread(self._send_sync, message)

    def _send_sync(self, message: EmailMessage) -> None:
        cfg = self._config
        with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as smtp:
            if cfg.starttls:
                smtp.starttls()
            if cfg.username:
                smtp.login(cfg.username, cfg.password or "")
            smtp.send_message(message)


class OtpMailer:
    """Composes and sends one-time password emails."""

    def __init__(
        self,
        config: MessageConfig,
        *,
        transport: Transport | None = None,
        expiry_seconds: float | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._expiry_seconds = expiry_seconds

    def build(self, to: str, otp: str) -> EmailMessage:
        """Build the message for ``to``.

        Raises:
            DeliveryError: If the recipient or sender address is missing.
        """
        if not to or not to.strip():
            raise DeliveryError("Missing recipient address", code="missing_recipient")

        seconds, _, minutes_text = format_expiry(self._expiry_seconds)
        ctx = MessageContext(
            to=to,
            otp=otp,
            url=self._config.url,
            expiry_seconds=seconds,
            minutes_text=minutes_text,
        )
        resolved = resolve_message(ctx, self._config)

        if not resolved.sender or not resolved.sender.strip():
            raise DeliveryError(
                "Missing sender address: configure MessageConfig.sender",
                code="missing_sender",
            )

        message = EmailMessage()
        message["From"] = resolved.sender
        message["To"] = to
        message["Subject"] = resolved.subject
        message.set_content(resolved.text)
        if resolved.html:
            message.add_alternative(resolved.html, subtype="html")
        return message

    async def send(self, to: str, otp: str) -> None:
        """Deliver ``otp`` to ``to``.

        Raises:
            DeliveryError: If addresses or the transport are missing, or the
                transport fails.
        """
        message = self.build(to, otp)
        if self._transport is None:
            raise DeliveryError(
                "No delivery transport configured: pass a transport or SmtpConfig",
                code="missing_transport",
            )
        try:
            await self._transport.send(message)
        except DeliveryError:
            raise
        except Exception as exc:
            raise DeliveryError("Failed to deliver OTP message") from exc
        logger.info("OTP message handed to transport")

