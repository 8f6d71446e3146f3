"""Tests for message composition and delivery."""

from email.message import EmailMessage

import pytest

from onehitter import DeliveryError, OneHitter, OneHitterConfig
from onehitter.config import MessageConfig
from onehitter.sender import OtpMailer, SmtpTransport, Transport, format_expiry

pytestmark = pytest.mark.asyncio


class RecordingTransport:
    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.messages.append(message)


class FailingTransport:
    async def send(self, message: EmailMessage) -> None:
        raise ConnectionError("relay unreachable")


def _plain(message: EmailMessage) -> str:
    return message.get_body(preferencelist=("plain",)).get_content()


class TestFormatExpiry:
    async def test_minutes(self):
        assert format_expiry(1800) == (1800, 30, "30 minutes")

    async def test_single_minute(self):
        assert format_expiry(60)[2] == "1 minute"

    async def test_rounds_and_floors_at_one(self):
        assert format_expiry(10)[1] == 1
        assert format_expiry(150)[1] == 2

    @pytest.mark.parametrize("expiry", [None, 0, -60])
    async def test_fallback(self, expiry):
        assert format_expiry(expiry) == (1800, 30, "30 minutes")


class TestOtpMailer:
    async def test_default_message(self):
        transport = RecordingTransport()
        mailer = OtpMailer(
            MessageConfig(sender="noreply@example.com", url="https://example.com"),
            transport=transport,
            expiry_seconds=600,
        )
        await mailer.send("user@example.com", "123456")

        message = transport.messages[0]
        assert message["From"] == "noreply@example.com"
        assert message["To"] == "user@example.com"
        assert message["Subject"] == "One-time password"
        body = _plain(message)
        assert "123456" in body
        assert "https://example.com" in body
        assert "10 minutes" in body

    async def test_explicit_fields_win_over_template(self):
        transport = RecordingTransport()
        config = MessageConfig(
            sender="noreply@example.com",
            subject=lambda ctx: f"Code for {ctx.to}",
            template=lambda ctx: {
                "subject": "template subject",
                "text": f"template {ctx.otp}",
                "html": f"<b>{ctx.otp}</b>",
                "sender": "template@example.com",
            },
        )
        await OtpMailer(config, transport=transport).send("user@example.com", "987654")

        message = transport.messages[0]
        assert message["Subject"] == "Code for user@example.com"
        assert message["From"] == "noreply@example.com"
        assert _plain(message).strip() == "template 987654"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "<b>987654</b>" in html

    async def test_template_may_supply_sender(self):
        transport = RecordingTransport()
        config = MessageConfig(template=lambda ctx: {"sender": "template@example.com"})
        await OtpMailer(config, transport=transport).send("user@example.com", "1")
        assert transport.messages[0]["From"] == "template@example.com"

    async def test_missing_sender(self):
        transport = RecordingTransport()
        with pytest.raises(DeliveryError) as exc_info:
            await OtpMailer(MessageConfig(), transport=transport).send("user@example.com", "1")
        assert exc_info.value.code == "missing_sender"
        assert transport.messages == []

    async def test_missing_recipient(self):
        mailer = OtpMailer(MessageConfig(sender="noreply@example.com"), transport=RecordingTransport())
        with pytest.raises(DeliveryError) as exc_info:
            await mailer.send("  ", "1")
        assert exc_info.value.code == "missing_recipient"

    async def test_missing_transport(self):
        mailer = OtpMailer(MessageConfig(sender="noreply@example.com"))
        with pytest.raises(DeliveryError) as exc_info:
            await mailer.send("user@example.com", "1")
        assert exc_info.value.code == "missing_transport"

    async def test_transport_failure_is_wrapped(self):
        mailer = OtpMailer(MessageConfig(sender="noreply@example.com"), transport=FailingTransport())
        with pytest.raises(DeliveryError) as exc_info:
            await mailer.send("user@example.com", "1")
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    async def test_transports_satisfy_protocol(self):
        assert isinstance(RecordingTransport(), Transport)


class TestEngineSend:
    async def test_send_uses_configured_mailer(self):
        transport = RecordingTransport()
        config = OneHitterConfig(
            ttl_seconds=120,
            message=MessageConfig(sender="noreply@example.com"),
        )
        onehitter = OneHitter(config, transport=transport)
        await onehitter.send("user@example.com", "314159")
        body = _plain(transport.messages[0])
        assert "314159" in body
        assert "2 minutes" in body

    async def test_smtp_config_builds_smtp_transport(self):
        from onehitter.config import SmtpConfig

        onehitter = OneHitter(OneHitterConfig(smtp=SmtpConfig(host="localhost")))
        assert isinstance(onehitter._mailer._transport, SmtpTransport)
