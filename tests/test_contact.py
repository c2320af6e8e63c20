"""Unit tests for the contact relay and its notification channels."""

import asyncio
import smtplib
import unittest
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from pydantic import SecretStr

from db_support import FakeChannel, fake_channels, make_settings
from portfolio.core.errors import ValidationError
from portfolio.schemas.contact import ContactRequest, ContactSubmission
from portfolio.services.contact import submit_contact, validate_submission
from portfolio.services.notifications import (
    AutoReplyChannel,
    EmailChannel,
    NotificationError,
    RelayChannel,
    SmtpMailer,
    build_channels,
)

RECEIVED_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _request(**kwargs: object) -> ContactRequest:
    values: dict[str, object] = {
        "name": " Jane Doe ",
        "email": " Jane@Example.com ",
        "subject": "Hello",
        "message": "I liked your portfolio.",
    }
    values.update(kwargs)
    return ContactRequest(**values)


def _submission() -> ContactSubmission:
    return ContactSubmission(
        name="Jane Doe",
        email="jane@example.com",
        subject="Hello",
        message="I liked your portfolio.",
        received_at=RECEIVED_AT,
    )


class TestValidateSubmission(unittest.TestCase):
    def test_trims_and_lowercases(self) -> None:
        submission = validate_submission(_request(), now=RECEIVED_AT)
        self.assertEqual(submission.name, "Jane Doe")
        self.assertEqual(submission.email, "jane@example.com")
        self.assertEqual(submission.received_at, RECEIVED_AT)

    def test_blank_field(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_submission(_request(subject="   "))
        self.assertEqual(ctx.exception.message, "All fields are required")

    def test_oversized_fields(self) -> None:
        for field, size in (("name", 101), ("subject", 201), ("message", 5001)):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError) as ctx:
                    validate_submission(_request(**{field: "x" * size}))
                self.assertEqual(ctx.exception.field, field)

    def test_message_at_limit_is_accepted(self) -> None:
        submission = validate_submission(_request(message="x" * 5000))
        self.assertEqual(len(submission.message), 5000)

    def test_malformed_email(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_submission(_request(email="jane@nowhere"))
        self.assertEqual(ctx.exception.field, "email")


class TestSubmitContact(unittest.TestCase):
    """Every channel is attempted; failures are reported, not raised."""

    def test_all_channels_sent(self) -> None:
        channels = fake_channels()
        result = asyncio.run(submit_contact(_request(), channels, now=RECEIVED_AT))
        self.assertEqual(
            result.model_dump(by_alias=True),
            {"email": "sent", "relay": "sent", "autoReply": "sent"},
        )
        for channel in channels:
            self.assertEqual(channel.sent[0].email, "jane@example.com")

    def test_failing_channel_does_not_stop_others(self) -> None:
        channels = fake_channels("relay")
        result = asyncio.run(submit_contact(_request(), channels))
        self.assertEqual(result.email, "sent")
        self.assertEqual(result.relay, "failed")
        self.assertEqual(result.auto_reply, "sent")
        self.assertEqual(len(channels[2].sent), 1)

    def test_unconfigured_channel_is_skipped(self) -> None:
        channels = [
            FakeChannel("email"),
            FakeChannel("relay", configured=False),
            FakeChannel("autoReply"),
        ]
        result = asyncio.run(submit_contact(_request(), channels))
        self.assertEqual(result.relay, "skipped")
        self.assertEqual(channels[1].sent, [])

    def test_invalid_submission_touches_no_channel(self) -> None:
        channels = fake_channels()
        with self.assertRaises(ValidationError):
            asyncio.run(submit_contact(_request(email="bad"), channels))
        self.assertTrue(all(not channel.sent for channel in channels))


class TestRelayChannel(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings(
            RELAY_API_BASE_URL="https://graph.example.test/v18.0/",
            RELAY_ACCESS_TOKEN=SecretStr("relay-token"),
            RELAY_PHONE_ID="12345",
            RELAY_RECIPIENT="15550001111",
        )

    @staticmethod
    def _mock_client(mock_client_class: MagicMock, post: AsyncMock) -> None:
        instance = MagicMock()
        instance.post = post
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=instance)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)

    def test_unconfigured(self) -> None:
        channel = RelayChannel(make_settings())
        self.assertFalse(channel.is_configured())
        with self.assertRaises(NotificationError):
            asyncio.run(channel.send(_submission()))

    @patch("portfolio.services.notifications.httpx.AsyncClient")
    def test_posts_text_message_with_bearer_token(self, mock_client_class: MagicMock) -> None:
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = {"messages": [{"id": "wamid.1"}]}
        post = AsyncMock(return_value=resp)
        self._mock_client(mock_client_class, post)

        message_id = asyncio.run(RelayChannel(self.settings).send(_submission()))

        self.assertEqual(message_id, "wamid.1")
        url = post.call_args[0][0]
        self.assertEqual(url, "https://graph.example.test/v18.0/12345/messages")
        kwargs = post.call_args[1]
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer relay-token")
        self.assertEqual(kwargs["json"]["to"], "15550001111")
        self.assertEqual(kwargs["json"]["type"], "text")
        self.assertIn("Jane Doe", kwargs["json"]["text"]["body"])

    @patch("portfolio.services.notifications.httpx.AsyncClient")
    def test_provider_error_raises(self, mock_client_class: MagicMock) -> None:
        resp = MagicMock()
        resp.status_code = 400
        resp.text = "bad request"
        self._mock_client(mock_client_class, AsyncMock(return_value=resp))
        with self.assertRaises(NotificationError) as ctx:
            asyncio.run(RelayChannel(self.settings).send(_submission()))
        self.assertEqual(ctx.exception.status_code, 400)

    @patch("portfolio.services.notifications.httpx.AsyncClient")
    def test_timeout_raises(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        self._mock_client(mock_client_class, post)
        with self.assertRaises(NotificationError) as ctx:
            asyncio.run(RelayChannel(self.settings).send(_submission()))
        self.assertIn("timed out", ctx.exception.message)


class TestEmailChannels(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings(
            SMTP_HOST="smtp.example.test",
            SMTP_PORT=587,
            SMTP_USERNAME="owner@example.test",
            SMTP_PASSWORD=SecretStr("app-password"),
            SMTP_USE_TLS=True,
            SMTP_USE_SSL=False,
            CONTACT_EMAIL="owner@example.test",
        )

    def test_unconfigured_mailer(self) -> None:
        mailer = SmtpMailer(make_settings())
        self.assertFalse(mailer.is_configured())
        self.assertFalse(EmailChannel(mailer, "owner@example.test").is_configured())
        self.assertFalse(AutoReplyChannel(mailer).is_configured())

    @patch("portfolio.services.notifications.smtplib.SMTP")
    def test_owner_email_replies_to_sender(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value
        channel = EmailChannel(SmtpMailer(self.settings), "owner@example.test")

        message_id = asyncio.run(channel.send(_submission()))

        self.assertTrue(message_id)
        mock_smtp.assert_called_once_with("smtp.example.test", 587, timeout=15.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("owner@example.test", "app-password")
        msg = server.send_message.call_args[0][0]
        self.assertEqual(msg["To"], "owner@example.test")
        self.assertEqual(msg["Reply-To"], "jane@example.com")
        self.assertEqual(msg["Subject"], "Portfolio Contact: Hello")
        server.quit.assert_called_once()

    @patch("portfolio.services.notifications.smtplib.SMTP")
    def test_auto_reply_goes_to_sender(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value
        asyncio.run(AutoReplyChannel(SmtpMailer(self.settings)).send(_submission()))
        msg = server.send_message.call_args[0][0]
        self.assertEqual(msg["To"], "jane@example.com")

    @patch("portfolio.services.notifications.smtplib.SMTP")
    def test_smtp_failure_raises_notification_error(self, mock_smtp: MagicMock) -> None:
        mock_smtp.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"no")
        channel = EmailChannel(SmtpMailer(self.settings), "owner@example.test")
        with self.assertRaises(NotificationError):
            asyncio.run(channel.send(_submission()))
        mock_smtp.return_value.quit.assert_called_once()

    def test_build_channels_order(self) -> None:
        names = [channel.name for channel in build_channels(self.settings)]
        self.assertEqual(names, ["email", "relay", "autoReply"])


if __name__ == "__main__":
    unittest.main()
