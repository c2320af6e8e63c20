"""
Notification channels used by the contact relay.

Each channel exposes ``name``, ``is_configured()`` and ``async send(submission)``.
send returns a provider message id (or None) and raises NotificationError on
failure; the relay decides how failures are reported.

Typical .env configuration:

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=me@gmail.com
    SMTP_PASSWORD=<app password>
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
    CONTACT_EMAIL=me@gmail.com
    RELAY_ACCESS_TOKEN=<WhatsApp Cloud API token>
    RELAY_PHONE_ID=<sender phone number id>
    RELAY_RECIPIENT=<owner phone number>
"""

from __future__ import annotations

import asyncio
import html
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from portfolio.schemas.contact import ContactSubmission

if TYPE_CHECKING:
    from portfolio.core.config import Settings


class NotificationError(Exception):
    """Raised when a channel cannot deliver (connection, auth or provider error)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotificationChannel(Protocol):
    name: str

    def is_configured(self) -> bool: ...

    async def send(self, submission: ContactSubmission) -> str | None: ...


def _format_received(submission: ContactSubmission) -> str:
    return submission.received_at.strftime("%Y-%m-%d %H:%M:%S UTC")


class SmtpMailer:
    """Thin wrapper over smtplib supporting SSL or STARTTLS connections."""

    def __init__(self, settings: Settings) -> None:
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = (
            settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
        )
        self.from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or ""
        self.from_name = settings.SMTP_FROM_NAME
        self.use_tls = settings.SMTP_USE_TLS
        self.use_ssl = settings.SMTP_USE_SSL
        self.timeout = settings.NOTIFY_REQUEST_TIMEOUT_SEC

    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            server.starttls()
        return server

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
        reply_to: str | None = None,
    ) -> str:
        """Send one message and return its Message-ID. Raises NotificationError."""
        if not self.is_configured():
            raise NotificationError("SMTP is not configured.")
        msg = EmailMessage()
        msg["From"] = f"{self.from_name} <{self.from_email}>" if self.from_email else self.username
        msg["To"] = to_email
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(text_body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")
        try:
            server = self._connect()
        except (OSError, smtplib.SMTPException) as e:
            raise NotificationError(f"SMTP connection failed: {e}") from e
        try:
            server.login(self.username, self.password)
            server.send_message(msg)
        except smtplib.SMTPException as e:
            raise NotificationError(f"SMTP send failed: {e}") from e
        finally:
            try:
                server.quit()
            except (OSError, smtplib.SMTPException):
                pass
        return msg["Message-ID"]


class EmailChannel:
    """Forward the submission to the site owner's inbox, replying-to the sender."""

    name = "email"

    def __init__(self, mailer: SmtpMailer, recipient: str | None) -> None:
        self.mailer = mailer
        self.recipient = recipient

    def is_configured(self) -> bool:
        return bool(self.recipient) and self.mailer.is_configured()

    async def send(self, submission: ContactSubmission) -> str | None:
        text_body = (
            "New contact form submission\n\n"
            f"Name: {submission.name}\n"
            f"Email: {submission.email}\n"
            f"Subject: {submission.subject}\n"
            f"Received: {_format_received(submission)}\n\n"
            f"{submission.message}\n"
        )
        message_html = html.escape(submission.message).replace("\n", "<br>")
        html_body = (
            "<h3>New contact form submission</h3>"
            f"<p><strong>Name:</strong> {html.escape(submission.name)}</p>"
            f"<p><strong>Email:</strong> {html.escape(submission.email)}</p>"
            f"<p><strong>Subject:</strong> {html.escape(submission.subject)}</p>"
            f"<p><strong>Received:</strong> {_format_received(submission)}</p>"
            f"<div>{message_html}</div>"
        )
        return await asyncio.to_thread(
            self.mailer.send,
            self.recipient,
            f"Portfolio Contact: {submission.subject}",
            text_body,
            html_body,
            submission.email,
        )


class AutoReplyChannel:
    """Acknowledge receipt to the person who filled in the form."""

    name = "autoReply"

    def __init__(self, mailer: SmtpMailer, enabled: bool = True) -> None:
        self.mailer = mailer
        self.enabled = enabled

    def is_configured(self) -> bool:
        return self.enabled and self.mailer.is_configured()

    async def send(self, submission: ContactSubmission) -> str | None:
        text_body = (
            f"Hello {submission.name},\n\n"
            "Thank you for reaching out through my portfolio contact form. "
            "This is an automated confirmation that your message has been received.\n\n"
            f"Subject: {submission.subject}\n"
            f"Received: {_format_received(submission)}\n\n"
            "You can expect a personal response within 24-48 hours.\n"
        )
        return await asyncio.to_thread(
            self.mailer.send,
            submission.email,
            "Thank you for your message - auto reply",
            text_body,
        )


class RelayChannel:
    """Push a text notification through the WhatsApp Cloud API."""

    name = "relay"

    def __init__(self, settings: Settings) -> None:
        self.base_url = settings.RELAY_API_BASE_URL.rstrip("/")
        self.access_token = (
            settings.RELAY_ACCESS_TOKEN.get_secret_value()
            if settings.RELAY_ACCESS_TOKEN
            else None
        )
        self.phone_id = settings.RELAY_PHONE_ID
        self.recipient = settings.RELAY_RECIPIENT
        self.timeout = settings.NOTIFY_REQUEST_TIMEOUT_SEC

    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_id and self.recipient)

    @staticmethod
    def format_message(submission: ContactSubmission) -> str:
        return (
            "*New Contact Form Submission*\n\n"
            f"*Name:* {submission.name}\n"
            f"*Email:* {submission.email}\n"
            f"*Subject:* {submission.subject}\n"
            f"*Message:* {submission.message}\n"
            f"*Timestamp:* {_format_received(submission)}"
        )

    async def send(self, submission: ContactSubmission) -> str | None:
        if not self.is_configured():
            raise NotificationError("Messaging relay is not configured.")
        url = f"{self.base_url}/{self.phone_id}/messages"
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "to": self.recipient,
            "type": "text",
            "text": {"body": self.format_message(submission)},
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise NotificationError("Messaging relay timed out.") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Messaging relay unreachable: {e}") from e
        if resp.status_code == 401:
            raise NotificationError("Messaging relay rejected the access token.", 401)
        if resp.status_code >= 400:
            detail = resp.text[:500] if resp.text else "Unknown error"
            raise NotificationError(
                f"Messaging relay returned {resp.status_code}: {detail}", resp.status_code
            )
        try:
            messages = resp.json().get("messages") or []
        except ValueError:
            return None
        return messages[0].get("id") if messages else None


def build_channels(settings: Settings) -> list[NotificationChannel]:
    """Owner email, messaging relay and auto-reply, in delivery order."""
    mailer = SmtpMailer(settings)
    return [
        EmailChannel(mailer, settings.CONTACT_EMAIL),
        RelayChannel(settings),
        AutoReplyChannel(mailer, enabled=settings.CONTACT_AUTO_REPLY_ENABLED),
    ]
