"""Contact relay: validate a contact-form submission and fan it out to notification channels."""

import logging
import re
from collections.abc import Sequence
from datetime import datetime

from portfolio.core.clock import utcnow
from portfolio.core.errors import ValidationError
from portfolio.schemas.contact import (
    ChannelStatus,
    ContactRequest,
    ContactSubmission,
    NotificationStatuses,
)
from portfolio.services.notifications import NotificationChannel

logger = logging.getLogger(__name__)

CONTACT_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SUCCESS_MESSAGE = "Message transmitted successfully! I will get back to you soon."

MAX_LENGTHS = {"name": 100, "email": 255, "subject": 200, "message": 5000}

# Channel name -> NotificationStatuses field.
STATUS_FIELDS = {"email": "email", "relay": "relay", "autoReply": "auto_reply"}


def validate_submission(data: ContactRequest, now: datetime | None = None) -> ContactSubmission:
    """Trim fields and lowercase the email; raise ValidationError for blank, oversized or malformed input."""
    name = (data.name or "").strip()
    email = (data.email or "").strip().lower()
    subject = (data.subject or "").strip()
    message = (data.message or "").strip()
    if not (name and email and subject and message):
        raise ValidationError("All fields are required")
    fields = {"name": name, "email": email, "subject": subject, "message": message}
    for field, value in fields.items():
        if len(value) > MAX_LENGTHS[field]:
            raise ValidationError(
                f"{field.capitalize()} cannot exceed {MAX_LENGTHS[field]} characters",
                field=field,
            )
    if not CONTACT_EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address", field="email")
    return ContactSubmission(
        name=name,
        email=email,
        subject=subject,
        message=message,
        received_at=now or utcnow(),
    )


async def _deliver(channel: NotificationChannel, submission: ContactSubmission) -> ChannelStatus:
    if not channel.is_configured():
        logger.info("Contact channel %s not configured; skipping", channel.name)
        return "skipped"
    try:
        message_id = await channel.send(submission)
    except Exception:
        logger.exception("Contact channel %s failed", channel.name)
        return "failed"
    logger.info("Contact channel %s delivered (id=%s)", channel.name, message_id)
    return "sent"


async def submit_contact(
    data: ContactRequest,
    channels: Sequence[NotificationChannel],
    now: datetime | None = None,
) -> NotificationStatuses:
    """
    Validate the submission, then try every channel in order.

    Validation errors are raised before any channel runs. A failing channel is
    logged and reported as 'failed' without affecting the others.
    """
    submission = validate_submission(data, now=now)
    logger.info(
        "Contact form submission received",
        extra={
            "contact_name": submission.name,
            "contact_email": submission.email,
            "contact_subject": submission.subject,
            "message_length": len(submission.message),
        },
    )
    statuses: dict[str, ChannelStatus] = {}
    for channel in channels:
        field = STATUS_FIELDS.get(channel.name, channel.name)
        statuses[field] = await _deliver(channel, submission)
    receipt = NotificationStatuses(**statuses)
    logger.info("Contact relay completed", extra={"notifications": receipt.model_dump()})
    return receipt
