"""Pydantic schemas for the contact form relay."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ChannelStatus = Literal["sent", "failed", "skipped"]


class ContactRequest(BaseModel):
    """Contact form body. Blank checks happen in the relay so messages match the UI."""

    name: str | None = None
    email: str | None = None
    subject: str | None = None
    message: str | None = None


class ContactSubmission(BaseModel):
    """Validated, trimmed submission handed to notification channels."""

    name: str
    email: str
    subject: str
    message: str
    received_at: datetime


class NotificationStatuses(BaseModel):
    """Per-channel delivery outcome."""

    model_config = ConfigDict(populate_by_name=True)

    email: ChannelStatus = "skipped"
    relay: ChannelStatus = "skipped"
    auto_reply: ChannelStatus = Field(default="skipped", alias="autoReply")


class ContactResponse(BaseModel):
    """Response for POST /contact/submit."""

    success: bool = True
    message: str
    timestamp: datetime
    notifications: NotificationStatuses


class ContactTestResponse(BaseModel):
    success: bool = True
    message: str = "Contact API is working"
    timestamp: datetime
