"""Contact form endpoint: validate a submission and relay it to the owner's notification channels."""

from typing import Annotated

from fastapi import APIRouter, Depends

from portfolio.core.clock import utcnow
from portfolio.core.config import Settings, get_settings
from portfolio.schemas.contact import ContactRequest, ContactResponse, ContactTestResponse
from portfolio.services.contact import SUCCESS_MESSAGE, submit_contact
from portfolio.services.notifications import NotificationChannel, build_channels

router = APIRouter()


def get_contact_channels(
    settings: Annotated[Settings, Depends(get_settings)],
) -> list[NotificationChannel]:
    """Dependency: channels built from settings (overridable in tests)."""
    return build_channels(settings)


@router.post("/submit", response_model=ContactResponse)
async def post_contact_submit(
    body: ContactRequest,
    channels: Annotated[list[NotificationChannel], Depends(get_contact_channels)],
) -> ContactResponse:
    """
    Accept a contact-form submission.

    Succeeds once the submission is validated and logged; per-channel delivery
    results (sent, failed, skipped) are reported under `notifications`.
    """
    notifications = await submit_contact(body, channels)
    return ContactResponse(
        success=True,
        message=SUCCESS_MESSAGE,
        timestamp=utcnow(),
        notifications=notifications,
    )


@router.get("/test", response_model=ContactTestResponse)
def get_contact_test() -> ContactTestResponse:
    """Liveness probe for the contact form's client script."""
    return ContactTestResponse(timestamp=utcnow())
