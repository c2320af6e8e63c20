"""Per-request identity resolution: find a token, verify it, return who is calling."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from sqlalchemy.orm import Session

from portfolio.core.errors import Forbidden, TokenError, Unauthenticated
from portfolio.core.security import decode_access_token
from portfolio.models.session import AuthSession
from portfolio.schemas.auth import CurrentUser
from portfolio.services import credentials, sessions

if TYPE_CHECKING:
    from portfolio.core.config import Settings

logger = logging.getLogger(__name__)

TokenSource = Literal["session", "header", "cookie"]


@dataclass
class FoundToken:
    token: str
    source: TokenSource
    session: AuthSession | None = None


def bearer_token(authorization: str | None) -> str | None:
    """Extract the credential from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def find_token(
    db: Session,
    session_id: str | None,
    authorization: str | None,
    cookie_token: str | None,
    now: datetime | None = None,
) -> FoundToken | None:
    """
    Look for a token in fixed precedence order.

    1. the token stored in the server-side session named by the session cookie
    2. an Authorization: Bearer header
    3. a 'token' cookie
    The first source that yields a token wins; later sources are not consulted.
    """
    row = sessions.get_session(db, session_id, now=now)
    if row is not None:
        return FoundToken(token=row.token, source="session", session=row)
    header = bearer_token(authorization)
    if header:
        return FoundToken(token=header, source="header")
    if cookie_token:
        return FoundToken(token=cookie_token, source="cookie")
    return None


def authenticate(
    db: Session,
    settings: "Settings",
    found: FoundToken | None,
    now: datetime | None = None,
) -> CurrentUser:
    """
    Verify the located token and return the caller's identity.

    Raises Unauthenticated when no token was found and Forbidden when it is
    expired, tampered, malformed, or older than the account's token_version.
    Both carry the sign-in redirect hint.
    """
    redirect = settings.SIGNIN_REDIRECT
    if found is None:
        raise Unauthenticated("Access denied. No token provided.", redirect=redirect)
    try:
        claims = decode_access_token(found.token, settings, now=now)
    except TokenError as e:
        logger.info(
            "Token rejected",
            extra={"token_source": found.source, "reason": e.message},
        )
        raise Forbidden("Invalid or expired token.", redirect=redirect) from e

    user = credentials.get_by_id(db, claims["sub"])
    if user is None or int(claims.get("ver", 0)) != (user.token_version or 0):
        logger.info("Token revoked", extra={"token_source": found.source})
        raise Forbidden("Invalid or expired token.", redirect=redirect)
    # Username and role are read from the account row, not the token.
    return CurrentUser(id=user.id, username=user.username, email=user.email, role=user.role)


def check_role(identity: CurrentUser, role: str) -> CurrentUser:
    if identity.role != role:
        raise Forbidden(f"{role.capitalize()} access required")
    return identity
