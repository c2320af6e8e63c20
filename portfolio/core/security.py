"""Password hashing and JWT creation/verification for authentication."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from portfolio.core.errors import (
    ConfigError,
    ExpiredToken,
    InvalidSignature,
    MalformedToken,
)

if TYPE_CHECKING:
    from portfolio.core.config import Settings

# Bcrypt cost (rounds); 12 keeps a hash in the tens-to-hundreds of milliseconds.
BCRYPT_ROUNDS = 12

# Claims every token must carry besides exp/iat.
REQUIRED_CLAIMS = ("sub", "username", "email", "role")


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _signing_secret(settings: "Settings") -> str:
    secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else ""
    if not secret or not secret.strip():
        raise ConfigError("JWT signing secret is not configured.")
    return secret


def create_access_token(
    claims: dict[str, Any],
    settings: "Settings",
    now: datetime | None = None,
) -> str:
    """
    Sign a token for claims {sub, username, email, role, ver}.

    exp is JWT_EXPIRE_HOURS after issuance. Raises ConfigError if JWT_SECRET is blank.
    """
    secret = _signing_secret(settings)
    issued = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(claims["sub"]),
        "username": claims["username"],
        "email": claims["email"],
        "role": claims["role"],
        "ver": int(claims.get("ver", 0)),
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(hours=settings.JWT_EXPIRE_HOURS)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(
    token: str,
    settings: "Settings",
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Verify signature and expiry; return the claims.

    Expiry is checked against ``now`` (defaults to the wall clock) so callers can
    simulate time. Raises ExpiredToken, InvalidSignature or MalformedToken.
    """
    secret = _signing_secret(settings)
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False, "require": ["exp"]},
        )
    except jwt.InvalidSignatureError as e:
        raise InvalidSignature("Token signature is invalid.") from e
    except jwt.PyJWTError as e:
        raise MalformedToken("Token could not be parsed.") from e

    if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
        raise MalformedToken("Token is missing required claims.")
    try:
        exp = int(payload["exp"])
    except (TypeError, ValueError) as e:
        raise MalformedToken("Token expiry is not a timestamp.") from e

    current = now or datetime.now(UTC)
    if current.timestamp() >= exp:
        raise ExpiredToken("Token has expired.")
    return payload
