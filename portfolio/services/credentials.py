"""Credential store: user record validation, lookups and uniqueness-checked writes."""

import logging
import re

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio.core.errors import ConflictError, NotFound, ValidationError
from portfolio.models.user import User

logger = logging.getLogger(__name__)

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 30
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_MAX_LEN = 255
# Word chars with single . or - separators on both sides of @, ending in a 2-3 char TLD.
# Each repetition starts with a separator so matching stays linear.
EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_username(username: str) -> str:
    """Return the trimmed username or raise ValidationError(field='username')."""
    value = username.strip()
    if not (USERNAME_MIN_LEN <= len(value) <= USERNAME_MAX_LEN):
        raise ValidationError(
            f"Username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters",
            field="username",
        )
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "Username can only contain letters, numbers, and underscores",
            field="username",
        )
    return value


def validate_email(email: str) -> str:
    """Return the normalized email or raise ValidationError(field='email')."""
    value = normalize_email(email)
    if len(value) > EMAIL_MAX_LEN or not EMAIL_PATTERN.match(value):
        raise ValidationError("Please enter a valid email", field="email")
    return value


def get_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def find_conflict(
    db: Session,
    username: str | None = None,
    email: str | None = None,
    exclude_id: str | None = None,
) -> str | None:
    """
    Return 'email' or 'username' if another account already holds the value, else None.

    Email takes precedence when both collide so the client highlights one field.
    """
    clauses = []
    if email is not None:
        clauses.append(User.email == normalize_email(email))
    if username is not None:
        clauses.append(User.username == username)
    if not clauses:
        return None
    query = db.query(User).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    existing = query.first()
    if existing is None:
        return None
    if email is not None and existing.email == normalize_email(email):
        return "email"
    return "username"


def _conflict_error(field: str) -> ConflictError:
    label = "Email" if field == "email" else "Username"
    return ConflictError(f"{label} already exists", field=field)


def create_user(db: Session, username: str, email: str, password_hash: str) -> User:
    """
    Insert a new user. Raises ConflictError naming the colliding field.

    The pre-check covers the common case; the unique indexes catch a concurrent duplicate.
    """
    field = find_conflict(db, username=username, email=email)
    if field:
        raise _conflict_error(field)
    user = User(username=username, email=normalize_email(email), password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        field = find_conflict(db, username=username, email=email) or "username"
        logger.info("Concurrent registration collided on %s", field)
        raise _conflict_error(field)
    db.refresh(user)
    return user


def rename_user(db: Session, user: User, username: str) -> None:
    """Change username after re-checking uniqueness against everyone but the owner."""
    if find_conflict(db, username=username, exclude_id=user.id):
        raise ConflictError("Username already taken", field="username")
    user.username = username
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Concurrent rename collided on username")
        raise ConflictError("Username already taken", field="username")


def set_role(db: Session, email: str, role: str) -> User:
    """Grant role to the account with this email. Raises NotFound for an unknown email."""
    user = get_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Role changed", extra={"user_id": user.id, "role": role})
    return user
