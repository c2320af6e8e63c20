"""Error taxonomy shared by services and the HTTP layer.

Every error carries a client-safe ``message`` and, where it helps the client
build a corrective UI, the offending ``field``. HTTP status codes live on the
classes so the exception handlers in ``portfolio.main`` stay generic.
"""


class AppError(Exception):
    """Base class for errors rendered as ``{"message", "field"?, "redirect"?}``."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        field: str | None = None,
        redirect: str | None = None,
    ) -> None:
        self.message = message
        self.field = field
        self.redirect = redirect
        super().__init__(message)

    def to_body(self) -> dict[str, str]:
        body = {"message": self.message}
        if self.field:
            body["field"] = self.field
        if self.redirect:
            body["redirect"] = self.redirect
        return body


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400


class ConflictError(AppError):
    """Username or email already taken."""

    status_code = 400


class InvalidCredentials(AppError):
    """Wrong email or password. Message is always generic on login."""

    status_code = 400


class NotFound(AppError):
    status_code = 404


class AccountLocked(AppError):
    """Login refused while lock_until is in the future."""

    status_code = 423


class Unauthenticated(AppError):
    """No token anywhere on the request."""

    status_code = 401


class Forbidden(AppError):
    """Token invalid, expired, revoked, or role insufficient."""

    status_code = 403


class RateLimited(AppError):
    status_code = 429


class ServerError(AppError):
    """Store, hashing or token infrastructure failure."""

    status_code = 500


class ConfigError(ServerError):
    """Required configuration (e.g. JWT signing secret) is missing."""


class TokenError(Exception):
    """Raised by token verification; mapped to Forbidden by the access layer."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ExpiredToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class MalformedToken(TokenError):
    pass
