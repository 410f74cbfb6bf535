"""Error taxonomy for the Clarity API.

Every error carries the HTTP status it maps to, so the exception handlers in
``clarity.main`` can render it without knowing the concrete class.
"""

from http import HTTPStatus


class ClarityError(Exception):
    """Base class for errors that are reported to the client as JSON."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None, errors: list[str] | None = None) -> None:
        """Initialize the error with a human-readable message and optional status override."""
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors

    def to_dict(self) -> dict:
        """Return the JSON body for this error."""
        body: dict = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ClarityError):
    """Missing or malformed caller input."""

    status_code = HTTPStatus.BAD_REQUEST


class EmptyInputError(ValidationError):
    """Free-text input was empty after trimming."""


class InvalidAmountError(ValidationError):
    """An amount could not be read as a usable number."""


class WeakPasswordError(ValidationError):
    """The password does not satisfy the password policy."""

    def __init__(self, errors: list[str]) -> None:
        """Initialize with every unmet password rule."""
        super().__init__("Password validation failed", errors=errors)


class DuplicateEmailError(ValidationError):
    """The email address is already registered."""

    def __init__(self) -> None:
        """Initialize with the fixed duplicate-email message."""
        super().__init__("Email is already registered")


class AuthError(ClarityError):
    """Missing, invalid or expired credentials."""

    status_code = HTTPStatus.UNAUTHORIZED


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; both cases read the same."""

    def __init__(self) -> None:
        """Initialize with the fixed invalid-credentials message."""
        super().__init__("Invalid credentials")


class NotFoundError(ClarityError):
    """Missing resource, or one owned by another user."""

    status_code = HTTPStatus.NOT_FOUND


class UpstreamError(ClarityError):
    """The external language model failed; the upstream status is passed through when known."""

    status_code = HTTPStatus.BAD_GATEWAY


class UpstreamUnavailableError(UpstreamError):
    """The external language model is not configured."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE


class MalformedResponseError(UpstreamError):
    """The external language model replied with content that is not a JSON object."""

    status_code = HTTPStatus.BAD_GATEWAY


class InternalError(ClarityError):
    """Unexpected failure, usually in the persistence layer."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
