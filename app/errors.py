"""Account error taxonomy.

Services raise these; ``main.py`` turns them into the ``{success, message}``
envelope with the matching HTTP status.
"""


class AccountError(Exception):
    """Base class for failures surfaced to the client."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequest(AccountError):
    status_code = 400
    default_message = "All input fields are required"


class ValidationFailed(AccountError):
    status_code = 400
    default_message = "Validation failed"


class Unauthorized(AccountError):
    status_code = 401
    default_message = "Not authenticated"


class NotFound(AccountError):
    status_code = 404
    default_message = "User not found"


class Conflict(AccountError):
    status_code = 409
    default_message = "Email already exists"


class InvalidOrExpiredToken(AccountError):
    status_code = 400
    default_message = "Token is invalid or expired. Please try again later."


class UploadFailed(AccountError):
    status_code = 500
    default_message = "File upload failed, please try again"


class MailFailed(AccountError):
    status_code = 500
    default_message = "Failed to send reset email. Please try again."
