"""Error taxonomy shared by the service layer and the HTTP boundary.

Every error carries the status code the API answers with and a short
message that is safe to show to clients.
"""


class AppError(Exception):
    """Base class for errors the API translates into a response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    message = "Invalid input"


class AuthError(AppError):
    status_code = 401
    message = "unauthorized"


class InvalidCredentialsError(AuthError):
    message = "invalid credentials"


class TokenError(AuthError):
    message = "invalid token"


class MalformedTokenError(TokenError):
    message = "malformed token"


class SignatureInvalidError(TokenError):
    message = "invalid token signature"


class ExpiredTokenError(TokenError):
    message = "token expired"


class ForbiddenError(AppError):
    status_code = 403
    message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class ConflictError(AppError):
    status_code = 409
    message = "Conflict"


class DuplicateEmailError(ConflictError):
    message = "Email already registered"


class AlreadyExistsError(ConflictError):
    message = "User already attends this event"


class InternalError(AppError):
    pass


class HashingError(InternalError):
    pass


class StoreTimeoutError(InternalError):
    message = "Database operation timed out"
