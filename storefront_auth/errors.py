from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    INVALID_IDENTIFIER = "invalid_identifier"
    DISPATCH_FAILURE = "dispatch_failure"
    RESEND_COOLDOWN = "resend_cooldown"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    CODE_MISMATCH = "code_mismatch"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    VERIFICATION_REQUIRED = "verification_required"
    ACCOUNT_NOT_FOUND = "account_not_found"
    SESSION_CREATION_FAILURE = "session_creation_failure"
    NOT_AUTHENTICATED = "not_authenticated"


class AuthError(Exception):
    """Base for every failure the auth flow reports back to its caller.

    Subclasses carry the taxonomy ``kind`` and the HTTP status the API
    boundary answers with; ``str(exc)`` is the user-facing message.
    """

    kind: ErrorKind
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidIdentifier(AuthError):
    kind = ErrorKind.INVALID_IDENTIFIER
    default_message = "Enter a valid phone number or email address"


class DispatchFailure(AuthError):
    kind = ErrorKind.DISPATCH_FAILURE
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to send OTP"


class ResendCooldown(AuthError):
    kind = ErrorKind.RESEND_COOLDOWN
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Please wait before requesting a new OTP"

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Please wait {retry_after_seconds} second(s) before requesting a new OTP"
        )


class NotFoundOrExpired(AuthError):
    kind = ErrorKind.NOT_FOUND_OR_EXPIRED
    default_message = "OTP not found or expired. Please request a new one."


class CodeMismatch(AuthError):
    kind = ErrorKind.CODE_MISMATCH
    default_message = "Invalid OTP. Please check and try again."


class TooManyAttempts(AuthError):
    kind = ErrorKind.TOO_MANY_ATTEMPTS
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many incorrect attempts. Please request a new OTP."


class VerificationRequired(AuthError):
    kind = ErrorKind.VERIFICATION_REQUIRED
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Verify the OTP sent to this identifier before signing in"


class AccountNotFound(AuthError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No account found. Please sign up first."


class SessionCreationFailure(AuthError):
    kind = ErrorKind.SESSION_CREATION_FAILURE
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to create session"


class NotAuthenticated(AuthError):
    kind = ErrorKind.NOT_AUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"
