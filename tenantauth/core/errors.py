"""Application error hierarchy. Every error carries a client message and an HTTP status."""

from fastapi import status


class AppError(Exception):
    """Base error recovered by the central exception handler."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class Unauthorized(AppError):
    """Missing, invalid or expired token, or no usable session for the token's user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication token missing"


class Forbidden(AppError):
    """Authenticated user lacks the required permission."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: Access Denied"


class InvalidCredentials(AppError):
    """Unknown email, missing hash, or wrong password. One message for all three."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Incorrect Email/Password"


class AccountInactive(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Your account is inactive"


class AccountLocked(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Your account is locked"


class MissingCredentials(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing credentials: expected federated token or email/password."


class InvalidFederatedToken(AppError):
    """Identity provider rejected the bearer token or returned no usable identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid federated identity token"


class IdentityProviderUnavailable(AppError):
    """Identity provider unreachable, timed out, or answered with an unexpected error."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Identity provider unavailable"


class InternalConfigurationError(AppError):
    """Data-integrity or deployment problem; operators need to act, not the client."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal configuration error"


class DefaultRoleMissing(InternalConfigurationError):
    default_message = "User has no default role assigned"


class NoActiveRolesConfigured(InternalConfigurationError):
    default_message = "No active roles found in the system"
