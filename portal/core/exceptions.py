"""Custom exception classes for the customer portal."""


class PortalError(Exception):
    """Base exception for the customer portal.

    Every subclass carries the HTTP status it maps to and a stable ``code``
    so callers can branch on the type instead of the message text.
    """

    status_code: int = 400
    code: str = "portal_error"
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Raised when input fails a business-level validation."""
    code = "validation_error"
    default_message = "Validation error"


class InvalidCredentialsError(PortalError):
    """Raised for an unknown, inactive or wrong-password login.

    The message is identical in all three cases.
    """
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidTwoFactorCodeError(PortalError):
    """Raised when a login TOTP code does not verify."""
    code = "invalid_two_factor_code"
    default_message = "Invalid 2FA code"


class InvalidVerificationCodeError(PortalError):
    """Raised when the code confirming 2FA enrolment does not verify."""
    code = "invalid_verification_code"
    default_message = "Invalid verification code"


class UserAlreadyExistsError(PortalError):
    """Raised when registering an email that is already taken."""
    code = "user_already_exists"
    default_message = "User already exists"


class AuthenticationError(PortalError):
    """Raised when a request carries no valid session."""
    status_code = 401
    code = "unauthenticated"
    default_message = "Not authenticated"


class ResourceNotFoundError(PortalError):
    """Raised when a requested resource is not found."""
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class UserNotFoundError(ResourceNotFoundError):
    default_message = "User not found"


class ProjectNotFoundError(ResourceNotFoundError):
    default_message = "Project not found"


class StoredFileNotFoundError(ResourceNotFoundError):
    default_message = "File not found"


class StorageError(PortalError):
    """Raised when a MinIO/storage operation fails."""
    status_code = 500
    code = "storage_error"
    default_message = "Storage operation failed"
