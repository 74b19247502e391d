class UsmError(Exception):
    """Base service management exception."""


class BackendError(UsmError):
    """Raised when the hosted backend rejected an operation."""


class AuthenticationError(BackendError):
    """Raised when sign-in was rejected."""


class InvalidTokenError(AuthenticationError):
    """Raised when a custom session token cannot be verified."""


class SubscriptionError(BackendError):
    """Raised when the snapshot channel failed."""


class AppendError(BackendError):
    """Raised when a document could not be appended."""
