
class GatewayError(RuntimeError):
    """Base class for errors the HTTP layer maps onto a status code."""
    status_code: int = 500


class ValidationError(GatewayError):
    """Raised when input fields are malformed. Checked before touching storage."""
    status_code = 400


class InvalidKeyError(GatewayError):
    """Raised when a presented API key is unknown or inactive."""
    status_code = 401


class PermissionDeniedError(GatewayError):
    """Raised when a contractor is not allowed to act (unknown or not active)."""
    status_code = 403


class NotFoundError(GatewayError):
    """Raised when a referenced booking or key does not exist."""
    status_code = 404


class ConflictError(GatewayError):
    """Raised when a state transition precondition no longer holds."""
    status_code = 409


class StorageError(GatewayError):
    """Raised when the backing store is unavailable or its data is unreadable."""
    status_code = 500
