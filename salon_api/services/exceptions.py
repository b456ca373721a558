class ServiceError(Exception):
    """Base exception for service layer failures."""

    status_code = 500

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(ServiceError):
    """Raised when a request is malformed or references unknown catalog data."""

    status_code = 400


class NotFoundError(ServiceError):
    """Raised when an entity id does not exist in its store."""

    status_code = 404

    def __init__(self, message: str = "not found", *, cause: Exception | None = None):
        super().__init__(message, cause=cause)


class ConflictError(ServiceError):
    """Raised when admission control rejects a booking."""

    status_code = 409


class InternalError(ServiceError):
    """Raised for unexpected failures such as image storage I/O."""

    status_code = 500
