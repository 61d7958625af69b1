"""Custom exceptions for the admission engine."""


class AdmissionException(Exception):
    """Base class for admission exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Admission error"):
        self.message = message
        super().__init__(message)


class MissingIdentityError(AdmissionException):
    """Raised by the host gate when the request carries no identity key.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, header: str = "X-Access-Token"):
        self.header = header
        super().__init__("Access token is missing.")


class StorageUnavailableError(AdmissionException):
    """Raised when the storage backend cannot be read or written.

    Never retried internally; the host decides whether to fail open or closed.
    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503

    def __init__(self, operation: str, key: str | None = None, detail: str | None = None):
        self.operation = operation
        self.key = key
        message = detail or f"Rate limit storage unavailable during {operation}"
        super().__init__(message)


class InvalidRuleConfigError(AdmissionException, ValueError):
    """Raised when a rule or delegator is constructed with unusable settings."""
    status_code = 500
