"""Error taxonomy shared by the store, the resolution engine and the API.

Each error carries the HTTP status the API layer renders it with, so
routers raise domain errors and never build responses for failures.
"""


class StorefrontError(Exception):
    """Base class for all expected application errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Missing or malformed client input."""

    status_code = 400


class NotFoundError(StorefrontError):
    status_code = 404


class InvalidTransitionError(StorefrontError):
    """A state change that the lifecycle does not allow."""

    status_code = 409


class DataIntegrityError(StorefrontError):
    """Stored data is inconsistent, e.g. a price type without its value."""

    status_code = 422


class TransientStorageError(StorefrontError):
    """The database is unreachable. Callers may retry."""

    status_code = 503


class UpstreamCatalogError(StorefrontError):
    """The external product catalog failed as a whole.

    ``transient`` is set for timeouts and transport failures.
    """

    status_code = 502

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient
        if transient:
            self.status_code = 504
