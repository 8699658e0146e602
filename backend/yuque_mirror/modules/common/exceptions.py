"""Domain exception classes for business logic errors."""


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    pass


class ResourceNotFoundError(DomainError):
    """Raised when a requested resource cannot be found."""

    pass


class ResourceExistsError(DomainError):
    """Raised when attempting to create a resource that already exists."""

    pass


class ValidationError(DomainError):
    """Raised when data validation fails."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when an action requires credentials that are missing or rejected."""

    pass


class BookNotFoundError(ResourceNotFoundError):
    """Raised when a book cannot be found in the metadata store."""

    pass


class DocumentNotFoundError(ResourceNotFoundError):
    """Raised when a document cannot be found in the metadata store."""

    pass


class SyncHistoryNotFoundError(ResourceNotFoundError):
    """Raised when a sync history entry cannot be found."""

    pass


class SyncAlreadyRunningError(ResourceExistsError):
    """Raised when a sync is requested while another one is still running."""

    pass


class SyncPreconditionError(ValidationError):
    """Raised when a sync cannot start, e.g. no books were requested."""

    pass


class NoInterruptedSessionError(ResourceNotFoundError):
    """Raised when a resume is requested but no interrupted session exists."""

    pass


class UpstreamError(DomainError):
    """Raised when an external service fails to answer a request."""

    pass
