"""
Error Handling Module

Defines domain exceptions for the share store, the blob store and the
cleanup engine. Domain exceptions are pure and have no external dependencies;
infrastructure adapters wrap library errors into them.
"""


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions are pure and have no external dependencies.
    They can optionally wrap original errors for context.
    """

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class StorageUnavailableError(DomainError):
    """
    Raised when a backing store (document store, checkpoint store) cannot be reached.

    This is an infrastructure failure. The cleanup engine lets it propagate so
    the invoker can report the run as failed and retry on the next tick.
    """
    pass


class CheckpointConflictError(DomainError):
    """
    Raised when a conditional checkpoint write finds that another run
    updated the checkpoint after this run read it.
    """
    pass


class ShareNotFoundError(DomainError):
    """Raised when a share record does not exist for the given owner."""
    pass


class InvalidShareError(DomainError):
    """
    Raised when share attributes violate the share invariants.

    Examples: expiry not after creation, empty blob path,
    expiration hours out of range.
    """
    pass


class BlobStorageError(DomainError):
    """Raised when a blob operation fails for a reason other than a missing blob."""
    pass
