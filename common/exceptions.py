"""Exception classes shared by the client, the store adapters and the server."""


class LiveDropError(Exception):
    """
    Base exception class for all LiveDrop errors.
    """
    pass


class InvalidArgument(LiveDropError):
    """
    Raised synchronously when a caller passes invalid input or calls an
    operation before its preconditions hold.
    """
    pass


class IdentityUnavailable(LiveDropError):
    """
    Raised when no identity could be established for the session.
    """
    pass


class InvalidToken(LiveDropError):
    """
    Raised by the identity service when a pre-provisioned token is rejected.
    """
    pass


class ServiceUnavailable(LiveDropError):
    """
    Raised by the identity service when it is unreachable or misconfigured.
    """
    pass


class WriteError(LiveDropError):
    """
    Raised when the metadata store rejects or fails a document write.
    """
    pass


class DocumentExistsError(LiveDropError):
    """
    Raised by the server when a document id is already taken.
    """
    pass


class SyncError(LiveDropError):
    """
    Reported when a live subscription fails.

    Attributes:
        retries_exhausted: True once the synchronizer has given up resubscribing
    """

    def __init__(self, message: str, retries_exhausted: bool = False):
        super().__init__(message)
        self.retries_exhausted = retries_exhausted
