# exceptions.py
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT = "transport"
    REMOTE_REJECTED = "remote_rejected"
    ALREADY_EXISTS = "already_exists"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    DELETE_FAILED = "delete_failed"
    CREATE_DIRECTORY_FAILED = "create_directory_failed"
    METADATA_UNAVAILABLE = "metadata_unavailable"
    URL_GENERATION_FAILED = "url_generation_failed"
    LISTING_FAILED = "listing_failed"
    COPY_FAILED = "copy_failed"
    MOVE_FAILED = "move_failed"


class StorageError(Exception):
    """
    Base class for every storage error.
    Carries the offending path and the underlying cause for diagnostics.
    """

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        path: str,
        message: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.path = path
        self.cause = cause
        self.message = message or (str(cause) if cause else "")
        text = f"{self.message} (path: '{path}')" if self.message else f"path: '{path}'"
        super().__init__(text)


class PermanentError(StorageError):
    """An error that will not be fixed by a retry (e.g., a missing file)."""
    pass


class TransientError(StorageError):
    """A temporary error (e.g., a network failure) that might resolve on a retry."""
    pass


# --- Client errors ---


class NotFoundError(PermanentError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(PermanentError):
    kind = ErrorKind.UNAUTHORIZED


class RemoteRejectedError(PermanentError):
    """The backend understood the request but refused it (quota, invalid name, ...)."""

    kind = ErrorKind.REMOTE_REJECTED


class AlreadyExistsError(PermanentError):
    kind = ErrorKind.ALREADY_EXISTS


class UnsupportedOperationError(PermanentError):
    kind = ErrorKind.UNSUPPORTED_OPERATION


class TransportError(TransientError):
    """Network failure or timeout talking to the backend."""

    kind = ErrorKind.TRANSPORT


class StreamInterruptedError(TransportError, OSError):
    """
    A download stream failed mid-read. Also an OSError, so generic io
    consumers see it as a read failure instead of end of file.
    """
    pass


# --- Adapter errors ---


class FilesystemError(StorageError):
    """Raised by the adapter; `cause` holds the client error that triggered it."""

    @property
    def is_transient(self) -> bool:
        return isinstance(self.cause, TransientError)


class ReadFailedError(FilesystemError):
    kind = ErrorKind.READ_FAILED


class WriteFailedError(FilesystemError):
    kind = ErrorKind.WRITE_FAILED


class DeleteFailedError(FilesystemError):
    kind = ErrorKind.DELETE_FAILED


class CreateDirectoryFailedError(FilesystemError):
    kind = ErrorKind.CREATE_DIRECTORY_FAILED


class MetadataUnavailableError(FilesystemError):
    kind = ErrorKind.METADATA_UNAVAILABLE


class UrlGenerationFailedError(FilesystemError):
    kind = ErrorKind.URL_GENERATION_FAILED


class ListingFailedError(FilesystemError):
    kind = ErrorKind.LISTING_FAILED


class CopyFailedError(FilesystemError):
    kind = ErrorKind.COPY_FAILED

    def __init__(self, source: str, destination: str, message: str = "", cause=None):
        self.destination = destination
        super().__init__(source, message or f"Could not copy to '{destination}'", cause)


class MoveFailedError(FilesystemError):
    kind = ErrorKind.MOVE_FAILED

    def __init__(self, source: str, destination: str, message: str = "", cause=None):
        self.destination = destination
        super().__init__(source, message or f"Could not move to '{destination}'", cause)
