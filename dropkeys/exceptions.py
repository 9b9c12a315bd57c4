# exceptions.py
import enum
from typing import Optional


class StorageError(Exception):
    """Base class for every error raised by dropkeys."""
    pass


class FileNotFound(StorageError):
    """The requested path does not exist (or is marked as deleted)."""

    def __init__(self, path: str):
        super().__init__(f"The file '{path}' was not found.")
        self.path = path


class ErrorKind(enum.Enum):
    """Provider failure categories, tagged at the remote client boundary."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    OVER_QUOTA = "over_quota"
    AUTH = "auth"
    OTHER = "other"


class RemoteError(StorageError):
    """
    A failure reported by the remote storage provider.
    Only NOT_FOUND gets special treatment from the adapter; every other kind
    is propagated to the caller as is.
    """

    def __init__(self, kind: ErrorKind, path: Optional[str] = None, message: str = ""):
        super().__init__(message or f"{kind.value} error for path '{path}'")
        self.kind = kind
        self.path = path

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND
