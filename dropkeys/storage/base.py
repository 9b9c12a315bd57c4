# storage/base.py
from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional, Union
from .dto import Metadata, SharedLink


class RemoteClient(ABC):
    """
    Abstract base class for a remote storage provider client.
    Implementations own authentication and transport, and must raise
    RemoteError tagged with an ErrorKind for every provider failure.
    """

    @abstractmethod
    def get_file(self, path: str) -> bytes:
        """
        Fetches the raw content of a file.

        :param path: The absolute remote path.
        :return: The file content.
        """
        pass

    @abstractmethod
    def put_file(self, path: str, stream: BinaryIO):
        """
        Uploads content read from a stream, overwriting any existing file.

        :param path: The absolute remote path.
        :param stream: A readable binary stream positioned at its start.
        """
        pass

    @abstractmethod
    def get_metadata(self, path: str, list_contents: bool = False) -> Metadata:
        """
        Fetches metadata for a path.

        :param path: The absolute remote path.
        :param list_contents: Also fill `contents` with a recursive listing
            when the path is a directory.
        """
        pass

    @abstractmethod
    def delete(self, path: str):
        """Removes a file or folder."""
        pass

    @abstractmethod
    def move(self, from_path: str, to_path: str):
        """Moves (renames) a file or folder."""
        pass

    @abstractmethod
    def share(self, path: str) -> SharedLink:
        """Returns a shareable link for the path."""
        pass


class Adapter(ABC):
    """
    Key-addressed storage contract.
    Keys are relative to whatever root the implementation is configured with.
    """

    @abstractmethod
    def read(self, key: str) -> Union[bytes, bool]:
        """
        Reads the content of the file.

        :return: The content, or False when the file does not exist.
        """
        pass

    @abstractmethod
    def write(self, key: str, content: bytes) -> int:
        """
        Writes the given content into the file.

        :return: The number of bytes written.
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Returns a sorted list of all keys, directories included."""
        pass

    @abstractmethod
    def mtime(self, key: str) -> Union[int, bool]:
        """
        Returns the last modified time as a UNIX timestamp,
        or False when the file does not exist.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def rename(self, source_key: str, target_key: str) -> bool:
        pass

    @abstractmethod
    def is_directory(self, key: str) -> bool:
        pass

    def url(self, key: str) -> Optional[str]:
        """Returns a public URL for the key, or None if none can be made."""
        return None
