# adapter.py
import posixpath
import tempfile
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Union

from .exceptions import FileNotFound, RemoteError
from .storage.base import Adapter, RemoteClient
from .storage.dto import Metadata


class DropboxAdapter(Adapter):
    """
    Maps the key-addressed Adapter contract onto a Dropbox-like RemoteClient.

    Provider "not found" failures become False/None results (or FileNotFound
    internally); every other RemoteError reaches the caller unchanged.
    Entries the provider reports as deleted are treated as absent.
    """

    # Scratch files for uploads stay in memory up to this size.
    SPOOL_MAX_SIZE = 4 * 1024 * 1024

    def __init__(self, client: RemoteClient, directory: Optional[str] = None):
        self.client = client
        self.directory = directory

    def read(self, key: str) -> Union[bytes, bool]:
        try:
            return self.client.get_file(self.compute_path(key))
        except RemoteError as e:
            if e.is_not_found:
                return False
            raise

    def is_directory(self, key: str) -> bool:
        try:
            metadata = self._get_metadata(key)
        except FileNotFound:
            return False

        return bool(metadata.is_dir)

    def write(self, key: str, content: bytes) -> int:
        """
        Uploads `content` from a spooled scratch file, since the client
        consumes a readable stream. The scratch file is closed before
        any upload error propagates.
        """
        with tempfile.SpooledTemporaryFile(max_size=self.SPOOL_MAX_SIZE) as resource:
            resource.write(content)
            resource.seek(0)
            self.client.put_file(self.compute_path(key), resource)

        return len(content)

    def delete(self, key: str) -> bool:
        try:
            self.client.delete(self.compute_path(key))
        except RemoteError as e:
            if e.is_not_found:
                return False
            raise

        return True

    def rename(self, source_key: str, target_key: str) -> bool:
        try:
            self.client.move(
                self.compute_path(source_key), self.compute_path(target_key)
            )
        except RemoteError as e:
            if e.is_not_found:
                return False
            raise

        return True

    def mtime(self, key: str) -> Union[int, bool]:
        try:
            metadata = self._get_metadata(key)
        except FileNotFound:
            return False

        if not metadata.modified:
            # Folders carry no modification time.
            return False
        try:
            modified = parsedate_to_datetime(metadata.modified)
        except (TypeError, ValueError):
            return False
        if modified.tzinfo is None:
            # "-0000" means UTC with no zone information.
            modified = modified.replace(tzinfo=timezone.utc)
        return int(modified.timestamp())

    def keys(self) -> List[str]:
        metadata = self.client.get_metadata("/", list_contents=True)
        if metadata.contents is None:
            return []

        keys = set()
        for entry in metadata.contents:
            if entry.is_deleted:
                continue
            file = entry.path.lstrip("/")
            if not file:
                continue
            keys.add(file)
            parent = posixpath.dirname(file)
            if parent:
                keys.add(parent)

        return sorted(keys)

    def exists(self, key: str) -> bool:
        try:
            self._get_metadata(key)
            return True
        except FileNotFound:
            return False

    def url(self, key: str) -> Optional[str]:
        # Existence check and share are two round trips; the path may
        # disappear in between, in which case the share error propagates.
        if not self.exists(key):
            return None

        return self.client.share(self.compute_path(key)).url

    def _get_metadata(self, key: str) -> Metadata:
        path = self.compute_path(key)
        try:
            metadata = self.client.get_metadata(path, list_contents=True)
        except RemoteError as e:
            if e.is_not_found:
                raise FileNotFound(path) from e
            raise

        if metadata.is_deleted:
            raise FileNotFound(path)

        return metadata

    def compute_path(self, key: str) -> str:
        """Resolves a key against the root directory. No traversal checks."""
        return f"{self.directory or ''}/{key.lstrip('/')}"
