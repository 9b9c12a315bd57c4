# dbox.py
import dropbox
from dropbox.files import (
    WriteMode,
    CommitInfo,
    DeletedMetadata,
    FileMetadata as DropboxFileMetadata,
    FolderMetadata as DropboxFolderMetadata,
)
from dropbox.exceptions import ApiError, AuthError, DropboxException
from dropbox.sharing import CreateSharedLinkWithSettingsError
from datetime import datetime, timezone
from email.utils import format_datetime
import logging
import os
from typing import BinaryIO, Optional

from .config import get_settings
from .exceptions import ErrorKind, RemoteError
from .storage.base import RemoteClient
from .storage.dto import Metadata, SharedLink

# Union tags under which Dropbox nests the lookup/write error for a path.
_NESTED_ERROR_TAGS = ("path", "path_lookup", "from_lookup", "path_write", "to")


def _has_tag(error, tag: str) -> bool:
    check = getattr(error, f"is_{tag}", None)
    return callable(check) and check()


def classify_error(exc: DropboxException) -> ErrorKind:
    """Maps a Dropbox SDK exception onto an ErrorKind."""
    if isinstance(exc, AuthError):
        return ErrorKind.AUTH
    if not isinstance(exc, ApiError) or exc.error is None:
        return ErrorKind.OTHER

    error = exc.error
    for tag in _NESTED_ERROR_TAGS:
        if _has_tag(error, tag):
            error = getattr(error, f"get_{tag}")()
            break
    # UploadWriteFailed wraps the WriteError in `reason`
    error = getattr(error, "reason", error)

    if _has_tag(error, "not_found"):
        return ErrorKind.NOT_FOUND
    if _has_tag(error, "insufficient_space"):
        return ErrorKind.OVER_QUOTA
    if _has_tag(error, "no_write_permission") or _has_tag(error, "restricted_content"):
        return ErrorKind.FORBIDDEN
    return ErrorKind.OTHER


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Formats an SDK datetime (naive, UTC) as an RFC 2822 string."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value)


def to_metadata(entry) -> Metadata:
    """Converts a Dropbox metadata entry into our Metadata DTO."""
    path = entry.path_display or entry.path_lower or ""
    if isinstance(entry, DeletedMetadata):
        return Metadata(path=path, is_deleted=True)
    if isinstance(entry, DropboxFolderMetadata):
        return Metadata(path=path, is_dir=True)
    if isinstance(entry, DropboxFileMetadata):
        return Metadata(
            path=path,
            modified=_format_timestamp(entry.server_modified),
            size=entry.size or 0,
            rev=entry.rev,
        )
    return Metadata(path=path)


class DropboxClient(RemoteClient):
    """
    Client for interacting with the Dropbox API, implementing the RemoteClient interface.
    Every SDK failure is re-raised as a RemoteError tagged with its ErrorKind.
    """

    def __init__(self, app_key, app_secret, refresh_token):
        try:
            self.dbx = dropbox.Dropbox(
                app_key=app_key,
                app_secret=app_secret,
                oauth2_refresh_token=refresh_token,
            )
            # Verify successful authentication by requesting current user info
            self.dbx.users_get_current_account()
            logging.info("Dropbox client initialized successfully.")
        except Exception as e:
            logging.error(
                f"Failed to initialize Dropbox client. Check your credentials. Error: {e}"
            )
            raise

    @staticmethod
    def _sdk_path(path: str) -> str:
        """The SDK addresses the root as "" and rejects trailing slashes."""
        path = path.rstrip("/")
        if path and not path.startswith("/"):
            path = "/" + path
        return path

    @staticmethod
    def _failure(message: str, path: str, e: DropboxException) -> RemoteError:
        error = RemoteError(classify_error(e), path, str(e))
        if error.is_not_found:
            logging.info(f"{message} '{path}': not found.")
        else:
            logging.error(f"{message} '{path}': {e}")
        return error

    def get_file(self, path: str) -> bytes:
        """Downloads a file from Dropbox into memory."""
        path = self._sdk_path(path)
        try:
            logging.info(f"Downloading {path}...")
            _, response = self.dbx.files_download(path)
            return response.content
        except DropboxException as e:
            raise self._failure("Failed to download file", path, e) from e

    def put_file(self, path: str, stream: BinaryIO):
        """Uploads a stream to Dropbox using chunked uploading for large payloads."""
        settings = get_settings()
        chunk_size = settings.DROPBOX_UPLOAD_CHUNK_SIZE
        path = self._sdk_path(path)

        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        try:
            if size < chunk_size:
                # If payload is smaller than chunk size, use a single upload
                logging.info(f"Uploading {size} bytes to {path} (single upload)...")
                self.dbx.files_upload(stream.read(), path, mode=WriteMode("overwrite"))
                return

            # Use chunked upload for larger payloads
            logging.info(f"Starting chunked upload of {size} bytes to {path}...")
            upload_session_start_result = self.dbx.files_upload_session_start(
                stream.read(chunk_size)
            )
            cursor = dropbox.files.UploadSessionCursor(
                session_id=upload_session_start_result.session_id,
                offset=stream.tell(),
            )
            commit_info = CommitInfo(path=path, mode=WriteMode("overwrite"))

            while True:
                next_chunk = stream.read(chunk_size)
                if (size - stream.tell()) <= 0:
                    # Last chunk
                    logging.info(f"Uploading final chunk for {path}...")
                    self.dbx.files_upload_session_finish(next_chunk, cursor, commit_info)
                    break
                logging.info(f"Uploading chunk for {path} (offset: {cursor.offset})...")
                self.dbx.files_upload_session_append_v2(next_chunk, cursor)
                cursor.offset = stream.tell()
            logging.info(f"Chunked upload completed for {path}.")
        except DropboxException as e:
            raise self._failure("Failed to upload file to", path, e) from e

    def get_metadata(self, path: str, list_contents: bool = False) -> Metadata:
        """
        Fetches metadata, deleted entries included so callers can see the flag.
        With `list_contents`, folders get a recursive listing of their children.
        """
        path = self._sdk_path(path)
        try:
            if path == "":
                # The root has no metadata record of its own.
                metadata = Metadata(path="/", is_dir=True)
            else:
                metadata = to_metadata(
                    self.dbx.files_get_metadata(path, include_deleted=True)
                )

            if list_contents and metadata.is_dir:
                metadata.contents = [
                    to_metadata(entry) for entry in self._list_folder(path)
                ]
            return metadata
        except DropboxException as e:
            raise self._failure("Failed to get metadata for", path, e) from e

    def _list_folder(self, path: str) -> list:
        """Returns every entry under `path`, handling pagination automatically."""
        logging.info(f"Listing Dropbox path: '{path}'")
        result = self.dbx.files_list_folder(path, recursive=True, include_deleted=True)
        all_entries = list(result.entries)
        while result.has_more:
            logging.info("Found more entries, continuing listing...")
            result = self.dbx.files_list_folder_continue(result.cursor)
            all_entries.extend(result.entries)
        return all_entries

    def delete(self, path: str):
        """Deletes a file or folder in Dropbox."""
        path = self._sdk_path(path)
        try:
            logging.info(f"Deleting {path}...")
            self.dbx.files_delete_v2(path)
        except DropboxException as e:
            raise self._failure("Failed to delete path", path, e) from e

    def move(self, from_path: str, to_path: str):
        """Moves a file or folder within Dropbox."""
        from_path = self._sdk_path(from_path)
        to_path = self._sdk_path(to_path)
        try:
            logging.info(f"Moving {from_path} to {to_path}...")
            self.dbx.files_move_v2(from_path, to_path)
        except DropboxException as e:
            raise self._failure(f"Failed to move to '{to_path}' from", from_path, e) from e

    def share(self, path: str) -> SharedLink:
        """Creates a shared link, reusing the existing one if Dropbox already has it."""
        path = self._sdk_path(path)
        try:
            logging.info(f"Creating shared link for {path}...")
            try:
                link = self.dbx.sharing_create_shared_link_with_settings(path)
            except ApiError as e:
                if not (
                    isinstance(e.error, CreateSharedLinkWithSettingsError)
                    and e.error.is_shared_link_already_exists()
                ):
                    raise
                logging.info(f"Shared link for {path} already exists, reusing it.")
                links = self.dbx.sharing_list_shared_links(
                    path=path, direct_only=True
                ).links
                if not links:
                    raise
                link = links[0]
            return SharedLink(url=link.url, expires=_format_timestamp(link.expires))
        except DropboxException as e:
            raise self._failure("Failed to share", path, e) from e
