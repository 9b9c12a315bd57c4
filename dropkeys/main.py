# main.py
import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .adapter import DropboxAdapter
from .auth import get_refresh_token
from .config import Settings, get_settings
from .dbox import DropboxClient
from .exceptions import StorageError


def setup_logging(settings: Settings):
    """Configures logging to console and, optionally, to a file."""
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Console output goes to stderr so `cat` output stays clean
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except IOError as e:
            # Log to console if file logging fails (e.g., permissions)
            root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("dropbox").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def init_dropbox_client(settings: Settings) -> Optional[DropboxClient]:
    """Initializes the Dropbox client, or returns None if that is impossible."""
    refresh_token = settings.refresh_token
    if not refresh_token:
        logging.critical(
            "No Dropbox refresh token found. Set DROPBOX_REFRESH_TOKEN or run `dropkeys auth`."
        )
        return None
    try:
        return DropboxClient(
            app_key=settings.DROPBOX_APP_KEY,
            app_secret=settings.DROPBOX_APP_SECRET,
            refresh_token=refresh_token,
        )
    except Exception as e:
        logging.error(f"Failed to connect to Dropbox. Error: {e}", exc_info=True)
        return None


def build_adapter(settings: Settings) -> Optional[DropboxAdapter]:
    client = init_dropbox_client(settings)
    if client is None:
        return None
    return DropboxAdapter(client, settings.DROPBOX_ROOT_DIR)


def cmd_ls(adapter: DropboxAdapter, args) -> int:
    for key in adapter.keys():
        print(key)
    return 0


def cmd_cat(adapter: DropboxAdapter, args) -> int:
    content = adapter.read(args.key)
    if content is False:
        logging.error(f"Key '{args.key}' does not exist.")
        return 1
    sys.stdout.buffer.write(content)
    sys.stdout.flush()
    return 0


def cmd_put(adapter: DropboxAdapter, args) -> int:
    try:
        content = Path(args.local_file).read_bytes()
    except OSError as e:
        logging.error(f"Cannot read local file '{args.local_file}': {e}")
        return 1
    size = adapter.write(args.key, content)
    logging.info(f"Wrote {size} bytes to '{args.key}'.")
    return 0


def cmd_rm(adapter: DropboxAdapter, args) -> int:
    if not adapter.delete(args.key):
        logging.error(f"Key '{args.key}' does not exist.")
        return 1
    return 0


def cmd_mv(adapter: DropboxAdapter, args) -> int:
    if not adapter.rename(args.source, args.target):
        logging.error(f"Key '{args.source}' does not exist.")
        return 1
    return 0


def cmd_stat(adapter: DropboxAdapter, args) -> int:
    if not adapter.exists(args.key):
        print(f"{args.key}: does not exist")
        return 1
    kind = "directory" if adapter.is_directory(args.key) else "file"
    mtime = adapter.mtime(args.key)
    modified = (
        datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
        if mtime is not False
        else "-"
    )
    print(f"{args.key}: {kind}, modified {modified}")
    return 0


def cmd_url(adapter: DropboxAdapter, args) -> int:
    url = adapter.url(args.key)
    if url is None:
        logging.error(f"Key '{args.key}' does not exist.")
        return 1
    print(url)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Key-addressed file storage on top of Dropbox."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth", help="Obtain and store a Dropbox refresh token.")
    subparsers.add_parser("ls", help="List all keys.").set_defaults(func=cmd_ls)

    cat = subparsers.add_parser("cat", help="Print the content of a key.")
    cat.add_argument("key")
    cat.set_defaults(func=cmd_cat)

    put = subparsers.add_parser("put", help="Upload a local file to a key.")
    put.add_argument("key")
    put.add_argument("local_file")
    put.set_defaults(func=cmd_put)

    rm = subparsers.add_parser("rm", help="Delete a key.")
    rm.add_argument("key")
    rm.set_defaults(func=cmd_rm)

    mv = subparsers.add_parser("mv", help="Rename a key.")
    mv.add_argument("source")
    mv.add_argument("target")
    mv.set_defaults(func=cmd_mv)

    stat = subparsers.add_parser("stat", help="Show whether a key exists, its type and mtime.")
    stat.add_argument("key")
    stat.set_defaults(func=cmd_stat)

    url = subparsers.add_parser("url", help="Print a shareable link for a key.")
    url.add_argument("key")
    url.set_defaults(func=cmd_url)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings)

    if args.command == "auth":
        token_file = settings.BASE_DIR / settings.TOKEN_STORAGE_FILE
        return 0 if get_refresh_token(settings.DROPBOX_APP_KEY, token_file) else 1

    adapter = build_adapter(settings)
    if adapter is None:
        return 1

    try:
        return args.func(adapter, args)
    except StorageError as e:
        logging.error(f"'{args.command}' failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
