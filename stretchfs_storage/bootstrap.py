# bootstrap.py
import logging
from typing import Optional

from .adapter import StretchFSAdapter
from .config import Settings, get_settings
from .stretchfs import StretchFSClient


def setup_logging(settings: Optional[Settings] = None):
    """Configures logging to console and, if LOG_FILE is set, to a file."""
    settings = settings or get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.LOG_LEVEL)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            # Log to console if file logging fails (e.g., permissions)
            root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def initialize_storage_adapter(settings: Optional[Settings] = None) -> StretchFSAdapter:
    """
    Builds the StretchFS client and wraps it in the filesystem adapter.
    No request is made here; credentials are first checked by the backend on
    the first call.
    """
    settings = settings or get_settings()
    client = StretchFSClient(settings.storage_config())
    logging.info("Using StretchFS storage provider.")
    return StretchFSAdapter(
        client, detail_cache_ttl=settings.STRETCHFS_DETAIL_CACHE_TTL
    )
