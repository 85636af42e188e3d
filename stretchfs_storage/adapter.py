# adapter.py
import logging
import time
from datetime import datetime
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Tuple

from .exceptions import (
    CopyFailedError,
    CreateDirectoryFailedError,
    DeleteFailedError,
    ListingFailedError,
    MetadataUnavailableError,
    MoveFailedError,
    ReadFailedError,
    StorageError,
    UnsupportedOperationError,
    UrlGenerationFailedError,
    WriteFailedError,
)
from .storage import paths
from .storage.base import FilesystemAdapter, StorageClient
from .storage.dto import FileDetail, ListingEntry, StorageAttributes, Visibility

DETAIL_CACHE_SIZE = 1024


class StretchFSAdapter(FilesystemAdapter):
    """
    Exposes a StorageClient through the capability-based FilesystemAdapter
    interface. Client errors are re-raised as path-qualified adapter errors;
    only `exists` and `is_directory` collapse failures into False.

    Mime types: the backend-reported value wins. Only when the backend reports
    none is the type guessed from the file extension.
    """

    def __init__(
        self,
        client: StorageClient,
        detail_cache_ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        detail_cache_size: int = DETAIL_CACHE_SIZE,
    ):
        self.client = client
        self.detail_cache_ttl = detail_cache_ttl
        self.detail_cache_size = detail_cache_size
        self._clock = clock
        self._detail_cache: Dict[str, Tuple[float, FileDetail]] = {}

    # --- Detail cache ---

    def _detail(self, path: str) -> FileDetail:
        if self.detail_cache_ttl <= 0:
            return self.client.detail(path)

        key = paths.normalize(path)
        cached = self._detail_cache.get(key)
        if cached and cached[0] > self._clock():
            return cached[1]

        detail = self.client.detail(path)
        self._remember(key, detail)
        return detail

    def _remember(self, key: str, detail: FileDetail):
        now = self._clock()
        for cached_path, (expires_at, _) in list(self._detail_cache.items()):
            if expires_at <= now:
                del self._detail_cache[cached_path]
        self._detail_cache.pop(key, None)
        # Entries are kept in insertion order, so the first one expires first.
        while self._detail_cache and len(self._detail_cache) >= self.detail_cache_size:
            del self._detail_cache[next(iter(self._detail_cache))]
        self._detail_cache[key] = (now + self.detail_cache_ttl, detail)

    def _invalidate(self, path: str, subtree: bool = False):
        if not self._detail_cache:
            return
        key = paths.normalize(path)
        if subtree:
            for cached_path in list(self._detail_cache):
                if paths.is_within(cached_path, key):
                    self._detail_cache.pop(cached_path, None)
        else:
            self._detail_cache.pop(key, None)

    # --- Existence ---

    def try_detail(self, path: str) -> Tuple[Optional[FileDetail], Optional[StorageError]]:
        """
        Precise variant of `exists`: returns (detail, None) on success and
        (None, error) on failure, so callers can tell a missing file apart
        from a transient backend error via `error.kind`.
        """
        try:
            return self._detail(path), None
        except StorageError as e:
            return None, e

    def exists(self, path: str) -> bool:
        """
        True iff a detail lookup succeeds. Any failure, transport errors
        included, reads as "does not exist"; use `try_detail` to distinguish.
        """
        detail, error = self.try_detail(path)
        if error is not None:
            logging.debug(f"Treating '{path}' as missing: {error}")
        return detail is not None

    def is_directory(self, path: str) -> bool:
        detail, _ = self.try_detail(path)
        return bool(detail and detail.is_folder)

    # --- Writing ---

    def write(self, path: str, contents: bytes):
        try:
            self.client.upload_from_bytes(path, contents)
        except StorageError as e:
            raise WriteFailedError(path, str(e), e) from e
        finally:
            self._invalidate(path)

    def write_stream(self, path: str, stream: BinaryIO):
        """
        Hands `stream` over to the client, which uploads it without buffering
        the whole file and closes it whatever the outcome.
        """
        if not callable(getattr(stream, "read", None)):
            close = getattr(stream, "close", None)
            if callable(close):
                close()
            raise WriteFailedError(path, "The provided resource is not valid.")
        try:
            self.client.upload_from_stream(path, stream)
        except StorageError as e:
            raise WriteFailedError(path, str(e), e) from e
        finally:
            self._invalidate(path)

    # --- Reading ---

    def read(self, path: str) -> bytes:
        try:
            return self.client.download(path)
        except StorageError as e:
            raise ReadFailedError(path, str(e), e) from e

    def read_stream(self, path: str) -> BinaryIO:
        """The caller owns the returned stream and must close it."""
        try:
            return self.client.download_stream(path)
        except StorageError as e:
            raise ReadFailedError(path, str(e), e) from e

    # --- Deleting and folders ---

    def delete(self, path: str):
        try:
            self.client.delete_file(path)
        except StorageError as e:
            raise DeleteFailedError(path, str(e), e) from e
        finally:
            self._invalidate(path)

    def delete_directory(self, path: str):
        try:
            self.client.delete_folder(path)
        except StorageError as e:
            raise DeleteFailedError(path, str(e), e) from e
        finally:
            self._invalidate(path, subtree=True)

    def create_directory(self, path: str):
        try:
            self.client.create_folder(path)
        except StorageError as e:
            raise CreateDirectoryFailedError(path, str(e), e) from e
        finally:
            self._invalidate(path)

    # --- Visibility ---

    def set_visibility(self, path: str, visibility: Visibility):
        raise UnsupportedOperationError(path, "Adapter does not support visibility controls.")

    def visibility(self, path: str) -> StorageAttributes:
        # StretchFS has no visibility concept to report.
        return StorageAttributes(path=path, visibility=Visibility.UNKNOWN)

    # --- Metadata ---

    @staticmethod
    def _to_attributes(item, path: str) -> StorageAttributes:
        if item.is_folder:
            return StorageAttributes(
                path=path,
                type="dir",
                size=0,
                last_modified=item.updated_at,
            )
        return StorageAttributes(
            path=path,
            type="file",
            size=item.size,
            mime_type=item.mime_type or paths.guess_mime_type(path),
            last_modified=item.updated_at,
        )

    def metadata(self, path: str) -> StorageAttributes:
        try:
            detail = self._detail(path)
        except StorageError as e:
            raise MetadataUnavailableError(path, str(e), e) from e
        return self._to_attributes(detail, path)

    def mime_type(self, path: str) -> str:
        attributes = self.metadata(path)
        if attributes.mime_type is None:
            raise MetadataUnavailableError(path, "Folders have no mime type")
        return attributes.mime_type

    def last_modified(self, path: str) -> datetime:
        attributes = self.metadata(path)
        if attributes.last_modified is None:
            raise MetadataUnavailableError(path, "Backend reported no modification time")
        return attributes.last_modified

    def file_size(self, path: str) -> int:
        return self.metadata(path).size

    # --- Listing ---

    def list_contents(self, path: str, deep: bool = False) -> Iterator[StorageAttributes]:
        """
        Lazily maps the client's listing into StorageAttributes.
        A shallow listing only yields immediate children of `path`, even if
        the backend reports deeper entries.
        """
        folder = paths.normalize(path)
        try:
            entries = iter(self.client.list_files(path, recursive=deep))
        except StorageError as e:
            raise ListingFailedError(path, str(e), e) from e
        while True:
            try:
                entry: ListingEntry = next(entries)
            except StopIteration:
                return
            except StorageError as e:
                raise ListingFailedError(path, str(e), e) from e

            entry_path = paths.normalize(entry.path)
            if not entry_path or entry_path == folder:
                continue
            if not deep and paths.parent(entry_path) != folder:
                continue
            yield self._to_attributes(entry, entry_path)

    # --- Copy and move ---

    def copy(self, source: str, destination: str):
        """
        Copies a file by streaming it from `source` into `destination`.
        Copying a file onto itself only checks that it exists.
        """
        if paths.normalize(source) == paths.normalize(destination):
            try:
                self._detail(source)
            except StorageError as e:
                raise CopyFailedError(source, destination, cause=e) from e
            logging.debug(f"Skipping copy of '{source}' onto itself")
            return

        try:
            stream = self.client.download_stream(source)
        except StorageError as e:
            raise CopyFailedError(source, destination, cause=e) from e
        try:
            self.client.upload_from_stream(destination, stream)
        except StorageError as e:
            raise CopyFailedError(source, destination, cause=e) from e
        finally:
            self._invalidate(destination)

    def move(self, source: str, destination: str):
        """
        Copies `source` to `destination`, then deletes `source`.
        Moving a file onto itself leaves it in place.
        """
        try:
            self.copy(source, destination)
        except CopyFailedError as e:
            raise MoveFailedError(source, destination, cause=e.cause) from e

        if paths.normalize(source) == paths.normalize(destination):
            return

        try:
            self.client.delete_file(source)
        except StorageError as e:
            logging.warning(
                f"Moved '{source}' to '{destination}' but could not remove the source: {e}"
            )
            raise MoveFailedError(
                source, destination, "Copied, but could not delete the source", e
            ) from e
        finally:
            self._invalidate(source)

    # --- URLs ---

    def public_url(self, path: str) -> str:
        try:
            return self.client.signed_url(path).url
        except StorageError as e:
            raise UrlGenerationFailedError(path, str(e), e) from e

    def temporary_url(self, path: str, expires_at: datetime) -> str:
        now = datetime.now(expires_at.tzinfo) if expires_at.tzinfo else datetime.now()
        ttl = round((expires_at - now).total_seconds())
        if ttl <= 0:
            raise UrlGenerationFailedError(path, f"Expiration {expires_at.isoformat()} is not in the future")
        try:
            return self.client.signed_url(path, ttl).url
        except StorageError as e:
            raise UrlGenerationFailedError(path, str(e), e) from e
