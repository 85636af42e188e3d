# stretchfs.py
"""
HTTP client for a StretchFS object-storage endpoint.

Every request is a POST against the configured endpoint, authenticated with
the `X-STRETCHFS-Token` header:

    /file/detail        {path}              -> item
    /file/upload        multipart path+file -> item
    /file/download      {path}              -> raw body
    /file/remove        {path}
    /file/folderCreate  {path}
    /file/folderRemove  {path}
    /file/list          {path, cursor?}     -> {files: [item], cursor, hasMore}
    /file/downloadUrl   {path, ttl?}        -> {url}

An item looks like {path, folder, mimeType, size, updatedAt}.
"""
import io
import logging
from typing import BinaryIO, Iterator, Optional

import httpx
from pydantic import ValidationError

from .config import StorageConfig
from .exceptions import (
    AlreadyExistsError,
    NotFoundError,
    RemoteRejectedError,
    StorageError,
    StreamInterruptedError,
    TransportError,
    UnauthorizedError,
)
from .storage import paths
from .storage.base import StorageClient
from .storage.dto import FileDetail, ListingEntry, SignedUrl

TOKEN_HEADER = "X-STRETCHFS-Token"

# Gateway errors mean the request never reached a healthy backend.
_TRANSIENT_STATUSES = {502, 503, 504}


class RemoteFileStream(io.RawIOBase):
    """
    Read-only raw stream over a streamed httpx response.
    Closing it releases the underlying connection. Failures while reading are
    raised from `read()` as StreamInterruptedError, and keep being raised by
    every later read so a truncated body never looks like end of file.
    """

    def __init__(self, response: httpx.Response, path: str, chunk_size: int):
        self._response = response
        self._path = path
        self._chunks = response.iter_bytes(chunk_size)
        self._pending = b""
        self._failure: Optional[StreamInterruptedError] = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream.")
        if self._failure is not None:
            raise self._failure
        while not self._pending:
            try:
                chunk = next(self._chunks, None)
            except (httpx.HTTPError, httpx.StreamError) as e:
                self._failure = StreamInterruptedError(self._path, "Download interrupted", e)
                raise self._failure from e
            if chunk is None:
                return 0
            self._pending = chunk
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self):
        if not self.closed:
            self._response.close()
        super().close()


class _ForwardReader:
    """
    Exposes only `read` of an upload source. httpx rewinds seekable file
    parts, and the upload must start at the source's current position.
    """

    def __init__(self, source: BinaryIO):
        self._source = source

    def read(self, size: int = -1) -> bytes:
        return self._source.read(size)


class StretchFSClient(StorageClient):
    """
    Client for interacting with the StretchFS API, implementing the StorageClient interface.
    """

    def __init__(self, config: StorageConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._owns_http = http_client is None
        self.http = http_client or httpx.Client(timeout=config.timeout)
        logging.info(f"StretchFS client created for endpoint '{config.base_url}'.")

    # --- Request helpers ---

    def _url(self, route: str, path: str) -> str:
        base_url = self.config.base_url
        if not base_url:
            raise TransportError(path, "No StretchFS endpoint configured")
        return f"{base_url}{route}"

    def _headers(self, path: str) -> dict:
        token = self.config.auth_token.get_secret_value()
        if not token:
            raise UnauthorizedError(path, "No StretchFS auth token configured")
        return {TOKEN_HEADER: token, "Accept": "application/json"}

    def _send(
        self,
        route: str,
        path: str,
        *,
        json: Optional[dict] = None,
        data: Optional[dict] = None,
        files: Optional[dict] = None,
        stream: bool = False,
    ) -> httpx.Response:
        request = self.http.build_request(
            "POST",
            self._url(route, path),
            headers=self._headers(path),
            json=json,
            data=data,
            files=files,
        )
        try:
            response = self.http.send(request, stream=stream)
        except httpx.TimeoutException as e:
            raise TransportError(path, f"Request to {route} timed out", e) from e
        except httpx.TransportError as e:
            raise TransportError(path, f"Request to {route} failed: {e}", e) from e

        if response.status_code >= 400:
            if stream:
                response.read()
                response.close()
            raise self._error_for(response, path)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        text = response.text.strip()
        return text[:200] if text else response.reason_phrase

    def _error_for(self, response: httpx.Response, path: str) -> StorageError:
        status = response.status_code
        cause = httpx.HTTPStatusError(
            f"HTTP {status}", request=response.request, response=response
        )
        message = f"HTTP {status}: {self._error_message(response)}"
        if status in (401, 403):
            return UnauthorizedError(path, message, cause)
        if status == 404:
            return NotFoundError(path, message, cause)
        if status == 409:
            return AlreadyExistsError(path, message, cause)
        if status in _TRANSIENT_STATUSES:
            return TransportError(path, message, cause)
        return RemoteRejectedError(path, message, cause)

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteRejectedError(path, "Malformed response from StretchFS", e) from e
        if not isinstance(body, dict):
            raise RemoteRejectedError(path, "Unexpected response shape from StretchFS")
        return body

    @staticmethod
    def _parse(model, item: dict, path: str):
        try:
            return model.model_validate(item)
        except ValidationError as e:
            raise RemoteRejectedError(path, "Invalid item in StretchFS response", e) from e

    def _release(self, source: BinaryIO, path: str):
        """Drains whatever the upload left unread, then closes the source."""
        try:
            if not getattr(source, "closed", False):
                while source.read(self.config.chunk_size):
                    pass
        except (OSError, ValueError) as e:
            logging.warning(f"Could not drain upload source for '{path}': {e}")
        finally:
            source.close()

    # --- StorageClient interface ---

    def detail(self, path: str) -> FileDetail:
        logging.debug(f"Fetching detail for StretchFS path '{path}'")
        response = self._send("/file/detail", path, json={"path": path})
        item = self._json(response, path)
        return self._parse(FileDetail, {"path": path, **item}, path)

    def upload_from_bytes(self, path: str, contents: bytes):
        """Uploads an in-memory payload in a single request."""
        folder, filename = paths.split(path)
        if not filename:
            raise RemoteRejectedError(path, "Cannot upload to a folder path")
        files = {"file": (filename, contents, paths.guess_mime_type(filename))}
        try:
            logging.info(f"Uploading {len(contents)} bytes to '{path}'...")
            self._send("/file/upload", path, data={"path": folder}, files=files)
        except StorageError as e:
            logging.error(f"Failed to upload file to '{path}': {e}")
            raise

    def upload_from_stream(self, path: str, source: BinaryIO):
        """
        Streams `source` to the backend as the file part of a multipart request,
        so memory use stays bounded by the transport's chunk size. Only what is
        left to read from the source's current position is uploaded.
        """
        try:
            folder, filename = paths.split(path)
            if not filename:
                raise RemoteRejectedError(path, "Cannot upload to a folder path")
            files = {"file": (filename, _ForwardReader(source), paths.guess_mime_type(filename))}
            logging.info(f"Starting streamed upload to '{path}'...")
            self._send("/file/upload", path, data={"path": folder}, files=files)
            logging.info(f"Streamed upload completed for '{path}'.")
        except OSError as e:
            logging.error(f"Failed to read upload source for '{path}': {e}")
            raise TransportError(path, "Could not read upload source", e) from e
        except StorageError as e:
            logging.error(f"Failed to upload file to '{path}' from stream: {e}")
            raise
        finally:
            self._release(source, path)

    def download(self, path: str) -> bytes:
        try:
            logging.info(f"Downloading '{path}'...")
            response = self._send("/file/download", path, json={"path": path})
            return response.content
        except StorageError as e:
            logging.error(f"Failed to download file '{path}': {e}")
            raise

    def download_stream(self, path: str) -> BinaryIO:
        try:
            logging.info(f"Opening download stream for '{path}'...")
            response = self._send("/file/download", path, json={"path": path}, stream=True)
        except StorageError as e:
            logging.error(f"Failed to open download stream for '{path}': {e}")
            raise
        raw = RemoteFileStream(response, path, self.config.chunk_size)
        return io.BufferedReader(raw, buffer_size=self.config.chunk_size)

    def delete_file(self, path: str):
        """Deletes a file in StretchFS."""
        try:
            logging.info(f"Deleting {path}...")
            self._send("/file/remove", path, json={"path": path})
        except StorageError as e:
            logging.error(f"Failed to delete path '{path}': {e}")
            raise

    def delete_folder(self, path: str):
        try:
            logging.info(f"Deleting folder {path}...")
            self._send("/file/folderRemove", path, json={"path": path})
        except StorageError as e:
            logging.error(f"Failed to delete folder '{path}': {e}")
            raise

    def create_folder(self, path: str):
        try:
            logging.info(f"Creating folder {path}...")
            self._send("/file/folderCreate", path, json={"path": path})
        except StorageError as e:
            logging.error(f"Failed to create folder '{path}': {e}")
            raise

    def list_files(self, path: str, recursive: bool = False) -> Iterator[ListingEntry]:
        """
        Yields the entries of a folder, following pagination cursors.
        With `recursive`, sub-folders are walked breadth-first after their parent.
        """
        pending = [path]
        while pending:
            folder = pending.pop(0)
            for entry in self._list_folder(folder):
                yield entry
                if recursive and entry.is_folder:
                    pending.append(entry.path)

    def _list_folder(self, folder: str) -> Iterator[ListingEntry]:
        logging.info(f"Listing files in StretchFS path: '{folder}'")
        cursor = None
        while True:
            body = {"path": folder}
            if cursor:
                body["cursor"] = cursor
            try:
                response = self._send("/file/list", folder, json=body)
                data = self._json(response, folder)
            except StorageError as e:
                logging.error(f"Failed to list files in StretchFS path '{folder}': {e}")
                raise
            for item in data.get("files") or []:
                yield self._parse(ListingEntry, item, folder)
            cursor = data.get("cursor")
            if not data.get("hasMore") or not cursor:
                return
            logging.info("Found more files, continuing listing...")

    def signed_url(self, path: str, ttl: Optional[int] = None) -> SignedUrl:
        body = {"path": path}
        if ttl:
            body["ttl"] = int(ttl)
        try:
            response = self._send("/file/downloadUrl", path, json=body)
            data = self._json(response, path)
        except StorageError as e:
            logging.error(f"Failed to generate download URL for '{path}': {e}")
            raise
        url = data.get("url")
        if not url:
            raise RemoteRejectedError(path, "StretchFS returned no URL")
        return SignedUrl(url=str(url), ttl=int(ttl) if ttl else None)

    # --- Lifecycle ---

    def close(self):
        if self._owns_http:
            self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
