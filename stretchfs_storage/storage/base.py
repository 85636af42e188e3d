# storage/base.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import BinaryIO, Iterator, Optional, Tuple

from ..exceptions import StorageError
from .dto import FileDetail, ListingEntry, SignedUrl, StorageAttributes, Visibility


class StorageClient(ABC):
    """
    Abstract base class for a remote object-storage client.
    Turns logical file operations into authenticated requests against one
    configured endpoint. Every call is a single attempt; failures are raised
    as the client error kinds from `exceptions`.
    """

    @abstractmethod
    def detail(self, path: str) -> FileDetail:
        """
        Looks up a file or folder.

        :param path: Logical path of the item.
        :return: A freshly fetched FileDetail.
        """
        pass

    @abstractmethod
    def upload_from_bytes(self, path: str, contents: bytes):
        """
        Uploads `contents` to `path`, overwriting any existing file.

        :param path: Logical path of the destination file.
        :param contents: The complete file content.
        """
        pass

    @abstractmethod
    def upload_from_stream(self, path: str, source: BinaryIO):
        """
        Uploads the content of a binary stream to `path`.
        Ownership of `source` passes to the client: it is drained and closed on
        every exit path, success or failure.

        :param path: Logical path of the destination file.
        :param source: A readable binary stream.
        """
        pass

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Downloads the whole file into memory."""
        pass

    @abstractmethod
    def download_stream(self, path: str) -> BinaryIO:
        """
        Opens a file for streamed reading.
        The caller owns the returned stream and must close it.
        """
        pass

    @abstractmethod
    def delete_file(self, path: str):
        """Deletes a file. Deleting a missing path fails with NotFoundError."""
        pass

    @abstractmethod
    def delete_folder(self, path: str):
        """Deletes a folder and everything below it."""
        pass

    @abstractmethod
    def create_folder(self, path: str):
        pass

    @abstractmethod
    def list_files(self, path: str, recursive: bool = False) -> Iterator[ListingEntry]:
        """
        Lists the entries below a folder.

        :param path: The folder to list.
        :param recursive: Whether to descend into sub-folders.
        :return: A lazy, single-pass iterator of ListingEntry DTOs.
        """
        pass

    @abstractmethod
    def signed_url(self, path: str, ttl: Optional[int] = None) -> SignedUrl:
        """
        Generates a directly fetchable URL.

        :param path: The file to link to.
        :param ttl: Lifetime in seconds; None or 0 leaves it to the backend.
        """
        pass


class FilesystemAdapter(ABC):
    """
    Capability-based storage interface consumed by higher-level code.
    Implementations must not leak backend-specific types.
    """

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def is_directory(self, path: str) -> bool:
        pass

    @abstractmethod
    def try_detail(self, path: str) -> Tuple[Optional[FileDetail], Optional[StorageError]]:
        pass

    @abstractmethod
    def write(self, path: str, contents: bytes):
        pass

    @abstractmethod
    def write_stream(self, path: str, stream: BinaryIO):
        pass

    @abstractmethod
    def read(self, path: str) -> bytes:
        pass

    @abstractmethod
    def read_stream(self, path: str) -> BinaryIO:
        pass

    @abstractmethod
    def delete(self, path: str):
        pass

    @abstractmethod
    def delete_directory(self, path: str):
        pass

    @abstractmethod
    def create_directory(self, path: str):
        pass

    @abstractmethod
    def set_visibility(self, path: str, visibility: Visibility):
        pass

    @abstractmethod
    def visibility(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def metadata(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def list_contents(self, path: str, deep: bool = False) -> Iterator[StorageAttributes]:
        pass

    @abstractmethod
    def move(self, source: str, destination: str):
        pass

    @abstractmethod
    def copy(self, source: str, destination: str):
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass

    @abstractmethod
    def temporary_url(self, path: str, expires_at: datetime) -> str:
        pass
