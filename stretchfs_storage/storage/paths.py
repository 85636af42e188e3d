# storage/paths.py
import mimetypes
import posixpath
from typing import Tuple

DEFAULT_MIME_TYPE = "application/octet-stream"


def normalize(path: str) -> str:
    """Strips surrounding slashes and collapses doubled ones: '/a//b/' -> 'a/b'."""
    parts = [part for part in path.split("/") if part]
    return "/".join(parts)


def split(path: str) -> Tuple[str, str]:
    """
    Splits a logical path into its parent folder and basename.
    The parent is always absolute ('/' for the root).
    """
    folder, name = posixpath.split("/" + normalize(path))
    return folder, name


def parent(path: str) -> str:
    """Parent of a path in normalized form ('' for top-level entries)."""
    return normalize(posixpath.dirname(normalize(path)))


def is_within(path: str, folder: str) -> bool:
    """True if `path` is `folder` itself or anywhere below it."""
    path, folder = normalize(path), normalize(folder)
    if not folder:
        return True
    return path == folder or path.startswith(folder + "/")


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(normalize(path))
    return mime_type or DEFAULT_MIME_TYPE
