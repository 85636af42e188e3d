# storage/dto.py
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    UNKNOWN = "unknown"


class _RemoteItem(BaseModel):
    """
    Common shape of an item reported by the backend.
    Accepts the wire field names as well as the Python ones. Detail responses
    spell the mime type `mimetype`, listings `mimeType`.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    path: str = ""
    is_folder: bool = Field(False, alias="folder")
    size: int = 0
    mime_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("mime_type", "mimeType", "mimetype")
    )
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def flatten_file_section(cls, values):
        # Some responses nest size/updatedAt under a "file" object.
        if isinstance(values, dict) and isinstance(values.get("file"), dict):
            values = dict(values)
            nested = values.pop("file")
            for key in ("size", "updatedAt", "mimeType", "mimetype"):
                if values.get(key) is None and nested.get(key) is not None:
                    values[key] = nested[key]
        if isinstance(values, dict) and values.get("size") is None:
            values = dict(values)
            values["size"] = 0
        return values


class FileDetail(_RemoteItem):
    """Attributes returned by a detail lookup. Never cached by the client."""
    pass


class ListingEntry(_RemoteItem):
    """One element of a directory listing."""
    pass


class SignedUrl(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    ttl: Optional[int] = None


class StorageAttributes(BaseModel):
    """
    The public entry shape exposed by the adapter for listings and metadata,
    free of any backend-specific type.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    type: Literal["file", "dir"] = "file"
    size: int = 0
    mime_type: Optional[str] = None
    last_modified: Optional[datetime] = None
    visibility: Visibility = Visibility.UNKNOWN

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"
