import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class StorageConfig(BaseModel):
    """
    Connection parameters consumed by the StretchFS client.
    Immutable once built. Nothing is validated here: an empty endpoint or
    token only fails when the first request is made.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    auth_token: SecretStr
    timeout: float = 30.0
    chunk_size: int = 1024 * 1024

    @property
    def base_url(self) -> str:
        """The endpoint as a URL; a bare domain is assumed to speak https."""
        endpoint = self.endpoint.strip().rstrip("/")
        if endpoint and "://" not in endpoint:
            endpoint = f"https://{endpoint}"
        return endpoint


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and the .env file.
    """

    # --- StretchFS connection (must be set in .env) ---
    STRETCHFS_ENDPOINT: str
    STRETCHFS_TOKEN: SecretStr
    STRETCHFS_TIMEOUT: float = 30.0
    STRETCHFS_CHUNK_SIZE: int = Field(
        1024 * 1024, validation_alias="STRETCHFS_CHUNK_SIZE"
    )  # 1 MB default

    # --- Adapter behaviour ---
    STRETCHFS_DETAIL_CACHE_TTL: float = 0.0  # seconds, 0 disables the cache

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("STRETCHFS_TIMEOUT", "STRETCHFS_CHUNK_SIZE")
    @classmethod
    def must_be_positive(cls, value):
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("STRETCHFS_DETAIL_CACHE_TTL")
    @classmethod
    def must_not_be_negative(cls, value):
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL '{value}'")
        return level

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            endpoint=self.STRETCHFS_ENDPOINT,
            auth_token=self.STRETCHFS_TOKEN,
            timeout=self.STRETCHFS_TIMEOUT,
            chunk_size=self.STRETCHFS_CHUNK_SIZE,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
