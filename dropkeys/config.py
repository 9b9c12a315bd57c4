from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import logging
from functools import lru_cache


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment, a .env file and the token file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    TOKEN_STORAGE_FILE: str = ".dropbox.token"

    # --- General Settings ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    # --- Dropbox Settings ---
    DROPBOX_APP_KEY: str
    DROPBOX_APP_SECRET: Optional[str] = None
    DROPBOX_REFRESH_TOKEN: Optional[str] = None
    DROPBOX_REFRESH_TOKEN_FILE: Optional[str] = None
    DROPBOX_ROOT_DIR: Optional[str] = None
    DROPBOX_UPLOAD_CHUNK_SIZE: int = Field(
        128 * 1024 * 1024, gt=0
    )  # 128 MB default

    # --- Constants and Computed Paths ---
    BASE_DIR: Path = Field(default_factory=Path.cwd)

    @field_validator("DROPBOX_ROOT_DIR")
    @classmethod
    def normalize_root_dir(cls, value: Optional[str]) -> Optional[str]:
        # "" and "/" both mean the Dropbox root, which the adapter expresses as None.
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    def model_post_init(self, __context):
        """
        After initial settings are loaded from the environment,
        try to load a refresh token from the local token file as a fallback.
        """
        token_file = self.BASE_DIR / self.TOKEN_STORAGE_FILE
        if token_file.is_file():
            content = token_file.read_text().strip()
            if content:
                self.DROPBOX_REFRESH_TOKEN_FILE = content
                logging.info(f"Found refresh token in file: {token_file}")

    @property
    def refresh_token(self) -> Optional[str]:
        """The environment token takes precedence over the token file."""
        return self.DROPBOX_REFRESH_TOKEN or self.DROPBOX_REFRESH_TOKEN_FILE


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
