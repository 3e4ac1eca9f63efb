"""Configuration management with Pydantic and XDG base directory support."""

import os
import sys
from pathlib import Path

from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


class Settings(BaseSettings):
    """flatvec configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLATVEC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/flatvec)",
    )

    index_name: str = Field(
        default="vectors.index",
        min_length=1,
        description="File name of the index inside the data directory",
    )

    dim: int = Field(
        default=384,
        ge=1,
        le=2**32 - 1,
        description="Vector dimensionality used when creating a new index",
    )

    fsync: bool = Field(
        default=True,
        description="fsync appended records and counter rewrites before returning",
    )

    search_batch_records: int = Field(
        default=4096,
        ge=1,
        description="Records decoded per read block while scanning",
    )

    default_top_k: int = Field(
        default=10,
        ge=0,
        description="Result count used when a search does not specify top_k",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        if self.data_dir:
            data_dir = self.data_dir.expanduser()
            data_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = data_dir
            return data_dir

        primary_dir = get_xdg_data_home() / "flatvec"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".flatvec-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_index_path(self) -> Path:
        """Get path to the index file."""
        return self.get_data_dir() / self.index_name


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
