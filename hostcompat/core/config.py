"""Runtime settings with environment and TOML support."""

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli_w
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, FormatError
from .version import parse_version

DEFAULT_CATALOGS = [
    "hostcompat.catalogs.compat_25",
    "hostcompat.catalogs.compat_26",
    "hostcompat.catalogs.compat_27",
    "hostcompat.catalogs.compat_28",
    "hostcompat.catalogs.compat_29",
]

# Nested TOML keys that map onto differently named settings
_TOML_KEY_MAP = {
    "logging_level": "log_level",
    "logging_file": "log_file",
    "logging_rich_console": "rich_console",
}


class Settings(BaseSettings):
    """Compatibility runtime settings, read from HOSTCOMPAT_* variables."""

    # Host
    host_version: Optional[str] = Field(default=None)
    minimum_host_version: str = Field(default="24.4")

    # Catalogs
    catalogs: List[str] = Field(default_factory=lambda: list(DEFAULT_CATALOGS))
    watch_imports: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    rich_console: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="HOSTCOMPAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("host_version", "minimum_host_version")
    @classmethod
    def _check_version(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            parse_version(value)
        except FormatError as e:
            raise ValueError(e.message) from e
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @classmethod
    def from_toml(cls, toml_path: Path) -> "Settings":
        """
        Load settings from the ``[hostcompat]`` table of a TOML file.

        A nested ``[hostcompat.logging]`` table with ``level``, ``file`` and
        ``rich_console`` keys is accepted as well. Values from the file take
        precedence over the environment.
        """
        toml_path = Path(toml_path)
        if not toml_path.exists():
            return cls()

        with open(toml_path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(
                    f"Invalid settings file {toml_path}: {e}",
                    details={"path": str(toml_path)},
                ) from e

        values: Dict[str, Any] = {}
        _flatten_toml(data.get("hostcompat", {}), values)
        return cls(**values)

    def save_toml(self, toml_path: Path) -> None:
        """Write the settings to a TOML file under a ``[hostcompat]`` table."""
        toml_path = Path(toml_path)
        toml_path.parent.mkdir(parents=True, exist_ok=True)

        table = {
            key: value
            for key, value in self.model_dump().items()
            if value is not None and key not in {"log_level", "log_file", "rich_console"}
        }
        logging_table: Dict[str, Any] = {
            "level": self.log_level,
            "rich_console": self.rich_console,
        }
        if self.log_file:
            logging_table["file"] = self.log_file
        table["logging"] = logging_table

        with open(toml_path, "wb") as f:
            tomli_w.dump({"hostcompat": table}, f)


def _flatten_toml(data: Dict[str, Any], result: Dict[str, Any], prefix: str = "") -> None:
    """Flatten nested TOML tables to setting names."""
    for key, value in data.items():
        full_key = f"{prefix}_{key}" if prefix else key
        full_key = full_key.lower().replace("-", "_")
        if isinstance(value, dict):
            _flatten_toml(value, result, full_key)
        else:
            result[_TOML_KEY_MAP.get(full_key, full_key)] = value


@lru_cache()
def get_settings() -> Settings:
    """Get the global settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload the global settings."""
    get_settings.cache_clear()
    return get_settings()
