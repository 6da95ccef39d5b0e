"""Configuration management for the wiki server."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from twserver.core.errors import ConfigError

logger = logging.getLogger(__name__)


# Load environment variables
load_dotenv()

CONFIG_ENV_VAR = "TWSERVER_CONFIG"

NAME_TOKEN = ":name:"
DATE_TOKEN = ":date:"


@dataclass(frozen=True)
class StaticMount:
    """A read-only directory served under a URL prefix."""

    url: str
    path: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StaticMount":
        """Build a mount from a ``{"URL": ..., "Path": ...}`` mapping."""
        if not isinstance(data, dict):
            raise ConfigError(f"ServeDirs entries must be objects, got {type(data).__name__}")
        lowered = {str(k).lower(): v for k, v in data.items()}
        url, path = lowered.get("url"), lowered.get("path")
        if not isinstance(url, str) or not isinstance(path, str) or not url or not path:
            raise ConfigError(f"ServeDirs entry requires non-empty 'URL' and 'Path' strings: {data}")
        return cls(url=url, path=path)


# JSON keys accepted for each field. Matching is case-insensitive.
_FIELD_KEYS = {
    "host": ("Host",),
    "port": ("Port",),
    "document_root_dir": ("DocumentRootDir",),
    "index_file": ("IndexFile",),
    "backup_dir": ("BackupDir",),
    "backup_file_format": ("BackupFileFormat",),
    "serve_dirs": ("ServeDirs",),
    "log_file_name": ("LogFileName",),
    "log_max_size": ("LogMaxSize",),
    "log_max_backups": ("LogMaxBackups",),
    "log_max_age": ("LogMaxAge",),
    "log_compress": ("LogCompress",),
}


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration, built once at startup and read-only afterwards."""

    host: str = ""
    port: int = 8080
    document_root_dir: str = "./www"
    index_file: str = "index.html"
    backup_dir: str = "./backup"
    backup_file_format: str = ":name:.:date:.html"
    serve_dirs: tuple[StaticMount, ...] = field(default_factory=tuple)
    log_file_name: str = "./logs/twserver.log"
    log_max_size: int = 4  # MB
    log_max_backups: int = 16
    log_max_age: int = 28  # days
    log_compress: bool = True

    @property
    def index_path(self) -> str:
        """Absolute path of the live document."""
        return os.path.abspath(os.path.join(self.document_root_dir, self.index_file))

    @property
    def backup_path(self) -> str:
        """Absolute path of the backup directory."""
        return os.path.abspath(self.backup_dir)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerConfig":
        """Build a configuration from decoded JSON, falling back to defaults for missing keys."""
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a JSON object, got {type(data).__name__}")

        lowered = {str(k).lower(): v for k, v in data.items()}
        values: dict[str, Any] = {}
        for name, aliases in _FIELD_KEYS.items():
            for key in (*aliases, name):
                if key.lower() in lowered:
                    values[name] = lowered[key.lower()]
                    break

        if "serve_dirs" in values:
            mounts = values["serve_dirs"] or []
            if not isinstance(mounts, list):
                raise ConfigError("ServeDirs must be a list of {URL, Path} objects")
            values["serve_dirs"] = tuple(StaticMount.from_dict(m) for m in mounts)

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Validate field types and values."""
        for name in ("host", "document_root_dir", "index_file", "backup_dir", "backup_file_format", "log_file_name"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string")
        for name in ("port", "log_max_size", "log_max_backups", "log_max_age"):
            value = getattr(self, name)
            # bool is an int subclass but never a valid count
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer")
        if not isinstance(self.log_compress, bool):
            raise ConfigError("log_compress must be a boolean")

        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Port must be between 0 and 65535: {self.port}")
        if not self.index_file or os.path.basename(self.index_file) != self.index_file:
            raise ConfigError(f"IndexFile must be a plain file name: {self.index_file!r}")
        if not self.backup_file_format or os.path.basename(self.backup_file_format) != self.backup_file_format:
            raise ConfigError(f"BackupFileFormat must be a plain file name template: {self.backup_file_format!r}")
        if self.log_max_size < 1:
            raise ConfigError("LogMaxSize must be at least 1 MB")
        if self.log_max_backups < 0:
            raise ConfigError("LogMaxBackups must be non-negative")
        if self.log_max_age < 0:
            raise ConfigError("LogMaxAge must be non-negative")
        for mount in self.serve_dirs:
            if not mount.url.startswith("/"):
                raise ConfigError(f"ServeDirs URL must start with '/': {mount.url}")
            if mount.url.strip("/") == "":
                raise ConfigError("ServeDirs URL '/' would shadow the wiki document")

    def template_has_tokens(self) -> bool:
        """True if the backup template can produce distinct names over time."""
        return NAME_TOKEN in self.backup_file_format or DATE_TOKEN in self.backup_file_format


def default_config_path() -> str:
    """Return ``<executable dir>/<executable stem>.json``."""
    bin_path = os.path.abspath(sys.argv[0] or "twserver")
    bin_name, _ = os.path.splitext(os.path.basename(bin_path))
    if bin_name == "__main__":
        # Started with ``python -m twserver``
        bin_name = "twserver"
    return os.path.join(os.path.dirname(bin_path), bin_name + ".json")


def read_config(filename: str) -> ServerConfig:
    """Read the given configuration file, raising ``ConfigError`` on any failure."""
    try:
        with open(filename, encoding="utf-8") as cfg_file:
            data = json.load(cfg_file)
    except OSError as e:
        raise ConfigError(f"Unable to read the configuration file '{filename}': {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed configuration file '{filename}': {e}") from e
    return ServerConfig.from_dict(data)


def load_config(filename: str | None = None, strict: bool = False) -> ServerConfig:
    """Load the configuration, applying defaults when no file is present.

    Args:
        filename: Explicit config path. Falls back to ``$TWSERVER_CONFIG`` and
            then to the file named after the executable.
        strict: Raise ``ConfigError`` instead of falling back to defaults when
            the file exists but cannot be used.

    Returns:
        The loaded configuration.
    """
    filename = filename or os.environ.get(CONFIG_ENV_VAR) or default_config_path()

    if not os.path.exists(filename):
        logger.debug("No configuration file at %s, using defaults", filename)
        return ServerConfig()

    try:
        config = read_config(filename)
    except ConfigError as err:
        if strict:
            raise
        logger.error("Configuration load failed, using defaults: %s", err)
        return ServerConfig()

    logger.info("Configuration loaded from %s", filename)
    return config
