"""Exception types raised by the wiki server."""


class TWServerError(Exception):
    """Base exception for wiki server errors."""


class ConfigError(TWServerError, ValueError):
    """Raised when the configuration file is unreadable, malformed or invalid."""


class ArchiveError(TWServerError):
    """Raised when a compressed archive cannot be encoded."""
