from __future__ import annotations


class FolderWatchError(Exception):
    """Base class for all folderwatch errors."""


class ConfigError(FolderWatchError, ValueError):
    """Raised when a persisted or supplied configuration cannot be used."""


class WatchSetupError(FolderWatchError, RuntimeError):
    """Raised when the watched folder cannot be created or observed."""


class OrganizeError(FolderWatchError, OSError):
    """Raised when a file cannot be relocated into its destination directory."""


class ModeError(FolderWatchError, ValueError):
    """Raised when an organization mode falls outside the supported set."""


class QueueError(FolderWatchError, LookupError):
    """Raised when a pending file cannot be resolved."""


class DispatchRejected(FolderWatchError, RuntimeError):
    """Raised when the dispatcher has no free capacity for another file."""


__all__ = [
    "ConfigError",
    "DispatchRejected",
    "FolderWatchError",
    "ModeError",
    "OrganizeError",
    "QueueError",
    "WatchSetupError",
]
