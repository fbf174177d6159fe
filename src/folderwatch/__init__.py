"""Folderwatch core package.

The package is organized into focused modules:

- **rules**: ordered rule evaluation (first match wins, no fallback)
- **organizer**: collision-safe moves that never overwrite existing files
- **pending**: the queue of files waiting for a manual decision
- **events**: structured outcome events and the lossy broadcast bus
- **config**: the durable JSON configuration and its store
- **watcher**: filesystem observation, settle delay and mode dispatch
- **service**: the supervisor object front-ends talk to

The main entry point is ``FolderWatchService``.
"""

from .config import ConfigStore
from .errors import (
    ConfigError,
    DispatchRejected,
    FolderWatchError,
    ModeError,
    OrganizeError,
    QueueError,
    WatchSetupError,
)
from .events import Error, EventBus, Moved, NoRuleMatched, Queued, Skipped
from .models import (
    Config,
    CreatedDateCondition,
    FileMetadata,
    FileTypeCondition,
    NamePatternCondition,
    OrganizationMode,
    PendingFile,
    Rule,
)
from .service import FolderWatchService
from .version import __version__

__all__ = [
    "__version__",
    "Config",
    "ConfigError",
    "ConfigStore",
    "CreatedDateCondition",
    "DispatchRejected",
    "Error",
    "EventBus",
    "FileMetadata",
    "FileTypeCondition",
    "FolderWatchError",
    "FolderWatchService",
    "ModeError",
    "Moved",
    "NamePatternCondition",
    "NoRuleMatched",
    "OrganizationMode",
    "OrganizeError",
    "PendingFile",
    "Queued",
    "QueueError",
    "Rule",
    "Skipped",
    "WatchSetupError",
]
