"""Supervisor that owns the watcher, configuration store and event bus.

A single :class:`FolderWatchService` is created at startup and handed to
whatever front-end drives it. It is the query surface: configuration and
mode management, starting and stopping the watch, pending review, and
one-off manual moves.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Tuple

from .config import ConfigStore, config_to_dict, validate_config_data
from .errors import ConfigError, OrganizeError
from .events import Error, EventBus, Moved, Subscription
from .models import Config, OrganizationMode, PendingFile, Rule
from .organizer import move_file
from .utils import PathLike, env_float
from .watcher import DEFAULT_MAX_BACKLOG, DEFAULT_MAX_WORKERS, DEFAULT_SETTLE_DELAY, Watcher

LOGGER = logging.getLogger(__name__)

SETTLE_DELAY_ENV = "FOLDERWATCH_SETTLE_DELAY"


class FolderWatchService:
    def __init__(
        self,
        store: Optional[ConfigStore] = None,
        events: Optional[EventBus] = None,
        *,
        settle_delay: Optional[float] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_backlog: int = DEFAULT_MAX_BACKLOG,
        observer_factory=None,
    ) -> None:
        self.store = store or ConfigStore()
        self.events = events or EventBus()
        if settle_delay is None:
            settle_delay = env_float(SETTLE_DELAY_ENV, DEFAULT_SETTLE_DELAY)
        config = self.store.load()
        self.watcher = Watcher(
            config,
            self.events,
            settle_delay=settle_delay,
            max_workers=max_workers,
            max_backlog=max_backlog,
            observer_factory=observer_factory,
        )
        self.store.attach(self.watcher)
        self._config_lock = threading.Lock()

    # Configuration

    def get_config(self) -> Config:
        return self.store.current

    def set_config(self, config: Config) -> None:
        """Validate, persist and hot-apply a complete configuration."""
        problems = validate_config_data(config_to_dict(config))
        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))
        with self._config_lock:
            self.store.save(config)
            self.store.apply(config)

    def get_mode(self) -> str:
        return self.store.current.organization_mode

    def set_mode(self, value: str) -> OrganizationMode:
        mode = OrganizationMode.parse(value)
        with self._config_lock:
            config = self.store.current
            config.organization_mode = mode.value
            self.store.save(config)
            self.store.apply(config)
        LOGGER.info("Organization mode set to %s", mode.value)
        return mode

    def add_rule(self, rule: Rule) -> None:
        with self._config_lock:
            config = self.store.current
            config.rules.append(rule)
            self.store.save(config)
            self.store.apply(config)

    def remove_rule(self, index: int) -> Rule:
        with self._config_lock:
            config = self.store.current
            try:
                removed = config.rules.pop(index)
            except IndexError as exc:
                raise ConfigError(f"No rule at position {index}") from exc
            self.store.save(config)
            self.store.apply(config)
        return removed

    # Watching

    @property
    def is_watching(self) -> bool:
        return self.watcher.is_watching

    def start_watching(self, folder: Optional[PathLike] = None) -> Path:
        """Start watching ``folder`` (or the configured folder) and remember it.

        Raises:
            ConfigError: If no folder is given and none is configured.
            WatchSetupError: If the folder cannot be created or observed.
        """
        target = folder if folder is not None else self.store.current.watched_folder
        if not target:
            raise ConfigError("No watched folder configured")
        path = self.watcher.start(target)

        with self._config_lock:
            config = self.store.current
            if config.watched_folder != str(path):
                config.watched_folder = str(path)
                try:
                    self.store.save(config)
                except ConfigError as exc:
                    LOGGER.warning("Watching %s but could not persist it: %s", path, exc)
                self.store.apply(config)
        return path

    def stop_watching(self) -> None:
        self.watcher.stop()

    # Pending review

    def list_pending(self) -> Tuple[PendingFile, ...]:
        return self.watcher.pending_files()

    def pending_count(self) -> int:
        return self.watcher.pending_count()

    def resolve_pending(
        self,
        path: PathLike,
        destination: Optional[PathLike] = None,
        new_name: Optional[str] = None,
    ) -> Optional[Path]:
        return self.watcher.resolve_pending(path, destination=destination, new_name=new_name)

    # Manual moves

    def manual_move(self, path: PathLike, destination: PathLike) -> Path:
        """Move any file into ``destination`` without consulting the rules."""
        source = Path(path).absolute()
        if not source.is_file():
            error = OrganizeError(f"Not a file: {source}")
            self.events.publish(Error(path=source, detail=str(error)))
            raise error
        try:
            final_path = move_file(source, destination)
        except OrganizeError as exc:
            self.events.publish(Error(path=source, detail=str(exc)))
            raise
        self.events.publish(Moved(source=source, destination=final_path))
        return final_path

    # Events

    def subscribe(self, capacity: Optional[int] = None) -> Subscription:
        return self.events.subscribe(capacity)

    def close(self, wait: bool = True) -> None:
        self.watcher.shutdown(wait=wait)

    def __enter__(self) -> "FolderWatchService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["FolderWatchService", "SETTLE_DELAY_ENV"]
