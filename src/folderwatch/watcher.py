from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import DispatchRejected, OrganizeError, QueueError, WatchSetupError
from .events import Error, EventBus, Moved, NoRuleMatched, OutcomeEvent, Queued, Skipped, format_event
from .logging_utils import render_fields_block
from .models import Config, FileMetadata, OrganizationMode, PendingFile
from .organizer import move_file
from .pending import PendingQueue
from .rules import find_matching_rule
from .utils import PathLike, ensure_directory, expand_path

LOGGER = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 0.1
DEFAULT_MAX_WORKERS = 4
DEFAULT_MAX_BACKLOG = 256


class _CreatedFileHandler(FileSystemEventHandler):
    """Forwards creation of regular files to the dispatcher without blocking."""

    def __init__(self, callback: Callable[[Path], Any]) -> None:
        super().__init__()
        self._callback = callback

    def on_created(self, event) -> None:  # type: ignore[override]
        if getattr(event, "is_directory", False):
            return
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode()
        self._callback(Path(src_path))


class BoundedDispatcher:
    """Worker pool that refuses new work instead of growing without bound.

    At most ``max_workers`` tasks run at once and at most ``max_backlog``
    further tasks wait for a worker. :meth:`submit` never blocks.
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, max_backlog: int = DEFAULT_MAX_BACKLOG) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_backlog < 0:
            raise ValueError("max_backlog must be greater than or equal to 0")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="folderwatch-worker")
        self._slots = threading.BoundedSemaphore(max_workers + max_backlog)

    def submit(self, func: Callable[..., Any], *args: Any) -> Future:
        if not self._slots.acquire(blocking=False):
            raise DispatchRejected("dispatch backlog full")
        try:
            future = self._executor.submit(func, *args)
        except RuntimeError as exc:
            self._slots.release()
            raise DispatchRejected(f"dispatcher unavailable: {exc}") from exc
        future.add_done_callback(self._release)
        return future

    def _release(self, _future: Future) -> None:
        self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class Watcher:
    """Watches one folder and routes every new file by organization mode.

    Each detected file is handled on a worker thread: after the settle delay
    the file is re-checked, a snapshot of the configuration is taken, and the
    file is moved by the first matching rule, queued for review, or both,
    depending on the mode. Outcomes are published on the event bus; nothing
    raised while handling a file escapes into the observer thread.
    """

    def __init__(
        self,
        config: Config,
        events: EventBus,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_backlog: int = DEFAULT_MAX_BACKLOG,
        observer_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        if settle_delay < 0:
            raise ValueError("settle_delay must be greater than or equal to 0")
        self._config = config.copy()
        self._config_lock = threading.Lock()
        self._events = events
        self._pending = PendingQueue()
        self._settle_delay = settle_delay
        self._dispatcher = BoundedDispatcher(max_workers=max_workers, max_backlog=max_backlog)
        self._observer_factory = observer_factory or Observer
        self._handler = _CreatedFileHandler(self.handle_created)
        self._observer: Any = None
        self._watched_folder: Optional[Path] = None
        self._state_lock = threading.Lock()

    # Configuration

    @property
    def config(self) -> Config:
        return self._snapshot_config().copy()

    def _snapshot_config(self) -> Config:
        with self._config_lock:
            return self._config

    def apply_config(self, config: Config) -> None:
        """Swap the active configuration; tasks already running keep their snapshot."""
        replacement = config.copy()
        with self._config_lock:
            self._config = replacement
        LOGGER.debug(
            "Applied configuration | mode=%s rules=%d",
            replacement.organization_mode,
            len(replacement.rules),
        )

    # Lifecycle

    @property
    def watched_folder(self) -> Optional[Path]:
        return self._watched_folder

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def start(self, folder: PathLike) -> Path:
        """Begin observing ``folder`` (non-recursively), creating it if absent.

        Raises:
            WatchSetupError: If the folder cannot be created or observed.
        """
        path = expand_path(folder).absolute()
        try:
            ensure_directory(path)
        except OSError as exc:
            raise WatchSetupError(f"Failed to create watched folder {path}: {exc}") from exc
        if not path.is_dir():
            raise WatchSetupError(f"Watched path is not a directory: {path}")

        with self._state_lock:
            self._stop_observer()
            observer = self._observer_factory()
            try:
                observer.schedule(self._handler, str(path), recursive=False)
                observer.start()
            except Exception as exc:  # noqa: BLE001 - watchdog raises platform specific errors
                raise WatchSetupError(f"Failed to watch {path}: {exc}") from exc
            self._observer = observer
            self._watched_folder = path

        LOGGER.info(render_fields_block("Watching Folder", {"Folder": path, "Settle delay": f"{self._settle_delay}s"}))
        return path

    def stop(self) -> None:
        """Stop observing. Files already handed to workers are still processed."""
        with self._state_lock:
            folder = self._watched_folder
            stopped = self._stop_observer()
        if stopped:
            LOGGER.info("Stopped watching %s", folder)

    def _stop_observer(self) -> bool:
        observer = self._observer
        if observer is None:
            return False
        self._observer = None
        self._watched_folder = None
        try:
            observer.unschedule_all()
            observer.stop()
            observer.join(timeout=5)
        except RuntimeError as exc:
            LOGGER.warning("Filesystem observer did not stop cleanly: %s", exc)
        return True

    def shutdown(self, wait: bool = True) -> None:
        self.stop()
        self._dispatcher.shutdown(wait=wait)

    # Dispatch

    def handle_created(self, path: PathLike) -> Optional[Future]:
        """Schedule handling of a newly created file; never blocks the caller."""
        file_path = Path(path).absolute()
        try:
            return self._dispatcher.submit(self._run_task, file_path)
        except DispatchRejected as exc:
            LOGGER.warning("Not handling %s: %s", file_path, exc)
            self._publish(Error(path=file_path, detail=str(exc)))
            return None

    def _run_task(self, path: Path) -> None:
        try:
            self._process(path)
        except Exception as exc:  # noqa: BLE001 - worker threads must not die silently
            LOGGER.exception("Unexpected failure while handling %s", path)
            self._publish(Error(path=path, detail=str(exc)))

    def _process(self, path: Path) -> None:
        if self._settle_delay:
            time.sleep(self._settle_delay)
        if not path.is_file():
            LOGGER.debug("Ignoring %s; it vanished before it settled", path)
            return
        self._dispatch(path, self._snapshot_config())

    def _dispatch(self, path: Path, config: Config) -> None:
        try:
            mode = OrganizationMode(config.organization_mode)
        except ValueError:
            detail = f"unknown organization mode: {config.organization_mode!r}"
            LOGGER.error(render_fields_block("Configuration Error", {"File": path, "Problem": detail}))
            self._publish(Error(path=path, detail=detail))
            return

        metadata = FileMetadata.from_path(path)
        if mode is OrganizationMode.ASK:
            self._enqueue(metadata)
            return

        rule = find_matching_rule(config.rules, metadata)
        if rule is None:
            if mode is OrganizationMode.BOTH:
                self._enqueue(metadata)
            else:
                LOGGER.info("No rule matched %s", path.name)
                self._publish(NoRuleMatched(path=path))
            return

        LOGGER.debug("Rule %r matched %s", rule.name or rule.destination, path.name)
        self._organize(path, rule.destination)

    def _organize(self, path: Path, destination: str) -> None:
        try:
            final_path = move_file(path, destination)
        except OrganizeError as exc:
            LOGGER.error(render_fields_block("Move Failed", {"File": path, "Destination": destination, "Error": exc}))
            self._publish(Error(path=path, detail=str(exc)))
            return
        self._publish(Moved(source=path, destination=final_path))

    def _enqueue(self, metadata: FileMetadata) -> None:
        entry = PendingFile.from_metadata(metadata)
        self._pending.enqueue(entry)
        LOGGER.info("Queued %s for review", entry.name)
        self._publish(Queued(path=entry.path))

    def _publish(self, event: OutcomeEvent) -> None:
        LOGGER.debug(format_event(event))
        self._events.publish(event)

    # Pending review

    def pending_files(self) -> Tuple[PendingFile, ...]:
        return self._pending.list()

    def pending_count(self) -> int:
        return len(self._pending)

    def resolve_pending(
        self,
        path: PathLike,
        destination: Optional[PathLike] = None,
        new_name: Optional[str] = None,
    ) -> Optional[Path]:
        """Move or skip a file waiting for review.

        Returns the final path when the file was moved, or ``None`` when it was
        skipped.

        Raises:
            QueueError: If the file is not pending or no longer exists on disk.
            OrganizeError: If the move fails; the entry stays pending.
        """
        key = Path(path).absolute()
        if self._pending.get(key) is None:
            raise QueueError(f"{key} is not pending review")

        if not key.exists():
            self._pending.remove_all(key)
            error = QueueError(f"file no longer exists: {key}")
            self._publish(Error(path=key, detail=str(error)))
            raise error

        if destination is None:
            self._pending.remove_all(key)
            LOGGER.info("Skipped %s", key.name)
            self._publish(Skipped(path=key))
            return None

        try:
            final_path = move_file(key, destination, new_name=new_name)
        except OrganizeError as exc:
            self._publish(Error(path=key, detail=str(exc)))
            raise

        self._pending.remove_all(key)
        self._publish(Moved(source=key, destination=final_path))
        return final_path


__all__ = [
    "BoundedDispatcher",
    "DEFAULT_MAX_BACKLOG",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_SETTLE_DELAY",
    "Watcher",
]
