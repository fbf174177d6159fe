from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional, Tuple

from .models import PendingFile


class PendingQueue:
    """Ordered, thread-safe collection of files awaiting a manual decision.

    Entries are keyed by absolute path. Enqueueing the same path twice keeps
    both entries; callers that need deduplication must check first.
    """

    def __init__(self) -> None:
        self._entries: List[PendingFile] = []
        self._lock = threading.Lock()

    @staticmethod
    def _key(path: Path | str) -> Path:
        return Path(path).absolute()

    def enqueue(self, entry: PendingFile) -> None:
        with self._lock:
            self._entries.append(entry)

    def list(self) -> Tuple[PendingFile, ...]:
        with self._lock:
            return tuple(self._entries)

    def get(self, path: Path | str) -> Optional[PendingFile]:
        key = self._key(path)
        with self._lock:
            for entry in self._entries:
                if entry.path == key:
                    return entry
        return None

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.get(path) is not None

    def remove_all(self, path: Path | str) -> int:
        key = self._key(path)
        with self._lock:
            before = len(self._entries)
            self._entries = [entry for entry in self._entries if entry.path != key]
            return before - len(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["PendingQueue"]
