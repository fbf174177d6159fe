from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from folderwatch.config import ConfigStore
from folderwatch.events import EventBus


@pytest.fixture
def mock_observer():
    """Mock watchdog Observer."""
    observer = MagicMock()
    observer.start = MagicMock()
    observer.stop = MagicMock()
    observer.join = MagicMock()
    observer.schedule = MagicMock()
    observer.unschedule_all = MagicMock()
    return observer


@pytest.fixture
def observer_factory(mock_observer):
    return MagicMock(return_value=mock_observer)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(capacity=50)


@pytest.fixture
def config_store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "config" / "config.json")


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    path = tmp_path / "inbox"
    path.mkdir()
    return path
