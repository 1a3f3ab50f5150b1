"""Shared fixtures for timew-import tests."""

import logging

import pytest

from timew_import.output import ColoredConsoleHandler
from timew_import.store import MemoryStore


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from the user's config, data directory and env overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("TIMEW_IMPORT_DB_URL", raising=False)
    monkeypatch.delenv("START_DATE", raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo setup_logging calls made by CLI tests."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if isinstance(handler, (ColoredConsoleHandler, logging.FileHandler)):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
