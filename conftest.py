"""
Shared pytest fixtures.
"""

import os
import sys

import pytest

# Ensure we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import db


class MemoryStore:
    """In-memory key-value store with the same get/set surface as db.DatabaseStore."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.writes = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes.append(key)
        self.data[key] = value


class FailingStore(MemoryStore):
    """Store whose writes fail for the given keys (all keys by default)."""

    def __init__(self, data=None, failing_keys=None):
        super().__init__(data)
        self.failing_keys = failing_keys

    def set(self, key, value):
        if self.failing_keys is None or key in self.failing_keys:
            raise OSError(f"disk full while writing {key}")
        super().set(key, value)


class BrokenReadStore(MemoryStore):
    """Store whose reads raise."""

    def get(self, key):
        raise OSError("storage unavailable")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    """Point db.py at a fresh SQLite file and run migrations."""
    db_file = tmp_path / "test_tracker.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    db.reset_db_config()
    db.init_db()
    yield str(db_file)
    db.reset_db_config()
