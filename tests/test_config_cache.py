"""Tests for configuration loading and the local SQLite cache."""
import sqlite3
import tempfile
from pathlib import Path

import pytest

from nexus.cache import LocalCache
from nexus.config import Config


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_defaults_are_unconfigured():
    cfg = Config()
    assert cfg.is_remote_configured is False
    assert cfg.missing_remote_keys() == ["firebase_api_key", "firebase_project_id"]
    assert cfg.cache_namespace == "nexus-tasks"


def test_load_missing_file_uses_defaults(tmp_dir):
    cfg = Config.load(str(tmp_dir / "absent.yaml"), environ={})
    assert cfg.firestore_database == "(default)"
    assert not cfg.cache_path.startswith("~")


def test_load_yaml_ignores_unknown_keys(tmp_dir):
    path = tmp_dir / "nexus.yaml"
    path.write_text(
        "firebase_api_key: abc\n"
        "firebase_project_id: demo\n"
        "poll_interval_secs: 2\n"
        "telegram_token: leftover\n"
    )
    cfg = Config.load(str(path), environ={})
    assert cfg.is_remote_configured
    assert cfg.poll_interval_secs == 2


def test_environment_overrides_file(tmp_dir):
    path = tmp_dir / "nexus.yaml"
    path.write_text("firebase_project_id: from-file\n")
    cfg = Config.load(str(path), environ={
        "FIREBASE_PROJECT_ID": "from-env",
        "FIREBASE_API_KEY": "key",
        "FIRESTORE_DATABASE": "",
        "NEXUS_CACHE_PATH": str(tmp_dir / "c.db"),
    })
    assert cfg.firebase_project_id == "from-env"
    assert cfg.firestore_database == "(default)"
    assert cfg.cache_path == str(tmp_dir / "c.db")
    assert cfg.is_remote_configured


def test_unreadable_yaml_falls_back_to_defaults(tmp_dir):
    path = tmp_dir / "nexus.yaml"
    path.write_text("- just\n- a list\n")
    cfg = Config.load(str(path), environ={})
    assert cfg == Config(cache_path=cfg.cache_path)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LocalCache
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_cache_round_trip(cache):
    assert cache.load("nexus-tasks") is None
    assert cache.save("nexus-tasks", {"tasks": [{"id": "t1"}], "projects": []})
    assert cache.load("nexus-tasks") == {"tasks": [{"id": "t1"}], "projects": []}


def test_cache_overwrites_previous_value(cache):
    cache.save("k", {"v": 1})
    cache.save("k", {"v": 2})
    assert cache.load("k") == {"v": 2}


def test_cache_clear(cache):
    cache.save("k", {"v": 1})
    assert cache.clear("k")
    assert cache.load("k") is None


def test_cache_rejects_unserializable_payload(cache):
    assert cache.save("k", {"v": object()}) is False
    assert cache.load("k") is None


def test_cache_discards_corrupt_entries(cache):
    with sqlite3.connect(cache.db_path) as conn:
        conn.execute(
            "INSERT INTO persisted_state (key, value, updated_at) VALUES (?, ?, ?)",
            ("broken", "{not json", "2025-01-01T00:00:00+00:00"),
        )
        conn.execute(
            "INSERT INTO persisted_state (key, value, updated_at) VALUES (?, ?, ?)",
            ("listy", "[1, 2]", "2025-01-01T00:00:00+00:00"),
        )
    assert cache.load("broken") is None
    assert cache.load("listy") is None


def test_cache_creates_parent_directories(tmp_dir):
    db = tmp_dir / "deep" / "er" / "state.db"
    cache = LocalCache(str(db))
    assert cache.save("k", {})
    assert db.exists()
