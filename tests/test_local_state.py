"""Tests for deckhand.core.local_state."""

from __future__ import annotations

import os

from deckhand.core.local_state import CONFIG_VERSION_KEY, LocalState


def test_missing_file_is_empty(tmp_path):
    state = LocalState(tmp_path / "state.json")
    assert state.load() == {}
    assert state.config_version() is None


def test_set_get_roundtrip(tmp_path):
    state = LocalState(tmp_path / "nested" / "state.json")
    state.set("foo", "bar")
    assert state.get("foo") == "bar"
    assert oct(os.stat(state.path).st_mode & 0o777) == "0o600"


def test_config_version(tmp_path):
    state = LocalState(tmp_path / "state.json")
    state.set_config_version(3)
    assert state.get(CONFIG_VERSION_KEY) == "3"
    assert state.config_version() == 3


def test_config_version_not_numeric(tmp_path):
    state = LocalState(tmp_path / "state.json")
    state.set(CONFIG_VERSION_KEY, "three")
    assert state.config_version() is None


def test_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    assert LocalState(path).load() == {}


def test_clear(tmp_path):
    state = LocalState(tmp_path / "state.json")
    state.set("foo", 1)
    state.clear()
    assert not state.path.exists()
    state.clear()
