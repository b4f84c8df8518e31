"""Unit tests for the artifacts directory guard."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from build_webhooks.guard import LocalArtifactsGuard, read_locked


def test_read_locked_releases_on_exception(tmp_path: Path) -> None:
    guard = MagicMock()
    with pytest.raises(RuntimeError):
        with read_locked(guard, tmp_path):
            raise RuntimeError("listing failed")
    guard.lock_reading.assert_called_once_with(tmp_path)
    guard.unlock_reading.assert_called_once_with(tmp_path)


def test_readers_share_the_lock(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    guard.lock_reading(tmp_path)
    guard.lock_reading(tmp_path)
    guard.unlock_reading(tmp_path)
    guard.unlock_reading(tmp_path)


def test_unlock_without_lock_raises(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    with pytest.raises(RuntimeError):
        guard.unlock_reading(tmp_path)
    with pytest.raises(RuntimeError):
        guard.unlock_writing(tmp_path)


def test_writer_waits_for_readers(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    guard.lock_reading(tmp_path)
    acquired = threading.Event()

    def _writer() -> None:
        guard.lock_writing(tmp_path)
        acquired.set()
        guard.unlock_writing(tmp_path)

    thread = threading.Thread(target=_writer)
    thread.start()
    assert not acquired.wait(timeout=0.2)

    guard.unlock_reading(tmp_path)
    thread.join(timeout=5)
    assert acquired.is_set()


def test_reader_waits_for_writer(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    guard.lock_writing(tmp_path)
    acquired = threading.Event()

    def _reader() -> None:
        with read_locked(guard, tmp_path):
            acquired.set()

    thread = threading.Thread(target=_reader)
    thread.start()
    assert not acquired.wait(timeout=0.2)

    guard.unlock_writing(tmp_path)
    thread.join(timeout=5)
    assert acquired.is_set()


def test_directories_locked_independently(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    guard.lock_writing(first)
    guard.lock_writing(second)
    guard.unlock_writing(first)
    guard.unlock_writing(second)


def test_registry_holds_only_locked_directories(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    guard.lock_reading(tmp_path)
    guard.lock_reading(tmp_path)
    assert list(guard._locks) == [tmp_path.resolve()]

    guard.unlock_reading(tmp_path)
    assert len(guard._locks) == 1
    guard.unlock_reading(tmp_path)
    assert guard._locks == {}


def test_registry_empty_after_many_directories(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    for i in range(200):
        directory = tmp_path / f"build-{i}"
        with read_locked(guard, directory):
            pass
        guard.lock_writing(directory)
        guard.unlock_writing(directory)
    assert guard._locks == {}


def test_failed_unlock_leaves_no_entry(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    with pytest.raises(RuntimeError):
        guard.unlock_reading(tmp_path)
    assert guard._locks == {}


def test_waiting_writer_keeps_entry(tmp_path: Path) -> None:
    guard = LocalArtifactsGuard()
    guard.lock_reading(tmp_path)
    acquired = threading.Event()
    release = threading.Event()

    def _writer() -> None:
        guard.lock_writing(tmp_path)
        acquired.set()
        release.wait(timeout=5)
        guard.unlock_writing(tmp_path)

    thread = threading.Thread(target=_writer)
    thread.start()
    assert not acquired.wait(timeout=0.2)

    guard.unlock_reading(tmp_path)
    assert acquired.wait(timeout=5)
    assert len(guard._locks) == 1

    release.set()
    thread.join(timeout=5)
    assert guard._locks == {}
