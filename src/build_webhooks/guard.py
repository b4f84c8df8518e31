"""
build_webhooks.guard — Read locking for build artifact directories.

The host server owns the real guard; anything with lock_reading/unlock_reading
satisfies ArtifactsGuard. LocalArtifactsGuard is an in-process readers/writer
lock per directory for running outside a host (CLI, tests).
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol


class ArtifactsGuard(Protocol):
    def lock_reading(self, directory: Path) -> None: ...

    def unlock_reading(self, directory: Path) -> None: ...


@contextmanager
def read_locked(guard: ArtifactsGuard, directory: Path) -> Iterator[Path]:
    """Hold a read lock on directory for the duration of the block."""
    guard.lock_reading(directory)
    try:
        yield directory
    finally:
        guard.unlock_reading(directory)


class _DirectoryLock:
    def __init__(self) -> None:
        self.condition = threading.Condition()
        self.readers = 0
        self.writer = False
        # callers between acquire and release, waiters included
        self.users = 0


class LocalArtifactsGuard:
    """Shared-read / exclusive-write lock keyed by resolved directory path.

    Registry entries live only while a directory is locked or contended.
    """

    def __init__(self) -> None:
        self._locks: dict[Path, _DirectoryLock] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def _using(self, directory: Path) -> Iterator[_DirectoryLock]:
        key = directory.resolve()
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = _DirectoryLock()
            lock.users += 1
        try:
            yield lock
        finally:
            with self._registry_lock:
                lock.users -= 1
                if lock.users == 0 and lock.readers == 0 and not lock.writer:
                    del self._locks[key]

    def lock_reading(self, directory: Path) -> None:
        with self._using(directory) as lock, lock.condition:
            lock.condition.wait_for(lambda: not lock.writer)
            lock.readers += 1

    def unlock_reading(self, directory: Path) -> None:
        with self._using(directory) as lock, lock.condition:
            if lock.readers == 0:
                raise RuntimeError(f"Read lock not held for {directory}")
            lock.readers -= 1
            if lock.readers == 0:
                lock.condition.notify_all()

    def lock_writing(self, directory: Path) -> None:
        with self._using(directory) as lock, lock.condition:
            lock.condition.wait_for(lambda: not lock.writer and lock.readers == 0)
            lock.writer = True

    def unlock_writing(self, directory: Path) -> None:
        with self._using(directory) as lock, lock.condition:
            if not lock.writer:
                raise RuntimeError(f"Write lock not held for {directory}")
            lock.writer = False
            lock.condition.notify_all()
