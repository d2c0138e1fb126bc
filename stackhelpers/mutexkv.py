"""A store of named locks for serialising work on shared keys."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["MutexKV"]

log = logging.getLogger(__name__)


class MutexKV:
    """Key/value store of mutexes.

    Collaborators that share knowledge of a key can serialise their work on it
    by locking that key.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._store: dict[str, threading.Lock] = {}

    def _get(self, key: str) -> threading.Lock:
        with self._guard:
            mutex = self._store.get(key)
            if mutex is None:
                mutex = threading.Lock()
                self._store[key] = mutex
            return mutex

    def lock(self, key: str) -> None:
        """Block until the lock for ``key`` is held by the caller."""
        log.debug("Locking %r", key)
        self._get(key).acquire()
        log.debug("Locked %r", key)

    def unlock(self, key: str) -> None:
        """Release the lock for ``key``; raises RuntimeError if it is not held."""
        log.debug("Unlocking %r", key)
        self._get(key).release()
        log.debug("Unlocked %r", key)

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of a ``with`` block."""
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)