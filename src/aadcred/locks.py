"""Per-object mutual exclusion for read-merge-write sequences.

The directory replaces a service principal's credential list as a whole, so
two writers that read the same list and each append a credential would
silently drop one of them.  Handlers hold the lock for the parent object
across the whole read-merge-write sequence.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class LockTimeoutError(TimeoutError):
    """Raised when a named lock cannot be acquired before the deadline."""


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        # Holders plus waiters; the entry is dropped when this reaches zero.
        self.users = 0


class LockTable:
    """A set of named locks keyed by ``(resource_kind, name)``.

    Locks are not reentrant: every ``lock`` must be paired with exactly one
    ``unlock`` and the same operation must not lock the same name twice.
    Different names never block each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[tuple[str, str], _Entry] = {}

    def lock(self, resource_kind: str, name: str, timeout: float | None = None) -> None:
        """Block until the named lock is held.

        Raises ``LockTimeoutError`` if ``timeout`` seconds pass first.
        """
        key = (resource_kind, name)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1

        acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            self._release_user(key, entry)
            raise LockTimeoutError(f"timed out waiting for lock on {resource_kind} {name!r}")

    def unlock(self, resource_kind: str, name: str) -> None:
        """Release a lock taken with ``lock``.

        Raises ``RuntimeError`` if the lock is not held.
        """
        key = (resource_kind, name)
        with self._guard:
            entry = self._entries.get(key)
        if entry is None or not entry.lock.locked():
            raise RuntimeError(f"lock on {resource_kind} {name!r} is not held")
        entry.lock.release()
        self._release_user(key, entry)

    @contextmanager
    def held(self, resource_kind: str, name: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the named lock for the duration of a ``with`` block."""
        self.lock(resource_kind, name, timeout)
        try:
            yield
        finally:
            self.unlock(resource_kind, name)

    def is_locked(self, resource_kind: str, name: str) -> bool:
        with self._guard:
            entry = self._entries.get((resource_kind, name))
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _release_user(self, key: tuple[str, str], entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]
