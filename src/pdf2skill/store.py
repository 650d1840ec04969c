"""Shared output directory of compiled packs, with per-name locks and TTL eviction."""

from __future__ import annotations

import logging
import shutil
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24


@dataclass
class _NameLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class OutputStore:
    """A directory of ``<name>/`` folders and ``<name>.zip`` archives.

    Compiles of the same name are serialized by ``lock(name)``, and ``sweep``
    only removes a name's entries while holding that name's lock. A name's
    lock is kept only while someone holds or waits on it. Locks are per
    process; separate processes sharing ``root`` are not coordinated.
    """

    def __init__(self, root: str | Path, ttl_hours: int = DEFAULT_TTL_HOURS):
        self.root = Path(root).resolve()
        self.ttl_hours = ttl_hours
        self._guard = threading.Lock()
        self._locks: dict[str, _NameLock] = {}

    def _checkout(self, name: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(name)
            if entry is None:
                entry = self._locks[name] = _NameLock()
            entry.users += 1
            return entry.lock

    def _checkin(self, name: str) -> None:
        with self._guard:
            entry = self._locks[name]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[name]

    @contextmanager
    def lock(self, name: str) -> Iterator[Path]:
        """Hold the lock for ``name``; yields the store root to write into."""
        name_lock = self._checkout(name)
        try:
            with name_lock:
                self.root.mkdir(parents=True, exist_ok=True)
                yield self.root
        finally:
            self._checkin(name)

    @staticmethod
    def _entry_name(path: Path) -> str:
        if path.suffix == ".zip" and not path.is_dir():
            return path.stem
        return path.name

    def sweep(self, now: float | None = None) -> list[Path]:
        """Delete top-level entries not modified within the TTL.

        The TTL is at least one hour. Entries whose name is locked by an
        in-flight compile are skipped. Failures are logged and skipped.

        Returns:
            The paths that were removed.
        """
        if not self.root.exists():
            return []

        ttl_seconds = max(1, self.ttl_hours) * 60 * 60
        now = time.time() if now is None else now
        removed: list[Path] = []

        for entry in sorted(self.root.iterdir()):
            name = self._entry_name(entry)
            name_lock = self._checkout(name)
            try:
                if not name_lock.acquire(blocking=False):
                    logger.debug("Skipping locked output %s", entry)
                    continue
                try:
                    if now - entry.stat().st_mtime <= ttl_seconds:
                        continue
                    if entry.is_dir():
                        shutil.rmtree(entry)
                    else:
                        entry.unlink()
                    removed.append(entry)
                except OSError as e:
                    logger.warning("Failed to remove expired output %s: %s", entry, e)
                finally:
                    name_lock.release()
            finally:
                self._checkin(name)

        if removed:
            logger.info("Swept %d expired outputs from %s", len(removed), self.root)
        return removed
