"""Last-known-good snapshots used for stale fallback.

Unlike the TTL cache, snapshots never expire: they are what the governor
serves when it cannot reach the remote store at all. One cache key (the
primary read, e.g. the current business) is also written to disk so it
survives a restart.

Persistence is best-effort. Read and write failures are logged and the
in-memory copy keeps working.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class SnapshotStore:
    """LRU-bounded map of cache key to last successful value.

    Attributes:
        primary_key: Cache key whose snapshot is persisted. Other reads of
            the same resource type stay in memory only.
        path: JSON file for the persisted slot (None keeps it in memory only).
    """

    def __init__(
        self,
        *,
        primary_key: str,
        path: str | Path | None = None,
        max_entries: int = 100,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.primary_key = primary_key
        self.path = Path(path) if path else None
        self._max_entries = max_entries
        self._values: OrderedDict[str, Any] = OrderedDict()
        self._load_persisted()

    def __len__(self) -> int:
        return len(self._values)

    def remember(self, key: str, value: Any) -> None:
        """Keep ``value`` as the last good result for ``key``."""

        self._values[key] = value
        self._values.move_to_end(key)
        while len(self._values) > self._max_entries:
            self._values.popitem(last=False)

        if key == self.primary_key:
            self._persist(value)

    def recall(self, key: str) -> Any | None:
        value = self._values.get(key)
        if value is not None:
            self._values.move_to_end(key)
        return value

    def forget_all(self) -> None:
        """Drop in-memory snapshots. The persisted slot is left in place."""

        self._values.clear()

    def _persist(self, value: Any) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(
                json.dumps({"key": self.primary_key, "value": value}), encoding="utf-8"
            )
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(
                "snapshot.persist_failed",
                extra={"path": str(self.path), "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return
        logger.debug("snapshot.persisted", extra={"cache_key": self.primary_key, "path": str(self.path)})

    def _load_persisted(self) -> None:
        if self.path is None or not self.path.is_file():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            key, value = raw["key"], raw["value"]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(
                "snapshot.load_failed",
                extra={"path": str(self.path), "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return
        if key != self.primary_key:
            # Written under another primary key or key format
            logger.info("snapshot.ignored", extra={"cache_key": key, "path": str(self.path)})
            return
        if value is not None:
            self._values[key] = value
            logger.info("snapshot.loaded", extra={"cache_key": key, "path": str(self.path)})
