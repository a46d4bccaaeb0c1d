"""Bounded table correlating observed renames with later change notifications."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

RecordKey = Union[int, str]


class RenameObserver(Protocol):
    """Receiver of successful renames from any intercepted rename pathway."""

    def rename_observed(self, item_id: Optional[int], path: str, filename: str) -> None: ...


@dataclass(frozen=True, slots=True)
class RenameRecord:
    """A single observed rename.

    Attributes:
        item_id: Attachment whose file was renamed, when known.
        path: Absolute path of the file after the rename.
        filename: Filename after the rename.
        recorded_at: Monotonic timestamp of the observation.
    """

    item_id: Optional[int]
    path: str
    filename: str
    recorded_at: float


def _normalize(path: str) -> str:
    return str(Path(path))


class RenameMemory:
    """Per-item rename records with size and age bounds.

    Records are keyed by item id; renames of files not tied to a known item are
    keyed by path. Matching a record in :meth:`consume` removes it.
    """

    def __init__(
        self,
        *,
        max_entries: int = 256,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max(1, max_entries)
        self._ttl = ttl_seconds
        self._clock = clock
        self._records: OrderedDict[RecordKey, RenameRecord] = OrderedDict()
        self._last: Optional[RenameRecord] = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._records)

    @property
    def last(self) -> Optional[RenameRecord]:
        """Most recent rename observed through any pathway."""
        return self._last

    def rename_observed(self, item_id: Optional[int], path: str, filename: str) -> None:
        """Store a rename, replacing any earlier record for the same item or path.

        The oldest records are dropped once the table holds more than
        ``max_entries``.

        Args:
            item_id: Renamed attachment, or ``None`` when only the path is known.
            path: Path of the file after the rename.
            filename: Filename after the rename.
        """
        record = RenameRecord(
            item_id=item_id,
            path=_normalize(path),
            filename=filename,
            recorded_at=self._clock(),
        )
        key: RecordKey = item_id if item_id is not None else record.path
        with self._lock:
            self._records.pop(key, None)
            self._records[key] = record
            self._last = record
            self._evict_expired()
            while len(self._records) > self._max_entries:
                self._records.popitem(last=False)

    def get(self, item_id: int) -> Optional[RenameRecord]:
        """Return the pending record for ``item_id`` without consuming it.

        Args:
            item_id: Attachment to look up.

        Returns:
            Optional[RenameRecord]: The unexpired record, or ``None``.
        """
        with self._lock:
            self._evict_expired()
            return self._records.get(item_id)

    def consume(self, item_id: int, current_path: str) -> Optional[RenameRecord]:
        """Pop and return the record matching ``item_id`` at ``current_path``.

        A record stored for the item is matched first; otherwise a path-keyed
        record for ``current_path`` is accepted.
        """
        normalized = _normalize(current_path)
        with self._lock:
            self._evict_expired()
            matched: Optional[RenameRecord] = None
            record = self._records.get(item_id)
            if record is not None and record.path == normalized:
                matched = self._records.pop(item_id)
            path_record = self._records.pop(normalized, None)
            return matched or path_record

    def clear(self) -> None:
        """Forget every pending record and the last observed rename."""
        with self._lock:
            self._records.clear()
            self._last = None

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self._ttl
        while self._records:
            key, oldest = next(iter(self._records.items()))
            if oldest.recorded_at >= cutoff:
                break
            del self._records[key]


__all__ = ["RenameMemory", "RenameObserver", "RenameRecord"]
