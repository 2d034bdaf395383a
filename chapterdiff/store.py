"""
Record storage for change-tracking rows, keyed by refinement id.

A refinement's rows are always replaced as a whole, so readers see either the
previous batch or the new one, never a mix.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Protocol, Sequence


class RecordStore(Protocol):
    def replace_records(self, refinement_id: str, rows: Sequence[Dict[str, Any]]) -> None:
        ...

    def fetch_records(self, refinement_id: str) -> List[Dict[str, Any]]:
        ...

    def delete_records(self, refinement_id: str) -> None:
        ...


class InMemoryRecordStore:
    """Process-local store; each refinement maps to an immutable tuple of rows."""

    def __init__(self):
        self._rows: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def replace_records(self, refinement_id: str, rows: Sequence[Dict[str, Any]]) -> None:
        batch = tuple(dict(r) for r in rows)
        with self._lock:
            self._rows[refinement_id] = batch

    def fetch_records(self, refinement_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            batch = self._rows.get(refinement_id, ())
        return [dict(r) for r in batch]

    def delete_records(self, refinement_id: str) -> None:
        with self._lock:
            self._rows.pop(refinement_id, None)
