"""
interrogative/data/persistence.py

Snapshot contract shared by every store.

A store never hands its whole state to the adapter. It declares a
SnapshotSchema (store name, schema version, allow-listed field names) and
only those fields cross the persistence boundary, wrapped in a versioned
envelope:

    {"schema_version": 1, "data": {"recent_scans": [...], "scan_stats": {...}}}

Adapters are async and treated as fire-and-forget collaborators: the store
schedules a save after each mutation and never waits on it.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from interrogative.base.errors import ErrorCode, ScannerError

logger = logging.getLogger(__name__)

SCHEMA_VERSION_KEY = "schema_version"
DATA_KEY = "data"


@dataclass(frozen=True)
class SnapshotSchema:
    store_name: str
    version: int
    fields: Tuple[str, ...]

    def encode(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Wrap the allow-listed subset of a JSON-mode state dump."""
        return {
            SCHEMA_VERSION_KEY: self.version,
            DATA_KEY: {name: state[name] for name in self.fields if name in state},
        }

    def decode(self, envelope: Any) -> Dict[str, Any]:
        """
        Unwrap an envelope, keeping only allow-listed fields.

        Raises:
            ScannerError: SNAPSHOT_DECODE_FAILED for malformed envelopes,
                SNAPSHOT_VERSION_MISMATCH for snapshots written by another version.
        """
        if not isinstance(envelope, dict) or not isinstance(envelope.get(DATA_KEY), dict):
            raise ScannerError(
                ErrorCode.SNAPSHOT_DECODE_FAILED,
                f"Malformed snapshot for {self.store_name}",
            )
        version = envelope.get(SCHEMA_VERSION_KEY)
        if version != self.version:
            raise ScannerError(
                ErrorCode.SNAPSHOT_VERSION_MISMATCH,
                f"{self.store_name} snapshot version {version!r} != {self.version}",
                details={"found": version, "expected": self.version},
            )
        data = envelope[DATA_KEY]
        return {name: data[name] for name in self.fields if name in data}


class PersistenceAdapter(ABC):
    """Key-value snapshot storage keyed by store name."""

    @abstractmethod
    async def save(self, store_name: str, snapshot: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def load(self, store_name: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, store_name: str) -> None:
        ...

    async def close(self) -> None:
        return None


class MemoryPersistence(PersistenceAdapter):
    """
    In-process adapter. Snapshots are kept as JSON text so every save/load
    crosses the same serialization boundary as the SQLite adapter.
    """

    def __init__(self):
        self._blobs: Dict[str, str] = {}
        self.save_count = 0

    async def save(self, store_name: str, snapshot: Dict[str, Any]) -> None:
        self._blobs[store_name] = json.dumps(snapshot, sort_keys=True)
        self.save_count += 1

    async def load(self, store_name: str) -> Optional[Dict[str, Any]]:
        blob = self._blobs.get(store_name)
        return json.loads(blob) if blob is not None else None

    async def delete(self, store_name: str) -> None:
        self._blobs.pop(store_name, None)

    def stored_names(self):
        return sorted(self._blobs)
