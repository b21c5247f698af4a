"""
interrogative/data/base_store.py

Common machinery for every state container:

  - an in-memory pydantic state model, exposed read-only through `state`
  - a per-instance `changed` Signal (subscribe/unsubscribe for screens)
  - a declared SnapshotSchema; only allow-listed fields are persisted
  - fire-and-forget persistence after each successful mutation

Mutations are single-writer: only the store's own action methods assign
`self._state`, and each action builds its new values before assigning, so a
subscriber never observes a half-applied change.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, ClassVar, Dict, Optional, Set, Type

from pydantic import BaseModel, ValidationError

from interrogative.base.clock import Clock, SystemClock
from interrogative.base.config import AppConfig, get_config
from interrogative.base.errors import ScannerError
from interrogative.data.persistence import PersistenceAdapter, SnapshotSchema
from interrogative.utils.async_helpers import create_safe_task, drain_tasks, has_running_loop
from interrogative.utils.observer import Observable, Signal

logger = logging.getLogger(__name__)


class PersistentStore(Observable):
    """Base class for the scanner's observable, snapshot-persisted stores."""

    schema: ClassVar[SnapshotSchema]
    state_model: ClassVar[Type[BaseModel]]
    tag: ClassVar[str] = "Store"

    def __init__(
        self,
        persistence: Optional[PersistenceAdapter] = None,
        clock: Optional[Clock] = None,
        config: Optional[AppConfig] = None,
    ):
        super().__init__()
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self._persistence = persistence
        self._state = self.state_model()
        self._pending_saves: Set[asyncio.Task] = set()
        self.changed = Signal(f"{self.schema.store_name}.changed")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> Any:
        """Deep copy of the current state; mutating it never affects the store."""
        return self._state.model_copy(deep=True)

    @property
    def store_name(self) -> str:
        return self.schema.store_name

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        return self.changed.connect(callback)

    def unsubscribe(self, callback: Callable[[Any], None]) -> None:
        self.changed.disconnect(callback)

    # ------------------------------------------------------------------
    # Snapshot contract
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        return self.schema.encode(self._state.model_dump(mode="json"))

    def restore_snapshot(self, envelope: Any) -> bool:
        """
        Replace the persisted fields from a snapshot envelope.

        Every field outside the allow-list resets to its default. Returns False
        and leaves the store untouched when the envelope cannot be used.
        """
        try:
            data = self.schema.decode(envelope)
            restored = self.state_model.model_validate(data)
        except ScannerError as e:
            logger.warning(f"[{self.tag}] Ignoring snapshot: {e}")
            return False
        except ValidationError as e:
            logger.warning(f"[{self.tag}] Snapshot failed validation: {e.error_count()} error(s)")
            return False

        self._state = self._after_restore(restored)
        self.changed.emit(self.state)
        return True

    def _after_restore(self, state: Any) -> Any:
        """Hook for recomputing derived fields after a restore."""
        return state

    async def hydrate(self) -> bool:
        """Load the last persisted snapshot, if any. Adapter failures are logged and swallowed."""
        if self._persistence is None:
            return False
        try:
            envelope = await self._persistence.load(self.store_name)
        except Exception as e:
            logger.warning(f"[{self.tag}] Snapshot load failed: {e}")
            return False
        if envelope is None:
            return False
        return self.restore_snapshot(envelope)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def _commit(self, persist: bool = True) -> None:
        """
        Publish the current state to subscribers and, when `persist` is set,
        schedule a snapshot save. Ephemeral-only changes pass persist=False.
        """
        self.changed.emit(self.state)
        if persist:
            self._schedule_save()

    def _schedule_save(self) -> None:
        if self._persistence is None:
            return
        snapshot = self.to_snapshot()
        if not has_running_loop():
            logger.debug(f"[{self.tag}] No event loop; snapshot not persisted")
            return
        create_safe_task(self._save(snapshot), name=f"save_{self.store_name}", track=self._pending_saves)

    async def _save(self, snapshot: Dict[str, Any]) -> None:
        try:
            await self._persistence.save(self.store_name, snapshot)
        except Exception as e:
            # State is reconstructible by the user; a lost write is acceptable
            logger.warning(f"[{self.tag}] Snapshot save failed: {e}")

    async def save_now(self) -> None:
        """Persist the current snapshot and wait for it."""
        if self._persistence is not None:
            await self._save(self.to_snapshot())

    async def flush(self) -> None:
        """Wait for every scheduled save to finish."""
        await drain_tasks(list(self._pending_saves))

    @property
    def pending_saves(self) -> int:
        return len(self._pending_saves)
