"""Module admin_store: administrative directories (users, API configs, feature rollouts)."""
#
# PURPOSE:
# Plain create/read/update/delete collections used by the admin console.
# The only invariant is identifier uniqueness inside each collection.
#
# API CONNECTIVITY:
# API configs are configuration records only. test_api_connection() asks an
# injected ConnectivityProbe; the default SimulatedProbe never opens a
# socket, it waits on the clock and draws a seeded pass/fail.
#

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from interrogative.base.clock import Clock, SystemClock
from interrogative.base.errors import ErrorCode, ScannerError, handle_error
from interrogative.data.base_store import PersistentStore
from interrogative.data.models import (
    ApiConfig,
    ApiStatus,
    AppUser,
    FeatureStatus,
    FeatureUpdate,
    model_payload,
    new_id,
)
from interrogative.data.persistence import SnapshotSchema
from interrogative.utils.async_helpers import run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0


class ConnectivityProbe(ABC):
    """Answers whether a configured threat-intel endpoint is reachable."""

    @abstractmethod
    async def probe(self, config: ApiConfig) -> bool:
        ...


class SimulatedProbe(ConnectivityProbe):
    """Waits `delay` seconds of clock time, then succeeds with `success_rate`."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        delay: float = 2.0,
        success_rate: float = 0.7,
        seed: Optional[int] = None,
    ):
        self.clock = clock or SystemClock()
        self.delay = delay
        self.success_rate = success_rate
        self._rng = random.Random(seed)

    async def probe(self, config: ApiConfig) -> bool:
        await self.clock.sleep(self.delay)
        return self._rng.random() < self.success_rate


class AdminState(BaseModel):
    app_users: List[AppUser] = Field(default_factory=list)
    api_configs: List[ApiConfig] = Field(default_factory=list)
    feature_updates: List[FeatureUpdate] = Field(default_factory=list)
    active_module: str = "dashboard"
    is_loading: bool = False
    error: Optional[str] = None


class AdminDirectory(PersistentStore):
    schema = SnapshotSchema("admin-store", 1, ("app_users", "api_configs", "feature_updates"))
    state_model = AdminState
    tag = "AdminStore"

    def __init__(
        self,
        *args,
        probe: Optional[ConnectivityProbe] = None,
        ledger=None,
        seed: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.probe = probe or SimulatedProbe(clock=self.clock, seed=seed)
        self.ledger = ledger
        self._rng = random.Random(seed)

    def attach_ledger(self, ledger) -> None:
        """Connect the community ledger that moderation actions act on."""
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @property
    def app_users(self) -> List[AppUser]:
        return [u.model_copy() for u in self._state.app_users]

    def add_user(self, data: Union[AppUser, Mapping[str, Any]]) -> AppUser:
        user = self._add("app_users", AppUser, data, "user", {"registered_at": self.clock.now()})
        logger.info(f"[AdminStore] New user registered: {user.name} ({user.email})")
        return user

    def update_user(self, user_id: str, **changes: Any) -> bool:
        return self._update("app_users", AppUser, user_id, changes)

    def delete_user(self, user_id: str) -> bool:
        return self._delete("app_users", user_id)

    def toggle_user_status(self, user_id: str) -> Optional[bool]:
        """Flip is_active; returns the new value, or None for an unknown id."""
        user = self._find("app_users", user_id)
        if user is None:
            return None
        self._update("app_users", AppUser, user_id, {"is_active": not user.is_active})
        return not user.is_active

    # ------------------------------------------------------------------
    # API configs
    # ------------------------------------------------------------------

    @property
    def api_configs(self) -> List[ApiConfig]:
        return [c.model_copy() for c in self._state.api_configs]

    def add_api_config(self, data: Union[ApiConfig, Mapping[str, Any]]) -> ApiConfig:
        return self._add(
            "api_configs", ApiConfig, data, "api",
            {"last_updated": self.clock.now(), "request_count": 0, "error_rate": 0.0},
        )

    def update_api_config(self, api_id: str, **changes: Any) -> bool:
        changes.setdefault("last_updated", self.clock.now())
        return self._update("api_configs", ApiConfig, api_id, changes)

    def delete_api_config(self, api_id: str) -> bool:
        return self._delete("api_configs", api_id)

    async def test_api_connection(self, api_id: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> Optional[bool]:
        """
        Probe an API config and record the result on it.

        Returns True/False for the probe outcome, or None for an unknown id.
        A failure sets the store's `error`; the next success clears it.
        """
        config = self._find("api_configs", api_id)
        if config is None:
            return None

        self._set_ephemeral(is_loading=True)
        error: Optional[str] = None
        try:
            result = await run_with_timeout(
                self.probe.probe(config), timeout, default=None, name=f"probe_{api_id}",
            )
        except Exception as e:
            err = handle_error(e, context=f"Testing {config.name}")
            logger.warning(f"[AdminStore] {err}")
            result, error = False, err.message
        else:
            if result is None:
                error = f"Connection test for {config.name} timed out after {timeout}s"
            elif not result:
                error = f"Connection test for {config.name} failed"
        success = bool(result)

        # The config may have been deleted while the probe was running
        index = self._index_of("api_configs", api_id)
        if index is not None:
            configs = list(self._state.api_configs)
            configs[index] = configs[index].model_copy(update={
                "status": ApiStatus.ACTIVE if success else ApiStatus.ERROR,
                "last_updated": self.clock.now(),
            })
            self._state = self._state.model_copy(update={"api_configs": configs})

        self._state = self._state.model_copy(update={"is_loading": False, "error": error})
        self._commit()
        return success

    # ------------------------------------------------------------------
    # Feature updates
    # ------------------------------------------------------------------

    @property
    def feature_updates(self) -> List[FeatureUpdate]:
        return [f.model_copy() for f in self._state.feature_updates]

    def add_feature_update(self, data: Union[FeatureUpdate, Mapping[str, Any]]) -> FeatureUpdate:
        return self._add(
            "feature_updates", FeatureUpdate, data, "feature",
            {"created_at": self.clock.now(), "affected_users": 0},
        )

    def update_feature_status(self, feature_id: str, status: Union[FeatureStatus, str]) -> bool:
        return self._update("feature_updates", FeatureUpdate, feature_id, {"status": FeatureStatus(status)})

    def deploy_feature(self, feature_id: str) -> bool:
        changed = self._update("feature_updates", FeatureUpdate, feature_id, {
            "status": FeatureStatus.DEPLOYED,
            "deployed_at": self.clock.now(),
            "affected_users": self._rng.randint(1000, 10999),
        })
        if changed:
            logger.info(f"[AdminStore] Deployed feature {feature_id}")
        return changed

    # ------------------------------------------------------------------
    # Community moderation
    # ------------------------------------------------------------------

    def approve_community_threat(self, report_id: str) -> bool:
        if self.ledger is None:
            logger.warning(f"[AdminStore] No community ledger attached; cannot approve {report_id}")
            return False
        return self.ledger.verify_report(report_id)

    def reject_community_threat(self, report_id: str) -> bool:
        if self.ledger is None:
            logger.warning(f"[AdminStore] No community ledger attached; cannot reject {report_id}")
            return False
        return self.ledger.reject_report(report_id)

    # ------------------------------------------------------------------
    # UI flags and seed data
    # ------------------------------------------------------------------

    def set_active_module(self, module: str) -> None:
        self._set_ephemeral(active_module=module)

    def set_loading(self, is_loading: bool) -> None:
        self._set_ephemeral(is_loading=bool(is_loading))

    def set_error(self, error: Optional[str]) -> None:
        self._set_ephemeral(error=error)

    def initialize_admin_data(self) -> bool:
        if self._state.app_users or self._state.api_configs or self._state.feature_updates:
            return False
        from interrogative.data.seed import demo_admin

        users, apis, features = demo_admin(self.clock.now())
        self._state = self._state.model_copy(update={
            "app_users": users,
            "api_configs": apis,
            "feature_updates": features,
        })
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Generic collection helpers
    # ------------------------------------------------------------------

    def _set_ephemeral(self, **update: Any) -> None:
        if all(getattr(self._state, k) == v for k, v in update.items()):
            return
        self._state = self._state.model_copy(update=update)
        self._commit(persist=False)

    def _index_of(self, field: str, item_id: str) -> Optional[int]:
        for i, item in enumerate(getattr(self._state, field)):
            if item.id == item_id:
                return i
        return None

    def _find(self, field: str, item_id: str):
        index = self._index_of(field, item_id)
        return None if index is None else getattr(self._state, field)[index]

    def _add(self, field: str, model: Type[BaseModel], data: Any, prefix: str, defaults: Dict[str, Any]):
        payload = {**defaults, **model_payload(data)}
        payload.setdefault("id", new_id(prefix))
        if self._index_of(field, payload["id"]) is not None:
            raise ScannerError(
                ErrorCode.ADMIN_DUPLICATE_ID,
                f"{model.__name__} {payload['id']!r} already exists",
                details={"collection": field, "id": payload["id"]},
            )
        try:
            item = model.model_validate(payload)
        except ValidationError as e:
            raise ScannerError(
                ErrorCode.ADMIN_INVALID,
                f"Invalid {model.__name__}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e
        items = list(getattr(self._state, field)) + [item]
        self._state = self._state.model_copy(update={field: items})
        self._commit()
        return item.model_copy()

    def _update(self, field: str, model: Type[BaseModel], item_id: str, changes: Dict[str, Any]) -> bool:
        index = self._index_of(field, item_id)
        if index is None:
            return False
        if "id" in changes and changes["id"] != item_id:
            raise ScannerError(ErrorCode.ADMIN_INVALID, "Identifiers cannot be changed", details={"id": item_id})
        items = list(getattr(self._state, field))
        try:
            updated = model.model_validate({**items[index].model_dump(), **changes})
        except ValidationError as e:
            raise ScannerError(
                ErrorCode.ADMIN_INVALID,
                f"Invalid update for {item_id}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e
        if updated == items[index]:
            return False
        items[index] = updated
        self._state = self._state.model_copy(update={field: items})
        self._commit()
        return True

    def _delete(self, field: str, item_id: str) -> bool:
        items = [i for i in getattr(self._state, field) if i.id != item_id]
        if len(items) == len(getattr(self._state, field)):
            return False
        self._state = self._state.model_copy(update={field: items})
        self._commit()
        return True
