"""Module notification_store: notification list with a derived unread counter."""
#
# PURPOSE:
# Holds the notifications shown in the alerts tab. unread_count is always
# recomputed from the list after a mutation (and after a restore), never
# patched incrementally, so it cannot drift from the notifications it counts.
#

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.base_store import PersistentStore
from interrogative.data.models import Notification, NotificationDraft, new_id
from interrogative.data.persistence import SnapshotSchema

logger = logging.getLogger(__name__)


class NotificationState(BaseModel):
    notifications: List[Notification] = Field(default_factory=list)
    unread_count: int = 0


def count_unread(notifications: List[Notification]) -> int:
    return sum(1 for n in notifications if not n.is_read)


class NotificationCenter(PersistentStore):
    schema = SnapshotSchema("notification-store", 1, ("notifications", "unread_count"))
    state_model = NotificationState
    tag = "NotificationStore"

    @property
    def notifications(self) -> List[Notification]:
        return [n.model_copy() for n in self._state.notifications]

    @property
    def unread_count(self) -> int:
        return self._state.unread_count

    def get_unread_count(self) -> int:
        return self._state.unread_count

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        for n in self._state.notifications:
            if n.id == notification_id:
                return n.model_copy()
        return None

    def add_notification(self, draft: Union[NotificationDraft, Mapping[str, Any]]) -> str:
        """
        Prepend a new notification and return its id.

        Raises:
            ScannerError: NOTIFY_INVALID when the draft has no title or an unknown type.
        """
        if not isinstance(draft, NotificationDraft):
            try:
                draft = NotificationDraft.model_validate(draft)
            except ValidationError as e:
                raise ScannerError(
                    ErrorCode.NOTIFY_INVALID,
                    "Invalid notification",
                    details={"errors": [err["msg"] for err in e.errors()]},
                ) from e

        notification = Notification(
            id=new_id("notif"),
            title=draft.title,
            message=draft.message,
            type=draft.type,
            is_read=draft.is_read,
            created_at=self.clock.now(),
        )
        self._replace([notification] + list(self._state.notifications))
        logger.debug(f"[NotificationStore] Added {notification.type.value} notification {notification.id}")
        return notification.id

    def mark_as_read(self, notification_id: str) -> bool:
        """Returns True only when an unread notification was flipped."""
        changed = False
        updated = []
        for n in self._state.notifications:
            if n.id == notification_id and not n.is_read:
                n = n.model_copy(update={"is_read": True})
                changed = True
            updated.append(n)
        if changed:
            self._replace(updated)
        return changed

    def mark_all_as_read(self) -> int:
        """Mark everything read; returns how many notifications changed."""
        flipped = self._state.unread_count
        if flipped == 0:
            return 0
        self._replace([
            n if n.is_read else n.model_copy(update={"is_read": True})
            for n in self._state.notifications
        ])
        return flipped

    def delete_notification(self, notification_id: str) -> bool:
        remaining = [n for n in self._state.notifications if n.id != notification_id]
        if len(remaining) == len(self._state.notifications):
            return False
        self._replace(remaining)
        return True

    def clear_all_notifications(self) -> None:
        if not self._state.notifications:
            return
        self._replace([])
        logger.info("[NotificationStore] Cleared all notifications")

    def initialize_demo_notifications(self) -> bool:
        """Seed the demo notifications when the list is empty."""
        if self._state.notifications:
            return False
        # Imported here: seed content is only needed on first launch
        from interrogative.data.seed import demo_notifications

        self._replace(demo_notifications(self.clock.now()))
        logger.info("[NotificationStore] Seeded demo notifications")
        return True

    def _replace(self, notifications: List[Notification]) -> None:
        self._state = self._state.model_copy(update={
            "notifications": notifications,
            "unread_count": count_unread(notifications),
        })
        self._commit()

    def _after_restore(self, state: NotificationState) -> NotificationState:
        # Persisted count is informational only
        return state.model_copy(update={"unread_count": count_unread(state.notifications)})
