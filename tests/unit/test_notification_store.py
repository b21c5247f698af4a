import random

import pytest

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.models import NotificationType
from interrogative.data.notification_store import NotificationCenter


@pytest.fixture
def center(clock, config):
    return NotificationCenter(clock=clock, config=config)


def _unread(center):
    return sum(1 for n in center.notifications if not n.is_read)


def test_add_prepends_unread(center, clock):
    first = center.add_notification({"title": "First", "message": "a"})
    clock.advance(5)
    second = center.add_notification({"title": "Second", "type": "threat"})

    items = center.notifications
    assert [n.id for n in items] == [second, first]
    assert items[0].type == NotificationType.THREAT
    assert items[0].created_at == clock.now()
    assert center.get_unread_count() == 2


def test_invalid_draft_rejected(center):
    with pytest.raises(ScannerError) as exc:
        center.add_notification({"title": ""})
    assert exc.value.code == ErrorCode.NOTIFY_INVALID
    with pytest.raises(ScannerError):
        center.add_notification({"title": "x", "type": "urgent"})


def test_mark_as_read_is_idempotent(center):
    nid = center.add_notification({"title": "x"})
    center.add_notification({"title": "y"})
    seen = []
    center.subscribe(seen.append)

    assert center.mark_as_read(nid)
    once = center.state
    assert not center.mark_as_read(nid)
    assert center.state == once
    assert center.unread_count == 1
    assert len(seen) == 1
    assert not center.mark_as_read("notif_missing")


def test_mark_all_and_delete_recompute_count(center):
    a = center.add_notification({"title": "a"})
    center.add_notification({"title": "b", "is_read": True})
    center.add_notification({"title": "c"})
    assert center.unread_count == 2

    assert center.delete_notification(a)
    assert center.unread_count == 1
    assert not center.delete_notification(a)

    assert center.mark_all_as_read() == 1
    assert center.unread_count == 0
    assert center.mark_all_as_read() == 0

    center.clear_all_notifications()
    assert center.notifications == []
    assert center.unread_count == 0


def test_unread_count_matches_list_for_random_sequences(center):
    rng = random.Random(11)
    for step in range(200):
        ids = [n.id for n in center.notifications]
        action = rng.randrange(5)
        if action == 0 or not ids:
            center.add_notification({"title": f"n{step}", "is_read": rng.random() < 0.3})
        elif action == 1:
            center.mark_as_read(rng.choice(ids))
        elif action == 2:
            center.delete_notification(rng.choice(ids))
        elif action == 3 and rng.random() < 0.1:
            center.mark_all_as_read()
        elif rng.random() < 0.05:
            center.clear_all_notifications()
        assert center.unread_count == _unread(center)


def test_demo_notifications_seed_once(center):
    assert center.initialize_demo_notifications()
    assert len(center.notifications) == 5
    assert center.unread_count == 4
    assert center.notifications[0].title == "Security Scan Completed"
    assert not center.initialize_demo_notifications()
    assert len(center.notifications) == 5


def test_restore_recomputes_unread_count(center, clock, config):
    center.add_notification({"title": "a"})
    center.add_notification({"title": "b", "is_read": True})
    envelope = center.to_snapshot()
    envelope["data"]["unread_count"] = 99

    fresh = NotificationCenter(clock=clock, config=config)
    assert fresh.restore_snapshot(envelope)
    assert fresh.unread_count == 1
    assert fresh.notifications == center.notifications


def test_restore_rejects_other_schema_versions(center, clock, config):
    center.add_notification({"title": "a"})
    envelope = center.to_snapshot()
    envelope["schema_version"] = 2

    fresh = NotificationCenter(clock=clock, config=config)
    fresh.add_notification({"title": "kept"})
    assert not fresh.restore_snapshot(envelope)
    assert [n.title for n in fresh.notifications] == ["kept"]
    assert not fresh.restore_snapshot({"unexpected": True})


@pytest.mark.asyncio
async def test_notifications_survive_restart(clock, config, memory):
    center = NotificationCenter(persistence=memory, clock=clock, config=config)
    center.initialize_demo_notifications()
    center.mark_all_as_read()
    await center.flush()

    restored = NotificationCenter(persistence=memory, clock=clock, config=config)
    assert await restored.hydrate()
    assert restored.notifications == center.notifications
    assert restored.unread_count == 0
