"""
Unit tests for the admin directory.

Verifies:
1. CRUD over users, API configs and feature updates with unique ids.
2. Connectivity tests record status and surface failures/timeouts.
3. Moderation delegates to the community ledger when one is attached.
"""

import asyncio

import pytest

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.admin_store import AdminDirectory, ConnectivityProbe, SimulatedProbe
from interrogative.data.community_store import CommunityThreatLedger
from interrogative.data.models import ApiStatus, FeatureStatus, ReportStatus


class ScriptedProbe(ConnectivityProbe):
    """Returns queued results; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def probe(self, config):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class HangingProbe(ConnectivityProbe):
    async def probe(self, config):
        await asyncio.sleep(10)
        return True


@pytest.fixture
def admin(clock, config):
    directory = AdminDirectory(clock=clock, config=config, seed=3)
    directory.initialize_admin_data()
    return directory


# 1. Collections
def test_seed_data(admin):
    assert [u.id for u in admin.app_users] == ["user_1"]
    assert [a.name for a in admin.api_configs] == ["VirusTotal API"]
    assert [f.status for f in admin.feature_updates] == [FeatureStatus.DEPLOYED, FeatureStatus.TESTING]
    assert not admin.initialize_admin_data()


def test_user_crud(admin, clock):
    user = admin.add_user({"name": "analyst", "email": "a@example.com", "role": "security_analyst"})
    assert user.id.startswith("user_")
    assert user.registered_at == clock.now()

    assert admin.update_user(user.id, scan_count=4)
    assert not admin.update_user(user.id, scan_count=4)
    assert not admin.update_user("user_missing", scan_count=1)

    assert admin.toggle_user_status(user.id) is False
    assert admin.toggle_user_status(user.id) is True
    assert admin.toggle_user_status("user_missing") is None

    assert admin.delete_user(user.id)
    assert not admin.delete_user(user.id)
    assert [u.id for u in admin.app_users] == ["user_1"]


def test_duplicate_and_invalid_items_rejected(admin):
    with pytest.raises(ScannerError) as exc:
        admin.add_user({"id": "user_1", "name": "again", "email": "x@example.com"})
    assert exc.value.code == ErrorCode.ADMIN_DUPLICATE_ID

    with pytest.raises(ScannerError) as exc:
        admin.add_user({"name": "", "email": "x@example.com"})
    assert exc.value.code == ErrorCode.ADMIN_INVALID

    with pytest.raises(ScannerError) as exc:
        admin.update_user("user_1", id="user_2")
    assert exc.value.code == ErrorCode.ADMIN_INVALID
    assert len(admin.app_users) == 1


def test_api_config_crud(admin, clock):
    api = admin.add_api_config({"name": "URLhaus", "endpoint": "https://urlhaus.example/api"})
    assert api.status == ApiStatus.INACTIVE
    assert api.request_count == 0

    clock.advance(60)
    assert admin.update_api_config(api.id, api_key="secret")
    updated = [a for a in admin.api_configs if a.id == api.id][0]
    assert updated.api_key == "secret"
    assert updated.last_updated == clock.now()

    assert admin.delete_api_config(api.id)
    assert [a.id for a in admin.api_configs] == ["api_1"]


def test_feature_lifecycle(admin, clock):
    feature = admin.add_feature_update({"title": "Faster scans", "version": "2.2.0"})
    assert feature.status == FeatureStatus.DRAFT

    assert admin.update_feature_status(feature.id, "approved")
    with pytest.raises(ValueError):
        admin.update_feature_status(feature.id, "shipped")

    clock.advance(3600)
    assert admin.deploy_feature(feature.id)
    deployed = [f for f in admin.feature_updates if f.id == feature.id][0]
    assert deployed.status == FeatureStatus.DEPLOYED
    assert deployed.deployed_at == clock.now()
    assert 1000 <= deployed.affected_users <= 10999
    assert not admin.deploy_feature("feature_missing")


# 2. Connectivity tests
@pytest.mark.asyncio
async def test_connection_success_and_failure(clock, config):
    probe = ScriptedProbe(False, True)
    admin = AdminDirectory(clock=clock, config=config, probe=probe)
    admin.initialize_admin_data()

    assert await admin.test_api_connection("api_1") is False
    state = admin.state
    assert state.api_configs[0].status == ApiStatus.ERROR
    assert "VirusTotal API" in state.error
    assert not state.is_loading

    assert await admin.test_api_connection("api_1") is True
    state = admin.state
    assert state.api_configs[0].status == ApiStatus.ACTIVE
    assert state.error is None
    assert await admin.test_api_connection("api_missing") is None
    assert probe.calls == 2


@pytest.mark.asyncio
async def test_connection_exception_is_recorded(clock, config):
    admin = AdminDirectory(clock=clock, config=config, probe=ScriptedProbe(ConnectionError("refused")))
    admin.initialize_admin_data()

    assert await admin.test_api_connection("api_1") is False
    state = admin.state
    assert state.api_configs[0].status == ApiStatus.ERROR
    assert "refused" in state.error


@pytest.mark.asyncio
async def test_connection_timeout(clock, config):
    admin = AdminDirectory(clock=clock, config=config, probe=HangingProbe())
    admin.initialize_admin_data()

    assert await admin.test_api_connection("api_1", timeout=0.01) is False
    assert "timed out" in admin.state.error


@pytest.mark.asyncio
async def test_simulated_probe_waits_on_clock(clock):
    always = SimulatedProbe(clock=clock, success_rate=1.0, seed=1)
    never = SimulatedProbe(clock=clock, success_rate=0.0, seed=1)
    assert await always.probe(None)
    assert not await never.probe(None)
    assert clock.slept == pytest.approx(4.0)


# 3. Moderation
def test_moderation_without_ledger(admin):
    assert not admin.approve_community_threat("report_1")
    assert not admin.reject_community_threat("report_1")


def test_moderation_through_ledger(admin, clock, config):
    ledger = CommunityThreatLedger(clock=clock, config=config)
    ledger.initialize_community_data()
    admin.attach_ledger(ledger)

    assert admin.approve_community_threat("report_5")
    assert admin.reject_community_threat("report_3")
    assert ledger.get_report("report_5").verified
    assert ledger.get_report("report_5").status == ReportStatus.VERIFIED
    assert not admin.approve_community_threat("report_5")
    assert ledger.get_report("report_3").status == ReportStatus.REJECTED
    assert not admin.approve_community_threat("report_missing")


# 4. Persistence
@pytest.mark.asyncio
async def test_collections_persist_but_flags_do_not(clock, config, memory):
    admin = AdminDirectory(persistence=memory, clock=clock, config=config)
    admin.initialize_admin_data()
    admin.set_active_module("users")
    await admin.flush()

    restored = AdminDirectory(persistence=memory, clock=clock, config=config)
    assert await restored.hydrate()
    assert restored.app_users == admin.app_users
    assert restored.feature_updates == admin.feature_updates
    assert restored.state.active_module == "dashboard"
