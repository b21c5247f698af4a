import random
from datetime import timedelta

import pytest
from pydantic import ValidationError

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.community_store import CommunityThreatLedger
from interrogative.data.models import ReportStatus, Severity, SortKey, ThreatType


@pytest.fixture
def ledger(clock, config):
    return CommunityThreatLedger(clock=clock, config=config)


def _report(ledger, title, severity="Medium", **fields):
    return ledger.add_threat_report({"title": title, "severity": severity, **fields})


def _counts(ledger, report_id, user=None):
    report = ledger.get_report(report_id)
    return report.upvotes, report.downvotes, ledger.get_user_vote(report_id, user)


# 1. Filing reports
def test_new_report_defaults(ledger, clock):
    added = []
    ledger.report_added.connect(added.append)
    report = _report(ledger, "Fake invoice mail", threat_type="Phishing", tags=["email", "email", " invoice "])

    assert report.upvotes == 0 and report.downvotes == 0
    assert report.verified is False
    assert report.status == ReportStatus.PENDING
    assert report.reported_at == clock.now()
    assert report.reported_by == "anonymous"
    assert report.tags == ["email", "invoice"]
    assert [r.id for r in ledger.get_my_reports()] == [report.id]
    assert [r.id for r in added] == [report.id]


def test_report_text_is_sanitized(ledger):
    report = _report(ledger, "  <script>alert</script> fake app ")
    assert "<" not in report.title and ">" not in report.title
    with pytest.raises(ScannerError) as exc:
        _report(ledger, "<>")
    assert exc.value.code == ErrorCode.REPORT_INVALID


def test_invalid_severity_rejected(ledger):
    with pytest.raises(ScannerError) as exc:
        _report(ledger, "x", severity="Apocalyptic")
    assert exc.value.code == ErrorCode.REPORT_INVALID
    assert ledger.state.threat_reports == []


# 2. Voting
def test_upvote_twice_returns_to_no_vote(ledger):
    report = _report(ledger, "r")
    ledger.upvote_report(report.id)
    assert _counts(ledger, report.id) == (1, 0, "up")
    ledger.upvote_report(report.id)
    assert _counts(ledger, report.id) == (0, 0, None)


def test_upvote_then_downvote_moves_the_vote(ledger):
    report = _report(ledger, "r")
    ledger.upvote_report(report.id)
    ledger.downvote_report(report.id)
    assert _counts(ledger, report.id) == (0, 1, "down")
    assert report.id not in ledger.state.vote_ledgers["anonymous"].upvoted


def test_downvote_toggles_symmetrically(ledger):
    report = _report(ledger, "r")
    ledger.downvote_report(report.id)
    ledger.downvote_report(report.id)
    assert _counts(ledger, report.id) == (0, 0, None)
    ledger.downvote_report(report.id)
    ledger.upvote_report(report.id)
    assert _counts(ledger, report.id) == (1, 0, "up")


def test_votes_are_tracked_per_user(ledger):
    report = _report(ledger, "r")
    ledger.upvote_report(report.id, user="alice")
    ledger.upvote_report(report.id, user="bob")
    ledger.downvote_report(report.id, user="alice")
    assert _counts(ledger, report.id, "alice") == (1, 1, "down")
    assert ledger.get_user_vote(report.id, "bob") == "up"
    assert ledger.get_user_vote(report.id) is None


def test_vote_on_unknown_report_is_ignored(ledger):
    seen = []
    ledger.subscribe(seen.append)
    assert not ledger.upvote_report("report_missing")
    assert not ledger.downvote_report("report_missing")
    assert seen == []
    assert ledger.state.vote_ledgers == {}


def test_random_vote_sequences_keep_ledgers_consistent(ledger):
    rng = random.Random(3)
    ids = [_report(ledger, f"r{i}").id for i in range(3)]
    users = ["alice", "bob", "carol"]

    for _ in range(300):
        op = rng.choice([ledger.upvote_report, ledger.downvote_report])
        op(rng.choice(ids), user=rng.choice(users))

        state = ledger.state
        for vl in state.vote_ledgers.values():
            assert not set(vl.upvoted) & set(vl.downvoted)
        for report in state.threat_reports:
            assert report.upvotes >= 0 and report.downvotes >= 0
            assert report.upvotes == sum(report.id in vl.upvoted for vl in state.vote_ledgers.values())
            assert report.downvotes == sum(report.id in vl.downvoted for vl in state.vote_ledgers.values())


# 3. Comments, updates, moderation
def test_comments_append_without_touching_votes(ledger, clock):
    report = _report(ledger, "r")
    ledger.upvote_report(report.id)
    comment = ledger.add_comment(report.id, "Seen this too", author="CyberAnalyst")

    stored = ledger.get_report(report.id)
    assert [c.id for c in stored.comments] == [comment.id]
    assert comment.created_at == clock.now()
    assert (stored.upvotes, stored.status) == (1, ReportStatus.PENDING)
    assert ledger.add_comment(report.id, "   ") is None
    assert ledger.add_comment("missing", "hello") is None
    with pytest.raises(ValidationError):
        comment.content = "edited"


def test_update_report(ledger):
    report = _report(ledger, "r")
    assert ledger.update_threat_report(report.id, severity="Critical", tags=["a"])
    assert ledger.get_report(report.id).severity == Severity.CRITICAL
    assert not ledger.update_threat_report(report.id, severity="Critical")
    assert not ledger.update_threat_report("missing", title="x")
    with pytest.raises(ScannerError):
        ledger.update_threat_report(report.id, upvotes=99)
    with pytest.raises(ScannerError):
        ledger.update_threat_report(report.id, severity="Bad")


def test_delete_purges_votes_and_my_reports(ledger):
    keep = _report(ledger, "keep")
    gone = _report(ledger, "gone")
    ledger.upvote_report(gone.id, user="alice")
    ledger.downvote_report(gone.id)
    ledger.upvote_report(keep.id)

    assert ledger.delete_threat_report(gone.id)
    assert not ledger.delete_threat_report(gone.id)
    state = ledger.state
    assert [r.id for r in state.threat_reports] == [keep.id]
    assert state.my_reports == [keep.id]
    assert state.vote_ledgers["alice"].upvoted == []
    assert state.vote_ledgers["anonymous"].downvoted == []
    assert state.vote_ledgers["anonymous"].upvoted == [keep.id]


def test_moderation(ledger):
    report = _report(ledger, "r")
    assert ledger.mark_investigating(report.id)
    assert ledger.get_report(report.id).status == ReportStatus.INVESTIGATING
    assert ledger.verify_report(report.id)
    assert ledger.get_report(report.id).verified
    assert not ledger.verify_report(report.id)
    assert ledger.reject_report(report.id)
    rejected = ledger.get_report(report.id)
    assert (rejected.status, rejected.verified) == (ReportStatus.REJECTED, False)
    assert ledger.get_verified_reports() == []


# 4. Filtering and sorting
def test_severity_filter_and_sort(ledger, clock):
    _report(ledger, "medium one")
    clock.advance(60)
    critical = _report(ledger, "critical one", severity="Critical")
    clock.advance(60)
    _report(ledger, "medium two")

    assert [r.id for r in ledger.get_filtered_reports(severity="Critical")] == [critical.id]
    assert ledger.get_filtered_reports(severity="Low") == []

    by_severity = ledger.get_filtered_reports(sort_by="severity")
    position = [r.id for r in by_severity].index(critical.id)
    assert all(r.severity != Severity.MEDIUM for r in by_severity[:position])
    assert by_severity[0].id == critical.id


def test_free_text_matches_title_description_and_tags(ledger):
    a = _report(ledger, "Crypto giveaway", description="Send BTC")
    b = _report(ledger, "Fake login", tags=["Office365"])
    c = _report(ledger, "Other", description="mentions crypto wallets")

    assert {r.id for r in ledger.get_filtered_reports(query="CRYPTO")} == {a.id, c.id}
    assert [r.id for r in ledger.get_filtered_reports(query="office")] == [b.id]
    assert len(ledger.get_filtered_reports(query="")) == 3


def test_threat_type_filter_and_store_selections(ledger):
    phishing = _report(ledger, "p", threat_type="Phishing")
    _report(ledger, "m", threat_type="Malware")

    ledger.set_threat_type_filter(ThreatType.PHISHING)
    assert [r.id for r in ledger.get_filtered_reports()] == [phishing.id]
    ledger.set_threat_type_filter("All")
    assert len(ledger.get_filtered_reports()) == 2
    with pytest.raises(ValueError):
        ledger.set_severity_filter("Extreme")


def test_recent_popular_and_verified_ordering(ledger, clock):
    old = _report(ledger, "old")
    clock.advance(3600)
    new = _report(ledger, "new")
    ledger.upvote_report(old.id, user="u1")
    ledger.upvote_report(old.id, user="u2")
    ledger.verify_report(new.id)

    assert [r.id for r in ledger.get_filtered_reports(sort_by=SortKey.RECENT)] == [new.id, old.id]
    assert [r.id for r in ledger.get_filtered_reports(sort_by="popular")] == [old.id, new.id]
    ledger.set_sort_by("verified")
    assert ledger.get_filtered_reports()[0].id == new.id


# 5. Trending
def test_trending_returns_top_ten_recent_reports(ledger, clock):
    stale = _report(ledger, "stale but popular")
    for i in range(50):
        ledger.upvote_report(stale.id, user=f"fan{i}")
    clock.advance(days=8)

    recent = []
    for i in range(11):
        report = _report(ledger, f"recent {i}")
        for j in range(i + 1):
            ledger.upvote_report(report.id, user=f"user{j}")
        recent.append(report)
        clock.advance(hours=4)

    trending = ledger.get_trending_reports()
    assert len(trending) == 10
    assert stale.id not in {r.id for r in trending}
    assert [r.id for r in trending] == [r.id for r in reversed(recent)][:10]
    assert [r.score for r in trending] == sorted((r.score for r in trending), reverse=True)


def test_trending_window_is_strict(ledger, clock):
    start = clock.now()
    report = _report(ledger, "edge")
    clock.set(start + timedelta(days=7) - timedelta(seconds=1))
    assert [r.id for r in ledger.get_trending_reports()] == [report.id]
    clock.set(start + timedelta(days=7))
    assert ledger.get_trending_reports() == []


# 6. Seed data and stats
def test_demo_data_seeds_once(ledger):
    assert ledger.initialize_community_data()
    assert not ledger.initialize_community_data()

    trending = [r.id for r in ledger.get_trending_reports()]
    assert trending == ["report_4", "report_1", "report_2", "report_3", "report_5"]
    assert {r.id for r in ledger.get_verified_reports()} == {"report_1", "report_2", "report_4"}
    assert ledger.get_my_reports() == []


def test_community_stats(ledger):
    ledger.initialize_community_data()
    mine = _report(ledger, "mine")
    ledger.upvote_report(mine.id, user="voter")

    stats = ledger.get_community_stats()
    assert stats.total_reports == 6
    assert stats.verified_reports == 3
    assert stats.total_votes == 47 + 2 + 34 + 1 + 28 + 3 + 56 + 0 + 19 + 1 + 1
    assert stats.top_contributors[0].username == "BrowserSec"
    assert stats.top_contributors[0].reputation == 66
    assert "voter" not in {c.username for c in stats.top_contributors}
    assert stats.active_users >= 7


# 7. Persistence
@pytest.mark.asyncio
async def test_round_trip_restores_persisted_fields_only(clock, config, memory):
    ledger = CommunityThreatLedger(persistence=memory, clock=clock, config=config)
    report = _report(ledger, "persist me", severity="High")
    ledger.upvote_report(report.id)
    ledger.add_comment(report.id, "noted")
    ledger.toggle_follow_user("SecurityExpert_2024")
    ledger.set_search_query("persist")
    ledger.set_severity_filter("High")
    ledger.set_error("boom")
    await ledger.flush()

    restored = CommunityThreatLedger(persistence=memory, clock=clock, config=config)
    assert await restored.hydrate()
    state = restored.state
    assert state.threat_reports == ledger.state.threat_reports
    assert state.my_reports == [report.id]
    assert state.vote_ledgers["anonymous"].upvoted == [report.id]
    assert state.followed_users == ["SecurityExpert_2024"]
    assert state.search_query == ""
    assert state.selected_severity == "All"
    assert state.error is None


@pytest.mark.asyncio
async def test_filter_changes_are_not_persisted(clock, config, memory):
    ledger = CommunityThreatLedger(persistence=memory, clock=clock, config=config)
    _report(ledger, "r")
    await ledger.flush()
    saves = memory.save_count
    ledger.set_search_query("abc")
    ledger.set_sort_by(SortKey.POPULAR)
    ledger.set_loading(True)
    await ledger.flush()
    assert memory.save_count == saves
