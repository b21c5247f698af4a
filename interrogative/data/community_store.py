"""Module community_store: crowdsourced threat reports, voting and filtered views."""
#
# PURPOSE:
# The community tab: users file threat reports, vote on them and comment.
# Reports are ranked by popularity (upvotes - downvotes) for trending and can
# be filtered by free text, threat type and severity.
#
# VOTING:
# Each user has a VoteLedger. A report id sits in at most one of the user's
# upvoted/downvoted lists. Voting the same way twice removes the vote;
# voting the other way moves it. Counts never go below zero.
#
# PERSISTENCE:
# Reports, my-report ids, vote ledgers and followed users are persisted.
# Search/filter/sort selections and loading/error flags are not.
#

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.base.validation import sanitize_input
from interrogative.data.base_store import PersistentStore
from interrogative.data.models import (
    CommunityStats,
    Contributor,
    ReportStatus,
    Severity,
    SortKey,
    ThreatComment,
    ThreatReport,
    ThreatReportDraft,
    ThreatType,
    VoteLedger,
    new_id,
)
from interrogative.data.persistence import SnapshotSchema
from interrogative.utils.observer import Signal

logger = logging.getLogger(__name__)

ALL = "All"

# Fields a report update may touch; votes, comments and provenance are owned by the ledger
UPDATABLE_FIELDS = frozenset({
    "title", "description", "threat_type", "severity", "url", "file_hash",
    "file_name", "location", "tags", "evidence", "status", "verified",
})

TOP_CONTRIBUTORS = 5
VERIFIED_REPUTATION_BONUS = 10


class CommunityState(BaseModel):
    threat_reports: List[ThreatReport] = Field(default_factory=list)
    my_reports: List[str] = Field(default_factory=list)
    vote_ledgers: Dict[str, VoteLedger] = Field(default_factory=dict)
    followed_users: List[str] = Field(default_factory=list)
    search_query: str = ""
    selected_threat_type: str = ALL
    selected_severity: str = ALL
    sort_by: SortKey = SortKey.RECENT
    is_loading: bool = False
    error: Optional[str] = None


def _filter_value(value: Any, enum_type) -> str:
    """Normalise a filter selection to the enum's string value or "All"."""
    if value is None or value == ALL:
        return ALL
    if isinstance(value, enum_type):
        return value.value
    try:
        return enum_type(value).value
    except ValueError:
        raise ValueError(f"Unknown {enum_type.__name__} filter: {value!r}") from None


def sort_reports(reports: List[ThreatReport], sort_by: SortKey) -> List[ThreatReport]:
    """Stable sort; ties keep their ledger order."""
    if sort_by == SortKey.POPULAR:
        return sorted(reports, key=lambda r: r.score, reverse=True)
    if sort_by == SortKey.SEVERITY:
        return sorted(reports, key=lambda r: r.severity.rank, reverse=True)
    if sort_by == SortKey.VERIFIED:
        return sorted(reports, key=lambda r: r.verified, reverse=True)
    return sorted(reports, key=lambda r: r.reported_at, reverse=True)


class CommunityThreatLedger(PersistentStore):
    """Threat reports, per-user vote ledgers and the filtered/trending views."""

    schema = SnapshotSchema(
        "community-store", 1,
        ("threat_reports", "my_reports", "vote_ledgers", "followed_users"),
    )
    state_model = CommunityState
    tag = "CommunityStore"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.report_added = Signal("community-store.report_added")

    @property
    def acting_user(self) -> str:
        return self.config.community.acting_user

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def add_threat_report(self, draft: Union[ThreatReportDraft, Mapping[str, Any]]) -> ThreatReport:
        """
        File a new report on behalf of the acting user.

        Raises:
            ScannerError: REPORT_INVALID when the draft fails validation.
        """
        if not isinstance(draft, ThreatReportDraft):
            try:
                draft = ThreatReportDraft.model_validate(dict(draft))
            except ValidationError as e:
                raise ScannerError(
                    ErrorCode.REPORT_INVALID,
                    "Invalid threat report",
                    details={"errors": [err["msg"] for err in e.errors()]},
                ) from e

        fields = draft.model_dump()
        if "reported_by" not in draft.model_fields_set:
            fields["reported_by"] = self.acting_user
        report = ThreatReport(
            id=new_id("report"),
            reported_at=self.clock.now(),
            upvotes=0,
            downvotes=0,
            verified=False,
            status=ReportStatus.PENDING,
            comments=[],
            **fields,
        )
        self._state = self._state.model_copy(update={
            "threat_reports": [report] + list(self._state.threat_reports),
            "my_reports": [report.id] + list(self._state.my_reports),
        })
        logger.info(f"[CommunityStore] New {report.severity.value} report {report.id}: {report.title}")
        self._commit()
        self.report_added.emit(report.model_copy(deep=True))
        return report.model_copy(deep=True)

    def update_threat_report(self, report_id: str, **changes: Any) -> bool:
        """
        Apply field changes to a report. Unknown ids are ignored.

        Raises:
            ScannerError: REPORT_INVALID for fields that may not be changed or
                values that fail validation.
        """
        index = self._index_of(report_id)
        if index is None:
            return False
        forbidden = set(changes) - UPDATABLE_FIELDS
        if forbidden:
            raise ScannerError(
                ErrorCode.REPORT_INVALID,
                f"Report fields cannot be updated: {sorted(forbidden)}",
                details={"report_id": report_id},
            )
        for key in ("title", "description"):
            if isinstance(changes.get(key), str):
                changes[key] = sanitize_input(changes[key])
        if "title" in changes and not changes["title"]:
            raise ScannerError(ErrorCode.REPORT_INVALID, "Report title cannot be empty")

        current = self._state.threat_reports[index]
        try:
            updated = ThreatReport.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise ScannerError(
                ErrorCode.REPORT_INVALID,
                f"Invalid update for report {report_id}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

        if updated == current:
            return False
        self._put_report(index, updated)
        self._commit()
        return True

    def delete_threat_report(self, report_id: str) -> bool:
        """Remove a report along with its my-reports entry and every vote on it."""
        if self._index_of(report_id) is None:
            return False
        ledgers = {
            user: VoteLedger(
                upvoted=[r for r in ledger.upvoted if r != report_id],
                downvoted=[r for r in ledger.downvoted if r != report_id],
            )
            for user, ledger in self._state.vote_ledgers.items()
        }
        self._state = self._state.model_copy(update={
            "threat_reports": [r for r in self._state.threat_reports if r.id != report_id],
            "my_reports": [r for r in self._state.my_reports if r != report_id],
            "vote_ledgers": ledgers,
        })
        logger.info(f"[CommunityStore] Deleted report {report_id}")
        self._commit()
        return True

    def get_report(self, report_id: str) -> Optional[ThreatReport]:
        index = self._index_of(report_id)
        if index is None:
            return None
        return self._state.threat_reports[index].model_copy(deep=True)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def upvote_report(self, report_id: str, user: Optional[str] = None) -> bool:
        return self._vote(report_id, up=True, user=user)

    def downvote_report(self, report_id: str, user: Optional[str] = None) -> bool:
        return self._vote(report_id, up=False, user=user)

    def get_user_vote(self, report_id: str, user: Optional[str] = None) -> Optional[str]:
        """"up", "down" or None for the given (default: acting) user."""
        ledger = self._state.vote_ledgers.get(user or self.acting_user)
        return ledger.vote_for(report_id) if ledger else None

    def _vote(self, report_id: str, up: bool, user: Optional[str]) -> bool:
        index = self._index_of(report_id)
        if index is None:
            logger.debug(f"[CommunityStore] Vote for unknown report {report_id} ignored")
            return False
        user = user or self.acting_user
        ledger = self._state.vote_ledgers.get(user) or VoteLedger()
        upvoted = list(ledger.upvoted)
        downvoted = list(ledger.downvoted)
        report = self._state.threat_reports[index]
        ups, downs = report.upvotes, report.downvotes

        same, other = (upvoted, downvoted) if up else (downvoted, upvoted)
        same_delta = other_delta = 0
        if report_id in same:
            same.remove(report_id)
            same_delta = -1
        else:
            same.append(report_id)
            same_delta = 1
            if report_id in other:
                other.remove(report_id)
                other_delta = -1

        if up:
            ups, downs = ups + same_delta, downs + other_delta
        else:
            ups, downs = ups + other_delta, downs + same_delta

        ledgers = dict(self._state.vote_ledgers)
        ledgers[user] = VoteLedger(upvoted=upvoted, downvoted=downvoted)
        self._put_report(index, report.model_copy(update={
            "upvotes": max(0, ups),
            "downvotes": max(0, downs),
        }))
        self._state = self._state.model_copy(update={"vote_ledgers": ledgers})
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Comments and moderation
    # ------------------------------------------------------------------

    def add_comment(self, report_id: str, content: str, author: Optional[str] = None) -> Optional[ThreatComment]:
        index = self._index_of(report_id)
        content = sanitize_input(content or "")
        if index is None or not content:
            return None
        comment = ThreatComment(
            id=new_id("comment"),
            report_id=report_id,
            author=author or self.acting_user,
            content=content,
            created_at=self.clock.now(),
        )
        report = self._state.threat_reports[index]
        self._put_report(index, report.model_copy(update={"comments": list(report.comments) + [comment]}))
        self._commit()
        return comment

    def verify_report(self, report_id: str) -> bool:
        return self._moderate(report_id, ReportStatus.VERIFIED, verified=True)

    def reject_report(self, report_id: str) -> bool:
        return self._moderate(report_id, ReportStatus.REJECTED, verified=False)

    def mark_investigating(self, report_id: str) -> bool:
        return self._moderate(report_id, ReportStatus.INVESTIGATING, verified=None)

    def _moderate(self, report_id: str, status: ReportStatus, verified: Optional[bool]) -> bool:
        index = self._index_of(report_id)
        if index is None:
            return False
        report = self._state.threat_reports[index]
        update: Dict[str, Any] = {"status": status}
        if verified is not None:
            update["verified"] = verified
        updated = report.model_copy(update=update)
        if updated == report:
            return False
        self._put_report(index, updated)
        logger.info(f"[CommunityStore] Report {report_id} -> {status.value}")
        self._commit()
        return True

    def toggle_follow_user(self, username: str) -> bool:
        """Returns True when the user is followed after the call."""
        followed = list(self._state.followed_users)
        if username in followed:
            followed.remove(username)
        else:
            followed.append(username)
        self._state = self._state.model_copy(update={"followed_users": followed})
        self._commit()
        return username in followed

    # ------------------------------------------------------------------
    # Filter selections (ephemeral)
    # ------------------------------------------------------------------

    def set_search_query(self, query: str) -> None:
        self._set_ephemeral(search_query=query or "")

    def set_threat_type_filter(self, threat_type: Union[ThreatType, str, None]) -> None:
        self._set_ephemeral(selected_threat_type=_filter_value(threat_type, ThreatType))

    def set_severity_filter(self, severity: Union[Severity, str, None]) -> None:
        self._set_ephemeral(selected_severity=_filter_value(severity, Severity))

    def set_sort_by(self, sort_by: Union[SortKey, str]) -> None:
        self._set_ephemeral(sort_by=SortKey(sort_by))

    def set_loading(self, is_loading: bool) -> None:
        self._set_ephemeral(is_loading=bool(is_loading))

    def set_error(self, error: Optional[str]) -> None:
        self._set_ephemeral(error=error)

    def _set_ephemeral(self, **update: Any) -> None:
        if all(getattr(self._state, k) == v for k, v in update.items()):
            return
        self._state = self._state.model_copy(update=update)
        self._commit(persist=False)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def get_filtered_reports(
        self,
        query: Optional[str] = None,
        threat_type: Union[ThreatType, str, None] = None,
        severity: Union[Severity, str, None] = None,
        sort_by: Union[SortKey, str, None] = None,
    ) -> List[ThreatReport]:
        """
        Free-text + type + severity filter, then sort.

        Arguments left as None fall back to the store's current selections.
        """
        state = self._state
        needle = (state.search_query if query is None else query).strip().lower()
        wanted_type = state.selected_threat_type if threat_type is None else _filter_value(threat_type, ThreatType)
        wanted_severity = state.selected_severity if severity is None else _filter_value(severity, Severity)
        order = state.sort_by if sort_by is None else SortKey(sort_by)

        def matches(report: ThreatReport) -> bool:
            if needle and not (
                needle in report.title.lower()
                or needle in report.description.lower()
                or any(needle in tag.lower() for tag in report.tags)
            ):
                return False
            if wanted_type != ALL and report.threat_type.value != wanted_type:
                return False
            if wanted_severity != ALL and report.severity.value != wanted_severity:
                return False
            return True

        filtered = [r for r in state.threat_reports if matches(r)]
        return [r.model_copy(deep=True) for r in sort_reports(filtered, order)]

    def get_trending_reports(self) -> List[ThreatReport]:
        """Most popular reports filed within the trending window."""
        now = self.clock.now()
        window = timedelta(days=self.config.community.trending_window_days)
        recent = [r for r in self._state.threat_reports if now - r.reported_at < window]
        ranked = sort_reports(recent, SortKey.POPULAR)[: self.config.community.trending_limit]
        return [r.model_copy(deep=True) for r in ranked]

    def get_my_reports(self) -> List[ThreatReport]:
        mine = set(self._state.my_reports)
        return [r.model_copy(deep=True) for r in self._state.threat_reports if r.id in mine]

    def get_verified_reports(self) -> List[ThreatReport]:
        return [r.model_copy(deep=True) for r in self._state.threat_reports if r.verified]

    def get_community_stats(self) -> CommunityStats:
        reports = self._state.threat_reports
        users = {r.reported_by for r in reports}
        users.update(c.author for r in reports for c in r.comments)
        users.update(u for u, ledger in self._state.vote_ledgers.items() if ledger.upvoted or ledger.downvoted)

        counts = Counter(r.reported_by for r in reports)
        reputation: Dict[str, int] = defaultdict(int)
        for r in reports:
            reputation[r.reported_by] += r.score + (VERIFIED_REPUTATION_BONUS if r.verified else 0)
        ranked = sorted(counts, key=lambda u: (reputation[u], counts[u]), reverse=True)

        return CommunityStats(
            total_reports=len(reports),
            verified_reports=sum(1 for r in reports if r.verified),
            active_users=len(users),
            total_votes=sum(r.upvotes + r.downvotes for r in reports),
            top_contributors=[
                Contributor(username=u, reports_count=counts[u], reputation=reputation[u])
                for u in ranked[:TOP_CONTRIBUTORS]
            ],
        )

    def initialize_community_data(self) -> bool:
        """Seed the demo reports when the ledger is empty."""
        if self._state.threat_reports:
            return False
        from interrogative.data.seed import demo_reports

        self._state = self._state.model_copy(update={"threat_reports": demo_reports(self.clock.now())})
        logger.info("[CommunityStore] Seeded demo reports")
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, report_id: str) -> Optional[int]:
        for i, report in enumerate(self._state.threat_reports):
            if report.id == report_id:
                return i
        return None

    def _put_report(self, index: int, report: ThreatReport) -> None:
        reports = list(self._state.threat_reports)
        reports[index] = report
        self._state = self._state.model_copy(update={"threat_reports": reports})
