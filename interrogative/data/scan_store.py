"""Module scan_store: in-flight scan state machine, bounded history and aggregate statistics."""
#
# PURPOSE:
# Tracks every scan the user starts, from "scanning" to its one terminal
# verdict, and keeps the statistics shown on the dashboard.
#
# LIFECYCLE:
#   start_scan()            -> record created in SCANNING, pending_scans += 1
#   update_scan_progress()  -> progress/phase label of the in-flight scan only
#   complete_scan()         -> terminal status, prepended to history (max N),
#                              totals and day/week/month counters updated
#   cancel_scan()           -> complete_scan() with a synthetic CANCELLED outcome
#
# KEY CONCEPTS:
# - Only one scan occupies the in-flight slot at a time
# - Calls naming a scan that is not in flight are ignored (stale reference)
# - Only recent_scans and scan_stats are persisted; the in-flight slot,
#   progress and phase label always come back idle after a restart
#

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.base_store import PersistentStore
from interrogative.data.models import (
    ScanDescriptor,
    ScanOutcome,
    ScanRecord,
    ScanStatistics,
    ScanStatus,
    new_id,
)
from interrogative.data.persistence import SnapshotSchema
from interrogative.utils.observer import Signal

logger = logging.getLogger(__name__)

INITIAL_PHASE = "Initializing scan..."
COMPLETED_PHASE = "Scan completed"
CANCELLED_DETAILS = "Scan cancelled by user"


class ScanState(BaseModel):
    scan_stats: ScanStatistics = Field(default_factory=ScanStatistics)
    recent_scans: List[ScanRecord] = Field(default_factory=list)
    is_scanning: bool = False
    current_scan: Optional[ScanRecord] = None
    scan_progress: int = 0
    scan_phase: str = ""


def _same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def _same_week(a: datetime, b: datetime) -> bool:
    return a.isocalendar()[:2] == b.isocalendar()[:2]


def _same_month(a: datetime, b: datetime) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def roll_windows(stats: ScanStatistics, now: datetime) -> ScanStatistics:
    """
    Zero the today/week/month counters whose window has passed since the
    last completed scan. Comparisons happen in `now`'s timezone.
    """
    if stats.last_scan_time is None:
        return stats
    last = stats.last_scan_time.astimezone(now.tzinfo)
    updates = {}
    if not _same_day(last, now):
        updates["today_scans"] = 0
    if not _same_week(last, now):
        updates["weekly_scans"] = 0
    if not _same_month(last, now):
        updates["monthly_scans"] = 0
    return stats.model_copy(update=updates) if updates else stats


class ScanLifecycleStore(PersistentStore):
    """
    Owns the in-flight scan slot, the recent history and the ScanStatistics
    derived from completed scans.
    """

    schema = SnapshotSchema("scan-store", 1, ("recent_scans", "scan_stats"))
    state_model = ScanState
    tag = "ScanStore"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Fired once per terminal transition with a copy of the finished record
        self.scan_completed = Signal("scan-store.scan_completed")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def is_scanning(self) -> bool:
        return self._state.is_scanning

    @property
    def current_scan(self) -> Optional[ScanRecord]:
        current = self._state.current_scan
        return current.model_copy() if current is not None else None

    @property
    def scan_progress(self) -> int:
        return self._state.scan_progress

    @property
    def scan_phase(self) -> str:
        return self._state.scan_phase

    @property
    def recent_scans(self) -> List[ScanRecord]:
        return [r.model_copy() for r in self._state.recent_scans]

    @property
    def scan_stats(self) -> ScanStatistics:
        return self._state.scan_stats.model_copy()

    def get_stats(self) -> ScanStatistics:
        """Statistics with stale day/week/month counters shown as zero."""
        return roll_windows(self._state.scan_stats, self.clock.now()).model_copy()

    def get_scan_by_id(self, scan_id: str) -> Optional[ScanRecord]:
        for record in self._state.recent_scans:
            if record.id == scan_id:
                return record.model_copy()
        return None

    def get_today_scans(self) -> List[ScanRecord]:
        now = self.clock.now()
        return [
            r.model_copy()
            for r in self._state.recent_scans
            if _same_day(r.timestamp.astimezone(now.tzinfo), now)
        ]

    def get_threats_today(self) -> List[ScanRecord]:
        return [r for r in self.get_today_scans() if r.status == ScanStatus.THREAT]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def start_scan(self, descriptor: Union[ScanDescriptor, Mapping[str, Any]]) -> Optional[str]:
        """
        Open a new in-flight scan.

        Returns the new scan id, or None when another scan is already in
        flight (callers should check is_scanning first).

        Raises:
            ScannerError: SCAN_TARGET_INVALID unless exactly one of file name
                or URL is given.
        """
        if not isinstance(descriptor, ScanDescriptor):
            try:
                descriptor = ScanDescriptor.model_validate(descriptor)
            except ValidationError as e:
                raise ScannerError(
                    ErrorCode.SCAN_TARGET_INVALID,
                    "A scan needs exactly one of file_name or url",
                    details={"errors": [err["msg"] for err in e.errors()]},
                ) from e

        if self._state.is_scanning:
            logger.warning(f"[ScanStore] Scan already in flight; ignoring start for {descriptor.target}")
            return None

        record = ScanRecord(
            id=new_id("scan"),
            scan_type=descriptor.scan_type,
            file_name=descriptor.file_name,
            url=descriptor.url,
            status=ScanStatus.SCANNING,
            timestamp=self.clock.now(),
        )
        stats = self._state.scan_stats
        self._state = self._state.model_copy(update={
            "current_scan": record,
            "is_scanning": True,
            "scan_progress": 0,
            "scan_phase": INITIAL_PHASE,
            "scan_stats": stats.model_copy(update={"pending_scans": stats.pending_scans + 1}),
        })
        logger.info(f"[ScanStore] Started {record.scan_type.value} scan {record.id}: {record.target}")
        self._commit()
        return record.id

    def update_scan_progress(self, scan_id: str, progress: int, phase_label: str) -> bool:
        """Report progress for the in-flight scan. Returns False when ignored."""
        current = self._state.current_scan
        if current is None or current.id != scan_id:
            logger.debug(f"[ScanStore] Ignoring progress for stale scan {scan_id}")
            return False
        if not 0 <= progress <= 100:
            logger.warning(f"[ScanStore] Ignoring out-of-range progress {progress} for {scan_id}")
            return False
        if self.config.scan.reject_progress_regression and progress < self._state.scan_progress:
            logger.debug(
                f"[ScanStore] Ignoring regressed progress {progress} < {self._state.scan_progress}"
            )
            return False

        self._state = self._state.model_copy(update={
            "scan_progress": progress,
            "scan_phase": phase_label,
        })
        # Progress and phase are never persisted
        self._commit(persist=False)
        return True

    def complete_scan(
        self,
        scan_id: str,
        outcome: Union[ScanOutcome, Mapping[str, Any], None] = None,
    ) -> Optional[ScanRecord]:
        """
        Move the in-flight scan to its terminal status.

        Returns a copy of the completed record, or None if `scan_id` is not
        the in-flight scan.

        Raises:
            ScannerError: SCAN_OUTCOME_INVALID for a non-terminal or malformed outcome.
        """
        current = self._state.current_scan
        if current is None or current.id != scan_id:
            logger.debug(f"[ScanStore] Ignoring completion for stale scan {scan_id}")
            return None

        outcome = self._coerce_outcome(outcome)
        now = self.clock.now()
        duration = outcome.duration
        if duration is None:
            duration = max(0, (now - current.timestamp) // timedelta(milliseconds=1))

        completed = current.model_copy(update={
            "status": outcome.status,
            "threat_type": outcome.threat_type,
            "risk_level": outcome.risk_level,
            "details": outcome.details,
            "duration": duration,
        })

        stats = self._tally(self._state.scan_stats, completed, now)
        stats = stats.model_copy(update={"pending_scans": max(0, stats.pending_scans - 1)})

        self._state = self._state.model_copy(update={
            "recent_scans": self._prepend(completed),
            "scan_stats": stats,
            "current_scan": None,
            "is_scanning": False,
            "scan_progress": 100,
            "scan_phase": COMPLETED_PHASE,
        })
        logger.info(
            f"[ScanStore] Scan {scan_id} finished: {completed.status.value} ({duration} ms)"
        )
        self._commit()
        self.scan_completed.emit(completed.model_copy())
        return completed.model_copy()

    def cancel_scan(self, scan_id: str, details: str = CANCELLED_DETAILS) -> Optional[ScanRecord]:
        """Abandon the in-flight scan; it still counts toward total_scans."""
        return self.complete_scan(scan_id, ScanOutcome(status=ScanStatus.CANCELLED, details=details))

    def add_scan_result(self, record: Union[ScanRecord, Mapping[str, Any]]) -> ScanRecord:
        """
        Record a scan that was completed outside the in-flight slot.

        Same history and statistics effects as complete_scan(), except that
        pending_scans is left alone.
        """
        try:
            if not isinstance(record, ScanRecord):
                record = ScanRecord.model_validate(record)
        except ValidationError as e:
            raise ScannerError(
                ErrorCode.SCAN_OUTCOME_INVALID,
                "Malformed scan record",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e
        if not record.is_terminal:
            raise ScannerError(
                ErrorCode.SCAN_OUTCOME_INVALID,
                f"Scan result must be terminal, got {record.status.value!r}",
                details={"scan_id": record.id},
            )

        record = record.model_copy()
        self._state = self._state.model_copy(update={
            "recent_scans": self._prepend(record),
            "scan_stats": self._tally(self._state.scan_stats, record, self.clock.now()),
        })
        self._commit()
        return record.model_copy()

    def reset_stats(self) -> None:
        """Zero every counter and drop the history. An in-flight scan stays pending."""
        pending = 1 if self._state.is_scanning else 0
        self._state = self._state.model_copy(update={
            "scan_stats": ScanStatistics(pending_scans=pending),
            "recent_scans": [],
        })
        logger.info("[ScanStore] Statistics reset")
        self._commit()

    def clear_scan_history(self) -> None:
        if not self._state.recent_scans:
            return
        self._state = self._state.model_copy(update={"recent_scans": []})
        logger.info("[ScanStore] History cleared")
        self._commit()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _coerce_outcome(self, outcome: Union[ScanOutcome, Mapping[str, Any], None]) -> ScanOutcome:
        if outcome is None:
            return ScanOutcome()
        if isinstance(outcome, ScanOutcome):
            return outcome
        try:
            return ScanOutcome.model_validate(outcome)
        except ValidationError as e:
            raise ScannerError(
                ErrorCode.SCAN_OUTCOME_INVALID,
                "Scan outcome must carry a terminal status",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def _prepend(self, record: ScanRecord) -> List[ScanRecord]:
        limit = self.config.scan.history_limit
        return ([record] + list(self._state.recent_scans))[:limit]

    def _tally(self, stats: ScanStatistics, record: ScanRecord, now: datetime) -> ScanStatistics:
        stats = roll_windows(stats, now)
        created = record.timestamp.astimezone(now.tzinfo)
        return stats.model_copy(update={
            "total_scans": stats.total_scans + 1,
            "threats_detected": stats.threats_detected + (record.status == ScanStatus.THREAT),
            "safe_scans": stats.safe_scans + (record.status == ScanStatus.SAFE),
            "today_scans": stats.today_scans + _same_day(created, now),
            "weekly_scans": stats.weekly_scans + _same_week(created, now),
            "monthly_scans": stats.monthly_scans + _same_month(created, now),
            "last_scan_time": now,
        })
