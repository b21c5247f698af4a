"""Module session: one AppSession per running app, owning every store."""
#
# PURPOSE:
# Builds the stores against a shared config, clock and persistence adapter,
# and wires the few cross-store side effects:
#
# - a completed scan posts a notification (a copy, never the record itself)
# - a newly filed community report posts an info notification
# - the admin directory moderates through the community ledger
#
# LIFECYCLE:
#   session = AppSession(...)
#   await session.start()     # hydrate every store, seed demo data if empty
#   await session.scan_file("invoice.pdf")
#   await session.close()     # flush pending saves, close the adapter
#

import logging
from typing import List, Optional

from interrogative.base.clock import Clock, SystemClock
from interrogative.base.config import AppConfig, get_config
from interrogative.data.admin_store import AdminDirectory, ConnectivityProbe
from interrogative.data.base_store import PersistentStore
from interrogative.data.community_store import CommunityThreatLedger
from interrogative.data.learning_store import LearningLibraryIndex
from interrogative.data.models import NotificationDraft, NotificationType, ScanRecord, ScanStatus, ThreatReport
from interrogative.data.notification_store import NotificationCenter
from interrogative.data.persistence import PersistenceAdapter
from interrogative.data.scan_store import ScanLifecycleStore
from interrogative.engine.classifier import Classifier
from interrogative.engine.phase_driver import ScanPhaseDriver

logger = logging.getLogger(__name__)

SCAN_NOTIFICATION_TITLES = {
    ScanStatus.THREAT: "Threat Detected",
    ScanStatus.WARNING: "Suspicious Activity",
    ScanStatus.SAFE: "Scan Complete",
    ScanStatus.CANCELLED: "Scan Cancelled",
}

SCAN_NOTIFICATION_TYPES = {
    ScanStatus.THREAT: NotificationType.THREAT,
    ScanStatus.WARNING: NotificationType.WARNING,
    ScanStatus.SAFE: NotificationType.SAFE,
    ScanStatus.CANCELLED: NotificationType.INFO,
}


class AppSession:
    """
    Container for the scanner's state: scans, community reports,
    notifications, learning library and admin directory.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        persistence: Optional[PersistenceAdapter] = None,
        clock: Optional[Clock] = None,
        classifier: Optional[Classifier] = None,
        probe: Optional[ConnectivityProbe] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self.persistence = persistence

        shared = dict(persistence=persistence, clock=self.clock, config=self.config)
        self.scans = ScanLifecycleStore(**shared)
        self.community = CommunityThreatLedger(**shared)
        self.notifications = NotificationCenter(**shared)
        self.learning = LearningLibraryIndex(**shared)
        self.admin = AdminDirectory(**shared, probe=probe, ledger=self.community, seed=seed)

        self.driver = ScanPhaseDriver(self.scans, classifier=classifier, clock=self.clock)

        self.scans.scan_completed.connect(self._on_scan_completed)
        self.community.report_added.connect(self._on_report_added)
        self._started = False

    @property
    def stores(self) -> List[PersistentStore]:
        return [self.scans, self.community, self.notifications, self.learning, self.admin]

    async def start(self) -> None:
        """Restore every store from persistence and seed demo data where empty."""
        if self._started:
            return
        for store in self.stores:
            restored = await store.hydrate()
            logger.debug(f"[AppSession] {store.store_name}: {'restored' if restored else 'fresh'}")

        if self.config.seed_demo_data:
            self.notifications.initialize_demo_notifications()
            self.community.initialize_community_data()
            self.learning.initialize_data()
            self.admin.initialize_admin_data()

        self._started = True
        logger.info("[AppSession] Started")

    async def close(self) -> None:
        for store in self.stores:
            await store.flush()
        if self.persistence is not None:
            await self.persistence.close()
        self._started = False
        logger.info("[AppSession] Closed")

    async def flush(self) -> None:
        for store in self.stores:
            await store.flush()

    async def scan_file(self, file_name: str, file_size: Optional[int] = None) -> Optional[ScanRecord]:
        return await self.driver.run({"file_name": file_name, "file_size": file_size})

    async def scan_url(self, url: str) -> Optional[ScanRecord]:
        return await self.driver.run({"url": url})

    def reset_all(self) -> None:
        """User-initiated "clear data": scan statistics, history and notifications."""
        self.scans.reset_stats()
        self.notifications.clear_all_notifications()

    # ------------------------------------------------------------------
    # Cross-store side effects
    # ------------------------------------------------------------------

    def _on_scan_completed(self, record: ScanRecord) -> None:
        if record.status == ScanStatus.THREAT and record.threat_type:
            message = f"{record.threat_type} found in {record.target}"
        elif record.details:
            message = f"{record.target}: {record.details}"
        else:
            message = f"{record.target}: {record.status.value}"
        self.notifications.add_notification(NotificationDraft(
            title=SCAN_NOTIFICATION_TITLES[record.status],
            message=message,
            type=SCAN_NOTIFICATION_TYPES[record.status],
        ))

    def _on_report_added(self, report: ThreatReport) -> None:
        self.notifications.add_notification(NotificationDraft(
            title="Threat Report Submitted",
            message=f"{report.severity.value} {report.threat_type.value}: {report.title}",
            type=NotificationType.INFO,
        ))
