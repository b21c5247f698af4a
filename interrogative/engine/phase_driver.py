"""Module phase_driver: drives a scan through its simulated phases."""
#
# PURPOSE:
# A scan is a fixed table of (progress, label, delay) steps. The driver
# applies each step to the ScanLifecycleStore, waits on the injected clock,
# and finally asks the classifier for the verdict.
#
# KEY CONCEPTS:
# - begin()/advance()/finish() step a scan synchronously (tests, scripted UIs)
# - run() is the async loop used by the app; each step is one store mutation
# - If the scan stops being the in-flight scan (cancelled elsewhere), the
#   driver stops quietly instead of touching the store again
#

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from interrogative.base.clock import Clock
from interrogative.data.models import ScanDescriptor, ScanRecord, ScanType
from interrogative.data.scan_store import CANCELLED_DETAILS, ScanLifecycleStore
from interrogative.engine.classifier import Classifier, RandomClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseStep:
    progress: int
    label: str
    delay: float  # seconds spent in this phase


FILE_SCAN_PHASES: Tuple[PhaseStep, ...] = (
    PhaseStep(20, "Initializing scan...", 0.8),
    PhaseStep(40, "Analyzing content...", 1.2),
    PhaseStep(60, "Checking signatures...", 1.5),
    PhaseStep(80, "Deep scanning...", 0.6),
    PhaseStep(100, "Finalizing results...", 0.4),
)

URL_SCAN_PHASES: Tuple[PhaseStep, ...] = (
    PhaseStep(20, "Checking URL reputation...", 1.5),
    PhaseStep(40, "Analyzing domain security...", 1.5),
    PhaseStep(60, "Scanning for phishing patterns...", 1.5),
    PhaseStep(80, "Verifying SSL certificates...", 1.5),
    PhaseStep(100, "URL scan complete", 1.5),
)


def phases_for(scan_type: ScanType) -> Tuple[PhaseStep, ...]:
    return URL_SCAN_PHASES if scan_type == ScanType.URL else FILE_SCAN_PHASES


class ScanPhaseDriver:
    """Runs one scan at a time against a ScanLifecycleStore."""

    def __init__(
        self,
        store: ScanLifecycleStore,
        classifier: Optional[Classifier] = None,
        clock: Optional[Clock] = None,
        phases: Optional[Sequence[PhaseStep]] = None,
        time_scale: Optional[float] = None,
    ):
        self.store = store
        self.classifier = classifier or RandomClassifier()
        self.clock = clock or store.clock
        self.phases_override = tuple(phases) if phases is not None else None
        if time_scale is None:
            time_scale = store.config.scan.phase_time_scale
        self.time_scale = max(0.0, time_scale)

        self._scan_id: Optional[str] = None
        self._phases: Tuple[PhaseStep, ...] = ()
        self._cursor = 0

    @property
    def scan_id(self) -> Optional[str]:
        return self._scan_id

    @property
    def active(self) -> bool:
        """True while the driven scan is still the store's in-flight scan."""
        current = self.store.current_scan
        return self._scan_id is not None and current is not None and current.id == self._scan_id

    @property
    def remaining_phases(self) -> int:
        return len(self._phases) - self._cursor

    def begin(self, descriptor: Union[ScanDescriptor, Mapping[str, Any]]) -> Optional[str]:
        """Start a scan in the store. Returns None if the store is busy."""
        scan_id = self.store.start_scan(descriptor)
        if scan_id is None:
            return None
        record = self.store.current_scan
        self._scan_id = scan_id
        self._phases = self.phases_override or phases_for(record.scan_type)
        self._cursor = 0
        return scan_id

    def advance(self) -> Optional[PhaseStep]:
        """Apply the next phase. Returns it, or None when nothing is left to apply."""
        if not self.active or self._cursor >= len(self._phases):
            return None
        step = self._phases[self._cursor]
        self._cursor += 1
        self.store.update_scan_progress(self._scan_id, step.progress, step.label)
        return step

    def finish(self) -> Optional[ScanRecord]:
        """Classify the in-flight scan and complete it."""
        if not self.active:
            self._reset()
            return None
        outcome = self.classifier.classify(self.store.current_scan)
        completed = self.store.complete_scan(self._scan_id, outcome)
        self._reset()
        return completed

    def cancel(self, details: str = CANCELLED_DETAILS) -> Optional[ScanRecord]:
        if not self.active:
            self._reset()
            return None
        cancelled = self.store.cancel_scan(self._scan_id, details)
        self._reset()
        return cancelled

    async def run(self, descriptor: Union[ScanDescriptor, Mapping[str, Any]]) -> Optional[ScanRecord]:
        """
        Drive a scan from start to verdict, sleeping on the clock between phases.

        Returns the completed record, or None when the store was busy or the
        scan was cancelled before the last phase finished.
        """
        scan_id = self.begin(descriptor)
        if scan_id is None:
            return None

        while self._cursor < len(self._phases):
            step = self.advance()
            if step is None:
                break
            await self.clock.sleep(step.delay * self.time_scale)
            if not self.active:
                logger.info(f"[PhaseDriver] Scan {scan_id} no longer in flight; stopping")
                self._reset()
                return None

        return self.finish()

    def _reset(self) -> None:
        self._scan_id = None
        self._phases = ()
        self._cursor = 0
