"""Module classifier: the verdict capability handed to the scan phase driver."""
#
# PURPOSE:
# There is no detection engine behind the scanner. A Classifier turns a
# finished ScanRecord into a ScanOutcome; the store never decides verdicts.
#
# - StaticClassifier: always the same outcome (tests, scripted demos)
# - RandomClassifier: the demo distribution, reproducible with a seed
#

import logging
import random
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from interrogative.data.models import RiskLevel, ScanOutcome, ScanRecord, ScanStatus, ScanType

logger = logging.getLogger(__name__)

FILE_THREAT_TYPES: Sequence[str] = ("Malware", "Trojan", "Virus", "Adware")
FILE_THREAT_RISKS: Sequence[RiskLevel] = (RiskLevel.HIGH, RiskLevel.MEDIUM, RiskLevel.CRITICAL)
SUSPICIOUS_URL_MARKERS: Sequence[str] = ("bit.ly", "tinyurl", "short.link", "suspicious")

FILE_THREAT_PROBABILITY = 0.2
URL_ISSUE_PROBABILITY = 0.15
FILE_SCAN_DURATION_MS = 2300


class Classifier(ABC):
    @abstractmethod
    def classify(self, record: ScanRecord) -> ScanOutcome:
        """Return the terminal outcome for a scan whose phases have all run."""


class StaticClassifier(Classifier):
    def __init__(self, outcome: Optional[ScanOutcome] = None):
        self.outcome = outcome or ScanOutcome(status=ScanStatus.SAFE, details="No threats found")

    def classify(self, record: ScanRecord) -> ScanOutcome:
        return self.outcome.model_copy()


class RandomClassifier(Classifier):
    """
    Demo verdicts.

    Files are flagged with probability 0.2 and given a random threat type and
    elevated risk. URLs matching a known shortener/suspicious marker, or
    unlucky with probability 0.15, get one or two issues: one issue is a
    warning, two are a threat.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def classify(self, record: ScanRecord) -> ScanOutcome:
        if record.scan_type == ScanType.URL:
            return self._classify_url(record.url)
        return self._classify_file()

    def _classify_file(self) -> ScanOutcome:
        if self._rng.random() < FILE_THREAT_PROBABILITY:
            threat_type = self._rng.choice(FILE_THREAT_TYPES)
            return ScanOutcome(
                status=ScanStatus.THREAT,
                threat_type=threat_type,
                risk_level=self._rng.choice(FILE_THREAT_RISKS),
                duration=FILE_SCAN_DURATION_MS,
                details=f"{threat_type} detected in file",
            )
        return ScanOutcome(
            status=ScanStatus.SAFE,
            risk_level=RiskLevel.LOW,
            duration=FILE_SCAN_DURATION_MS,
            details="No threats found",
        )

    def _classify_url(self, url: str) -> ScanOutcome:
        lowered = url.lower()
        suspicious = any(marker in lowered for marker in SUSPICIOUS_URL_MARKERS)
        issues = 0
        # Draw unconditionally so a seed yields the same sequence for any URL mix
        unlucky = self._rng.random() < URL_ISSUE_PROBABILITY
        if suspicious or unlucky:
            issues = self._rng.randint(1, 2)

        if issues == 0:
            status, risk = ScanStatus.SAFE, RiskLevel.LOW
        elif issues == 1:
            status, risk = ScanStatus.WARNING, RiskLevel.MEDIUM
        else:
            status, risk = ScanStatus.THREAT, RiskLevel.HIGH
        logger.debug(f"[Classifier] {url}: {issues} issue(s)")
        return ScanOutcome(
            status=status,
            threat_type="Suspicious URL" if issues else None,
            risk_level=risk,
            details=f"URL scan completed. Status: {status.value}. Issues found: {issues}",
        )
