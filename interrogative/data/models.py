"""
interrogative/data/models.py

Entity models for every store. Pydantic models give us validation at the
edges (scan descriptors, report drafts) and JSON-mode dumps for snapshots.

Enums subclass str so persisted snapshots hold plain strings and callers
may compare against literals ("threat", "Critical", ...).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from interrogative.base.validation import is_valid_file_size, sanitize_input


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


# ---------------------------------------------------------------------------
# Scans
# ---------------------------------------------------------------------------

class ScanType(str, Enum):
    FILE = "file"
    URL = "url"


class ScanStatus(str, Enum):
    PENDING = "pending"
    SCANNING = "scanning"
    SAFE = "safe"
    THREAT = "threat"
    WARNING = "warning"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({
    ScanStatus.SAFE, ScanStatus.THREAT, ScanStatus.WARNING, ScanStatus.CANCELLED,
})


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ScanDescriptor(BaseModel):
    """What the user asked to scan: exactly one of a file name or a URL."""

    file_name: Optional[str] = None
    url: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0)

    @field_validator("file_name", "url")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "ScanDescriptor":
        if (self.file_name is None) == (self.url is None):
            raise ValueError("exactly one of file_name or url must be given")
        if self.file_size is not None and not is_valid_file_size(self.file_size):
            raise ValueError(f"file of {self.file_size} bytes exceeds the scan size limit")
        return self

    @property
    def scan_type(self) -> ScanType:
        return ScanType.FILE if self.file_name is not None else ScanType.URL

    @property
    def target(self) -> str:
        return self.file_name if self.file_name is not None else self.url


class ScanRecord(BaseModel):
    id: str
    scan_type: ScanType
    file_name: Optional[str] = None
    url: Optional[str] = None
    status: ScanStatus = ScanStatus.SCANNING
    threat_type: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    timestamp: datetime
    duration: Optional[int] = Field(default=None, ge=0)
    details: Optional[str] = None

    @model_validator(mode="after")
    def _target_matches_type(self) -> "ScanRecord":
        if (self.file_name is None) == (self.url is None):
            raise ValueError("exactly one of file_name or url must be set")
        expected = ScanType.FILE if self.file_name is not None else ScanType.URL
        if self.scan_type != expected:
            raise ValueError(f"scan_type {self.scan_type.value!r} does not match the target")
        return self

    @property
    def target(self) -> str:
        return self.file_name if self.file_name is not None else self.url

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ScanOutcome(BaseModel):
    """Terminal verdict handed to complete_scan() by the classifier or the UI."""

    status: ScanStatus = ScanStatus.SAFE
    threat_type: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    details: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)

    @field_validator("status")
    @classmethod
    def _must_be_terminal(cls, value: ScanStatus) -> ScanStatus:
        if value not in TERMINAL_STATUSES:
            raise ValueError(f"outcome status must be terminal, got {value.value!r}")
        return value


class ScanStatistics(BaseModel):
    total_scans: int = Field(default=0, ge=0)
    threats_detected: int = Field(default=0, ge=0)
    safe_scans: int = Field(default=0, ge=0)
    pending_scans: int = Field(default=0, ge=0)
    today_scans: int = Field(default=0, ge=0)
    weekly_scans: int = Field(default=0, ge=0)
    monthly_scans: int = Field(default=0, ge=0)
    last_scan_time: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Community reports
# ---------------------------------------------------------------------------

class ThreatType(str, Enum):
    MALWARE = "Malware"
    PHISHING = "Phishing"
    SCAM = "Scam"
    SUSPICIOUS_URL = "Suspicious URL"
    FAKE_APP = "Fake App"
    DATA_BREACH = "Data Breach"
    OTHER = "Other"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: Dict[Severity, int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class ReportStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    INVESTIGATING = "investigating"


class SortKey(str, Enum):
    RECENT = "recent"
    POPULAR = "popular"
    SEVERITY = "severity"
    VERIFIED = "verified"


class ThreatComment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    report_id: str
    author: str
    content: str
    created_at: datetime
    upvotes: int = Field(default=0, ge=0)


class ReportEvidence(BaseModel):
    screenshots: List[str] = Field(default_factory=list)
    logs: Optional[str] = None
    additional_info: Optional[str] = None


class ThreatReportDraft(BaseModel):
    """User-supplied fields of a new report; the ledger fills in the rest."""

    title: str = Field(min_length=1)
    description: str = ""
    threat_type: ThreatType = ThreatType.OTHER
    severity: Severity = Severity.MEDIUM
    url: Optional[str] = None
    file_hash: Optional[str] = None
    file_name: Optional[str] = None
    location: Optional[str] = None
    reported_by: str = "anonymous"
    tags: List[str] = Field(default_factory=list)
    evidence: Optional[ReportEvidence] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return sanitize_input(value)
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: List[str]) -> List[str]:
        return _dedupe([t.strip() for t in value if t and t.strip()])


class ThreatReport(BaseModel):
    id: str
    title: str
    description: str = ""
    threat_type: ThreatType
    severity: Severity
    url: Optional[str] = None
    file_hash: Optional[str] = None
    file_name: Optional[str] = None
    location: Optional[str] = None
    reported_by: str
    reported_at: datetime
    tags: List[str] = Field(default_factory=list)
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    verified: bool = False
    status: ReportStatus = ReportStatus.PENDING
    comments: List[ThreatComment] = Field(default_factory=list)
    evidence: Optional[ReportEvidence] = None

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        return _dedupe(value)

    @property
    def score(self) -> int:
        """Popularity: net votes."""
        return self.upvotes - self.downvotes


class VoteLedger(BaseModel):
    """One user's votes; a report id lives in at most one of the two lists."""

    upvoted: List[str] = Field(default_factory=list)
    downvoted: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _disjoint(self) -> "VoteLedger":
        overlap = set(self.upvoted) & set(self.downvoted)
        if overlap:
            raise ValueError(f"report ids voted both ways: {sorted(overlap)}")
        return self

    def vote_for(self, report_id: str) -> Optional[str]:
        if report_id in self.upvoted:
            return "up"
        if report_id in self.downvoted:
            return "down"
        return None


class Contributor(BaseModel):
    username: str
    reports_count: int
    reputation: int


class CommunityStats(BaseModel):
    total_reports: int = 0
    verified_reports: int = 0
    active_users: int = 0
    total_votes: int = 0
    top_contributors: List[Contributor] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationType(str, Enum):
    SAFE = "safe"
    THREAT = "threat"
    WARNING = "warning"
    INFO = "info"


class NotificationDraft(BaseModel):
    title: str = Field(min_length=1)
    message: str = ""
    type: NotificationType = NotificationType.INFO
    is_read: bool = False


class Notification(BaseModel):
    id: str
    title: str
    message: str = ""
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    created_at: datetime


# ---------------------------------------------------------------------------
# Learning library
# ---------------------------------------------------------------------------

class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Video(BaseModel):
    id: str
    title: str
    description: str = ""
    youtube_id: str = ""
    channel: str = ""
    duration: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    tags: List[str] = Field(default_factory=list)
    views: str = ""
    published_at: Optional[str] = None


class DocumentType(str, Enum):
    PDF = "PDF"
    GUIDE = "Guide"
    WHITEPAPER = "Whitepaper"
    CHECKLIST = "Checklist"


class LibraryDocument(BaseModel):
    id: str
    title: str
    description: str = ""
    type: DocumentType = DocumentType.GUIDE
    download_url: str = ""
    file_size: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    tags: List[str] = Field(default_factory=list)
    author: str = ""
    pages: Optional[int] = None


# ---------------------------------------------------------------------------
# Admin directory
# ---------------------------------------------------------------------------

class UserRole(str, Enum):
    GENERAL_USER = "general_user"
    SECURITY_ANALYST = "security_analyst"


class AppUser(BaseModel):
    id: str
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: UserRole = UserRole.GENERAL_USER
    is_active: bool = True
    last_login: Optional[datetime] = None
    registered_at: datetime
    scan_count: int = Field(default=0, ge=0)
    threats_reported: int = Field(default=0, ge=0)


class ApiStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class ApiConfig(BaseModel):
    """A third-party threat-intel endpoint. Configuration only, never called."""

    id: str
    name: str = Field(min_length=1)
    endpoint: str
    api_key: str = ""
    provider: str = ""
    status: ApiStatus = ApiStatus.INACTIVE
    last_updated: datetime
    request_count: int = Field(default=0, ge=0)
    error_rate: float = Field(default=0.0, ge=0.0)
    description: str = ""


class FeatureType(str, Enum):
    SECURITY_PATCH = "security_patch"
    NEW_FEATURE = "new_feature"
    BUG_FIX = "bug_fix"
    THREAT_RESPONSE = "threat_response"


class FeatureStatus(str, Enum):
    DRAFT = "draft"
    TESTING = "testing"
    APPROVED = "approved"
    DEPLOYED = "deployed"


class FeatureUpdate(BaseModel):
    id: str
    title: str = Field(min_length=1)
    description: str = ""
    version: str
    type: FeatureType = FeatureType.NEW_FEATURE
    status: FeatureStatus = FeatureStatus.DRAFT
    priority: RiskLevel = RiskLevel.MEDIUM
    created_by: str = ""
    created_at: datetime
    deployed_at: Optional[datetime] = None
    affected_users: int = Field(default=0, ge=0)


def model_payload(data: Any) -> Dict[str, Any]:
    """Accept either a model or a mapping and return a plain dict."""
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)
