"""Demo content loaded on first launch. Timestamps are relative to the clock's `now`."""

from datetime import datetime, timedelta
from typing import List, Tuple

from interrogative.data.models import (
    ApiConfig,
    ApiStatus,
    AppUser,
    Difficulty,
    DocumentType,
    FeatureStatus,
    FeatureType,
    FeatureUpdate,
    LibraryDocument,
    Notification,
    NotificationType,
    ReportEvidence,
    ReportStatus,
    RiskLevel,
    Severity,
    ThreatComment,
    ThreatReport,
    ThreatType,
    UserRole,
    Video,
    new_id,
)


def demo_notifications(now: datetime) -> List[Notification]:
    """Newest first, matching the order add_notification() would produce."""
    rows = [
        ("Security Scan Completed",
         "Full system scan completed successfully. No threats detected.",
         NotificationType.SAFE, False, timedelta(minutes=2)),
        ("Threat Detected",
         "Malicious file detected and quarantined. Review recommended.",
         NotificationType.THREAT, False, timedelta(minutes=15)),
        ("System Update Available",
         "New security definitions available. Update recommended.",
         NotificationType.WARNING, False, timedelta(hours=1)),
        ("Scan Schedule Updated",
         "Your automatic scan schedule has been updated successfully.",
         NotificationType.INFO, True, timedelta(hours=3)),
        ("Network Scan Alert",
         "Suspicious network activity detected on your network.",
         NotificationType.WARNING, False, timedelta(hours=5)),
    ]
    return [
        Notification(
            id=new_id("notif"),
            title=title,
            message=message,
            type=kind,
            is_read=is_read,
            created_at=now - age,
        )
        for title, message, kind, is_read, age in rows
    ]


def _comment(report_id: str, comment_id: str, author: str, content: str,
             created_at: datetime, upvotes: int) -> ThreatComment:
    return ThreatComment(
        id=comment_id,
        report_id=report_id,
        author=author,
        content=content,
        created_at=created_at,
        upvotes=upvotes,
    )


def demo_reports(now: datetime) -> List[ThreatReport]:
    return [
        ThreatReport(
            id="report_1",
            title="Fake Banking App Stealing Credentials",
            description="Discovered a fake mobile banking app that perfectly mimics Chase Bank. "
                        "It steals login credentials and sends them to external servers.",
            threat_type=ThreatType.FAKE_APP,
            severity=Severity.CRITICAL,
            reported_by="SecurityExpert_2024",
            reported_at=now - timedelta(hours=2),
            location="Google Play Store",
            tags=["banking", "credentials", "mobile", "phishing"],
            upvotes=47,
            downvotes=2,
            verified=True,
            status=ReportStatus.VERIFIED,
            comments=[_comment(
                "report_1", "comment_1", "CyberAnalyst",
                "Confirmed! Found the same app. Already reported to Google.",
                now - timedelta(hours=1), 12,
            )],
            evidence=ReportEvidence(
                additional_info="App package name: com.chase.bank.fake - Server IP: 185.234.72.45",
            ),
        ),
        ThreatReport(
            id="report_2",
            title="Phishing Campaign Targeting Office 365 Users",
            description="Large-scale phishing campaign using fake Microsoft login pages. "
                        "Emails appear to come from IT department requesting password updates.",
            threat_type=ThreatType.PHISHING,
            severity=Severity.HIGH,
            url="https://microsft-office365-login.tk",
            reported_by="ITAdmin_Pro",
            reported_at=now - timedelta(hours=6),
            tags=["office365", "microsoft", "email", "credentials"],
            upvotes=34,
            downvotes=1,
            verified=True,
            status=ReportStatus.VERIFIED,
            comments=[_comment(
                "report_2", "comment_2", "EmailSecurity",
                "We blocked this domain on our email gateway. Thanks for the report!",
                now - timedelta(hours=4), 8,
            )],
        ),
        ThreatReport(
            id="report_3",
            title="Cryptocurrency Scam on Social Media",
            description="Fake Elon Musk accounts promoting Bitcoin giveaway scams. "
                        "Users send crypto to receive double back but never get anything.",
            threat_type=ThreatType.SCAM,
            severity=Severity.MEDIUM,
            reported_by="CryptoWatcher",
            reported_at=now - timedelta(hours=12),
            location="Twitter/X",
            tags=["cryptocurrency", "bitcoin", "social media", "scam"],
            upvotes=28,
            downvotes=3,
            status=ReportStatus.INVESTIGATING,
        ),
        ThreatReport(
            id="report_4",
            title="Malicious Browser Extension",
            description='Chrome extension "AdBlock Plus Pro" is actually malware that steals '
                        "browsing data and injects ads.",
            threat_type=ThreatType.MALWARE,
            severity=Severity.HIGH,
            reported_by="BrowserSec",
            reported_at=now - timedelta(days=1),
            location="Chrome Web Store",
            tags=["browser", "extension", "adware", "data theft"],
            upvotes=56,
            downvotes=0,
            verified=True,
            status=ReportStatus.VERIFIED,
            comments=[_comment(
                "report_4", "comment_3", "ChromeUser",
                "Just removed this from my browser. Thanks for the warning!",
                now - timedelta(hours=20), 15,
            )],
        ),
        ThreatReport(
            id="report_5",
            title="Suspicious URL Shortener Campaign",
            description="Multiple shortened URLs (bit.ly/xxx) leading to fake antivirus download "
                        "pages. Claims computer is infected.",
            threat_type=ThreatType.SUSPICIOUS_URL,
            severity=Severity.MEDIUM,
            url="bit.ly/secure-scan-now",
            reported_by="URLAnalyzer",
            reported_at=now - timedelta(days=2),
            tags=["url shortener", "fake antivirus", "scareware"],
            upvotes=19,
            downvotes=1,
        ),
    ]


def demo_videos() -> List[Video]:
    return [
        Video(
            id="1",
            title="Ethical Hacking Full Course - Learn Ethical Hacking in 10 Hours",
            description="Complete ethical hacking course covering penetration testing, "
                        "vulnerability assessment, and security tools.",
            youtube_id="fNzpcB7ODxQ",
            channel="Edureka!",
            duration="10:15:30",
            difficulty=Difficulty.BEGINNER,
            tags=["ethical hacking", "penetration testing", "cybersecurity"],
            views="2.1M",
            published_at="2021-03-15",
        ),
        Video(
            id="2",
            title="you need to learn Cybersecurity RIGHT NOW!! (2024)",
            description="NetworkChuck explains why cybersecurity is crucial and how to get "
                        "started in the field.",
            youtube_id="nzZkKoREEGo",
            channel="NetworkChuck",
            duration="15:42",
            difficulty=Difficulty.BEGINNER,
            tags=["cybersecurity career", "getting started", "security basics"],
            views="1.8M",
            published_at="2024-01-10",
        ),
        Video(
            id="3",
            title="Malware Analysis for Beginners",
            description="John Hammond walks through basic malware analysis techniques and tools.",
            youtube_id="p7f4dOE4pXE",
            channel="John Hammond",
            duration="28:15",
            difficulty=Difficulty.INTERMEDIATE,
            tags=["malware analysis", "reverse engineering", "security research"],
            views="456K",
            published_at="2023-09-22",
        ),
        Video(
            id="4",
            title="Complete Python Ethical Hacking Course",
            description="Learn to build ethical hacking tools with Python programming.",
            youtube_id="WnN6dbos5u4",
            channel="Tech With Tim",
            duration="3:45:20",
            difficulty=Difficulty.INTERMEDIATE,
            tags=["python", "ethical hacking", "programming"],
            views="156K",
            published_at="2023-12-01",
        ),
    ]


def demo_documents() -> List[LibraryDocument]:
    return [
        LibraryDocument(
            id="1",
            title="NIST Cybersecurity Framework Guide",
            description="Comprehensive guide to implementing the NIST Cybersecurity Framework "
                        "in organizations.",
            type=DocumentType.GUIDE,
            download_url="https://nvlpubs.nist.gov/nistpubs/CSWP/NIST.CSWP.04162018.pdf",
            file_size="3.2 MB",
            difficulty=Difficulty.INTERMEDIATE,
            tags=["NIST", "framework", "compliance", "governance"],
            author="NIST",
            pages=41,
        ),
        LibraryDocument(
            id="2",
            title="CISA Phishing Prevention Guide",
            description="Essential guide for preventing phishing attacks in your organization.",
            type=DocumentType.GUIDE,
            download_url="https://www.cisa.gov/sites/default/files/publications/Phishing_Guide_2021_508.pdf",
            file_size="1.8 MB",
            difficulty=Difficulty.BEGINNER,
            tags=["phishing", "prevention", "email security", "awareness"],
            author="CISA",
            pages=12,
        ),
        LibraryDocument(
            id="3",
            title="SANS Malware Analysis Fundamentals",
            description="Fundamental techniques for malware analysis and reverse engineering.",
            type=DocumentType.WHITEPAPER,
            download_url="https://www.sans.org/white-papers/2040/",
            file_size="2.1 MB",
            difficulty=Difficulty.ADVANCED,
            tags=["malware analysis", "reverse engineering", "threat intelligence"],
            author="SANS Institute",
            pages=28,
        ),
        LibraryDocument(
            id="4",
            title="NIST Incident Response Guide",
            description="Computer security incident handling guide from NIST.",
            type=DocumentType.GUIDE,
            download_url="https://nvlpubs.nist.gov/nistpubs/SpecialPublications/NIST.SP.800-61r2.pdf",
            file_size="4.1 MB",
            difficulty=Difficulty.INTERMEDIATE,
            tags=["incident response", "NIST", "procedures", "team coordination"],
            author="NIST",
        ),
    ]


def demo_admin(now: datetime) -> Tuple[List[AppUser], List[ApiConfig], List[FeatureUpdate]]:
    users = [
        AppUser(
            id="user_1",
            name="ndinkeh318",
            email="ndinkeh318@email.com",
            role=UserRole.GENERAL_USER,
            last_login=now,
            registered_at=now - timedelta(days=30),
            scan_count=12,
        ),
    ]
    apis = [
        ApiConfig(
            id="api_1",
            name="VirusTotal API",
            endpoint="https://www.virustotal.com/vtapi/v2/",
            api_key="vt_" + "*" * 28,
            provider="VirusTotal",
            status=ApiStatus.ACTIVE,
            last_updated=now,
            request_count=12,
            description="Primary threat detection API for file and URL scanning",
        ),
    ]
    features = [
        FeatureUpdate(
            id="feature_1",
            title="Enhanced Real-time Scanning",
            description="Improved real-time file system monitoring with ML-based detection",
            version="2.1.0",
            type=FeatureType.NEW_FEATURE,
            status=FeatureStatus.DEPLOYED,
            priority=RiskLevel.HIGH,
            created_by="admin",
            created_at=now - timedelta(days=5),
            deployed_at=now - timedelta(days=1),
            affected_users=8456,
        ),
        FeatureUpdate(
            id="feature_2",
            title="Zero-Day Threat Response",
            description="Emergency patch for newly discovered zero-day vulnerability",
            version="2.0.3",
            type=FeatureType.SECURITY_PATCH,
            status=FeatureStatus.TESTING,
            priority=RiskLevel.CRITICAL,
            created_by="admin",
            created_at=now - timedelta(days=1),
        ),
    ]
    return users, apis, features
