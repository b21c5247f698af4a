# ============================================================================
# interrogative/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every tunable setting of the scanner state layer. Sections are
# frozen dataclasses; the top-level AppConfig is read from environment
# variables once and shared through get_config()/set_config().
#
# KEY CONCEPTS:
# 1. Dataclasses: immutable sections (storage, scan, community, log)
# 2. Environment Variables: INTERROGATIVE_* overrides
# 3. Singleton access: one config per process, replaceable in tests
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
        return parsed if parsed > 0 else default
    except ValueError:
        logger.warning("[Config] Ignoring non-integer %s=%r", name, value)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value)
        return parsed if parsed >= 0 else default
    except ValueError:
        logger.warning("[Config] Ignoring non-numeric %s=%r", name, value)
        return default


# ============================================================================
# File Storage Configuration
# ============================================================================

@dataclass(frozen=True)
class StorageConfig:
    # Base directory for all local data (snapshot database, log file)
    base_dir: Path = field(default_factory=lambda: Path.home() / ".interrogative")

    # Name of the SQLite file holding store snapshots
    db_name: str = "interrogative.db"

    @property
    def db_path(self) -> Path:
        return self.base_dir / self.db_name


# ============================================================================
# Scan Lifecycle Configuration
# ============================================================================

@dataclass(frozen=True)
class ScanConfig:
    # Number of completed scans retained in the recent history
    history_limit: int = 20

    # Ignore progress reports lower than the last one seen for the in-flight scan
    reject_progress_regression: bool = True

    # Multiplier applied to phase delays (0 = no waiting at all)
    phase_time_scale: float = 1.0


# ============================================================================
# Community Ledger Configuration
# ============================================================================

@dataclass(frozen=True)
class CommunityConfig:
    # User on whose behalf votes and reports are recorded
    acting_user: str = "anonymous"

    # Reports younger than this many days are candidates for trending
    trending_window_days: int = 7

    # Maximum number of trending reports returned
    trending_limit: int = 10


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_enabled: bool = True
    file_name: str = "interrogative.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class AppConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    # Seed demo notifications/reports/library content on first start
    seed_demo_data: bool = True

    def ensure_dirs(self) -> None:
        self.storage.base_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "AppConfig":
        base_dir = Path(os.getenv("INTERROGATIVE_DATA_DIR", str(Path.home() / ".interrogative")))
        storage = StorageConfig(base_dir=base_dir)

        scan = ScanConfig(
            history_limit=_env_int("INTERROGATIVE_HISTORY_LIMIT", 20),
            reject_progress_regression=_env_bool("INTERROGATIVE_REJECT_PROGRESS_REGRESSION", True),
            phase_time_scale=_env_float("INTERROGATIVE_PHASE_TIME_SCALE", 1.0),
        )

        community = CommunityConfig(
            acting_user=os.getenv("INTERROGATIVE_USER", "anonymous"),
            trending_window_days=_env_int("INTERROGATIVE_TRENDING_DAYS", 7),
            trending_limit=_env_int("INTERROGATIVE_TRENDING_LIMIT", 10),
        )

        log = LogConfig(
            level=os.getenv("INTERROGATIVE_LOG_LEVEL", "INFO"),
            file_enabled=_env_bool("INTERROGATIVE_LOG_FILE", True),
        )

        return cls(
            storage=storage,
            scan=scan,
            community=community,
            log=log,
            debug=_env_bool("INTERROGATIVE_DEBUG", False),
            seed_demo_data=_env_bool("INTERROGATIVE_SEED_DEMO", True),
        )


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance, loading it from the environment
    on first use.
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """
    Replace the global configuration (mainly used for testing).

    Passing None forces the next get_config() to reload from the environment.
    """
    global _config
    _config = config


def setup_logging(config: Optional[AppConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Sets up console and, when enabled, rotating file logging.
    Call this once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        cfg.ensure_dirs()
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
