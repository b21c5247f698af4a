"""Module errors: structured error taxonomy for the scanner state layer."""
#
# PURPOSE:
# Error codes plus a single typed exception. Most store operations never
# raise: invalid or stale references are silent no-ops. ScannerError is
# reserved for callers that break an operation's contract (malformed scan
# target, malformed report) and for the persistence layer.
#
# ERROR CODE FORMAT:
# - SCAN_XXX: Scan lifecycle errors
# - REPORT_XXX: Community report errors
# - NOTIFY_XXX: Notification errors
# - ADMIN_XXX: Admin directory errors
# - DB_XXX / SNAPSHOT_XXX: Persistence errors
# - API_XXX: Collaborator (connectivity test) errors
# - CONFIG_XXX / SYSTEM_XXX
#
# USAGE:
#   from interrogative.base.errors import ScannerError, ErrorCode
#
#   raise ScannerError(
#       ErrorCode.SCAN_TARGET_INVALID,
#       "Exactly one of file_name or url must be given",
#       details={"file_name": None, "url": None}
#   )
#
import json
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Scan Errors
    SCAN_ALREADY_RUNNING = "SCAN_001"
    SCAN_TARGET_INVALID = "SCAN_002"
    SCAN_OUTCOME_INVALID = "SCAN_003"
    SCAN_CANCELLED = "SCAN_004"
    SCAN_NOT_FOUND = "SCAN_005"

    # Community Errors
    REPORT_INVALID = "REPORT_001"
    REPORT_NOT_FOUND = "REPORT_002"

    # Notification Errors
    NOTIFY_INVALID = "NOTIFY_001"

    # Admin Errors
    ADMIN_DUPLICATE_ID = "ADMIN_001"
    ADMIN_INVALID = "ADMIN_002"

    # Database Errors
    DB_CONNECTION_FAILED = "DB_001"
    DB_QUERY_FAILED = "DB_002"
    DB_INIT_FAILED = "DB_003"

    # Snapshot Errors
    SNAPSHOT_VERSION_MISMATCH = "SNAPSHOT_001"
    SNAPSHOT_DECODE_FAILED = "SNAPSHOT_002"

    # Collaborator Errors
    API_CONNECTION_FAILED = "API_001"
    API_TIMEOUT = "API_002"

    # Config Errors
    CONFIG_INVALID = "CONFIG_001"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class ScannerError(Exception):
    """
    Base exception class with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "SCAN_002")
        message: Human-readable error message
        details: Optional dictionary with additional context
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerError":
        return cls(ErrorCode(data["code"]), data["message"], data.get("details", {}))


# ============================================================================
# Convenience Functions
# ============================================================================

def handle_error(error: Exception, context: Optional[str] = None) -> ScannerError:
    """
    Convert a generic exception to a ScannerError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while testing API connection")

    Returns:
        ScannerError with appropriate code and message
    """
    if isinstance(error, ScannerError):
        return error

    error_type = type(error).__name__

    if "Timeout" in error_type or "timeout" in str(error).lower():
        code = ErrorCode.API_TIMEOUT
    elif "Connection" in error_type or "connection" in str(error).lower():
        code = ErrorCode.API_CONNECTION_FAILED
    else:
        code = ErrorCode.SYSTEM_INTERNAL_ERROR

    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return ScannerError(
        code=code,
        message=message,
        details={
            "original_type": error_type,
            "original_message": str(error),
        },
    )


__all__ = ["ErrorCode", "ScannerError", "handle_error"]
