"""
Custom exception classes for the application.

Data-quality problems inside a snapshot never raise: rows are rejected,
joins default, and undefined ratios become None. These exceptions cover
caller mistakes and data-source failures only.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "INVALID_GRANULARITY")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# TREND ERRORS
# ===================

class InvalidGranularityError(ValidationError):
    """Unknown bucketing granularity."""

    def __init__(self, granularity: str, valid: list[str]):
        super().__init__(
            code="INVALID_GRANULARITY",
            message=f"Granularity must be one of: {', '.join(valid)}",
            details={"provided": granularity, "valid": valid}
        )


class InvalidMovingAveragePeriodError(ValidationError):
    """Moving average period below 1."""

    def __init__(self, period: int):
        super().__init__(
            code="INVALID_MOVING_AVERAGE_PERIOD",
            message="Moving average period must be at least 1",
            details={"provided": period}
        )


# ===================
# SNAPSHOT ERRORS
# ===================

class SnapshotValidationError(ValidationError):
    """Snapshot payload is not shaped as named collections of records."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="SNAPSHOT_INVALID",
            message=message,
            details=details
        )


class SnapshotFetchError(ExternalServiceError):
    """Fetching a collection from the spreadsheet API failed."""

    def __init__(self, sheet_type: str, message: str, details: Optional[dict] = None):
        super().__init__(
            service="sheets",
            message=message,
            details={"sheet_type": sheet_type, **(details or {})}
        )
