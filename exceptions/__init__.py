"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ExternalServiceError,

    # Trends
    InvalidGranularityError,
    InvalidMovingAveragePeriodError,

    # Snapshot
    SnapshotValidationError,
    SnapshotFetchError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ExternalServiceError",

    # Trends
    "InvalidGranularityError",
    "InvalidMovingAveragePeriodError",

    # Snapshot
    "SnapshotValidationError",
    "SnapshotFetchError",
]
