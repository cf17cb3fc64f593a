"""Centralized enum definitions.

All status and type enums should be defined here for consistency.
"""

from enum import Enum


# =============================================================================
# Job Enums
# =============================================================================


class JobStatus(str, Enum):
    """Translation job status enum."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PipelineEventType(str, Enum):
    """Progress events emitted by the pipeline."""

    RESUMED = "resumed"
    WINDOW_STARTED = "window_started"
    CACHE_HIT = "cache_hit"
    BACKEND_FAILURE = "backend_failure"
    SPLIT = "split"
    QUALITY_RETRY = "quality_retry"
    WINDOW_COMPLETED = "window_completed"
    CHECKPOINT_WARNING = "checkpoint_warning"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# =============================================================================
# Quality Enums
# =============================================================================


class Severity(str, Enum):
    """Lint issue severity."""

    HIGH = "HIGH"
    MEDIUM = "MED"
    LOW = "LOW"
