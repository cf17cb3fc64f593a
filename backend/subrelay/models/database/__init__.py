"""Database models package."""

from subrelay.models.database.base import Base, create_engine_and_sessions, init_db
from subrelay.models.database.cache_entry import CacheEntry
# Centralized enums
from subrelay.models.database.enums import JobStatus, PipelineEventType, Severity

__all__ = [
    # Base
    "Base",
    "create_engine_and_sessions",
    "init_db",
    # Models
    "CacheEntry",
    # Enums
    "JobStatus",
    "PipelineEventType",
    "Severity",
]
