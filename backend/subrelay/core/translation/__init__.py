"""Translation package.

This package provides the batch translation pipeline.

Architecture:
- models/: Data models (TranslationUnit, Window, Checkpoint, etc.)
- scheduler.py: Cache-first batch scheduler with split-retry
- pipeline.py: Job façade with checkpoints and cancellation
- context.py, prompt.py: Passive context and system prompt building
- checkpoint.py: Checkpoint persistence
- jobs.py: Registry for runs started through the API
"""

from .checkpoint import CheckpointManager
from .context import ContextPropagator, context_tail
from .jobs import JobRecord, JobRegistry
from .models import (
    Checkpoint,
    PipelineEvent,
    TranslatedUnit,
    TranslationJob,
    TranslationOutcome,
    TranslationUnit,
    Window,
    partition,
)
from .pipeline import TranslationPipeline
from .prompt import build_system_prompt
from .scheduler import BatchScheduler, JobContext

__all__ = [
    # Models
    "TranslationUnit",
    "TranslatedUnit",
    "Window",
    "partition",
    "TranslationJob",
    "TranslationOutcome",
    "PipelineEvent",
    "Checkpoint",
    # Components
    "ContextPropagator",
    "context_tail",
    "CheckpointManager",
    "build_system_prompt",
    "BatchScheduler",
    "JobContext",
    "TranslationPipeline",
    # API support
    "JobRecord",
    "JobRegistry",
]
