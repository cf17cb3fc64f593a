"""Translation pipeline data models.

This module provides structured data models for the translation pipeline,
ensuring type safety and clear contracts between components.
"""

from .checkpoint import Checkpoint
from .job import (
    PipelineEvent,
    TranslationJob,
    TranslationOutcome,
    format_language_pair,
)
from .units import TranslatedUnit, TranslationUnit, Window, partition

__all__ = [
    # Unit models
    "TranslationUnit",
    "TranslatedUnit",
    "Window",
    "partition",
    # Job models
    "TranslationJob",
    "TranslationOutcome",
    "PipelineEvent",
    "format_language_pair",
    # Checkpoint
    "Checkpoint",
]
