"""Job, outcome and progress event models."""

import hashlib
import json
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from subrelay.models.database.enums import JobStatus, PipelineEventType
from .units import TranslatedUnit, TranslationUnit


def format_language_pair(source_language: str, target_language: str) -> str:
    """Render a language pair as used for cache keys."""
    return f"{source_language}->{target_language}"


class TranslationJob(BaseModel):
    """Input of the pipeline façade."""

    job_id: Optional[str] = Field(
        default=None,
        description="Job identity; derived from the content when omitted",
    )
    units: List[TranslationUnit] = Field(..., description="Ordered units to translate")
    source_language: str = Field(..., description="Source language code")
    target_language: str = Field(..., description="Target language code")
    glossary: Dict[str, str] = Field(
        default_factory=dict, description="Term -> required translation"
    )
    prompt_template: Optional[str] = Field(
        default=None,
        description="System prompt template with a {{glossary}} placeholder",
    )

    @property
    def language_pair(self) -> str:
        return format_language_pair(self.source_language, self.target_language)

    def resolved_job_id(self) -> str:
        """Explicit job id, or a digest of the language pair and units."""
        if self.job_id:
            return self.job_id
        digest = hashlib.sha256()
        digest.update(self.language_pair.encode("utf-8"))
        digest.update(
            json.dumps(
                [[unit.id, unit.text] for unit in self.units],
                ensure_ascii=False,
                separators=(",", ":"),
            ).encode("utf-8")
        )
        return digest.hexdigest()[:32]


class TranslationOutcome(BaseModel):
    """Result of a pipeline run."""

    job_id: str
    status: JobStatus
    units: List[TranslatedUnit] = Field(
        default_factory=list,
        description="Ordered output; only populated when completed",
    )
    completed_windows: int = 0
    total_windows: int = 0
    resumed_from: int = Field(
        default=0, description="Number of windows restored from a checkpoint"
    )


class PipelineEvent(BaseModel):
    """Progress event surfaced to callers and logs."""

    type: PipelineEventType
    message: str
    window_index: Optional[int] = None
    total_windows: Optional[int] = None
    depth: int = 0
    timestamp: datetime = Field(default_factory=datetime.utcnow)
