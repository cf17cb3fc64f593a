"""Checkpoint model."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from .units import TranslatedUnit, TranslationUnit


class Checkpoint(BaseModel):
    """Durable progress record for a job.

    ``accumulated_results`` always holds exactly the output of the first
    ``completed_windows`` windows, in order.
    """

    job_id: str = Field(..., description="Job identity")
    language_pair: str = Field(..., description="Language pair the job runs under")
    window_size: int = Field(..., gt=0, description="Window size used to partition")
    completed_windows: int = Field(default=0, ge=0)
    total_windows: int = Field(default=0, ge=0)
    accumulated_results: List[TranslatedUnit] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def expected_length(self, unit_count: int) -> int:
        """Units covered by the completed windows."""
        return min(self.completed_windows * self.window_size, unit_count)

    def matches(self, units: List[TranslationUnit], language_pair: str, window_size: int) -> bool:
        """Check that this checkpoint can resume a run over ``units``."""
        if self.language_pair != language_pair or self.window_size != window_size:
            return False
        if self.completed_windows > self.total_windows:
            return False
        if len(self.accumulated_results) != self.expected_length(len(units)):
            return False
        return all(
            result.id == unit.id
            for result, unit in zip(self.accumulated_results, units)
        )
