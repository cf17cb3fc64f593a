"""Translation unit and window models.

This module defines the input and output data structures flowing through
the batch scheduler.
"""

from typing import List

from pydantic import BaseModel, Field


class TranslationUnit(BaseModel):
    """A single line to translate.

    Identity is ``id``; it is never reassigned when a window is split.
    """

    id: int = Field(..., description="Unit id, unique within a job")
    text: str = Field(..., description="Source text")


class TranslatedUnit(BaseModel):
    """A translated line, the pipeline output element."""

    id: int = Field(..., description="Unit id copied from the input")
    source_text: str = Field(..., description="Original text")
    translated_text: str = Field(..., description="Translated text")


class Window(BaseModel):
    """A contiguous slice of units processed as one logical request."""

    units: List[TranslationUnit] = Field(..., description="Units in input order")
    context_lines: List[TranslatedUnit] = Field(
        default_factory=list,
        description="Read-only prior output included as passive context",
    )
    index: int = Field(default=0, description="Top-level window index")
    total_windows: int = Field(default=1, description="Number of top-level windows")

    @property
    def unit_ids(self) -> List[int]:
        return [unit.id for unit in self.units]

    def split(self) -> tuple["Window", "Window"]:
        """Split into halves; the first half is ``len // 2`` units.

        Both halves start with this window's context; the caller replaces
        the second half's context once the first half has been translated.
        """
        mid = len(self.units) // 2
        first = self.model_copy(update={"units": self.units[:mid]})
        second = self.model_copy(update={"units": self.units[mid:]})
        return first, second


def partition(units: List[TranslationUnit], window_size: int) -> List[List[TranslationUnit]]:
    """Partition units into consecutive chunks of ``window_size``."""
    if window_size <= 0:
        raise ValueError(f"window_size must be positive, got {window_size}")
    return [units[i:i + window_size] for i in range(0, len(units), window_size)]
