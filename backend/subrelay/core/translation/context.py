"""Passive context propagation between windows."""

from typing import List, Sequence

from .models import TranslatedUnit


class ContextPropagator:
    """Keeps the trailing translated lines shown to the next window.

    Context lines are sent to the backend for continuity only; they are
    never translated again and never written to the cache.
    """

    def __init__(self, context_size: int = 3):
        """Initialize the propagator.

        Args:
            context_size: Number of trailing lines to keep
        """
        if context_size < 0:
            raise ValueError(f"context_size must be >= 0, got {context_size}")
        self.context_size = context_size
        self._window: List[TranslatedUnit] = []

    def current(self) -> List[TranslatedUnit]:
        """Return a copy of the current context window."""
        return list(self._window)

    def advance(self, output: Sequence[TranslatedUnit]) -> None:
        """Replace the context with the tail of ``output``."""
        self._window = self.tail_of(output)

    def seed(self, accumulated: Sequence[TranslatedUnit]) -> None:
        """Restore context from results accumulated before a resume."""
        self._window = self.tail_of(accumulated)

    def tail_of(self, output: Sequence[TranslatedUnit]) -> List[TranslatedUnit]:
        """Tail of ``output``, at most ``context_size`` lines."""
        return context_tail(output, self.context_size)


def context_tail(output: Sequence[TranslatedUnit], size: int) -> List[TranslatedUnit]:
    """Last ``size`` lines of ``output`` as a new list."""
    if size <= 0:
        return []
    return list(output[-size:])
