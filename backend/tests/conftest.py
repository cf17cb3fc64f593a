"""Shared fixtures: temporary caches, checkpoint stores and stub providers."""

from typing import Callable, List, Optional

import pytest
import pytest_asyncio

from subrelay.core.cache import TranslationCache
from subrelay.core.errors import TransportError
from subrelay.core.providers import Line, TranslationProvider
from subrelay.core.translation import CheckpointManager, TranslationUnit


# =============================================================================
# Stub providers
# =============================================================================


class StubProvider(TranslationProvider):
    """Deterministic in-memory backend.

    Translates ``text`` to ``translate(text)`` and records every request.
    ``fail_when`` decides per call whether to raise ``error`` instead.
    """

    def __init__(
        self,
        translate: Callable[[str], str] = lambda text: f"T({text})",
        fail_when: Optional[Callable[[List[Line]], bool]] = None,
        error: Optional[Exception] = None,
        models: Optional[List[str]] = None,
    ):
        self.translate = translate
        self.fail_when = fail_when
        self.error = error or TransportError("connection reset", provider="stub")
        self.models = models or ["stub-small", "stub-large"]
        self.calls: List[List[Line]] = []
        self.prompts: List[str] = []
        self.failures = 0

    @property
    def provider_name(self) -> str:
        return "stub"

    async def send_batch(self, lines: List[Line], system_prompt: str) -> List[Line]:
        self.calls.append(list(lines))
        self.prompts.append(system_prompt)
        if self.fail_when is not None and self.fail_when(lines):
            self.failures += 1
            raise self.error
        return [Line(id=line.id, text=self.translate(line.text)) for line in lines]

    async def validate_key(self) -> bool:
        return True

    async def list_models(self) -> List[str]:
        return list(self.models)

    @property
    def successful_calls(self) -> int:
        return len(self.calls) - self.failures

    @property
    def translated_ids(self) -> List[int]:
        return [line.id for call in self.calls for line in call]


def make_units(count: int, start: int = 1, prefix: str = "line") -> List[TranslationUnit]:
    return [TranslationUnit(id=i, text=f"{prefix} {i}") for i in range(start, start + count)]


# =============================================================================
# Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def cache(tmp_path):
    """File-backed SQLite cache, closed after the test."""
    handle = TranslationCache(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    await handle.initialize()
    yield handle
    await handle.close()


@pytest.fixture
def checkpoints(tmp_path):
    return CheckpointManager(tmp_path / "checkpoints")


@pytest.fixture
def provider():
    return StubProvider()
