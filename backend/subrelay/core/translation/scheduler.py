"""Batch scheduler with self-healing split-retry.

A window is resolved against the cache first. Whatever is left goes to the
backend in a single call. When that call fails, or the reply does not carry
exactly the requested ids, the window is cut in half and each half is
retried on its own, up to ``max_split_depth`` halvings. The first half is
finished before the second starts so the second half can use the first
half's translations as passive context.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from subrelay.config import DEFAULT_PROMPT_TEMPLATE
from subrelay.core.cache import CacheRecord, TranslationCache
from subrelay.core.errors import (
    AuthError,
    ProviderError,
    QualityGateFailure,
    ResponseShapeError,
    SplitDepthExceededError,
    TransportError,
)
from subrelay.core.providers import Line, TranslationProvider
from subrelay.core.quality import LintResult
from subrelay.models.database.enums import PipelineEventType, Severity
from subrelay.utils.text import preview
from .context import context_tail
from .models import PipelineEvent, TranslatedUnit, TranslationUnit, Window
from .prompt import build_system_prompt

logger = logging.getLogger(__name__)

EventCallback = Callable[[PipelineEvent], None]


class LineChecker(Protocol):
    """Anything that can lint a list of translated lines."""

    def check(self, lines: List[str]) -> LintResult: ...


@dataclass
class JobContext:
    """Per-job inputs shared by every window of a run."""

    language_pair: str
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    glossary: Dict[str, str] = field(default_factory=dict)
    linter: Optional[LineChecker] = None


class BatchScheduler:
    """Resolves windows through the cache and a translation provider."""

    def __init__(
        self,
        provider: TranslationProvider,
        cache: TranslationCache,
        *,
        context_size: int = 3,
        fuzzy_threshold: float = 0.95,
        max_split_depth: int = 3,
        provider_timeout_seconds: float = 120.0,
        short_circuit_auth_errors: bool = False,
        on_event: Optional[EventCallback] = None,
    ):
        """Initialize the scheduler.

        Args:
            provider: Backend used for cache misses
            cache: Shared translation cache handle
            context_size: Lines of passive context handed to split siblings
            fuzzy_threshold: Minimum similarity accepted from the cache
            max_split_depth: Maximum number of halvings of a window
            provider_timeout_seconds: Deadline for one backend call
            short_circuit_auth_errors: Abort on AuthError instead of splitting
            on_event: Receives progress events
        """
        if not 0.0 < fuzzy_threshold <= 1.0:
            raise ValueError(f"fuzzy_threshold must be in (0, 1], got {fuzzy_threshold}")
        if max_split_depth < 0:
            raise ValueError(f"max_split_depth must be >= 0, got {max_split_depth}")

        self.provider = provider
        self.cache = cache
        self.context_size = context_size
        self.fuzzy_threshold = fuzzy_threshold
        self.max_split_depth = max_split_depth
        self.provider_timeout_seconds = provider_timeout_seconds
        self.short_circuit_auth_errors = short_circuit_auth_errors
        self.on_event = on_event

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def translate_window(self, window: Window, job: JobContext) -> List[TranslatedUnit]:
        """Translate one top-level window.

        Runs the quality gate on the result: when HIGH severity issues are
        found the whole window is sent again once, bypassing the cache, and
        that second result is accepted as is. If the re-run cannot complete,
        the first-pass result is kept.

        Args:
            window: Window with its passive context
            job: Per-job settings

        Returns:
            Translated units in the window's order

        Raises:
            SplitDepthExceededError: A sub-window kept failing at the depth cap
            AuthError: When short-circuiting auth errors
            CacheError: On cache storage failure
        """
        results = await self._resolve(window, job, depth=0, use_cache=True)

        try:
            self._quality_gate(window, results, job)
        except QualityGateFailure as gate:
            if self.max_split_depth < 1:
                logger.warning(f"[Scheduler] {gate}; no retry depth left, keeping result")
                return results
            logger.warning(f"[Scheduler] {gate}; re-running window without cache")
            self._emit(
                PipelineEventType.QUALITY_RETRY,
                str(gate),
                window,
                depth=1,
            )
            try:
                results = await self._resolve(window, job, depth=1, use_cache=False)
            except SplitDepthExceededError as e:
                logger.warning(
                    f"[Scheduler] Quality re-run of window {window.index + 1} failed "
                    f"({e}); keeping first-pass result"
                )
                self._emit(
                    PipelineEventType.QUALITY_RETRY,
                    f"re-run failed, keeping first-pass result: {e}",
                    window,
                    depth=1,
                )

        return results

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve(
        self,
        window: Window,
        job: JobContext,
        depth: int,
        use_cache: bool,
    ) -> List[TranslatedUnit]:
        resolved: Dict[int, TranslatedUnit] = {}
        pending: List[TranslationUnit] = []

        if use_cache:
            # fuzzy_lookup tries the exact hash before scoring candidates
            for unit in window.units:
                match = await self.cache.fuzzy_lookup(
                    unit.text, job.language_pair, self.fuzzy_threshold
                )
                if match is None:
                    pending.append(unit)
                else:
                    resolved[unit.id] = TranslatedUnit(
                        id=unit.id,
                        source_text=unit.text,
                        translated_text=match.translated_text,
                    )
            if resolved:
                self._emit(
                    PipelineEventType.CACHE_HIT,
                    f"{len(resolved)}/{len(window.units)} lines served from cache",
                    window,
                    depth=depth,
                )
        else:
            pending = list(window.units)

        if not pending:
            logger.debug(f"[Scheduler] Window {window.index + 1} fully cached")
            return [resolved[unit.id] for unit in window.units]

        failure = await self._request(window, pending, job, resolved)
        if failure is None:
            return [resolved[unit.id] for unit in window.units]

        return await self._recover(window, job, depth, use_cache, failure)

    async def _request(
        self,
        window: Window,
        pending: List[TranslationUnit],
        job: JobContext,
        resolved: Dict[int, TranslatedUnit],
    ) -> Optional[ProviderError]:
        """Send ``pending`` to the backend once.

        Fills ``resolved`` and writes the new translations to the cache on
        success; returns the failure otherwise.
        """
        system_prompt = build_system_prompt(
            job.prompt_template, job.glossary, window.context_lines
        )
        lines = [Line(id=unit.id, text=unit.text) for unit in pending]

        try:
            response = await asyncio.wait_for(
                self.provider.send_batch(lines, system_prompt),
                timeout=self.provider_timeout_seconds,
            )
            translations = self._match_response(pending, response)
        except asyncio.TimeoutError:
            return TransportError(
                f"no reply within {self.provider_timeout_seconds}s",
                provider=self.provider.provider_name,
            )
        except AuthError as e:
            if self.short_circuit_auth_errors:
                raise
            return e
        except ProviderError as e:
            return e

        new_records = []
        for unit in pending:
            translated = translations[unit.id]
            resolved[unit.id] = TranslatedUnit(
                id=unit.id, source_text=unit.text, translated_text=translated
            )
            new_records.append(CacheRecord(unit.text, translated, job.language_pair))

        await self.cache.save_batch(new_records)
        logger.debug(
            f"[Scheduler] Window {window.index + 1}: translated {len(pending)} lines "
            f"(first: {preview(pending[0].text, 30)!r})"
        )
        return None

    def _match_response(
        self, pending: Sequence[TranslationUnit], response: Sequence[Line]
    ) -> Dict[int, str]:
        """Map a reply onto the requested ids.

        Raises:
            ResponseShapeError: Count mismatch, unknown or duplicate ids
        """
        if len(response) != len(pending):
            raise ResponseShapeError(
                f"expected {len(pending)} lines, got {len(response)}",
                provider=self.provider.provider_name,
            )

        expected = {unit.id for unit in pending}
        translations: Dict[int, str] = {}
        for line in response:
            if line.id not in expected:
                raise ResponseShapeError(
                    f"unexpected line id {line.id}", provider=self.provider.provider_name
                )
            if line.id in translations:
                raise ResponseShapeError(
                    f"duplicate line id {line.id}", provider=self.provider.provider_name
                )
            translations[line.id] = line.text
        return translations

    async def _recover(
        self,
        window: Window,
        job: JobContext,
        depth: int,
        use_cache: bool,
        failure: ProviderError,
    ) -> List[TranslatedUnit]:
        """Split a failed window and resolve both halves in order."""
        ids = window.unit_ids
        logger.warning(
            f"[Scheduler] Window {window.index + 1} lines {ids[0]}..{ids[-1]} "
            f"failed at depth {depth}: {failure}"
        )
        self._emit(PipelineEventType.BACKEND_FAILURE, str(failure), window, depth=depth)

        if len(window.units) <= 1 or depth >= self.max_split_depth:
            raise SplitDepthExceededError(depth, ids) from failure

        first, second = window.split()
        logger.info(
            f"[Scheduler] Splitting {len(window.units)} lines into "
            f"{len(first.units)} + {len(second.units)} (depth {depth + 1})"
        )
        self._emit(
            PipelineEventType.SPLIT,
            f"split {len(window.units)} lines into {len(first.units)} + {len(second.units)}",
            window,
            depth=depth + 1,
        )

        first_results = await self._resolve(first, job, depth + 1, use_cache)
        second = second.model_copy(
            update={"context_lines": context_tail(first_results, self.context_size)}
        )
        second_results = await self._resolve(second, job, depth + 1, use_cache)
        return first_results + second_results

    # ------------------------------------------------------------------
    # Quality gate
    # ------------------------------------------------------------------

    def _quality_gate(
        self, window: Window, results: List[TranslatedUnit], job: JobContext
    ) -> None:
        if job.linter is None:
            return
        lint = job.linter.check([unit.translated_text for unit in results])
        high = [issue for issue in lint.issues if issue.severity == Severity.HIGH]
        if high:
            raise QualityGateFailure(window.index, len(high))
        if lint.issues:
            logger.info(
                f"[Scheduler] Window {window.index + 1}: {len(lint.issues)} minor lint issues"
            )

    def _emit(
        self,
        event_type: PipelineEventType,
        message: str,
        window: Window,
        depth: int = 0,
    ) -> None:
        if self.on_event is None:
            return
        self.on_event(
            PipelineEvent(
                type=event_type,
                message=message,
                window_index=window.index,
                total_windows=window.total_windows,
                depth=depth,
            )
        )
