"""Translation pipeline façade.

Coordinates the flow for one job:
Checkpoint -> Windows -> BatchScheduler (cache, provider, split-retry) -> Result
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from subrelay.config import DEFAULT_PROMPT_TEMPLATE, Settings
from subrelay.core.cache import TranslationCache
from subrelay.core.errors import CheckpointWriteError
from subrelay.core.providers import TranslationProvider
from subrelay.core.quality import SubtitleLinter
from subrelay.models.database.enums import JobStatus, PipelineEventType
from .checkpoint import CheckpointManager
from .context import ContextPropagator
from .models import (
    Checkpoint,
    PipelineEvent,
    TranslatedUnit,
    TranslationJob,
    TranslationOutcome,
    Window,
    partition,
)
from .scheduler import BatchScheduler, EventCallback, JobContext

logger = logging.getLogger(__name__)


class TranslationPipeline:
    """Runs a job window by window with resumable checkpoints.

    Supports:
    - Resume from the first incomplete window of a compatible checkpoint
    - Cooperative cancellation between top-level windows
    - Progress events for callers (API job registry, CLI)
    """

    def __init__(
        self,
        provider: TranslationProvider,
        cache: TranslationCache,
        checkpoints: CheckpointManager,
        *,
        window_size: int = 50,
        context_size: int = 3,
        fuzzy_threshold: float = 0.95,
        max_split_depth: int = 3,
        provider_timeout_seconds: float = 120.0,
        short_circuit_auth_errors: bool = False,
        prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
        quality_gate: bool = True,
        on_event: Optional[EventCallback] = None,
    ):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")

        self.cache = cache
        self.checkpoints = checkpoints
        self.window_size = window_size
        self.context_size = context_size
        self.prompt_template = prompt_template
        self.quality_gate = quality_gate
        self.on_event = on_event
        self.scheduler = BatchScheduler(
            provider,
            cache,
            context_size=context_size,
            fuzzy_threshold=fuzzy_threshold,
            max_split_depth=max_split_depth,
            provider_timeout_seconds=provider_timeout_seconds,
            short_circuit_auth_errors=short_circuit_auth_errors,
            on_event=on_event,
        )

    @classmethod
    def from_settings(
        cls,
        provider: TranslationProvider,
        cache: TranslationCache,
        checkpoints: CheckpointManager,
        settings: Settings,
        on_event: Optional[EventCallback] = None,
    ) -> "TranslationPipeline":
        """Create a pipeline using the translation settings."""
        return cls(
            provider,
            cache,
            checkpoints,
            window_size=settings.window_size,
            context_size=settings.context_size,
            fuzzy_threshold=settings.fuzzy_threshold,
            max_split_depth=settings.max_split_depth,
            provider_timeout_seconds=settings.provider_timeout_seconds,
            short_circuit_auth_errors=settings.short_circuit_auth_errors,
            prompt_template=settings.prompt_template,
            on_event=on_event,
        )

    async def execute(
        self,
        job: TranslationJob,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranslationOutcome:
        """Translate every unit of ``job``.

        Args:
            job: Units, languages, glossary and optional prompt template
            cancel_event: Checked before each top-level window

        Returns:
            COMPLETED outcome with ordered units, or CANCELLED outcome
            without units

        Raises:
            SplitDepthExceededError: A window could not be translated; the
                last checkpoint is kept for a later resume
            CacheError: Cache storage failure
        """
        job_id = job.resolved_job_id()
        language_pair = job.language_pair
        chunks = partition(job.units, self.window_size)
        total = len(chunks)

        results: List[TranslatedUnit] = []
        context = ContextPropagator(self.context_size)
        start = 0

        checkpoint = self.checkpoints.load(
            job_id, job.units, language_pair, self.window_size
        )
        if checkpoint is not None:
            start = checkpoint.completed_windows
            results = list(checkpoint.accumulated_results)
            context.seed(results)
            logger.info(f"[Pipeline] Resuming job {job_id} from window {start + 1}/{total}")
            self._emit(
                PipelineEventType.RESUMED,
                f"resuming from window {start + 1}/{total}",
                window_index=start,
                total_windows=total,
            )
        else:
            checkpoint = Checkpoint(
                job_id=job_id,
                language_pair=language_pair,
                window_size=self.window_size,
                completed_windows=0,
                total_windows=total,
            )
            self._save_checkpoint(checkpoint)

        job_context = JobContext(
            language_pair=language_pair,
            prompt_template=job.prompt_template or self.prompt_template,
            glossary=dict(job.glossary),
            linter=(
                SubtitleLinter(job.source_language, job.target_language, job.glossary)
                if self.quality_gate
                else None
            ),
        )

        logger.info(
            f"[Pipeline] Job {job_id}: {len(job.units)} lines in {total} windows "
            f"({language_pair})"
        )

        for index in range(start, total):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"[Pipeline] Job {job_id} cancelled before window {index + 1}")
                self._emit(
                    PipelineEventType.CANCELLED,
                    f"cancelled after {index}/{total} windows",
                    window_index=index,
                    total_windows=total,
                )
                return TranslationOutcome(
                    job_id=job_id,
                    status=JobStatus.CANCELLED,
                    completed_windows=index,
                    total_windows=total,
                    resumed_from=start,
                )

            window = Window(
                units=chunks[index],
                context_lines=context.current(),
                index=index,
                total_windows=total,
            )
            self._emit(
                PipelineEventType.WINDOW_STARTED,
                f"window {index + 1}/{total} ({len(window.units)} lines)",
                window_index=index,
                total_windows=total,
            )

            try:
                output = await self.scheduler.translate_window(window, job_context)
            except Exception as e:
                logger.error(
                    f"[Pipeline] Job {job_id} failed at window {index + 1}/{total}: {e}"
                )
                raise

            results.extend(output)
            context.advance(output)

            checkpoint = checkpoint.model_copy(
                update={
                    "completed_windows": index + 1,
                    "total_windows": total,
                    "accumulated_results": list(results),
                    "timestamp": datetime.utcnow(),
                }
            )
            self._save_checkpoint(checkpoint)
            self._emit(
                PipelineEventType.WINDOW_COMPLETED,
                f"window {index + 1}/{total} done",
                window_index=index,
                total_windows=total,
            )

        self.checkpoints.delete(job_id)
        logger.info(f"[Pipeline] Job {job_id} completed ({len(results)} lines)")
        self._emit(
            PipelineEventType.COMPLETED,
            f"{len(results)} lines translated",
            total_windows=total,
        )
        return TranslationOutcome(
            job_id=job_id,
            status=JobStatus.COMPLETED,
            units=results,
            completed_windows=total,
            total_windows=total,
            resumed_from=start,
        )

    def _save_checkpoint(self, checkpoint: Checkpoint) -> None:
        try:
            self.checkpoints.save(checkpoint)
        except CheckpointWriteError as e:
            logger.warning(f"[Pipeline] {e}; continuing without a fresh checkpoint")
            self._emit(
                PipelineEventType.CHECKPOINT_WARNING,
                str(e),
                window_index=checkpoint.completed_windows,
                total_windows=checkpoint.total_windows,
            )

    def _emit(
        self,
        event_type: PipelineEventType,
        message: str,
        window_index: Optional[int] = None,
        total_windows: Optional[int] = None,
    ) -> None:
        if self.on_event is None:
            return
        self.on_event(
            PipelineEvent(
                type=event_type,
                message=message,
                window_index=window_index,
                total_windows=total_windows,
            )
        )
