"""In-memory registry of pipeline runs started through the API."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from subrelay.core.errors import TranslationError
from subrelay.models.database.enums import JobStatus, PipelineEventType
from .models import PipelineEvent, TranslationJob, TranslationOutcome
from .pipeline import TranslationPipeline
from .scheduler import EventCallback

logger = logging.getLogger(__name__)


@dataclass
class JobRecord:
    """Status of one background run."""

    job_id: str
    status: JobStatus = JobStatus.PENDING
    completed_windows: int = 0
    total_windows: int = 0
    events: List[PipelineEvent] = field(default_factory=list)
    outcome: Optional[TranslationOutcome] = None
    error_message: Optional[str] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def progress(self) -> float:
        if self.total_windows == 0:
            return 1.0 if self.status == JobStatus.COMPLETED else 0.0
        return self.completed_windows / self.total_windows

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.PROCESSING)


class JobRegistry:
    """Tracks jobs, their progress events and cancellation flags."""

    def __init__(self, max_events: int = 200):
        self.max_events = max_events
        self._jobs: Dict[str, JobRecord] = {}

    def create(self, job_id: str) -> JobRecord:
        """Register a new run.

        Raises:
            ValueError: If a run with this id is still active
        """
        existing = self._jobs.get(job_id)
        if existing is not None and existing.is_active:
            raise ValueError(f"Job {job_id} is already running")
        record = JobRecord(job_id=job_id)
        self._jobs[job_id] = record
        return record

    def get(self, job_id: str) -> Optional[JobRecord]:
        return self._jobs.get(job_id)

    def cancel(self, job_id: str) -> bool:
        """Request cancellation; observed before the next window starts."""
        record = self._jobs.get(job_id)
        if record is None or not record.is_active:
            return False
        record.cancel_event.set()
        logger.info(f"[Jobs] Cancellation requested for {job_id}")
        return True

    def event_recorder(self, record: JobRecord) -> EventCallback:
        """Build an ``on_event`` callback that updates ``record``."""

        def record_event(event: PipelineEvent) -> None:
            record.events.append(event)
            if len(record.events) > self.max_events:
                del record.events[: len(record.events) - self.max_events]
            if event.total_windows is not None:
                record.total_windows = event.total_windows
            if event.type == PipelineEventType.WINDOW_COMPLETED and event.window_index is not None:
                record.completed_windows = event.window_index + 1
            elif event.type == PipelineEventType.RESUMED and event.window_index is not None:
                record.completed_windows = event.window_index
            record.updated_at = datetime.utcnow()

        return record_event

    async def run(
        self,
        record: JobRecord,
        pipeline: TranslationPipeline,
        job: TranslationJob,
    ) -> None:
        """Execute ``job`` and store the outcome on ``record``.

        Pipeline errors are recorded as FAILED; they have nowhere else to
        go once the request that started the run has returned.
        """
        record.status = JobStatus.PROCESSING
        record.updated_at = datetime.utcnow()
        try:
            outcome = await pipeline.execute(job, cancel_event=record.cancel_event)
        except TranslationError as e:
            logger.error(f"[Jobs] Job {record.job_id} failed: {e}")
            record.status = JobStatus.FAILED
            record.error_message = str(e)
        except Exception as e:
            logger.error(f"[Jobs] Job {record.job_id} crashed: {e}", exc_info=True)
            record.status = JobStatus.FAILED
            record.error_message = f"{type(e).__name__}: {e}"
        else:
            record.outcome = outcome
            record.status = outcome.status
            record.completed_windows = outcome.completed_windows
            record.total_windows = outcome.total_windows
        record.updated_at = datetime.utcnow()
