"""Translation job API routes."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field

from subrelay.api.dependencies import (
    CacheDep,
    CheckpointsDep,
    JobsDep,
    ProviderBuilderDep,
    RequireAuth,
)
from subrelay.config import settings
from subrelay.core.translation import (
    PipelineEvent,
    TranslatedUnit,
    TranslationJob,
    TranslationPipeline,
    TranslationUnit,
)
from subrelay.models.database.enums import JobStatus
from subrelay.models.schemas import ProviderConfigMixin

logger = logging.getLogger(__name__)

router = APIRouter()

# Events returned with a status response
RECENT_EVENTS = 20


class StartJobRequest(ProviderConfigMixin):
    """Request to start a translation job."""
    job_id: Optional[str] = None
    source_language: str
    target_language: str
    units: List[TranslationUnit] = Field(..., min_length=1)
    glossary: Dict[str, str] = Field(default_factory=dict)
    prompt_template: Optional[str] = None


class StartJobResponse(BaseModel):
    job_id: str
    status: JobStatus


class JobStatusResponse(BaseModel):
    """Job status response."""
    job_id: str
    status: JobStatus
    progress: float
    completed_windows: int
    total_windows: int
    resumed_from: int = 0
    error_message: Optional[str] = None
    updated_at: datetime
    events: List[PipelineEvent] = []
    units: Optional[List[TranslatedUnit]] = None  # only when completed


@router.post("/jobs")
async def start_job(
    request: StartJobRequest,
    background_tasks: BackgroundTasks,
    _auth: RequireAuth,
    cache: CacheDep,
    checkpoints: CheckpointsDep,
    jobs: JobsDep,
    build_provider: ProviderBuilderDep,
) -> StartJobResponse:
    """Start a translation job in the background.

    A job whose id matches an interrupted run resumes from its checkpoint.
    """
    unit_ids = [unit.id for unit in request.units]
    if len(set(unit_ids)) != len(unit_ids):
        raise HTTPException(status_code=400, detail="Unit ids must be unique")

    job = TranslationJob(
        job_id=request.job_id,
        units=request.units,
        source_language=request.source_language,
        target_language=request.target_language,
        glossary=request.glossary,
        prompt_template=request.prompt_template,
    )
    job_id = job.resolved_job_id()

    provider = build_provider(request)

    try:
        record = jobs.create(job_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    pipeline = TranslationPipeline.from_settings(
        provider,
        cache,
        checkpoints,
        settings,
        on_event=jobs.event_recorder(record),
    )

    logger.info(
        f"[Jobs API] Starting job {job_id}: {len(job.units)} lines, "
        f"{job.language_pair}, provider={provider.provider_name}"
    )
    background_tasks.add_task(jobs.run, record, pipeline, job)

    return StartJobResponse(job_id=job_id, status=record.status)


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str, jobs: JobsDep) -> JobStatusResponse:
    """Get job status, with results once completed."""
    record = jobs.get(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Job not found")

    outcome = record.outcome
    return JobStatusResponse(
        job_id=record.job_id,
        status=record.status,
        progress=record.progress,
        completed_windows=record.completed_windows,
        total_windows=record.total_windows,
        resumed_from=outcome.resumed_from if outcome else 0,
        error_message=record.error_message,
        updated_at=record.updated_at,
        events=record.events[-RECENT_EVENTS:],
        units=outcome.units if outcome and record.status == JobStatus.COMPLETED else None,
    )


@router.post("/jobs/{job_id}/cancel")
async def cancel_job(job_id: str, jobs: JobsDep, _auth: RequireAuth):
    """Cancel a job before its next window starts."""
    record = jobs.get(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if not jobs.cancel(job_id):
        raise HTTPException(status_code=400, detail=f"Job is {record.status.value}")

    return {"job_id": job_id, "status": "cancelling"}
