"""Tests for the pipeline façade: windows, checkpoints, resume and cancellation."""

import asyncio

import pytest

from subrelay.config import Settings
from subrelay.core.errors import SplitDepthExceededError
from subrelay.core.translation import CheckpointManager, TranslationJob, TranslationPipeline
from subrelay.models.database.enums import JobStatus, PipelineEventType

from conftest import StubProvider, make_units


def make_job(count: int = 10, job_id: str = "job-1", **overrides) -> TranslationJob:
    fields = dict(
        job_id=job_id,
        units=make_units(count),
        source_language="en",
        target_language="pt-BR",
    )
    fields.update(overrides)
    return TranslationJob(**fields)


def make_pipeline(provider, cache, checkpoints, events=None, **overrides):
    options = dict(window_size=4, context_size=3, max_split_depth=1)
    options.update(overrides)
    return TranslationPipeline(
        provider,
        cache,
        checkpoints,
        on_event=events.append if events is not None else None,
        **options,
    )


class TestExecute:

    async def test_uninterrupted_run(self, cache, checkpoints, provider):
        outcome = await make_pipeline(provider, cache, checkpoints).execute(make_job())

        assert outcome.status == JobStatus.COMPLETED
        assert [unit.id for unit in outcome.units] == list(range(1, 11))
        assert outcome.units[0].source_text == "line 1"
        assert outcome.units[0].translated_text == "T(line 1)"
        assert outcome.completed_windows == outcome.total_windows == 3
        assert outcome.resumed_from == 0
        assert [len(call) for call in provider.calls] == [4, 4, 2]

    async def test_checkpoint_deleted_on_success(self, cache, checkpoints, provider):
        await make_pipeline(provider, cache, checkpoints).execute(make_job())
        assert not checkpoints.exists("job-1")

    async def test_context_carried_between_windows(self, cache, checkpoints, provider):
        await make_pipeline(provider, cache, checkpoints).execute(make_job())
        assert "PASSIVE CONTEXT" not in provider.prompts[0]
        assert "3. T(line 4)" in provider.prompts[1]
        assert "1. T(line 6)" in provider.prompts[2]

    async def test_glossary_reaches_prompt(self, cache, checkpoints, provider):
        job = make_job(glossary={"Night City": "Cidade Noturna"})
        await make_pipeline(provider, cache, checkpoints).execute(job)
        assert '"Night City" -> "Cidade Noturna"' in provider.prompts[0]

    async def test_job_prompt_template_overrides_default(self, cache, checkpoints, provider):
        job = make_job(prompt_template="Custom prompt.{{glossary}}")
        await make_pipeline(provider, cache, checkpoints).execute(job)
        assert provider.prompts[0].startswith("Custom prompt.")

    async def test_second_run_served_from_cache(self, cache, checkpoints, provider):
        pipeline = make_pipeline(provider, cache, checkpoints)
        first = await pipeline.execute(make_job())
        second = await pipeline.execute(make_job())
        assert len(provider.calls) == 3
        assert second.units == first.units

    async def test_empty_job(self, cache, checkpoints, provider):
        outcome = await make_pipeline(provider, cache, checkpoints).execute(make_job(count=0))
        assert outcome.status == JobStatus.COMPLETED
        assert outcome.units == []
        assert provider.calls == []

    async def test_events(self, cache, checkpoints, provider):
        events = []
        await make_pipeline(provider, cache, checkpoints, events).execute(make_job())
        types = [event.type for event in events]
        assert types.count(PipelineEventType.WINDOW_STARTED) == 3
        assert types.count(PipelineEventType.WINDOW_COMPLETED) == 3
        assert types[-1] == PipelineEventType.COMPLETED

    def test_from_settings(self, cache, checkpoints, provider):
        custom = Settings(window_size=7, context_size=2, max_split_depth=5)
        pipeline = TranslationPipeline.from_settings(provider, cache, checkpoints, custom)
        assert pipeline.window_size == 7
        assert pipeline.scheduler.context_size == 2
        assert pipeline.scheduler.max_split_depth == 5

    def test_invalid_window_size(self, cache, checkpoints, provider):
        with pytest.raises(ValueError):
            TranslationPipeline(provider, cache, checkpoints, window_size=0)


class TestJobIdentity:

    def test_explicit_id(self):
        assert make_job(job_id="mine").resolved_job_id() == "mine"

    def test_derived_id_is_stable(self):
        assert make_job(job_id=None).resolved_job_id() == make_job(job_id=None).resolved_job_id()

    def test_derived_id_depends_on_language_pair(self):
        a = make_job(job_id=None).resolved_job_id()
        b = make_job(job_id=None, target_language="es").resolved_job_id()
        assert a != b


class TestResume:

    async def test_resume_matches_uninterrupted_run(self, cache, checkpoints, tmp_path):
        failing = StubProvider(fail_when=lambda lines: any(line.id > 8 for line in lines))
        with pytest.raises(SplitDepthExceededError):
            await make_pipeline(failing, cache, checkpoints).execute(make_job())

        saved = checkpoints.load("job-1")
        assert saved.completed_windows == 2
        assert [unit.id for unit in saved.accumulated_results] == list(range(1, 9))

        healthy = StubProvider()
        events = []
        outcome = await make_pipeline(healthy, cache, checkpoints, events).execute(make_job())

        reference_provider = StubProvider()
        reference = await make_pipeline(
            reference_provider,
            cache,
            CheckpointManager(tmp_path / "reference"),
        ).execute(make_job(job_id="reference"))

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.resumed_from == 2
        assert outcome.units == reference.units
        # completed windows are never replayed
        assert [line.id for call in healthy.calls for line in call] == [9, 10]
        # context restored from the checkpoint
        assert "3. T(line 8)" in healthy.prompts[0]
        assert events[0].type == PipelineEventType.RESUMED
        assert not checkpoints.exists("job-1")

    async def test_incompatible_checkpoint_is_ignored(self, cache, checkpoints, provider):
        failing = StubProvider(fail_when=lambda lines: any(line.id > 8 for line in lines))
        with pytest.raises(SplitDepthExceededError):
            await make_pipeline(failing, cache, checkpoints).execute(make_job())

        outcome = await make_pipeline(provider, cache, checkpoints, window_size=5).execute(
            make_job()
        )
        assert outcome.status == JobStatus.COMPLETED
        assert outcome.resumed_from == 0
        assert [unit.id for unit in outcome.units] == list(range(1, 11))

    async def test_checkpoint_created_at_start(self, cache, checkpoints):
        failing = StubProvider(fail_when=lambda lines: True)
        with pytest.raises(SplitDepthExceededError):
            await make_pipeline(failing, cache, checkpoints).execute(make_job())

        saved = checkpoints.load("job-1")
        assert saved.completed_windows == 0
        assert saved.total_windows == 3
        assert saved.accumulated_results == []


class TestCancellation:

    async def test_cancel_before_start(self, cache, checkpoints, provider):
        cancel = asyncio.Event()
        cancel.set()

        outcome = await make_pipeline(provider, cache, checkpoints).execute(make_job(), cancel)

        assert outcome.status == JobStatus.CANCELLED
        assert outcome.units == []
        assert provider.calls == []
        assert checkpoints.load("job-1").completed_windows == 0

    async def test_cancel_between_windows(self, cache, checkpoints, provider):
        cancel = asyncio.Event()

        def on_event(event):
            if event.type == PipelineEventType.WINDOW_COMPLETED:
                cancel.set()

        pipeline = TranslationPipeline(
            provider, cache, checkpoints, window_size=4, on_event=on_event
        )
        outcome = await pipeline.execute(make_job(), cancel)

        assert outcome.status == JobStatus.CANCELLED
        assert outcome.completed_windows == 1
        assert len(provider.calls) == 1
        saved = checkpoints.load("job-1")
        assert saved.completed_windows == 1
        assert len(saved.accumulated_results) == 4


class TestCheckpointFailures:

    async def test_write_failure_is_not_fatal(self, cache, provider, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        events = []

        outcome = await make_pipeline(
            provider, cache, CheckpointManager(blocker / "checkpoints"), events
        ).execute(make_job())

        assert outcome.status == JobStatus.COMPLETED
        assert [unit.id for unit in outcome.units] == list(range(1, 11))
        assert PipelineEventType.CHECKPOINT_WARNING in [event.type for event in events]
