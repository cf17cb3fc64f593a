"""Tests for checkpoint persistence."""

import pytest

from subrelay.core.errors import CheckpointWriteError
from subrelay.core.translation import Checkpoint, TranslatedUnit

from conftest import make_units

PAIR = "en->pt-BR"


def checkpoint_after(job_id: str, windows: int, window_size: int, units) -> Checkpoint:
    done = units[: min(windows * window_size, len(units))]
    return Checkpoint(
        job_id=job_id,
        language_pair=PAIR,
        window_size=window_size,
        completed_windows=windows,
        total_windows=(len(units) + window_size - 1) // window_size,
        accumulated_results=[
            TranslatedUnit(id=u.id, source_text=u.text, translated_text=f"T({u.text})")
            for u in done
        ],
    )


class TestCheckpointManager:

    def test_missing_returns_none(self, checkpoints):
        assert checkpoints.load("nope") is None
        assert not checkpoints.exists("nope")

    def test_save_and_load(self, checkpoints):
        units = make_units(10)
        saved = checkpoint_after("job-1", 2, 4, units)
        path = checkpoints.save(saved)

        assert path.name == "job-1.checkpoint.json"
        assert checkpoints.exists("job-1")
        loaded = checkpoints.load("job-1", units, PAIR, 4)
        assert loaded == saved

    def test_no_temp_file_left_behind(self, checkpoints):
        checkpoints.save(checkpoint_after("job-1", 1, 4, make_units(10)))
        assert [p.name for p in checkpoints.checkpoint_dir.iterdir()] == ["job-1.checkpoint.json"]

    def test_delete_is_idempotent(self, checkpoints):
        checkpoints.save(checkpoint_after("job-1", 1, 4, make_units(10)))
        assert checkpoints.delete("job-1") is True
        assert checkpoints.delete("job-1") is False
        assert checkpoints.load("job-1") is None

    def test_corrupt_file_is_discarded(self, checkpoints):
        checkpoints.checkpoint_dir.mkdir(parents=True)
        checkpoints.path_for("job-1").write_text("{not json", encoding="utf-8")
        assert checkpoints.load("job-1") is None

    def test_inconsistent_length_is_discarded(self, checkpoints):
        units = make_units(10)
        broken = checkpoint_after("job-1", 2, 4, units)
        broken.accumulated_results = broken.accumulated_results[:5]
        checkpoints.save(broken)
        assert checkpoints.load("job-1", units, PAIR, 4) is None

    def test_different_window_size_is_discarded(self, checkpoints):
        units = make_units(10)
        checkpoints.save(checkpoint_after("job-1", 2, 4, units))
        assert checkpoints.load("job-1", units, PAIR, 5) is None

    def test_different_language_pair_is_discarded(self, checkpoints):
        units = make_units(10)
        checkpoints.save(checkpoint_after("job-1", 2, 4, units))
        assert checkpoints.load("job-1", units, "en->es", 4) is None

    def test_final_partial_window_counts(self, checkpoints):
        units = make_units(10)
        complete = checkpoint_after("job-1", 3, 4, units)
        assert len(complete.accumulated_results) == 10
        checkpoints.save(complete)
        assert checkpoints.load("job-1", units, PAIR, 4) is not None

    def test_job_id_is_sanitized(self, checkpoints):
        path = checkpoints.path_for("../evil/job")
        assert path.parent == checkpoints.checkpoint_dir

    def test_plain_job_id_keeps_its_name(self, checkpoints):
        assert checkpoints.path_for("episode_01-a").name == "episode_01-a.checkpoint.json"

    def test_rewritten_ids_do_not_collide(self, checkpoints):
        assert checkpoints.path_for("a/b") != checkpoints.path_for("a_b")
        assert checkpoints.path_for("a/b") != checkpoints.path_for("a:b")

        units = make_units(4)
        checkpoints.save(checkpoint_after("a/b", 1, 4, units))
        checkpoints.save(checkpoint_after("a_b", 0, 4, units))

        assert checkpoints.load("a/b").completed_windows == 1
        assert checkpoints.load("a_b").completed_windows == 0

    def test_write_failure_raises(self, tmp_path):
        from subrelay.core.translation import CheckpointManager

        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be", encoding="utf-8")
        manager = CheckpointManager(blocker / "checkpoints")
        with pytest.raises(CheckpointWriteError):
            manager.save(checkpoint_after("job-1", 1, 4, make_units(4)))
