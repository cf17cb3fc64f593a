"""Checkpoint persistence for resumable jobs.

One JSON document per job lives under the checkpoint directory. Writes go
through a temporary file and ``os.replace`` so a crash never leaves a
half-written checkpoint behind.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from subrelay.core.errors import CheckpointWriteError
from .models import Checkpoint, TranslationUnit

logger = logging.getLogger(__name__)

CHECKPOINT_SUFFIX = ".checkpoint.json"


class CheckpointManager:
    """Loads, saves and deletes job checkpoints."""

    def __init__(self, checkpoint_dir: Union[str, Path]):
        self.checkpoint_dir = Path(checkpoint_dir)

    def path_for(self, job_id: str) -> Path:
        # Job ids come from callers; keep them inside the directory and
        # give rewritten ids a hash suffix so distinct ids never share a file
        safe_id = "".join(c if c.isascii() and (c.isalnum() or c in "-_") else "_" for c in job_id)
        if not job_id or safe_id != job_id:
            digest = hashlib.sha256(job_id.encode("utf-8")).hexdigest()[:16]
            safe_id = f"{safe_id[:48]}-{digest}"
        return self.checkpoint_dir / f"{safe_id}{CHECKPOINT_SUFFIX}"

    def exists(self, job_id: str) -> bool:
        return self.path_for(job_id).is_file()

    def load(
        self,
        job_id: str,
        units: Optional[List[TranslationUnit]] = None,
        language_pair: Optional[str] = None,
        window_size: Optional[int] = None,
    ) -> Optional[Checkpoint]:
        """Load a job checkpoint.

        When ``units``, ``language_pair`` and ``window_size`` are given the
        checkpoint is also checked against them; an incompatible checkpoint
        is treated as absent.

        Args:
            job_id: Job identity
            units: Units of the run about to resume
            language_pair: Language pair of that run
            window_size: Window size of that run

        Returns:
            The checkpoint, or None when missing, unreadable or incompatible
        """
        path = self.path_for(job_id)
        if not path.is_file():
            return None

        try:
            checkpoint = Checkpoint.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"[Checkpoint] Discarding unreadable checkpoint {path.name}: {e}")
            return None

        if checkpoint.job_id != job_id:
            logger.warning(
                f"[Checkpoint] Discarding {path.name}: belongs to job {checkpoint.job_id}"
            )
            return None

        if units is not None and language_pair is not None and window_size is not None:
            if not checkpoint.matches(units, language_pair, window_size):
                logger.warning(
                    f"[Checkpoint] Discarding {path.name}: does not match the current job "
                    f"({checkpoint.completed_windows}/{checkpoint.total_windows} windows, "
                    f"{len(checkpoint.accumulated_results)} results)"
                )
                return None

        return checkpoint

    def save(self, checkpoint: Checkpoint) -> Path:
        """Atomically write a checkpoint.

        Raises:
            CheckpointWriteError: If the file cannot be written
        """
        path = self.path_for(checkpoint.job_id)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(checkpoint.model_dump_json(), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise CheckpointWriteError(
                f"Failed to write checkpoint for job {checkpoint.job_id}: {e}"
            ) from e

        logger.debug(
            f"[Checkpoint] Saved {path.name} "
            f"({checkpoint.completed_windows}/{checkpoint.total_windows})"
        )
        return path

    def delete(self, job_id: str) -> bool:
        """Delete a checkpoint. Returns False when none existed."""
        path = self.path_for(job_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"[Checkpoint] Deleted {path.name}")
        return True
