"""Retention policy: keep a re-encode only when it is meaningfully smaller.

A fixed threshold avoids replacing files where re-encoding produced negligible
or negative savings (for example an already efficient stream).
"""

import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Set
from shrinkmovies.domain.errors import TranscodeError
from shrinkmovies.domain.models import RetentionDecision, TranscodeJob
from shrinkmovies.pipeline.naming import first_free_path

KEEP_RATIO = 0.93
# Hidden, so a left-behind holding area is never picked up as input
HOLDING_PREFIX = ".shrink-movies-swap-"


def decide(ratio: float, threshold: float = KEEP_RATIO) -> RetentionDecision:
    """REPLACE when output/input is strictly below threshold, else DISCARD."""
    if ratio < threshold:
        return RetentionDecision.REPLACE
    return RetentionDecision.DISCARD


class RetentionPolicy:
    """Decides on and carries out keep/discard for finished transcodes.

    In place (task destination is the source's own directory) the original is
    swapped out through a holding copy. With a separate destination the
    re-encode is moved there and the original is left alone.
    """

    def __init__(self, threshold: float = KEEP_RATIO):
        self.threshold = threshold
        self.logger = logging.getLogger(__name__)
        self._claimed: Set[Path] = set()
        self._claim_lock = threading.Lock()

    def decide(self, ratio: float) -> RetentionDecision:
        return decide(ratio, self.threshold)

    def apply(self, job: TranscodeJob, decision: RetentionDecision) -> Path:
        """Applies decision to job's files and returns the path that now holds the movie."""
        source = job.task.source_path
        if decision == RetentionDecision.DISCARD:
            if job.work_path.exists():
                job.work_path.unlink()
            return source

        destination_dir = job.task.destination_dir
        if destination_dir.resolve() == source.parent.resolve():
            return self._swap(job)
        return self._export(job)

    def _claim_final_path(self, directory: Path, stem: str, source: Path) -> Path:
        source_key = source.resolve()

        def is_taken(path: Path) -> bool:
            key = path.resolve()
            if key in self._claimed:
                return True
            return key != source_key and path.exists()

        with self._claim_lock:
            final_path = first_free_path(directory, stem, is_taken)
            self._claimed.add(final_path.resolve())
        return final_path

    def _restore(self, source: Path, held: Path, final_path: Path):
        """Puts the held original back after a failed placement.

        Raises TranscodeError naming the holding copy when that fails too.
        """
        if final_path != source and final_path.exists():
            try:
                final_path.unlink()
            except OSError as e:
                self.logger.warning(f"Could not remove partial file {final_path}: {e}")
        try:
            shutil.copy2(held, source)
        except OSError as e:
            self.logger.error(f"Could not restore {source}, original kept at {held}: {e}")
            raise TranscodeError(source, f"could not restore original, it is kept at {held}: {e}") from e

    def _swap(self, job: TranscodeJob) -> Path:
        """Replaces the original with the re-encode through a holding copy.

        The holding directory sits next to the original, outside the per-run
        working directory, and is removed only once the original is either
        replaced or restored. If restoring fails too, it stays on disk.
        """
        source = job.task.source_path
        work_path = job.work_path
        final_path = self._claim_final_path(source.parent, work_path.stem, source)

        holding = None
        try:
            holding = Path(tempfile.mkdtemp(prefix=HOLDING_PREFIX, dir=source.parent))
            held = holding / source.name
            shutil.copy2(source, held)
            source.unlink()
        except OSError as e:
            if holding is not None:
                shutil.rmtree(holding, ignore_errors=True)
            raise TranscodeError(source, f"could not move original aside: {e}") from e

        try:
            shutil.copyfile(work_path, final_path)
        except OSError as e:
            self._restore(source, held, final_path)
            shutil.rmtree(holding, ignore_errors=True)
            self.logger.error(f"Restored original after failed swap: {source}")
            raise TranscodeError(source, f"could not place re-encoded file: {e}") from e

        shutil.rmtree(holding, ignore_errors=True)
        try:
            work_path.unlink()
        except OSError as e:
            # Removed with the working directory at the end of the run
            self.logger.warning(f"Could not remove working file {work_path}: {e}")

        self.logger.debug(f"SWAP: {source} -> {final_path}")
        return final_path

    def _export(self, job: TranscodeJob) -> Path:
        source = job.task.source_path
        destination_dir = job.task.destination_dir
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            final_path = self._claim_final_path(destination_dir, job.work_path.stem, source)
            shutil.move(str(job.work_path), str(final_path))
        except OSError as e:
            raise TranscodeError(source, f"could not move re-encoded file to {destination_dir}: {e}") from e

        self.logger.debug(f"EXPORT: {source} -> {final_path}")
        return final_path
