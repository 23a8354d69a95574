import logging
import threading
import time
from pathlib import Path
from typing import Optional, Set
from shrinkmovies.config.models import EncodingProfile
from shrinkmovies.domain.errors import MtimeSetError, TranscodeError
from shrinkmovies.domain.interfaces import Transcoder
from shrinkmovies.domain.models import (
    FileTask,
    JobStatus,
    RetentionDecision,
    TranscodeJob,
    TranscodeResult,
)
from shrinkmovies.infrastructure.timestamps import resolve_timestamp, set_mtime, timestamp_stem
from shrinkmovies.pipeline.naming import first_free_path
from shrinkmovies.pipeline.retention import RetentionPolicy


class TranscodeWorker:
    """Transcodes single files and applies the retention policy.

    Work is split in two steps. `plan` resolves the timestamp and reserves a
    unique working file name; the orchestrator calls it in dispatch order so
    names are deterministic. `execute` runs the transcoder and may run on any
    pool thread.

    Args:
        transcoder: Transcoder used for the re-encode (ffmpeg in production).
        profile: Encoding settings handed to the transcoder.
        policy: RetentionPolicy deciding keep/discard.
        timeout: Optional per-file limit in seconds for the transcoder.
        debug: Log per-step timings.
    """

    def __init__(
        self,
        transcoder: Transcoder,
        profile: Optional[EncodingProfile] = None,
        policy: Optional[RetentionPolicy] = None,
        timeout: Optional[float] = None,
        debug: bool = False,
    ):
        self.transcoder = transcoder
        self.profile = profile or EncodingProfile()
        self.policy = policy or RetentionPolicy()
        self.timeout = timeout
        self.debug = debug
        self.logger = logging.getLogger(__name__)

        self._reserved: Set[Path] = set()
        self._names_lock = threading.Lock()

    def plan(self, task: FileTask, tmp_dir: Path) -> TranscodeJob:
        """Resolves the timestamp and reserves `<YYYYMMDD_HHMMSS>[_NNNN].mp4` in tmp_dir."""
        timestamp = resolve_timestamp(task.source_path)
        stem = timestamp_stem(timestamp)

        with self._names_lock:
            work_path = first_free_path(
                tmp_dir, stem, lambda path: path in self._reserved or path.exists()
            )
            self._reserved.add(work_path)

        return TranscodeJob(task=task, timestamp=timestamp, work_path=work_path)

    def execute(self, job: TranscodeJob, shutdown_event: Optional[threading.Event] = None) -> TranscodeResult:
        """Transcodes a planned job. Raises TranscodeError when the file has to be skipped."""
        source = job.task.source_path
        start_time = time.monotonic()
        job.status = JobStatus.PROCESSING

        try:
            self.transcoder.encode(
                source,
                job.work_path,
                self.profile,
                shutdown_event=shutdown_event,
                timeout=self.timeout,
            )
        except TranscodeError as e:
            interrupted = shutdown_event is not None and shutdown_event.is_set()
            job.status = JobStatus.INTERRUPTED if interrupted else JobStatus.FAILED
            job.error_message = str(e)
            raise

        try:
            input_size = source.stat().st_size
            output_size = job.work_path.stat().st_size
        except OSError as e:
            job.status = JobStatus.FAILED
            job.error_message = f"cannot measure sizes: {e}"
            if job.work_path.exists():
                job.work_path.unlink()
            raise TranscodeError(source, job.error_message) from e

        ratio = output_size / input_size if input_size else float("inf")
        decision = self.policy.decide(ratio)
        try:
            output_path = self.policy.apply(job, decision)
        except TranscodeError as e:
            job.status = JobStatus.FAILED
            job.error_message = str(e)
            raise

        kept = decision == RetentionDecision.REPLACE
        if kept:
            # Keep the logical date of the movie on the new file
            try:
                set_mtime(output_path, job.timestamp)
            except MtimeSetError as e:
                self.logger.error(str(e))
        else:
            output_path = job.work_path

        job.status = JobStatus.COMPLETED
        self.logger.info(f"Processed file: {source} ratio: {ratio:.4f} ({decision.value.lower()})")
        if self.debug:
            self.logger.debug(f"PROCESS_END: {source.name} elapsed={time.monotonic() - start_time:.2f}s")

        return TranscodeResult(
            source_path=source,
            output_path=output_path,
            input_size_bytes=input_size,
            output_size_bytes=output_size,
            size_ratio=ratio,
            kept=kept,
        )

    def transcode(self, task: FileTask, tmp_dir: Path, shutdown_event: Optional[threading.Event] = None) -> TranscodeResult:
        """Plans and executes one task."""
        return self.execute(self.plan(task, tmp_dir), shutdown_event=shutdown_event)
