"""Pipeline orchestrator for the shrink run.

Coordinates discovery, the working directory lifecycle and a bounded pool of
transcode workers. Publishes events on the EventBus so the console layer can
follow progress without the pipeline knowing about it.

Key responsibilities:
- Materialize the full work list before any transcode starts
- Plan jobs (timestamp + unique working name) in dispatch order
- Keep at most `threads` transcodes active at once (submit-on-demand pattern)
- Log and record per-file failures without cancelling other files
- Stop dispatching and interrupt running transcodes on Ctrl+C
"""

import threading
import concurrent.futures
import logging
import time
from collections import deque
from pathlib import Path
from typing import Dict, List, Optional
from shrinkmovies.config.models import AppConfig
from shrinkmovies.domain.errors import TranscodeError
from shrinkmovies.domain.events import (
    DiscoveryStarted,
    DiscoveryFinished,
    JobStarted,
    JobCompleted,
    JobFailed,
    ProcessingFinished,
)
from shrinkmovies.domain.interfaces import Transcoder
from shrinkmovies.domain.models import FileTask, JobStatus, RunSummary, TranscodeJob, TranscodeResult
from shrinkmovies.infrastructure.event_bus import EventBus
from shrinkmovies.infrastructure.file_scanner import FileScanner
from shrinkmovies.infrastructure.housekeeping import HousekeepingService
from shrinkmovies.pipeline.retention import RetentionPolicy
from shrinkmovies.pipeline.worker import TranscodeWorker


class Orchestrator:
    """Shrink pipeline orchestrator.

    The concurrency budget is enforced with a Condition-guarded active counter
    on top of a ThreadPoolExecutor. Only `limit` futures are ever in flight;
    new ones are submitted as workers finish.

    Args:
        config: AppConfig with general and encoding settings.
        event_bus: EventBus for publishing job lifecycle events.
        file_scanner: FileScanner producing the work list.
        transcoder: Transcoder used by the default worker.
        worker: Optional prebuilt TranscodeWorker (overrides transcoder).
        housekeeper: Optional HousekeepingService owning the working directory.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        transcoder: Optional[Transcoder] = None,
        worker: Optional[TranscodeWorker] = None,
        housekeeper: Optional[HousekeepingService] = None,
    ):
        if worker is None and transcoder is None:
            raise ValueError("Orchestrator needs a transcoder or a worker")

        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.worker = worker or TranscodeWorker(
            transcoder,
            profile=config.encoding,
            policy=RetentionPolicy(config.general.keep_ratio),
            timeout=config.general.transcode_timeout_s,
            debug=config.general.debug,
        )
        self.housekeeper = housekeeper or HousekeepingService()
        self.logger = logging.getLogger(__name__)

        # Concurrency state
        self._max_threads = config.general.threads
        self._active_threads = 0
        self._peak_threads = 0
        self._thread_lock = threading.Condition()
        self._shutdown_event = threading.Event()  # Signal workers to stop

    @property
    def active_threads(self) -> int:
        with self._thread_lock:
            return self._active_threads

    def request_shutdown(self):
        """Stops dispatching and interrupts running transcodes."""
        self._shutdown_event.set()
        with self._thread_lock:
            self._thread_lock.notify_all()

    def _process_job(self, job: TranscodeJob) -> Optional[TranscodeResult]:
        """Runs one job under the concurrency budget. Never raises for per-file errors."""
        filename = job.task.source_path.name

        with self._thread_lock:
            while self._active_threads >= self._max_threads and not self._shutdown_event.is_set():
                self._thread_lock.wait()

            if self._shutdown_event.is_set():
                job.status = JobStatus.INTERRUPTED
                job.error_message = "Interrupted before start"
                return None

            self._active_threads += 1
            self._peak_threads = max(self._peak_threads, self._active_threads)

        if self.config.general.debug:
            self.logger.debug(f"PROCESS_START: {filename} (thread {threading.get_ident()})")

        try:
            self.event_bus.publish(JobStarted(job=job))
            result = self.worker.execute(job, shutdown_event=self._shutdown_event)
            self.event_bus.publish(JobCompleted(job=job, result=result))
            return result
        except TranscodeError as e:
            self.logger.error(str(e))
            self.event_bus.publish(JobFailed(job=job, error_message=job.error_message or str(e)))
            return None
        except Exception as e:
            # Log exception but don't crash the pool
            self.logger.error(f"Exception processing {filename}: {e}")
            job.status = JobStatus.FAILED
            job.error_message = f"Exception: {e}"
            self.event_bus.publish(JobFailed(job=job, error_message=job.error_message))
            return None
        finally:
            with self._thread_lock:
                self._active_threads -= 1
                self._thread_lock.notify_all()

    def run_all(self, tasks: List[FileTask], work_dir: Path, limit: Optional[int] = None) -> RunSummary:
        """Transcodes every task with at most `limit` active at once.

        Blocks until each task has completed or failed. Failures are recorded
        in the summary and never cancel other tasks; nothing is retried.
        """
        if limit is not None:
            if limit < 1:
                raise ValueError(f"Concurrency limit must be >= 1, got {limit}")
            self._max_threads = limit
        limit = self._max_threads
        self._peak_threads = 0

        summary = RunSummary()
        pending = deque(tasks)
        in_flight: Dict[concurrent.futures.Future, TranscodeJob] = {}

        def collect(future: concurrent.futures.Future, job: TranscodeJob):
            result = future.result()
            if result is not None:
                summary.results.append(result)
            elif job.status == JobStatus.INTERRUPTED:
                summary.interrupted.append(job.task.source_path)
            else:
                summary.failed.append(job.task.source_path)

        with concurrent.futures.ThreadPoolExecutor(max_workers=limit) as executor:
            def submit_batch():
                """Plans and submits tasks in list order up to the budget."""
                while len(in_flight) < limit and pending and not self._shutdown_event.is_set():
                    task = pending.popleft()
                    job = self.worker.plan(task, work_dir)
                    future = executor.submit(self._process_job, job)
                    in_flight[future] = job

            try:
                submit_batch()

                while in_flight:
                    done, _ = concurrent.futures.wait(
                        set(in_flight.keys()),
                        timeout=1.0,
                        return_when=concurrent.futures.FIRST_COMPLETED
                    )
                    for future in done:
                        collect(future, in_flight.pop(future))

                    submit_batch()

            except KeyboardInterrupt:
                self.logger.info("Ctrl+C detected - stopping new tasks and interrupting active jobs...")
                self.request_shutdown()

                # Wait for running transcodes to see the shutdown event (max 10 seconds)
                deadline = time.monotonic() + 10.0
                while in_flight and time.monotonic() < deadline:
                    done, _ = concurrent.futures.wait(
                        set(in_flight.keys()),
                        timeout=0.2,
                        return_when=concurrent.futures.FIRST_COMPLETED
                    )
                    for future in done:
                        collect(future, in_flight.pop(future))

                executor.shutdown(wait=False, cancel_futures=True)
                self.logger.info("Shutdown complete")
                raise

        summary.interrupted.extend(task.source_path for task in pending if self._shutdown_event.is_set())
        summary.max_active = self._peak_threads
        return summary

    def run(self, input_dir: Path, output_dir: Optional[Path] = None) -> RunSummary:
        """Collects movies below input_dir and shrinks them.

        Raises:
            TraversalError: when the tree cannot be listed. Nothing is transcoded then.
        """
        input_dir = Path(input_dir)
        self.logger.info(f"Discovery started: {input_dir}")
        self.event_bus.publish(DiscoveryStarted(directory=input_dir))

        tasks = self.file_scanner.collect(input_dir, output_dir)

        self.logger.info(f"Discovery finished: found={len(tasks)}")
        self.event_bus.publish(DiscoveryFinished(files_found=len(tasks)))

        if not tasks:
            self.logger.info("No files to process, exiting")
            self.event_bus.publish(ProcessingFinished())
            return RunSummary()

        # Working directory exists strictly around all worker activity
        with self.housekeeper as work_dir:
            summary = self.run_all(tasks, work_dir)

        self.event_bus.publish(ProcessingFinished(
            kept=summary.kept_count,
            discarded=summary.discarded_count,
            failed=len(summary.failed),
        ))
        self.logger.info(
            f"Done processing: {input_dir} (kept={summary.kept_count}, "
            f"discarded={summary.discarded_count}, failed={len(summary.failed)})"
        )
        return summary
