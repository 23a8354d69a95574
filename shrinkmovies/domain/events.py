"""Domain events for the shrink pipeline.

Events flow through the EventBus and decouple the orchestrator from the
console reporter. See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from pydantic import BaseModel
from .models import TranscodeJob, TranscodeResult


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class JobEvent(Event):
    """Base class for events related to a single transcode job."""

    job: TranscodeJob


class DiscoveryStarted(Event):
    """Emitted when the tree walk begins."""

    directory: Path


class DiscoveryFinished(Event):
    """Emitted once the work list is fully materialized."""

    files_found: int


class JobStarted(JobEvent):
    """Emitted when a worker starts the transcoder on a file."""

    pass


class JobCompleted(JobEvent):
    """Emitted when a file was transcoded and the retention decision applied."""

    result: TranscodeResult


class JobFailed(JobEvent):
    """Emitted when a file failed; the run continues with the other files."""

    error_message: str


class ProcessingFinished(Event):
    """Emitted after every dispatched job has completed or failed."""

    kept: int = 0
    discarded: int = 0
    failed: int = 0
