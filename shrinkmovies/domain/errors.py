"""Exception taxonomy for the shrink pipeline.

Only `TraversalError` is fatal for a run. Everything else is local to one
file: it is logged and the batch carries on.
"""

from pathlib import Path
from typing import Optional


class ShrinkMoviesError(Exception):
    """Base class for all pipeline errors."""


class TraversalError(ShrinkMoviesError):
    """A directory in the input tree could not be listed."""

    def __init__(self, directory: Path, reason: str):
        self.directory = directory
        super().__init__(f"Cannot list directory {directory}: {reason}")


class TranscodeError(ShrinkMoviesError):
    """The transcoder failed on one file (or its output could not be placed)."""

    def __init__(self, source: Path, reason: str, returncode: Optional[int] = None):
        self.source = source
        self.returncode = returncode
        super().__init__(f"Transcode failed for {source}: {reason}")


class TimestampError(ShrinkMoviesError):
    """Filesystem stat failed while resolving a timestamp. Never leaves the resolver."""


class MtimeSetError(ShrinkMoviesError):
    """Setting the modification time of a kept file failed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Unable to set mtime on {path}: {reason}")
