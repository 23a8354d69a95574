import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from shrinkmovies.config.models import EncodingProfile


class Transcoder(ABC):
    """
    Contract for the external re-encoding tool.
    Keeps the pipeline independent of the ffmpeg binary so tests can swap in a fake.
    """

    @abstractmethod
    def encode(
        self,
        source: Path,
        dest: Path,
        profile: EncodingProfile,
        shutdown_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Re-encodes source into dest using the given profile. Blocks until done.

        Args:
            source: Movie file to read.
            dest: File to write (overwritten if present).
            profile: Codec, quality and container settings.
            shutdown_event: When set, the running encode is aborted.
            timeout: Seconds after which the encode is aborted.

        Raises:
            TranscodeError: If the tool fails, times out or is interrupted.
        """
        pass
