import subprocess
import logging
import shutil
import time
import threading
import queue
from collections import deque
from pathlib import Path
from typing import List, Optional
from shrinkmovies.config.models import EncodingProfile
from shrinkmovies.domain.errors import TranscodeError
from shrinkmovies.domain.interfaces import Transcoder

OUTPUT_TAIL_LINES = 20


def ensure_ffmpeg_available(binary: str = "ffmpeg") -> None:
    if shutil.which(binary) is None:
        raise RuntimeError(f"{binary} not found in PATH. Please install it before running this command.")


class FFmpegAdapter(Transcoder):
    """Wrapper around ffmpeg for size-oriented H.264 re-encoding."""

    def __init__(self, binary: str = "ffmpeg", debug: bool = False):
        self.binary = binary
        self.debug = debug
        self.logger = logging.getLogger(__name__)

    def _build_command(self, source: Path, dest: Path, profile: EncodingProfile) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        cmd = [
            self.binary,
            "-y",  # Overwrite output files
            "-i", str(source),
            "-c:v", profile.video_codec,
            "-preset", profile.preset,
            "-crf", str(profile.crf),
        ]
        if profile.faststart:
            cmd.extend(["-movflags", "+faststart"])
        cmd.extend(["-c:a", profile.audio_codec])

        # Output name may not end in .mp4 (working files), so force the container
        cmd.extend(["-f", "mp4", str(dest)])
        return cmd

    def _stop(self, process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def _discard_output(self, dest: Path):
        if dest.exists():
            dest.unlink()

    def encode(
        self,
        source: Path,
        dest: Path,
        profile: EncodingProfile,
        shutdown_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Runs ffmpeg and blocks until it exits. Raises TranscodeError on failure."""
        filename = source.name
        start_time = time.monotonic()
        deadline = start_time + timeout if timeout else None

        cmd = self._build_command(source, dest, profile)
        if self.debug:
            self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",  # tags and file names are not always UTF-8
                bufsize=1
            )
        except OSError as e:
            raise TranscodeError(source, f"could not start {self.binary}: {e}") from e

        tail: "deque[str]" = deque(maxlen=OUTPUT_TAIL_LINES)
        output_queue: "queue.Queue[Optional[str]]" = queue.Queue()

        def _reader():
            try:
                if process.stdout:
                    for line in process.stdout:
                        output_queue.put(line)
            finally:
                output_queue.put(None)

        reader_thread = threading.Thread(target=_reader, daemon=True)
        reader_thread.start()

        try:
            while True:
                if shutdown_event and shutdown_event.is_set():
                    self.logger.info(f"FFMPEG_INTERRUPTED: {filename} (shutdown signal)")
                    self._stop(process)
                    self._discard_output(dest)
                    raise TranscodeError(source, "interrupted")

                if deadline is not None and time.monotonic() > deadline:
                    self.logger.error(f"FFMPEG_TIMEOUT: {filename} after {timeout:.0f}s")
                    self._stop(process)
                    self._discard_output(dest)
                    raise TranscodeError(source, f"timed out after {timeout:.0f}s")

                try:
                    line = output_queue.get(timeout=0.1)
                except queue.Empty:
                    if process.poll() is not None:
                        break
                    continue

                if line is None:
                    break
                tail.append(line.rstrip())

            process.wait()
        except KeyboardInterrupt:
            self.logger.info(f"FFMPEG_INTERRUPTED: {filename} (KeyboardInterrupt)")
            self._stop(process)
            self._discard_output(dest)
            raise

        elapsed = time.monotonic() - start_time
        if process.returncode != 0:
            self._discard_output(dest)
            last_line = tail[-1] if tail else ""
            if self.debug:
                self.logger.debug(f"FFMPEG_END: {filename} status=failed code={process.returncode} elapsed={elapsed:.2f}s")
            raise TranscodeError(
                source,
                f"ffmpeg exited with code {process.returncode}: {last_line}".rstrip(": "),
                returncode=process.returncode,
            )

        if self.debug:
            self.logger.debug(f"FFMPEG_END: {filename} status=completed elapsed={elapsed:.2f}s")
