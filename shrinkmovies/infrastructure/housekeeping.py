import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

class HousekeepingService:
    """Creates and removes the per-run working directory."""

    def __init__(self, prefix: str = "shrink-movies-"):
        self.prefix = prefix
        self.logger = logging.getLogger(__name__)
        self.work_dir: Optional[Path] = None

    def create_work_dir(self, parent: Optional[Path] = None) -> Path:
        """Creates a fresh, empty working directory for transcoder output."""
        self.work_dir = Path(tempfile.mkdtemp(prefix=self.prefix, dir=parent))
        self.logger.debug(f"Working directory created: {self.work_dir}")
        return self.work_dir

    def remove_work_dir(self):
        """Removes the working directory and anything left in it."""
        if self.work_dir is None:
            return
        shutil.rmtree(self.work_dir, ignore_errors=True)
        self.logger.debug(f"Working directory removed: {self.work_dir}")
        self.work_dir = None

    def __enter__(self) -> Path:
        return self.create_work_dir()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.remove_work_dir()
        return False
