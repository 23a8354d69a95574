from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    INTERRUPTED = "INTERRUPTED"  # Ctrl+C during processing

class RetentionDecision(str, Enum):
    REPLACE = "REPLACE"
    DISCARD = "DISCARD"

class FileTask(BaseModel):
    """One source movie plus the directory that receives the retained re-encode."""
    model_config = ConfigDict(frozen=True)

    source_path: Path
    destination_dir: Path

class TranscodeJob(BaseModel):
    task: FileTask
    timestamp: datetime
    work_path: Path
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None

class TranscodeResult(BaseModel):
    source_path: Path
    output_path: Path
    input_size_bytes: int
    output_size_bytes: int
    size_ratio: float
    kept: bool

    @property
    def bytes_saved(self) -> int:
        if not self.kept:
            return 0
        return self.input_size_bytes - self.output_size_bytes

class RunSummary(BaseModel):
    results: List[TranscodeResult] = Field(default_factory=list)
    failed: List[Path] = Field(default_factory=list)
    interrupted: List[Path] = Field(default_factory=list)
    max_active: int = 0

    @property
    def kept_count(self) -> int:
        return sum(1 for r in self.results if r.kept)

    @property
    def discarded_count(self) -> int:
        return sum(1 for r in self.results if not r.kept)

    @property
    def bytes_saved(self) -> int:
        return sum(r.bytes_saved for r in self.results)
