from pathlib import Path
from typing import Callable

COUNTER_WIDTH = 4


def candidate_name(stem: str, index: int, suffix: str = ".mp4") -> str:
    """`stem.mp4` for index 0, then `stem_0001.mp4`, `stem_0002.mp4`, ..."""
    if index == 0:
        return f"{stem}{suffix}"
    return f"{stem}_{index:0{COUNTER_WIDTH}d}{suffix}"


def first_free_path(directory: Path, stem: str, is_taken: Callable[[Path], bool], suffix: str = ".mp4") -> Path:
    """Returns the first candidate path in directory that is_taken rejects."""
    index = 0
    while True:
        path = Path(directory) / candidate_name(stem, index, suffix)
        if not is_taken(path):
            return path
        index += 1
