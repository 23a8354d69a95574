import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional
from shrinkmovies.config.models import DEFAULT_EXTENSIONS
from shrinkmovies.domain.errors import TraversalError
from shrinkmovies.domain.models import FileTask

HIDDEN_MARKER = "."


def is_movie(name: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """True when the file name carries one of the movie extensions (any case)."""
    suffix = os.path.splitext(name)[1].lower()
    return bool(suffix) and suffix in {ext.lower() for ext in extensions}


def is_hidden(name: str) -> bool:
    return len(name) > 0 and name[0] == HIDDEN_MARKER


class FileScanner:
    """Recursively collects movie files below a directory.

    Hidden directories (dot-prefixed) and symlinked directories are not
    entered. The result is fully materialized and sorted per directory.
    """

    def __init__(self, extensions: Optional[List[str]] = None):
        source = extensions if extensions is not None else DEFAULT_EXTENSIONS
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in source]
        self.logger = logging.getLogger(__name__)

    def _list_dir(self, directory: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            raise TraversalError(directory, e.strerror or str(e)) from e

    def collect(self, root_dir: Path, output_dir: Optional[Path] = None) -> List[FileTask]:
        """Walks root_dir depth-first and returns one FileTask per movie file.

        Args:
            root_dir: Directory to scan.
            output_dir: Optional root for retained files. Each task's
                destination mirrors the source's relative directory under it.
                When None, files are retained next to their source.

        Raises:
            TraversalError: when any directory of the tree cannot be listed.
        """
        root_dir = Path(root_dir)
        skip_dir = Path(output_dir).resolve() if output_dir else None
        tasks: List[FileTask] = []

        stack = [root_dir]
        while stack:
            directory = stack.pop()
            entries = self._list_dir(directory)
            subdirs: List[Path] = []

            for entry in entries:
                path = Path(entry.path)
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False

                if is_dir:
                    if is_hidden(entry.name):
                        self.logger.debug(f"SCAN_SKIP_HIDDEN: {path}")
                        continue
                    if skip_dir is not None and path.resolve() == skip_dir:
                        continue
                    subdirs.append(path)
                    continue

                if entry.is_symlink() and entry.is_dir():
                    self.logger.debug(f"SCAN_SKIP_SYMLINK: {path}")
                    continue

                if not is_movie(entry.name, self.extensions):
                    continue

                if output_dir is None:
                    destination = directory
                else:
                    destination = Path(output_dir) / directory.relative_to(root_dir)
                tasks.append(FileTask(source_path=path, destination_dir=destination))

            # Reversed so the stack pops subdirectories in name order
            stack.extend(reversed(subdirs))

        return tasks
