import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from shrinkmovies.domain.errors import MtimeSetError, TimestampError

logger = logging.getLogger(__name__)

# e.g. 20160513_181656.mp4, written by an earlier run or by a phone camera
DATE_PREFIX_RE = re.compile(r"^(\d{8})_.*")
FALLBACK_TIMESTAMP = datetime(2000, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
NAME_FORMAT = "%Y%m%d_%H%M%S"


def _date_from_name(name: str):
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _modification_time(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError as e:
        raise TimestampError(f"stat failed for {path}: {e}") from e


def resolve_timestamp(path: Path) -> datetime:
    """Canonical timestamp of a movie file.

    A date embedded in the name wins over the file's mtime so a re-encoded
    file keeps its logical date. Name dates and FALLBACK_TIMESTAMP are UTC
    midnight; a modification time is returned as naive local time. Never
    raises: an unreadable file resolves to FALLBACK_TIMESTAMP.
    """
    path = Path(path)
    from_name = _date_from_name(path.name)
    if from_name is not None:
        return from_name

    try:
        return _modification_time(path)
    except TimestampError as e:
        logger.error(f"Unable to get modification time, using {FALLBACK_TIMESTAMP:%Y-%m-%d}: {e}")
        return FALLBACK_TIMESTAMP


def timestamp_stem(timestamp: datetime) -> str:
    return timestamp.strftime(NAME_FORMAT)


def set_mtime(path: Path, timestamp: datetime) -> None:
    """Sets access and modification time of path to timestamp."""
    seconds = timestamp.timestamp()
    try:
        os.utime(path, (seconds, seconds))
    except OSError as e:
        raise MtimeSetError(Path(path), str(e)) from e
