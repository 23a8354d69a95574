import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
import yaml

from shrinkmovies.config.models import AppConfig, EncodingProfile
from shrinkmovies.domain.errors import TranscodeError
from shrinkmovies.domain.interfaces import Transcoder
from shrinkmovies.infrastructure.event_bus import EventBus

# ============================================================================
# Fake transcoder
# ============================================================================

class FakeTranscoder(Transcoder):
    """Writes an output of ratio * input size instead of running ffmpeg.

    Records calls and the peak number of encodes running at the same time.
    """

    def __init__(
        self,
        ratio: float = 0.5,
        ratios: Optional[Dict[str, float]] = None,
        fail_names: Iterable[str] = (),
        delay: float = 0.0,
        barrier: Optional[threading.Barrier] = None,
    ):
        self.ratio = ratio
        self.ratios = ratios or {}
        self.fail_names = set(fail_names)
        self.delay = delay
        self.barrier = barrier
        self.calls: List[tuple] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def encode(self, source: Path, dest: Path, profile: EncodingProfile, shutdown_event=None, timeout=None) -> None:
        with self._lock:
            self.calls.append((source, dest, profile))
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.barrier is not None:
                self.barrier.wait(timeout=5)
            if self.delay:
                time.sleep(self.delay)
            if source.name in self.fail_names:
                raise TranscodeError(source, "ffmpeg exited with code 1", returncode=1)
            ratio = self.ratios.get(source.name, self.ratio)
            dest.write_bytes(b"\1" * int(source.stat().st_size * ratio))
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def fake_transcoder():
    return FakeTranscoder()

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        general={
            "threads": 2,
            "keep_ratio": 0.93,
            "extensions": [".mpg", ".mpeg", ".avi", ".mp4", ".3gp", ".mov"],
            "transcode_timeout_s": None,
            "debug": False,
        },
        encoding={
            "crf": 28,
            "preset": "slow",
        }
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "shrink.yaml"

    content = {
        'general': {
            'threads': 3,
            'keep_ratio': 0.9,
            'extensions': ['mp4', 'MOV'],
            'debug': True,
        },
        'encoding': {
            'crf': 30,
            'preset': 'medium',
        }
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# File System Fixtures
# ============================================================================

def write_movie(path: Path, size: int, mtime: Optional[datetime] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)
    if mtime is not None:
        stamp = mtime.timestamp()
        os.utime(path, (stamp, stamp))
    return path

@pytest.fixture
def test_input_dir(tmp_path):
    """Creates a test input directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir

@pytest.fixture
def movie_tree(test_input_dir):
    """Input tree from the end-to-end scenario: two movies plus one in a hidden dir."""
    a = write_movie(test_input_dir / "a.mp4", 5 * 1024 * 1024, mtime=datetime(2019, 6, 1, 10, 30, 15))
    dated = write_movie(test_input_dir / "20200101_120000.mov", 2 * 1024 * 1024)
    hidden = write_movie(test_input_dir / ".cache" / "b.mp4", 1024 * 1024)
    return test_input_dir, [a, dated], hidden


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture
def make_transcoder():
    """Factory for FakeTranscoder instances with custom behavior."""
    return FakeTranscoder


@pytest.fixture
def make_movie():
    """Factory writing a dummy movie file of a given size (and optional mtime)."""
    return write_movie
