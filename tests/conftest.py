from __future__ import annotations

import pytest

import exerciser_log
from exerciser_config import ExerciserConfig


class FakeProcessControl:
    """Records start/terminate calls instead of touching real processes."""

    def __init__(self, missing=(), killed=1, on_terminate=None):
        self.missing = set(missing)
        self.killed = killed
        self.on_terminate = on_terminate
        self.events: list[tuple[str, str]] = []

    def start(self, path):
        self.events.append(("start", path))
        if path in self.missing:
            raise FileNotFoundError(2, "No such file or directory", path)
        return object()

    def terminate_all_named(self, name):
        self.events.append(("terminate", name))
        if self.on_terminate is not None:
            self.on_terminate(self)
        return self.killed

    @property
    def terminate_count(self):
        return sum(1 for kind, _ in self.events if kind == "terminate")


class FakePoller:
    """Reports Escape on the n-th poll (never when `press_on` is None)."""

    def __init__(self, press_on=None):
        self.press_on = press_on
        self.polls = 0
        self.entered = 0

    def escape_pressed(self):
        self.polls += 1
        return self.polls == self.press_on

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture(autouse=True)
def session_log(tmp_path):
    path = tmp_path / "health.log"
    exerciser_log.start_log(str(path), echo=False)
    return path


@pytest.fixture
def config(tmp_path, session_log):
    return ExerciserConfig(
        cpu_thread_count=1,
        test_duration_seconds=2,
        app_wait_seconds=0,
        log_file_path=str(session_log),
        disk_source_dir=str(tmp_path / "DiskTestSource"),
        disk_dest_dir=str(tmp_path / "DiskTestDest"),
        network_url="http://example.invalid/big.bin",
        network_dest_path=str(tmp_path / "network_test.bin"),
        disk_file_count=3,
        disk_file_size=128,
    )
