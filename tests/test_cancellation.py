from __future__ import annotations

import io
import os

import pytest

from cancellation import CancellationToken, KeyPoller, contains_lone_escape
from conftest import FakePoller


def test_request_stop_is_idempotent():
    token = CancellationToken()
    assert token.is_stop_requested() is False
    token.request_stop()
    token.request_stop()
    assert token.is_stop_requested() is True


def test_poll_interrupt_without_escape_keeps_running():
    token = CancellationToken(key_poller=FakePoller())
    assert token.poll_interrupt() is False
    assert token.is_stop_requested() is False


def test_poll_interrupt_on_escape_requests_stop():
    token = CancellationToken(key_poller=FakePoller(press_on=1))
    assert token.poll_interrupt() is True
    assert token.is_stop_requested() is True


def test_poll_interrupt_without_poller():
    token = CancellationToken()
    assert token.poll_interrupt() is False


def test_interruptible_sleep_uses_one_second_slices():
    sleeps = []
    token = CancellationToken(sleep=sleeps.append)
    assert token.interruptible_sleep(3) is True
    assert sleeps == [1, 1, 1]


def test_interruptible_sleep_fractional_tail():
    sleeps = []
    token = CancellationToken(sleep=sleeps.append)
    assert token.interruptible_sleep(2.5) is True
    assert sleeps == [1, 1, 0.5]


def test_zero_wait_still_polls_once():
    sleeps = []
    poller = FakePoller()
    token = CancellationToken(key_poller=poller, sleep=sleeps.append)
    assert token.interruptible_sleep(0) is True
    assert poller.polls == 1
    assert sleeps == []


def test_escape_during_wait_stops_within_one_slice():
    sleeps = []
    token = CancellationToken(key_poller=FakePoller(press_on=3), sleep=sleeps.append)
    assert token.interruptible_sleep(30) is False
    assert sleeps == [1, 1]
    assert token.is_stop_requested() is True


def test_stop_from_another_component_ends_wait():
    token = CancellationToken(sleep=lambda _: token.request_stop())
    assert token.interruptible_sleep(10) is False


def test_listening_enters_the_poller():
    poller = FakePoller()
    token = CancellationToken(key_poller=poller)
    with token.listening():
        pass
    assert poller.entered == 1


def test_listening_without_poller():
    token = CancellationToken()
    with token.listening() as listening:
        assert listening is token


@pytest.mark.skipif(os.name == "nt", reason="POSIX terminal handling")
def test_key_poller_without_terminal_reports_nothing():
    poller = KeyPoller(stream=io.StringIO())
    with poller:
        assert poller.escape_pressed() is False
    assert poller.escape_pressed() is False


@pytest.mark.parametrize("data, expected", [
    (b"\x1b", True),
    (b"\x1b\x1b", True),
    (b"ab\x1b", True),
    (b"\x1b[A\x1b", True),
    (b"", False),
    (b"q", False),
    (b"\x1b[A", False),
    (b"\x1bOP", False),
    (b"\x1b[15~", False),
    (b"\x1bx", False),
])
def test_only_a_lone_escape_counts(data, expected):
    assert contains_lone_escape(data) is expected


class _PipeStream:
    def __init__(self, fd):
        self.fd = fd

    def fileno(self):
        return self.fd


@pytest.fixture
def pipe_poller():
    read_fd, write_fd = os.pipe()
    poller = KeyPoller(stream=_PipeStream(read_fd))
    # pretend the terminal is already in single-key mode
    poller._saved_attrs = []
    yield poller, write_fd
    os.close(read_fd)
    os.close(write_fd)


@pytest.mark.skipif(os.name == "nt", reason="POSIX terminal handling")
def test_arrow_keys_are_not_escape(pipe_poller):
    poller, write_fd = pipe_poller
    os.write(write_fd, b"\x1b[A\x1b[B\x1bOP")
    assert poller.escape_pressed() is False


@pytest.mark.skipif(os.name == "nt", reason="POSIX terminal handling")
def test_escape_key_after_arrow_key_is_seen(pipe_poller):
    poller, write_fd = pipe_poller
    os.write(write_fd, b"\x1b[C\x1b")
    assert poller.escape_pressed() is True
    assert poller.escape_pressed() is False
