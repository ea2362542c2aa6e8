#!/usr/bin/env python3
"""
Cancellation token shared by every loop of the exerciser.

The token is a single stop flag that is set once and never cleared. Escape
key presses are picked up by polling the terminal without blocking, so every
wait in the system goes through `interruptible_sleep`.
"""

import os
import sys
import time
import select
import threading
from contextlib import contextmanager

ESCAPE = "\x1b"
ESCAPE_BYTE = ESCAPE.encode()
ESCAPE_SEQUENCE_DELAY = 0.02
POLL_INTERVAL = 1.0


def contains_lone_escape(data: bytes) -> bool:
    """
    True if `data` holds an Escape key press.

    Arrow, function and Alt keys arrive as ESC followed by more bytes, so only
    an ESC that ends the buffer or is directly followed by another ESC counts.
    """
    for i, byte in enumerate(data):
        if byte != ESCAPE_BYTE[0]:
            continue
        if i + 1 == len(data) or data[i + 1] == ESCAPE_BYTE[0]:
            return True
    return False


def _read_pending(fd, timeout):
    data = b""
    while select.select([fd], [], [], timeout)[0]:
        chunk = os.read(fd, 64)
        if not chunk:
            break
        data += chunk
    return data


class KeyPoller:
    """Non-blocking single-key reads from the controlling terminal"""

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self._saved_attrs = None
        self._depth = 0

    def _is_tty(self):
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def __enter__(self):
        self._depth += 1
        if self._depth == 1 and os.name != "nt" and self._is_tty():
            # Single-key mode so Escape arrives without Enter
            import termios
            import tty
            fd = self.stream.fileno()
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        return self

    def __exit__(self, exc_type, exc, tb):
        self._depth -= 1
        if self._depth == 0 and self._saved_attrs is not None:
            import termios
            termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None
        return False

    def escape_pressed(self) -> bool:
        """Drain pending keys; True if one of them was Escape"""
        if os.name == "nt":
            import msvcrt
            pressed = False
            while msvcrt.kbhit():
                if msvcrt.getwch() == ESCAPE:
                    pressed = True
            return pressed

        if self._saved_attrs is None:
            # Line-buffered terminal (or no terminal at all)
            return False

        fd = self.stream.fileno()
        pending = _read_pending(fd, 0)
        if pending.endswith(ESCAPE_BYTE):
            # the rest of an arrow/function key sequence may trail its ESC
            pending += _read_pending(fd, ESCAPE_SEQUENCE_DELAY)
        return contains_lone_escape(pending)


class CancellationToken:
    """Process-wide stop flag plus the keypress poll"""

    def __init__(self, key_poller=None, sleep=time.sleep):
        self._stop = threading.Event()
        self.key_poller = key_poller
        self._sleep = sleep

    def request_stop(self):
        self._stop.set()

    def is_stop_requested(self) -> bool:
        return self._stop.is_set()

    def poll_interrupt(self) -> bool:
        if self.key_poller is not None and self.key_poller.escape_pressed():
            self.request_stop()
            return True
        return False

    def interruptible_sleep(self, seconds) -> bool:
        """
        Sleep for `seconds` in slices of at most POLL_INTERVAL.

        Returns True when the whole wait elapsed, False as soon as a stop is
        requested. A zero wait still polls once.
        """
        remaining = seconds
        while True:
            self.poll_interrupt()
            if self.is_stop_requested():
                return False
            if remaining <= 0:
                return True
            step = min(POLL_INTERVAL, remaining)
            self._sleep(step)
            remaining -= step

    @contextmanager
    def listening(self):
        """Keep the key poller in single-key mode for the enclosed action"""
        if self.key_poller is None:
            yield self
            return
        with self.key_poller:
            yield self
