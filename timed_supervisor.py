#!/usr/bin/env python3
"""
Timed supervision of a single load generator.

A BackgroundUnit is one generator running in its own process. The supervisor
starts it, narrates the countdown once per second, and always force-stops it
before returning, whether the duration elapsed, the user cancelled, or the
generator died on its own.
"""

import math
import time
import threading
import multiprocessing

import psutil

from exerciser_log import log

STOP_TIMEOUT = 5.0


class BackgroundUnit:
    """Handle on one running load generator process"""

    def __init__(self, name, target, args=()):
        self.name = name
        self.exitcode = None
        # Guards _process: the UI thread and the session worker may both stop a unit
        self._lock = threading.Lock()
        # Non-daemon: the CPU generator starts its own worker processes
        self._process = multiprocessing.Process(target=target, args=args, name=name)
        self._process.daemon = False

    @property
    def pid(self):
        with self._lock:
            return self._process.pid if self._process is not None else None

    @property
    def exit_code(self):
        with self._lock:
            if self._process is not None:
                return self._process.exitcode
            return self.exitcode

    def start(self):
        with self._lock:
            self._process.start()
        return self

    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.is_alive()

    def force_stop(self):
        """Terminate the unit and all of its children. Safe to call twice,
        and from several threads at once."""
        with self._lock:
            proc = self._process
            if proc is None:
                return

            children = []
            if proc.is_alive():
                try:
                    children = psutil.Process(proc.pid).children(recursive=True)
                except psutil.NoSuchProcess:
                    children = []
                for child in children:
                    try:
                        child.terminate()
                    except psutil.NoSuchProcess:
                        pass
                proc.terminate()

            proc.join(timeout=STOP_TIMEOUT)
            if proc.is_alive():
                proc.kill()
                proc.join(timeout=STOP_TIMEOUT)

            _, still_alive = psutil.wait_procs(children, timeout=STOP_TIMEOUT)
            for child in still_alive:
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    pass

            self.exitcode = proc.exitcode
            if not proc.is_alive():
                proc.close()
                self._process = None


def spawn_unit(name, target, *args) -> BackgroundUnit:
    """Start `target(*args)` as a background unit"""
    return BackgroundUnit(name, target, args).start()


class TimedSupervisor:
    """Runs one generator at a time for a fixed wall-clock duration"""

    def __init__(self, token, on_cancel=None, clock=time.monotonic):
        self.token = token
        self.on_cancel = on_cancel
        self.clock = clock
        self.current = None

    def stop_current(self):
        unit, self.current = self.current, None
        if unit is not None:
            unit.force_stop()

    def _cancelled(self, name):
        log(f"{name} stress test cancelled.")
        if self.on_cancel is not None:
            self.on_cancel()

    def run_timed(self, name, generator_factory, duration_seconds):
        if self.token.is_stop_requested():
            return

        # At most one unit alive at any time
        self.stop_current()

        log(f"Starting {name} stress test for {duration_seconds} seconds...")
        self.current = unit = generator_factory()
        start = self.clock()
        try:
            while True:
                elapsed = self.clock() - start
                if elapsed >= duration_seconds:
                    log(f"{name} stress test completed.")
                    break
                if not unit.is_running():
                    log(f"{name} stress test ended early after {elapsed:.0f}s "
                        f"(exit code {unit.exit_code}).")
                    break

                remaining = math.ceil(duration_seconds - elapsed)
                log(f"{name} stress test: {remaining} seconds remaining")
                if not self.token.interruptible_sleep(1):
                    self._cancelled(name)
                    return
        finally:
            unit.force_stop()
            if self.current is unit:
                self.current = None
