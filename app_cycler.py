#!/usr/bin/env python3
"""
App cycler: launch and force-close a fixed roster of desktop applications
to generate application telemetry.

Failures to launch or to close an app are narrated and skipped; only a stop
request ends the cycle.
"""

import subprocess
from collections import namedtuple

import psutil

from exerciser_log import log

AppSpec = namedtuple("AppSpec", ["display_name", "launch_path", "process_match_name"])

DEFAULT_ROSTER = (
    AppSpec("Notepad", r"C:\Windows\System32\notepad.exe", "notepad"),
    AppSpec("Calculator", r"C:\Windows\System32\calc.exe", "CalculatorApp"),
    AppSpec("Paint", r"C:\Windows\System32\mspaint.exe", "mspaint"),
    AppSpec("WordPad", r"C:\Program Files\Windows NT\Accessories\wordpad.exe", "wordpad"),
    AppSpec("Microsoft Edge", r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe", "msedge"),
    AppSpec("Windows Media Player", r"C:\Program Files\Windows Media Player\wmplayer.exe", "wmplayer"),
)


def _base_name(name):
    name = (name or "").lower()
    return name[:-4] if name.endswith(".exe") else name


class ProcessControl:
    """Start processes by path, kill them by name"""

    def start(self, path):
        """Raises OSError (FileNotFoundError for a missing path)"""
        return subprocess.Popen([path], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def terminate_all_named(self, name) -> int:
        """Kill every process whose name matches; returns how many were killed"""
        target = _base_name(name)
        killed = 0
        for proc in psutil.process_iter(attrs=["name"]):
            if _base_name(proc.info.get("name")) != target:
                continue
            try:
                proc.kill()
                killed += 1
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied as e:
                log(f"WARNING: Access denied closing {name} (pid {e.pid})")
        return killed


def launch_app(app, process_control):
    try:
        process_control.start(app.launch_path)
        log(f"Launched {app.display_name}")
        return True
    except OSError as e:
        log(f"Failed to launch {app.display_name} ({app.launch_path}): {e}")
        return False


def close_app(app, process_control):
    try:
        killed = process_control.terminate_all_named(app.process_match_name)
    except psutil.Error as e:
        log(f"Failed to close {app.display_name}: {e}")
        return False

    if killed:
        log(f"Closed {app.display_name}")
        return True
    log(f"Failed to close {app.display_name}: no running '{app.process_match_name}' process")
    return False


def cycle_apps(roster, wait_seconds, token, process_control, on_cancel=None):
    """
    Launch -> wait -> close -> wait for each roster entry, forever.

    Returns only once a stop is requested, after calling `on_cancel`.
    """
    def cancelled():
        log("App cycle cancelled.")
        if on_cancel is not None:
            on_cancel()

    if not roster:
        log("No applications to cycle.")
        return

    while True:
        for app in roster:
            if token.is_stop_requested():
                cancelled()
                return

            launch_app(app, process_control)
            log(f"Waiting {wait_seconds} seconds...")
            if not token.interruptible_sleep(wait_seconds):
                cancelled()
                return

            close_app(app, process_control)
            log(f"Waiting {wait_seconds} seconds...")
            if not token.interruptible_sleep(wait_seconds):
                cancelled()
                return
