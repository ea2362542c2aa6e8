#!/usr/bin/env python3
"""
Machine Health Exerciser
Cycles common desktop applications and stresses CPU, memory, disk and
network so a freshly imaged machine can be watched under load.
Press Escape at any time to stop and clean up.
"""

import sys
import signal
import threading
import multiprocessing
from functools import partial

import psutil

from exerciser_config import parse_args
from exerciser_log import log, start_log
from cancellation import CancellationToken, KeyPoller
from timed_supervisor import TimedSupervisor, spawn_unit
from app_cycler import DEFAULT_ROSTER, ProcessControl, cycle_apps
import load_generators

MENU_APPS_ONLY = "1"
MENU_STRESS_ONLY = "2"
MENU_BOTH = "3"
MENU_EXIT = "4"


def build_stress_stages(config):
    """(name, generator factory) for each stress stage, in run order"""
    return [
        ("CPU", partial(spawn_unit, "CPU", load_generators.cpu_load,
                        config.cpu_thread_count)),
        ("Memory", partial(spawn_unit, "Memory", load_generators.memory_load)),
        ("Disk", partial(spawn_unit, "Disk", load_generators.disk_load,
                         config.disk_source_dir, config.disk_dest_dir,
                         config.disk_file_count, config.disk_file_size)),
        ("Network", partial(spawn_unit, "Network", load_generators.network_load,
                            config.network_url, config.network_dest_path)),
    ]


class GlobalCleanup:
    """Stops everything the session may have left behind. Runs once."""

    def __init__(self, config, supervisor, roster, process_control):
        self.config = config
        self.supervisor = supervisor
        self.roster = roster
        self.process_control = process_control
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self):
        return self._done

    def __call__(self) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True

        log("Cleaning up...")
        self.supervisor.stop_current()

        for app in self.roster:
            try:
                self.process_control.terminate_all_named(app.process_match_name)
            except (OSError, psutil.Error) as e:
                log(f"WARNING: Could not close {app.display_name}: {e}")

        for path in (self.config.disk_source_dir, self.config.disk_dest_dir,
                     self.config.network_dest_path):
            try:
                load_generators.remove_test_path(path)
            except OSError as e:
                log(f"WARNING: Could not remove {path}: {e}")

        log("Cleanup complete.")
        return True


class SessionController:
    """Menu loop dispatching to the app cycler and the stress stages"""

    def __init__(self, config, token, supervisor=None, process_control=None,
                 roster=DEFAULT_ROSTER, stages=None, input_fn=None):
        self.config = config
        self.token = token
        self.roster = roster
        self.process_control = process_control or ProcessControl()
        self.supervisor = supervisor or TimedSupervisor(token)
        self.cleanup = GlobalCleanup(config, self.supervisor, roster, self.process_control)
        self.supervisor.on_cancel = self.cleanup
        self.stages = stages if stages is not None else build_stress_stages(config)
        self.input_fn = input_fn or input

    def render_menu(self):
        lines = [
            "",
            "=" * 56,
            "    MACHINE HEALTH EXERCISER",
            "=" * 56,
        ]
        for label, value in self.config.describe():
            lines.append(f"  {label + ':':<22}{value}")
        lines += [
            "-" * 56,
            f" {MENU_APPS_ONLY}. Cycle applications only",
            f" {MENU_STRESS_ONLY}. Stress test only (CPU, Memory, Disk, Network)",
            f" {MENU_BOTH}. Both",
            f" {MENU_EXIT}. Exit",
            "-" * 56,
            " Press Escape at any time to stop and clean up.",
        ]
        return "\n".join(lines)

    def run_apps(self):
        cycle_apps(self.roster, self.config.app_wait_seconds, self.token,
                   self.process_control, on_cancel=self.cleanup)

    def run_stress_stages(self):
        for name, factory in self.stages:
            self.supervisor.run_timed(name, factory, self.config.test_duration_seconds)
            if self.token.is_stop_requested():
                return

    def run_stress_only(self):
        while not self.token.is_stop_requested():
            self.run_stress_stages()

    def run_both(self):
        # The app cycle only returns once cancelled, so the stress stages
        # after it run only if it is interrupted.
        while not self.token.is_stop_requested():
            self.run_apps()
            if self.token.is_stop_requested():
                return
            self.run_stress_stages()

    def exit(self):
        log("Exit selected.")
        self.token.request_stop()
        self.cleanup()

    def dispatch(self, choice):
        """Run one menu choice; returns False once the session should end"""
        choice = (choice or "").strip()
        if choice == MENU_EXIT:
            self.exit()
            return False

        actions = {
            MENU_APPS_ONLY: ("Running application cycle only.", self.run_apps),
            MENU_STRESS_ONLY: ("Running stress tests only.", self.run_stress_only),
            MENU_BOTH: ("Running application cycle and stress tests.", self.run_both),
        }
        if choice not in actions:
            log(f"Invalid selection '{choice}'. Please choose {MENU_APPS_ONLY}-{MENU_EXIT}.")
            return True

        message, action = actions[choice]
        log(message)
        with self.token.listening():
            action()
        return not self.token.is_stop_requested()

    def run(self):
        while True:
            self.token.poll_interrupt()
            if self.token.is_stop_requested():
                break
            print(self.render_menu())
            choice = self.input_fn(" Select an option: ")
            if not self.dispatch(choice):
                break
        self.cleanup()


def main(argv=None):
    """Console entry point"""
    config = parse_args(argv)
    start_log(config.log_file_path)

    log("=== Machine Health Exerciser Starting ===")
    log(f"Python version: {sys.version.split()[0]}")
    log(f"Log file: {config.log_file_path}")

    token = CancellationToken(key_poller=KeyPoller())
    controller = SessionController(config, token)

    def signal_handler(signum, frame):
        log("Received shutdown signal, cleaning up...")
        token.request_stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        controller.run()
    except (KeyboardInterrupt, EOFError):
        log("Interrupted.")
        token.request_stop()
    finally:
        controller.cleanup()
        log("=== Machine Health Exerciser Stopped ===")


if __name__ == "__main__":
    multiprocessing.freeze_support()
    main()
