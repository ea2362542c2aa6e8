#!/usr/bin/env python3
"""
Machine Health Exerciser Dashboard - Terminal GUI
Runs the same session as the console menu, with live narration.
"""

import os
import time
import multiprocessing
from datetime import datetime
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Header, Footer, Static, Button, Label, Log
from textual.reactive import reactive
from textual import work

from exerciser_config import parse_args
from exerciser_log import log, start_log
from cancellation import CancellationToken
from health_exerciser import (
    SessionController, MENU_APPS_ONLY, MENU_STRESS_ONLY, MENU_BOTH,
)

ACTION_LABELS = {
    MENU_APPS_ONLY: "APP CYCLE",
    MENU_STRESS_ONLY: "STRESS TEST",
    MENU_BOTH: "APPS + STRESS",
}


class ConfigDisplay(Static):
    """Display the effective configuration"""

    def __init__(self, config, **kwargs):
        super().__init__(**kwargs)
        self.config = config

    def render(self) -> str:
        rows = "\n".join(f"  [bold]{label}:[/] {value}" for label, value in self.config.describe())
        return f"""
[bold cyan]═══════════════════════════════════════════════════[/]
[bold white]              CONFIGURATION[/]
[bold cyan]═══════════════════════════════════════════════════[/]

{rows}
"""


class StatusDisplay(Static):
    """Display session status"""
    activity = reactive("IDLE")
    uptime = reactive("--:--:--")
    stopping = reactive(False)

    def render(self) -> str:
        activity_color = "green" if self.activity == "IDLE" else "yellow"
        stop_text = "[red]STOP REQUESTED - CLEANING UP[/]" if self.stopping else ""

        return f"""
[bold cyan]═══════════════════════════════════════════════════[/]
[bold white]              SESSION STATUS[/]
[bold cyan]═══════════════════════════════════════════════════[/]

  [bold]Activity:[/] [{activity_color}]● {self.activity}[/]
  [bold]Uptime:[/]   [white]{self.uptime}[/]

  {stop_text}
"""


class ExerciserDashboard(App):
    """Machine Health Exerciser TUI Application"""

    CSS = """
    #main_container {
        width: 100%;
        height: 100%;
    }

    #left_panel {
        width: 60;
        height: 100%;
        border: solid cyan;
    }

    #right_panel {
        width: 1fr;
        height: 100%;
        border: solid cyan;
    }

    #controls {
        height: auto;
        padding: 1;
        border: solid yellow;
        margin: 1;
    }

    #logs {
        height: 1fr;
        border: solid green;
        margin: 1;
    }

    Button {
        margin: 1;
        width: 100%;
    }

    Button.run {
        background: green;
        color: white;
    }

    Button.stop {
        background: red;
        color: white;
    }
    """

    BINDINGS = [
        ("1", "run_choice('1')", "Apps"),
        ("2", "run_choice('2')", "Stress"),
        ("3", "run_choice('3')", "Both"),
        ("escape", "request_stop", "Stop"),
        ("q", "quit", "Quit"),
    ]

    ESCAPE_TO_MINIMIZE = False

    def __init__(self, config, controller=None):
        super().__init__()
        self.config = config
        self.controller = controller or SessionController(config, CancellationToken())
        self.start_time = time.time()
        self.busy = False
        self._log_pos = 0

    @property
    def token(self):
        return self.controller.token

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header(show_clock=True)

        with Horizontal(id="main_container"):
            with VerticalScroll(id="left_panel"):
                yield ConfigDisplay(self.config, id="config_display")
                yield StatusDisplay(id="status_display")

                with Vertical(id="controls"):
                    yield Label("[bold cyan]═══ CONTROLS ═══[/]")
                    yield Button("1  CYCLE APPLICATIONS", id="run_apps", classes="run")
                    yield Button("2  STRESS TEST", id="run_stress", classes="run")
                    yield Button("3  BOTH", id="run_both", classes="run")
                    yield Button("ESC  STOP & CLEAN UP", id="stop", classes="stop")

            with Vertical(id="right_panel"):
                yield Label("[bold cyan]═══════════ NARRATION ═══════════[/]", id="log_header")
                yield Log(id="logs", max_lines=500)

        yield Footer()

    def on_mount(self) -> None:
        self.load_new_logs()
        self.set_interval(1.0, self.refresh_status)

    def refresh_status(self) -> None:
        status = self.query_one("#status_display", StatusDisplay)
        uptime_seconds = int(time.time() - self.start_time)
        hours = uptime_seconds // 3600
        minutes = (uptime_seconds % 3600) // 60
        seconds = uptime_seconds % 60
        status.uptime = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
        status.stopping = self.token.is_stop_requested()
        self.load_new_logs()

    def load_new_logs(self) -> None:
        """Append log lines written since the last refresh"""
        log_widget = self.query_one("#logs", Log)
        path = self.config.log_file_path
        try:
            if not os.path.exists(path):
                return
            with open(path, 'r', encoding='utf-8', errors='ignore') as f:
                f.seek(self._log_pos)
                new_text = f.read()
                self._log_pos = f.tell()
        except OSError as e:
            log_widget.write_line(f"Cannot read logs: {e}")
            return

        for line in new_text.splitlines():
            if line.strip():
                log_widget.write_line(line)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses"""
        button_id = event.button.id
        if button_id == "run_apps":
            self.action_run_choice(MENU_APPS_ONLY)
        elif button_id == "run_stress":
            self.action_run_choice(MENU_STRESS_ONLY)
        elif button_id == "run_both":
            self.action_run_choice(MENU_BOTH)
        elif button_id == "stop":
            self.action_request_stop()

    def action_run_choice(self, choice: str) -> None:
        if self.busy or self.token.is_stop_requested():
            return
        self.busy = True
        self.query_one("#status_display", StatusDisplay).activity = ACTION_LABELS[choice]
        self.run_session(choice)

    @work(thread=True, exclusive=True)
    def run_session(self, choice: str) -> None:
        try:
            self.controller.dispatch(choice)
        finally:
            # The app may already be closing (quit while a session ran)
            if self.is_running:
                self.call_from_thread(self.session_finished)

    def session_finished(self) -> None:
        self.busy = False
        self.query_one("#status_display", StatusDisplay).activity = "IDLE"
        if self.token.is_stop_requested():
            self.shutdown()

    def action_request_stop(self) -> None:
        """Escape: stop whatever runs, clean up, and leave"""
        if not self.token.is_stop_requested():
            log(f"Stop requested from dashboard at {datetime.now().strftime('%H:%M:%S')}")
            self.token.request_stop()
        self.query_one("#status_display", StatusDisplay).stopping = True
        if not self.busy:
            self.shutdown()

    def shutdown(self) -> None:
        self.controller.cleanup()
        self.exit()

    def on_unmount(self) -> None:
        """Make sure nothing keeps running after the dashboard closes"""
        self.token.request_stop()
        self.controller.cleanup()


def main(argv=None):
    config = parse_args(argv)
    start_log(config.log_file_path, echo=False)
    log("=== Machine Health Exerciser Dashboard Starting ===")
    app = ExerciserDashboard(config)
    app.run()
    log("=== Machine Health Exerciser Dashboard Stopped ===")


if __name__ == "__main__":
    multiprocessing.freeze_support()
    main()
