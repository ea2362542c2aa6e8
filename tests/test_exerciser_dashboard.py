from __future__ import annotations

import asyncio

from textual.widgets import Log

from cancellation import CancellationToken
from conftest import FakeProcessControl
from exerciser_dashboard import ExerciserDashboard
from exerciser_log import log
from health_exerciser import SessionController


class _StageRecorder:
    def __init__(self, token):
        self.token = token
        self.on_cancel = None
        self.calls = []

    def run_timed(self, name, generator_factory, duration_seconds):
        self.calls.append(name)
        self.token.request_stop()
        self.on_cancel()

    def stop_current(self):
        pass


def _dashboard(config):
    token = CancellationToken()
    controller = SessionController(
        config, token,
        supervisor=_StageRecorder(token),
        process_control=FakeProcessControl(),
        roster=(),
    )
    return ExerciserDashboard(config, controller=controller)


def test_escape_stops_and_cleans_up(config):
    app = _dashboard(config)

    async def drive():
        async with app.run_test() as pilot:
            await pilot.press("escape")

    asyncio.run(drive())

    assert app.token.is_stop_requested() is True
    assert app.controller.cleanup.done is True


def test_narration_is_shown(config):
    log("Launched Notepad")
    app = _dashboard(config)
    shown = []

    async def drive():
        async with app.run_test() as pilot:
            await pilot.pause()
            shown.extend(app.query_one("#logs", Log).lines)

    asyncio.run(drive())

    assert any("Launched Notepad" in line for line in shown)


def test_stress_key_runs_session_in_worker(config):
    app = _dashboard(config)

    async def drive():
        async with app.run_test() as pilot:
            await pilot.press("2")
            await app.workers.wait_for_complete()

    asyncio.run(drive())

    assert app.controller.supervisor.calls == ["CPU"]
    assert app.controller.cleanup.done is True
