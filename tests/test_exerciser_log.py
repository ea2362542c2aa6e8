from __future__ import annotations

import importlib
import re

import exerciser_config
import exerciser_log
from exerciser_log import log, start_log

LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] (.*)$")


def test_start_log_truncates_previous_session(tmp_path):
    path = tmp_path / "health.log"
    path.write_text("stale line from last run\n")

    start_log(str(path), echo=False)

    text = path.read_text()
    assert "stale line" not in text
    assert text.startswith("=== Machine Health Exerciser")


def test_log_appends_timestamped_lines(session_log):
    log("Launched Notepad")
    log("Closed Notepad")

    lines = [LINE.match(line) for line in session_log.read_text().splitlines()[-2:]]
    assert [m.group(1) for m in lines] == ["Launched Notepad", "Closed Notepad"]


def test_log_echoes_to_console(tmp_path, capsys):
    start_log(str(tmp_path / "echo.log"), echo=True)
    log("hello")
    assert "hello" in capsys.readouterr().out


def test_log_creates_missing_directory(tmp_path):
    path = tmp_path / "deep" / "logs" / "health.log"
    start_log(str(path), echo=False)
    log("first")
    assert path.exists()


def test_default_log_file_follows_config(tmp_path):
    default = exerciser_config.LOG_FILE
    exerciser_config.LOG_FILE = str(tmp_path / "configured.log")
    try:
        importlib.reload(exerciser_log)
        assert exerciser_log.LOG_FILE == str(tmp_path / "configured.log")
    finally:
        exerciser_config.LOG_FILE = default
        importlib.reload(exerciser_log)
    assert exerciser_log.LOG_FILE == default
