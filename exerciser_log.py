#!/usr/bin/env python3
"""
Narration log for the machine health exerciser.
Every user-visible action is printed and appended to a flat log file.
"""

import os
import platform
import multiprocessing
from datetime import datetime

import exerciser_config

VERSION = "1.0"

LOG_FILE = exerciser_config.LOG_FILE
ECHO = True


def _timestamp():
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _ensure_log_dir(path):
    log_dir = os.path.dirname(path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, mode=0o755, exist_ok=True)


def start_log(path, echo=True):
    """Truncate the log file and write the session header"""
    global LOG_FILE, ECHO
    LOG_FILE = path
    ECHO = echo
    try:
        _ensure_log_dir(LOG_FILE)
        with open(LOG_FILE, 'w', encoding='utf-8') as f:
            f.write(f"=== Machine Health Exerciser v{VERSION} Session Log ===\n")
            f.write(f"Start Time: {_timestamp()}\n")
            f.write(f"System: {platform.system()} {platform.release()} ({platform.machine()})\n")
            f.write(f"CPU Cores: {multiprocessing.cpu_count()}\n")
            f.write("-------------------------------------------\n")
    except OSError as e:
        print(f"Warning: Could not create log file {LOG_FILE}: {e}")


def log(message):
    """Log message with timestamp"""
    log_msg = f"[{_timestamp()}] {message}"
    if ECHO:
        print(log_msg)
    try:
        _ensure_log_dir(LOG_FILE)
        with open(LOG_FILE, 'a', encoding='utf-8') as f:
            f.write(log_msg + "\n")
    except OSError as e:
        if ECHO:
            print(f"Warning: Could not write to log file {LOG_FILE}: {e}")

