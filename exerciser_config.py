#!/usr/bin/env python3
"""
Configuration for the machine health exerciser.

Every value can be overridden on the command line; defaults come from the
host CPU count and the constants below.

Usage:
    python3 health_exerciser.py
    python3 health_exerciser.py --duration 60 --app-wait 10
    python3 health_exerciser.py --cpu-threads 4 --log-file /tmp/health.log
"""

import argparse
import os
import multiprocessing
import tempfile
from dataclasses import dataclass, field

# Defaults
TEST_DURATION_SECONDS = 15
APP_WAIT_SECONDS = 30
DISK_FILE_COUNT = 1000
DISK_FILE_SIZE = 100 * 1024        # 100 KiB per file
NETWORK_TEST_URL = "https://proof.ovh.net/files/100Mb.dat"

TEMP_DIR = tempfile.gettempdir()
LOG_FILE = os.environ.get("LOG_FILE", os.path.join(TEMP_DIR, "machine_health.log"))
DISK_SOURCE_DIR = os.path.join(TEMP_DIR, "DiskTestSource")
DISK_DEST_DIR = os.path.join(TEMP_DIR, "DiskTestDest")
NETWORK_DEST_PATH = os.path.join(TEMP_DIR, "network_test.bin")


def default_cpu_threads():
    return multiprocessing.cpu_count()


@dataclass(frozen=True)
class ExerciserConfig:
    cpu_thread_count: int = field(default_factory=default_cpu_threads)
    test_duration_seconds: int = TEST_DURATION_SECONDS
    app_wait_seconds: int = APP_WAIT_SECONDS
    log_file_path: str = LOG_FILE
    disk_source_dir: str = DISK_SOURCE_DIR
    disk_dest_dir: str = DISK_DEST_DIR
    network_url: str = NETWORK_TEST_URL
    network_dest_path: str = NETWORK_DEST_PATH
    disk_file_count: int = DISK_FILE_COUNT
    disk_file_size: int = DISK_FILE_SIZE

    def __post_init__(self):
        if self.cpu_thread_count <= 0:
            raise ValueError(f"cpu_thread_count must be > 0, got {self.cpu_thread_count}")
        if self.test_duration_seconds <= 0:
            raise ValueError(f"test_duration_seconds must be > 0, got {self.test_duration_seconds}")
        if self.app_wait_seconds < 0:
            raise ValueError(f"app_wait_seconds must be >= 0, got {self.app_wait_seconds}")
        if self.disk_file_count <= 0 or self.disk_file_size <= 0:
            raise ValueError("disk file count and size must be > 0")

    def describe(self):
        """(label, value) pairs shown in the menu and the dashboard"""
        return [
            ("CPU threads", self.cpu_thread_count),
            ("Test duration", f"{self.test_duration_seconds}s"),
            ("App wait", f"{self.app_wait_seconds}s"),
            ("Log file", self.log_file_path),
            ("Disk source", self.disk_source_dir),
            ("Disk destination", self.disk_dest_dir),
            ("Network URL", self.network_url),
            ("Network destination", self.network_dest_path),
        ]


def _positive_int(value):
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _non_negative_int(value):
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be zero or more, got {value}")
    return number


def build_parser():
    parser = argparse.ArgumentParser(
        description='Machine health exerciser: app cycling and CPU/memory/disk/network stress',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Defaults (all logical CPUs, 15s per stress stage, 30s app dwell)
  python3 health_exerciser.py

  # Short smoke run
  python3 health_exerciser.py --duration 5 --app-wait 2

  # Terminal dashboard
  python3 exerciser_dashboard.py --duration 30
        """
    )

    parser.add_argument('--cpu-threads', type=_positive_int, default=default_cpu_threads(),
                        help='CPU stress worker count (default: logical CPU count)')
    parser.add_argument('--duration', type=_positive_int, default=TEST_DURATION_SECONDS,
                        help=f'Seconds per stress stage (default: {TEST_DURATION_SECONDS})')
    parser.add_argument('--app-wait', type=_non_negative_int, default=APP_WAIT_SECONDS,
                        help=f'Seconds to wait after launching/closing an app (default: {APP_WAIT_SECONDS})')
    parser.add_argument('--log-file', default=LOG_FILE,
                        help='Narration log path (default: $LOG_FILE or temp dir)')
    parser.add_argument('--disk-source', default=DISK_SOURCE_DIR,
                        help='Disk stress source directory')
    parser.add_argument('--disk-dest', default=DISK_DEST_DIR,
                        help='Disk stress destination directory')
    parser.add_argument('--disk-files', type=_positive_int, default=DISK_FILE_COUNT,
                        help=f'Files written per disk cycle (default: {DISK_FILE_COUNT})')
    parser.add_argument('--disk-file-size', type=_positive_int, default=DISK_FILE_SIZE,
                        help=f'Bytes per disk stress file (default: {DISK_FILE_SIZE})')
    parser.add_argument('--network-url', default=NETWORK_TEST_URL,
                        help='URL downloaded repeatedly by the network stress')
    parser.add_argument('--network-dest', default=NETWORK_DEST_PATH,
                        help='Where the network stress writes the download')
    return parser


def parse_args(argv=None) -> ExerciserConfig:
    args = build_parser().parse_args(argv)
    return ExerciserConfig(
        cpu_thread_count=args.cpu_threads,
        test_duration_seconds=args.duration,
        app_wait_seconds=args.app_wait,
        log_file_path=args.log_file,
        disk_source_dir=args.disk_source,
        disk_dest_dir=args.disk_dest,
        network_url=args.network_url,
        network_dest_path=args.network_dest,
        disk_file_count=args.disk_files,
        disk_file_size=args.disk_file_size,
    )
