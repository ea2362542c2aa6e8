#!/usr/bin/env python3
"""
Load generators: CPU, memory, disk and network saturation loops.

Each *_load function runs forever inside its own process and is stopped from
outside by the timed supervisor. None of them looks at a stop flag; any I/O
error is allowed to propagate and end the process.
"""

import os
import math
import time
import random
import shutil
import signal
import multiprocessing

import numpy as np
import requests

MEMORY_BLOCK_ELEMENTS = 1_000_000
MEMORY_INTERVAL = 0.1
DOWNLOAD_CHUNK_SIZE = 1024 * 256


def _prepare_worker(title):
    # Ctrl+C reaches the whole process group; the supervisor stops workers
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    # Forked workers inherit the console SIGTERM handler
    signal.signal(signal.SIGTERM, signal.SIG_DFL)

    # Set process name for easier identification
    try:
        import setproctitle
        setproctitle.setproctitle(title)
    except ImportError:
        pass


# ---------------------------------------------------------------------------
# CPU
# ---------------------------------------------------------------------------

def cpu_burst(operations):
    """Square roots of `operations` random values"""
    total = 0.0
    for _ in range(operations):
        total += math.sqrt(random.random())
    return total


def cpu_spinner(worker_id, operations):
    """One CPU-bound worker, no sleep"""
    _prepare_worker(f"health_exerciser_cpu_{worker_id}")
    while True:
        cpu_burst(operations)


def cpu_load(thread_count):
    """Saturate `thread_count` cores, one spinner process per thread"""
    _prepare_worker("health_exerciser_cpu")
    workers = []
    for i in range(thread_count):
        p = multiprocessing.Process(target=cpu_spinner, args=(i, thread_count))
        p.daemon = True
        p.start()
        workers.append(p)

    for p in workers:
        p.join()


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

def allocate_block(elements=MEMORY_BLOCK_ELEMENTS):
    # random fill touches every page so the block is actually resident
    return np.random.random(elements)


def memory_load(block_elements=MEMORY_BLOCK_ELEMENTS, interval=MEMORY_INTERVAL):
    """Allocate and keep a block every `interval` seconds; never frees"""
    _prepare_worker("health_exerciser_memory")
    hoard = []
    while True:
        hoard.append(allocate_block(block_elements))
        time.sleep(interval)


# ---------------------------------------------------------------------------
# Disk
# ---------------------------------------------------------------------------

def disk_cycle(source_dir, dest_dir, file_count, file_size):
    """Write, copy, then delete `file_count` files; both dirs end up empty"""
    os.makedirs(source_dir, exist_ok=True)
    os.makedirs(dest_dir, exist_ok=True)

    payload = os.urandom(file_size)
    for i in range(file_count):
        with open(os.path.join(source_dir, f"test_{i}.dat"), 'wb') as f:
            f.write(payload)

    for name in os.listdir(source_dir):
        shutil.copy2(os.path.join(source_dir, name), os.path.join(dest_dir, name))

    for directory in (source_dir, dest_dir):
        for name in os.listdir(directory):
            os.remove(os.path.join(directory, name))


def disk_load(source_dir, dest_dir, file_count, file_size):
    _prepare_worker("health_exerciser_disk")
    while True:
        disk_cycle(source_dir, dest_dir, file_count, file_size)


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

def fetch_once(url, dest_path):
    """Download `url` to `dest_path`, overwriting. No timeout."""
    dest_dir = os.path.dirname(dest_path)
    if dest_dir:
        os.makedirs(dest_dir, exist_ok=True)

    with requests.get(url, stream=True) as r:
        r.raise_for_status()
        with open(dest_path, 'wb') as f:
            for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)


def network_load(url, dest_path):
    _prepare_worker("health_exerciser_network")
    while True:
        fetch_once(url, dest_path)


# ---------------------------------------------------------------------------
# Cleanup helper
# ---------------------------------------------------------------------------

def remove_test_path(path):
    """Delete a test directory or file; missing paths are a no-op"""
    if os.path.isdir(path):
        shutil.rmtree(path, ignore_errors=True)
    elif os.path.exists(path):
        os.remove(path)
