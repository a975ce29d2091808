from __future__ import annotations

import os

import psutil


def _holds_open(proc: psutil.Process, target: str) -> bool:
    # psutil.open_files() only lists regular files; character devices such as
    # /dev/videoN show up only in the fd table.
    fd_dir = f"/proc/{proc.pid}/fd"
    try:
        entries = os.listdir(fd_dir)
    except OSError:
        return False
    for fd in entries:
        try:
            if os.readlink(os.path.join(fd_dir, fd)) == target:
                return True
        except OSError:
            continue
    return False


def count_readers(path: str) -> int:
    """Number of processes that currently have ``path`` open, our encoder included."""
    target = os.path.realpath(path)
    n = 0
    for proc in psutil.process_iter(["pid"]):
        if _holds_open(proc, target):
            n += 1
    return n
