"""Project lock file so two processes do not edit one schedule at once."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from tui_gantt.config import CONFIG_DIR

logger = logging.getLogger(__name__)

LOCK_FILE = ".lock"
MAX_LOCK_AGE = 3600  # 1 hour


def _lock_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / LOCK_FILE


def _read_lock(lock_file: Path) -> tuple[int, float] | None:
    """Return (pid, timestamp) from a lock file, or None if it is malformed."""
    try:
        pid_text, ts_text = lock_file.read_text(encoding="utf-8").strip().split("|")
        return int(pid_text), float(ts_text)
    except (ValueError, OSError):
        return None


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def _is_live(pid: int, timestamp: float) -> bool:
    return _pid_alive(pid) and time.time() - timestamp <= MAX_LOCK_AGE


def acquire_lock(project_dir: Path) -> bool:
    """Try to acquire the project lock. Returns True if successful.

    Locks left by dead processes, older than MAX_LOCK_AGE or unreadable
    are replaced.
    """
    lock_file = _lock_path(project_dir)
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    if lock_file.exists():
        holder = _read_lock(lock_file)
        if holder is not None and holder[0] != os.getpid() and _is_live(*holder):
            logger.info("project %s is locked by pid %d", project_dir, holder[0])
            return False
        logger.debug("replacing stale lock %s", lock_file)
        lock_file.unlink(missing_ok=True)

    lock_file.write_text(f"{os.getpid()}|{time.time()}", encoding="utf-8")
    return True


def release_lock(project_dir: Path) -> None:
    """Release the lock if this process holds it."""
    lock_file = _lock_path(project_dir)
    holder = _read_lock(lock_file) if lock_file.exists() else None
    if holder is not None and holder[0] == os.getpid():
        try:
            lock_file.unlink()
        except OSError:
            logger.warning("could not remove lock %s", lock_file)


def is_locked(project_dir: Path) -> bool:
    """Check if the project is locked by another live process."""
    lock_file = _lock_path(project_dir)
    if not lock_file.exists():
        return False
    holder = _read_lock(lock_file)
    if holder is None or holder[0] == os.getpid():
        return False
    return _is_live(*holder)
