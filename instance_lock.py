"""
Instance Lock - Keeps a single Pause process per user.

Two processes would race on the same lockout record, so startup takes an
OS-level file lock:
- Unix (macOS/Linux): fcntl.flock()
- Windows: msvcrt.locking()

The OS drops the lock when the process dies, even on a crash.
"""

import os
import sys
import atexit
import logging
from pathlib import Path
from typing import IO, Optional

import config

logger = logging.getLogger(__name__)

# Bytes locked on Windows (msvcrt needs a non-empty region)
_WIN_LOCK_BYTES = 32


def get_lock_file_path() -> Path:
    """Lock file location inside the user data directory."""
    return config.USER_DATA_DIR / ".pause_instance.lock"


def _is_process_running(pid: int) -> bool:
    """
    Check if a process with the given PID is alive.

    Args:
        pid: Process ID to check.

    Returns:
        True if the process is running (or we cannot tell), False otherwise.
    """
    if pid <= 0:
        return False
    if sys.platform == 'win32':
        import ctypes
        kernel32 = ctypes.windll.kernel32
        PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
        handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
        if handle:
            kernel32.CloseHandle(handle)
            return True
        return False
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else
        return True


def _read_pid(lock_file: Path) -> Optional[int]:
    try:
        content = lock_file.read_text().strip().strip('\0')
    except OSError:
        return None
    return int(content) if content.isdigit() else None


class InstanceLock:
    """
    Cross-platform single-instance lock.

    Usage:
        lock = InstanceLock()
        if not lock.acquire():
            print("Pause is already running")
            sys.exit(1)
    """

    def __init__(self, lock_file: Optional[Path] = None) -> None:
        self.lock_file = lock_file or get_lock_file_path()
        self._handle: Optional[IO] = None

    def is_acquired(self) -> bool:
        return self._handle is not None

    def _try_lock(self) -> bool:
        """Take the OS lock and write our PID. Returns False if held elsewhere."""
        handle = open(self.lock_file, 'a+b')
        try:
            if sys.platform == 'win32':
                import msvcrt
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, _WIN_LOCK_BYTES)
            else:
                import fcntl
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            return False

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()).encode('utf-8').ljust(_WIN_LOCK_BYTES, b'\0'))
        handle.flush()
        self._handle = handle
        return True

    def _remove_stale_lock(self) -> bool:
        """
        Delete the lock file if the PID inside it is dead.

        Returns:
            True if a stale lock was removed.
        """
        old_pid = _read_pid(self.lock_file)
        if old_pid is None or old_pid == os.getpid() or _is_process_running(old_pid):
            return False
        logger.info(f"Removing stale lock from dead process {old_pid}")
        try:
            self.lock_file.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove stale lock file: {e}")
            return False
        return True

    def acquire(self) -> bool:
        """
        Try to acquire the instance lock.

        Returns:
            True if no other instance is running, False otherwise.
        """
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            if self._try_lock():
                logger.debug(f"Instance lock acquired (PID: {os.getpid()})")
                return True
            if self._remove_stale_lock() and self._try_lock():
                logger.info("Instance lock acquired after cleaning stale lock")
                return True
            return False
        except OSError as e:
            # Fail closed: a second instance could corrupt the lockout record
            logger.error(f"Error acquiring instance lock: {e}")
            return False

    def release(self) -> None:
        """Release the lock and remove the lock file."""
        if self._handle is None:
            return
        try:
            if sys.platform == 'win32':
                import msvcrt
                self._handle.seek(0)
                msvcrt.locking(self._handle.fileno(), msvcrt.LK_UNLCK, _WIN_LOCK_BYTES)
        except OSError as e:
            logger.debug(f"Unlock failed: {e}")
        finally:
            self._handle.close()
            self._handle = None

        try:
            self.lock_file.unlink()
        except OSError:
            pass
        logger.debug("Instance lock released")

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


_instance_lock: Optional[InstanceLock] = None


def check_single_instance() -> bool:
    """
    Check if this is the only running instance of Pause.

    The lock is released automatically at exit.

    Returns:
        True if safe to proceed, False if another instance is running.
    """
    global _instance_lock
    if _instance_lock is not None:
        return _instance_lock.is_acquired()

    _instance_lock = InstanceLock()
    acquired = _instance_lock.acquire()
    if acquired:
        atexit.register(release_instance_lock)
    return acquired


def release_instance_lock() -> None:
    """Release the global instance lock (registered with atexit)."""
    global _instance_lock
    if _instance_lock is not None:
        _instance_lock.release()
        _instance_lock = None


def get_existing_pid() -> Optional[int]:
    """PID of the running instance, or None if unreadable."""
    return _read_pid(get_lock_file_path())
