"""
Lockout persistence for Pause.

Stores at most one lockout record as a small JSON file so a lockout
survives an app restart on the same day. The controller decides whether
a loaded record is still current; this module only reads and writes it.

A missing or unreadable file means "no active lockout". Read errors
are logged and never raised.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockoutRecord:
    """A lockout that started at a given moment with a given elapsed time."""
    lockout_started_at: datetime
    elapsed_at_lockout: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lockout_started_at": self.lockout_started_at.isoformat(),
            "elapsed_at_lockout": self.elapsed_at_lockout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LockoutRecord":
        """
        Build a record from its stored form.

        Raises:
            KeyError: If a field is missing.
            ValueError: If a field is malformed or negative.
            TypeError: If a field has the wrong type.
        """
        started_at = datetime.fromisoformat(data["lockout_started_at"])
        elapsed = data["elapsed_at_lockout"]
        # bool is an int subclass but never a valid elapsed value
        if isinstance(elapsed, bool) or not isinstance(elapsed, int):
            raise TypeError(f"elapsed_at_lockout must be an int, got {elapsed!r}")
        if elapsed < 0:
            raise ValueError("elapsed_at_lockout must be non-negative")
        return cls(lockout_started_at=started_at, elapsed_at_lockout=elapsed)


class LockoutStore:
    """
    JSON file store for the single lockout record.

    Writes go to a temp file that is then renamed over the target, and
    every operation holds the same lock, so load() never sees a
    half-written record.
    """

    def __init__(self, data_file: Optional[Path] = None) -> None:
        """
        Initialize the store.

        Args:
            data_file: Path of the JSON file (default: config.LOCKOUT_FILE).
        """
        self.data_file: Path = data_file or config.LOCKOUT_FILE
        self._lock = threading.Lock()

    def save(self, record: LockoutRecord) -> bool:
        """
        Persist the record, replacing any previous one.

        Uses atomic write (write to temp file, then rename) to prevent
        a torn record if the app crashes during save.

        Args:
            record: The lockout to persist.

        Returns:
            True if the record is on disk, False if the write failed.
        """
        with self._lock:
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)

                temp_fd, temp_path = tempfile.mkstemp(
                    suffix='.tmp',
                    prefix='lockout_',
                    dir=self.data_file.parent
                )

                try:
                    with os.fdopen(temp_fd, 'w') as f:
                        json.dump(record.to_dict(), f, indent=2)
                    os.replace(temp_path, self.data_file)
                except Exception:
                    # Clean up temp file on error
                    try:
                        os.unlink(temp_path)
                    except OSError:
                        pass
                    raise

                logger.debug(f"Saved lockout record: {record}")
                return True

            except (IOError, OSError, PermissionError) as e:
                logger.error(f"Failed to save lockout record: {e}")
                return False

    def load(self) -> Optional[LockoutRecord]:
        """
        Load the stored record.

        Returns:
            The record, or None if there is none or it cannot be read.
        """
        with self._lock:
            if not self.data_file.exists():
                return None
            try:
                with open(self.data_file, 'r') as f:
                    data = json.load(f)
                record = LockoutRecord.from_dict(data)
                logger.debug(f"Loaded lockout record: {record}")
                return record
            except (json.JSONDecodeError, IOError, OSError) as e:
                logger.warning(f"Failed to read lockout record: {e}")
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Malformed lockout record ignored: {e!r}")
            return None

    def clear(self) -> bool:
        """
        Remove the stored record. Clearing an empty store succeeds.

        Returns:
            True if no record remains, False if removal failed.
        """
        with self._lock:
            try:
                self.data_file.unlink()
                logger.debug("Cleared lockout record")
            except FileNotFoundError:
                pass
            except (IOError, OSError, PermissionError) as e:
                logger.error(f"Failed to clear lockout record: {e}")
                return False
            return True
