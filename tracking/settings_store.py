"""
User settings persistence for Pause.

Keeps the usage limit chosen in the settings menu across restarts.
Falls back to config.DEFAULT_LIMIT_SECONDS when the file is missing,
unreadable, or holds an invalid limit.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import config

logger = logging.getLogger(__name__)


class SettingsStore:
    """Reads and writes settings.json."""

    def __init__(self, data_file: Optional[Path] = None, default_limit: Optional[int] = None) -> None:
        self.data_file: Path = data_file or config.SETTINGS_FILE
        self.default_limit: int = default_limit or config.DEFAULT_LIMIT_SECONDS

    def _load_data(self) -> Dict[str, Any]:
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning("Settings file is not a JSON object. Using defaults.")
            except (json.JSONDecodeError, IOError, OSError) as e:
                logger.warning(f"Failed to load settings: {e}. Using defaults.")
        return {}

    def load_limit(self) -> int:
        """
        Get the saved usage limit.

        Returns:
            Saved limit in seconds, or the default if none is valid.
        """
        limit = self._load_data().get("limit_seconds")
        if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
            return limit
        if limit is not None:
            logger.warning(f"Ignoring invalid saved limit: {limit!r}")
        return self.default_limit

    def save_limit(self, limit_seconds: int) -> bool:
        """
        Save the usage limit atomically.

        Args:
            limit_seconds: New limit in seconds.

        Returns:
            True if saved, False if the write failed.
        """
        data = self._load_data()
        data["limit_seconds"] = limit_seconds
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='settings_',
                dir=self.data_file.parent
            )
            try:
                with os.fdopen(temp_fd, 'w') as f:
                    json.dump(data, f, indent=2)
                os.replace(temp_path, self.data_file)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
            logger.debug(f"Saved limit: {limit_seconds}s")
            return True
        except (IOError, OSError, PermissionError) as e:
            logger.error(f"Failed to save settings: {e}")
            return False
