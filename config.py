"""Configuration settings for Pause."""

import os
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv


def is_bundled() -> bool:
    """
    Check if the application is running from a PyInstaller bundle.

    Returns:
        True if running from a bundled executable, False otherwise.
    """
    return getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')


def get_base_dir() -> Path:
    """
    Get the base directory for the application.

    For development: Returns the directory containing this file.
    For bundled apps: Returns _MEIPASS (for bundled resources).

    Returns:
        Path to the base directory.
    """
    if is_bundled():
        meipass = getattr(sys, '_MEIPASS', None)
        if meipass:
            return Path(meipass)
        return Path(__file__).parent
    else:
        return Path(__file__).parent


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (lockout record, settings).

    For development: Same as BASE_DIR/data
    For bundled apps: Uses a dedicated folder in the user's home directory
                      so the lockout survives app updates.

    Returns:
        Path to the user data directory.
    """
    if is_bundled():
        if sys.platform == 'darwin':
            # macOS: ~/Library/Application Support/Pause
            data_dir = Path.home() / "Library" / "Application Support" / "Pause"
        elif sys.platform == 'win32':
            # Windows: %APPDATA%/Pause
            appdata = os.environ.get('APPDATA')
            if appdata:
                data_dir = Path(appdata) / "Pause"
            else:
                data_dir = Path.home() / "AppData" / "Roaming" / "Pause"
        else:
            # Linux: ~/.local/share/Pause
            data_dir = Path.home() / ".local" / "share" / "Pause"

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fallback to home directory if creation fails
            data_dir = Path.home() / ".pause"
            data_dir.mkdir(parents=True, exist_ok=True)

        return data_dir
    else:
        # Development mode
        return Path(__file__).parent / "data"


# Load environment variables from .env file (only in development)
if not is_bundled():
    # Explicitly load from the project root (where config.py lives)
    _env_path = Path(__file__).parent / ".env"
    load_dotenv(_env_path)


def _get_positive_int(env_var: str, default: int) -> int:
    """
    Read a positive integer from the environment.

    Args:
        env_var: Environment variable name.
        default: Value used when the variable is unset or invalid.

    Returns:
        The parsed value, or default.
    """
    raw = os.getenv(env_var, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"{env_var}={raw!r} is not an integer, using {default}"
        )
        return default
    if value <= 0:
        logging.getLogger(__name__).warning(
            f"{env_var}={value} must be positive, using {default}"
        )
        return default
    return value


# Base directory (for bundled resources like assets)
BASE_DIR = get_base_dir()

# User data directory (for writable data like the lockout record)
USER_DATA_DIR = get_user_data_dir()

# Usage limit settings
DEFAULT_LIMIT_SECONDS = _get_positive_int("PAUSE_LIMIT_SECONDS", 600)  # 10 minutes
REMINDER_LEAD_SECONDS = 300  # Reminder fires 5 minutes before the limit
REMINDER_DELAY_SECONDS = 5  # Delay handed to the notifier for the reminder
UNLOCK_COUNTDOWN_SECONDS = 10  # Wait after confirming an early unlock

# Cadences (seconds between ticks)
USAGE_TICK_SECONDS = 1
COUNTDOWN_TICK_SECONDS = 1
DISPLAY_REFRESH_SECONDS = 1

# Cadence names used by the ticker
CADENCE_USAGE = "usage"
CADENCE_COUNTDOWN = "countdown"
CADENCE_DISPLAY = "display"

# Session phases
PHASE_UNLOCKED = "unlocked"
PHASE_LOCKED = "locked"
PHASE_UNLOCK_PENDING = "unlock_pending"

# Persistence (user data, persists across restarts)
LOCKOUT_FILE = USER_DATA_DIR / "lockout.json"
SETTINGS_FILE = USER_DATA_DIR / "settings.json"

# Notification texts: (subtitle, message)
REMINDER_NOTIFICATION = ("5 minutes left", "Your break starts in 5 minutes. Start wrapping up!")
LOCKOUT_NOTIFICATION = ("Break time", "You've reached today's limit. Time to take a break.")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
