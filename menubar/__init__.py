"""
Menu bar / system tray package for Pause.

Provides a cross-platform launcher that picks the right UI:
- macOS: rumps-based native menu bar
- Windows: pystray-based system tray
"""

import sys
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Limit presets offered in the Settings submenu: (label, seconds)
LIMIT_PRESETS: List[Tuple[str, int]] = [
    ("10 minutes", 600),
    ("30 minutes", 1800),
    ("1 hour", 3600),
    ("2 hours", 7200),
    ("4 hours", 14400),
]


def run_menubar_app() -> None:
    """Launch the appropriate menu bar app for the current platform."""
    if sys.platform == "darwin":
        from menubar.macos_app import PauseMenuBar
        app = PauseMenuBar()
        app.run()
    elif sys.platform == "win32":
        from menubar.windows_app import PauseTray
        app = PauseTray()
        app.run()
    else:
        logger.error("The Pause menu bar is only supported on macOS and Windows. Use --cli.")
        sys.exit(1)
