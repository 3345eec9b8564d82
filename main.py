#!/usr/bin/env python3
"""
Pause - Main Entry Point

Tracks how long you've been using your computer today, reminds you five
minutes before your limit, and locks you into a break once it's reached.
The break lasts until midnight unless you confirm an early return and
wait out a short countdown.

Usage:
    python main.py          # Launch menu bar app (default)
    python main.py --cli    # Launch CLI mode
"""

# =============================================================================
# PyInstaller bundled app path fix - MUST BE BEFORE ANY OTHER IMPORTS
# =============================================================================
import os
import sys

if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
    _bundle_dir = sys._MEIPASS
    os.chdir(_bundle_dir)
    if _bundle_dir not in sys.path:
        sys.path.insert(0, _bundle_dir)

import logging
import argparse
import threading

import config
from instance_lock import check_single_instance, get_existing_pid
from core.clock import ThreadedTicker
from core.controller import LockoutController, SessionSnapshot
from core.notifications import LoggingNotifier
from tracking.day_boundary import format_hms
from tracking.lockout_store import LockoutStore
from tracking.settings_store import SettingsStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)


def describe(snapshot: SessionSnapshot) -> str:
    """
    One-line status for the terminal.

    Args:
        snapshot: Current controller read model.

    Returns:
        Human-readable status line.
    """
    if snapshot.phase == config.PHASE_UNLOCK_PENDING:
        return f"Re-entering in {snapshot.countdown_remaining} seconds..."
    if snapshot.phase == config.PHASE_LOCKED:
        line = f"Break mode. Returns in {format_hms(snapshot.seconds_until_midnight)}"
        if snapshot.confirmation_requested:
            line += "  | Leave break early? This resets your timer. [y/n]"
        return line
    return f"Screen time: {snapshot.elapsed_seconds}s of {snapshot.limit_seconds}s"


class PauseCLI:
    """
    Terminal front end.

    A ThreadedTicker drives the controller; the main thread reads commands.
    """

    HELP = "Commands: u = leave break early, y/n = confirm/cancel, limit N = set limit, q = quit"

    def __init__(self) -> None:
        """Build the controller and its ticker."""
        self.controller = LockoutController(
            store=LockoutStore(),
            notifier=LoggingNotifier(),
            settings=SettingsStore(),
        )
        self.ticker = ThreadedTicker()
        self.controller.attach(self.ticker)
        self.ticker.add_cadence(config.CADENCE_DISPLAY, config.DISPLAY_REFRESH_SECONDS, self._refresh)
        self._last_line = ""
        self._print_lock = threading.Lock()

    def _refresh(self) -> None:
        """Print the status line when it changes."""
        line = describe(self.controller.get_snapshot())
        with self._print_lock:
            if line != self._last_line:
                print(line)
                self._last_line = line

    def handle_command(self, command: str) -> bool:
        """
        Apply one typed command.

        Args:
            command: Raw input line.

        Returns:
            False if the user asked to quit, True otherwise.
        """
        parts = command.strip().lower().split()
        if not parts:
            return True
        verb = parts[0]

        if verb in ("q", "quit", "exit"):
            return False
        if verb == "u":
            if not self.controller.request_early_unlock():
                print("Nothing to unlock.")
        elif verb == "y":
            self.controller.confirm_early_unlock()
        elif verb == "n":
            self.controller.cancel_early_unlock()
        elif verb == "limit" and len(parts) == 2:
            try:
                if not self.controller.set_limit(int(parts[1])):
                    print("The limit can't be changed during a break.")
            except ValueError:
                print("Limit must be a positive number of seconds.")
        else:
            print(self.HELP)
        self._refresh()
        return True

    def run(self) -> None:
        """Run until the user quits or stdin closes."""
        print("\n" + "=" * 60)
        print("Pause - screen time limiter")
        print("=" * 60)
        print(self.HELP + "\n")

        self.controller.start()
        self._refresh()
        self.ticker.start()
        try:
            while True:
                try:
                    command = input()
                except EOFError:
                    break
                if not self.handle_command(command):
                    break
        finally:
            self.ticker.stop()
            self.controller.notifier.cancel_all()


def main_cli():
    """Run the CLI version of the application."""
    PauseCLI().run()


def main_menubar():
    """Run the menu bar / system tray application."""
    from menubar import run_menubar_app
    run_menubar_app()


def main():
    """
    Main entry point: parses arguments and launches appropriate mode.

    Default mode is menu bar unless --cli is specified.
    """
    parser = argparse.ArgumentParser(
        description="Pause - screen time limiter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py          Launch menu bar app (default)
  python main.py --cli    Launch CLI mode
        """
    )
    parser.add_argument(
        "--cli",
        action="store_true",
        help="Run in CLI mode (terminal-based)",
    )

    args = parser.parse_args()

    # Single instance enforcement (one process per lockout record)
    if not check_single_instance():
        existing_pid = get_existing_pid()
        pid_info = f" (PID: {existing_pid})" if existing_pid else ""
        print(f"\nPause is already running{pid_info}.")
        print("Only one instance can run at a time.\n")
        sys.exit(1)

    try:
        if args.cli:
            main_cli()
        else:
            main_menubar()
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
