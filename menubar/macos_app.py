"""
Pause macOS menu bar application using rumps.

Shows today's screen time in the menu bar, the time until the break
ends while locked, and the early-unlock controls. The controller is
driven from a rumps.Timer on the main run loop, so every state change
and menu update happens on the main thread.
"""

import logging
from typing import Optional

import rumps

import config
from core.clock import Ticker
from core.controller import LockoutController, SessionSnapshot
from core.notifications import DelayedNotifier
from menubar import LIMIT_PRESETS
from tracking.day_boundary import format_hms
from tracking.lockout_store import LockoutStore
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)

# Resolve icon path
_ICON_PATH = config.BASE_DIR / "assets" / "menu_icon.png"


def _get_icon_path() -> Optional[str]:
    """Get the menu bar icon path, or None to use text title."""
    if _ICON_PATH.exists():
        return str(_ICON_PATH)
    return None


class MacNotifier(DelayedNotifier):
    """Delivers notifications through Notification Center."""

    def request_permission(self) -> None:
        # macOS asks the user the first time a notification is posted
        logger.debug("Notification permission is requested on first delivery")

    def deliver(self, subtitle: str, message: str) -> None:
        rumps.notification(title="Pause", subtitle=subtitle, message=message)


class PauseMenuBar(rumps.App):
    """macOS menu bar application for Pause."""

    def __init__(self) -> None:
        """Initialise the menu bar app and the controller."""
        super().__init__(
            name="Pause",
            title=None if _get_icon_path() else "Pause",
            icon=_get_icon_path(),
            template=True,
            quit_button=None,
        )

        self.notifier = MacNotifier()
        self.controller = LockoutController(
            store=LockoutStore(),
            notifier=self.notifier,
            settings=SettingsStore(),
        )

        self.ticker = Ticker()
        self.controller.attach(self.ticker)
        self.ticker.add_cadence(config.CADENCE_DISPLAY, config.DISPLAY_REFRESH_SECONDS, self._refresh)
        self._run_loop_timer = rumps.Timer(self._on_timer, 1)

        # --- Menu items ---
        self.status_item = rumps.MenuItem("")
        self.status_item.set_callback(None)
        self.detail_item = rumps.MenuItem("")
        self.detail_item.set_callback(None)
        self.unlock_item = rumps.MenuItem("Leave Break Early…", callback=self._request_unlock)

        self.limit_menu = rumps.MenuItem("Time Limit")
        self.limit_items = {}
        for label, seconds in LIMIT_PRESETS:
            item = rumps.MenuItem(label, callback=self._set_limit_preset)
            self.limit_items[seconds] = item
            self.limit_menu.add(item)
        self.limit_menu.add(rumps.separator)
        self.limit_menu.add(rumps.MenuItem("Custom…", callback=self._set_limit_custom))

        self.quit_item = rumps.MenuItem("Quit Pause", callback=self._quit_app)

        self.menu = [
            self.status_item,
            self.detail_item,
            None,
            self.unlock_item,
            self.limit_menu,
            None,
            self.quit_item,
        ]

        self.controller.start()
        self._refresh()
        self._run_loop_timer.start()

    # ------------------------------------------------------------------
    # Timer (drives the controller once per second)
    # ------------------------------------------------------------------

    def _on_timer(self, timer) -> None:
        self.ticker.advance(1)

    def _refresh(self) -> None:
        """Update menu titles from the controller snapshot."""
        self._render(self.controller.get_snapshot())

    def _render(self, snapshot: SessionSnapshot) -> None:
        if snapshot.phase == config.PHASE_UNLOCKED:
            self.status_item.title = f"Screen time: {format_hms(snapshot.elapsed_seconds)}"
            self.detail_item.title = f"Limit: {format_hms(snapshot.limit_seconds)}"
            if not self.icon:
                self.title = format_hms(snapshot.elapsed_seconds)
        else:
            self.status_item.title = "Break mode"
            self.detail_item.title = f"Returns in: {format_hms(snapshot.seconds_until_midnight)}"
            if not self.icon:
                self.title = "Break"

        if snapshot.phase == config.PHASE_UNLOCK_PENDING:
            self.unlock_item.title = f"Returning in {snapshot.countdown_remaining}s"
            self.unlock_item.set_callback(None)
        elif snapshot.phase == config.PHASE_LOCKED:
            self.unlock_item.title = "Leave Break Early…"
            self.unlock_item.set_callback(self._request_unlock)
        else:
            self.unlock_item.title = "Leave Break Early…"
            self.unlock_item.set_callback(None)

        for seconds, item in self.limit_items.items():
            item.state = 1 if seconds == snapshot.limit_seconds else 0
            item.set_callback(None if snapshot.is_locked else self._set_limit_preset)

    # ------------------------------------------------------------------
    # Early unlock
    # ------------------------------------------------------------------

    def _request_unlock(self, sender) -> None:
        """Show the confirmation dialog and start the countdown on Yes."""
        if not self.controller.request_early_unlock():
            return
        response = rumps.alert(
            title="Leave Break Early?",
            message=(
                "Are you sure you want to leave break mode? This will reset your timer. "
                f"You'll need to wait {config.UNLOCK_COUNTDOWN_SECONDS} seconds."
            ),
            ok="Yes",
            cancel="Cancel",
        )
        if response == 1:
            self.controller.confirm_early_unlock()
        else:
            self.controller.cancel_early_unlock()
        self._refresh()

    # ------------------------------------------------------------------
    # Limit settings
    # ------------------------------------------------------------------

    def _set_limit_preset(self, sender) -> None:
        for seconds, item in self.limit_items.items():
            if item is sender:
                self.controller.set_limit(seconds)
                break
        self._refresh()

    def _set_limit_custom(self, sender) -> None:
        """Ask for a custom limit in minutes."""
        if self.controller.is_locked:
            rumps.alert(title="Pause", message="The limit can't be changed during a break.")
            return
        window = rumps.Window(
            message="Daily limit in minutes:",
            title="Time Limit",
            default_text=str(self.controller.get_snapshot().limit_seconds // 60),
            ok="Save",
            cancel="Cancel",
            dimensions=(160, 24),
        )
        response = window.run()
        if not response.clicked:
            return
        try:
            self.controller.set_limit(int(response.text.strip()) * 60)
        except ValueError:
            rumps.alert(title="Pause", message="Please enter a positive whole number of minutes.")
        self._refresh()

    # ------------------------------------------------------------------
    # Quit
    # ------------------------------------------------------------------

    def _quit_app(self, sender) -> None:
        """Clean up and quit."""
        self._run_loop_timer.stop()
        self.notifier.cancel_all()
        rumps.quit_application()
