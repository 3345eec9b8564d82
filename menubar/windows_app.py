"""
Pause Windows system tray application using pystray.

The tray menu shows today's screen time, the time until the break ends
while locked, and the early-unlock controls. A tray has no modal dialog,
so the confirmation step is shown as a pair of menu items.
"""

import logging
from typing import Optional

import pystray
from PIL import Image

import config
from core.clock import ThreadedTicker
from core.controller import LockoutController
from core.notifications import DelayedNotifier
from menubar import LIMIT_PRESETS
from tracking.day_boundary import format_hms
from tracking.lockout_store import LockoutStore
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)

# Resolve icon path
_ASSETS_DIR = config.BASE_DIR / "assets"
_ICON_PATH = _ASSETS_DIR / "tray_icon.ico"


def _load_icon_image() -> Image.Image:
    """Load the tray icon image."""
    if _ICON_PATH.exists():
        return Image.open(str(_ICON_PATH))
    # Simple fallback icon (16x16 purple square)
    return Image.new("RGBA", (16, 16), (128, 90, 213, 255))


class TrayNotifier(DelayedNotifier):
    """Delivers notifications as tray balloons."""

    def __init__(self) -> None:
        super().__init__()
        self.icon: Optional[pystray.Icon] = None

    def deliver(self, subtitle: str, message: str) -> None:
        if self.icon is None:
            logger.debug(f"Tray not ready, dropping notification: {subtitle}")
            return
        self.icon.notify(message, f"Pause: {subtitle}")


class PauseTray:
    """Windows system tray application for Pause."""

    def __init__(self) -> None:
        """Initialise the tray app and the controller."""
        self.notifier = TrayNotifier()
        self.controller = LockoutController(
            store=LockoutStore(),
            notifier=self.notifier,
            settings=SettingsStore(),
        )
        self.controller.on_state_change = lambda snapshot: self._refresh()

        self.ticker = ThreadedTicker()
        self.controller.attach(self.ticker)
        self.ticker.add_cadence(config.CADENCE_DISPLAY, config.DISPLAY_REFRESH_SECONDS, self._refresh)

        self.icon = pystray.Icon(
            name="Pause",
            icon=_load_icon_image(),
            title="Pause",
            menu=self._build_menu(),
        )
        self.notifier.icon = self.icon

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def _status_text(self) -> str:
        snapshot = self.controller.get_snapshot()
        if snapshot.phase == config.PHASE_UNLOCK_PENDING:
            return f"Returning in {snapshot.countdown_remaining}s"
        if snapshot.phase == config.PHASE_LOCKED:
            return f"Break mode, returns in {format_hms(snapshot.seconds_until_midnight)}"
        return (
            f"Screen time: {format_hms(snapshot.elapsed_seconds)} / "
            f"{format_hms(snapshot.limit_seconds)}"
        )

    def _confirming(self) -> bool:
        return self.controller.get_snapshot().confirmation_requested

    def _limit_item(self, label: str, seconds: int) -> pystray.MenuItem:
        return pystray.MenuItem(
            label,
            lambda icon, item: self._set_limit(seconds),
            checked=lambda item: self.controller.get_snapshot().limit_seconds == seconds,
            enabled=lambda item: not self.controller.is_locked,
            radio=True,
        )

    def _build_menu(self) -> pystray.Menu:
        return pystray.Menu(
            pystray.MenuItem(lambda item: self._status_text(), None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(
                "Leave Break Early…",
                self._request_unlock,
                visible=lambda item: (
                    self.controller.phase == config.PHASE_LOCKED and not self._confirming()
                ),
            ),
            pystray.MenuItem(
                "Yes, leave break (resets timer)",
                self._confirm_unlock,
                visible=lambda item: self._confirming(),
            ),
            pystray.MenuItem(
                "Stay on break",
                self._cancel_unlock,
                visible=lambda item: self._confirming(),
            ),
            pystray.MenuItem(
                "Time Limit",
                pystray.Menu(*[self._limit_item(label, seconds) for label, seconds in LIMIT_PRESETS]),
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit Pause", self._quit_app),
        )

    def _refresh(self) -> None:
        """Update tooltip and menu titles."""
        self.icon.title = self._status_text()
        self.icon.update_menu()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _request_unlock(self, icon, item) -> None:
        if self.controller.request_early_unlock():
            self.icon.notify(
                "Leaving break mode resets your timer. "
                f"You'll wait {config.UNLOCK_COUNTDOWN_SECONDS} seconds before returning.",
                "Pause",
            )

    def _confirm_unlock(self, icon, item) -> None:
        self.controller.confirm_early_unlock()

    def _cancel_unlock(self, icon, item) -> None:
        self.controller.cancel_early_unlock()

    def _set_limit(self, seconds: int) -> None:
        if not self.controller.set_limit(seconds):
            self.icon.notify("The limit can't be changed during a break.", "Pause")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _quit_app(self, icon, item) -> None:
        """Clean up and quit."""
        self.ticker.stop()
        self.notifier.cancel_all()
        self.icon.stop()

    def _on_ready(self, icon: pystray.Icon) -> None:
        icon.visible = True
        self.controller.start()
        self.ticker.start()

    def run(self) -> None:
        """Run the tray icon (blocks until quit)."""
        logger.info("Starting Pause tray app")
        self.icon.run(setup=self._on_ready)
