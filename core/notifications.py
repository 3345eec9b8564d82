"""
Notification port for Pause.

The controller emits three fire-and-forget intents: request permission,
schedule the five-minute reminder, and schedule the lockout alert. Front
ends implement delivery by subclassing DelayedNotifier and overriding
deliver(); LoggingNotifier is used by the CLI and in tests.
"""

import logging
import threading
from typing import List, Protocol

import config

logger = logging.getLogger(__name__)


class NotificationPort(Protocol):
    """Receives notification intents from the controller."""

    def request_permission(self) -> None:
        ...

    def schedule_reminder(self, after_seconds: int) -> None:
        ...

    def schedule_lockout_alert(self) -> None:
        ...


class DelayedNotifier:
    """
    Base notifier that turns intents into deliver() calls.

    Delayed deliveries run on daemon threading.Timer threads. cancel_all()
    drops any that have not fired yet (used on quit).
    """

    def __init__(self) -> None:
        self._timers: List[threading.Timer] = []
        self._timers_lock = threading.Lock()

    def deliver(self, subtitle: str, message: str) -> None:
        """Show a notification now. Subclasses override this."""
        raise NotImplementedError

    def request_permission(self) -> None:
        logger.debug("Notification permission requested")

    def schedule_reminder(self, after_seconds: int) -> None:
        subtitle, message = config.REMINDER_NOTIFICATION
        self._schedule(after_seconds, subtitle, message)

    def schedule_lockout_alert(self) -> None:
        subtitle, message = config.LOCKOUT_NOTIFICATION
        self._safe_deliver(subtitle, message)

    def cancel_all(self) -> None:
        """Cancel pending delayed notifications."""
        with self._timers_lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()

    def _schedule(self, delay: float, subtitle: str, message: str) -> None:
        if delay <= 0:
            self._safe_deliver(subtitle, message)
            return
        timer = threading.Timer(delay, self._safe_deliver, args=(subtitle, message))
        timer.daemon = True
        with self._timers_lock:
            # Forget timers that already fired
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        logger.debug(f"Scheduled '{subtitle}' in {delay}s")

    def _safe_deliver(self, subtitle: str, message: str) -> None:
        try:
            self.deliver(subtitle, message)
        except Exception as e:
            logger.warning(f"Could not deliver notification '{subtitle}': {e}")


class LoggingNotifier(DelayedNotifier):
    """Delivers notifications to the log (CLI and headless use)."""

    def deliver(self, subtitle: str, message: str) -> None:
        logger.info(f"[Pause] {subtitle}: {message}")
