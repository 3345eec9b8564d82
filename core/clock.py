"""
Clock and ticker abstractions for Pause.

The controller never calls datetime.now() or sleeps on its own. It asks a
Clock for the current time and is driven by a Ticker, which fires named
cadences ("usage", "countdown", "display"). Tests use FakeClock and
Ticker.advance() so nothing depends on real wall-clock sleeping.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of the current local time."""

    def now(self) -> datetime:
        """Return the current local time (naive)."""
        ...


class SystemClock:
    """Production clock backed by datetime.now()."""

    def now(self) -> datetime:
        return datetime.now()


class FakeClock:
    """Manually advanced clock for tests."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 15, 12, 0, 0)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move the clock forward by the given number of seconds."""
        self._now += timedelta(seconds=seconds)

    def set(self, moment: datetime) -> None:
        """Jump the clock to an absolute time."""
        self._now = moment


@dataclass
class _Cadence:
    """A named periodic signal registered on a Ticker."""
    name: str
    interval: int
    callback: Callable[[], None]
    next_due: int


class Ticker:
    """
    One timer with several named cadences.

    Time is counted in whole seconds since the ticker was created.
    advance(n) steps one second at a time and fires every cadence that
    falls due on that second, in registration order. Cadences are
    independent: no caller may rely on that order.
    """

    def __init__(self) -> None:
        self._cadences: Dict[str, _Cadence] = {}
        self._elapsed: int = 0

    def add_cadence(self, name: str, interval: int, callback: Callable[[], None]) -> None:
        """
        Register a periodic callback.

        Args:
            name: Unique cadence name (e.g. config.CADENCE_USAGE).
            interval: Whole seconds between firings. Must be positive.
            callback: Called with no arguments each time the cadence fires.

        Raises:
            ValueError: If interval is not positive or name is taken.
        """
        if interval <= 0:
            raise ValueError("Cadence interval must be positive")
        if name in self._cadences:
            raise ValueError(f"Cadence already registered: {name}")
        self._cadences[name] = _Cadence(name, interval, callback, self._elapsed + interval)
        logger.debug(f"Registered cadence '{name}' every {interval}s")

    @property
    def cadence_names(self) -> List[str]:
        return list(self._cadences)

    def advance(self, seconds: int = 1) -> None:
        """
        Advance the ticker by whole seconds, firing due cadences.

        Args:
            seconds: Number of seconds to step through.
        """
        for _ in range(seconds):
            self._elapsed += 1
            for cadence in list(self._cadences.values()):
                if cadence.next_due <= self._elapsed:
                    cadence.next_due = self._elapsed + cadence.interval
                    try:
                        cadence.callback()
                    except Exception as e:
                        # One failing cadence must not stop the others
                        logger.error(f"Cadence '{cadence.name}' failed: {e}", exc_info=True)


class ThreadedTicker(Ticker):
    """
    Ticker driven by a background thread, one step per real second.

    All cadences fire on the same thread, so the work they do is
    serialized.
    """

    def __init__(self) -> None:
        super().__init__()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread. Calling start twice is a no-op."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="pause-ticker", daemon=True)
        self._thread.start()
        logger.debug("Ticker thread started")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the background thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.debug("Ticker thread stopped")

    def _run(self) -> None:
        # Event.wait returns True once stop() is called
        while not self._stop_event.wait(1.0):
            self.advance(1)
