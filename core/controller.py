"""
LockoutController: the usage-limit state machine for Pause.

Ties the accumulator, threshold evaluation, lockout store and notifier
together. Has ZERO UI dependencies: front ends send commands, read
get_snapshot(), and receive updates via the on_state_change callback.

Phases:
    unlocked        elapsed time accumulates on every usage tick
    locked          limit reached; accumulation frozen, record persisted
    unlock_pending  early unlock confirmed; counting down to a reset

Callbacks:
    on_state_change(snapshot: SessionSnapshot)
        Called on the thread that made the change, after the controller
        lock is released.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import config
from core.clock import Clock, SystemClock, Ticker
from core.notifications import NotificationPort
from core.thresholds import classify
from tracking.accumulator import SessionState, TimeAccumulator
from tracking.day_boundary import is_same_day, seconds_until_midnight
from tracking.lockout_store import LockoutRecord, LockoutStore
from tracking.settings_store import SettingsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read model handed to the presentation layer."""
    elapsed_seconds: int
    limit_seconds: int
    phase: str
    countdown_remaining: int
    seconds_until_midnight: int
    confirmation_requested: bool

    @property
    def is_locked(self) -> bool:
        return self.phase != config.PHASE_UNLOCKED


class LockoutController:
    """
    Usage-limit state machine.

    Handles:
    - Restoring today's lockout on startup (stale records are discarded)
    - Accumulating elapsed time and firing the reminder / lockout edges
    - The confirm-then-countdown early unlock
    - Limit changes from the settings menu

    The controller does NOT run its own timer. attach() registers its
    cadences on a Ticker owned by the front end.
    """

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def __init__(
        self,
        store: LockoutStore,
        notifier: NotificationPort,
        clock: Optional[Clock] = None,
        settings: Optional[SettingsStore] = None,
        limit_seconds: Optional[int] = None,
    ) -> None:
        """
        Initialise the controller and restore any lockout from today.

        Args:
            store: Persistence for the lockout record.
            notifier: Receives notification intents.
            clock: Time source (default: SystemClock).
            settings: Optional settings store; supplies and saves the limit.
            limit_seconds: Explicit limit, overriding settings and config.
        """
        self.store = store
        self.notifier = notifier
        self.clock: Clock = clock or SystemClock()
        self.settings = settings

        if limit_seconds is None:
            limit_seconds = settings.load_limit() if settings else config.DEFAULT_LIMIT_SECONDS

        self.state = SessionState(limit_seconds=limit_seconds)
        self.accumulator = TimeAccumulator(self.state, self._on_elapsed_advanced)
        self._lock = threading.RLock()
        self._permission_requested: bool = False
        self._state_changed: bool = False

        # ---- Callbacks (set by the menu bar / CLI) ----
        self.on_state_change: Optional[Callable[[SessionSnapshot], None]] = None

        self._restore()

    def _restore(self) -> None:
        """Load today's lockout, or start unlocked and drop a stale record."""
        record = self.store.load()
        now = self.clock.now()

        if record is not None and is_same_day(record.lockout_started_at, now):
            self.state.phase = config.PHASE_LOCKED
            self.state.elapsed_seconds = record.elapsed_at_lockout
            logger.info(
                f"Restored lockout from {record.lockout_started_at.isoformat()} "
                f"({record.elapsed_at_lockout}s used)"
            )
            return

        if record is not None:
            logger.info(
                f"Discarding lockout from {record.lockout_started_at.date().isoformat()} "
                f"(today is {now.date().isoformat()})"
            )
        self.state.phase = config.PHASE_UNLOCKED
        self.state.elapsed_seconds = 0
        # Also removes a malformed file that load() reported as absent
        self.store.clear()

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Request notification permission. Only the first call asks."""
        if self._permission_requested:
            return
        self._permission_requested = True
        self._emit_intent("request_permission")

    def attach(self, ticker: Ticker) -> None:
        """
        Register the usage and countdown cadences on a ticker.

        Args:
            ticker: The front end's ticker.
        """
        ticker.add_cadence(config.CADENCE_USAGE, config.USAGE_TICK_SECONDS, self.usage_tick)
        ticker.add_cadence(config.CADENCE_COUNTDOWN, config.COUNTDOWN_TICK_SECONDS, self.countdown_tick)

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def phase(self) -> str:
        return self.state.phase

    @property
    def is_locked(self) -> bool:
        return self.state.phase != config.PHASE_UNLOCKED

    def get_snapshot(self) -> SessionSnapshot:
        """
        Get the current read model.

        Returns:
            SessionSnapshot; seconds_until_midnight is computed from the clock.
        """
        with self._lock:
            return SessionSnapshot(
                elapsed_seconds=self.state.elapsed_seconds,
                limit_seconds=self.state.limit_seconds,
                phase=self.state.phase,
                countdown_remaining=self.state.countdown_remaining,
                seconds_until_midnight=seconds_until_midnight(self.clock.now()),
                confirmation_requested=self.state.confirmation_requested,
            )

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def usage_tick(self) -> bool:
        """
        Advance elapsed time by one second (usage cadence).

        Returns:
            True if elapsed time advanced, False while locked.
        """
        with self._lock:
            advanced = self.accumulator.tick()
        self._publish_state_change()
        return advanced

    def countdown_tick(self) -> bool:
        """
        Step the early-unlock countdown (countdown cadence).

        Returns:
            True if a countdown was running, False otherwise.
        """
        with self._lock:
            if self.state.phase != config.PHASE_UNLOCK_PENDING:
                return False

            self.state.countdown_remaining -= 1
            if self.state.countdown_remaining <= 0:
                self._force_unlock()
            else:
                logger.debug(f"Unlock in {self.state.countdown_remaining}s")
            self._state_changed = True
        self._publish_state_change()
        return True

    def _on_elapsed_advanced(self, elapsed: int) -> None:
        """Classify the new elapsed value and react to its edges."""
        result = classify(elapsed, self.state.limit_seconds)
        if result.near_limit:
            logger.info(f"{config.REMINDER_LEAD_SECONDS}s left before lockout")
            self._emit_intent("schedule_reminder", after_seconds=config.REMINDER_DELAY_SECONDS)
        if result.exceeded:
            self._enter_lockout()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _enter_lockout(self) -> None:
        """Unlocked -> Locked: persist the record, then alert."""
        record = LockoutRecord(
            lockout_started_at=self.clock.now(),
            elapsed_at_lockout=self.state.elapsed_seconds,
        )
        if not self.store.save(record):
            logger.error("Lockout could not be persisted; it will not survive a restart")

        self.state.phase = config.PHASE_LOCKED
        self.state.confirmation_requested = False
        logger.info(f"Limit reached after {record.elapsed_at_lockout}s. Locked.")
        self._emit_intent("schedule_lockout_alert")
        self._state_changed = True

    def _force_unlock(self) -> None:
        """UnlockPending(0) -> Unlocked: clear the record and reset elapsed time."""
        if not self.store.clear():
            logger.error("Lockout record could not be cleared")

        self.state.phase = config.PHASE_UNLOCKED
        self.state.elapsed_seconds = 0
        self.state.countdown_remaining = 0
        self.state.confirmation_requested = False
        logger.info("Early unlock complete. Timer reset.")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_early_unlock(self) -> bool:
        """
        Ask for an early unlock; the user must confirm before the countdown.

        Returns:
            True if the confirmation step is now showing.
        """
        with self._lock:
            if self.state.phase != config.PHASE_LOCKED:
                logger.debug(f"Early unlock request ignored in phase {self.state.phase}")
                return False
            if not self.state.confirmation_requested:
                self.state.confirmation_requested = True
                self._state_changed = True
        self._publish_state_change()
        return True

    def confirm_early_unlock(self) -> bool:
        """
        Confirm the early unlock and start the countdown.

        Once started the countdown cannot be cancelled.

        Returns:
            True if the countdown started.
        """
        with self._lock:
            if self.state.phase != config.PHASE_LOCKED or not self.state.confirmation_requested:
                logger.debug("Confirm ignored: no pending confirmation")
                return False
            self.state.confirmation_requested = False
            self.state.phase = config.PHASE_UNLOCK_PENDING
            self.state.countdown_remaining = config.UNLOCK_COUNTDOWN_SECONDS
            logger.info(f"Early unlock confirmed. Unlocking in {config.UNLOCK_COUNTDOWN_SECONDS}s")
            self._state_changed = True
        self._publish_state_change()
        return True

    def cancel_early_unlock(self) -> bool:
        """
        Dismiss the confirmation step and stay locked.

        Returns:
            True if a pending confirmation was dismissed.
        """
        with self._lock:
            if self.state.phase != config.PHASE_LOCKED or not self.state.confirmation_requested:
                logger.debug("Cancel ignored: no pending confirmation")
                return False
            self.state.confirmation_requested = False
            self._state_changed = True
        self._publish_state_change()
        return True

    def set_limit(self, limit_seconds: int) -> bool:
        """
        Change the usage limit.

        The limit cannot be changed while locked or counting down.

        Args:
            limit_seconds: New limit in seconds. Must be a positive integer.

        Returns:
            True if applied, False if refused because of the current phase.

        Raises:
            ValueError: If limit_seconds is not a positive integer.
        """
        if isinstance(limit_seconds, bool) or not isinstance(limit_seconds, int) or limit_seconds <= 0:
            raise ValueError(f"Limit must be a positive integer, got {limit_seconds!r}")

        with self._lock:
            if self.state.phase != config.PHASE_UNLOCKED:
                logger.info("Limit change refused while locked")
                return False
            self.state.limit_seconds = limit_seconds
            if self.settings is not None:
                self.settings.save_limit(limit_seconds)
            logger.info(f"Limit set to {limit_seconds}s")
            self._state_changed = True
        self._publish_state_change()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit_intent(self, name: str, **kwargs) -> None:
        """Call a notifier method; failures are logged, never raised."""
        try:
            getattr(self.notifier, name)(**kwargs)
        except Exception as e:
            logger.warning(f"Notifier {name} failed: {e}")

    def _publish_state_change(self) -> None:
        """Hand a pending state change to on_state_change. Call without the lock held."""
        with self._lock:
            if not self._state_changed:
                return
            self._state_changed = False
            snapshot = self.get_snapshot()

        callback = self.on_state_change
        if callback is None:
            return
        try:
            callback(snapshot)
        except Exception as e:
            logger.error(f"on_state_change callback failed: {e}", exc_info=True)
