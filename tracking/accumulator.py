"""Elapsed-time accumulation for Pause."""

import logging
from dataclasses import dataclass
from typing import Callable

import config

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """
    In-memory session state, owned by the LockoutController.

    countdown_remaining is only meaningful in PHASE_UNLOCK_PENDING and
    confirmation_requested only in PHASE_LOCKED.
    """
    elapsed_seconds: int = 0
    limit_seconds: int = config.DEFAULT_LIMIT_SECONDS
    phase: str = config.PHASE_UNLOCKED
    countdown_remaining: int = 0
    confirmation_requested: bool = False


class TimeAccumulator:
    """
    Advances elapsed time by one second per usage tick while unlocked.

    The new elapsed value is handed to on_advance so the controller can
    classify it. Each increment is classified on its own, never in batches.
    """

    def __init__(self, state: SessionState, on_advance: Callable[[int], None]) -> None:
        """
        Args:
            state: Session state shared with the controller.
            on_advance: Called with the new elapsed value after each increment.
        """
        self.state = state
        self.on_advance = on_advance

    def tick(self) -> bool:
        """
        Advance elapsed time by exactly one second if unlocked.

        Returns:
            True if elapsed time advanced, False if frozen.
        """
        if self.state.phase != config.PHASE_UNLOCKED:
            return False
        self.state.elapsed_seconds += 1
        self.on_advance(self.state.elapsed_seconds)
        return True
