"""
Core business logic package for Pause.

Contains the headless LockoutController, the threshold rules and the
clock/ticker abstractions. Zero UI dependencies.
"""

from core.controller import LockoutController, SessionSnapshot

__all__ = ["LockoutController", "SessionSnapshot"]
