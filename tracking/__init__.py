"""
Tracking package for Pause.

Elapsed-time accumulation, the day-scoped lockout record, user settings
and calendar-day helpers.
"""
