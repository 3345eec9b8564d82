"""
Tests for core/controller.py. Verifies the lockout state machine works
independently of any UI framework, with a fake clock and no sleeping.
"""

import sys
import tempfile
import threading
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from core.clock import FakeClock, Ticker
from core.controller import LockoutController, SessionSnapshot
from tracking.lockout_store import LockoutRecord, LockoutStore
from tracking.settings_store import SettingsStore

NOON = datetime(2024, 1, 15, 12, 0, 0)


class ControllerTestCase(unittest.TestCase):
    """Shared fixtures: temp lockout file, mock notifier, fake clock."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name)
        self.store = LockoutStore(self.tmp / "lockout.json")
        self.notifier = MagicMock()
        self.clock = FakeClock(NOON)

    def tearDown(self):
        self._tmpdir.cleanup()

    def make_controller(self, limit=600, **kwargs) -> LockoutController:
        return LockoutController(
            store=kwargs.pop("store", self.store),
            notifier=self.notifier,
            clock=self.clock,
            limit_seconds=limit,
            **kwargs,
        )

    def tick(self, controller: LockoutController, times: int) -> None:
        for _ in range(times):
            self.clock.advance(1)
            controller.usage_tick()

    def lock(self, controller: LockoutController) -> None:
        self.tick(controller, controller.state.limit_seconds)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)


class TestStartup(ControllerTestCase):
    """Restoring (or discarding) the persisted lockout."""

    def test_fresh_start_is_unlocked(self):
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 0)

    def test_restores_lockout_from_today(self):
        self.store.save(LockoutRecord(NOON - timedelta(hours=2), 600))
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 600)
        self.assertIsNotNone(self.store.load())

    def test_restored_lockout_does_not_accumulate(self):
        self.store.save(LockoutRecord(NOON - timedelta(minutes=5), 450))
        controller = self.make_controller()
        self.tick(controller, 30)
        self.assertEqual(controller.state.elapsed_seconds, 450)

    def test_yesterdays_record_is_discarded(self):
        """Scenario C: restart with yesterday's record present."""
        self.store.save(LockoutRecord(NOON - timedelta(days=1), 600))
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 0)
        self.assertIsNone(self.store.load())
        self.assertFalse(self.store.data_file.exists())

    def test_record_just_before_midnight_is_discarded(self):
        self.clock.set(datetime(2024, 1, 16, 0, 0, 1))
        self.store.save(LockoutRecord(datetime(2024, 1, 15, 23, 59, 59), 600))
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertIsNone(self.store.load())

    def test_future_dated_record_is_discarded(self):
        self.store.save(LockoutRecord(NOON + timedelta(days=1), 600))
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)

    def test_malformed_record_fails_open(self):
        self.store.data_file.write_text("{broken")
        controller = self.make_controller()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertFalse(self.store.data_file.exists())

    def test_start_requests_permission_once(self):
        controller = self.make_controller()
        controller.start()
        controller.start()
        self.notifier.request_permission.assert_called_once_with()

    def test_limit_from_settings(self):
        settings = SettingsStore(self.tmp / "settings.json")
        settings.save_limit(1800)
        controller = LockoutController(self.store, self.notifier, clock=self.clock, settings=settings)
        self.assertEqual(controller.state.limit_seconds, 1800)


class TestAccumulation(ControllerTestCase):
    """Reminder and lockout edges."""

    def test_lockout_on_exact_tick(self):
        """Scenario A: limit=600 locks on tick 600, not 599 or 601."""
        controller = self.make_controller(limit=600)
        self.tick(controller, 599)
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 599)

        self.tick(controller, 1)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 600)

        self.assertFalse(controller.usage_tick())
        self.assertEqual(controller.state.elapsed_seconds, 600)

    def test_reminder_fires_once_on_tick_300(self):
        """Scenario B: limit=600 reminds exactly once, on tick 300."""
        controller = self.make_controller(limit=600)
        self.tick(controller, 299)
        self.notifier.schedule_reminder.assert_not_called()

        self.tick(controller, 1)
        self.notifier.schedule_reminder.assert_called_once_with(
            after_seconds=config.REMINDER_DELAY_SECONDS
        )

        self.tick(controller, 300)
        self.assertEqual(self.notifier.schedule_reminder.call_count, 1)

    def test_no_reminder_for_short_limit(self):
        controller = self.make_controller(limit=120)
        self.tick(controller, 120)
        self.notifier.schedule_reminder.assert_not_called()
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

    def test_lockout_persists_record_and_alerts(self):
        controller = self.make_controller(limit=60)
        self.tick(controller, 60)
        record = self.store.load()
        self.assertEqual(record.elapsed_at_lockout, 60)
        self.assertEqual(record.lockout_started_at, self.clock.now())
        self.notifier.schedule_lockout_alert.assert_called_once_with()

    def test_lockout_survives_restart(self):
        controller = self.make_controller(limit=60)
        self.tick(controller, 60)
        restarted = self.make_controller(limit=60)
        self.assertEqual(restarted.phase, config.PHASE_LOCKED)
        self.assertEqual(restarted.state.elapsed_seconds, 60)

    def test_lowering_limit_below_elapsed_locks_on_next_tick(self):
        controller = self.make_controller(limit=600)
        self.tick(controller, 100)
        controller.set_limit(50)
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.tick(controller, 1)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 101)

    def test_passed_reminder_edge_is_not_caught_up(self):
        controller = self.make_controller(limit=600)
        self.tick(controller, 350)
        self.assertEqual(self.notifier.schedule_reminder.call_count, 1)

        # New reminder edge (320) is already behind the elapsed time
        controller.set_limit(620)
        self.tick(controller, 269)
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.tick(controller, 1)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 620)
        self.assertEqual(self.notifier.schedule_reminder.call_count, 1)

    def test_no_midnight_unlock_while_running(self):
        """Day rollover is only checked at startup."""
        self.clock.set(datetime(2024, 1, 15, 23, 59, 0))
        controller = self.make_controller(limit=30)
        self.tick(controller, 30)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

        self.tick(controller, 120)
        self.assertGreater(self.clock.now().date(), NOON.date())
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 30)


class TestEarlyUnlock(ControllerTestCase):
    """Confirmation step and countdown."""

    def test_full_unlock_flow(self):
        """Scenario D: locked -> confirm -> 10 ticks -> unlocked."""
        controller = self.make_controller(limit=60)
        self.lock(controller)

        self.assertTrue(controller.request_early_unlock())
        self.assertTrue(controller.get_snapshot().confirmation_requested)
        self.assertTrue(controller.confirm_early_unlock())

        snapshot = controller.get_snapshot()
        self.assertEqual(snapshot.phase, config.PHASE_UNLOCK_PENDING)
        self.assertEqual(snapshot.countdown_remaining, 10)

        for _ in range(9):
            controller.countdown_tick()
        snapshot = controller.get_snapshot()
        self.assertEqual(snapshot.phase, config.PHASE_UNLOCK_PENDING)
        self.assertEqual(snapshot.countdown_remaining, 1)
        self.assertIsNotNone(self.store.load())

        controller.countdown_tick()
        snapshot = controller.get_snapshot()
        self.assertEqual(snapshot.phase, config.PHASE_UNLOCKED)
        self.assertEqual(snapshot.elapsed_seconds, 0)
        self.assertEqual(snapshot.countdown_remaining, 0)
        self.assertIsNone(self.store.load())

    def test_elapsed_frozen_during_countdown(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        controller.request_early_unlock()
        controller.confirm_early_unlock()
        self.tick(controller, 5)
        self.assertEqual(controller.state.elapsed_seconds, 60)

    def test_accumulation_resumes_after_unlock(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        controller.request_early_unlock()
        controller.confirm_early_unlock()
        for _ in range(10):
            controller.countdown_tick()
        self.tick(controller, 59)
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.tick(controller, 1)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        self.assertEqual(self.notifier.schedule_lockout_alert.call_count, 2)

    def test_cancel_keeps_lock(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        controller.request_early_unlock()
        self.assertTrue(controller.cancel_early_unlock())
        snapshot = controller.get_snapshot()
        self.assertEqual(snapshot.phase, config.PHASE_LOCKED)
        self.assertFalse(snapshot.confirmation_requested)
        self.assertFalse(controller.countdown_tick())

    def test_confirm_requires_request(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        self.assertFalse(controller.confirm_early_unlock())
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

    def test_commands_ignored_while_unlocked(self):
        controller = self.make_controller()
        self.assertFalse(controller.request_early_unlock())
        self.assertFalse(controller.confirm_early_unlock())
        self.assertFalse(controller.cancel_early_unlock())
        self.assertFalse(controller.countdown_tick())
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)

    def test_countdown_cannot_be_cancelled(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        controller.request_early_unlock()
        controller.confirm_early_unlock()
        self.assertFalse(controller.cancel_early_unlock())
        self.assertFalse(controller.request_early_unlock())
        self.assertEqual(controller.phase, config.PHASE_UNLOCK_PENDING)

    def test_restored_lockout_can_be_unlocked(self):
        self.store.save(LockoutRecord(NOON - timedelta(hours=1), 600))
        controller = self.make_controller()
        controller.request_early_unlock()
        controller.confirm_early_unlock()
        for _ in range(10):
            controller.countdown_tick()
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertIsNone(self.store.load())


class TestSetLimit(ControllerTestCase):

    def test_rejects_non_positive(self):
        controller = self.make_controller()
        for bad in (0, -1, 1.5, "600", True, None):
            with self.assertRaises(ValueError):
                controller.set_limit(bad)
        self.assertEqual(controller.state.limit_seconds, 600)

    def test_refused_while_locked(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        self.assertFalse(controller.set_limit(3600))
        self.assertEqual(controller.state.limit_seconds, 60)

    def test_saved_to_settings(self):
        settings = SettingsStore(self.tmp / "settings.json")
        controller = self.make_controller(settings=settings)
        self.assertTrue(controller.set_limit(900))
        self.assertEqual(settings.load_limit(), 900)


class TestFailureHandling(ControllerTestCase):
    """Nothing raises out of the core."""

    def test_notifier_failure_does_not_block_lockout(self):
        self.notifier.schedule_lockout_alert.side_effect = RuntimeError("no notification center")
        self.notifier.schedule_reminder.side_effect = RuntimeError("no notification center")
        controller = self.make_controller(limit=300)
        self.tick(controller, 300)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

    def test_save_failure_still_locks(self):
        store = MagicMock()
        store.load.return_value = None
        store.save.return_value = False
        controller = self.make_controller(limit=10, store=store)
        self.tick(controller, 10)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)
        store.save.assert_called_once()

    def test_clear_failure_still_unlocks(self):
        store = MagicMock()
        store.load.return_value = LockoutRecord(NOON - timedelta(hours=1), 600)
        store.clear.return_value = False
        controller = self.make_controller(store=store)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

        controller.request_early_unlock()
        controller.confirm_early_unlock()
        for _ in range(10):
            controller.countdown_tick()

        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertEqual(controller.state.elapsed_seconds, 0)
        store.clear.assert_called_once_with()

    def test_callback_failure_is_contained(self):
        controller = self.make_controller(limit=10)
        controller.on_state_change = MagicMock(side_effect=RuntimeError("ui gone"))
        self.tick(controller, 10)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)


class TestReadModel(ControllerTestCase):

    def test_snapshot_fields(self):
        controller = self.make_controller(limit=600)
        self.tick(controller, 5)
        snapshot = controller.get_snapshot()
        self.assertIsInstance(snapshot, SessionSnapshot)
        self.assertEqual(snapshot.elapsed_seconds, 5)
        self.assertEqual(snapshot.limit_seconds, 600)
        self.assertEqual(snapshot.phase, config.PHASE_UNLOCKED)
        self.assertFalse(snapshot.is_locked)
        # 12:00:05 -> 11:59:55 until midnight
        self.assertEqual(snapshot.seconds_until_midnight, 12 * 3600 - 5)

    def test_state_change_callback_on_lockout(self):
        controller = self.make_controller(limit=10)
        seen = []
        controller.on_state_change = seen.append
        self.tick(controller, 10)
        self.assertEqual([s.phase for s in seen], [config.PHASE_LOCKED])

    def test_state_change_callback_runs_without_lock(self):
        controller = self.make_controller(limit=60)
        self.lock(controller)
        acquired = []

        def try_lock_from_other_thread(snapshot):
            def worker():
                got = controller._lock.acquire(blocking=False)
                if got:
                    controller._lock.release()
                acquired.append(got)

            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        controller.on_state_change = try_lock_from_other_thread
        controller.request_early_unlock()
        controller.confirm_early_unlock()
        controller.countdown_tick()
        self.assertEqual(acquired, [True, True, True])


class TestTickerDriven(ControllerTestCase):
    """The controller driven through Ticker cadences."""

    def test_attach_registers_cadences(self):
        ticker = Ticker()
        self.make_controller().attach(ticker)
        self.assertEqual(
            sorted(ticker.cadence_names),
            sorted([config.CADENCE_USAGE, config.CADENCE_COUNTDOWN]),
        )

    def test_lock_and_unlock_via_ticker(self):
        ticker = Ticker()
        controller = self.make_controller(limit=600)
        controller.attach(ticker)

        ticker.advance(599)
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        ticker.advance(1)
        self.assertEqual(controller.phase, config.PHASE_LOCKED)

        controller.request_early_unlock()
        controller.confirm_early_unlock()
        ticker.advance(9)
        self.assertEqual(controller.get_snapshot().countdown_remaining, 1)
        ticker.advance(1)

        # Usage and countdown fire in the same second; either order is allowed
        self.assertEqual(controller.phase, config.PHASE_UNLOCKED)
        self.assertLessEqual(controller.state.elapsed_seconds, 1)
        self.assertIsNone(self.store.load())


if __name__ == "__main__":
    unittest.main()
