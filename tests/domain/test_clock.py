"""Tests for the injectable clocks."""

from datetime import datetime, timezone

from budget_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance_and_tick(self):
        clock = DeterministicClock(datetime(2025, 6, 1, tzinfo=timezone.utc))
        clock.advance(30)
        assert clock.now() == datetime(2025, 6, 1, 0, 0, 30, tzinfo=timezone.utc)
        assert clock.tick() == datetime(2025, 6, 1, 0, 0, 31, tzinfo=timezone.utc)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2025, 12, 31, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
