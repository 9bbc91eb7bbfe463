"""Unit tests for the injectable clocks."""

from datetime import UTC, datetime, timedelta, timezone

from inventory_kernel.domain.clock import DeterministicClock, SystemClock, as_utc


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_advance(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.advance(30) == start + timedelta(seconds=30)
        assert clock.advance(days=1) == start + timedelta(days=1, seconds=31)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(100)
        clock.set_time(datetime(2025, 3, 1, 8, 0))
        assert clock.now() == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)


class TestAsUtc:
    def test_naive_is_utc(self):
        assert as_utc(datetime(2024, 5, 1, 10, 0)).tzinfo is UTC

    def test_aware_is_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = as_utc(datetime(2024, 5, 1, 10, 0, tzinfo=plus_two))
        assert value == datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
