"""CASA clock tests."""

from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestClock:
    def test_fixed_clock_and_advance(self):
        from core.time import FixedClock

        clock = FixedClock(NOW)
        assert clock.now_utc() == NOW
        clock.advance(90)
        assert clock.now_utc() == datetime(2026, 3, 1, 10, 1, 30, tzinfo=timezone.utc)

    def test_naive_datetime_rejected(self):
        from core.time import FixedClock, epoch_millis

        with pytest.raises(ValueError):
            FixedClock(datetime(2026, 3, 1))
        with pytest.raises(ValueError):
            epoch_millis(datetime(2026, 3, 1))

    def test_system_clock_is_aware(self):
        from core.time import SystemClock

        assert SystemClock().now_utc().tzinfo is not None

    def test_epoch_millis(self):
        from core.time import epoch_millis

        assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
