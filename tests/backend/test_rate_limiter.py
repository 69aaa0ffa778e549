# tests/backend/test_rate_limiter.py
"""
Tests for the daily discovery quota
"""

import pytest

from errors import QuotaExhaustedError
from utils.rate_limiter import DailyQuota


class FakeCalendar:
    def __init__(self, today: str):
        self.today = today

    def __call__(self) -> str:
        return self.today


class TestDailyQuota:
    """Tests for DailyQuota"""

    def test_consume_until_exhausted(self):
        quota = DailyQuota(3, today=FakeCalendar("2024-05-01"))

        assert quota.consume() == 2
        assert quota.consume() == 1
        assert quota.consume() == 0
        assert quota.exhausted

        with pytest.raises(QuotaExhaustedError) as exc_info:
            quota.consume()
        assert exc_info.value.recoverable is True

    def test_reset_happens_once_per_day(self):
        calendar = FakeCalendar("2024-05-01")
        quota = DailyQuota(2, today=calendar)
        quota.consume()
        quota.consume()

        assert quota.reset_if_new_day() is False
        assert quota.exhausted

        calendar.today = "2024-05-02"
        assert quota.reset_if_new_day() is True
        assert quota.remaining == 2
        assert quota.last_reset_date == "2024-05-02"

        quota.consume()
        assert quota.reset_if_new_day() is False
        assert quota.saved_today == 1

    def test_zero_limit_is_always_exhausted(self):
        quota = DailyQuota(0, today=FakeCalendar("2024-05-01"))
        assert quota.exhausted

    def test_status_snapshot(self):
        quota = DailyQuota(200, today=FakeCalendar("2024-05-01"))
        quota.consume()

        assert quota.get_status() == {
            "daily_limit": 200,
            "saved_today": 1,
            "remaining": 199,
            "last_reset_date": "2024-05-01",
        }
