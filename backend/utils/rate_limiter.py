# backend/utils/rate_limiter.py
"""
Daily quota for discovery writes.

Caps how many new cameras are saved per local calendar day, so discovery
trickles into the vault instead of hammering image sources in one burst.
"""

import logging
from datetime import date
from threading import Lock
from typing import Callable, Dict, Optional

from errors import QuotaExhaustedError

logger = logging.getLogger(__name__)


def local_date_string() -> str:
    """Today's local date as YYYY-MM-DD."""
    return date.today().isoformat()


class DailyQuota:
    """
    Counter of cameras saved today, reset when the local date changes.

    The reset is driven by comparing the stored date string against today's
    before each pass (reset_if_new_day), so it happens exactly once per day
    no matter how often it is checked.
    """

    def __init__(
        self,
        daily_limit: int,
        today: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize quota.

        Args:
            daily_limit: Max cameras saved per local day
            today: Returns the current local date string (injectable for tests)
        """
        self.daily_limit = max(0, daily_limit)
        self._today = today or local_date_string
        self._lock = Lock()
        self.saved_today = 0
        self.last_reset_date = self._today()

    def reset_if_new_day(self) -> bool:
        """
        Reset the counter if the local date changed since the last reset.

        Returns:
            True if a reset happened
        """
        today = self._today()
        with self._lock:
            if today == self.last_reset_date:
                return False
            logger.info(
                f"New day {today}: resetting daily quota "
                f"({self.saved_today}/{self.daily_limit} used on {self.last_reset_date})"
            )
            self.saved_today = 0
            self.last_reset_date = today
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            return max(0, self.daily_limit - self.saved_today)

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    def consume(self, count: int = 1) -> int:
        """
        Record saved cameras against today's quota.

        Returns:
            Remaining quota

        Raises:
            QuotaExhaustedError: if the quota was already used up
        """
        with self._lock:
            if self.saved_today >= self.daily_limit:
                raise QuotaExhaustedError(self.daily_limit)
            self.saved_today = min(self.daily_limit, self.saved_today + count)
            remaining = self.daily_limit - self.saved_today

        if remaining == 0:
            logger.info(f"Daily quota of {self.daily_limit} reached")
        return remaining

    def get_status(self) -> Dict:
        """Snapshot for status reporting."""
        with self._lock:
            return {
                "daily_limit": self.daily_limit,
                "saved_today": self.saved_today,
                "remaining": max(0, self.daily_limit - self.saved_today),
                "last_reset_date": self.last_reset_date,
            }
