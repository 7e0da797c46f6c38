"""Per-account, per-day request budget for the aggregator.

GoCardless grants a small number of data requests per account per day
(4 by default). The ledger counts the units spent per
``(account_id, UTC date)`` and refuses further units once the budget for
the day is gone. Records for past days are dropped lazily.
"""

import threading
from collections.abc import Callable
from datetime import date
from typing import Optional

from integrations.parsing_utils import utc_today


class _AccountBudget:
    """Units spent by one account on ``day``. Mutated only under ``lock``."""

    __slots__ = ("lock", "day", "used", "retired")

    def __init__(self, day: date):
        self.lock = threading.Lock()
        self.day = day
        self.used = 0
        self.retired = False


class RateLimitLedger:
    """In-memory request budget keyed by account and UTC day.

    Each account owns a record with its own lock, so two requests racing for
    the last unit of the same account serialize while unrelated accounts
    never contend. The registry lock guards the account map only: records
    are created and pruned under it, counts are never touched under it.
    A pruned record is marked retired so a thread still holding a reference
    to it fetches a fresh one instead of counting into a dropped record.
    """

    def __init__(self, daily_limit: int = 4, today: Callable[[], date] = utc_today):
        if daily_limit < 1:
            raise ValueError("daily_limit must be at least 1")
        self.daily_limit = daily_limit
        self._today = today
        self._accounts: dict[str, _AccountBudget] = {}
        self._registry_lock = threading.Lock()
        self._pruned_for: Optional[date] = None

    def _record_for(self, account_id: str, today: date) -> _AccountBudget:
        with self._registry_lock:
            if self._pruned_for != today:
                self._prune(today)
            record = self._accounts.get(account_id)
            if record is None:
                record = _AccountBudget(today)
                self._accounts[account_id] = record
            return record

    def _prune(self, today: date) -> None:
        # Caller holds the registry lock. Records busy in another thread are
        # skipped; they are rolled over to today by their next acquire.
        for account_id, record in list(self._accounts.items()):
            if record.day == today or not record.lock.acquire(blocking=False):
                continue
            try:
                if record.day != today:
                    record.retired = True
                    del self._accounts[account_id]
            finally:
                record.lock.release()
        self._pruned_for = today

    def try_acquire(self, account_id: str) -> bool:
        """Spend one unit of today's budget for ``account_id``.

        Returns:
            True if a unit was available (and is now spent), False otherwise.
        """
        today = self._today()
        while True:
            record = self._record_for(account_id, today)
            with record.lock:
                if record.retired:
                    continue
                if record.day != today:
                    record.day = today
                    record.used = 0
                if record.used >= self.daily_limit:
                    return False
                record.used += 1
                return True

    def remaining(self, account_id: str) -> int:
        """Units left today for ``account_id``."""
        today = self._today()
        with self._registry_lock:
            record = self._accounts.get(account_id)
        if record is None:
            return self.daily_limit
        with record.lock:
            if record.retired or record.day != today:
                return self.daily_limit
            return max(0, self.daily_limit - record.used)

    def tracked_accounts(self) -> set[str]:
        """Account ids currently holding a record (for diagnostics and tests)."""
        with self._registry_lock:
            return set(self._accounts)

    def reset(self) -> None:
        """Forget all counts (used by operator tooling and tests)."""
        with self._registry_lock:
            for record in self._accounts.values():
                with record.lock:
                    record.retired = True
            self._accounts.clear()
            self._pruned_for = None
