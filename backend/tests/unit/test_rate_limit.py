"""Unit tests for the per-account daily request ledger."""

import threading
from datetime import date, timedelta

import pytest

from integrations.rate_limit import RateLimitLedger


class FakeClock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return FakeClock(date(2024, 6, 1))


@pytest.fixture
def ledger(clock):
    return RateLimitLedger(daily_limit=4, today=clock)


class TestTryAcquire:
    def test_four_units_then_refused(self, ledger):
        assert [ledger.try_acquire("acc-1") for _ in range(4)] == [True] * 4
        assert ledger.try_acquire("acc-1") is False

    def test_accounts_are_independent(self, ledger):
        for _ in range(4):
            ledger.try_acquire("acc-1")
        assert ledger.try_acquire("acc-2") is True
        assert ledger.remaining("acc-2") == 3

    def test_budget_resets_after_utc_midnight(self, ledger, clock):
        for _ in range(4):
            ledger.try_acquire("acc-1")
        assert ledger.try_acquire("acc-1") is False

        clock.today = clock.today + timedelta(days=1)

        assert ledger.remaining("acc-1") == 4
        assert ledger.try_acquire("acc-1") is True

    def test_past_days_are_pruned(self, ledger, clock):
        ledger.try_acquire("acc-1")
        clock.today = clock.today + timedelta(days=1)
        ledger.try_acquire("acc-2")

        assert ledger.tracked_accounts() == {"acc-2"}
        assert ledger.remaining("acc-1") == 4
        assert ledger.remaining("acc-2") == 3

    def test_pruned_account_starts_a_fresh_budget(self, ledger, clock):
        for _ in range(4):
            ledger.try_acquire("acc-1")
        clock.today = clock.today + timedelta(days=1)
        ledger.try_acquire("acc-2")

        assert ledger.try_acquire("acc-1") is True
        assert ledger.remaining("acc-1") == 3


class TestRemaining:
    def test_remaining_does_not_consume(self, ledger):
        assert ledger.remaining("acc-1") == 4
        assert ledger.remaining("acc-1") == 4

    def test_remaining_counts_down(self, ledger):
        ledger.try_acquire("acc-1")
        ledger.try_acquire("acc-1")
        assert ledger.remaining("acc-1") == 2

    def test_remaining_never_negative(self, ledger):
        for _ in range(6):
            ledger.try_acquire("acc-1")
        assert ledger.remaining("acc-1") == 0


class TestConfiguration:
    def test_custom_limit(self, clock):
        ledger = RateLimitLedger(daily_limit=2, today=clock)
        assert ledger.try_acquire("a") is True
        assert ledger.try_acquire("a") is True
        assert ledger.try_acquire("a") is False

    def test_limit_below_one_rejected(self):
        with pytest.raises(ValueError):
            RateLimitLedger(daily_limit=0)

    def test_reset_clears_counts(self, ledger):
        for _ in range(4):
            ledger.try_acquire("acc-1")
        ledger.reset()
        assert ledger.remaining("acc-1") == 4


class TestConcurrency:
    def test_concurrent_acquires_never_exceed_budget(self, ledger):
        """Many threads racing for one account get exactly four units."""
        results = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(20)

        def worker():
            barrier.wait()
            granted = ledger.try_acquire("acc-1")
            with results_lock:
                results.append(granted)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 4
        assert results.count(False) == 16

    def test_many_accounts_across_threads(self, clock):
        """Distinct accounts acquired concurrently never disturb each other."""
        ledger = RateLimitLedger(daily_limit=4, today=clock)
        errors = []
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            try:
                for i in range(2000):
                    assert ledger.try_acquire(f"acc-{n}-{i}") is True
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(ledger.tracked_accounts()) == 8 * 2000
        assert ledger.remaining("acc-3-1999") == 3

    def test_day_rollover_under_load(self, clock):
        """Pruning at midnight while other threads acquire loses no units."""
        ledger = RateLimitLedger(daily_limit=4, today=clock)
        for i in range(500):
            ledger.try_acquire(f"old-{i}")
        clock.today = clock.today + timedelta(days=1)

        errors = []
        granted = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(10)

        def worker(n):
            barrier.wait()
            try:
                for i in range(200):
                    ok = ledger.try_acquire(f"old-{i}") if n % 2 else ledger.try_acquire("shared")
                    with results_lock:
                        granted.append((n % 2, ok))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert [ok for shared, ok in granted if shared == 0].count(True) == 4
        assert all(ledger.remaining(f"old-{i}") == 0 for i in range(200))
        assert all(f"old-{i}" not in ledger.tracked_accounts() for i in range(200, 500))
