#!/usr/bin/env python
"""Run the daily bank sync once from the command line.

Useful when the scheduler is down or to backfill after an outage. Uses the
same code path as the daily-update endpoint, without the HTTP layer.

Usage:
    python -m scripts.run_daily_sync
    python -m scripts.run_daily_sync --delay 0 --json
    python -m scripts.run_daily_sync --status
"""

import argparse
import json
import sys

from database import get_session_local
from integrations.gocardless_client import GoCardlessClient
from logging_config import setup_logging
from services.bank_sync_service import BankSyncService
from services.daily_sync_service import DailySyncReport, DailySyncService


def report_to_dict(report: DailySyncReport) -> dict:
    return {
        "message": report.message,
        "summary": {
            "users_processed": report.users_processed,
            "users_successful": report.users_successful,
            "total_accounts_synced": report.total_accounts_synced,
            "total_balances_synced": report.total_balances_synced,
            "total_transactions_synced": report.total_transactions_synced,
        },
        "results": [
            {
                "user_id": r.user_id,
                "institution": r.institution,
                "success": r.success,
                "accounts_synced": r.accounts_synced,
                "balances_synced": r.balances_synced,
                "transactions_synced": r.transactions_synced,
                "errors": r.errors,
            }
            for r in report.results
        ],
    }


def print_report(report: DailySyncReport) -> None:
    print(report.message)
    for r in report.results:
        mark = "OK  " if r.success else "FAIL"
        print(
            f"  [{mark}] {r.user_id} ({r.institution}): "
            f"{r.accounts_synced} accounts, {r.balances_synced} balances, "
            f"{r.transactions_synced} transactions"
        )
        for error in r.errors:
            print(f"         - {error}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the daily bank sync once.")
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to pause between users (default: BATCH_USER_DELAY_SECONDS)",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--status", action="store_true", help="Show recent syncs and the next run, then exit"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    SessionLocal = get_session_local()
    db = SessionLocal()
    client = GoCardlessClient()
    try:
        if args.status:
            status = DailySyncService.get_status(db)
            print(f"Active connections: {status.active_connections}")
            print(f"Next scheduled sync: {status.next_scheduled_sync.isoformat()}")
            for connection in status.last_syncs:
                print(
                    f"  {connection.last_sync_at}  {connection.user_id}  "
                    f"{connection.institution_name}  {connection.sync_error or ''}"
                )
            return 0

        if not client.is_configured():
            print("Error: GOCARDLESS_SECRET_ID / GOCARDLESS_SECRET_KEY are not configured")
            return 1

        service = DailySyncService(BankSyncService(client), delay_seconds=args.delay)
        report = service.run_daily_sync(db)
        if args.json:
            print(json.dumps(report_to_dict(report), indent=2))
        else:
            print_report(report)
        return 0 if report.users_successful == report.users_processed else 2
    finally:
        client.close()
        db.close()


if __name__ == "__main__":
    sys.exit(main())
