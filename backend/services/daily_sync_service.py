"""Daily sync service - the scheduled batch run over all linked users."""

import hmac
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from models import BankConnection
from services.bank_sync_service import BankSyncService, SyncResult
from services.exceptions import Unauthorized
from services.summary_service import SummaryService

logger = logging.getLogger(__name__)

RECENT_SYNCS_LIMIT = 10


@dataclass
class UserSyncResult:
    """Per-user line of the batch report."""

    user_id: str
    institution: str
    success: bool
    accounts_synced: int = 0
    balances_synced: int = 0
    transactions_synced: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_sync(cls, user_id: str, institution: str, result: SyncResult) -> "UserSyncResult":
        return cls(
            user_id=user_id,
            institution=institution,
            success=result.success,
            accounts_synced=result.accounts_synced,
            balances_synced=result.balances_synced,
            transactions_synced=result.transactions_synced,
            errors=list(result.errors),
        )


@dataclass
class DailySyncReport:
    """Aggregate outcome of one batch run."""

    results: list[UserSyncResult] = field(default_factory=list)

    @property
    def users_processed(self) -> int:
        return len(self.results)

    @property
    def users_successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def total_accounts_synced(self) -> int:
        return sum(r.accounts_synced for r in self.results)

    @property
    def total_balances_synced(self) -> int:
        return sum(r.balances_synced for r in self.results)

    @property
    def total_transactions_synced(self) -> int:
        return sum(r.transactions_synced for r in self.results)

    @property
    def message(self) -> str:
        if not self.results:
            return "No active connections to sync"
        return (
            f"Daily sync completed. {self.users_successful}/{self.users_processed} "
            "users synced successfully."
        )


@dataclass
class DailySyncStatus:
    last_syncs: list[BankConnection]
    next_scheduled_sync: datetime
    active_connections: int
    current_time: datetime


def next_run_at(now: datetime, hour: int) -> datetime:
    """Next occurrence of ``hour``:00 UTC strictly after ``now``."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class DailySyncService:
    """Runs the sync engine once for every user with a linked connection.

    Users are processed strictly one after another with a pause in between,
    oldest ``last_sync_at`` first, so a run that is cut short favours the
    users who have waited longest.
    """

    def __init__(
        self,
        sync_service: BankSyncService,
        sleep: Callable[[float], None] = time.sleep,
        delay_seconds: Optional[float] = None,
    ):
        self._sync_service = sync_service
        self._sleep = sleep
        self._delay_seconds = (
            settings.BATCH_USER_DELAY_SECONDS if delay_seconds is None else delay_seconds
        )

    @staticmethod
    def verify_cron_secret(authorization: Optional[str], secret: Optional[str] = None) -> None:
        """Check an ``Authorization`` header against ``Bearer <CRON_SECRET>``.

        Raises:
            Unauthorized: Header missing or wrong, or no secret configured.
        """
        secret = settings.CRON_SECRET if secret is None else secret
        if not secret:
            logger.error("CRON_SECRET is not configured; rejecting daily sync request")
            raise Unauthorized("Unauthorized")
        expected = f"Bearer {secret}".encode()
        if not authorization or not hmac.compare_digest(authorization.encode(), expected):
            logger.warning("Daily sync request with invalid credentials")
            raise Unauthorized("Unauthorized")

    @staticmethod
    def _linked_connections(db: Session) -> list[BankConnection]:
        # Never-synced connections first, then oldest sync first
        return (
            db.query(BankConnection)
            .filter(BankConnection.status == "linked")
            .order_by(
                BankConnection.last_sync_at.isnot(None),
                BankConnection.last_sync_at.asc(),
                BankConnection.created_at.asc(),
            )
            .all()
        )

    def run_daily_sync(self, db: Session, today: Optional[date] = None) -> DailySyncReport:
        """Sync every user with a linked connection, committing per user."""
        report = DailySyncReport()

        users: dict[str, str] = {}
        for connection in self._linked_connections(db):
            users.setdefault(connection.user_id, connection.institution_name)

        if not users:
            logger.info("Daily sync: no linked connections")
            return report

        logger.info("Daily sync: %d users to process", len(users))
        for index, (user_id, institution) in enumerate(users.items()):
            if index > 0 and self._delay_seconds > 0:
                self._sleep(self._delay_seconds)
            report.results.append(self._sync_user(db, user_id, institution, today))

        logger.info(
            "Daily sync finished: %d/%d users, %d accounts, %d balances, %d transactions",
            report.users_successful, report.users_processed,
            report.total_accounts_synced, report.total_balances_synced,
            report.total_transactions_synced,
        )
        return report

    def _sync_user(
        self, db: Session, user_id: str, institution: str, today: Optional[date]
    ) -> UserSyncResult:
        try:
            with db.begin_nested():
                result = self._sync_service.sync_account_data(db, user_id, today=today)
                if result.accounts_synced > 0:
                    SummaryService.recalculate_quietly(db, user_id, today)
                self._record_sync(db, user_id, result)
            db.commit()
        except Exception as exc:
            # One user's failure is reported and the batch moves on
            logger.exception("Daily sync failed for user %s", user_id)
            db.rollback()
            return UserSyncResult(
                user_id=user_id,
                institution=institution,
                success=False,
                errors=[f"Sync failed: {exc}"],
            )
        return UserSyncResult.from_sync(user_id, institution, result)

    @staticmethod
    def _record_sync(db: Session, user_id: str, result: SyncResult) -> None:
        now = datetime.now(timezone.utc)
        sync_error = "; ".join(result.errors) if result.errors else None
        for connection in (
            db.query(BankConnection).filter(BankConnection.user_id == user_id).all()
        ):
            connection.last_sync_at = now
            connection.sync_error = sync_error
        db.flush()

    @staticmethod
    def get_status(db: Session, now: Optional[datetime] = None) -> DailySyncStatus:
        """Recent batch activity and the next scheduled run."""
        now = now or datetime.now(timezone.utc)
        last_syncs = (
            db.query(BankConnection)
            .filter(BankConnection.last_sync_at.isnot(None))
            .order_by(BankConnection.last_sync_at.desc())
            .limit(RECENT_SYNCS_LIMIT)
            .all()
        )
        active = (
            db.query(BankConnection).filter(BankConnection.status == "linked").count()
        )
        return DailySyncStatus(
            last_syncs=last_syncs,
            next_scheduled_sync=next_run_at(now, settings.DAILY_SYNC_HOUR_UTC),
            active_connections=active,
            current_time=now,
        )
