"""Bank sync service - pulls balances and transactions into the local store."""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from integrations.exceptions import AggregatorError, RateLimitExceeded
from integrations.gocardless_client import GoCardlessClient, transaction_type_for
from integrations.gocardless_types import BalanceSnapshot, BankTransaction
from integrations.parsing_utils import utc_today
from models import AccountBalance, BankAccount, BankConnection, FinancialTransaction
from services.exceptions import NotFoundOrForbidden, ValidationError

logger = logging.getLogger(__name__)

BALANCE_SOURCE = "aggregator"

# Preference order for the figure stored as the account balance
_BOOKED_BALANCE_TYPES = ("closingBooked", "interimBooked", "expected", "openingBooked")
_AVAILABLE_BALANCE_TYPES = ("interimAvailable", "closingAvailable", "forwardAvailable")


@dataclass
class SyncResult:
    """Outcome of syncing one user's accounts."""

    success: bool = True
    accounts_synced: int = 0
    balances_synced: int = 0
    transactions_synced: int = 0
    errors: list[str] = field(default_factory=list)
    accounts_attempted: int = 0
    accounts_rate_limited: int = 0

    @property
    def all_rate_limited(self) -> bool:
        """True when every attempted account was refused by the rate limit."""
        return (
            self.accounts_attempted > 0
            and self.accounts_rate_limited == self.accounts_attempted
        )

    @property
    def message(self) -> str:
        if not self.success:
            return "Sync completed with errors."
        if self.accounts_attempted == 0:
            return "Sync completed successfully. No GoCardless accounts found to sync."
        return (
            f"Successfully synced {self.accounts_synced} accounts, "
            f"{self.balances_synced} balances, and "
            f"{self.transactions_synced} transactions."
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "accounts_synced": self.accounts_synced,
            "balances_synced": self.balances_synced,
            "transactions_synced": self.transactions_synced,
            "errors": list(self.errors),
        }


def select_balance(
    balances: list[BalanceSnapshot],
) -> tuple[Optional[BalanceSnapshot], Optional[BalanceSnapshot]]:
    """Pick the (booked, available) pair out of the bank's balance list.

    Banks report several balance types. The booked figure is the first
    match in ``_BOOKED_BALANCE_TYPES``; if none is present the first
    reported balance is used. The available figure is optional.
    """
    by_type = {b.balance_type: b for b in balances}
    booked = next((by_type[t] for t in _BOOKED_BALANCE_TYPES if t in by_type), None)
    available = next((by_type[t] for t in _AVAILABLE_BALANCE_TYPES if t in by_type), None)
    if booked is None and balances:
        booked = available or balances[0]
    return booked, available


class BankSyncService:
    """Service for syncing aggregator accounts of a single user."""

    def __init__(self, client: GoCardlessClient):
        self._client = client

    def sync_account_data(
        self,
        db: Session,
        user_id: str,
        account_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> SyncResult:
        """Sync balances and transactions for a user's linked accounts.

        Each account is processed independently: a rate limit or upstream
        failure on one account is recorded in ``errors`` and the remaining
        accounts still sync. Re-running on the same day updates rows in
        place rather than duplicating them.

        Args:
            db: Database session (flushed, not committed)
            user_id: Owner of the accounts
            account_id: Restrict the sync to this local account id
            today: Override the UTC sync date (tests)

        Raises:
            NotFoundOrForbidden: ``account_id`` is unknown or not the user's.
            ValidationError: ``account_id`` is not an active aggregator account.
        """
        today = today or utc_today()
        result = SyncResult()

        try:
            accounts = self._load_accounts(db, user_id, account_id)
        except (NotFoundOrForbidden, ValidationError):
            raise
        except SQLAlchemyError as exc:
            logger.error("Failed to load accounts for user %s: %s", user_id, exc)
            result.success = False
            result.errors.append(f"Failed to load accounts: {exc.__class__.__name__}")
            return result

        if not accounts:
            logger.info("No aggregator accounts to sync for user %s", user_id)
            return result

        failed = 0
        for account in accounts:
            result.accounts_attempted += 1
            if not self._sync_one_account(db, account, today, result):
                failed += 1

        result.success = failed < result.accounts_attempted
        logger.info(
            "Sync for user %s: %d/%d accounts, %d balances, %d transactions, %d errors",
            user_id, result.accounts_synced, result.accounts_attempted,
            result.balances_synced, result.transactions_synced, len(result.errors),
        )
        return result

    def _load_accounts(
        self, db: Session, user_id: str, account_id: Optional[str]
    ) -> list[BankAccount]:
        if account_id:
            account = (
                db.query(BankAccount)
                .filter(BankAccount.id == account_id, BankAccount.user_id == user_id)
                .first()
            )
            if not account:
                raise NotFoundOrForbidden("Account not found")
            if (
                not account.is_active
                or account.connection_type != "aggregator"
                or not account.external_id
            ):
                raise ValidationError("Account is not an active GoCardless account")
            return [account]

        return (
            db.query(BankAccount)
            .join(BankConnection, BankAccount.connection_id == BankConnection.id)
            .filter(
                BankAccount.user_id == user_id,
                BankAccount.is_active.is_(True),
                BankAccount.connection_type == "aggregator",
                BankAccount.external_id.isnot(None),
                BankConnection.status == "linked",
            )
            .order_by(BankAccount.created_at)
            .all()
        )

    def _sync_one_account(
        self, db: Session, account: BankAccount, today: date, result: SyncResult
    ) -> bool:
        """Sync one account into ``result``.

        Returns:
            False if the balance step failed (the account counts as failed).
            A transaction failure after a stored balance is recorded but the
            account still counts as synced.
        """
        label = account.name or account.external_id

        try:
            with db.begin_nested():
                balances_written = self._sync_balance(db, account, today)
        except RateLimitExceeded:
            result.accounts_rate_limited += 1
            result.errors.append(f"Rate limit exceeded for account {label}")
            return False
        except AggregatorError as exc:
            logger.warning("Balance sync failed for account %s: %s", account.id, exc)
            result.errors.append(f"Failed to sync balances for {label}: {exc}")
            return False
        except SQLAlchemyError as exc:
            logger.error("Failed to store balance for account %s: %s", account.id, exc)
            result.errors.append(f"Failed to store balance for {label}")
            return False

        result.accounts_synced += 1
        result.balances_synced += balances_written

        try:
            with db.begin_nested():
                result.transactions_synced += self._sync_transactions(db, account, today)
        except RateLimitExceeded:
            result.errors.append(f"Rate limit exceeded fetching transactions for {label}")
        except AggregatorError as exc:
            logger.warning("Transaction sync failed for account %s: %s", account.id, exc)
            result.errors.append(f"Failed to sync transactions for {label}: {exc}")
        except SQLAlchemyError as exc:
            logger.error("Failed to store transactions for account %s: %s", account.id, exc)
            result.errors.append(f"Failed to store transactions for {label}")
        return True

    def _sync_balance(self, db: Session, account: BankAccount, today: date) -> int:
        balances = self._client.get_account_balances(account.external_id)
        booked, available = select_balance(balances)
        if booked is None:
            logger.info("No balances reported for account %s", account.id)
            return 0

        snapshot = (
            db.query(AccountBalance)
            .filter(
                AccountBalance.account_id == account.id,
                AccountBalance.balance_date == today,
                AccountBalance.source == BALANCE_SOURCE,
            )
            .first()
        )
        if snapshot is None:
            snapshot = AccountBalance(
                user_id=account.user_id,
                account_id=account.id,
                balance_date=today,
                source=BALANCE_SOURCE,
            )
            db.add(snapshot)

        snapshot.amount = booked.amount
        snapshot.available_amount = available.amount if available else None
        snapshot.currency = booked.currency or account.currency
        db.flush()
        return 1

    def _sync_transactions(self, db: Session, account: BankAccount, today: date) -> int:
        lookback = settings.TRANSACTION_LOOKBACK_DAYS
        connection = account.connection
        if connection is not None and connection.max_historical_days:
            lookback = min(lookback, connection.max_historical_days)

        page = self._client.get_account_transactions(
            account.external_id,
            date_from=today - timedelta(days=lookback),
            date_to=today,
        )
        if page.pending:
            logger.debug(
                "Skipping %d pending transactions for account %s",
                len(page.pending), account.id,
            )

        written = 0
        seen: dict[str, FinancialTransaction] = {}
        for tx in page.booked:
            row = None
            if tx.transaction_id:
                row = seen.get(tx.transaction_id) or (
                    db.query(FinancialTransaction)
                    .filter(
                        FinancialTransaction.account_id == account.id,
                        FinancialTransaction.external_id == tx.transaction_id,
                    )
                    .first()
                )
            if row is None:
                row = FinancialTransaction(
                    user_id=account.user_id,
                    account_id=account.id,
                    external_id=tx.transaction_id,
                    source=BALANCE_SOURCE,
                )
                db.add(row)
            _apply_transaction(row, tx, account, today)
            if tx.transaction_id:
                seen[tx.transaction_id] = row
            written += 1

        db.flush()
        return written


def _apply_transaction(
    row: FinancialTransaction, tx: BankTransaction, account: BankAccount, today: date
) -> None:
    row.amount = tx.amount
    row.currency = tx.currency or account.currency
    row.transaction_date = tx.booking_date or tx.value_date or today
    row.posting_date = tx.value_date
    row.description = tx.description
    row.merchant_name = tx.creditor_name if tx.amount < 0 else tx.debtor_name
    row.transaction_type = transaction_type_for(tx.amount)
    row.reference = tx.reference
