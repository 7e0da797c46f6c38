"""Summary service - derives the daily net-worth snapshot."""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from integrations.parsing_utils import utc_today
from models import AccountBalance, Asset, BankAccount, FinancialSummary, Investment, Property

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class SummaryService:
    """Service for computing and reading FinancialSummary rows.

    The summary is a derived view: it is safe to recompute at any time and
    always overwrites the row for (user, date).
    """

    @staticmethod
    def _bank_total(db: Session, user_id: str, as_of: date) -> Decimal:
        """Sum the latest balance on or before ``as_of`` of each active account."""
        total = ZERO
        accounts = (
            db.query(BankAccount)
            .filter(BankAccount.user_id == user_id, BankAccount.is_active.is_(True))
            .all()
        )
        for account in accounts:
            latest = (
                db.query(AccountBalance)
                .filter(
                    AccountBalance.account_id == account.id,
                    AccountBalance.balance_date <= as_of,
                )
                .order_by(
                    AccountBalance.balance_date.desc(),
                    AccountBalance.updated_at.desc(),
                    AccountBalance.created_at.desc(),
                )
                .first()
            )
            if latest is not None and latest.amount is not None:
                total += Decimal(latest.amount)
        return total

    @staticmethod
    def _sum(db: Session, column, user_column, user_id: str) -> Decimal:
        value = db.query(func.coalesce(func.sum(column), 0)).filter(user_column == user_id).scalar()
        return Decimal(value or 0)

    @staticmethod
    def recalculate(
        db: Session, user_id: str, as_of: Optional[date] = None
    ) -> FinancialSummary:
        """Recompute the user's net worth for ``as_of`` (default: UTC today).

        Args:
            db: Database session (flushed, not committed)
            user_id: Whose summary to compute
            as_of: Summary date; balances after it are ignored

        Returns:
            The upserted FinancialSummary row.
        """
        as_of = as_of or utc_today()

        bank_total = SummaryService._bank_total(db, user_id, as_of)
        investment_total = SummaryService._sum(
            db, Investment.initial_investment_amount, Investment.user_id, user_id
        )
        real_estate_total = SummaryService._sum(
            db,
            func.coalesce(Property.current_market_value, Property.acquisition_price, 0),
            Property.user_id,
            user_id,
        )
        asset_total = SummaryService._sum(db, Asset.current_value, Asset.user_id, user_id)
        net_worth = bank_total + investment_total + real_estate_total + asset_total

        summary = (
            db.query(FinancialSummary)
            .filter(
                FinancialSummary.user_id == user_id,
                FinancialSummary.summary_date == as_of,
            )
            .first()
        )
        if summary is None:
            summary = FinancialSummary(user_id=user_id, summary_date=as_of)
            db.add(summary)

        summary.total_bank_balance = bank_total
        summary.total_investment_value = investment_total
        summary.total_real_estate_value = real_estate_total
        summary.total_asset_value = asset_total
        summary.total_net_worth = net_worth
        summary.currency = settings.SUMMARY_CURRENCY
        summary.computed_at = datetime.now(timezone.utc)
        db.flush()

        logger.info(
            "Summary for user %s on %s: net worth %s %s",
            user_id, as_of, net_worth, summary.currency,
        )
        return summary

    @staticmethod
    def recalculate_quietly(
        db: Session, user_id: str, as_of: Optional[date] = None
    ) -> Optional[FinancialSummary]:
        """Recalculate, logging and swallowing any failure.

        Runs inside a savepoint so a failed recalculation leaves the caller's
        transaction usable.
        """
        try:
            with db.begin_nested():
                return SummaryService.recalculate(db, user_id, as_of)
        except Exception:
            # A stale summary never fails the sync that triggered it
            logger.warning(
                "Summary recalculation failed for user %s", user_id, exc_info=True
            )
            return None

    @staticmethod
    def latest_summary(
        db: Session, user_id: str, as_of: Optional[date] = None
    ) -> Optional[FinancialSummary]:
        """Most recent summary on or before ``as_of`` (any date if omitted)."""
        query = db.query(FinancialSummary).filter(FinancialSummary.user_id == user_id)
        if as_of is not None:
            query = query.filter(FinancialSummary.summary_date <= as_of)
        return query.order_by(FinancialSummary.summary_date.desc()).first()

    @staticmethod
    def history(
        db: Session, user_id: str, months: int = 12, as_of: Optional[date] = None
    ) -> list[FinancialSummary]:
        """Summaries of the last ``months`` months, oldest first."""
        as_of = as_of or utc_today()
        since = as_of - timedelta(days=30 * months)
        return (
            db.query(FinancialSummary)
            .filter(
                FinancialSummary.user_id == user_id,
                FinancialSummary.summary_date >= since,
                FinancialSummary.summary_date <= as_of,
            )
            .order_by(FinancialSummary.summary_date.asc())
            .all()
        )
