"""AccountBalance model - a dated balance snapshot for a bank account."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class AccountBalance(Base):
    """Balance of an account on a given date, from a given source.

    One row per (account, balance_date, source). Re-syncing on the same day
    replaces the amounts of that row; earlier days are never touched.
    """

    __tablename__ = "account_balances"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "balance_date", "source",
            name="uix_balance_account_date_source",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    account_id = Column(String(36), ForeignKey("bank_accounts.id"), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    available_amount = Column(Numeric(15, 2), nullable=True)
    currency = Column(String(3), nullable=False)
    balance_date = Column(Date, nullable=False)
    source = Column(String, nullable=False, default="aggregator")  # "aggregator" | "manual"
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    account = relationship("BankAccount", back_populates="balances")
