"""FinancialTransaction model - a booked bank transaction."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class FinancialTransaction(Base):
    """A transaction on a bank account.

    Aggregator transactions are deduplicated on (account_id, external_id).
    Manual entries have no external id and are never deduplicated (NULLs do
    not collide in the unique constraint).
    """

    __tablename__ = "financial_transactions"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "external_id",
            name="uix_transaction_account_external",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    account_id = Column(String(36), ForeignKey("bank_accounts.id"), nullable=False)
    external_id = Column(String, nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)  # Signed: negative = money out
    currency = Column(String(3), nullable=False)
    transaction_date = Column(Date, nullable=False)
    posting_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    merchant_name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    transaction_type = Column(String, nullable=False, default="other")
    reference = Column(String, nullable=True)
    source = Column(String, nullable=False, default="aggregator")  # "aggregator" | "manual"
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    account = relationship("BankAccount", back_populates="transactions")
