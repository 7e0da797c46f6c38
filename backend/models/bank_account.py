"""BankAccount model - a bank account discovered under a connection."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class BankAccount(Base):
    """A bank account, either discovered through the aggregator or entered manually.

    The aggregator's account id (``external_id``) is unique per user. Accounts
    are deactivated rather than deleted when their connection is removed.
    """

    __tablename__ = "bank_accounts"
    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uix_bank_account_user_external"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    connection_id = Column(String(36), ForeignKey("bank_connections.id"), nullable=True)
    external_id = Column(String, nullable=True)  # Aggregator account id
    iban = Column(String, nullable=True)
    account_number_last4 = Column(String(4), nullable=True)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=True)
    account_type = Column(String, nullable=False, default="other")
    currency = Column(String(3), nullable=False, default="USD")
    connection_type = Column(String, nullable=False, default="aggregator")  # "aggregator" | "manual"
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    connection = relationship("BankConnection", back_populates="accounts")
    balances = relationship("AccountBalance", back_populates="account")
    transactions = relationship("FinancialTransaction", back_populates="account")
