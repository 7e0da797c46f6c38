"""BankConnection model - one user's consent link to one institution."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

CONNECTION_STATUSES = ("created", "linked", "expired", "suspended", "error")


class BankConnection(Base):
    """A requisition (consent flow) created with the aggregator for a user.

    The row is created in ``created`` status when the link is initiated and
    moves to ``linked`` once the user has authorized the institution. A
    disconnect marks it ``suspended``; the row is kept so that the accounts,
    balances and transactions discovered through it retain their history.
    """

    __tablename__ = "bank_connections"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    requisition_id = Column(String, unique=True, index=True, nullable=False)
    reference = Column(String, nullable=True, index=True)  # "user-<id>-<timestamp>"
    institution_id = Column(String, nullable=False)
    institution_name = Column(String, nullable=False)
    country_code = Column(String(2), nullable=False)
    status = Column(String, nullable=False, default="created")

    # Agreement terms
    access_valid_for_days = Column(Integer, default=90)
    max_historical_days = Column(Integer, default=90)
    agreement_id = Column(String, nullable=True)
    agreement_accepted_at = Column(DateTime, nullable=True)
    agreement_expires_at = Column(DateTime, nullable=True)

    # Batch sync bookkeeping
    last_sync_at = Column(DateTime, nullable=True)
    sync_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    accounts = relationship("BankAccount", back_populates="connection")
