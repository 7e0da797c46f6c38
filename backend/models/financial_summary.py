"""FinancialSummary model - derived daily net-worth snapshot."""

from sqlalchemy import Column, Date, DateTime, Numeric, String, UniqueConstraint

from database import Base
from models.utils import generate_uuid, utc_now


class FinancialSummary(Base):
    """A user's net worth on a given day.

    This is a materialized view owned by the summary recalculator: one row per
    (user_id, summary_date), overwritten on every recalculation.
    """

    __tablename__ = "financial_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "summary_date", name="uix_summary_user_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    summary_date = Column(Date, nullable=False)
    total_bank_balance = Column(Numeric(15, 2), nullable=False, default=0)
    total_investment_value = Column(Numeric(15, 2), nullable=False, default=0)
    total_real_estate_value = Column(Numeric(15, 2), nullable=False, default=0)
    total_asset_value = Column(Numeric(15, 2), nullable=False, default=0)
    total_net_worth = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    computed_at = Column(DateTime, default=utc_now)
    created_at = Column(DateTime, default=utc_now)
