"""Non-bank holdings read by the net-worth summary.

Only the columns the summary needs are modeled here; the screens that
manage these records live outside this service.
"""

from sqlalchemy import Column, DateTime, Numeric, String

from database import Base
from models.utils import generate_uuid, utc_now


class Investment(Base):
    """A private or public investment position."""

    __tablename__ = "investments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=True)
    initial_investment_amount = Column(Numeric(15, 2), nullable=True)
    created_at = Column(DateTime, default=utc_now)


class Property(Base):
    """A real-estate property."""

    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=True)
    current_market_value = Column(Numeric(15, 2), nullable=True)
    acquisition_price = Column(Numeric(15, 2), nullable=True)
    created_at = Column(DateTime, default=utc_now)


class Asset(Base):
    """Any other valuable asset (vehicles, collectibles, equipment)."""

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), index=True, nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    current_value = Column(Numeric(15, 2), nullable=True)
    created_at = Column(DateTime, default=utc_now)
