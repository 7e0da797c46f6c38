"""SQLAlchemy ORM models."""

from .account_balance import AccountBalance
from .bank_account import BankAccount
from .bank_connection import CONNECTION_STATUSES, BankConnection
from .financial_summary import FinancialSummary
from .financial_transaction import FinancialTransaction
from .holdings import Asset, Investment, Property
from .utils import generate_uuid

__all__ = ["AccountBalance", "Asset", "BankAccount", "BankConnection", "CONNECTION_STATUSES", "FinancialSummary", "FinancialTransaction", "Investment", "Property", "generate_uuid"]
