"""Normalized payloads returned by the GoCardless client.

The client maps raw JSON into these dataclasses so the services never
handle upstream field names (``balanceAmount``, ``cashAccountType``...).
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

# Upstream requisition status codes
REQUISITION_LINKED = "LN"
REQUISITION_EXPIRED = "EX"
REQUISITION_SUSPENDED = "SU"
REQUISITION_REJECTED = "RJ"


@dataclass
class Institution:
    """A bank as cataloged by the aggregator for one or more countries."""

    id: str
    name: str
    bic: str | None = None
    logo: str | None = None
    transaction_total_days: int | None = None  # Supported history window
    countries: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "bic": self.bic,
            "logo": self.logo,
            "transaction_total_days": self.transaction_total_days,
            "countries": list(self.countries),
        }


@dataclass
class Agreement:
    """End-user agreement: the access scope and windows the user consents to."""

    id: str
    institution_id: str
    max_historical_days: int
    access_valid_for_days: int
    access_scope: list[str] = field(default_factory=list)


@dataclass
class Requisition:
    """One consent flow between a user and an institution."""

    id: str
    status: str
    link: str  # URL the user must visit to authorize
    institution_id: str | None = None
    reference: str | None = None
    agreement_id: str | None = None
    accounts: list[str] = field(default_factory=list)

    @property
    def is_linked(self) -> bool:
        return self.status == REQUISITION_LINKED


@dataclass
class AccountDetails:
    """Descriptive data for one aggregator account."""

    account_id: str
    iban: str | None = None
    name: str | None = None
    product: str | None = None
    currency: str | None = None
    cash_account_type: str | None = None
    owner_name: str | None = None


@dataclass
class BalanceSnapshot:
    """One balance figure as reported by the bank."""

    amount: Decimal
    currency: str
    balance_type: str  # e.g. "interimAvailable", "closingBooked", "expected"
    reference_date: date | None = None


@dataclass
class BankTransaction:
    """A booked or pending transaction as reported by the bank."""

    amount: Decimal
    currency: str
    booking_date: date | None
    transaction_id: str | None = None
    value_date: date | None = None
    description: str | None = None
    creditor_name: str | None = None
    debtor_name: str | None = None
    reference: str | None = None
    bank_transaction_code: str | None = None
    booked: bool = True
    raw_data: dict | None = None  # Raw provider response for debugging


@dataclass
class TransactionsPage:
    """Transactions for one account, split by booking state."""

    booked: list[BankTransaction] = field(default_factory=list)
    pending: list[BankTransaction] = field(default_factory=list)
