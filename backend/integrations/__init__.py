"""External API integrations.

This package contains:
- GoCardless client: Bank Account Data API (institutions, requisitions,
  account details, balances and transactions)
- Rate-limit ledger: per-account daily request budget
- Typed payloads and exceptions shared with the services layer
"""

from integrations.gocardless_client import GoCardlessClient
from integrations.gocardless_types import (
    AccountDetails,
    Agreement,
    BalanceSnapshot,
    BankTransaction,
    Institution,
    Requisition,
    TransactionsPage,
)
from integrations.rate_limit import RateLimitLedger

__all__ = [
    "AccountDetails",
    "Agreement",
    "BalanceSnapshot",
    "BankTransaction",
    "GoCardlessClient",
    "Institution",
    "RateLimitLedger",
    "Requisition",
    "TransactionsPage",
]
