"""Mock implementations for external services."""

from datetime import date
from decimal import Decimal
from typing import Optional

from integrations.exceptions import (
    AggregatorNotFound,
    AggregatorUnavailable,
    InvalidCountryCode,
    RateLimitExceeded,
)
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


SAMPLE_INSTITUTIONS = [
    Institution(
        id="REVOLUT_REVOGB21",
        name="Revolut",
        bic="REVOGB21",
        logo="https://cdn.nordigen.com/ais/REVOLUT_REVOGB21.png",
        transaction_total_days=730,
        countries=["GB"],
    ),
    Institution(
        id="MONZO_MONZGB2L",
        name="Monzo",
        bic="MONZGB2L",
        transaction_total_days=90,
        countries=["GB"],
    ),
    Institution(
        id="barclays_BARCGB22",
        name="barclays",
        bic="BARCGB22",
        transaction_total_days=730,
        countries=["GB"],
    ),
]


def sample_balances(
    amount: str = "1500.00",
    available: Optional[str] = "1450.00",
    currency: str = "EUR",
) -> list[BalanceSnapshot]:
    """Balances as a bank typically reports them (booked + available)."""
    balances = [
        BalanceSnapshot(
            amount=Decimal(amount),
            currency=currency,
            balance_type="closingBooked",
            reference_date=date(2024, 6, 1),
        )
    ]
    if available is not None:
        balances.append(
            BalanceSnapshot(
                amount=Decimal(available),
                currency=currency,
                balance_type="interimAvailable",
            )
        )
    return balances


def sample_transaction(
    transaction_id: Optional[str],
    amount: str,
    booking_date: date = date(2024, 6, 1),
    description: str = "Card payment",
    currency: str = "EUR",
    booked: bool = True,
) -> BankTransaction:
    value = Decimal(amount)
    return BankTransaction(
        amount=value,
        currency=currency,
        booking_date=booking_date,
        transaction_id=transaction_id,
        value_date=booking_date,
        description=description,
        creditor_name="Coffee Shop" if value < 0 else None,
        debtor_name="Employer Ltd" if value >= 0 else None,
        booked=booked,
    )


def sample_transactions_page() -> TransactionsPage:
    """Two booked transactions and one pending."""
    return TransactionsPage(
        booked=[
            sample_transaction("tx-1", "-4.50", description="Coffee"),
            sample_transaction("tx-2", "2500.00", description="Salary"),
        ],
        pending=[
            sample_transaction(None, "-12.00", description="Pending", booked=False),
        ],
    )


class MockGoCardlessClient:
    """In-memory stand-in for GoCardlessClient.

    Shares the real RateLimitLedger so budget behaviour matches production.
    Failures can be injected per method (``fail("get_account_balances")``)
    or per method and account (``fail("get_account_balances", "acc-1")``).
    """

    def __init__(
        self,
        institutions: Optional[list[Institution]] = None,
        ledger: Optional[RateLimitLedger] = None,
        configured: bool = True,
    ):
        self.ledger = ledger or RateLimitLedger(daily_limit=4)
        self.institutions = list(institutions if institutions is not None else SAMPLE_INSTITUTIONS)
        self.requisitions: dict[str, Requisition] = {}
        self.details: dict[str, AccountDetails] = {}
        self.balances: dict[str, list[BalanceSnapshot]] = {}
        self.transactions: dict[str, TransactionsPage] = {}
        self.deleted_requisitions: list[str] = []
        self.calls: list[tuple] = []
        self._failures: dict[tuple[str, Optional[str]], Exception] = {}
        self._configured = configured
        self._counter = 0

    # Test helpers

    def fail(self, method: str, account_id: Optional[str] = None, exc: Optional[Exception] = None):
        self._failures[(method, account_id)] = exc or AggregatorUnavailable(
            f"Mock {method} failure"
        )

    def authorize(self, requisition_id: str, account_ids: list[str], status: str = "LN"):
        """Simulate the user completing (or abandoning) the consent flow."""
        requisition = self.requisitions[requisition_id]
        requisition.status = status
        requisition.accounts = list(account_ids)

    def add_account(
        self,
        account_id: str,
        name: str = "Current Account",
        currency: str = "EUR",
        cash_account_type: str = "CACC",
        iban: str = "GB33BUKB20201555555555",
        balances: Optional[list[BalanceSnapshot]] = None,
        transactions: Optional[TransactionsPage] = None,
    ):
        self.details[account_id] = AccountDetails(
            account_id=account_id,
            iban=iban,
            name=name,
            currency=currency,
            cash_account_type=cash_account_type,
        )
        self.balances[account_id] = balances if balances is not None else sample_balances()
        self.transactions[account_id] = (
            transactions if transactions is not None else sample_transactions_page()
        )

    def _check_failure(self, method: str, account_id: Optional[str] = None):
        exc = self._failures.get((method, account_id)) or self._failures.get((method, None))
        if exc is not None:
            raise exc

    def _consume(self, account_id: str):
        if not self.ledger.try_acquire(account_id):
            raise RateLimitExceeded(
                "Daily request limit reached for account", account_id=account_id
            )

    # GoCardlessClient surface

    @property
    def provider_name(self) -> str:
        return "GoCardless"

    def is_configured(self) -> bool:
        return self._configured

    def validate_credentials(self) -> bool:
        return self._configured

    def authenticate(self) -> str:
        return "mock-access-token"

    def remaining_requests(self, account_id: str) -> int:
        return self.ledger.remaining(account_id)

    def list_institutions(self, country_code: str) -> list[Institution]:
        self.calls.append(("list_institutions", country_code))
        code = (country_code or "").strip()
        if len(code) != 2 or not code.isalpha():
            raise InvalidCountryCode(country_code)
        self._check_failure("list_institutions")
        code = code.upper()
        return [i for i in self.institutions if not i.countries or code in i.countries]

    def create_end_user_agreement(
        self,
        institution_id: str,
        max_historical_days: int = 90,
        access_valid_for_days: int = 90,
        access_scope=("balances", "details", "transactions"),
    ) -> Agreement:
        self.calls.append(("create_end_user_agreement", institution_id))
        self._check_failure("create_end_user_agreement")
        return Agreement(
            id=f"agr-{institution_id}",
            institution_id=institution_id,
            max_historical_days=max_historical_days,
            access_valid_for_days=access_valid_for_days,
            access_scope=list(access_scope),
        )

    def create_requisition(
        self,
        institution_id: str,
        redirect_url: str,
        reference: str,
        user_language: str = "EN",
        agreement_id: Optional[str] = None,
    ) -> Requisition:
        self.calls.append(("create_requisition", institution_id, redirect_url, reference))
        self._check_failure("create_requisition")
        self._counter += 1
        requisition_id = f"req-{self._counter}"
        requisition = Requisition(
            id=requisition_id,
            status="CR",
            link=f"https://ob.gocardless.com/psd2/start/{requisition_id}/{institution_id}",
            institution_id=institution_id,
            reference=reference,
            agreement_id=agreement_id,
        )
        self.requisitions[requisition_id] = requisition
        return requisition

    def get_requisition(self, requisition_id: str) -> Requisition:
        self.calls.append(("get_requisition", requisition_id))
        self._check_failure("get_requisition")
        if requisition_id not in self.requisitions:
            raise AggregatorNotFound("Requisition not found", status_code=404)
        return self.requisitions[requisition_id]

    def get_requisition_accounts(self, requisition_id: str) -> list[str]:
        return list(self.get_requisition(requisition_id).accounts)

    def delete_requisition(self, requisition_id: str) -> None:
        self.calls.append(("delete_requisition", requisition_id))
        self._check_failure("delete_requisition")
        self.deleted_requisitions.append(requisition_id)
        self.requisitions.pop(requisition_id, None)

    def get_account_details(self, account_id: str) -> AccountDetails:
        self.calls.append(("get_account_details", account_id))
        self._consume(account_id)
        self._check_failure("get_account_details", account_id)
        return self.details.get(account_id) or AccountDetails(account_id=account_id)

    def get_account_balances(self, account_id: str) -> list[BalanceSnapshot]:
        self.calls.append(("get_account_balances", account_id))
        self._consume(account_id)
        self._check_failure("get_account_balances", account_id)
        return list(self.balances.get(account_id, []))

    def get_account_transactions(
        self,
        account_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> TransactionsPage:
        self.calls.append(("get_account_transactions", account_id, date_from, date_to))
        self._consume(account_id)
        self._check_failure("get_account_transactions", account_id)
        return self.transactions.get(account_id) or TransactionsPage()

    def close(self) -> None:
        pass
