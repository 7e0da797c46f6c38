"""Test fixtures and sample data."""
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import AccountBalance, BankAccount, BankConnection

USER_ID = "5f0c6a1e-8b7d-4c1a-9d3e-2a6f4b8c0d11"
OTHER_USER_ID = "9a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"


def create_connection(
    db: Session,
    user_id: str = USER_ID,
    requisition_id: str = "req-linked-1",
    status: str = "linked",
    institution_id: str = "REVOLUT_REVOGB21",
    institution_name: str = "Revolut",
    last_sync_at: Optional[datetime] = None,
    **kwargs,
) -> BankConnection:
    """Create a BankConnection row."""
    connection = BankConnection(
        user_id=user_id,
        requisition_id=requisition_id,
        reference=kwargs.pop("reference", f"user-{user_id}-1717000000000"),
        institution_id=institution_id,
        institution_name=institution_name,
        country_code="GB",
        status=status,
        last_sync_at=last_sync_at,
        **kwargs,
    )
    db.add(connection)
    db.flush()
    return connection


def create_bank_account(
    db: Session,
    connection: BankConnection,
    external_id: str = "acc-ext-1",
    name: str = "Current Account",
    is_active: bool = True,
    **kwargs,
) -> BankAccount:
    """Create an aggregator BankAccount under ``connection``."""
    account = BankAccount(
        user_id=connection.user_id,
        connection_id=connection.id,
        external_id=external_id,
        name=name,
        bank_name=connection.institution_name,
        account_type=kwargs.pop("account_type", "checking"),
        currency=kwargs.pop("currency", "EUR"),
        connection_type=kwargs.pop("connection_type", "aggregator"),
        is_active=is_active,
        **kwargs,
    )
    db.add(account)
    db.flush()
    return account


def create_balance(
    db: Session,
    account: BankAccount,
    amount: str,
    balance_date: date,
    source: str = "aggregator",
) -> AccountBalance:
    balance = AccountBalance(
        user_id=account.user_id,
        account_id=account.id,
        amount=Decimal(amount),
        currency=account.currency,
        balance_date=balance_date,
        source=source,
    )
    db.add(balance)
    db.flush()
    return balance


@pytest.fixture
def linked_connection(db: Session) -> BankConnection:
    """A linked connection for USER_ID, never synced."""
    connection = create_connection(db)
    db.commit()
    return connection


@pytest.fixture
def bank_account(db: Session, linked_connection: BankConnection) -> BankAccount:
    """An active aggregator account (external id ``acc-ext-1``)."""
    account = create_bank_account(db, linked_connection)
    db.commit()
    return account


@pytest.fixture
def utc_now() -> datetime:
    return datetime.now(timezone.utc)
