"""Connection service - links, reconciles and removes bank connections."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from integrations.exceptions import AggregatorError, AuthenticationFailed
from integrations.gocardless_client import GoCardlessClient
from integrations.gocardless_types import (
    REQUISITION_EXPIRED,
    REQUISITION_LINKED,
    REQUISITION_REJECTED,
    REQUISITION_SUSPENDED,
    AccountDetails,
)
from models import BankAccount, BankConnection
from services.exceptions import (
    ConnectionNotReady,
    NotFoundOrForbidden,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_VALID_FOR_DAYS = 90
DEFAULT_MAX_HISTORICAL_DAYS = 90

# Upstream requisition status -> local connection status
_STATUS_MAP = {
    REQUISITION_LINKED: "linked",
    REQUISITION_EXPIRED: "expired",
    REQUISITION_SUSPENDED: "suspended",
    REQUISITION_REJECTED: "error",
}

# ISO 20022 cash account type -> local account type
_ACCOUNT_TYPES = {
    "CACC": "checking",
    "CASH": "checking",
    "TRAN": "checking",
    "SVGS": "savings",
    "CARD": "credit",
    "LOAN": "loan",
    "MGLD": "investment",
}


def make_reference(user_id: str, now_ms: Optional[int] = None) -> str:
    """Mint the caller reference sent with a requisition."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"user-{user_id}-{now_ms}"


def map_account_type(cash_account_type: Optional[str]) -> str:
    return _ACCOUNT_TYPES.get((cash_account_type or "").upper(), "other")


@dataclass
class InitiatedConnection:
    """Outcome of starting a consent flow."""

    requisition_id: str
    auth_url: str
    connection: BankConnection


class ConnectionService:
    """Service for the lifecycle of aggregator connections."""

    def __init__(self, client: GoCardlessClient):
        self._client = client

    def initiate_bank_connection(
        self,
        db: Session,
        user_id: str,
        institution_id: str,
        institution_name: str,
        country_code: str,
        redirect_url: str,
        reference: Optional[str] = None,
    ) -> InitiatedConnection:
        """Start linking a bank for ``user_id``.

        Creates an end-user agreement (best-effort), then the requisition,
        and records a ``created`` connection. Does not wait for the user to
        authorize: the returned ``auth_url`` is where they must go next.

        Raises:
            ValidationError: A required field is missing or malformed.
            AggregatorError: The requisition could not be created.
            PersistenceError: The connection row could not be written.
        """
        if not institution_id or not institution_name:
            raise ValidationError("institutionId and institutionName are required")
        code = (country_code or "").strip()
        if len(code) != 2 or not code.isalpha():
            raise ValidationError("countryCode must be a 2-letter code")
        code = code.upper()
        reference = reference or make_reference(user_id)

        agreement_id = None
        max_historical_days = DEFAULT_MAX_HISTORICAL_DAYS
        access_valid_for_days = DEFAULT_ACCESS_VALID_FOR_DAYS
        try:
            agreement = self._client.create_end_user_agreement(
                institution_id,
                max_historical_days=max_historical_days,
                access_valid_for_days=access_valid_for_days,
            )
            agreement_id = agreement.id
            max_historical_days = agreement.max_historical_days
            access_valid_for_days = agreement.access_valid_for_days
        except AuthenticationFailed:
            raise
        except AggregatorError as exc:
            # Requisition falls back to the institution's default agreement
            logger.warning(
                "Agreement creation failed for institution %s, using defaults: %s",
                institution_id, exc,
            )

        requisition = self._client.create_requisition(
            institution_id=institution_id,
            redirect_url=redirect_url,
            reference=reference,
            agreement_id=agreement_id,
        )

        connection = BankConnection(
            user_id=user_id,
            requisition_id=requisition.id,
            reference=reference,
            institution_id=institution_id,
            institution_name=institution_name,
            country_code=code,
            status="created",
            agreement_id=agreement_id,
            max_historical_days=max_historical_days,
            access_valid_for_days=access_valid_for_days,
        )
        try:
            db.add(connection)
            db.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to store connection for requisition %s: %s", requisition.id, exc
            )
            raise PersistenceError("Failed to store bank connection") from exc

        logger.info(
            "Bank connection initiated: user=%s institution=%s requisition=%s",
            user_id, institution_id, requisition.id,
        )
        return InitiatedConnection(
            requisition_id=requisition.id,
            auth_url=requisition.link,
            connection=connection,
        )

    def complete_bank_connection(self, db: Session, requisition_id: str) -> BankConnection:
        """Reconcile a connection with the aggregator's requisition status.

        When the requisition is linked, the connection becomes ``linked`` and
        one BankAccount is materialized per granted account id. Calling this
        again is harmless: known accounts are not duplicated.

        Raises:
            NotFoundOrForbidden: No local connection for ``requisition_id``.
            ConnectionNotReady: Upstream status is not linked. The new status
                has been flushed to the session before raising.
        """
        connection = (
            db.query(BankConnection)
            .filter(BankConnection.requisition_id == requisition_id)
            .first()
        )
        if not connection:
            raise NotFoundOrForbidden("Connection not found")

        requisition = self._client.get_requisition(requisition_id)
        new_status = _STATUS_MAP.get(requisition.status, "created")

        if new_status != "linked":
            if new_status != "created":
                connection.status = new_status
                db.flush()
            logger.info(
                "Requisition %s not linked (upstream status %s)",
                requisition_id, requisition.status,
            )
            raise ConnectionNotReady(
                f"Bank connection is not authorized (status: {connection.status})",
                status=connection.status,
            )

        now = datetime.now(timezone.utc)
        if connection.status != "linked" or connection.agreement_accepted_at is None:
            connection.agreement_accepted_at = now
            connection.agreement_expires_at = now + timedelta(
                days=connection.access_valid_for_days or DEFAULT_ACCESS_VALID_FOR_DAYS
            )
        connection.status = "linked"
        connection.sync_error = None

        created = self._materialize_accounts(db, connection, requisition.accounts)
        db.flush()
        logger.info(
            "Connection %s linked: %d accounts granted, %d new",
            requisition_id, len(requisition.accounts), created,
        )
        return connection

    def _materialize_accounts(
        self,
        db: Session,
        connection: BankConnection,
        external_ids: list[str],
    ) -> int:
        """Create a BankAccount per granted id, skipping ones the user already has.

        Returns:
            Number of accounts created.
        """
        created = 0
        for external_id in external_ids:
            existing = (
                db.query(BankAccount)
                .filter(
                    BankAccount.user_id == connection.user_id,
                    BankAccount.external_id == external_id,
                )
                .first()
            )
            if existing:
                if not existing.is_active or existing.connection_id != connection.id:
                    existing.is_active = True
                    existing.connection_id = connection.id
                    logger.info("Reactivated account %s", existing.id)
                continue

            details = self._fetch_details(external_id)
            iban = details.iban if details else None
            account = BankAccount(
                user_id=connection.user_id,
                connection_id=connection.id,
                external_id=external_id,
                iban=iban,
                account_number_last4=iban[-4:] if iban else None,
                name=_account_name(details, connection.institution_name),
                bank_name=connection.institution_name,
                account_type=map_account_type(details.cash_account_type if details else None),
                currency=(details.currency if details and details.currency else settings.SUMMARY_CURRENCY),
                connection_type="aggregator",
                is_active=True,
            )
            db.add(account)
            created += 1
        return created

    def _fetch_details(self, external_id: str) -> Optional[AccountDetails]:
        try:
            return self._client.get_account_details(external_id)
        except AggregatorError as exc:
            logger.warning(
                "Could not fetch details for account %s, using fallback name: %s",
                external_id, exc,
            )
            return None

    @staticmethod
    def find_connection_for_callback(db: Session, ref: Optional[str]) -> Optional[BankConnection]:
        """Resolve the ``ref`` the aggregator echoes back on redirect.

        Only an exact requisition id or stored reference matches.
        """
        if not ref:
            return None

        connection = (
            db.query(BankConnection).filter(BankConnection.requisition_id == ref).first()
        )
        if connection:
            return connection

        return db.query(BankConnection).filter(BankConnection.reference == ref).first()

    def disconnect_bank(self, db: Session, user_id: str, requisition_id: str) -> BankConnection:
        """Disconnect one of the user's connections.

        The upstream requisition is deleted best-effort. Locally the
        connection is marked ``suspended`` and its accounts deactivated; no
        rows are deleted.

        Raises:
            ValidationError: ``requisition_id`` is empty.
            NotFoundOrForbidden: Unknown requisition or owned by someone else.
        """
        if not requisition_id:
            raise ValidationError("requisitionId is required")

        connection = (
            db.query(BankConnection)
            .filter(
                BankConnection.requisition_id == requisition_id,
                BankConnection.user_id == user_id,
            )
            .first()
        )
        if not connection:
            raise NotFoundOrForbidden("Connection not found")

        try:
            self._client.delete_requisition(requisition_id)
        except AggregatorError as exc:
            logger.warning(
                "Upstream delete of requisition %s failed, disconnecting locally: %s",
                requisition_id, exc,
            )

        connection.status = "suspended"
        deactivated = (
            db.query(BankAccount)
            .filter(
                BankAccount.connection_id == connection.id,
                BankAccount.is_active.is_(True),
            )
            .update({BankAccount.is_active: False}, synchronize_session="fetch")
        )
        db.flush()

        logger.info(
            "Disconnected %s for user %s (%d accounts deactivated)",
            connection.institution_name, user_id, deactivated,
        )
        return connection

    @staticmethod
    def list_connections(db: Session, user_id: str) -> list[BankConnection]:
        return (
            db.query(BankConnection)
            .filter(BankConnection.user_id == user_id)
            .order_by(BankConnection.created_at.desc())
            .all()
        )


def _account_name(details: Optional[AccountDetails], institution_name: str) -> str:
    if details:
        if details.name:
            return details.name
        if details.product:
            return details.product
    return f"{institution_name} Account"
