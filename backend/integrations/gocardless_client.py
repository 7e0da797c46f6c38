"""GoCardless Bank Account Data API client.

Wraps the REST API (token, institutions, agreements, requisitions and
account data) behind typed methods. Account data endpoints are metered by a
per-account daily budget enforced locally before any network call.
"""

import logging
import threading
import time
from concurrent.futures import Future
from datetime import date
from decimal import Decimal
from typing import Optional

import httpx

from config import settings
from integrations.exceptions import (
    AggregatorError,
    AggregatorNotFound,
    AggregatorUnavailable,
    AuthenticationFailed,
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
from integrations.parsing_utils import parse_decimal, parse_iso_date
from integrations.rate_limit import RateLimitLedger

logger = logging.getLogger(__name__)

# Refresh the access token this many seconds before upstream expiry
_TOKEN_EXPIRY_MARGIN_SECONDS = 60
_DEFAULT_TOKEN_LIFETIME_SECONDS = 86400

DEFAULT_ACCESS_SCOPE = ("balances", "details", "transactions")


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("detail", "summary"):
            value = body.get(key)
            if value:
                return str(value)
    return f"HTTP {response.status_code}"


class GoCardlessClient:
    """Client for the GoCardless Bank Account Data API.

    One instance is shared per process so the cached access token and the
    rate-limit ledger are shared by every request.
    """

    def __init__(
        self,
        secret_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        ledger: Optional[RateLimitLedger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            secret_id: API secret id. Defaults to settings.GOCARDLESS_SECRET_ID.
            secret_key: API secret key. Defaults to settings.GOCARDLESS_SECRET_KEY.
            base_url: API root. Defaults to settings.GOCARDLESS_BASE_URL.
            timeout: Per-request timeout in seconds.
            ledger: Request budget store. A fresh one sized from
                    settings.GOCARDLESS_DAILY_REQUEST_LIMIT when omitted.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._secret_id = secret_id if secret_id is not None else settings.GOCARDLESS_SECRET_ID
        self._secret_key = secret_key if secret_key is not None else settings.GOCARDLESS_SECRET_KEY
        self._ledger = ledger or RateLimitLedger(
            daily_limit=settings.GOCARDLESS_DAILY_REQUEST_LIMIT
        )
        self._client = httpx.Client(
            base_url=base_url or settings.GOCARDLESS_BASE_URL,
            timeout=timeout or settings.GOCARDLESS_TIMEOUT_SECONDS,
            headers={"Accept": "application/json"},
            transport=transport,
        )

        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()
        self._refresh_future: Optional[Future] = None

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "GoCardless"

    @property
    def ledger(self) -> RateLimitLedger:
        return self._ledger

    def is_configured(self) -> bool:
        """Check whether both API secrets are present."""
        return bool(self._secret_id and self._secret_key)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self) -> str:
        """Return a valid access token, fetching a new one if needed.

        Concurrent callers that find the token missing or expired share a
        single refresh: the first becomes the owner and performs the
        request, the others wait on the same Future.

        Raises:
            AuthenticationFailed: Credentials missing/rejected, or the token
                endpoint could not be reached.
        """
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token
            future = self._refresh_future
            is_owner = future is None
            if is_owner:
                future = Future()
                self._refresh_future = future

        if not is_owner:
            return future.result()

        try:
            token, expires_in = self._fetch_token()
        except Exception as exc:
            with self._token_lock:
                self._refresh_future = None
            future.set_exception(exc)
            raise

        with self._token_lock:
            self._access_token = token
            self._token_expires_at = (
                time.monotonic() + max(0, expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS)
            )
            self._refresh_future = None
        future.set_result(token)
        return token

    def _fetch_token(self) -> tuple[str, int]:
        if not self.is_configured():
            raise AuthenticationFailed("GoCardless credentials are not configured")

        logger.info("GoCardless: requesting new access token")
        try:
            response = self._client.post(
                "/token/new/",
                json={"secret_id": self._secret_id, "secret_key": self._secret_key},
            )
        except httpx.TransportError as exc:
            raise AuthenticationFailed(
                f"GoCardless token endpoint unreachable: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise AuthenticationFailed(
                f"GoCardless authentication failed: {_error_message(response)}",
                status_code=response.status_code,
            )

        data = response.json()
        token = data.get("access")
        if not token:
            raise AuthenticationFailed("GoCardless token response missing access token")
        expires_in = int(data.get("access_expires") or _DEFAULT_TOKEN_LIFETIME_SECONDS)
        return token, expires_in

    def invalidate_token(self) -> None:
        """Drop the cached access token so the next call re-authenticates."""
        with self._token_lock:
            self._access_token = None
            self._token_expires_at = 0.0

    def validate_credentials(self) -> bool:
        """Check credentials against the token endpoint.

        Returns:
            True if a token could be obtained, False otherwise.
        """
        try:
            self.invalidate_token()
            self.authenticate()
            return True
        except AuthenticationFailed as exc:
            logger.warning("GoCardless: credential validation failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        account_id: Optional[str] = None,
    ):
        """Send an authenticated request and map failures to typed errors."""
        token = self.authenticate()
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise AggregatorUnavailable(f"GoCardless request timed out: {method} {path}") from exc
        except httpx.TransportError as exc:
            raise AggregatorUnavailable(f"GoCardless connection failed: {exc}") from exc

        status = response.status_code
        if status < 400:
            if status == 204 or not response.content:
                return {}
            return response.json()

        message = _error_message(response)
        if status in (401, 403):
            self.invalidate_token()
            raise AuthenticationFailed(
                f"GoCardless rejected the request: {message}", status_code=status
            )
        if status == 429:
            raise RateLimitExceeded(
                f"GoCardless rate limit exceeded: {message}", account_id=account_id
            )
        if status == 404:
            raise AggregatorNotFound(message, status_code=status)
        if status >= 500:
            raise AggregatorUnavailable(
                f"GoCardless service error: {message}", status_code=status
            )
        raise AggregatorError(message, status_code=status)

    def _consume_budget(self, account_id: str) -> None:
        if not self._ledger.try_acquire(account_id):
            logger.warning(
                "GoCardless: daily request budget exhausted for account %s", account_id
            )
            raise RateLimitExceeded(
                f"Daily request limit of {self._ledger.daily_limit} reached for account",
                account_id=account_id,
            )

    def remaining_requests(self, account_id: str) -> int:
        """Requests left today for ``account_id`` (does not consume one)."""
        return self._ledger.remaining(account_id)

    # ------------------------------------------------------------------
    # Institutions, agreements, requisitions
    # ------------------------------------------------------------------

    def list_institutions(self, country_code: str) -> list[Institution]:
        """List banks available in a country.

        Args:
            country_code: ISO 3166 alpha-2 code, any case.

        Raises:
            InvalidCountryCode: Unless the code is exactly two letters.
        """
        code = (country_code or "").strip()
        if len(code) != 2 or not code.isalpha():
            raise InvalidCountryCode(country_code)
        code = code.upper()

        data = self._request("GET", "/institutions/", params={"country": code})
        institutions = [
            Institution(
                id=item["id"],
                name=item.get("name") or item["id"],
                bic=item.get("bic"),
                logo=item.get("logo"),
                transaction_total_days=_parse_int(item.get("transaction_total_days")),
                countries=list(item.get("countries") or []),
            )
            for item in data or []
            if item.get("id")
        ]
        logger.info("GoCardless: %d institutions for %s", len(institutions), code)
        return institutions

    def create_end_user_agreement(
        self,
        institution_id: str,
        max_historical_days: int = 90,
        access_valid_for_days: int = 90,
        access_scope: tuple[str, ...] = DEFAULT_ACCESS_SCOPE,
    ) -> Agreement:
        """Create an end-user agreement describing the requested access."""
        data = self._request(
            "POST",
            "/agreements/enduser/",
            json={
                "institution_id": institution_id,
                "max_historical_days": max_historical_days,
                "access_valid_for_days": access_valid_for_days,
                "access_scope": list(access_scope),
            },
        )
        return Agreement(
            id=data["id"],
            institution_id=data.get("institution_id", institution_id),
            max_historical_days=int(data.get("max_historical_days", max_historical_days)),
            access_valid_for_days=int(
                data.get("access_valid_for_days", access_valid_for_days)
            ),
            access_scope=list(data.get("access_scope") or access_scope),
        )

    def create_requisition(
        self,
        institution_id: str,
        redirect_url: str,
        reference: str,
        user_language: str = "EN",
        agreement_id: Optional[str] = None,
    ) -> Requisition:
        """Start a consent flow. The returned ``link`` is the user's auth URL."""
        payload = {
            "redirect": redirect_url,
            "institution_id": institution_id,
            "reference": reference,
            "user_language": user_language,
        }
        if agreement_id:
            payload["agreement"] = agreement_id

        data = self._request("POST", "/requisitions/", json=payload)
        requisition = _parse_requisition(data)
        logger.info(
            "GoCardless: created requisition %s for institution %s",
            requisition.id, institution_id,
        )
        return requisition

    def get_requisition(self, requisition_id: str) -> Requisition:
        data = self._request("GET", f"/requisitions/{requisition_id}/")
        return _parse_requisition(data)

    def get_requisition_accounts(self, requisition_id: str) -> list[str]:
        """Account ids granted by a requisition (empty until authorized)."""
        return self.get_requisition(requisition_id).accounts

    def delete_requisition(self, requisition_id: str) -> None:
        self._request("DELETE", f"/requisitions/{requisition_id}/")
        logger.info("GoCardless: deleted requisition %s", requisition_id)

    # ------------------------------------------------------------------
    # Account data (metered)
    # ------------------------------------------------------------------

    def get_account_details(self, account_id: str) -> AccountDetails:
        self._consume_budget(account_id)
        data = self._request(
            "GET", f"/accounts/{account_id}/details/", account_id=account_id
        )
        account = data.get("account") or {}
        return AccountDetails(
            account_id=account_id,
            iban=account.get("iban"),
            name=account.get("name") or account.get("displayName"),
            product=account.get("product"),
            currency=account.get("currency"),
            cash_account_type=account.get("cashAccountType"),
            owner_name=account.get("ownerName"),
        )

    def get_account_balances(self, account_id: str) -> list[BalanceSnapshot]:
        self._consume_budget(account_id)
        data = self._request(
            "GET", f"/accounts/{account_id}/balances/", account_id=account_id
        )
        balances = []
        for item in data.get("balances") or []:
            amount_data = item.get("balanceAmount") or {}
            amount = parse_decimal(amount_data.get("amount"))
            if amount is None:
                logger.warning(
                    "GoCardless: skipping balance without amount for account %s",
                    account_id,
                )
                continue
            balances.append(
                BalanceSnapshot(
                    amount=amount,
                    currency=amount_data.get("currency") or "",
                    balance_type=item.get("balanceType") or "",
                    reference_date=parse_iso_date(item.get("referenceDate")),
                )
            )
        return balances

    def get_account_transactions(
        self,
        account_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> TransactionsPage:
        """Fetch booked and pending transactions in an optional date window."""
        self._consume_budget(account_id)
        params = {}
        if date_from:
            params["date_from"] = date_from.isoformat()
        if date_to:
            params["date_to"] = date_to.isoformat()

        data = self._request(
            "GET",
            f"/accounts/{account_id}/transactions/",
            params=params or None,
            account_id=account_id,
        )
        transactions = data.get("transactions") or {}
        page = TransactionsPage(
            booked=_parse_transactions(transactions.get("booked"), booked=True),
            pending=_parse_transactions(transactions.get("pending"), booked=False),
        )
        logger.debug(
            "GoCardless: account %s returned %d booked, %d pending transactions",
            account_id, len(page.booked), len(page.pending),
        )
        return page


def _parse_int(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _parse_requisition(data: dict) -> Requisition:
    return Requisition(
        id=data["id"],
        status=data.get("status") or "",
        link=data.get("link") or "",
        institution_id=data.get("institution_id"),
        reference=data.get("reference"),
        agreement_id=data.get("agreement"),
        accounts=list(data.get("accounts") or []),
    )


def _describe(item: dict) -> Optional[str]:
    """Best description GoCardless offers for a transaction."""
    unstructured = item.get("remittanceInformationUnstructured")
    if unstructured:
        return unstructured
    lines = item.get("remittanceInformationUnstructuredArray")
    if lines:
        return " ".join(str(line) for line in lines)
    structured = item.get("remittanceInformationStructured")
    if structured:
        return structured
    return item.get("additionalInformation")


def _parse_transactions(items, booked: bool) -> list[BankTransaction]:
    parsed = []
    for item in items or []:
        amount_data = item.get("transactionAmount") or {}
        amount = parse_decimal(amount_data.get("amount"))
        if amount is None:
            continue
        parsed.append(
            BankTransaction(
                amount=amount,
                currency=amount_data.get("currency") or "",
                booking_date=parse_iso_date(item.get("bookingDate")),
                transaction_id=item.get("transactionId") or item.get("internalTransactionId"),
                value_date=parse_iso_date(item.get("valueDate")),
                description=_describe(item),
                creditor_name=item.get("creditorName"),
                debtor_name=item.get("debtorName"),
                reference=item.get("endToEndId") or item.get("entryReference"),
                bank_transaction_code=item.get("proprietaryBankTransactionCode")
                or item.get("bankTransactionCode"),
                booked=booked,
                raw_data=item,
            )
        )
    return parsed


def transaction_type_for(amount: Decimal) -> str:
    """Classify a signed amount: inflows are credits, outflows debits."""
    return "credit" if amount >= 0 else "debit"
