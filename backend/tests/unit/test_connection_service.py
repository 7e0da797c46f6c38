"""Tests for ConnectionService."""

from datetime import timedelta

import pytest

from integrations.exceptions import (
    AggregatorUnavailable,
    AuthenticationFailed,
    RateLimitExceeded,
)
from models import BankAccount, BankConnection
from services.connection_service import (
    ConnectionService,
    make_reference,
    map_account_type,
)
from services.exceptions import ConnectionNotReady, NotFoundOrForbidden, ValidationError
from tests.fixtures import OTHER_USER_ID, USER_ID, create_bank_account, create_connection
from tests.fixtures.mocks import MockGoCardlessClient

REDIRECT = "https://app.test/api/finances/callback"


@pytest.fixture
def gocardless():
    return MockGoCardlessClient()


@pytest.fixture
def service(gocardless):
    return ConnectionService(gocardless)


def _initiate(service, db, **overrides):
    kwargs = dict(
        user_id=USER_ID,
        institution_id="REVOLUT_REVOGB21",
        institution_name="Revolut",
        country_code="gb",
        redirect_url=REDIRECT,
    )
    kwargs.update(overrides)
    return service.initiate_bank_connection(db, **kwargs)


class TestHelpers:
    def test_make_reference(self):
        assert make_reference("u1", now_ms=1717000000000) == "user-u1-1717000000000"

    @pytest.mark.parametrize(
        "cash_type, expected",
        [
            ("CACC", "checking"),
            ("SVGS", "savings"),
            ("CARD", "credit"),
            ("LOAN", "loan"),
            ("MGLD", "investment"),
            ("cacc", "checking"),
            ("ODFT", "other"),
            (None, "other"),
        ],
    )
    def test_map_account_type(self, cash_type, expected):
        assert map_account_type(cash_type) == expected


class TestInitiateBankConnection:
    def test_creates_created_connection(self, db, service, gocardless):
        initiated = _initiate(service, db)

        assert initiated.requisition_id == "req-1"
        assert initiated.auth_url.startswith("https://ob.gocardless.com/psd2/start/req-1")

        connection = db.query(BankConnection).one()
        assert connection.user_id == USER_ID
        assert connection.status == "created"
        assert connection.country_code == "GB"
        assert connection.agreement_id == "agr-REVOLUT_REVOGB21"
        assert connection.access_valid_for_days == 90
        assert connection.reference.startswith(f"user-{USER_ID}-")

    def test_requisition_gets_redirect_and_reference(self, db, service, gocardless):
        _initiate(service, db, reference="user-x-1")
        call = next(c for c in gocardless.calls if c[0] == "create_requisition")
        assert call == ("create_requisition", "REVOLUT_REVOGB21", REDIRECT, "user-x-1")

    def test_agreement_failure_falls_back_to_defaults(self, db, service, gocardless):
        gocardless.fail("create_end_user_agreement")

        initiated = _initiate(service, db)

        connection = db.query(BankConnection).one()
        assert initiated.requisition_id == connection.requisition_id
        assert connection.agreement_id is None
        assert gocardless.requisitions[initiated.requisition_id].agreement_id is None

    def test_agreement_auth_failure_propagates(self, db, service, gocardless):
        gocardless.fail("create_end_user_agreement", exc=AuthenticationFailed("bad creds"))
        with pytest.raises(AuthenticationFailed):
            _initiate(service, db)
        assert db.query(BankConnection).count() == 0

    def test_requisition_failure_stores_nothing(self, db, service, gocardless):
        gocardless.fail("create_requisition")
        with pytest.raises(AggregatorUnavailable):
            _initiate(service, db)
        assert db.query(BankConnection).count() == 0

    @pytest.mark.parametrize("code", ["GBR", "G", "", "1A"])
    def test_bad_country_code(self, db, service, code):
        with pytest.raises(ValidationError):
            _initiate(service, db, country_code=code)

    def test_missing_institution(self, db, service):
        with pytest.raises(ValidationError):
            _initiate(service, db, institution_id="")


class TestCompleteBankConnection:
    def test_linked_requisition_creates_accounts(self, db, service, gocardless):
        initiated = _initiate(service, db)
        gocardless.add_account("acc-1", name="Main", cash_account_type="CACC")
        gocardless.add_account("acc-2", name="Savings", cash_account_type="SVGS", currency="GBP")
        gocardless.authorize(initiated.requisition_id, ["acc-1", "acc-2"])

        connection = service.complete_bank_connection(db, initiated.requisition_id)

        assert connection.status == "linked"
        assert connection.agreement_accepted_at is not None
        assert connection.agreement_expires_at - connection.agreement_accepted_at == timedelta(days=90)

        accounts = {a.external_id: a for a in db.query(BankAccount).all()}
        assert set(accounts) == {"acc-1", "acc-2"}
        assert accounts["acc-1"].name == "Main"
        assert accounts["acc-1"].account_type == "checking"
        assert accounts["acc-1"].account_number_last4 == "5555"
        assert accounts["acc-2"].account_type == "savings"
        assert accounts["acc-2"].currency == "GBP"
        assert all(a.connection_id == connection.id for a in accounts.values())
        assert all(a.user_id == USER_ID for a in accounts.values())

    def test_is_idempotent(self, db, service, gocardless):
        initiated = _initiate(service, db)
        gocardless.add_account("acc-1")
        gocardless.authorize(initiated.requisition_id, ["acc-1"])

        service.complete_bank_connection(db, initiated.requisition_id)
        service.complete_bank_connection(db, initiated.requisition_id)

        assert db.query(BankAccount).count() == 1

    def test_details_failure_uses_fallback_name(self, db, service, gocardless):
        initiated = _initiate(service, db)
        gocardless.fail("get_account_details", "acc-1", exc=RateLimitExceeded("limit"))
        gocardless.authorize(initiated.requisition_id, ["acc-1"])

        service.complete_bank_connection(db, initiated.requisition_id)

        account = db.query(BankAccount).one()
        assert account.name == "Revolut Account"
        assert account.account_type == "other"

    def test_reactivates_previously_deactivated_account(self, db, service, gocardless):
        old = create_connection(db, requisition_id="req-old", status="suspended")
        old_account = create_bank_account(db, old, external_id="acc-1", is_active=False)

        initiated = _initiate(service, db)
        gocardless.authorize(initiated.requisition_id, ["acc-1"])
        connection = service.complete_bank_connection(db, initiated.requisition_id)

        db.refresh(old_account)
        assert db.query(BankAccount).count() == 1
        assert old_account.is_active is True
        assert old_account.connection_id == connection.id

    @pytest.mark.parametrize(
        "upstream, local",
        [("EX", "expired"), ("SU", "suspended"), ("RJ", "error")],
    )
    def test_terminal_statuses_raise_not_ready(self, db, service, gocardless, upstream, local):
        initiated = _initiate(service, db)
        gocardless.authorize(initiated.requisition_id, [], status=upstream)

        with pytest.raises(ConnectionNotReady) as exc_info:
            service.complete_bank_connection(db, initiated.requisition_id)

        assert exc_info.value.status == local
        assert db.query(BankConnection).one().status == local
        assert db.query(BankAccount).count() == 0

    def test_pending_authorization_stays_created(self, db, service, gocardless):
        initiated = _initiate(service, db)
        gocardless.authorize(initiated.requisition_id, [], status="GA")

        with pytest.raises(ConnectionNotReady):
            service.complete_bank_connection(db, initiated.requisition_id)
        assert db.query(BankConnection).one().status == "created"

    def test_unknown_requisition(self, db, service):
        with pytest.raises(NotFoundOrForbidden):
            service.complete_bank_connection(db, "nope")


class TestFindConnectionForCallback:
    def test_by_requisition_id(self, db):
        connection = create_connection(db, requisition_id="req-9")
        assert ConnectionService.find_connection_for_callback(db, "req-9") is connection

    def test_by_stored_reference(self, db):
        connection = create_connection(db, reference="user-abc-123")
        assert ConnectionService.find_connection_for_callback(db, "user-abc-123") is connection

    def test_user_id_shaped_ref_does_not_resolve(self, db):
        create_connection(db, requisition_id="req-b", status="created")

        forged = f"user-{USER_ID}-1999999999999"

        assert ConnectionService.find_connection_for_callback(db, forged) is None

    def test_unknown_ref(self, db):
        assert ConnectionService.find_connection_for_callback(db, "whatever") is None
        assert ConnectionService.find_connection_for_callback(db, None) is None


class TestDisconnectBank:
    def test_marks_suspended_and_deactivates_accounts(self, db, service, gocardless):
        connection = create_connection(db, requisition_id="req-1")
        account = create_bank_account(db, connection)
        other = create_connection(db, requisition_id="req-2", institution_name="Monzo")
        other_account = create_bank_account(db, other, external_id="acc-other")

        result = service.disconnect_bank(db, USER_ID, "req-1")

        db.refresh(account)
        db.refresh(other_account)
        assert result.status == "suspended"
        assert account.is_active is False
        assert other_account.is_active is True
        assert gocardless.deleted_requisitions == ["req-1"]

    def test_foreign_connection_is_not_found(self, db, service, gocardless):
        connection = create_connection(db, user_id=OTHER_USER_ID, requisition_id="req-x")
        account = create_bank_account(db, connection)

        with pytest.raises(NotFoundOrForbidden):
            service.disconnect_bank(db, USER_ID, "req-x")

        db.refresh(connection)
        db.refresh(account)
        assert connection.status == "linked"
        assert account.is_active is True
        assert gocardless.deleted_requisitions == []

    def test_unknown_requisition(self, db, service):
        with pytest.raises(NotFoundOrForbidden):
            service.disconnect_bank(db, USER_ID, "missing")

    def test_empty_requisition_id(self, db, service):
        with pytest.raises(ValidationError):
            service.disconnect_bank(db, USER_ID, "")

    def test_upstream_failure_still_disconnects(self, db, service, gocardless):
        create_connection(db, requisition_id="req-1")
        gocardless.fail("delete_requisition")

        result = service.disconnect_bank(db, USER_ID, "req-1")
        assert result.status == "suspended"


def test_list_connections_only_returns_own(db):
    create_connection(db, requisition_id="mine")
    create_connection(db, user_id=OTHER_USER_ID, requisition_id="theirs")

    connections = ConnectionService.list_connections(db, USER_ID)
    assert [c.requisition_id for c in connections] == ["mine"]
