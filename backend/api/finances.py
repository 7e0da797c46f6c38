"""Bank connection and sync API endpoints.

Covers the consent flow (institutions, connect, callback), on-demand sync,
disconnect and the per-user status overview.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from api.dependencies import (
    get_bank_sync_service,
    get_connection_service,
    get_current_user_id,
    get_gocardless_client,
)
from config import settings
from database import get_db
from integrations.gocardless_client import GoCardlessClient
from models import BankAccount, BankConnection
from schemas import (
    AccountStats,
    BankAccountResponse,
    CallbackResponse,
    ConnectionSyncStatus,
    ConnectRequest,
    ConnectResponse,
    DisconnectRequest,
    DisconnectResponse,
    FinancesStatusResponse,
    FinancialSummaryResponse,
    InstitutionResponse,
    InstitutionsResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from services.bank_sync_service import BankSyncService
from services.connection_service import ConnectionService
from services.exceptions import ConnectionNotReady, NotFoundOrForbidden, ValidationError
from services.summary_service import SummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finances", tags=["finances"])

SYNC_INTERVAL = timedelta(hours=24)


def _callback_url(request: Request) -> str:
    base = settings.APP_BASE_URL or str(request.base_url).rstrip("/")
    return f"{base}/api/finances/callback"


@router.get("/institutions", response_model=InstitutionsResponse)
def list_institutions(
    country: str = Query("GB"),
    user_id: str = Depends(get_current_user_id),
    client: GoCardlessClient = Depends(get_gocardless_client),
):
    """List the banks available in a country, sorted by name."""
    institutions = sorted(client.list_institutions(country), key=lambda i: i.name.lower())
    return InstitutionsResponse(
        institutions=[InstitutionResponse(**i.to_dict()) for i in institutions],
        count=len(institutions),
        country=country.strip().upper(),
    )


@router.post("/connect", response_model=ConnectResponse)
def connect_bank(
    body: ConnectRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    service: ConnectionService = Depends(get_connection_service),
):
    """Start linking a bank. The client must redirect the user to ``authUrl``."""
    initiated = service.initiate_bank_connection(
        db,
        user_id=user_id,
        institution_id=body.institution_id,
        institution_name=body.institution_name,
        country_code=body.country_code,
        redirect_url=_callback_url(request),
    )
    db.commit()
    return ConnectResponse(
        success=True,
        requisition_id=initiated.requisition_id,
        auth_url=initiated.auth_url,
        message="Bank connection initiated. Redirect user to authUrl.",
    )


@router.get("/callback", response_model=CallbackResponse)
def connection_callback(
    ref: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    """Landing point after the user authorizes (or declines) at their bank.

    Reconciles the connection's status with the aggregator and creates its
    accounts. Unauthenticated: the requisition reference identifies it.
    """
    if not ref:
        raise ValidationError("Missing requisition reference")

    connection = service.find_connection_for_callback(db, ref)
    if connection is None:
        raise NotFoundOrForbidden("Connection not found")

    if error:
        logger.warning(
            "Bank authorization failed for requisition %s: %s",
            connection.requisition_id, error,
        )
        raise ValidationError(f"Bank authorization failed: {error}")

    try:
        connection = service.complete_bank_connection(db, connection.requisition_id)
    except ConnectionNotReady:
        db.commit()
        raise

    accounts = (
        db.query(BankAccount)
        .filter(BankAccount.connection_id == connection.id, BankAccount.is_active.is_(True))
        .all()
    )
    SummaryService.recalculate_quietly(db, connection.user_id)
    db.commit()
    return CallbackResponse(
        success=True,
        status=connection.status,
        accounts=[BankAccountResponse.model_validate(a) for a in accounts],
        message=f"Successfully connected {connection.institution_name}",
    )


@router.post("/sync", response_model=SyncResponse)
def sync_accounts(
    body: Optional[SyncRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    sync_service: BankSyncService = Depends(get_bank_sync_service),
):
    """Sync balances and transactions now.

    Returns 200 when at least one account synced (errors for the others are
    listed), 429 when every account was refused by the daily request limit,
    and 500 when the sync failed outright.
    """
    account_id = body.account_id if body else None
    result = sync_service.sync_account_data(db, user_id, account_id=account_id)
    if result.accounts_synced > 0:
        SummaryService.recalculate_quietly(db, user_id)
    db.commit()

    if result.all_rate_limited:
        return JSONResponse(
            status_code=429,
            content={"error": "Rate limit exceeded", **result.to_dict()},
        )
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"error": "Sync failed", **result.to_dict()},
        )
    return SyncResponse(**result.to_dict())


@router.get("/sync", response_model=SyncStatusResponse)
def get_sync_status(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    client: GoCardlessClient = Depends(get_gocardless_client),
):
    """Per-connection sync availability based on the live request budget."""
    connections = [
        c for c in ConnectionService.list_connections(db, user_id) if c.status != "suspended"
    ]

    statuses = []
    for connection in connections:
        external_ids = [
            a.external_id
            for a in db.query(BankAccount)
            .filter(
                BankAccount.connection_id == connection.id,
                BankAccount.is_active.is_(True),
                BankAccount.external_id.isnot(None),
            )
            .all()
        ]
        if external_ids:
            remaining = min(client.remaining_requests(e) for e in external_ids)
        else:
            remaining = client.ledger.daily_limit

        next_available = (
            connection.last_sync_at + SYNC_INTERVAL if connection.last_sync_at else None
        )
        statuses.append(
            ConnectionSyncStatus(
                requisition_id=connection.requisition_id,
                institution=connection.institution_name,
                status=connection.status,
                last_sync=connection.last_sync_at,
                next_available_sync=next_available,
                remaining_requests=remaining,
                can_sync_now=connection.status == "linked" and remaining > 0,
                sync_error=connection.sync_error,
            )
        )

    return SyncStatusResponse(
        sync_status=statuses,
        total_connections=len(statuses),
        can_sync_any=any(s.can_sync_now for s in statuses),
    )


@router.post("/disconnect", response_model=DisconnectResponse)
def disconnect_bank(
    body: DisconnectRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    service: ConnectionService = Depends(get_connection_service),
):
    """Disconnect a bank. Accounts are deactivated, history is kept."""
    connection = service.disconnect_bank(db, user_id, body.requisition_id)
    SummaryService.recalculate_quietly(db, user_id)
    db.commit()
    return DisconnectResponse(
        success=True,
        message=f"Successfully disconnected {connection.institution_name}",
        disconnected_institution=connection.institution_name,
    )


@router.get("/status", response_model=FinancesStatusResponse)
def get_finances_status(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Overview of the user's connections, accounts and latest summary."""
    connection_stats = Counter(
        status
        for (status,) in db.query(BankConnection.status)
        .filter(BankConnection.user_id == user_id)
        .all()
    )
    accounts = db.query(BankAccount).filter(BankAccount.user_id == user_id).all()
    active = [a for a in accounts if a.is_active]

    summary = SummaryService.latest_summary(db, user_id)
    return FinancesStatusResponse(
        connection_stats={"total": sum(connection_stats.values()), **connection_stats},
        account_stats=AccountStats(
            total=len(accounts),
            active=len(active),
            by_type=dict(Counter(a.account_type for a in active)),
        ),
        financial_summary=(
            FinancialSummaryResponse.model_validate(summary) if summary else None
        ),
        last_updated=datetime.now(timezone.utc),
    )
