"""Shared FastAPI dependencies (overridable in tests)."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from integrations.gocardless_client import GoCardlessClient
from services.bank_sync_service import BankSyncService
from services.connection_service import ConnectionService
from services.daily_sync_service import DailySyncService
from services.exceptions import Unauthorized


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Resolve the authenticated user.

    Session handling lives in the gateway in front of this service, which
    forwards the authenticated user's id in ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized("Unauthorized")
    return x_user_id.strip()


@lru_cache
def get_gocardless_client() -> GoCardlessClient:
    """Process-wide client: token cache and request budget are shared."""
    return GoCardlessClient()


def get_connection_service(
    client: GoCardlessClient = Depends(get_gocardless_client),
) -> ConnectionService:
    return ConnectionService(client)


def get_bank_sync_service(
    client: GoCardlessClient = Depends(get_gocardless_client),
) -> BankSyncService:
    return BankSyncService(client)


def get_daily_sync_service(
    sync_service: BankSyncService = Depends(get_bank_sync_service),
) -> DailySyncService:
    return DailySyncService(sync_service)
