"""Scheduled batch sync endpoints (called by the cron runner)."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from api.dependencies import get_daily_sync_service
from database import get_db
from schemas import (
    DailyUpdateResponse,
    DailyUpdateStatusResponse,
    DailyUpdateTotals,
    RecentSyncResponse,
    UserSyncResultResponse,
)
from services.daily_sync_service import DailySyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finances/daily-update", tags=["daily-update"])


@router.post("", response_model=DailyUpdateResponse)
def run_daily_update(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    service: DailySyncService = Depends(get_daily_sync_service),
):
    """Sync every linked user. Requires ``Authorization: Bearer <CRON_SECRET>``."""
    service.verify_cron_secret(authorization)
    report = service.run_daily_sync(db)
    return DailyUpdateResponse(
        success=True,
        message=report.message,
        summary=DailyUpdateTotals(
            users_processed=report.users_processed,
            users_successful=report.users_successful,
            total_accounts_synced=report.total_accounts_synced,
            total_balances_synced=report.total_balances_synced,
            total_transactions_synced=report.total_transactions_synced,
        ),
        results=[UserSyncResultResponse.model_validate(r) for r in report.results],
        timestamp=datetime.now(timezone.utc),
    )


@router.get("", response_model=DailyUpdateStatusResponse)
def get_daily_update_status(db: Session = Depends(get_db)):
    """Recent batch activity and the next scheduled run."""
    status = DailySyncService.get_status(db)
    return DailyUpdateStatusResponse(
        last_syncs=[RecentSyncResponse.model_validate(c) for c in status.last_syncs],
        next_scheduled_sync=status.next_scheduled_sync,
        active_connections=status.active_connections,
        current_time=status.current_time,
    )
