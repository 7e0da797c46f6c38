"""Net-worth summary endpoints."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id
from database import get_db
from integrations.parsing_utils import utc_today
from schemas import (
    FinancialSummaryResponse,
    WealthSummaryRecalculateRequest,
    WealthSummaryRecalculateResponse,
    WealthSummaryResponse,
)
from services.summary_service import SummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finances/wealth-summary", tags=["wealth-summary"])

HISTORY_MONTHS = 12


@router.get("", response_model=WealthSummaryResponse)
def get_wealth_summary(
    target_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Latest summary on or before ``date`` plus the last year of history."""
    target_date = target_date or utc_today()
    summary = SummaryService.latest_summary(db, user_id, as_of=target_date)
    history = SummaryService.history(db, user_id, months=HISTORY_MONTHS, as_of=target_date)
    return WealthSummaryResponse(
        summary=FinancialSummaryResponse.model_validate(summary) if summary else None,
        historical=[FinancialSummaryResponse.model_validate(s) for s in history],
        target_date=target_date,
    )


@router.post("", response_model=WealthSummaryRecalculateResponse)
def recalculate_wealth_summary(
    body: Optional[WealthSummaryRecalculateRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Recompute the summary for ``date`` (default: today)."""
    target_date = (body.target_date if body else None) or utc_today()
    summary = SummaryService.recalculate(db, user_id, as_of=target_date)
    db.commit()
    db.refresh(summary)
    return WealthSummaryRecalculateResponse(
        success=True,
        message="Financial summary recalculated",
        summary=FinancialSummaryResponse.model_validate(summary),
    )
