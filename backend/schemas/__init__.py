"""Pydantic schemas for API request/response validation."""

from schemas.finances import (
    AccountStats,
    BankAccountResponse,
    CallbackResponse,
    ConnectionSyncStatus,
    ConnectRequest,
    ConnectResponse,
    DailyUpdateResponse,
    DailyUpdateStatusResponse,
    DailyUpdateTotals,
    DisconnectRequest,
    DisconnectResponse,
    FinancesStatusResponse,
    FinancialSummaryResponse,
    InstitutionResponse,
    InstitutionsResponse,
    RecentSyncResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
    UserSyncResultResponse,
    WealthSummaryRecalculateRequest,
    WealthSummaryRecalculateResponse,
    WealthSummaryResponse,
)

__all__ = [
    "AccountStats",
    "BankAccountResponse",
    "CallbackResponse",
    "ConnectionSyncStatus",
    "ConnectRequest",
    "ConnectResponse",
    "DailyUpdateResponse",
    "DailyUpdateStatusResponse",
    "DailyUpdateTotals",
    "DisconnectRequest",
    "DisconnectResponse",
    "FinancesStatusResponse",
    "FinancialSummaryResponse",
    "InstitutionResponse",
    "InstitutionsResponse",
    "RecentSyncResponse",
    "SyncRequest",
    "SyncResponse",
    "SyncStatusResponse",
    "UserSyncResultResponse",
    "WealthSummaryRecalculateRequest",
    "WealthSummaryRecalculateResponse",
    "WealthSummaryResponse",
]
