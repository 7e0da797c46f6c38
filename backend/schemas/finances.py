"""Pydantic schemas for the finances API.

Request bodies and a few response fields use the camelCase names the
dashboard frontend sends and expects; they are declared as aliases so the
Python side stays snake_case.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InstitutionResponse(BaseModel):
    id: str
    name: str
    bic: Optional[str] = None
    logo: Optional[str] = None
    transaction_total_days: Optional[int] = None
    countries: list[str] = []


class InstitutionsResponse(BaseModel):
    institutions: list[InstitutionResponse]
    count: int
    country: str


class ConnectRequest(BaseModel):
    """Schema for starting a bank connection."""

    institution_id: str = Field(alias="institutionId", min_length=1)
    institution_name: str = Field(alias="institutionName", min_length=1)
    country_code: str = Field(alias="countryCode", min_length=2, max_length=2)

    model_config = ConfigDict(populate_by_name=True)


class ConnectResponse(BaseModel):
    success: bool
    requisition_id: str = Field(alias="requisitionId")
    auth_url: str = Field(alias="authUrl")
    message: str

    model_config = ConfigDict(populate_by_name=True)


class BankAccountResponse(BaseModel):
    """Schema for a bank account in API responses."""

    id: str
    name: str
    bank_name: Optional[str] = None
    account_type: str
    account_number_last4: Optional[str] = None
    currency: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class CallbackResponse(BaseModel):
    success: bool
    status: str
    accounts: list[BankAccountResponse]
    message: str


class SyncRequest(BaseModel):
    account_id: Optional[str] = Field(default=None, alias="accountId")

    model_config = ConfigDict(populate_by_name=True)


class SyncResponse(BaseModel):
    """Outcome of an on-demand sync."""

    success: bool
    message: str
    accounts_synced: int
    balances_synced: int
    transactions_synced: int
    errors: list[str] = []


class ConnectionSyncStatus(BaseModel):
    requisition_id: str
    institution: str
    status: str
    last_sync: Optional[datetime] = None
    next_available_sync: Optional[datetime] = None
    remaining_requests: int
    can_sync_now: bool
    sync_error: Optional[str] = None


class SyncStatusResponse(BaseModel):
    sync_status: list[ConnectionSyncStatus]
    total_connections: int
    can_sync_any: bool


class DisconnectRequest(BaseModel):
    requisition_id: str = Field(alias="requisitionId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class DisconnectResponse(BaseModel):
    success: bool
    message: str
    disconnected_institution: str = Field(alias="disconnectedInstitution")

    model_config = ConfigDict(populate_by_name=True)


class FinancialSummaryResponse(BaseModel):
    """Schema for a net-worth snapshot."""

    summary_date: date
    total_bank_balance: Decimal
    total_investment_value: Decimal
    total_real_estate_value: Decimal
    total_asset_value: Decimal
    total_net_worth: Decimal
    currency: str
    computed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AccountStats(BaseModel):
    total: int
    active: int
    by_type: dict[str, int]


class FinancesStatusResponse(BaseModel):
    connection_stats: dict[str, int] = Field(alias="connectionStats")
    account_stats: AccountStats = Field(alias="accountStats")
    financial_summary: Optional[FinancialSummaryResponse] = Field(
        default=None, alias="financialSummary"
    )
    last_updated: datetime = Field(alias="lastUpdated")

    model_config = ConfigDict(populate_by_name=True)


class DailyUpdateTotals(BaseModel):
    users_processed: int
    users_successful: int
    total_accounts_synced: int
    total_balances_synced: int
    total_transactions_synced: int


class UserSyncResultResponse(BaseModel):
    user_id: str
    institution: str
    success: bool
    accounts_synced: int
    balances_synced: int
    transactions_synced: int
    errors: list[str] = []

    model_config = ConfigDict(from_attributes=True)


class DailyUpdateResponse(BaseModel):
    """Report of a batch run."""

    success: bool
    message: str
    summary: DailyUpdateTotals
    results: list[UserSyncResultResponse]
    timestamp: datetime


class RecentSyncResponse(BaseModel):
    """One connection's latest batch outcome. Carries no user identifiers."""

    institution_name: str
    status: str
    last_sync_at: Optional[datetime] = None
    sync_error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DailyUpdateStatusResponse(BaseModel):
    last_syncs: list[RecentSyncResponse]
    next_scheduled_sync: datetime
    active_connections: int
    current_time: datetime


class WealthSummaryResponse(BaseModel):
    summary: Optional[FinancialSummaryResponse] = None
    historical: list[FinancialSummaryResponse]
    target_date: date


class WealthSummaryRecalculateRequest(BaseModel):
    target_date: Optional[date] = Field(default=None, alias="date")

    model_config = ConfigDict(populate_by_name=True)


class WealthSummaryRecalculateResponse(BaseModel):
    success: bool
    message: str
    summary: FinancialSummaryResponse
