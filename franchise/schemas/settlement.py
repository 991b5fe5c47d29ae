"""
Regional Franchise Platform - Settlement Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from franchise.models.revenue import SettlementStatus


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: UUID
    licensee_id: UUID
    period_start: date
    period_end: date
    total_revenue: Decimal
    licensee_share: Decimal
    operator_share: Decimal
    status: SettlementStatus
    payment_date: Optional[date] = None
    reference: Optional[str] = None
    generated_at: datetime
    generated_by: str

    model_config = ConfigDict(from_attributes=True)


class SettlementSummary(BaseModel):
    """Settlement plus the number of revenue records folded into it."""
    settlement: SettlementResponse
    records_included: int


class GenerateSettlementRequest(BaseModel):
    licensee_id: UUID
    period_end: date


class GenerateAllRequest(BaseModel):
    period_end: date


class MarkPaidRequest(BaseModel):
    reference: str = Field(..., min_length=1, max_length=255)
    payment_date: Optional[date] = None


class BatchResultItem(BaseModel):
    licensee_id: UUID
    success: bool
    settlement_id: Optional[UUID] = None
    error: Optional[str] = None


class BatchReport(BaseModel):
    """Per-licensee outcome of a batch generation run."""
    generated: int
    results: List[BatchResultItem]


class SettlementStats(BaseModel):
    pending_count: int
    paid_count: int
    pending_total_revenue: Decimal
    paid_total_revenue: Decimal
    pending_licensee_share: Decimal
    paid_licensee_share: Decimal
    pending_operator_share: Decimal
    paid_operator_share: Decimal
    total_count: int
