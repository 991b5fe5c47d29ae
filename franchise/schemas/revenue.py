"""
Regional Franchise Platform - Revenue Ledger Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from franchise.models.revenue import RevenueStatus


class RevenueRecordCreate(BaseModel):
    """Revenue earned by a territory over one period."""
    territory_id: UUID
    period_start: date
    period_end: date
    total_revenue: Decimal = Field(..., ge=0, decimal_places=2)

    @model_validator(mode="after")
    def validate_period(self) -> "RevenueRecordCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not precede period_start")
        return self


class RevenueRecordResponse(BaseModel):
    id: UUID
    territory_id: UUID
    licensee_id: Optional[UUID] = None
    period_start: date
    period_end: date
    total_revenue: Decimal
    licensee_share: Decimal
    operator_share: Decimal
    status: RevenueStatus
    settlement_id: Optional[UUID] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
