"""
Regional Franchise Platform - Territory and Licensee Schemas

Pydantic schemas for territory/licensee requests and responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from franchise.models.territory import TerritoryOwnerType, LicenseeStatus
from franchise.schemas.settlement import SettlementSummary


# ===========================================
# LICENSEE SCHEMAS
# ===========================================

class LicenseeCreate(BaseModel):
    """Schema for creating a licensee."""
    name: str = Field(..., min_length=1, max_length=255)
    legal_entity_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    manager_contact: Optional[str] = Field(None, max_length=255)
    finance_contact: Optional[str] = Field(None, max_length=255)
    revenue_share_percent: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    agreement_start_date: Optional[date] = None
    agreement_end_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_agreement_dates(self) -> "LicenseeCreate":
        if (
            self.agreement_start_date
            and self.agreement_end_date
            and self.agreement_end_date < self.agreement_start_date
        ):
            raise ValueError("agreement_end_date must not precede agreement_start_date")
        return self


class LicenseeResponse(BaseModel):
    """Schema for licensee response."""
    id: UUID
    name: str
    legal_entity_name: str
    email: str
    phone: Optional[str] = None
    manager_contact: Optional[str] = None
    finance_contact: Optional[str] = None
    revenue_share_percent: Decimal
    agreement_start_date: Optional[date] = None
    agreement_end_date: Optional[date] = None
    status: LicenseeStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LicenseeActionRequest(BaseModel):
    """Body for suspend / reactivate / terminate."""
    notes: Optional[str] = Field(None, max_length=2000)


class SuspendResult(BaseModel):
    jobs_paused: int
    territories_affected: int


class ReactivateResult(BaseModel):
    jobs_resumed: int


class TerminateResult(BaseModel):
    territories_unassigned: int
    consultants_affected: int
    jobs_resumed: int
    final_settlement: Optional[SettlementSummary] = None


class ImpactPreviewResponse(BaseModel):
    """Counts a suspension or termination would produce."""
    licensee_id: UUID
    status: LicenseeStatus
    territories: int
    active_jobs: int
    consultants: int
    pending_revenue: Decimal


# ===========================================
# TERRITORY SCHEMAS
# ===========================================

class TerritoryCreate(BaseModel):
    """Schema for creating a territory."""
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    country: Optional[str] = Field(None, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    owner_type: TerritoryOwnerType = TerritoryOwnerType.OPERATOR
    licensee_id: Optional[UUID] = None

    @model_validator(mode="after")
    def validate_owner(self) -> "TerritoryCreate":
        if (self.owner_type == TerritoryOwnerType.LICENSEE) != (self.licensee_id is not None):
            raise ValueError("licensee_id is required if and only if owner_type is LICENSEE")
        return self


class TerritoryResponse(BaseModel):
    """Schema for territory response."""
    id: UUID
    name: str
    code: str
    country: Optional[str] = None
    state_province: Optional[str] = None
    city: Optional[str] = None
    is_active: bool
    owner_type: TerritoryOwnerType
    licensee_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransferOwnershipRequest(BaseModel):
    """Move a territory to a licensee, or back to the operator with null."""
    licensee_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


class TransferImpactResponse(BaseModel):
    territory_id: UUID
    current_owner_type: TerritoryOwnerType
    current_licensee_id: Optional[UUID] = None
    open_jobs: int
    active_consultants: int
    pending_revenue: Decimal

