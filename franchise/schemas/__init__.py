"""
Regional Franchise Platform - Schemas Package

Pydantic schemas for request/response validation.
"""

from franchise.schemas.allocation import (
    ConsultantCreate,
    ConsultantResponse,
    ConsultantFilter,
    AvailabilityUpdate,
    ConsultantSuspendRequest,
    JobCreate,
    JobResponse,
    AssignToConsultantRequest,
    AssignToTerritoryRequest,
    AutoAssignResponse,
    ReassignRequest,
    ReassignResponse,
    EligibilityResponse,
    CapacityWarning,
    CapacitySummary,
)
from franchise.schemas.settlement import (
    SettlementResponse,
    SettlementSummary,
    GenerateSettlementRequest,
    GenerateAllRequest,
    MarkPaidRequest,
    BatchReport,
    BatchResultItem,
    SettlementStats,
)
from franchise.schemas.territory import (
    LicenseeCreate,
    LicenseeResponse,
    LicenseeActionRequest,
    SuspendResult,
    ReactivateResult,
    TerminateResult,
    ImpactPreviewResponse,
    TerritoryCreate,
    TerritoryResponse,
    TransferOwnershipRequest,
    TransferImpactResponse,
)
from franchise.schemas.revenue import RevenueRecordCreate, RevenueRecordResponse
from franchise.schemas.audit import AuditLogResponse
