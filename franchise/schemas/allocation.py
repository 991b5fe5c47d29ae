"""
Regional Franchise Platform - Consultant and Allocation Schemas

Includes ConsultantFilter, the one validated filter object accepted by
eligible-consultant queries.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from franchise.models.consultant import (
    ConsultantRole, ConsultantStatus, AvailabilityStatus, CapacityWarningType,
)
from franchise.models.job import JobStatus, AssignmentSource, PauseReason


# ===========================================
# CONSULTANT SCHEMAS
# ===========================================

class ConsultantCreate(BaseModel):
    """Schema for creating a consultant."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: ConsultantRole = ConsultantRole.RECRUITER
    territory_id: UUID
    max_jobs: int = Field(10, ge=0, le=1000)
    max_employers: int = Field(10, ge=0, le=1000)
    industry_expertise: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)


class ConsultantResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    role: ConsultantRole
    status: ConsultantStatus
    availability: AvailabilityStatus
    territory_id: UUID
    current_jobs: int
    max_jobs: int
    current_employers: int
    max_employers: int
    industry_expertise: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityUpdate(BaseModel):
    availability: AvailabilityStatus


class ConsultantSuspendRequest(BaseModel):
    """Suspend a consultant, optionally moving their active jobs first."""
    reassign_to: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ConsultantFilter(BaseModel):
    """
    Filter for eligible-consultant queries.

    All fields are optional; unset fields do not narrow the result.
    """
    role: Optional[ConsultantRole] = None
    availability: Optional[AvailabilityStatus] = None
    industry: Optional[str] = Field(None, max_length=100)
    language: Optional[str] = Field(None, max_length=50)
    search: Optional[str] = Field(None, max_length=255)
    has_capacity: bool = True

    model_config = ConfigDict(extra="forbid")

    @field_validator("industry", "language", "search")
    @classmethod
    def strip_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


# ===========================================
# JOB / ALLOCATION SCHEMAS
# ===========================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    territory_id: Optional[UUID] = None
    status: JobStatus = JobStatus.OPEN


class JobResponse(BaseModel):
    id: UUID
    title: str
    category: Optional[str] = None
    status: JobStatus
    paused_reason: Optional[PauseReason] = None
    territory_id: Optional[UUID] = None
    assigned_consultant_id: Optional[UUID] = None
    assignment_source: AssignmentSource
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignToConsultantRequest(BaseModel):
    consultant_id: UUID
    source: AssignmentSource = AssignmentSource.MANUAL_OPERATOR

    @model_validator(mode="after")
    def validate_source(self) -> "AssignToConsultantRequest":
        if self.source == AssignmentSource.UNASSIGNED:
            raise ValueError("UNASSIGNED is not a valid assignment source")
        return self


class AssignToTerritoryRequest(BaseModel):
    territory_id: UUID
    source: AssignmentSource = AssignmentSource.MANUAL_OPERATOR


class AutoAssignResponse(BaseModel):
    consultant_id: UUID


class ReassignRequest(BaseModel):
    to_consultant_id: UUID


class ReassignResponse(BaseModel):
    count: int


class EligibilityResponse(BaseModel):
    eligible: bool
    reason: Optional[str] = None


# ===========================================
# CAPACITY WARNING SCHEMAS
# ===========================================

class CapacityWarning(BaseModel):
    consultant_id: UUID
    consultant_name: str
    consultant_email: str
    territory_id: UUID
    type: CapacityWarningType
    current: int
    max: int
    percentage: int


class CapacitySummary(BaseModel):
    """ACTIVE consultants grouped by how close they are to their limits."""
    at_capacity: List[CapacityWarning]
    near_capacity: List[CapacityWarning]
    over_capacity: List[CapacityWarning]
    total_consultants: int
    consultants_with_warnings: int
