"""
Regional Franchise Platform - Consultant Router

Endpoints:
- POST /api/v1/consultants - Create a consultant
- GET  /api/v1/consultants/capacity-warnings - At, near and over capacity
- GET  /api/v1/consultants/{consultant_id}
- GET  /api/v1/consultants/{consultant_id}/jobs - Active job IDs
- PUT  /api/v1/consultants/{consultant_id}/availability
- POST /api/v1/consultants/{consultant_id}/suspend
- POST /api/v1/consultants/{consultant_id}/reactivate
- POST /api/v1/consultants/{consultant_id}/reassign-jobs
- GET  /api/v1/consultants/{consultant_id}/eligibility/{job_id}
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.schemas.allocation import (
    ConsultantCreate,
    ConsultantResponse,
    AvailabilityUpdate,
    ConsultantSuspendRequest,
    ReassignRequest,
    ReassignResponse,
    EligibilityResponse,
    CapacitySummary,
)
from franchise.schemas.territory import LicenseeActionRequest
from franchise.services.allocation_service import AllocationService
from franchise.services.capacity_tracker import CapacityTracker
from franchise.services.consultant_service import ConsultantService

router = APIRouter(prefix="/consultants", tags=["Consultants"])


@router.post("", response_model=ConsultantResponse, status_code=status.HTTP_201_CREATED)
async def create_consultant(
    request: ConsultantCreate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = ConsultantService(db)
    return await service.create_consultant(actor=actor, **request.model_dump())


@router.get("/capacity-warnings", response_model=CapacitySummary)
async def get_capacity_warnings(
    near_percent: Optional[int] = Query(None, ge=1, le=100),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """ACTIVE consultants at, near or over their job and employer limits."""
    tracker = CapacityTracker(db)
    return await tracker.get_capacity_warnings(near_percent)


@router.get("/{consultant_id}", response_model=ConsultantResponse)
async def get_consultant(
    consultant_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = ConsultantService(db)
    return await service.get_consultant(consultant_id)


@router.get("/{consultant_id}/jobs", response_model=List[UUID])
async def get_consultant_jobs(
    consultant_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    return await service.get_consultant_jobs(consultant_id)


@router.put("/{consultant_id}/availability", response_model=ConsultantResponse)
async def set_availability(
    consultant_id: UUID,
    request: AvailabilityUpdate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = ConsultantService(db)
    return await service.set_availability(consultant_id, request.availability, actor)


@router.post("/{consultant_id}/suspend", response_model=ConsultantResponse)
async def suspend_consultant(
    consultant_id: UUID,
    request: Optional[ConsultantSuspendRequest] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Suspend a consultant, optionally moving their jobs to a colleague."""
    request = request or ConsultantSuspendRequest()
    service = ConsultantService(db)
    return await service.suspend_consultant(
        consultant_id, actor, reassign_to=request.reassign_to, notes=request.notes
    )


@router.post("/{consultant_id}/reactivate", response_model=ConsultantResponse)
async def reactivate_consultant(
    consultant_id: UUID,
    request: Optional[LicenseeActionRequest] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = ConsultantService(db)
    return await service.reactivate_consultant(
        consultant_id, actor, notes=request.notes if request else None
    )


@router.post("/{consultant_id}/reassign-jobs", response_model=ReassignResponse)
async def reassign_consultant_jobs(
    consultant_id: UUID,
    request: ReassignRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Move every active job to another consultant; all or nothing."""
    service = AllocationService(db)
    count = await service.reassign_consultant_jobs(consultant_id, request.to_consultant_id, actor)
    return ReassignResponse(count=count)


@router.get("/{consultant_id}/eligibility/{job_id}", response_model=EligibilityResponse)
async def check_eligibility(
    consultant_id: UUID,
    job_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    eligible, reason = await service.check_consultant_eligibility(consultant_id, job_id)
    return EligibilityResponse(eligible=eligible, reason=reason)
