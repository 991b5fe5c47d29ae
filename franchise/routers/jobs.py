"""
Regional Franchise Platform - Job Allocation Router

Endpoints:
- POST /api/v1/jobs - Register a job
- GET  /api/v1/jobs/unassigned - Allocation work queue
- GET  /api/v1/jobs/{job_id}
- GET  /api/v1/jobs/{job_id}/consultants - Consultants holding the job
- POST /api/v1/jobs/{job_id}/assign - Assign to a named consultant
- POST /api/v1/jobs/{job_id}/assign-territory - Assign within a territory
- POST /api/v1/jobs/{job_id}/auto-assign - Assign through the auto-rules policy
- POST /api/v1/jobs/{job_id}/unassign - Release the job (idempotent)
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.schemas.allocation import (
    JobCreate,
    JobResponse,
    AssignToConsultantRequest,
    AssignToTerritoryRequest,
    AutoAssignResponse,
    ConsultantResponse,
)
from franchise.models.job import JobStatus
from franchise.services.allocation_service import AllocationService

router = APIRouter(prefix="/jobs", tags=["Job Allocation"])


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    request: JobCreate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    return await service.create_job(actor=actor, **request.model_dump())


@router.get("/unassigned", response_model=List[JobResponse])
async def get_unassigned_jobs(
    territory_id: Optional[UUID] = None,
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Jobs no consultant holds, newest first."""
    service = AllocationService(db)
    return await service.get_unassigned_jobs(
        territory_id=territory_id, status=job_status, skip=skip, limit=limit
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    return await service.get_job(job_id)


@router.get("/{job_id}/consultants", response_model=List[ConsultantResponse])
async def get_job_consultants(
    job_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    return await service.get_job_consultants(job_id)


@router.post("/{job_id}/assign", response_model=JobResponse)
async def assign_to_consultant(
    job_id: UUID,
    request: AssignToConsultantRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    return await service.assign_to_consultant(job_id, request.consultant_id, actor, request.source)


@router.post("/{job_id}/assign-territory", response_model=JobResponse)
async def assign_to_territory(
    job_id: UUID,
    request: AssignToTerritoryRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Assign to the least-loaded available consultant of the territory."""
    service = AllocationService(db)
    return await service.assign_to_territory(job_id, request.territory_id, actor, request.source)


@router.post("/{job_id}/auto-assign", response_model=AutoAssignResponse)
async def auto_assign(
    job_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = AllocationService(db)
    consultant_id = await service.auto_assign(job_id)
    return AutoAssignResponse(consultant_id=consultant_id)


@router.post("/{job_id}/unassign", status_code=status.HTTP_204_NO_CONTENT)
async def unassign(
    job_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Release the job from its consultant; unassigned jobs are a no-op."""
    service = AllocationService(db)
    await service.unassign(job_id, actor)
