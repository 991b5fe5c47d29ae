"""
Regional Franchise Platform - Licensee Router

Endpoints:
- POST /api/v1/licensees - Create a licensee
- GET  /api/v1/licensees - List licensees
- GET  /api/v1/licensees/{licensee_id} - Get a licensee
- GET  /api/v1/licensees/{licensee_id}/impact - Preview suspend/terminate impact
- POST /api/v1/licensees/{licensee_id}/suspend
- POST /api/v1/licensees/{licensee_id}/reactivate
- POST /api/v1/licensees/{licensee_id}/terminate
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.models.territory import LicenseeStatus
from franchise.schemas.territory import (
    LicenseeCreate,
    LicenseeResponse,
    LicenseeActionRequest,
    SuspendResult,
    ReactivateResult,
    TerminateResult,
    ImpactPreviewResponse,
)
from franchise.schemas.settlement import SettlementResponse, SettlementSummary
from franchise.services.territory_service import TerritoryService
from franchise.services.licensee_lifecycle_service import LicenseeLifecycleService

router = APIRouter(prefix="/licensees", tags=["Licensees"])


@router.post("", response_model=LicenseeResponse, status_code=status.HTTP_201_CREATED)
async def create_licensee(
    request: LicenseeCreate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Create a licensee in ACTIVE status."""
    service = TerritoryService(db)
    return await service.create_licensee(actor=actor, **request.model_dump())


@router.get("", response_model=List[LicenseeResponse])
async def list_licensees(
    licensee_status: Optional[LicenseeStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.list_licensees(status=licensee_status, skip=skip, limit=limit)


@router.get("/{licensee_id}", response_model=LicenseeResponse)
async def get_licensee(
    licensee_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.get_licensee(licensee_id)


@router.get("/{licensee_id}/impact", response_model=ImpactPreviewResponse)
async def get_impact_preview(
    licensee_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Counts a suspension or termination would affect."""
    service = LicenseeLifecycleService(db)
    return await service.get_impact_preview(licensee_id)


@router.post("/{licensee_id}/suspend", response_model=SuspendResult)
async def suspend_licensee(
    licensee_id: UUID,
    request: Optional[LicenseeActionRequest] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = LicenseeLifecycleService(db)
    manifest = await service.suspend(licensee_id, actor, notes=request.notes if request else None)
    return SuspendResult(
        jobs_paused=manifest.jobs_paused,
        territories_affected=manifest.territories_affected,
    )


@router.post("/{licensee_id}/reactivate", response_model=ReactivateResult)
async def reactivate_licensee(
    licensee_id: UUID,
    request: Optional[LicenseeActionRequest] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = LicenseeLifecycleService(db)
    manifest = await service.reactivate(licensee_id, actor, notes=request.notes if request else None)
    return ReactivateResult(jobs_resumed=manifest.jobs_resumed)


@router.post("/{licensee_id}/terminate", response_model=TerminateResult)
async def terminate_licensee(
    licensee_id: UUID,
    request: Optional[LicenseeActionRequest] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Terminate a licensee; territories return to the operator."""
    service = LicenseeLifecycleService(db)
    manifest = await service.terminate(licensee_id, actor, notes=request.notes if request else None)

    final_settlement = None
    if manifest.final_settlement:
        final_settlement = SettlementSummary(
            settlement=SettlementResponse.model_validate(manifest.final_settlement),
            records_included=manifest.settlement_records,
        )

    return TerminateResult(
        territories_unassigned=manifest.territories_unassigned,
        consultants_affected=manifest.consultants_affected,
        jobs_resumed=manifest.jobs_resumed,
        final_settlement=final_settlement,
    )
