"""
Regional Franchise Platform - Territory Router

Endpoints:
- POST /api/v1/territories - Create a territory
- GET  /api/v1/territories - List territories
- GET  /api/v1/territories/{territory_id} - Get a territory
- GET  /api/v1/territories/{territory_id}/transfer-impact - Preview a transfer
- POST /api/v1/territories/{territory_id}/transfer - Transfer ownership
- GET  /api/v1/territories/{territory_id}/eligible-consultants
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.models.territory import TerritoryOwnerType
from franchise.models.consultant import ConsultantRole, AvailabilityStatus
from franchise.schemas.territory import (
    TerritoryCreate,
    TerritoryResponse,
    TransferOwnershipRequest,
    TransferImpactResponse,
)
from franchise.schemas.allocation import ConsultantFilter, ConsultantResponse
from franchise.services.allocation_service import AllocationService
from franchise.services.territory_service import TerritoryService

router = APIRouter(prefix="/territories", tags=["Territories"])


@router.post("", response_model=TerritoryResponse, status_code=status.HTTP_201_CREATED)
async def create_territory(
    request: TerritoryCreate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.create_territory(actor=actor, **request.model_dump())


@router.get("", response_model=List[TerritoryResponse])
async def list_territories(
    owner_type: Optional[TerritoryOwnerType] = None,
    licensee_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.list_territories(
        owner_type=owner_type,
        licensee_id=licensee_id,
        is_active=is_active,
        skip=skip,
        limit=limit,
    )


@router.get("/{territory_id}", response_model=TerritoryResponse)
async def get_territory(
    territory_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.get_territory(territory_id)


@router.get("/{territory_id}/transfer-impact", response_model=TransferImpactResponse)
async def get_transfer_impact(
    territory_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = TerritoryService(db)
    return await service.get_transfer_impact(territory_id)


@router.post("/{territory_id}/transfer", response_model=TerritoryResponse)
async def transfer_ownership(
    territory_id: UUID,
    request: TransferOwnershipRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Move a territory to a licensee, or back to the operator."""
    service = TerritoryService(db)
    return await service.transfer_ownership(
        territory_id, request.licensee_id, actor, notes=request.notes
    )


@router.get("/{territory_id}/eligible-consultants", response_model=List[ConsultantResponse])
async def get_eligible_consultants(
    territory_id: UUID,
    role: Optional[ConsultantRole] = None,
    availability: Optional[AvailabilityStatus] = None,
    industry: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    has_capacity: bool = True,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """ACTIVE consultants of the territory, least loaded first."""
    filters = ConsultantFilter(
        role=role,
        availability=availability,
        industry=industry,
        language=language,
        search=search,
        has_capacity=has_capacity,
    )
    service = AllocationService(db)
    return await service.get_eligible_consultants(territory_id, filters)
