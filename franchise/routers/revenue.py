"""
Regional Franchise Platform - Revenue Ledger Router

Endpoints:
- POST /api/v1/revenue - Record (or update) a territory's revenue for a period
- GET  /api/v1/revenue/pending - Pending revenue records
- GET  /api/v1/revenue/territory/{territory_id} - A territory's recent periods
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.models.revenue import RevenueStatus
from franchise.schemas.revenue import RevenueRecordCreate, RevenueRecordResponse
from franchise.services.revenue_ledger_service import RevenueLedgerService

router = APIRouter(prefix="/revenue", tags=["Revenue Ledger"])


@router.post("", response_model=RevenueRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_revenue(
    request: RevenueRecordCreate,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = RevenueLedgerService(db)
    return await service.record_revenue(
        request.territory_id,
        request.period_start,
        request.period_end,
        request.total_revenue,
        actor=actor,
    )


@router.get("/pending", response_model=List[RevenueRecordResponse])
async def get_pending_revenue(
    licensee_id: Optional[UUID] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = RevenueLedgerService(db)
    return await service.get_pending_revenue(licensee_id)


@router.get("/territory/{territory_id}", response_model=List[RevenueRecordResponse])
async def get_revenue_by_territory(
    territory_id: UUID,
    revenue_status: Optional[RevenueStatus] = Query(None, alias="status"),
    limit: int = Query(12, ge=1, le=120),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = RevenueLedgerService(db)
    return await service.get_revenue_by_territory(territory_id, status=revenue_status, limit=limit)
