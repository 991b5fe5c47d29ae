"""
Regional Franchise Platform - Settlement Router

Endpoints:
- POST /api/v1/settlements/generate - Generate one licensee's settlement
- POST /api/v1/settlements/generate-all - Batch generation across licensees
- GET  /api/v1/settlements/stats - Pending vs paid totals
- GET  /api/v1/settlements/pending
- GET  /api/v1/settlements/overdue
- GET  /api/v1/settlements/licensee/{licensee_id}
- GET  /api/v1/settlements/{settlement_id}
- POST /api/v1/settlements/{settlement_id}/pay - Mark paid
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.models.revenue import SettlementStatus
from franchise.schemas.settlement import (
    SettlementResponse,
    SettlementSummary,
    GenerateSettlementRequest,
    GenerateAllRequest,
    MarkPaidRequest,
    BatchReport,
    SettlementStats,
)
from franchise.services.settlement_service import SettlementService

router = APIRouter(prefix="/settlements", tags=["Settlements"])


@router.post("/generate", response_model=SettlementSummary, status_code=status.HTTP_201_CREATED)
async def generate_settlement(
    request: GenerateSettlementRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    settlement, count = await service.generate_settlement(request.licensee_id, request.period_end, actor)
    return SettlementSummary(
        settlement=SettlementResponse.model_validate(settlement),
        records_included=count,
    )


@router.post("/generate-all", response_model=BatchReport)
async def generate_all_pending_settlements(
    request: GenerateAllRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Generate settlements for every licensee with pending revenue."""
    service = SettlementService(db)
    return await service.generate_all_pending_settlements(request.period_end, actor)


@router.get("/stats", response_model=SettlementStats)
async def get_settlement_stats(
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    return await service.get_settlement_stats()


@router.get("/pending", response_model=List[SettlementResponse])
async def get_pending_settlements(
    licensee_id: Optional[UUID] = None,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    return await service.get_pending_settlements(licensee_id)


@router.get("/overdue", response_model=List[SettlementResponse])
async def get_overdue_settlements(
    days: Optional[int] = Query(None, ge=0),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    return await service.get_overdue_settlements(days)


@router.get("/licensee/{licensee_id}", response_model=List[SettlementResponse])
async def get_settlements_by_licensee(
    licensee_id: UUID,
    settlement_status: Optional[SettlementStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    return await service.get_settlements_by_licensee(licensee_id, status=settlement_status, limit=limit)


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    settlement_id: UUID,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    service = SettlementService(db)
    return await service.get_settlement(settlement_id)


@router.post("/{settlement_id}/pay", response_model=SettlementResponse)
async def mark_settlement_paid(
    settlement_id: UUID,
    request: MarkPaidRequest,
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    """Mark a settlement and its revenue records PAID."""
    service = SettlementService(db)
    return await service.mark_settlement_paid(
        settlement_id, request.reference, actor=actor, payment_date=request.payment_date
    )
