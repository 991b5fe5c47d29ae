"""
Regional Franchise Platform - Audit Log Router

Endpoints:
- GET /api/v1/audit-logs/recent
- GET /api/v1/audit-logs/entity/{entity_type}/{entity_id} - History of one entity
- GET /api/v1/audit-logs/performer/{performed_by}
- GET /api/v1/audit-logs/action/{action}
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.dependencies import get_async_session, get_actor
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.schemas.audit import AuditLogResponse
from franchise.services.audit_service import AuditService

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])


@router.get("/recent", response_model=List[AuditLogResponse])
async def get_recent(
    limit: int = Query(50, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    return await AuditService(db).get_recent(limit)


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[AuditLogResponse])
async def get_history(
    entity_type: AuditEntityType,
    entity_id: str,
    limit: int = Query(50, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    return await AuditService(db).get_history(entity_type, entity_id, limit)


@router.get("/performer/{performed_by}", response_model=List[AuditLogResponse])
async def get_by_performer(
    performed_by: str,
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(100, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    return await AuditService(db).get_by_performer(performed_by, days, limit)


@router.get("/action/{action}", response_model=List[AuditLogResponse])
async def get_by_action(
    action: AuditAction,
    entity_type: Optional[AuditEntityType] = None,
    limit: int = Query(100, ge=1, le=500),
    actor: str = Depends(get_actor),
    db: AsyncSession = Depends(get_async_session),
):
    return await AuditService(db).get_by_action(action, entity_type, limit)
