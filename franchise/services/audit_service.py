"""
Regional Franchise Platform - Audit Trail Service

Append-only log of governance, allocation and settlement actions.
Entries are flushed inside the caller's unit of work, so a rolled-back
operation leaves no audit entry behind.
"""

import enum
import uuid
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.models.audit import AuditLog, AuditAction, AuditEntityType


def _json_safe(value: Any) -> Any:
    """Convert values the JSON column cannot store natively."""
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditService:
    """Service for writing and querying the audit trail."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        entity_type: AuditEntityType,
        entity_id: Union[str, uuid.UUID],
        action: AuditAction,
        performed_by: str,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        """
        Record an audit entry.

        Args:
            entity_type: Kind of entity acted upon
            entity_id: ID of the affected entity
            action: Action performed
            performed_by: Actor identifier
            old_value: Snapshot of changed fields before the action
            new_value: Snapshot of changed fields after the action
            notes: Free-text reason supplied by the actor
            ip_address: Client IP address, when known

        Returns:
            Created AuditLog record (flushed, not committed)
        """
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            performed_by=performed_by,
            old_value=_json_safe(old_value) if old_value is not None else None,
            new_value=_json_safe(new_value) if new_value is not None else None,
            notes=notes,
            ip_address=ip_address,
        )

        self.db.add(entry)
        await self.db.flush()

        return entry

    # ===========================================
    # QUERIES
    # ===========================================

    async def get_history(
        self,
        entity_type: AuditEntityType,
        entity_id: Union[str, uuid.UUID],
        limit: int = 50,
    ) -> List[AuditLog]:
        """Audit history of one entity, newest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == str(entity_id),
            )
            .order_by(AuditLog.performed_at.desc(), AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_performer(
        self,
        performed_by: str,
        days: int = 30,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Actions performed by one actor within the last N days."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        result = await self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.performed_by == performed_by,
                AuditLog.performed_at >= since,
            )
            .order_by(AuditLog.performed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_action(
        self,
        action: AuditAction,
        entity_type: Optional[AuditEntityType] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Entries for one action, optionally narrowed to an entity type."""
        query = select(AuditLog).where(AuditLog.action == action)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)

        result = await self.db.execute(
            query.order_by(AuditLog.performed_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_recent(self, limit: int = 50) -> List[AuditLog]:
        """Most recent entries across all entities."""
        result = await self.db.execute(
            select(AuditLog).order_by(AuditLog.performed_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
