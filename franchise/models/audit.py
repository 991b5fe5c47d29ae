"""
Regional Franchise Platform - Audit Log Model

Append-only trail of governance and allocation actions.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any, Dict

from sqlalchemy import String, Text, DateTime, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from franchise.models.base import BaseModel, utcnow


class AuditEntityType(str, Enum):
    """Kinds of entity that appear in the audit trail."""
    LICENSEE = "LICENSEE"
    TERRITORY = "TERRITORY"
    CONSULTANT = "CONSULTANT"
    JOB = "JOB"
    SETTLEMENT = "SETTLEMENT"
    REVENUE = "REVENUE"


class AuditAction(str, Enum):
    """Audited actions."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SUSPEND = "SUSPEND"
    REACTIVATE = "REACTIVATE"
    TERMINATE = "TERMINATE"
    TRANSFER = "TRANSFER"
    PAUSE = "PAUSE"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    REASSIGN = "REASSIGN"
    PAY = "PAY"


class AuditLog(BaseModel):
    """
    One audit entry.

    Rows are only ever inserted. old_value/new_value hold JSON snapshots
    of the fields that changed.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    entity_type: Mapped[AuditEntityType] = mapped_column(
        SQLEnum(AuditEntityType, name="audit_entity_type"),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        SQLEnum(AuditAction, name="audit_action"),
        nullable=False,
        index=True,
    )
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    old_value: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)

    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog({self.entity_type.value}:{self.entity_id} {self.action.value} by {self.performed_by})>"
