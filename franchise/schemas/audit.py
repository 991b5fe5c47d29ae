"""
Regional Franchise Platform - Audit Log Schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from franchise.models.audit import AuditAction, AuditEntityType


class AuditLogResponse(BaseModel):
    id: UUID
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    performed_by: str
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    ip_address: Optional[str] = None
    performed_at: datetime

    model_config = ConfigDict(from_attributes=True)
