"""
Regional Franchise Platform - Database Models
"""

from franchise.models.base import BaseModel, TimestampMixin
from franchise.models.territory import (
    Territory,
    TerritoryOwnerType,
    Licensee,
    LicenseeStatus,
)
from franchise.models.consultant import (
    Consultant,
    ConsultantRole,
    ConsultantStatus,
    AvailabilityStatus,
    CapacityWarningType,
    AUTO_ASSIGNABLE_ROLES,
)
from franchise.models.job import (
    Job,
    JobStatus,
    JobAssignment,
    AssignmentStatus,
    AssignmentSource,
    PauseReason,
)
from franchise.models.revenue import (
    RevenueRecord,
    RevenueStatus,
    Settlement,
    SettlementStatus,
)
from franchise.models.audit import AuditLog, AuditAction, AuditEntityType

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Territory",
    "TerritoryOwnerType",
    "Licensee",
    "LicenseeStatus",
    "Consultant",
    "ConsultantRole",
    "ConsultantStatus",
    "AvailabilityStatus",
    "CapacityWarningType",
    "AUTO_ASSIGNABLE_ROLES",
    "Job",
    "JobStatus",
    "JobAssignment",
    "AssignmentStatus",
    "AssignmentSource",
    "PauseReason",
    "RevenueRecord",
    "RevenueStatus",
    "Settlement",
    "SettlementStatus",
    "AuditLog",
    "AuditAction",
    "AuditEntityType",
]
