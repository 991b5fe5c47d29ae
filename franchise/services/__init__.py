"""
Regional Franchise Platform - Services Package

Business logic services.
"""

from franchise.services.audit_service import AuditService
from franchise.services.territory_service import TerritoryService
from franchise.services.capacity_tracker import CapacityTracker
from franchise.services.allocation_service import AllocationService
from franchise.services.consultant_service import ConsultantService
from franchise.services.notification_service import NotificationService, NotificationEvent
from franchise.services.revenue_ledger_service import RevenueLedgerService
from franchise.services.settlement_service import SettlementService
from franchise.services.licensee_lifecycle_service import (
    LicenseeLifecycleService,
    SuspendManifest,
    ReactivateManifest,
    TerminateManifest,
)

__all__ = [
    "AuditService",
    "TerritoryService",
    "CapacityTracker",
    "AllocationService",
    "ConsultantService",
    "NotificationService",
    "NotificationEvent",
    "RevenueLedgerService",
    "SettlementService",
    "LicenseeLifecycleService",
    "SuspendManifest",
    "ReactivateManifest",
    "TerminateManifest",
]
