"""
Regional Franchise Platform - Licensee Lifecycle Manager

Drives licensee status through ACTIVE -> SUSPENDED -> {ACTIVE, TERMINATED}
and performs the cascades each transition requires:
- Suspend pauses the OPEN jobs of the licensee's territories
- Reactivate resumes the jobs that suspension paused
- Terminate returns territories to the operator, resumes paused jobs and
  generates a final settlement

Status change, cascade and audit entries commit together or not at all.
Each cascade returns a manifest of the rows it touched.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from franchise.database import atomic
from franchise.models.territory import Territory, TerritoryOwnerType, Licensee, LicenseeStatus
from franchise.models.consultant import Consultant
from franchise.models.job import Job, JobStatus, PauseReason
from franchise.models.revenue import RevenueRecord, Settlement
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.services.audit_service import AuditService
from franchise.services.notification_service import NotificationService, NotificationEvent
from franchise.services.settlement_service import SettlementService
from franchise.services.territory_service import (
    TerritoryService,
    open_jobs_in,
    active_consultants_in,
    unsettled_revenue,
    count_where,
    sum_revenue_where,
)
from franchise.utils.error_handling import (
    NotFoundException,
    InvalidStateException,
    NothingToSettleException,
)

logger = logging.getLogger(__name__)


def paused_by_suspension_in(territory_ids: Sequence[uuid.UUID]):
    """Condition for jobs that a suspension put on hold."""
    return (
        (Job.territory_id.in_(territory_ids))
        & (Job.status == JobStatus.ON_HOLD)
        & (Job.paused_reason == PauseReason.LICENSEE_SUSPENDED)
    )


# ===========================================
# CASCADE MANIFESTS
# ===========================================

@dataclass
class SuspendManifest:
    licensee_id: uuid.UUID
    territory_ids: List[uuid.UUID] = field(default_factory=list)
    paused_job_ids: List[uuid.UUID] = field(default_factory=list)

    @property
    def jobs_paused(self) -> int:
        return len(self.paused_job_ids)

    @property
    def territories_affected(self) -> int:
        return len(self.territory_ids)


@dataclass
class ReactivateManifest:
    licensee_id: uuid.UUID
    territory_ids: List[uuid.UUID] = field(default_factory=list)
    resumed_job_ids: List[uuid.UUID] = field(default_factory=list)

    @property
    def jobs_resumed(self) -> int:
        return len(self.resumed_job_ids)


@dataclass
class TerminateManifest:
    licensee_id: uuid.UUID
    territory_ids: List[uuid.UUID] = field(default_factory=list)
    resumed_job_ids: List[uuid.UUID] = field(default_factory=list)
    consultants_affected: int = 0
    final_settlement: Optional[Settlement] = None
    settlement_records: int = 0

    @property
    def territories_unassigned(self) -> int:
        return len(self.territory_ids)

    @property
    def jobs_resumed(self) -> int:
        return len(self.resumed_job_ids)


class LicenseeLifecycleService:
    """Service for licensee suspension, reactivation and termination."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.audit = AuditService(db)
        self.territories = TerritoryService(db)
        self.notifier = notifier or NotificationService()
        self.settlements = SettlementService(db, notifier=self.notifier)

    # ===========================================
    # STATUS TRANSITION
    # ===========================================

    async def _transition(
        self,
        licensee_id: uuid.UUID,
        allowed_from: Sequence[LicenseeStatus],
        new_status: LicenseeStatus,
        operation: str,
    ) -> LicenseeStatus:
        """
        Compare-and-set the licensee status. Returns the previous status.

        Two concurrent callers cannot both pass: the second finds the
        status already changed and gets INVALID_STATE.
        """
        licensee = await self.db.get(Licensee, licensee_id)
        if not licensee:
            raise NotFoundException("Licensee", licensee_id)
        previous = licensee.status

        result = await self.db.execute(
            update(Licensee)
            .where(Licensee.id == licensee_id, Licensee.status.in_(allowed_from))
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.refresh(licensee)
            raise InvalidStateException("licensee", licensee.status, operation)
        set_committed_value(licensee, "status", new_status)

        return previous

    # ===========================================
    # CASCADES
    # ===========================================

    async def _pause_open_jobs(self, territory_ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
        if not territory_ids:
            return []
        result = await self.db.execute(
            select(Job.id).where(open_jobs_in(territory_ids)).with_for_update()
        )
        job_ids = list(result.scalars().all())
        if job_ids:
            await self.db.execute(
                update(Job)
                .where(Job.id.in_(job_ids))
                .values(status=JobStatus.ON_HOLD, paused_reason=PauseReason.LICENSEE_SUSPENDED)
                .execution_options(synchronize_session="evaluate")
            )
        return job_ids

    async def _resume_paused_jobs(self, territory_ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
        if not territory_ids:
            return []
        result = await self.db.execute(
            select(Job.id).where(paused_by_suspension_in(territory_ids)).with_for_update()
        )
        job_ids = list(result.scalars().all())
        if job_ids:
            await self.db.execute(
                update(Job)
                .where(Job.id.in_(job_ids))
                .values(status=JobStatus.OPEN, paused_reason=None)
                .execution_options(synchronize_session="evaluate")
            )
        return job_ids

    async def _release_territories(
        self,
        territory_ids: Sequence[uuid.UUID],
        licensee_id: uuid.UUID,
        actor: str,
    ) -> None:
        """Return territories to the operator."""
        if not territory_ids:
            return
        await self.db.execute(
            update(Territory)
            .where(Territory.id.in_(territory_ids))
            .values(owner_type=TerritoryOwnerType.OPERATOR, licensee_id=None)
            .execution_options(synchronize_session="evaluate")
        )
        for territory_id in territory_ids:
            await self.audit.log(
                entity_type=AuditEntityType.TERRITORY,
                entity_id=territory_id,
                action=AuditAction.TRANSFER,
                performed_by=actor,
                old_value={"owner_type": TerritoryOwnerType.LICENSEE, "licensee_id": licensee_id},
                new_value={"owner_type": TerritoryOwnerType.OPERATOR, "licensee_id": None},
                notes="Licensee terminated",
            )

    # ===========================================
    # OPERATIONS
    # ===========================================

    async def suspend(
        self,
        licensee_id: uuid.UUID,
        actor: str,
        notes: Optional[str] = None,
    ) -> SuspendManifest:
        """
        Suspend an ACTIVE licensee and pause the OPEN jobs in its
        territories. Consultants are left untouched.

        Raises:
            NotFoundException: licensee missing
            InvalidStateException: licensee not ACTIVE
        """
        async with atomic(self.db):
            previous = await self._transition(
                licensee_id, (LicenseeStatus.ACTIVE,), LicenseeStatus.SUSPENDED, "suspend"
            )
            territory_ids = await self.territories.get_licensee_territory_ids(licensee_id, lock=True)
            manifest = SuspendManifest(
                licensee_id=licensee_id,
                territory_ids=territory_ids,
                paused_job_ids=await self._pause_open_jobs(territory_ids),
            )

            await self.audit.log(
                entity_type=AuditEntityType.LICENSEE,
                entity_id=licensee_id,
                action=AuditAction.SUSPEND,
                performed_by=actor,
                old_value={"status": previous},
                new_value={
                    "status": LicenseeStatus.SUSPENDED,
                    "jobs_paused": manifest.jobs_paused,
                    "territories_affected": manifest.territories_affected,
                },
                notes=notes,
            )

        logger.info(
            f"Licensee {licensee_id} suspended by {actor}: "
            f"{manifest.jobs_paused} jobs paused in {manifest.territories_affected} territories"
        )
        await self.notifier.dispatch(
            NotificationEvent(
                name="licensee.suspended",
                entity_id=str(licensee_id),
                payload={"jobs_paused": manifest.jobs_paused, "notes": notes},
            )
        )
        return manifest

    async def reactivate(
        self,
        licensee_id: uuid.UUID,
        actor: str,
        notes: Optional[str] = None,
    ) -> ReactivateManifest:
        """
        Reactivate a SUSPENDED licensee and resume the jobs its suspension
        paused. Jobs paused for other reasons stay on hold.
        """
        async with atomic(self.db):
            previous = await self._transition(
                licensee_id, (LicenseeStatus.SUSPENDED,), LicenseeStatus.ACTIVE, "reactivate"
            )
            territory_ids = await self.territories.get_licensee_territory_ids(licensee_id, lock=True)
            manifest = ReactivateManifest(
                licensee_id=licensee_id,
                territory_ids=territory_ids,
                resumed_job_ids=await self._resume_paused_jobs(territory_ids),
            )

            await self.audit.log(
                entity_type=AuditEntityType.LICENSEE,
                entity_id=licensee_id,
                action=AuditAction.REACTIVATE,
                performed_by=actor,
                old_value={"status": previous},
                new_value={"status": LicenseeStatus.ACTIVE, "jobs_resumed": manifest.jobs_resumed},
                notes=notes,
            )

        logger.info(f"Licensee {licensee_id} reactivated by {actor}: {manifest.jobs_resumed} jobs resumed")
        await self.notifier.dispatch(
            NotificationEvent(
                name="licensee.reactivated",
                entity_id=str(licensee_id),
                payload={"jobs_resumed": manifest.jobs_resumed},
            )
        )
        return manifest

    async def terminate(
        self,
        licensee_id: uuid.UUID,
        actor: str,
        notes: Optional[str] = None,
    ) -> TerminateManifest:
        """
        Terminate an ACTIVE or SUSPENDED licensee.

        Territories revert to the operator, jobs paused by a suspension
        reopen, and a final settlement covers every unsettled PENDING
        record up to today (none when nothing is pending). TERMINATED is
        final.
        """
        cutoff = date.today()

        async with atomic(self.db):
            previous = await self._transition(
                licensee_id,
                (LicenseeStatus.ACTIVE, LicenseeStatus.SUSPENDED),
                LicenseeStatus.TERMINATED,
                "terminate",
            )
            territory_ids = await self.territories.get_licensee_territory_ids(licensee_id, lock=True)

            manifest = TerminateManifest(licensee_id=licensee_id, territory_ids=territory_ids)
            if territory_ids:
                manifest.consultants_affected = await count_where(
                    self.db, Consultant, active_consultants_in(territory_ids)
                )
            manifest.resumed_job_ids = await self._resume_paused_jobs(territory_ids)
            await self._release_territories(territory_ids, licensee_id, actor)

            try:
                settlement, count = await self.settlements._create_settlement(
                    licensee_id, cutoff, actor
                )
                manifest.final_settlement = settlement
                manifest.settlement_records = count
            except NothingToSettleException:
                logger.info(f"No pending revenue to settle for terminated licensee {licensee_id}")

            await self.audit.log(
                entity_type=AuditEntityType.LICENSEE,
                entity_id=licensee_id,
                action=AuditAction.TERMINATE,
                performed_by=actor,
                old_value={"status": previous},
                new_value={
                    "status": LicenseeStatus.TERMINATED,
                    "territories_unassigned": manifest.territories_unassigned,
                    "consultants_affected": manifest.consultants_affected,
                    "jobs_resumed": manifest.jobs_resumed,
                    "final_settlement_id": (
                        manifest.final_settlement.id if manifest.final_settlement else None
                    ),
                },
                notes=notes,
            )

        logger.info(
            f"Licensee {licensee_id} terminated by {actor}: "
            f"{manifest.territories_unassigned} territories returned to operator"
        )
        await self.notifier.dispatch(
            NotificationEvent(
                name="licensee.terminated",
                entity_id=str(licensee_id),
                payload={"territories_unassigned": manifest.territories_unassigned},
            )
        )
        if manifest.final_settlement:
            await self.notifier.dispatch(
                SettlementService.settlement_event("settlement.generated", manifest.final_settlement)
            )
        return manifest

    # ===========================================
    # PREVIEW
    # ===========================================

    async def get_impact_preview(self, licensee_id: uuid.UUID) -> Dict[str, Any]:
        """
        Counts a suspension or termination would produce right now, using
        the same predicates as the operations themselves.
        """
        licensee = await self.db.get(Licensee, licensee_id)
        if not licensee:
            raise NotFoundException("Licensee", licensee_id)

        territory_ids = await self.territories.get_licensee_territory_ids(licensee_id)
        active_jobs = 0
        consultants = 0
        if territory_ids:
            active_jobs = await count_where(self.db, Job, open_jobs_in(territory_ids))
            consultants = await count_where(self.db, Consultant, active_consultants_in(territory_ids))

        pending_revenue = await sum_revenue_where(
            self.db,
            (RevenueRecord.licensee_id == licensee_id) & unsettled_revenue(date.today()),
        )

        return {
            "licensee_id": licensee_id,
            "status": licensee.status,
            "territories": len(territory_ids),
            "active_jobs": active_jobs,
            "consultants": consultants,
            "pending_revenue": pending_revenue,
        }
