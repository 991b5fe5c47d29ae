"""
Regional Franchise Platform - Consultant Service

Consultant onboarding, availability and employment status. Suspending a
consultant can move their active jobs to a colleague in the same unit of
work.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from franchise.database import atomic
from franchise.models.territory import Territory
from franchise.models.consultant import (
    Consultant, ConsultantRole, ConsultantStatus, AvailabilityStatus,
)
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.services.allocation_service import AllocationService
from franchise.services.audit_service import AuditService
from franchise.services.notification_service import NotificationService, NotificationEvent
from franchise.utils.error_handling import (
    NotFoundException,
    ConsultantNotFoundException,
    DuplicateEntryException,
    InvalidStateException,
)

logger = logging.getLogger(__name__)


class ConsultantService:
    """Service for consultant records and status transitions."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.audit = AuditService(db)
        self.allocation = AllocationService(db)
        self.notifier = notifier or NotificationService()

    async def create_consultant(
        self,
        first_name: str,
        last_name: str,
        email: str,
        territory_id: uuid.UUID,
        actor: str,
        role: ConsultantRole = ConsultantRole.RECRUITER,
        max_jobs: int = 10,
        max_employers: int = 10,
        industry_expertise: Optional[List[str]] = None,
        languages: Optional[List[str]] = None,
    ) -> Consultant:
        """Create an ACTIVE, AVAILABLE consultant in an existing territory."""
        async with atomic(self.db):
            territory = await self.db.get(Territory, territory_id)
            if not territory:
                raise NotFoundException("Territory", territory_id)

            existing = await self.db.execute(
                select(Consultant.id).where(Consultant.email == email)
            )
            if existing.scalar_one_or_none():
                raise DuplicateEntryException("Consultant", "email", email)

            consultant = Consultant(
                first_name=first_name,
                last_name=last_name,
                email=email,
                role=role,
                status=ConsultantStatus.ACTIVE,
                availability=AvailabilityStatus.AVAILABLE,
                territory_id=territory_id,
                current_jobs=0,
                max_jobs=max_jobs,
                current_employers=0,
                max_employers=max_employers,
                industry_expertise=industry_expertise or [],
                languages=languages or [],
            )
            self.db.add(consultant)
            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.CONSULTANT,
                entity_id=consultant.id,
                action=AuditAction.CREATE,
                performed_by=actor,
                new_value={"email": email, "territory_id": territory_id, "role": role},
            )

        return consultant

    async def get_consultant(self, consultant_id: uuid.UUID) -> Consultant:
        consultant = await self.db.get(Consultant, consultant_id)
        if not consultant:
            raise ConsultantNotFoundException(consultant_id)
        return consultant

    async def set_availability(
        self,
        consultant_id: uuid.UUID,
        availability: AvailabilityStatus,
        actor: str,
    ) -> Consultant:
        async with atomic(self.db):
            consultant = await self.get_consultant(consultant_id)
            old = consultant.availability
            if old != availability:
                consultant.availability = availability
                await self.db.flush()
                await self.audit.log(
                    entity_type=AuditEntityType.CONSULTANT,
                    entity_id=consultant.id,
                    action=AuditAction.UPDATE,
                    performed_by=actor,
                    old_value={"availability": old},
                    new_value={"availability": availability},
                )

        return consultant

    async def _transition(
        self,
        consultant_id: uuid.UUID,
        allowed_from: tuple,
        new_status: ConsultantStatus,
        new_availability: AvailabilityStatus,
        operation: str,
    ) -> ConsultantStatus:
        """Compare-and-set status change; returns the previous status."""
        consultant = await self.get_consultant(consultant_id)
        previous = consultant.status

        result = await self.db.execute(
            update(Consultant)
            .where(Consultant.id == consultant_id, Consultant.status.in_(allowed_from))
            .values(status=new_status, availability=new_availability)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.refresh(consultant)
            raise InvalidStateException("consultant", consultant.status, operation)
        set_committed_value(consultant, "status", new_status)
        set_committed_value(consultant, "availability", new_availability)

        return previous

    async def suspend_consultant(
        self,
        consultant_id: uuid.UUID,
        actor: str,
        reassign_to: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> Consultant:
        """
        Suspend a consultant.

        When reassign_to is given, every active job moves to that consultant
        first; a failed move aborts the suspension too.
        """
        moved = 0
        async with atomic(self.db):
            previous = await self._transition(
                consultant_id,
                (ConsultantStatus.ACTIVE, ConsultantStatus.ON_LEAVE),
                ConsultantStatus.SUSPENDED,
                AvailabilityStatus.UNAVAILABLE,
                "suspend",
            )
            if reassign_to:
                moved = await self.allocation._reassign(consultant_id, reassign_to, actor)

            await self.audit.log(
                entity_type=AuditEntityType.CONSULTANT,
                entity_id=consultant_id,
                action=AuditAction.SUSPEND,
                performed_by=actor,
                old_value={"status": previous},
                new_value={
                    "status": ConsultantStatus.SUSPENDED,
                    "reassigned_to": reassign_to,
                    "jobs_moved": moved,
                },
                notes=notes,
            )

        consultant = await self.get_consultant(consultant_id)
        await self.db.refresh(consultant)
        logger.info(f"Consultant {consultant_id} suspended by {actor}, {moved} jobs moved")

        await self.notifier.dispatch(
            NotificationEvent(
                name="consultant.suspended",
                entity_id=str(consultant_id),
                payload={"jobs_moved": moved, "reassigned_to": str(reassign_to) if reassign_to else None},
            )
        )
        return consultant

    async def reactivate_consultant(
        self,
        consultant_id: uuid.UUID,
        actor: str,
        notes: Optional[str] = None,
    ) -> Consultant:
        async with atomic(self.db):
            previous = await self._transition(
                consultant_id,
                (ConsultantStatus.SUSPENDED, ConsultantStatus.ON_LEAVE),
                ConsultantStatus.ACTIVE,
                AvailabilityStatus.AVAILABLE,
                "reactivate",
            )
            await self.audit.log(
                entity_type=AuditEntityType.CONSULTANT,
                entity_id=consultant_id,
                action=AuditAction.REACTIVATE,
                performed_by=actor,
                old_value={"status": previous},
                new_value={"status": ConsultantStatus.ACTIVE},
                notes=notes,
            )

        consultant = await self.get_consultant(consultant_id)
        await self.db.refresh(consultant)
        logger.info(f"Consultant {consultant_id} reactivated by {actor}")
        return consultant
