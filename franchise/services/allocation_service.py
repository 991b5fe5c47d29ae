"""
Regional Franchise Platform - Allocation Engine

Routes jobs to capacity-bounded consultants:
- Manual assignment to a named consultant
- Assignment to a territory's least-loaded eligible consultant
- Automatic assignment through the auto-rules policy
- Unassignment and bulk reassignment between consultants
- The unassigned-job work queue

Every public method is one unit of work. The underscored helpers do the
same work without committing so other services can compose them into
their own transactions.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.config import settings
from franchise.database import atomic
from franchise.models.base import utcnow
from franchise.models.territory import Territory
from franchise.models.consultant import (
    Consultant, ConsultantStatus, AvailabilityStatus, AUTO_ASSIGNABLE_ROLES,
)
from franchise.models.job import (
    Job, JobStatus, JobAssignment, AssignmentStatus, AssignmentSource, PauseReason,
)
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.schemas.allocation import ConsultantFilter
from franchise.services.audit_service import AuditService
from franchise.services.capacity_tracker import CapacityTracker
from franchise.utils.error_handling import (
    NotFoundException,
    ConsultantNotFoundException,
    ValidationException,
    InvalidStateException,
    OverCapacityException,
    NoEligibleConsultantException,
)

logger = logging.getLogger(__name__)


class AllocationService:
    """Service for job-to-consultant allocation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.capacity = CapacityTracker(db)
        self.audit = AuditService(db)

    # ===========================================
    # LOOKUPS
    # ===========================================

    async def _get_job(self, job_id: uuid.UUID, lock: bool = False) -> Job:
        query = select(Job).where(Job.id == job_id)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        job = result.scalar_one_or_none()
        if not job:
            raise NotFoundException("Job", job_id)
        return job

    async def _get_consultant(self, consultant_id: uuid.UUID) -> Consultant:
        consultant = await self.db.get(Consultant, consultant_id)
        if not consultant:
            raise ConsultantNotFoundException(consultant_id)
        return consultant

    async def _active_assignments_for_job(self, job_id: uuid.UUID) -> List[JobAssignment]:
        result = await self.db.execute(
            select(JobAssignment).where(
                JobAssignment.job_id == job_id,
                JobAssignment.status == AssignmentStatus.ACTIVE,
            )
        )
        return list(result.scalars().all())

    async def _activate_assignment(
        self,
        consultant_id: uuid.UUID,
        job_id: uuid.UUID,
        actor: str,
        source: AssignmentSource,
    ) -> JobAssignment:
        """Upsert the ACTIVE row for a (consultant, job) pair."""
        result = await self.db.execute(
            select(JobAssignment).where(
                JobAssignment.consultant_id == consultant_id,
                JobAssignment.job_id == job_id,
            )
        )
        assignment = result.scalar_one_or_none()
        now = utcnow()

        if assignment:
            assignment.status = AssignmentStatus.ACTIVE
            assignment.assigned_by = actor
            assignment.assignment_source = source
            assignment.assigned_at = now
            assignment.completed_at = None
        else:
            assignment = JobAssignment(
                consultant_id=consultant_id,
                job_id=job_id,
                status=AssignmentStatus.ACTIVE,
                assigned_by=actor,
                assignment_source=source,
                assigned_at=now,
            )
            self.db.add(assignment)

        return assignment

    @staticmethod
    def _move_job(job: Job, territory_id: Optional[uuid.UUID]) -> None:
        """
        Set a job's territory. A job that leaves the territory a licensee
        suspension paused it in is reopened.
        """
        if (
            job.territory_id != territory_id
            and job.paused_reason == PauseReason.LICENSEE_SUSPENDED
        ):
            job.status = JobStatus.OPEN
            job.paused_reason = None
        job.territory_id = territory_id

    # ===========================================
    # JOB INTAKE
    # ===========================================

    async def create_job(
        self,
        title: str,
        actor: str,
        category: Optional[str] = None,
        territory_id: Optional[uuid.UUID] = None,
        status: JobStatus = JobStatus.OPEN,
    ) -> Job:
        """Register an unassigned job, optionally already scoped to a territory."""
        async with atomic(self.db):
            if territory_id and not await self.db.get(Territory, territory_id):
                raise NotFoundException("Territory", territory_id)

            job = Job(
                title=title,
                category=category,
                territory_id=territory_id,
                status=status,
                assignment_source=AssignmentSource.UNASSIGNED,
            )
            self.db.add(job)
            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.JOB,
                entity_id=job.id,
                action=AuditAction.CREATE,
                performed_by=actor,
                new_value={"title": title, "territory_id": territory_id, "status": status},
            )

        return job

    async def get_job(self, job_id: uuid.UUID) -> Job:
        return await self._get_job(job_id)

    # ===========================================
    # ASSIGN TO CONSULTANT
    # ===========================================

    async def assign_to_consultant(
        self,
        job_id: uuid.UUID,
        consultant_id: uuid.UUID,
        actor: str,
        source: AssignmentSource,
    ) -> Job:
        """
        Assign a job to a consultant.

        The job moves into the consultant's territory. Assigning a job that
        another consultant holds completes that assignment and frees the
        slot. Re-assigning the same pair does not claim a second slot.

        Raises:
            NotFoundException: job missing
            ConsultantNotFoundException: consultant missing
            OverCapacityException: consultant has no free slot
        """
        async with atomic(self.db):
            job = await self._assign(job_id, consultant_id, actor, source)

        logger.info(f"Job {job_id} assigned to consultant {consultant_id} by {actor} ({source.value})")
        return job

    async def _assign(
        self,
        job_id: uuid.UUID,
        consultant_id: uuid.UUID,
        actor: str,
        source: AssignmentSource,
    ) -> Job:
        if source == AssignmentSource.UNASSIGNED:
            raise ValidationException("UNASSIGNED is not a valid assignment source", field="source")

        job = await self._get_job(job_id, lock=True)
        consultant = await self._get_consultant(consultant_id)
        active = await self._active_assignments_for_job(job_id)

        already_held = any(row.consultant_id == consultant_id for row in active)
        if not already_held:
            # First write of the operation; a refusal leaves nothing to undo
            if not await self.capacity.claim(consultant_id):
                await self.db.refresh(consultant)
                raise OverCapacityException(
                    consultant_id, consultant.current_jobs, consultant.max_jobs
                )

        now = utcnow()
        for row in active:
            if row.consultant_id != consultant_id:
                row.status = AssignmentStatus.COMPLETED
                row.completed_at = now
                await self.capacity.release(row.consultant_id)

        await self._activate_assignment(consultant_id, job_id, actor, source)

        old_value = {
            "assigned_consultant_id": job.assigned_consultant_id,
            "territory_id": job.territory_id,
            "assignment_source": job.assignment_source,
        }
        job.assigned_consultant_id = consultant_id
        self._move_job(job, consultant.territory_id)
        job.assignment_source = source
        await self.db.flush()
        await self.db.refresh(consultant)

        await self.audit.log(
            entity_type=AuditEntityType.JOB,
            entity_id=job.id,
            action=AuditAction.ASSIGN,
            performed_by=actor,
            old_value=old_value,
            new_value={
                "assigned_consultant_id": consultant_id,
                "territory_id": consultant.territory_id,
                "assignment_source": source,
            },
        )
        return job

    # ===========================================
    # ASSIGN TO TERRITORY / AUTO ASSIGN
    # ===========================================

    async def _candidates(self, territory_id: uuid.UUID, auto_rules: bool = False) -> List[Consultant]:
        """
        Consultants who may take a new job in a territory, least loaded
        first, ties broken by earliest creation.
        """
        query = select(Consultant).where(
            Consultant.territory_id == territory_id,
            Consultant.status == ConsultantStatus.ACTIVE,
            Consultant.availability == AvailabilityStatus.AVAILABLE,
            Consultant.current_jobs < Consultant.max_jobs,
        )
        if auto_rules:
            query = query.where(Consultant.role.in_(AUTO_ASSIGNABLE_ROLES))

        result = await self.db.execute(
            query.order_by(Consultant.current_jobs, Consultant.created_at, Consultant.id)
        )
        return list(result.scalars().all())

    async def assign_to_territory(
        self,
        job_id: uuid.UUID,
        territory_id: uuid.UUID,
        actor: str,
        source: AssignmentSource = AssignmentSource.MANUAL_OPERATOR,
    ) -> Job:
        """
        Assign a job to the least-loaded available consultant in a territory.

        Raises:
            NotFoundException: job or territory missing
            NoEligibleConsultantException: nobody in the territory qualifies
        """
        async with atomic(self.db):
            job = await self._assign_to_territory(job_id, territory_id, actor, source)

        logger.info(f"Job {job_id} assigned within territory {territory_id} by {actor}")
        return job

    async def _assign_to_territory(
        self,
        job_id: uuid.UUID,
        territory_id: uuid.UUID,
        actor: str,
        source: AssignmentSource,
        auto_rules: bool = False,
    ) -> Job:
        territory = await self.db.get(Territory, territory_id)
        if not territory:
            raise NotFoundException("Territory", territory_id)

        for candidate in await self._candidates(territory_id, auto_rules=auto_rules):
            try:
                return await self._assign(job_id, candidate.id, actor, source)
            except OverCapacityException:
                # A concurrent caller took the last slot; try the next one
                logger.debug(f"Candidate {candidate.id} filled up, trying next")
                continue

        raise NoEligibleConsultantException(territory_id)

    async def auto_assign(self, job_id: uuid.UUID) -> uuid.UUID:
        """
        Assign a job through the auto-rules policy.

        Uses the job's territory, or the configured default territory when
        the job has none. Returns the chosen consultant's ID.
        """
        async with atomic(self.db):
            job = await self._get_job(job_id)
            territory_id = job.territory_id
            if territory_id is None and settings.default_territory_id:
                territory_id = uuid.UUID(str(settings.default_territory_id))
            if territory_id is None:
                raise NoEligibleConsultantException(
                    None, "Job has no territory and no default territory is configured"
                )

            job = await self._assign_to_territory(
                job_id,
                territory_id,
                actor="system",
                source=AssignmentSource.AUTO_RULES,
                auto_rules=True,
            )
            consultant_id = job.assigned_consultant_id

        logger.info(f"Job {job_id} auto-assigned to consultant {consultant_id}")
        return consultant_id

    # ===========================================
    # UNASSIGN
    # ===========================================

    async def unassign(self, job_id: uuid.UUID, actor: str = "system") -> None:
        """
        Release a job from its consultant.

        Safe to call repeatedly: an unassigned or unknown job is a no-op.
        """
        async with atomic(self.db):
            result = await self.db.execute(
                select(Job).where(Job.id == job_id).with_for_update()
            )
            job = result.scalar_one_or_none()
            if not job:
                logger.warning(f"Unassign requested for unknown job {job_id}")
                return
            changed = await self._unassign(job, actor)

        if changed:
            logger.info(f"Job {job_id} unassigned by {actor}")

    async def _unassign(self, job: Job, actor: str) -> bool:
        active = await self._active_assignments_for_job(job.id)
        if not active and job.assigned_consultant_id is None:
            return False

        now = utcnow()
        for row in active:
            row.status = AssignmentStatus.COMPLETED
            row.completed_at = now
            await self.capacity.release(row.consultant_id)

        old_value = {
            "assigned_consultant_id": job.assigned_consultant_id,
            "territory_id": job.territory_id,
            "assignment_source": job.assignment_source,
            "status": job.status,
        }
        job.assigned_consultant_id = None
        self._move_job(job, None)
        job.assignment_source = AssignmentSource.UNASSIGNED
        await self.db.flush()

        await self.audit.log(
            entity_type=AuditEntityType.JOB,
            entity_id=job.id,
            action=AuditAction.UNASSIGN,
            performed_by=actor,
            old_value=old_value,
            new_value={"assigned_consultant_id": None, "territory_id": None, "status": job.status},
        )
        return True

    # ===========================================
    # BULK REASSIGN
    # ===========================================

    async def reassign_consultant_jobs(
        self,
        from_consultant_id: uuid.UUID,
        to_consultant_id: uuid.UUID,
        actor: str,
    ) -> int:
        """
        Move every active job from one consultant to another.

        All jobs move or none do. Returns the number of jobs moved.

        Raises:
            ConsultantNotFoundException: either consultant missing
            InvalidStateException: source and destination are the same
            OverCapacityException: destination cannot absorb every job
        """
        async with atomic(self.db):
            count = await self._reassign(from_consultant_id, to_consultant_id, actor)

        logger.info(
            f"Reassigned {count} jobs from consultant {from_consultant_id} "
            f"to {to_consultant_id} by {actor}"
        )
        return count

    async def _reassign(
        self,
        from_consultant_id: uuid.UUID,
        to_consultant_id: uuid.UUID,
        actor: str,
    ) -> int:
        if from_consultant_id == to_consultant_id:
            raise InvalidStateException("consultant", "same consultant", "reassign jobs to")

        await self._get_consultant(from_consultant_id)
        target = await self._get_consultant(to_consultant_id)

        result = await self.db.execute(
            select(JobAssignment)
            .where(
                JobAssignment.consultant_id == from_consultant_id,
                JobAssignment.status == AssignmentStatus.ACTIVE,
            )
            .with_for_update()
        )
        rows = list(result.scalars().all())
        if not rows:
            return 0

        moved = len(rows)
        if not await self.capacity.claim(to_consultant_id, moved):
            await self.db.refresh(target)
            raise OverCapacityException(
                to_consultant_id, target.current_jobs, target.max_jobs, requested=moved
            )
        await self.capacity.release(from_consultant_id, moved)

        now = utcnow()
        job_ids = []
        for row in rows:
            row.status = AssignmentStatus.COMPLETED
            row.completed_at = now
            job_ids.append(row.job_id)
            await self._activate_assignment(
                to_consultant_id, row.job_id, actor, row.assignment_source
            )

        jobs = await self.db.execute(select(Job).where(Job.id.in_(job_ids)))
        for job in jobs.scalars().all():
            job.assigned_consultant_id = to_consultant_id
            self._move_job(job, target.territory_id)

        await self.db.flush()
        await self.db.refresh(target)

        await self.audit.log(
            entity_type=AuditEntityType.CONSULTANT,
            entity_id=from_consultant_id,
            action=AuditAction.REASSIGN,
            performed_by=actor,
            old_value={"consultant_id": from_consultant_id, "job_ids": job_ids},
            new_value={"consultant_id": to_consultant_id, "job_count": moved},
        )
        return moved

    # ===========================================
    # QUERIES
    # ===========================================

    async def get_eligible_consultants(
        self,
        territory_id: uuid.UUID,
        filters: Optional[ConsultantFilter] = None,
    ) -> List[Consultant]:
        """ACTIVE consultants of a territory matching the filter, least loaded first."""
        filters = filters or ConsultantFilter()

        query = select(Consultant).where(
            Consultant.territory_id == territory_id,
            Consultant.status == ConsultantStatus.ACTIVE,
        )
        if filters.role:
            query = query.where(Consultant.role == filters.role)
        if filters.availability:
            query = query.where(Consultant.availability == filters.availability)
        if filters.has_capacity:
            query = query.where(Consultant.current_jobs < Consultant.max_jobs)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    Consultant.first_name.ilike(pattern),
                    Consultant.last_name.ilike(pattern),
                    Consultant.email.ilike(pattern),
                )
            )

        result = await self.db.execute(
            query.order_by(Consultant.current_jobs, Consultant.created_at, Consultant.id)
        )
        consultants = list(result.scalars().all())

        # JSON list columns are matched here so the query stays portable
        if filters.industry:
            wanted = filters.industry.lower()
            consultants = [
                c for c in consultants
                if any(i.lower() == wanted for i in (c.industry_expertise or []))
            ]
        if filters.language:
            wanted = filters.language.lower()
            consultants = [
                c for c in consultants
                if any(lang.lower() == wanted for lang in (c.languages or []))
            ]

        return consultants

    async def check_consultant_eligibility(
        self,
        consultant_id: uuid.UUID,
        job_id: uuid.UUID,
    ) -> Tuple[bool, Optional[str]]:
        """Whether a consultant could take a job right now, and why not."""
        consultant = await self._get_consultant(consultant_id)
        job = await self._get_job(job_id)

        if consultant.status != ConsultantStatus.ACTIVE:
            return False, f"Consultant is {consultant.status.value}"
        if consultant.availability != AvailabilityStatus.AVAILABLE:
            return False, f"Consultant is {consultant.availability.value}"
        if not consultant.has_capacity:
            return False, f"Consultant is at capacity ({consultant.current_jobs}/{consultant.max_jobs})"
        if job.territory_id and job.territory_id != consultant.territory_id:
            return False, "Consultant works in a different territory"
        return True, None

    async def get_consultant_jobs(self, consultant_id: uuid.UUID) -> List[uuid.UUID]:
        """IDs of jobs a consultant actively holds."""
        await self._get_consultant(consultant_id)
        result = await self.db.execute(
            select(JobAssignment.job_id)
            .where(
                JobAssignment.consultant_id == consultant_id,
                JobAssignment.status == AssignmentStatus.ACTIVE,
            )
            .order_by(JobAssignment.assigned_at)
        )
        return list(result.scalars().all())

    async def get_job_consultants(self, job_id: uuid.UUID) -> List[Consultant]:
        """Consultants actively holding a job."""
        await self._get_job(job_id)
        result = await self.db.execute(
            select(Consultant)
            .join(JobAssignment, JobAssignment.consultant_id == Consultant.id)
            .where(
                JobAssignment.job_id == job_id,
                JobAssignment.status == AssignmentStatus.ACTIVE,
            )
            .order_by(JobAssignment.assigned_at)
        )
        return list(result.scalars().all())

    async def get_unassigned_jobs(
        self,
        territory_id: Optional[uuid.UUID] = None,
        status: Optional[JobStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Job]:
        """
        The allocation work queue: jobs no consultant holds, newest first.

        Jobs routed to a territory but not yet to a consultant are included;
        filter by territory_id to see one territory's queue.
        """
        query = select(Job).where(Job.assigned_consultant_id.is_(None))
        if territory_id:
            query = query.where(Job.territory_id == territory_id)
        if status:
            query = query.where(Job.status == status)

        result = await self.db.execute(
            query.order_by(Job.created_at.desc(), Job.id).offset(skip).limit(limit)
        )
        return list(result.scalars().all())
