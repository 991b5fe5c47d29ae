"""
Tests for the allocation engine: manual, territory and automatic
assignment, unassignment and bulk reassignment.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from franchise.config import settings
from franchise.models import (
    AssignmentSource,
    AssignmentStatus,
    AuditAction,
    AuditLog,
    AvailabilityStatus,
    ConsultantRole,
    ConsultantStatus,
    JobAssignment,
    JobStatus,
    PauseReason,
)
from franchise.schemas.allocation import ConsultantFilter
from franchise.services.allocation_service import AllocationService
from franchise.services.licensee_lifecycle_service import LicenseeLifecycleService
from franchise.utils.error_handling import (
    ErrorCode,
    ConsultantNotFoundException,
    InvalidStateException,
    NoEligibleConsultantException,
    NotFoundException,
    OverCapacityException,
    ValidationException,
)

ACTOR = "ops-admin@example.com"


async def _assignments(db_session, job_id):
    result = await db_session.execute(
        select(JobAssignment).where(JobAssignment.job_id == job_id)
    )
    return list(result.scalars().all())


# ===========================================
# ASSIGN TO CONSULTANT
# ===========================================

class TestAssignToConsultant:

    @pytest.mark.asyncio
    async def test_assign_claims_slot_and_moves_job_into_territory(
        self, db_session, make_consultant, make_job, territory
    ):
        consultant = await make_consultant(territory, current_jobs=0, max_jobs=3)
        job = await make_job(None)

        service = AllocationService(db_session)
        job = await service.assign_to_consultant(
            job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR
        )

        await db_session.refresh(consultant)
        assert consultant.current_jobs == 1
        assert job.assigned_consultant_id == consultant.id
        assert job.territory_id == territory.id
        assert job.assignment_source == AssignmentSource.MANUAL_OPERATOR

        rows = await _assignments(db_session, job.id)
        assert len(rows) == 1
        assert rows[0].status == AssignmentStatus.ACTIVE
        assert rows[0].assigned_by == ACTOR

        audit = await db_session.execute(
            select(AuditLog).where(AuditLog.entity_id == str(job.id), AuditLog.action == AuditAction.ASSIGN)
        )
        assert audit.scalar_one().performed_by == ACTOR

    @pytest.mark.asyncio
    async def test_same_pair_twice_does_not_claim_second_slot(
        self, db_session, make_consultant, make_job, territory
    ):
        consultant = await make_consultant(territory, current_jobs=0, max_jobs=3)
        job = await make_job(territory)

        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_LICENSEE)

        await db_session.refresh(consultant)
        assert consultant.current_jobs == 1

        rows = await _assignments(db_session, job.id)
        assert len(rows) == 1
        assert rows[0].assignment_source == AssignmentSource.MANUAL_LICENSEE

    @pytest.mark.asyncio
    async def test_moving_job_to_another_consultant_frees_previous_slot(
        self, db_session, make_consultant, make_job, territory, operator_territory
    ):
        first = await make_consultant(territory, current_jobs=0)
        second = await make_consultant(operator_territory, current_jobs=0)
        job = await make_job(territory)

        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, first.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        job = await service.assign_to_consultant(job.id, second.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        await db_session.refresh(first)
        await db_session.refresh(second)
        assert first.current_jobs == 0
        assert second.current_jobs == 1
        assert job.territory_id == operator_territory.id

        rows = {row.consultant_id: row for row in await _assignments(db_session, job.id)}
        assert rows[first.id].status == AssignmentStatus.COMPLETED
        assert rows[first.id].completed_at is not None
        assert rows[second.id].status == AssignmentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_full_consultant_is_refused_without_changes(
        self, db_session, make_consultant, make_job, territory
    ):
        consultant = await make_consultant(territory, current_jobs=2, max_jobs=2)
        job = await make_job(None)

        service = AllocationService(db_session)
        with pytest.raises(OverCapacityException) as exc_info:
            await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        assert exc_info.value.code == ErrorCode.OVER_CAPACITY

        await db_session.refresh(consultant)
        await db_session.refresh(job)
        assert consultant.current_jobs == 2
        assert job.assigned_consultant_id is None
        assert job.territory_id is None
        assert await _assignments(db_session, job.id) == []

    @pytest.mark.asyncio
    async def test_unknown_consultant(self, db_session, make_job):
        job = await make_job(None)
        service = AllocationService(db_session)

        with pytest.raises(ConsultantNotFoundException) as exc_info:
            await service.assign_to_consultant(job.id, uuid4(), ACTOR, AssignmentSource.MANUAL_OPERATOR)
        assert exc_info.value.code == ErrorCode.CONSULTANT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_job(self, db_session, consultant):
        service = AllocationService(db_session)

        with pytest.raises(NotFoundException):
            await service.assign_to_consultant(uuid4(), consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

    @pytest.mark.asyncio
    async def test_unassigned_is_not_an_assignment_source(self, db_session, consultant, make_job):
        job = await make_job(None)
        service = AllocationService(db_session)

        with pytest.raises(ValidationException):
            await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.UNASSIGNED)


# ===========================================
# ASSIGN TO TERRITORY / AUTO ASSIGN
# ===========================================

class TestAssignToTerritory:

    @pytest.mark.asyncio
    async def test_picks_least_loaded_consultant(self, db_session, make_consultant, make_job, territory):
        await make_consultant(territory, current_jobs=3)
        lighter = await make_consultant(territory, current_jobs=1)
        await make_consultant(territory, current_jobs=2)
        job = await make_job(None)

        service = AllocationService(db_session)
        job = await service.assign_to_territory(job.id, territory.id, ACTOR)

        assert job.assigned_consultant_id == lighter.id
        assert job.assignment_source == AssignmentSource.MANUAL_OPERATOR

    @pytest.mark.asyncio
    async def test_ties_go_to_earliest_created(self, db_session, make_consultant, make_job, territory):
        earliest = await make_consultant(territory, current_jobs=1)
        await make_consultant(territory, current_jobs=1)
        job = await make_job(None)

        service = AllocationService(db_session)
        job = await service.assign_to_territory(job.id, territory.id, ACTOR)

        assert job.assigned_consultant_id == earliest.id

    @pytest.mark.asyncio
    async def test_skips_unavailable_inactive_and_full(self, db_session, make_consultant, make_job, territory):
        await make_consultant(territory, current_jobs=0, availability=AvailabilityStatus.BUSY)
        await make_consultant(territory, current_jobs=0, status=ConsultantStatus.ON_LEAVE)
        await make_consultant(territory, current_jobs=5, max_jobs=5)
        eligible = await make_consultant(territory, current_jobs=4, max_jobs=5)
        job = await make_job(None)

        service = AllocationService(db_session)
        job = await service.assign_to_territory(job.id, territory.id, ACTOR)

        assert job.assigned_consultant_id == eligible.id

    @pytest.mark.asyncio
    async def test_no_eligible_consultant(self, db_session, make_consultant, make_job, territory):
        await make_consultant(territory, current_jobs=5, max_jobs=5)
        job = await make_job(None)

        service = AllocationService(db_session)
        with pytest.raises(NoEligibleConsultantException) as exc_info:
            await service.assign_to_territory(job.id, territory.id, ACTOR)

        assert exc_info.value.code == ErrorCode.NO_ELIGIBLE_CONSULTANT
        await db_session.refresh(job)
        assert job.assigned_consultant_id is None

    @pytest.mark.asyncio
    async def test_unknown_territory(self, db_session, make_job):
        job = await make_job(None)
        service = AllocationService(db_session)

        with pytest.raises(NotFoundException):
            await service.assign_to_territory(job.id, uuid4(), ACTOR)


class TestAutoAssign:

    @pytest.mark.asyncio
    async def test_auto_rules_skip_sales_agents(self, db_session, make_consultant, make_job, territory):
        await make_consultant(territory, current_jobs=0, role=ConsultantRole.SALES_AGENT)
        recruiter = await make_consultant(territory, current_jobs=2, role=ConsultantRole.CONSULTANT_360)
        job = await make_job(territory)

        service = AllocationService(db_session)
        consultant_id = await service.auto_assign(job.id)

        assert consultant_id == recruiter.id
        await db_session.refresh(job)
        assert job.assignment_source == AssignmentSource.AUTO_RULES

        rows = await _assignments(db_session, job.id)
        assert rows[0].assigned_by == "system"

    @pytest.mark.asyncio
    async def test_falls_back_to_default_territory(
        self, db_session, make_consultant, make_job, operator_territory, monkeypatch
    ):
        consultant = await make_consultant(operator_territory, current_jobs=0)
        job = await make_job(None)
        monkeypatch.setattr(settings, "default_territory_id", str(operator_territory.id))

        service = AllocationService(db_session)
        assert await service.auto_assign(job.id) == consultant.id

    @pytest.mark.asyncio
    async def test_no_territory_and_no_default(self, db_session, make_job, monkeypatch):
        job = await make_job(None)
        monkeypatch.setattr(settings, "default_territory_id", None)

        service = AllocationService(db_session)
        with pytest.raises(NoEligibleConsultantException):
            await service.auto_assign(job.id)


# ===========================================
# UNASSIGN
# ===========================================

class TestUnassign:

    @pytest.mark.asyncio
    async def test_unassign_is_idempotent(self, db_session, make_consultant, make_job, territory):
        consultant = await make_consultant(territory, current_jobs=0)
        job = await make_job(territory)

        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        await service.unassign(job.id, ACTOR)
        await service.unassign(job.id, ACTOR)

        await db_session.refresh(consultant)
        await db_session.refresh(job)
        assert consultant.current_jobs == 0
        assert job.assigned_consultant_id is None
        assert job.territory_id is None
        assert job.assignment_source == AssignmentSource.UNASSIGNED

        audit = await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.UNASSIGN)
        )
        assert len(audit.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_unknown_job_is_noop(self, db_session):
        service = AllocationService(db_session)
        await service.unassign(uuid4(), ACTOR)

    @pytest.mark.asyncio
    async def test_unassign_reopens_job_paused_by_suspension(
        self, db_session, licensee, territory, make_consultant, make_job
    ):
        consultant = await make_consultant(territory, current_jobs=0)
        job = await make_job(territory)
        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        lifecycle = LicenseeLifecycleService(db_session)
        await lifecycle.suspend(licensee.id, ACTOR)
        await db_session.refresh(job)
        assert job.status == JobStatus.ON_HOLD

        await service.unassign(job.id, ACTOR)

        await db_session.refresh(job)
        assert job.territory_id is None
        assert job.status == JobStatus.OPEN
        assert job.paused_reason is None

        manifest = await lifecycle.reactivate(licensee.id, ACTOR)
        assert manifest.jobs_resumed == 0

    @pytest.mark.asyncio
    async def test_unassign_keeps_manual_hold(self, db_session, make_consultant, make_job, territory):
        consultant = await make_consultant(territory, current_jobs=0)
        job = await make_job(territory)
        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        job.status = JobStatus.ON_HOLD
        job.paused_reason = PauseReason.MANUAL
        await db_session.commit()

        await service.unassign(job.id, ACTOR)

        await db_session.refresh(job)
        assert job.status == JobStatus.ON_HOLD
        assert job.paused_reason == PauseReason.MANUAL


# ===========================================
# BULK REASSIGN
# ===========================================

class TestReassign:

    @pytest.mark.asyncio
    async def test_moves_every_active_job(self, db_session, make_consultant, make_job, territory):
        source = await make_consultant(territory, current_jobs=0)
        target = await make_consultant(territory, current_jobs=1, max_jobs=5)
        jobs = [await make_job(territory) for _ in range(3)]

        service = AllocationService(db_session)
        for job in jobs:
            await service.assign_to_consultant(job.id, source.id, ACTOR, AssignmentSource.MANUAL_LICENSEE)

        moved = await service.reassign_consultant_jobs(source.id, target.id, ACTOR)

        assert moved == 3
        await db_session.refresh(source)
        await db_session.refresh(target)
        assert source.current_jobs == 0
        assert target.current_jobs == 4
        assert set(await service.get_consultant_jobs(target.id)) == {j.id for j in jobs}
        assert await service.get_consultant_jobs(source.id) == []

        for job in jobs:
            await db_session.refresh(job)
            assert job.assigned_consultant_id == target.id
            assert job.assignment_source == AssignmentSource.MANUAL_LICENSEE

    @pytest.mark.asyncio
    async def test_target_without_room_moves_nothing(self, db_session, make_consultant, make_job, territory):
        source = await make_consultant(territory, current_jobs=0)
        target = await make_consultant(territory, current_jobs=4, max_jobs=5)
        jobs = [await make_job(territory) for _ in range(2)]

        service = AllocationService(db_session)
        for job in jobs:
            await service.assign_to_consultant(job.id, source.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        with pytest.raises(OverCapacityException) as exc_info:
            await service.reassign_consultant_jobs(source.id, target.id, ACTOR)
        assert exc_info.value.details["requested"] == 2

        await db_session.refresh(source)
        await db_session.refresh(target)
        assert source.current_jobs == 2
        assert target.current_jobs == 4
        assert len(await service.get_consultant_jobs(source.id)) == 2

    @pytest.mark.asyncio
    async def test_same_consultant_is_invalid(self, db_session, consultant):
        service = AllocationService(db_session)
        with pytest.raises(InvalidStateException):
            await service.reassign_consultant_jobs(consultant.id, consultant.id, ACTOR)

    @pytest.mark.asyncio
    async def test_nothing_to_move(self, db_session, make_consultant, territory):
        source = await make_consultant(territory)
        target = await make_consultant(territory)
        service = AllocationService(db_session)

        assert await service.reassign_consultant_jobs(source.id, target.id, ACTOR) == 0

    @pytest.mark.asyncio
    async def test_reassign_out_of_suspended_territory_reopens_jobs(
        self, db_session, licensee, territory, operator_territory, make_consultant, make_job
    ):
        source = await make_consultant(territory, current_jobs=0)
        target = await make_consultant(operator_territory, current_jobs=0)
        job = await make_job(territory)
        service = AllocationService(db_session)
        await service.assign_to_consultant(job.id, source.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        await LicenseeLifecycleService(db_session).suspend(licensee.id, ACTOR)

        assert await service.reassign_consultant_jobs(source.id, target.id, ACTOR) == 1

        await db_session.refresh(job)
        assert job.territory_id == operator_territory.id
        assert job.status == JobStatus.OPEN
        assert job.paused_reason is None


# ===========================================
# QUERIES
# ===========================================

class TestJobQueries:

    @pytest.mark.asyncio
    async def test_unassigned_queue_and_filters(
        self, db_session, make_consultant, make_job, territory, operator_territory
    ):
        consultant = await make_consultant(territory, current_jobs=0)
        routed = await make_job(territory)
        held = await make_job(territory)
        floating = await make_job(None)
        paused = await make_job(operator_territory, status=JobStatus.ON_HOLD, paused_reason=PauseReason.MANUAL)

        service = AllocationService(db_session)
        await service.assign_to_consultant(held.id, consultant.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        queue = await service.get_unassigned_jobs()
        assert {j.id for j in queue} == {routed.id, floating.id, paused.id}

        in_territory = await service.get_unassigned_jobs(territory_id=territory.id)
        assert [j.id for j in in_territory] == [routed.id]

        on_hold = await service.get_unassigned_jobs(status=JobStatus.ON_HOLD)
        assert [j.id for j in on_hold] == [paused.id]

        assert len(await service.get_unassigned_jobs(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_job_consultants_follow_assignment(self, db_session, make_consultant, make_job, territory):
        first = await make_consultant(territory, current_jobs=0)
        second = await make_consultant(territory, current_jobs=0)
        job = await make_job(territory)

        service = AllocationService(db_session)
        assert await service.get_job_consultants(job.id) == []

        await service.assign_to_consultant(job.id, first.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        await service.assign_to_consultant(job.id, second.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)
        assert [c.id for c in await service.get_job_consultants(job.id)] == [second.id]

        await service.unassign(job.id, ACTOR)
        assert await service.get_job_consultants(job.id) == []

    @pytest.mark.asyncio
    async def test_job_consultants_unknown_job(self, db_session):
        with pytest.raises(NotFoundException):
            await AllocationService(db_session).get_job_consultants(uuid4())


class TestEligibility:

    @pytest.mark.asyncio
    async def test_filters_by_industry_and_language(self, db_session, make_consultant, territory):
        fintech = await make_consultant(
            territory, industry_expertise=["Fintech", "Retail"], languages=["English", "French"]
        )
        await make_consultant(territory, industry_expertise=["Mining"], languages=["English"])

        service = AllocationService(db_session)
        found = await service.get_eligible_consultants(
            territory.id, ConsultantFilter(industry="fintech", language="french")
        )
        assert [c.id for c in found] == [fintech.id]

    @pytest.mark.asyncio
    async def test_filters_by_role_and_search(self, db_session, make_consultant, territory):
        await make_consultant(territory, role=ConsultantRole.SALES_AGENT, first_name="Priya")
        await make_consultant(territory, role=ConsultantRole.RECRUITER, first_name="Priyanka")

        service = AllocationService(db_session)
        found = await service.get_eligible_consultants(
            territory.id, ConsultantFilter(role=ConsultantRole.SALES_AGENT, search="priya")
        )
        assert len(found) == 1
        assert found[0].first_name == "Priya"

    @pytest.mark.asyncio
    async def test_capacity_filter_can_be_disabled(self, db_session, make_consultant, territory):
        await make_consultant(territory, current_jobs=5, max_jobs=5)
        service = AllocationService(db_session)

        assert await service.get_eligible_consultants(territory.id) == []
        assert len(await service.get_eligible_consultants(
            territory.id, ConsultantFilter(has_capacity=False)
        )) == 1

    @pytest.mark.asyncio
    async def test_check_eligibility_reasons(self, db_session, make_consultant, make_job, territory, operator_territory):
        busy = await make_consultant(territory, availability=AvailabilityStatus.BUSY)
        full = await make_consultant(territory, current_jobs=5, max_jobs=5)
        ok = await make_consultant(territory)
        job = await make_job(territory)
        elsewhere = await make_job(operator_territory)

        service = AllocationService(db_session)
        assert await service.check_consultant_eligibility(ok.id, job.id) == (True, None)

        eligible, reason = await service.check_consultant_eligibility(busy.id, job.id)
        assert not eligible and "BUSY" in reason

        eligible, reason = await service.check_consultant_eligibility(full.id, job.id)
        assert not eligible and "capacity" in reason

        eligible, reason = await service.check_consultant_eligibility(ok.id, elsewhere.id)
        assert not eligible and "territory" in reason
