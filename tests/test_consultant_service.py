"""
Tests for consultant records, availability and status transitions.
"""

from uuid import uuid4

import pytest

from franchise.models import (
    AssignmentSource,
    AuditAction,
    AuditEntityType,
    AvailabilityStatus,
    ConsultantRole,
    ConsultantStatus,
)
from franchise.services.allocation_service import AllocationService
from franchise.services.audit_service import AuditService
from franchise.services.consultant_service import ConsultantService
from franchise.services.notification_service import NotificationService
from franchise.utils.error_handling import (
    ConsultantNotFoundException,
    DuplicateEntryException,
    InvalidStateException,
    NotFoundException,
    OverCapacityException,
)

ACTOR = "ops-admin@example.com"


class TestCreateConsultant:

    @pytest.mark.asyncio
    async def test_create(self, db_session, territory):
        consultant = await ConsultantService(db_session).create_consultant(
            first_name="Amaka",
            last_name="Obi",
            email="amaka.obi@example.com",
            territory_id=territory.id,
            actor=ACTOR,
            role=ConsultantRole.CONSULTANT_360,
            max_jobs=8,
            languages=["English", "Igbo"],
        )

        assert consultant.status == ConsultantStatus.ACTIVE
        assert consultant.availability == AvailabilityStatus.AVAILABLE
        assert consultant.current_jobs == 0
        assert consultant.max_jobs == 8
        assert consultant.full_name == "Amaka Obi"

    @pytest.mark.asyncio
    async def test_unknown_territory(self, db_session):
        with pytest.raises(NotFoundException):
            await ConsultantService(db_session).create_consultant(
                first_name="A", last_name="B", email="ab@example.com", territory_id=uuid4(), actor=ACTOR
            )

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session, territory, consultant):
        with pytest.raises(DuplicateEntryException):
            await ConsultantService(db_session).create_consultant(
                first_name="A", last_name="B", email=consultant.email, territory_id=territory.id, actor=ACTOR
            )

    @pytest.mark.asyncio
    async def test_get_unknown(self, db_session):
        with pytest.raises(ConsultantNotFoundException):
            await ConsultantService(db_session).get_consultant(uuid4())


class TestAvailability:

    @pytest.mark.asyncio
    async def test_change_is_audited_once(self, db_session, consultant):
        service = ConsultantService(db_session)
        await service.set_availability(consultant.id, AvailabilityStatus.BUSY, ACTOR)
        await service.set_availability(consultant.id, AvailabilityStatus.BUSY, ACTOR)

        history = await AuditService(db_session).get_history(AuditEntityType.CONSULTANT, consultant.id)
        assert len(history) == 1
        assert history[0].new_value == {"availability": "BUSY"}


class TestSuspendConsultant:

    @pytest.mark.asyncio
    async def test_suspend_moves_jobs_to_colleague(self, db_session, make_consultant, make_job, territory):
        leaving = await make_consultant(territory, current_jobs=0)
        colleague = await make_consultant(territory, current_jobs=0)
        jobs = [await make_job(territory) for _ in range(2)]

        allocation = AllocationService(db_session)
        for job in jobs:
            await allocation.assign_to_consultant(job.id, leaving.id, ACTOR, AssignmentSource.MANUAL_OPERATOR)

        events = []

        async def capture(event):
            events.append(event)

        service = ConsultantService(db_session, notifier=NotificationService(sender=capture, enabled=True))
        suspended = await service.suspend_consultant(leaving.id, ACTOR, reassign_to=colleague.id, notes="Leave")

        assert suspended.status == ConsultantStatus.SUSPENDED
        assert suspended.availability == AvailabilityStatus.UNAVAILABLE
        assert suspended.current_jobs == 0

        await db_session.refresh(colleague)
        assert colleague.current_jobs == 2
        assert [e.name for e in events] == ["consultant.suspended"]
        assert events[0].payload["jobs_moved"] == 2

    @pytest.mark.asyncio
    async def test_failed_reassignment_aborts_suspension(self, db_session, make_consultant, make_job, territory):
        leaving = await make_consultant(territory, current_jobs=0)
        full = await make_consultant(territory, current_jobs=5, max_jobs=5)
        job = await make_job(territory)
        await AllocationService(db_session).assign_to_consultant(
            job.id, leaving.id, ACTOR, AssignmentSource.MANUAL_OPERATOR
        )

        service = ConsultantService(db_session)
        with pytest.raises(OverCapacityException):
            await service.suspend_consultant(leaving.id, ACTOR, reassign_to=full.id)

        await db_session.refresh(leaving)
        assert leaving.status == ConsultantStatus.ACTIVE
        assert leaving.current_jobs == 1

    @pytest.mark.asyncio
    async def test_suspend_then_reactivate(self, db_session, consultant):
        service = ConsultantService(db_session)
        consultant_id = consultant.id
        await service.suspend_consultant(consultant_id, ACTOR)

        with pytest.raises(InvalidStateException):
            await service.suspend_consultant(consultant_id, ACTOR)

        reactivated = await service.reactivate_consultant(consultant_id, ACTOR, notes="Back")
        assert reactivated.status == ConsultantStatus.ACTIVE
        assert reactivated.availability == AvailabilityStatus.AVAILABLE

        history = await AuditService(db_session).get_history(AuditEntityType.CONSULTANT, consultant_id)
        assert [e.action for e in history] == [AuditAction.REACTIVATE, AuditAction.SUSPEND]

    @pytest.mark.asyncio
    async def test_suspended_consultant_gets_no_new_jobs(self, db_session, consultant, make_job, territory):
        await ConsultantService(db_session).suspend_consultant(consultant.id, ACTOR)
        job = await make_job(territory)

        eligible, reason = await AllocationService(db_session).check_consultant_eligibility(consultant.id, job.id)
        assert eligible is False
        assert "SUSPENDED" in reason
