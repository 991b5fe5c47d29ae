"""
Tests for the audit trail.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from franchise.models import AuditAction, AuditEntityType, LicenseeStatus
from franchise.services.audit_service import AuditService


class TestAuditService:

    @pytest.mark.asyncio
    async def test_values_are_stored_as_json(self, db_session):
        service = AuditService(db_session)
        entity_id = uuid4()
        other_id = uuid4()

        await service.log(
            entity_type=AuditEntityType.LICENSEE,
            entity_id=entity_id,
            action=AuditAction.UPDATE,
            performed_by="ops",
            old_value={"status": LicenseeStatus.ACTIVE},
            new_value={
                "status": LicenseeStatus.SUSPENDED,
                "amount": Decimal("12.50"),
                "since": date(2025, 4, 1),
                "related": [other_id],
            },
            notes="Compliance review",
            ip_address="10.0.0.7",
        )
        await db_session.commit()

        [entry] = await service.get_history(AuditEntityType.LICENSEE, entity_id)
        assert entry.entity_id == str(entity_id)
        assert entry.old_value == {"status": "ACTIVE"}
        assert entry.new_value == {
            "status": "SUSPENDED",
            "amount": "12.50",
            "since": "2025-04-01",
            "related": [str(other_id)],
        }
        assert entry.ip_address == "10.0.0.7"
        assert entry.performed_at is not None

    @pytest.mark.asyncio
    async def test_queries(self, db_session):
        service = AuditService(db_session)
        target = uuid4()

        await service.log(AuditEntityType.JOB, target, AuditAction.ASSIGN, "alice")
        await service.log(AuditEntityType.JOB, target, AuditAction.UNASSIGN, "bob")
        await service.log(AuditEntityType.CONSULTANT, uuid4(), AuditAction.ASSIGN, "alice")
        await db_session.commit()

        history = await service.get_history(AuditEntityType.JOB, target)
        assert [e.action for e in history] == [AuditAction.UNASSIGN, AuditAction.ASSIGN]

        by_alice = await service.get_by_performer("alice")
        assert len(by_alice) == 2

        assigns = await service.get_by_action(AuditAction.ASSIGN, entity_type=AuditEntityType.JOB)
        assert [e.entity_id for e in assigns] == [str(target)]

        assert len(await service.get_recent(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_log_does_not_commit(self, db_session):
        service = AuditService(db_session)
        entity_id = uuid4()

        await service.log(AuditEntityType.TERRITORY, entity_id, AuditAction.CREATE, "ops")
        await db_session.rollback()

        assert await service.get_history(AuditEntityType.TERRITORY, entity_id) == []
