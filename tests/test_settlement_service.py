"""
Tests for settlement generation and payment.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from franchise.models import (
    AuditAction,
    AuditEntityType,
    Licensee,
    LicenseeStatus,
    RevenueRecord,
    RevenueStatus,
    Settlement,
    SettlementStatus,
)
from franchise.services.audit_service import AuditService
from franchise.services.notification_service import NotificationService
from franchise.services.revenue_ledger_service import RevenueLedgerService
from franchise.services.settlement_service import SettlementService
from franchise.utils.error_handling import (
    AlreadyPaidException,
    ErrorCode,
    NotFoundException,
    NothingToSettleException,
)

ACTOR = "finance@example.com"
JAN_END = date(2025, 1, 31)


@pytest.fixture
async def january_revenue(db_session, territory):
    """Two January records: 1000.00 and 500.00 at an 80/20 split."""
    ledger = RevenueLedgerService(db_session)
    first = await ledger.record_revenue(territory.id, date(2025, 1, 1), date(2025, 1, 15), Decimal("1000.00"))
    second = await ledger.record_revenue(territory.id, date(2025, 1, 16), JAN_END, Decimal("500.00"))
    return [first, second]


async def _record_states(db_session, record_ids):
    result = await db_session.execute(
        select(RevenueRecord.id, RevenueRecord.status, RevenueRecord.settlement_id)
        .where(RevenueRecord.id.in_(record_ids))
    )
    return {row.id: (row.status, row.settlement_id) for row in result.all()}


# ===========================================
# GENERATION
# ===========================================

class TestGenerateSettlement:

    @pytest.mark.asyncio
    async def test_totals_and_records_stay_pending(self, db_session, licensee, january_revenue):
        service = SettlementService(db_session)
        settlement, count = await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        assert count == 2
        assert settlement.status == SettlementStatus.PENDING
        assert settlement.total_revenue == Decimal("1500.00")
        assert settlement.licensee_share == Decimal("1200.00")
        assert settlement.operator_share == Decimal("300.00")
        assert settlement.period_start == date(2025, 1, 1)
        assert settlement.period_end == JAN_END
        assert settlement.generated_by == ACTOR

        states = await _record_states(db_session, [r.id for r in january_revenue])
        assert all(state == (RevenueStatus.PENDING, settlement.id) for state in states.values())

    @pytest.mark.asyncio
    async def test_records_after_period_end_are_left_out(self, db_session, licensee, territory, january_revenue):
        ledger = RevenueLedgerService(db_session)
        february = await ledger.record_revenue(
            territory.id, date(2025, 2, 1), date(2025, 2, 28), Decimal("700.00")
        )

        settlement, count = await SettlementService(db_session).generate_settlement(licensee.id, JAN_END, ACTOR)

        assert count == 2
        states = await _record_states(db_session, [february.id])
        assert states[february.id] == (RevenueStatus.PENDING, None)

    @pytest.mark.asyncio
    async def test_nothing_to_settle(self, db_session, licensee):
        service = SettlementService(db_session)
        with pytest.raises(NothingToSettleException) as exc_info:
            await service.generate_settlement(licensee.id, JAN_END, ACTOR)
        assert exc_info.value.code == ErrorCode.NOTHING_TO_SETTLE

    @pytest.mark.asyncio
    async def test_already_settled_records_are_not_settled_again(self, db_session, licensee, january_revenue):
        service = SettlementService(db_session)
        await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        with pytest.raises(NothingToSettleException):
            await service.generate_settlement(licensee.id, JAN_END, ACTOR)

    @pytest.mark.asyncio
    async def test_unknown_licensee(self, db_session):
        with pytest.raises(NotFoundException):
            await SettlementService(db_session).generate_settlement(uuid4(), JAN_END, ACTOR)


# ===========================================
# PAYMENT
# ===========================================

class TestMarkPaid:

    @pytest.mark.asyncio
    async def test_payment_flips_settlement_and_records(self, db_session, licensee, january_revenue):
        service = SettlementService(db_session)
        settlement, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        paid = await service.mark_settlement_paid(settlement.id, "REF1", actor=ACTOR, payment_date=date(2025, 2, 5))

        assert paid.status == SettlementStatus.PAID
        assert paid.reference == "REF1"
        assert paid.payment_date == date(2025, 2, 5)

        for record in january_revenue:
            await db_session.refresh(record)
            assert record.status == RevenueStatus.PAID
            assert record.paid_at is not None

        history = await AuditService(db_session).get_history(AuditEntityType.SETTLEMENT, settlement.id)
        assert [entry.action for entry in history] == [AuditAction.PAY, AuditAction.CREATE]
        assert history[0].new_value["records_paid"] == 2

    @pytest.mark.asyncio
    async def test_second_payment_is_rejected(self, db_session, licensee, january_revenue):
        service = SettlementService(db_session)
        settlement, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)
        await service.mark_settlement_paid(settlement.id, "REF1", actor=ACTOR)

        with pytest.raises(AlreadyPaidException) as exc_info:
            await service.mark_settlement_paid(settlement.id, "REF2", actor=ACTOR)
        assert exc_info.value.code == ErrorCode.ALREADY_PAID

        await db_session.refresh(settlement)
        assert settlement.reference == "REF1"

        history = await AuditService(db_session).get_history(AuditEntityType.SETTLEMENT, settlement.id)
        assert len([e for e in history if e.action == AuditAction.PAY]) == 1

    @pytest.mark.asyncio
    async def test_record_added_after_generation_is_not_paid(
        self, db_session, licensee, territory, january_revenue
    ):
        service = SettlementService(db_session)
        settlement, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        late = await RevenueLedgerService(db_session).record_revenue(
            territory.id, date(2025, 1, 10), date(2025, 1, 20), Decimal("250.00")
        )
        await service.mark_settlement_paid(settlement.id, "REF1", actor=ACTOR)

        states = await _record_states(db_session, [late.id])
        assert states[late.id] == (RevenueStatus.PENDING, None)

        follow_up, count = await service.generate_settlement(licensee.id, JAN_END, ACTOR)
        assert count == 1
        assert follow_up.total_revenue == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_unknown_settlement(self, db_session):
        with pytest.raises(NotFoundException):
            await SettlementService(db_session).mark_settlement_paid(uuid4(), "REF1")


# ===========================================
# BATCH / QUERIES
# ===========================================

class TestBatchAndQueries:

    @pytest.mark.asyncio
    async def test_generate_all_reports_each_licensee(self, db_session, licensee, make_territory, january_revenue):
        other = Licensee(
            name="South Coast Ventures",
            legal_entity_name="South Coast Ventures LLC",
            email="accounts@southcoast.example.com",
            revenue_share_percent=Decimal("70.00"),
            status=LicenseeStatus.ACTIVE,
        )
        db_session.add(other)
        await db_session.commit()
        south = await make_territory(other)
        await RevenueLedgerService(db_session).record_revenue(
            south.id, date(2025, 1, 1), JAN_END, Decimal("100.00")
        )

        report = await SettlementService(db_session).generate_all_pending_settlements(JAN_END, ACTOR)

        assert report["generated"] == 2
        assert {item["licensee_id"] for item in report["results"]} == {licensee.id, other.id}
        assert all(item["success"] for item in report["results"])

        result = await db_session.execute(select(Settlement))
        assert len(result.scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_one_failing_licensee_does_not_stop_the_batch(
        self, db_session, licensee, make_territory, january_revenue, monkeypatch
    ):
        other = Licensee(
            name="Lakeside Talent",
            legal_entity_name="Lakeside Talent Ltd",
            email="finance@lakeside.example.com",
            revenue_share_percent=Decimal("60.00"),
            status=LicenseeStatus.ACTIVE,
        )
        db_session.add(other)
        await db_session.commit()
        lakeside = await make_territory(other)
        await RevenueLedgerService(db_session).record_revenue(
            lakeside.id, date(2025, 1, 1), JAN_END, Decimal("250.00")
        )

        failing_id, healthy_id = licensee.id, other.id
        failing_records = [r.id for r in january_revenue]

        service = SettlementService(db_session)
        real_log = service.audit.log

        async def log_or_fail(*args, **kwargs):
            new_value = kwargs.get("new_value") or {}
            if new_value.get("licensee_id") == failing_id:
                raise RuntimeError("audit store unavailable")
            return await real_log(*args, **kwargs)

        monkeypatch.setattr(service.audit, "log", log_or_fail)

        report = await service.generate_all_pending_settlements(JAN_END, ACTOR)

        assert report["generated"] == 1
        outcomes = {item["licensee_id"]: item for item in report["results"]}
        assert outcomes[failing_id]["success"] is False
        assert outcomes[failing_id]["error"] == "audit store unavailable"
        assert outcomes[healthy_id]["success"] is True

        result = await db_session.execute(select(Settlement))
        settlements = result.scalars().all()
        assert [(s.id, s.licensee_id) for s in settlements] == [
            (outcomes[healthy_id]["settlement_id"], healthy_id)
        ]
        assert settlements[0].licensee_share == Decimal("150.00")

        states = await _record_states(db_session, failing_records)
        assert all(state == (RevenueStatus.PENDING, None) for state in states.values())

    @pytest.mark.asyncio
    async def test_operator_revenue_is_never_batched(self, db_session, operator_territory):
        await RevenueLedgerService(db_session).record_revenue(
            operator_territory.id, date(2025, 1, 1), JAN_END, Decimal("900.00")
        )

        report = await SettlementService(db_session).generate_all_pending_settlements(JAN_END, ACTOR)
        assert report == {"generated": 0, "results": []}

    @pytest.mark.asyncio
    async def test_stats_and_listing(self, db_session, licensee, territory, january_revenue):
        service = SettlementService(db_session)
        january, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)
        await service.mark_settlement_paid(january.id, "REF1", actor=ACTOR)

        await RevenueLedgerService(db_session).record_revenue(
            territory.id, date(2025, 2, 1), date(2025, 2, 28), Decimal("400.00")
        )
        february, _ = await service.generate_settlement(licensee.id, date(2025, 2, 28), ACTOR)

        stats = await service.get_settlement_stats()
        assert stats["pending_count"] == 1
        assert stats["paid_count"] == 1
        assert stats["total_count"] == 2
        assert stats["pending_licensee_share"] == Decimal("320.00")
        assert stats["paid_licensee_share"] == Decimal("1200.00")
        assert stats["pending_total_revenue"] == Decimal("400.00")
        assert stats["paid_total_revenue"] == Decimal("1500.00")
        assert stats["pending_operator_share"] == Decimal("80.00")
        assert stats["paid_operator_share"] == Decimal("300.00")

        pending = await service.get_pending_settlements(licensee.id)
        assert [s.id for s in pending] == [february.id]

        paid = await service.get_settlements_by_licensee(licensee.id, status=SettlementStatus.PAID)
        assert [s.id for s in paid] == [january.id]

    @pytest.mark.asyncio
    async def test_overdue_settlements(self, db_session, licensee, january_revenue):
        service = SettlementService(db_session)
        settlement, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        assert await service.get_overdue_settlements(days=30) == []

        settlement.generated_at = settlement.generated_at - timedelta(days=45)
        await db_session.commit()

        overdue = await service.get_overdue_settlements(days=30)
        assert [s.id for s in overdue] == [settlement.id]

    @pytest.mark.asyncio
    async def test_generation_notifies_after_commit(self, db_session, licensee, january_revenue):
        events = []

        async def capture(event):
            events.append(event)

        service = SettlementService(db_session, notifier=NotificationService(sender=capture, enabled=True))
        settlement, _ = await service.generate_settlement(licensee.id, JAN_END, ACTOR)

        assert [e.name for e in events] == ["settlement.generated"]
        assert events[0].entity_id == str(settlement.id)
        assert events[0].payload["licensee_share"] == "1200.00"
