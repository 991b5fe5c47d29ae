"""
Regional Franchise Platform - Settlement Engine

Batches a licensee's pending revenue into settlements and carries them
through payment.

Each revenue record is stamped with the settlement that folded it in.
Only unstamped PENDING records can enter a new settlement, and payment
flips exactly the stamped records, so no record is ever paid twice.
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from franchise.config import settings
from franchise.database import atomic
from franchise.models.base import utcnow
from franchise.models.territory import Licensee
from franchise.models.revenue import RevenueRecord, RevenueStatus, Settlement, SettlementStatus
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.services.audit_service import AuditService
from franchise.services.notification_service import NotificationService, NotificationEvent
from franchise.services.territory_service import unsettled_revenue
from franchise.utils.error_handling import (
    NotFoundException,
    InvalidStateException,
    AlreadyPaidException,
    NothingToSettleException,
)
from franchise.utils.money import round_currency, sum_currency

logger = logging.getLogger(__name__)


class SettlementService:
    """Service for settlement generation and payment."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.audit = AuditService(db)
        self.notifier = notifier or NotificationService()

    # ===========================================
    # GENERATION
    # ===========================================

    async def generate_settlement(
        self,
        licensee_id: uuid.UUID,
        period_end: date,
        actor: str = "system",
    ) -> Tuple[Settlement, int]:
        """
        Fold every unsettled PENDING record up to period_end into one
        PENDING settlement. The records themselves stay PENDING.

        Returns:
            The settlement and the number of records included

        Raises:
            NotFoundException: licensee missing
            NothingToSettleException: no eligible records
        """
        async with atomic(self.db):
            settlement, count = await self._create_settlement(licensee_id, period_end, actor)

        logger.info(
            f"Settlement {settlement.id} generated for licensee {licensee_id}: "
            f"{count} records, total {settlement.total_revenue}"
        )
        await self.notifier.dispatch(self.settlement_event("settlement.generated", settlement))
        return settlement, count

    async def _create_settlement(
        self,
        licensee_id: uuid.UUID,
        period_end: date,
        actor: str,
    ) -> Tuple[Settlement, int]:
        licensee = await self.db.get(Licensee, licensee_id)
        if not licensee:
            raise NotFoundException("Licensee", licensee_id)

        result = await self.db.execute(
            select(RevenueRecord)
            .where(RevenueRecord.licensee_id == licensee_id, unsettled_revenue(period_end))
            .order_by(RevenueRecord.period_start)
            .with_for_update()
        )
        records = list(result.scalars().all())
        if not records:
            raise NothingToSettleException(licensee_id, period_end)

        settlement = Settlement(
            licensee_id=licensee_id,
            period_start=min(r.period_start for r in records),
            period_end=max(r.period_end for r in records),
            total_revenue=sum_currency(r.total_revenue for r in records),
            licensee_share=sum_currency(r.licensee_share for r in records),
            operator_share=sum_currency(r.operator_share for r in records),
            status=SettlementStatus.PENDING,
            generated_at=utcnow(),
            generated_by=actor,
        )
        self.db.add(settlement)
        await self.db.flush()

        # Stamp only records nobody else stamped since we read them
        record_ids = [r.id for r in records]
        stamped = await self.db.execute(
            update(RevenueRecord)
            .where(RevenueRecord.id.in_(record_ids), RevenueRecord.settlement_id.is_(None))
            .values(settlement_id=settlement.id)
            .execution_options(synchronize_session=False)
        )
        if stamped.rowcount != len(record_ids):
            raise InvalidStateException(
                "revenue records", "already settled", "settle concurrently"
            )
        for record in records:
            set_committed_value(record, "settlement_id", settlement.id)

        await self.audit.log(
            entity_type=AuditEntityType.SETTLEMENT,
            entity_id=settlement.id,
            action=AuditAction.CREATE,
            performed_by=actor,
            new_value={
                "licensee_id": licensee_id,
                "period_start": settlement.period_start,
                "period_end": settlement.period_end,
                "total_revenue": settlement.total_revenue,
                "licensee_share": settlement.licensee_share,
                "operator_share": settlement.operator_share,
                "records_included": len(records),
            },
        )
        return settlement, len(records)

    async def generate_all_pending_settlements(
        self,
        period_end: date,
        actor: str = "system",
    ) -> Dict[str, Any]:
        """
        Generate a settlement for every licensee with unsettled revenue up
        to period_end. Each licensee is its own unit of work; one failure
        does not stop the others.
        """
        result = await self.db.execute(
            select(RevenueRecord.licensee_id)
            .where(RevenueRecord.licensee_id.is_not(None), unsettled_revenue(period_end))
            .distinct()
        )
        licensee_ids = list(result.scalars().all())

        results = []
        generated = 0
        for licensee_id in licensee_ids:
            try:
                settlement, _ = await self.generate_settlement(licensee_id, period_end, actor)
                results.append({
                    "licensee_id": licensee_id,
                    "success": True,
                    "settlement_id": settlement.id,
                })
                generated += 1
            except Exception as e:
                logger.error(f"Settlement generation failed for licensee {licensee_id}: {e}")
                results.append({
                    "licensee_id": licensee_id,
                    "success": False,
                    "error": getattr(e, "message", str(e)),
                })

        logger.info(f"Batch settlement run up to {period_end}: {generated}/{len(licensee_ids)} generated")
        return {"generated": generated, "results": results}

    # ===========================================
    # PAYMENT
    # ===========================================

    async def mark_settlement_paid(
        self,
        settlement_id: uuid.UUID,
        reference: str,
        actor: str = "system",
        payment_date: Optional[date] = None,
    ) -> Settlement:
        """
        Mark a settlement and its revenue records PAID.

        Raises:
            NotFoundException: settlement missing
            AlreadyPaidException: settlement was already paid
        """
        payment_date = payment_date or date.today()

        async with atomic(self.db):
            settlement = await self.db.get(Settlement, settlement_id)
            if not settlement:
                raise NotFoundException("Settlement", settlement_id)
            if settlement.status == SettlementStatus.PAID:
                raise AlreadyPaidException(settlement_id)

            flipped = await self.db.execute(
                update(Settlement)
                .where(Settlement.id == settlement_id, Settlement.status == SettlementStatus.PENDING)
                .values(
                    status=SettlementStatus.PAID,
                    payment_date=payment_date,
                    reference=reference,
                )
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                raise AlreadyPaidException(settlement_id)

            paid = await self.db.execute(
                update(RevenueRecord)
                .where(
                    RevenueRecord.settlement_id == settlement_id,
                    RevenueRecord.status == RevenueStatus.PENDING,
                )
                .values(status=RevenueStatus.PAID, paid_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            records_paid = paid.rowcount

            await self.audit.log(
                entity_type=AuditEntityType.SETTLEMENT,
                entity_id=settlement_id,
                action=AuditAction.PAY,
                performed_by=actor,
                old_value={"status": SettlementStatus.PENDING},
                new_value={
                    "status": SettlementStatus.PAID,
                    "reference": reference,
                    "payment_date": payment_date,
                    "records_paid": records_paid,
                },
            )

        await self.db.refresh(settlement)
        logger.info(f"Settlement {settlement_id} paid ({reference}), {records_paid} records flipped")
        await self.notifier.dispatch(self.settlement_event("settlement.paid", settlement))
        return settlement

    # ===========================================
    # QUERIES
    # ===========================================

    async def get_settlement(self, settlement_id: uuid.UUID) -> Settlement:
        settlement = await self.db.get(Settlement, settlement_id)
        if not settlement:
            raise NotFoundException("Settlement", settlement_id)
        return settlement

    async def get_pending_settlements(self, licensee_id: Optional[uuid.UUID] = None) -> List[Settlement]:
        query = select(Settlement).where(Settlement.status == SettlementStatus.PENDING)
        if licensee_id:
            query = query.where(Settlement.licensee_id == licensee_id)
        result = await self.db.execute(query.order_by(Settlement.generated_at.desc()))
        return list(result.scalars().all())

    async def get_settlements_by_licensee(
        self,
        licensee_id: uuid.UUID,
        status: Optional[SettlementStatus] = None,
        limit: int = 50,
    ) -> List[Settlement]:
        query = select(Settlement).where(Settlement.licensee_id == licensee_id)
        if status:
            query = query.where(Settlement.status == status)
        result = await self.db.execute(
            query.order_by(Settlement.generated_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_overdue_settlements(self, days: Optional[int] = None) -> List[Settlement]:
        """PENDING settlements generated more than `days` ago."""
        days = settings.settlement_overdue_days if days is None else days
        threshold = datetime.now(timezone.utc) - timedelta(days=days)
        result = await self.db.execute(
            select(Settlement)
            .where(
                Settlement.status == SettlementStatus.PENDING,
                Settlement.generated_at < threshold,
            )
            .order_by(Settlement.generated_at)
        )
        return list(result.scalars().all())

    async def get_settlement_stats(self) -> Dict[str, Any]:
        """Counts and revenue, licensee-share and operator-share sums per status."""
        result = await self.db.execute(
            select(
                Settlement.status,
                func.count(Settlement.id),
                func.coalesce(func.sum(Settlement.total_revenue), 0),
                func.coalesce(func.sum(Settlement.licensee_share), 0),
                func.coalesce(func.sum(Settlement.operator_share), 0),
            ).group_by(Settlement.status)
        )
        rows = {row[0]: row[1:] for row in result.all()}

        stats: Dict[str, Any] = {"total_count": 0}
        for status, prefix in ((SettlementStatus.PENDING, "pending"), (SettlementStatus.PAID, "paid")):
            count, revenue, licensee_share, operator_share = rows.get(status, (0, 0, 0, 0))
            stats[f"{prefix}_count"] = count
            stats[f"{prefix}_total_revenue"] = round_currency(revenue)
            stats[f"{prefix}_licensee_share"] = round_currency(licensee_share)
            stats[f"{prefix}_operator_share"] = round_currency(operator_share)
            stats["total_count"] += count
        return stats

    @staticmethod
    def settlement_event(name: str, settlement: Settlement) -> NotificationEvent:
        return NotificationEvent(
            name=name,
            entity_id=str(settlement.id),
            payload={
                "licensee_id": str(settlement.licensee_id),
                "licensee_share": str(settlement.licensee_share),
                "status": settlement.status.value,
            },
        )
