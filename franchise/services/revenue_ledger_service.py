"""
Regional Franchise Platform - Revenue Ledger Service

Per-territory, per-period revenue with the licensee/operator split
computed from the owning licensee's agreement at recording time.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.database import atomic
from franchise.models.territory import Territory, TerritoryOwnerType, Licensee, LicenseeStatus
from franchise.models.revenue import RevenueRecord, RevenueStatus
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.services.audit_service import AuditService
from franchise.utils.error_handling import (
    NotFoundException,
    ValidationException,
    InvalidStateException,
)
from franchise.utils.money import round_currency, split_revenue

logger = logging.getLogger(__name__)


class RevenueLedgerService:
    """Service for recording and querying territory revenue."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _licensee_percent(self, territory: Territory) -> Decimal:
        """Share percentage the territory's owner earns; only ACTIVE licensees earn."""
        if territory.owner_type != TerritoryOwnerType.LICENSEE or not territory.licensee_id:
            return Decimal("0")
        licensee = await self.db.get(Licensee, territory.licensee_id)
        if not licensee or licensee.status != LicenseeStatus.ACTIVE:
            return Decimal("0")
        return licensee.revenue_share_percent

    async def record_revenue(
        self,
        territory_id: uuid.UUID,
        period_start: date,
        period_end: date,
        total_revenue: Decimal,
        actor: str = "system",
    ) -> RevenueRecord:
        """
        Create or update the revenue record for a territory and period.

        An existing record is only updated while it is PENDING and not yet
        folded into a settlement.
        """
        if period_end < period_start:
            raise ValidationException("period_end must not precede period_start", field="period_end")
        total = round_currency(total_revenue)
        if total < 0:
            raise ValidationException("Revenue cannot be negative", field="total_revenue")

        async with atomic(self.db):
            territory = await self.db.get(Territory, territory_id)
            if not territory:
                raise NotFoundException("Territory", territory_id)

            percent = await self._licensee_percent(territory)
            licensee_share, operator_share = split_revenue(total, percent)

            result = await self.db.execute(
                select(RevenueRecord)
                .where(
                    RevenueRecord.territory_id == territory_id,
                    RevenueRecord.period_start == period_start,
                    RevenueRecord.period_end == period_end,
                )
                .with_for_update()
            )
            record = result.scalar_one_or_none()

            if record:
                if record.status != RevenueStatus.PENDING or record.settlement_id:
                    state = "SETTLED" if record.status == RevenueStatus.PENDING else record.status
                    raise InvalidStateException("revenue record", state, "update")

                old_value = {
                    "total_revenue": record.total_revenue,
                    "licensee_share": record.licensee_share,
                    "operator_share": record.operator_share,
                }
                record.total_revenue = total
                record.licensee_share = licensee_share
                record.operator_share = operator_share
                record.licensee_id = territory.licensee_id
                action = AuditAction.UPDATE
            else:
                old_value = None
                record = RevenueRecord(
                    territory_id=territory_id,
                    licensee_id=territory.licensee_id,
                    period_start=period_start,
                    period_end=period_end,
                    total_revenue=total,
                    licensee_share=licensee_share,
                    operator_share=operator_share,
                    status=RevenueStatus.PENDING,
                )
                self.db.add(record)
                action = AuditAction.CREATE

            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.REVENUE,
                entity_id=record.id,
                action=action,
                performed_by=actor,
                old_value=old_value,
                new_value={
                    "total_revenue": total,
                    "licensee_share": licensee_share,
                    "operator_share": operator_share,
                    "licensee_percent": percent,
                },
            )

        logger.info(
            f"Revenue {total} recorded for territory {territory.code} "
            f"{period_start}..{period_end} (licensee {licensee_share}, operator {operator_share})"
        )
        return record

    async def get_pending_revenue(self, licensee_id: Optional[uuid.UUID] = None) -> List[RevenueRecord]:
        """PENDING records, optionally for one licensee, oldest period first."""
        query = select(RevenueRecord).where(RevenueRecord.status == RevenueStatus.PENDING)
        if licensee_id:
            query = query.where(RevenueRecord.licensee_id == licensee_id)

        result = await self.db.execute(
            query.order_by(RevenueRecord.period_end, RevenueRecord.created_at)
        )
        return list(result.scalars().all())

    async def get_revenue_by_territory(
        self,
        territory_id: uuid.UUID,
        status: Optional[RevenueStatus] = None,
        limit: int = 12,
    ) -> List[RevenueRecord]:
        """Most recent periods of a territory's revenue."""
        query = select(RevenueRecord).where(RevenueRecord.territory_id == territory_id)
        if status:
            query = query.where(RevenueRecord.status == status)

        result = await self.db.execute(
            query.order_by(RevenueRecord.period_end.desc()).limit(limit)
        )
        return list(result.scalars().all())
