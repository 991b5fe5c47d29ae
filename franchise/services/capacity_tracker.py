"""
Regional Franchise Platform - Consultant Capacity Tracker

Job-load counters are changed only through single conditional UPDATE
statements, so the bound check and the increment happen in one step on
the database and concurrent claims cannot overshoot max_jobs.
"""

import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.config import settings
from franchise.models.consultant import Consultant, ConsultantStatus, CapacityWarningType

logger = logging.getLogger(__name__)


class CapacityTracker:
    """Atomic claim/release of consultant job slots."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def claim(self, consultant_id: uuid.UUID, slots: int = 1) -> bool:
        """
        Take `slots` job slots from a consultant.

        Returns False, changing nothing, when the consultant does not have
        that many free slots.
        """
        if slots <= 0:
            return True

        result = await self.db.execute(
            update(Consultant)
            .where(
                Consultant.id == consultant_id,
                Consultant.current_jobs + slots <= Consultant.max_jobs,
            )
            .values(current_jobs=Consultant.current_jobs + slots)
            .execution_options(synchronize_session=False)
        )
        claimed = result.rowcount == 1
        if not claimed:
            logger.debug(f"Capacity claim of {slots} refused for consultant {consultant_id}")
        return claimed

    async def release(self, consultant_id: uuid.UUID, slots: int = 1) -> None:
        """Give back `slots` job slots; the counter never drops below zero."""
        if slots <= 0:
            return

        await self.db.execute(
            update(Consultant)
            .where(Consultant.id == consultant_id)
            .values(
                current_jobs=case(
                    (Consultant.current_jobs >= slots, Consultant.current_jobs - slots),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )

    # ===========================================
    # WARNINGS
    # ===========================================

    async def get_capacity_warnings(self, near_percent: Optional[int] = None) -> Dict[str, Any]:
        """
        Report ACTIVE consultants at, near or over their job and employer limits.

        The job and employer CHECK constraints keep loads within their limits,
        so over_capacity is normally empty. Limits of zero are not reported.
        """
        near_percent = settings.capacity_warning_percent if near_percent is None else near_percent

        result = await self.db.execute(
            select(Consultant)
            .where(Consultant.status == ConsultantStatus.ACTIVE)
            .order_by(Consultant.last_name, Consultant.first_name, Consultant.id)
        )
        consultants = list(result.scalars().all())

        summary: Dict[str, Any] = {
            "at_capacity": [],
            "near_capacity": [],
            "over_capacity": [],
            "total_consultants": len(consultants),
        }
        flagged = set()

        for consultant in consultants:
            checks = (
                (CapacityWarningType.JOB_CAPACITY, consultant.current_jobs, consultant.max_jobs),
                (CapacityWarningType.EMPLOYER_CAPACITY, consultant.current_employers, consultant.max_employers),
            )
            for warning_type, current, limit in checks:
                if limit <= 0:
                    continue

                if current > limit:
                    bucket = "over_capacity"
                elif current == limit:
                    bucket = "at_capacity"
                elif current * 100 >= limit * near_percent:
                    bucket = "near_capacity"
                else:
                    continue

                summary[bucket].append({
                    "consultant_id": consultant.id,
                    "consultant_name": consultant.full_name,
                    "consultant_email": consultant.email,
                    "territory_id": consultant.territory_id,
                    "type": warning_type,
                    "current": current,
                    "max": limit,
                    "percentage": _percent(current, limit),
                })
                flagged.add(consultant.id)

        summary["consultants_with_warnings"] = len(flagged)
        if flagged:
            logger.info(
                f"Capacity warnings: {len(summary['over_capacity'])} over, "
                f"{len(summary['at_capacity'])} at, {len(summary['near_capacity'])} near"
            )
        return summary


def _percent(current: int, limit: int) -> int:
    """Whole percentage, halves rounded up."""
    value = Decimal(current * 100) / Decimal(limit)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
