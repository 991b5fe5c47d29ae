"""
Regional Franchise Platform - Territory Store

Territories, licensees and the ownership link between them. Licensee
status itself is owned by LicenseeLifecycleService; this service only
creates licensees and moves territories between owners.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from franchise.database import atomic
from franchise.models.territory import (
    Territory, TerritoryOwnerType, Licensee, LicenseeStatus,
)
from franchise.models.consultant import Consultant, ConsultantStatus
from franchise.models.job import Job, JobStatus
from franchise.models.revenue import RevenueRecord, RevenueStatus
from franchise.models.audit import AuditAction, AuditEntityType
from franchise.services.audit_service import AuditService
from franchise.utils.error_handling import (
    NotFoundException,
    DuplicateEntryException,
    ValidationException,
    InvalidStateException,
)
from franchise.utils.money import round_currency

logger = logging.getLogger(__name__)


# ===========================================
# SHARED PREDICATES
# ===========================================
# Impact previews and the real cascades select rows through these, so a
# preview can never disagree with what the operation will touch.

def open_jobs_in(territory_ids: Sequence[uuid.UUID]):
    """Condition for jobs that a suspension would pause."""
    return (Job.territory_id.in_(territory_ids)) & (Job.status == JobStatus.OPEN)


def active_consultants_in(territory_ids: Sequence[uuid.UUID]):
    """Condition for consultants counted as affected by a governance action."""
    return (
        (Consultant.territory_id.in_(territory_ids))
        & (Consultant.status == ConsultantStatus.ACTIVE)
    )


def unsettled_revenue(cutoff: date):
    """Condition for revenue not yet folded into any settlement."""
    return (
        (RevenueRecord.status == RevenueStatus.PENDING)
        & (RevenueRecord.settlement_id.is_(None))
        & (RevenueRecord.period_end <= cutoff)
    )


async def count_where(db: AsyncSession, model, condition) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(condition))
    return result.scalar_one()


async def sum_revenue_where(db: AsyncSession, condition) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(RevenueRecord.total_revenue), 0)).where(condition)
    )
    return round_currency(result.scalar_one())


class TerritoryService:
    """Service for territories, licensees and ownership transfer."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ===========================================
    # LICENSEES
    # ===========================================

    async def create_licensee(
        self,
        name: str,
        legal_entity_name: str,
        email: str,
        revenue_share_percent: Decimal,
        actor: str,
        phone: Optional[str] = None,
        manager_contact: Optional[str] = None,
        finance_contact: Optional[str] = None,
        agreement_start_date: Optional[date] = None,
        agreement_end_date: Optional[date] = None,
    ) -> Licensee:
        """Create a licensee in ACTIVE status."""
        percent = Decimal(str(revenue_share_percent))
        if percent < 0 or percent > 100:
            raise ValidationException(
                "Revenue share percentage must be between 0 and 100",
                field="revenue_share_percent",
            )
        if agreement_start_date and agreement_end_date and agreement_end_date < agreement_start_date:
            raise ValidationException(
                "Agreement end date precedes start date",
                field="agreement_end_date",
            )

        async with atomic(self.db):
            existing = await self.db.execute(
                select(Licensee.id).where(Licensee.email == email)
            )
            if existing.scalar_one_or_none():
                raise DuplicateEntryException("Licensee", "email", email)

            licensee = Licensee(
                name=name,
                legal_entity_name=legal_entity_name,
                email=email,
                phone=phone,
                manager_contact=manager_contact,
                finance_contact=finance_contact,
                revenue_share_percent=percent,
                agreement_start_date=agreement_start_date,
                agreement_end_date=agreement_end_date,
                status=LicenseeStatus.ACTIVE,
            )
            self.db.add(licensee)
            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.LICENSEE,
                entity_id=licensee.id,
                action=AuditAction.CREATE,
                performed_by=actor,
                new_value={
                    "name": name,
                    "status": LicenseeStatus.ACTIVE,
                    "revenue_share_percent": percent,
                },
            )

        logger.info(f"Licensee {licensee.id} created by {actor}")
        return licensee

    async def get_licensee(self, licensee_id: uuid.UUID) -> Licensee:
        licensee = await self.db.get(Licensee, licensee_id)
        if not licensee:
            raise NotFoundException("Licensee", licensee_id)
        return licensee

    async def list_licensees(
        self,
        status: Optional[LicenseeStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Licensee]:
        query = select(Licensee)
        if status:
            query = query.where(Licensee.status == status)
        result = await self.db.execute(
            query.order_by(Licensee.name).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def get_licensee_territory_ids(
        self,
        licensee_id: uuid.UUID,
        lock: bool = False,
    ) -> List[uuid.UUID]:
        """IDs of the territories a licensee currently owns."""
        query = select(Territory.id).where(Territory.licensee_id == licensee_id)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query.order_by(Territory.code))
        return list(result.scalars().all())

    # ===========================================
    # TERRITORIES
    # ===========================================

    async def create_territory(
        self,
        name: str,
        code: str,
        actor: str,
        owner_type: TerritoryOwnerType = TerritoryOwnerType.OPERATOR,
        licensee_id: Optional[uuid.UUID] = None,
        country: Optional[str] = None,
        state_province: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Territory:
        """
        Create a territory.

        Raises:
            ValidationException: owner type and licensee disagree
            DuplicateEntryException: code already used
            NotFoundException: licensee missing
            InvalidStateException: licensee not ACTIVE
        """
        if (owner_type == TerritoryOwnerType.LICENSEE) != (licensee_id is not None):
            raise ValidationException(
                "A licensee is required if and only if the territory is licensee-owned",
                field="licensee_id",
            )

        async with atomic(self.db):
            existing = await self.db.execute(
                select(Territory.id).where(Territory.code == code)
            )
            if existing.scalar_one_or_none():
                raise DuplicateEntryException("Territory", "code", code)

            if licensee_id is not None:
                licensee = await self.get_licensee(licensee_id)
                if licensee.status != LicenseeStatus.ACTIVE:
                    raise InvalidStateException("licensee", licensee.status, "assign territory to")

            territory = Territory(
                name=name,
                code=code,
                country=country,
                state_province=state_province,
                city=city,
                owner_type=owner_type,
                licensee_id=licensee_id,
                is_active=True,
            )
            self.db.add(territory)
            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.TERRITORY,
                entity_id=territory.id,
                action=AuditAction.CREATE,
                performed_by=actor,
                new_value={"code": code, "owner_type": owner_type, "licensee_id": licensee_id},
            )

        logger.info(f"Territory {code} created by {actor}")
        return territory

    async def get_territory(self, territory_id: uuid.UUID) -> Territory:
        territory = await self.db.get(Territory, territory_id)
        if not territory:
            raise NotFoundException("Territory", territory_id)
        return territory

    async def list_territories(
        self,
        owner_type: Optional[TerritoryOwnerType] = None,
        licensee_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Territory]:
        query = select(Territory)
        if owner_type:
            query = query.where(Territory.owner_type == owner_type)
        if licensee_id:
            query = query.where(Territory.licensee_id == licensee_id)
        if is_active is not None:
            query = query.where(Territory.is_active == is_active)

        result = await self.db.execute(
            query.order_by(Territory.code).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    # ===========================================
    # OWNERSHIP TRANSFER
    # ===========================================

    async def transfer_ownership(
        self,
        territory_id: uuid.UUID,
        licensee_id: Optional[uuid.UUID],
        actor: str,
        notes: Optional[str] = None,
    ) -> Territory:
        """
        Move a territory to another licensee, or back to the operator when
        licensee_id is None. Jobs, consultants and historical revenue stay
        with the territory.
        """
        async with atomic(self.db):
            result = await self.db.execute(
                select(Territory).where(Territory.id == territory_id).with_for_update()
            )
            territory = result.scalar_one_or_none()
            if not territory:
                raise NotFoundException("Territory", territory_id)

            if territory.licensee_id == licensee_id:
                raise InvalidStateException(
                    "territory", territory.owner_type, "transfer to its current owner"
                )

            if territory.licensee_id is not None:
                current_owner = await self.get_licensee(territory.licensee_id)
                if current_owner.status == LicenseeStatus.SUSPENDED:
                    # Its jobs are paused on the owner's behalf until reactivation.
                    raise InvalidStateException(
                        "licensee", current_owner.status, "transfer territory from"
                    )

            if licensee_id is not None:
                licensee = await self.get_licensee(licensee_id)
                if licensee.status != LicenseeStatus.ACTIVE:
                    raise InvalidStateException("licensee", licensee.status, "transfer territory to")

            old_value = {"owner_type": territory.owner_type, "licensee_id": territory.licensee_id}

            territory.owner_type = (
                TerritoryOwnerType.LICENSEE if licensee_id else TerritoryOwnerType.OPERATOR
            )
            territory.licensee_id = licensee_id
            await self.db.flush()

            await self.audit.log(
                entity_type=AuditEntityType.TERRITORY,
                entity_id=territory.id,
                action=AuditAction.TRANSFER,
                performed_by=actor,
                old_value=old_value,
                new_value={"owner_type": territory.owner_type, "licensee_id": licensee_id},
                notes=notes,
            )

        logger.info(
            f"Territory {territory.code} transferred to "
            f"{licensee_id or 'operator'} by {actor}"
        )
        return territory

    async def get_transfer_impact(self, territory_id: uuid.UUID) -> Dict[str, Any]:
        """Read-only counts of what moves with a territory."""
        territory = await self.get_territory(territory_id)
        ids = [territory.id]

        return {
            "territory_id": territory.id,
            "current_owner_type": territory.owner_type,
            "current_licensee_id": territory.licensee_id,
            "open_jobs": await count_where(self.db, Job, open_jobs_in(ids)),
            "active_consultants": await count_where(self.db, Consultant, active_consultants_in(ids)),
            "pending_revenue": await sum_revenue_where(
                self.db,
                RevenueRecord.territory_id.in_(ids) & unsettled_revenue(date.today()),
            ),
        }
