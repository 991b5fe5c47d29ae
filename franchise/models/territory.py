"""
Regional Franchise Platform - Territory and Licensee Models

A territory is owned by the operator or delegated to a regional licensee
under a revenue-share agreement. Licensees are never deleted; their
status history lives in the audit trail.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import (
    String, Boolean, Date, Numeric, ForeignKey, CheckConstraint, Uuid,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise.models.base import BaseModel

if TYPE_CHECKING:
    from franchise.models.consultant import Consultant


class TerritoryOwnerType(str, Enum):
    """Who holds the rights over a territory."""
    OPERATOR = "OPERATOR"
    LICENSEE = "LICENSEE"


class LicenseeStatus(str, Enum):
    """Licensee agreement status. TERMINATED is terminal."""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"


class Licensee(BaseModel):
    """Regional licensee holding delegated rights over territories."""

    __tablename__ = "licensees"
    __table_args__ = (
        CheckConstraint(
            "revenue_share_percent >= 0 AND revenue_share_percent <= 100",
            name="revenue_share_range",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    legal_entity_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    manager_contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    finance_contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    revenue_share_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
    )

    agreement_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    agreement_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[LicenseeStatus] = mapped_column(
        SQLEnum(LicenseeStatus, name="licensee_status"),
        nullable=False,
        default=LicenseeStatus.ACTIVE,
        index=True,
    )

    territories: Mapped[List["Territory"]] = relationship(
        "Territory",
        back_populates="licensee",
    )

    def __repr__(self) -> str:
        return f"<Licensee(id={self.id}, name={self.name}, status={self.status.value})>"


class Territory(BaseModel):
    """
    Geographic partition of the marketplace.

    Invariant: licensee_id is set if and only if owner_type is LICENSEE.
    """

    __tablename__ = "territories"
    __table_args__ = (
        CheckConstraint(
            "(owner_type = 'LICENSEE' AND licensee_id IS NOT NULL) OR "
            "(owner_type = 'OPERATOR' AND licensee_id IS NULL)",
            name="owner_licensee_consistency",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state_province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    owner_type: Mapped[TerritoryOwnerType] = mapped_column(
        SQLEnum(TerritoryOwnerType, name="territory_owner_type"),
        nullable=False,
        default=TerritoryOwnerType.OPERATOR,
    )
    licensee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("licensees.id"),
        nullable=True,
        index=True,
    )

    licensee: Mapped[Optional[Licensee]] = relationship(
        "Licensee",
        back_populates="territories",
    )
    consultants: Mapped[List["Consultant"]] = relationship(
        "Consultant",
        back_populates="territory",
    )

    def __repr__(self) -> str:
        return f"<Territory(code={self.code}, owner={self.owner_type.value})>"
