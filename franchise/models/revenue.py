"""
Regional Franchise Platform - Revenue Ledger and Settlement Models

Revenue records are the per-territory, per-period ledger of money earned.
Settlements aggregate a licensee's pending records into one payable.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey, CheckConstraint,
    UniqueConstraint, Uuid, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from franchise.models.base import BaseModel, utcnow


class RevenueStatus(str, Enum):
    """Revenue record status."""
    PENDING = "PENDING"
    PAID = "PAID"


class SettlementStatus(str, Enum):
    """Settlement status. PAID is terminal."""
    PENDING = "PENDING"
    PAID = "PAID"


class RevenueRecord(BaseModel):
    """
    Revenue earned in a territory over a period.

    Invariant: licensee_share + operator_share == total_revenue.
    settlement_id is stamped when a settlement includes the record, so a
    record can never be counted by two settlements.
    """

    __tablename__ = "revenue_records"
    __table_args__ = (
        CheckConstraint(
            "licensee_share >= 0 AND operator_share >= 0 AND total_revenue >= 0",
            name="non_negative_amounts",
        ),
        UniqueConstraint(
            "territory_id", "period_start", "period_end",
            name="uq_revenue_records_territory_period",
        ),
    )

    territory_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("territories.id"),
        nullable=False,
        index=True,
    )
    licensee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("licensees.id"),
        nullable=True,
        index=True,
    )

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    total_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    licensee_share: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    operator_share: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[RevenueStatus] = mapped_column(
        SQLEnum(RevenueStatus, name="revenue_status"),
        nullable=False,
        default=RevenueStatus.PENDING,
        index=True,
    )
    settlement_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("settlements.id"),
        nullable=True,
        index=True,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<RevenueRecord(territory={self.territory_id}, period_end={self.period_end}, total={self.total_revenue})>"


class Settlement(BaseModel):
    """Payable aggregating a licensee's pending revenue up to a cutoff."""

    __tablename__ = "settlements"
    __table_args__ = (
        CheckConstraint(
            "licensee_share >= 0 AND operator_share >= 0 AND total_revenue >= 0",
            name="non_negative_amounts",
        ),
    )

    licensee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("licensees.id"),
        nullable=False,
        index=True,
    )

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    total_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    licensee_share: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    operator_share: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[SettlementStatus] = mapped_column(
        SQLEnum(SettlementStatus, name="settlement_status"),
        nullable=False,
        default=SettlementStatus.PENDING,
        index=True,
    )

    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    generated_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")

    def __repr__(self) -> str:
        return f"<Settlement(id={self.id}, licensee={self.licensee_id}, status={self.status.value})>"
