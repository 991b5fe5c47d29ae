"""
Regional Franchise Platform - Consultant Model

Consultants service jobs inside exactly one territory and carry
capacity counters that the allocation engine keeps within bounds.
"""

import uuid
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Integer, ForeignKey, CheckConstraint, JSON, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise.models.base import BaseModel
from franchise.models.territory import Territory


class ConsultantRole(str, Enum):
    """Consultant role."""
    RECRUITER = "RECRUITER"
    SALES_AGENT = "SALES_AGENT"
    CONSULTANT_360 = "CONSULTANT_360"


class ConsultantStatus(str, Enum):
    """Employment status of a consultant."""
    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class AvailabilityStatus(str, Enum):
    """Day-to-day availability for new work."""
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    UNAVAILABLE = "UNAVAILABLE"


class CapacityWarningType(str, Enum):
    """Which limit a capacity warning is about."""
    JOB_CAPACITY = "JOB_CAPACITY"
    EMPLOYER_CAPACITY = "EMPLOYER_CAPACITY"


# Roles that may receive jobs through the automatic policy
AUTO_ASSIGNABLE_ROLES = (ConsultantRole.RECRUITER, ConsultantRole.CONSULTANT_360)


class Consultant(BaseModel):
    """
    Human agent scoped to one territory.

    Invariant: 0 <= current_jobs <= max_jobs, enforced by the conditional
    updates in CapacityTracker and by a CHECK constraint.
    """

    __tablename__ = "consultants"
    __table_args__ = (
        CheckConstraint(
            "current_jobs >= 0 AND current_jobs <= max_jobs",
            name="job_capacity",
        ),
        CheckConstraint(
            "current_employers >= 0 AND current_employers <= max_employers",
            name="employer_capacity",
        ),
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    role: Mapped[ConsultantRole] = mapped_column(
        SQLEnum(ConsultantRole, name="consultant_role"),
        nullable=False,
        default=ConsultantRole.RECRUITER,
    )
    status: Mapped[ConsultantStatus] = mapped_column(
        SQLEnum(ConsultantStatus, name="consultant_status"),
        nullable=False,
        default=ConsultantStatus.ACTIVE,
        index=True,
    )
    availability: Mapped[AvailabilityStatus] = mapped_column(
        SQLEnum(AvailabilityStatus, name="availability_status"),
        nullable=False,
        default=AvailabilityStatus.AVAILABLE,
    )

    territory_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("territories.id"),
        nullable=False,
        index=True,
    )

    # Capacity counters
    current_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    current_employers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_employers: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    industry_expertise: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    languages: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    territory: Mapped[Territory] = relationship(
        "Territory",
        back_populates="consultants",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_capacity(self) -> bool:
        return self.current_jobs < self.max_jobs

    def __repr__(self) -> str:
        return f"<Consultant(id={self.id}, jobs={self.current_jobs}/{self.max_jobs})>"
