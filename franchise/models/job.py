"""
Regional Franchise Platform - Job and Job Assignment Models

Jobs are created by the marketplace (outside this service). Here they
are only routed to consultants and paused/resumed by licensee governance.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from franchise.models.base import BaseModel, utcnow


class JobStatus(str, Enum):
    """Job lifecycle status."""
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    ON_HOLD = "ON_HOLD"
    FILLED = "FILLED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class PauseReason(str, Enum):
    """Why a job is ON_HOLD."""
    LICENSEE_SUSPENDED = "LICENSEE_SUSPENDED"
    MANUAL = "MANUAL"


class AssignmentSource(str, Enum):
    """Provenance of a job's consultant assignment, supplied by the caller."""
    MANUAL_OPERATOR = "MANUAL_OPERATOR"
    MANUAL_LICENSEE = "MANUAL_LICENSEE"
    AUTO_RULES = "AUTO_RULES"
    UNASSIGNED = "UNASSIGNED"


class AssignmentStatus(str, Enum):
    """Status of a consultant-job link."""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Job(BaseModel):
    """
    Work item routed to a consultant.

    Invariant: when assigned_consultant_id is set, that consultant's
    territory equals territory_id.
    """

    __tablename__ = "jobs"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, name="job_status"),
        nullable=False,
        default=JobStatus.OPEN,
        index=True,
    )
    paused_reason: Mapped[Optional[PauseReason]] = mapped_column(
        SQLEnum(PauseReason, name="job_pause_reason"),
        nullable=True,
    )

    territory_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("territories.id"),
        nullable=True,
        index=True,
    )
    assigned_consultant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("consultants.id"),
        nullable=True,
        index=True,
    )
    assignment_source: Mapped[AssignmentSource] = mapped_column(
        SQLEnum(AssignmentSource, name="assignment_source"),
        nullable=False,
        default=AssignmentSource.UNASSIGNED,
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, status={self.status.value})>"


class JobAssignment(BaseModel):
    """
    History of consultant-job links.

    One row per (consultant, job) pair; re-assigning the same pair
    reactivates the existing row.
    """

    __tablename__ = "job_assignments"
    __table_args__ = (
        UniqueConstraint("consultant_id", "job_id", name="uq_job_assignments_consultant_job"),
    )

    consultant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("consultants.id"),
        nullable=False,
        index=True,
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("jobs.id"),
        nullable=False,
        index=True,
    )

    status: Mapped[AssignmentStatus] = mapped_column(
        SQLEnum(AssignmentStatus, name="assignment_status"),
        nullable=False,
        default=AssignmentStatus.ACTIVE,
        index=True,
    )
    assignment_source: Mapped[AssignmentSource] = mapped_column(
        SQLEnum(AssignmentSource, name="assignment_source"),
        nullable=False,
    )
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<JobAssignment(consultant={self.consultant_id}, job={self.job_id}, status={self.status.value})>"
