"""Initial franchise schema - territories, licensees, consultants, jobs, revenue ledger, settlements, audit trail

Revision ID: 20261019_0900_initial_franchise_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261019_0900_initial_franchise_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'licensee_status': ('ACTIVE', 'SUSPENDED', 'TERMINATED'),
    'territory_owner_type': ('OPERATOR', 'LICENSEE'),
    'consultant_role': ('RECRUITER', 'SALES_AGENT', 'CONSULTANT_360'),
    'consultant_status': ('ACTIVE', 'ON_LEAVE', 'SUSPENDED', 'INACTIVE'),
    'availability_status': ('AVAILABLE', 'BUSY', 'UNAVAILABLE'),
    'job_status': ('DRAFT', 'OPEN', 'ON_HOLD', 'FILLED', 'CLOSED', 'CANCELLED'),
    'job_pause_reason': ('LICENSEE_SUSPENDED', 'MANUAL'),
    'assignment_source': ('MANUAL_OPERATOR', 'MANUAL_LICENSEE', 'AUTO_RULES', 'UNASSIGNED'),
    'assignment_status': ('ACTIVE', 'COMPLETED'),
    'revenue_status': ('PENDING', 'PAID'),
    'settlement_status': ('PENDING', 'PAID'),
    'audit_entity_type': ('LICENSEE', 'TERRITORY', 'CONSULTANT', 'JOB', 'SETTLEMENT', 'REVENUE'),
    'audit_action': (
        'CREATE', 'UPDATE', 'SUSPEND', 'REACTIVATE', 'TERMINATE', 'TRANSFER',
        'PAUSE', 'ASSIGN', 'UNASSIGN', 'REASSIGN', 'PAY',
    ),
}


def enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Create ENUMs
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    # =====================================================
    # LICENSEES
    # =====================================================
    op.create_table(
        'licensees',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('legal_entity_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('manager_contact', sa.String(255), nullable=True),
        sa.Column('finance_contact', sa.String(255), nullable=True),
        sa.Column('revenue_share_percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('agreement_start_date', sa.Date(), nullable=True),
        sa.Column('agreement_end_date', sa.Date(), nullable=True),
        sa.Column('status', enum('licensee_status'), nullable=False),
        *timestamps(),
        sa.CheckConstraint(
            'revenue_share_percent >= 0 AND revenue_share_percent <= 100',
            name='ck_licensees_revenue_share_range',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_licensees'),
    )
    op.create_index('ix_licensees_email', 'licensees', ['email'], unique=True)
    op.create_index('ix_licensees_status', 'licensees', ['status'])

    # =====================================================
    # TERRITORIES
    # =====================================================
    op.create_table(
        'territories',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('state_province', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('owner_type', enum('territory_owner_type'), nullable=False),
        sa.Column('licensee_id', postgresql.UUID(as_uuid=True), nullable=True),
        *timestamps(),
        sa.CheckConstraint(
            "(owner_type = 'LICENSEE' AND licensee_id IS NOT NULL) OR "
            "(owner_type = 'OPERATOR' AND licensee_id IS NULL)",
            name='ck_territories_owner_licensee_consistency',
        ),
        sa.ForeignKeyConstraint(['licensee_id'], ['licensees.id'], name='fk_territories_licensee_id_licensees'),
        sa.PrimaryKeyConstraint('id', name='pk_territories'),
    )
    op.create_index('ix_territories_code', 'territories', ['code'], unique=True)
    op.create_index('ix_territories_licensee_id', 'territories', ['licensee_id'])

    # =====================================================
    # CONSULTANTS
    # =====================================================
    op.create_table(
        'consultants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', enum('consultant_role'), nullable=False),
        sa.Column('status', enum('consultant_status'), nullable=False),
        sa.Column('availability', enum('availability_status'), nullable=False),
        sa.Column('territory_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('current_jobs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_jobs', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('current_employers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_employers', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('industry_expertise', sa.JSON(), nullable=True),
        sa.Column('languages', sa.JSON(), nullable=True),
        *timestamps(),
        sa.CheckConstraint(
            'current_jobs >= 0 AND current_jobs <= max_jobs',
            name='ck_consultants_job_capacity',
        ),
        sa.CheckConstraint(
            'current_employers >= 0 AND current_employers <= max_employers',
            name='ck_consultants_employer_capacity',
        ),
        sa.ForeignKeyConstraint(['territory_id'], ['territories.id'], name='fk_consultants_territory_id_territories'),
        sa.PrimaryKeyConstraint('id', name='pk_consultants'),
    )
    op.create_index('ix_consultants_email', 'consultants', ['email'], unique=True)
    op.create_index('ix_consultants_status', 'consultants', ['status'])
    op.create_index('ix_consultants_territory_id', 'consultants', ['territory_id'])

    # =====================================================
    # JOBS AND ASSIGNMENTS
    # =====================================================
    op.create_table(
        'jobs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('status', enum('job_status'), nullable=False),
        sa.Column('paused_reason', enum('job_pause_reason'), nullable=True),
        sa.Column('territory_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('assigned_consultant_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('assignment_source', enum('assignment_source'), nullable=False),
        *timestamps(),
        sa.ForeignKeyConstraint(['territory_id'], ['territories.id'], name='fk_jobs_territory_id_territories'),
        sa.ForeignKeyConstraint(['assigned_consultant_id'], ['consultants.id'], name='fk_jobs_assigned_consultant_id_consultants'),
        sa.PrimaryKeyConstraint('id', name='pk_jobs'),
    )
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_territory_id', 'jobs', ['territory_id'])
    op.create_index('ix_jobs_assigned_consultant_id', 'jobs', ['assigned_consultant_id'])

    op.create_table(
        'job_assignments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('consultant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', enum('assignment_status'), nullable=False),
        sa.Column('assignment_source', enum('assignment_source'), nullable=False),
        sa.Column('assigned_by', sa.String(255), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.ForeignKeyConstraint(['consultant_id'], ['consultants.id'], name='fk_job_assignments_consultant_id_consultants'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], name='fk_job_assignments_job_id_jobs'),
        sa.UniqueConstraint('consultant_id', 'job_id', name='uq_job_assignments_consultant_job'),
        sa.PrimaryKeyConstraint('id', name='pk_job_assignments'),
    )
    op.create_index('ix_job_assignments_consultant_id', 'job_assignments', ['consultant_id'])
    op.create_index('ix_job_assignments_job_id', 'job_assignments', ['job_id'])
    op.create_index('ix_job_assignments_status', 'job_assignments', ['status'])

    # =====================================================
    # SETTLEMENTS AND REVENUE LEDGER
    # =====================================================
    op.create_table(
        'settlements',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('licensee_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('total_revenue', sa.Numeric(14, 2), nullable=False),
        sa.Column('licensee_share', sa.Numeric(14, 2), nullable=False),
        sa.Column('operator_share', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', enum('settlement_status'), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('reference', sa.String(255), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('generated_by', sa.String(255), nullable=False),
        *timestamps(),
        sa.CheckConstraint(
            'licensee_share >= 0 AND operator_share >= 0 AND total_revenue >= 0',
            name='ck_settlements_non_negative_amounts',
        ),
        sa.ForeignKeyConstraint(['licensee_id'], ['licensees.id'], name='fk_settlements_licensee_id_licensees'),
        sa.PrimaryKeyConstraint('id', name='pk_settlements'),
    )
    op.create_index('ix_settlements_licensee_id', 'settlements', ['licensee_id'])
    op.create_index('ix_settlements_status', 'settlements', ['status'])

    op.create_table(
        'revenue_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('territory_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('licensee_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('total_revenue', sa.Numeric(14, 2), nullable=False),
        sa.Column('licensee_share', sa.Numeric(14, 2), nullable=False),
        sa.Column('operator_share', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', enum('revenue_status'), nullable=False),
        sa.Column('settlement_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.CheckConstraint(
            'licensee_share >= 0 AND operator_share >= 0 AND total_revenue >= 0',
            name='ck_revenue_records_non_negative_amounts',
        ),
        sa.ForeignKeyConstraint(['territory_id'], ['territories.id'], name='fk_revenue_records_territory_id_territories'),
        sa.ForeignKeyConstraint(['licensee_id'], ['licensees.id'], name='fk_revenue_records_licensee_id_licensees'),
        sa.ForeignKeyConstraint(['settlement_id'], ['settlements.id'], name='fk_revenue_records_settlement_id_settlements'),
        sa.UniqueConstraint('territory_id', 'period_start', 'period_end', name='uq_revenue_records_territory_period'),
        sa.PrimaryKeyConstraint('id', name='pk_revenue_records'),
    )
    op.create_index('ix_revenue_records_territory_id', 'revenue_records', ['territory_id'])
    op.create_index('ix_revenue_records_licensee_id', 'revenue_records', ['licensee_id'])
    op.create_index('ix_revenue_records_period_end', 'revenue_records', ['period_end'])
    op.create_index('ix_revenue_records_status', 'revenue_records', ['status'])
    op.create_index('ix_revenue_records_settlement_id', 'revenue_records', ['settlement_id'])

    # =====================================================
    # AUDIT TRAIL
    # =====================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('entity_type', enum('audit_entity_type'), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=False),
        sa.Column('action', enum('audit_action'), nullable=False),
        sa.Column('performed_by', sa.String(255), nullable=False),
        sa.Column('old_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_performed_by', 'audit_logs', ['performed_by'])
    op.create_index('ix_audit_logs_performed_at', 'audit_logs', ['performed_at'])


def downgrade() -> None:
    for table in (
        'audit_logs', 'revenue_records', 'settlements', 'job_assignments',
        'jobs', 'consultants', 'territories', 'licensees',
    ):
        op.drop_table(table)

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
