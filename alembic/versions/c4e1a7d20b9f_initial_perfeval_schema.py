"""initial_perfeval_schema

Creates the tenant, user, department, template, assignment, evaluation and
bonus allocation tables.

Enum columns store member names (SQLAlchemy's default for Enum(PyEnum)).
Active assignment pairs are unique through partial indexes.

Revision ID: c4e1a7d20b9f
Revises:
Create Date: 2026-10-19 09:12:41.503227

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'c4e1a7d20b9f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the initial schema."""

    op.create_table(
        'businesses',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('industry', sa.String(), nullable=False),
        sa.Column('settings', postgresql.JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
    )

    op.create_table(
        'departments',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_department_id', sa.String(64), sa.ForeignKey('departments.id'), nullable=True, index=True),
        sa.Column('manager_id', sa.String(64), nullable=True),
        sa.Column('budget', sa.Float(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('employee_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', sa.Enum('ADMIN', 'HR', 'MANAGER', 'EMPLOYEE', name='userrole'), nullable=False, server_default='EMPLOYEE', index=True),
        sa.Column('employee_code', sa.String(), nullable=True),
        sa.Column('department_id', sa.String(64), sa.ForeignKey('departments.id'), nullable=True, index=True),
        sa.Column('position', sa.String(), nullable=True),
        sa.Column('manager_id', sa.String(64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('hire_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('permissions', postgresql.JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'evaluation_templates',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('scoring_system', sa.Enum('ONE_TO_FIVE', 'ONE_TO_TEN', 'PERCENTAGE', 'LETTER', name='scoringsystem'), nullable=False, server_default='ONE_TO_FIVE'),
        sa.Column('categories', postgresql.JSONB(), nullable=False),
        sa.Column('free_text_questions', postgresql.JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'evaluation_assignments',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('evaluator_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('evaluatee_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('assigned_by', sa.String(64), nullable=True),
        sa.Column('assigned_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('assignment_type', sa.Enum('PERMANENT', 'TEMPORARY', name='assignmenttype'), nullable=False, server_default='PERMANENT'),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('expires_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true', index=True),
        *_timestamps(),
    )
    op.create_index(
        'uq_evaluation_assignments_active_pair',
        'evaluation_assignments',
        ['business_id', 'evaluator_id', 'evaluatee_id'],
        unique=True,
        postgresql_where=sa.text('active'),
    )

    op.create_table(
        'bonus_assignments',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('allocator_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('recipient_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('assigned_by', sa.String(64), nullable=True),
        sa.Column('assigned_date', sa.DateTime(timezone=True), nullable=False),
        # Type already created with evaluation_assignments
        sa.Column('assignment_type', postgresql.ENUM('PERMANENT', 'TEMPORARY', name='assignmenttype', create_type=False), nullable=False, server_default='PERMANENT'),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('budget_limit', sa.Float(), nullable=True),
        sa.Column('expires_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true', index=True),
        *_timestamps(),
    )
    op.create_index(
        'uq_bonus_assignments_active_pair',
        'bonus_assignments',
        ['business_id', 'allocator_id', 'recipient_id'],
        unique=True,
        postgresql_where=sa.text('active'),
    )

    op.create_table(
        'evaluations',
        sa.Column('id', sa.String(64), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('template_id', sa.String(64), sa.ForeignKey('evaluation_templates.id'), nullable=False, index=True),
        sa.Column('template_snapshot', postgresql.JSONB(), nullable=False),
        sa.Column('evaluator_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('evaluatee_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('assignment_id', sa.String(64), sa.ForeignKey('evaluation_assignments.id'), nullable=False),
        sa.Column('period', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('DRAFT', 'PENDING', 'IN_PROGRESS', 'UNDER_REVIEW', 'COMPLETED', name='evaluationstatus'), nullable=False, server_default='DRAFT', index=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('self_assessment', postgresql.JSONB(), nullable=False),
        sa.Column('manager_review', postgresql.JSONB(), nullable=True),
        sa.Column('overall_rating', sa.Float(), nullable=True, index=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'bonus_allocations',
        sa.Column('id', sa.String(160), primary_key=True, nullable=False, index=True),
        sa.Column('business_id', sa.String(64), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('department_id', sa.String(64), sa.ForeignKey('departments.id'), nullable=False, index=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_budget', sa.Float(), nullable=False),
        sa.Column('allocations', postgresql.JSONB(), nullable=False),
        sa.Column('saved_by', sa.String(64), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop the schema in reverse dependency order."""
    op.drop_table('bonus_allocations')
    op.drop_table('evaluations')
    op.drop_index('uq_bonus_assignments_active_pair', table_name='bonus_assignments')
    op.drop_table('bonus_assignments')
    op.drop_index('uq_evaluation_assignments_active_pair', table_name='evaluation_assignments')
    op.drop_table('evaluation_assignments')
    op.drop_table('evaluation_templates')
    op.drop_table('users')
    op.drop_table('departments')
    op.drop_table('businesses')

    op.execute('DROP TYPE IF EXISTS evaluationstatus')
    op.execute('DROP TYPE IF EXISTS assignmenttype')
    op.execute('DROP TYPE IF EXISTS scoringsystem')
    op.execute('DROP TYPE IF EXISTS userrole')
