"""Create capacity planning tables

Revision ID: 001_create_capacity_tables
Revises:
Create Date: 2026-10-19

Adds production_jobs (scheduled jobs per department, unique by process
order), job_move_history (manual move audit trail) and
resource_configurations (working hours per machine).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_create_capacity_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - add capacity planning tables."""
    op.create_table('production_jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('process_order', sa.String(length=100), nullable=False),
        sa.Column('production_order', sa.String(length=100), nullable=True),
        sa.Column('machine', sa.String(length=100), nullable=False),
        sa.Column('original_machine', sa.String(length=100), nullable=False),
        sa.Column('department', sa.String(length=50), nullable=False),
        sa.Column('end_product', sa.String(length=200), nullable=True),
        sa.Column('item_name', sa.String(length=255), nullable=True),
        sa.Column('customer', sa.String(length=200), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('duration_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('original_duration_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='scheduled'),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('is_manually_moved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('moved_by', sa.String(length=100), nullable=True),
        sa.Column('moved_at', sa.DateTime(), nullable=True),
        sa.Column('uploaded_by', sa.String(length=100), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('process_order', 'department', name='uq_production_jobs_process_order_department')
    )
    op.create_index(op.f('ix_production_jobs_id'), 'production_jobs', ['id'], unique=False)
    op.create_index(op.f('ix_production_jobs_process_order'), 'production_jobs', ['process_order'], unique=False)
    op.create_index(op.f('ix_production_jobs_machine'), 'production_jobs', ['machine'], unique=False)
    op.create_index(op.f('ix_production_jobs_department'), 'production_jobs', ['department'], unique=False)
    op.create_index('ix_production_jobs_department_start', 'production_jobs', ['department', 'start_time'], unique=False)

    op.create_table('job_move_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('from_machine', sa.String(length=100), nullable=False),
        sa.Column('to_machine', sa.String(length=100), nullable=False),
        sa.Column('old_duration_hours', sa.Float(), nullable=False),
        sa.Column('new_duration_hours', sa.Float(), nullable=False),
        sa.Column('old_start_time', sa.DateTime(), nullable=True),
        sa.Column('new_start_time', sa.DateTime(), nullable=True),
        sa.Column('moved_by', sa.String(length=100), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('moved_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['job_id'], ['production_jobs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_job_move_history_id'), 'job_move_history', ['id'], unique=False)
    op.create_index(op.f('ix_job_move_history_job_id'), 'job_move_history', ['job_id'], unique=False)

    op.create_table('resource_configurations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_name', sa.String(length=100), nullable=False),
        sa.Column('department', sa.String(length=50), nullable=False),
        sa.Column('working_hours_per_day', sa.Float(), nullable=False, server_default='24'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_resource_configurations_id'), 'resource_configurations', ['id'], unique=False)
    op.create_index(op.f('ix_resource_configurations_resource_name'), 'resource_configurations', ['resource_name'], unique=True)
    op.create_index(op.f('ix_resource_configurations_department'), 'resource_configurations', ['department'], unique=False)


def downgrade() -> None:
    """Downgrade schema - remove capacity planning tables."""
    op.drop_index(op.f('ix_resource_configurations_department'), table_name='resource_configurations')
    op.drop_index(op.f('ix_resource_configurations_resource_name'), table_name='resource_configurations')
    op.drop_index(op.f('ix_resource_configurations_id'), table_name='resource_configurations')
    op.drop_table('resource_configurations')

    op.drop_index(op.f('ix_job_move_history_job_id'), table_name='job_move_history')
    op.drop_index(op.f('ix_job_move_history_id'), table_name='job_move_history')
    op.drop_table('job_move_history')

    op.drop_index('ix_production_jobs_department_start', table_name='production_jobs')
    op.drop_index(op.f('ix_production_jobs_department'), table_name='production_jobs')
    op.drop_index(op.f('ix_production_jobs_machine'), table_name='production_jobs')
    op.drop_index(op.f('ix_production_jobs_process_order'), table_name='production_jobs')
    op.drop_index(op.f('ix_production_jobs_id'), table_name='production_jobs')
    op.drop_table('production_jobs')
