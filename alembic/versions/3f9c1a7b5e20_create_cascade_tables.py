"""Create cascade_configs, cascade_entries and responsibility_changes

Revision ID: 3f9c1a7b5e20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7b5e20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cascade_configs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.Text(), nullable=False, server_default='default'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('distribution_method', sa.Text(), nullable=False, server_default='volume'),
        sa.Column('queue', sa.JSON(), nullable=False),
        sa.Column('sla_hours_per_step', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('warning_pct', sa.Integer(), nullable=False, server_default='75'),
        sa.Column('critical_pct', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('freeze_when_inactive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('sla_hours_per_step > 0', name='ck_cascade_config_sla_positive'),
    )

    op.create_table(
        'cascade_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('cliente_id', sa.Integer(), nullable=False),
        sa.Column('consultant_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('sla_hours', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='Active'),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finalized_by_consultant_id', sa.Integer(), nullable=True),
        sa.Column('finalization_reason', sa.Text(), nullable=True),
        sa.Column('config_id', sa.Integer(), sa.ForeignKey('cascade_configs.id'), nullable=True),
        sa.Column('queue_snapshot', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('cliente_id', 'sequence', name='uq_cascade_entry_cliente_sequence'),
        sa.CheckConstraint('sequence >= 1', name='ck_cascade_entry_sequence_positive'),
        sa.CheckConstraint(
            "status IN ('Active', 'Expired', 'FinalizedSuccess')",
            name='ck_cascade_entry_status',
        ),
    )
    op.create_index(
        'uq_cascade_entry_one_success', 'cascade_entries', ['cliente_id'],
        unique=True,
        postgresql_where=sa.text("status = 'FinalizedSuccess'"),
        sqlite_where=sa.text("status = 'FinalizedSuccess'"),
    )
    op.create_index(
        'uq_cascade_entry_active_pair', 'cascade_entries', ['cliente_id', 'consultant_id'],
        unique=True,
        postgresql_where=sa.text("status = 'Active'"),
        sqlite_where=sa.text("status = 'Active'"),
    )
    op.create_index('ix_cascade_entries_status_expires', 'cascade_entries', ['status', 'expires_at'])
    op.create_index('ix_cascade_entries_consultant_id', 'cascade_entries', ['consultant_id'])
    op.create_index('ix_cascade_entries_started_at', 'cascade_entries', ['started_at'])

    op.create_table(
        'responsibility_changes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('cliente_id', sa.Integer(), nullable=False),
        sa.Column('consultant_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.Text(), nullable=False),
        sa.Column('entry_id', sa.Integer(), sa.ForeignKey('cascade_entries.id'), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_responsibility_changes_cliente_id', 'responsibility_changes', ['cliente_id'])


def downgrade() -> None:
    op.drop_index('ix_responsibility_changes_cliente_id', table_name='responsibility_changes')
    op.drop_table('responsibility_changes')
    op.drop_index('ix_cascade_entries_started_at', table_name='cascade_entries')
    op.drop_index('ix_cascade_entries_consultant_id', table_name='cascade_entries')
    op.drop_index('ix_cascade_entries_status_expires', table_name='cascade_entries')
    op.drop_index('uq_cascade_entry_active_pair', table_name='cascade_entries')
    op.drop_index('uq_cascade_entry_one_success', table_name='cascade_entries')
    op.drop_table('cascade_entries')
    op.drop_table('cascade_configs')
