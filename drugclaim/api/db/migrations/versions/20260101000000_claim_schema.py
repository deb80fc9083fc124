"""Claim schema: resources, leases, assignments, audit log.

Revision ID: 20260101000000
Revises:
Create Date: 2026-01-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '20260101000000'
down_revision = None
branch_labels = None
depends_on = None

json_type = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'resources',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index('ix_resources_sort_order', 'resources', ['sort_order'])

    # At most one lease row per resource key
    op.create_table(
        'leases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('resource_key', sa.String(length=64), nullable=False),
        sa.Column('holder_token', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('acquired_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['resource_key'], ['resources.key'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resource_key', name='uq_leases_resource_key')
    )
    op.create_index('ix_leases_expires_at', 'leases', ['expires_at'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('resource_key', sa.String(length=64), nullable=False),
        sa.Column('resource_name', sa.String(length=255), nullable=False),
        sa.Column('course_group', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('team_number', sa.Integer(), nullable=False),
        sa.Column('leader_name', sa.String(length=255), nullable=False),
        sa.Column('leader_email', sa.String(length=320), nullable=False),
        sa.Column('leader_phone', sa.String(length=64), nullable=False),
        sa.Column('students', json_type, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['resource_key'], ['resources.key'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resource_key', name='uq_assignments_resource_key'),
        sa.UniqueConstraint('course_group', 'team_number', name='uq_assignments_claimant')
    )
    op.create_index('ix_assignments_created_at', 'assignments', ['created_at'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('resource_key', sa.String(length=64), nullable=True),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('actor', sa.String(length=255), nullable=False),
        sa.Column('details', json_type, nullable=False),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_log_resource_key', 'audit_log', ['resource_key'])
    op.create_index('ix_audit_log_event_type', 'audit_log', ['event_type'])
    op.create_index('ix_audit_log_timestamp', 'audit_log', ['timestamp'])


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('assignments')
    op.drop_table('leases')
    op.drop_table('resources')
