"""create user, queue_member, turn_state, roster_entry, heartbeat

Revision ID: 4b7e9d2a1c30
Revises:
Create Date: 2026-09-14 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7e9d2a1c30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'queue_member',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('turn_order', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id'),
        sa.UniqueConstraint('turn_order'),
    )

    op.create_table(
        'turn_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('active_member_id', sa.Integer(), nullable=True),
        sa.Column('turn_started_at', sa.Float(), nullable=True),
        sa.Column('marks_used', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'roster_entry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_name', sa.String(length=64), nullable=False),
        sa.Column('skill_level', sa.String(length=16), nullable=False),
        sa.Column('marked_by', sa.Integer(), nullable=True),
        sa.Column('marked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('is_waiting', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['marked_by'], ['user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_roster_entry_marked_by', 'roster_entry', ['marked_by'])
    op.create_index('ix_roster_entry_is_waiting', 'roster_entry', ['is_waiting'])

    op.create_table(
        'heartbeat',
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('last_heartbeat_at', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('member_id'),
    )


def downgrade():
    op.drop_table('heartbeat')
    op.drop_index('ix_roster_entry_is_waiting', table_name='roster_entry')
    op.drop_index('ix_roster_entry_marked_by', table_name='roster_entry')
    op.drop_table('roster_entry')
    op.drop_table('turn_state')
    op.drop_table('queue_member')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
