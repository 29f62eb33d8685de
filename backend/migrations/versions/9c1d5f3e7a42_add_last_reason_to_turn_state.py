"""add last_reason and last_advanced_at to turn_state

Revision ID: 9c1d5f3e7a42
Revises: 4b7e9d2a1c30
Create Date: 2026-09-21 18:40:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9c1d5f3e7a42'
down_revision = '4b7e9d2a1c30'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('turn_state')}
    with op.batch_alter_table('turn_state') as batch_op:
        if 'last_reason' not in cols:
            batch_op.add_column(sa.Column('last_reason', sa.String(length=16), nullable=True))
        if 'last_advanced_at' not in cols:
            batch_op.add_column(sa.Column('last_advanced_at', sa.Float(), nullable=True))


def downgrade():
    with op.batch_alter_table('turn_state') as batch_op:
        batch_op.drop_column('last_advanced_at')
        batch_op.drop_column('last_reason')
