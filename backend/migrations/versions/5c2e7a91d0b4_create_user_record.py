"""create user_record table

Revision ID: 5c2e7a91d0b4
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e7a91d0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'user_record' in insp.get_table_names():
        return
    op.create_table(
        'user_record',
        sa.Column('identity', sa.String(length=64), nullable=False),
        sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('matches', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('identity'),
    )


def downgrade():
    op.drop_table('user_record')
