"""Entry pass schema - paid participants and check-ins

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Paid participants (written by the sheet sync / import script)
    op.create_table(
        'paidparticipants',
        sa.Column('row_hash', sa.String(128), primary_key=True),
        sa.Column('row_number', sa.Integer(), nullable=False, index=True),
        sa.Column('headers', sa.JSON(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Check-ins: at most one row per participant, written by upsert
    op.create_table(
        'checkins',
        sa.Column('row_hash', sa.String(128), primary_key=True),
        sa.Column('checked_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_in_by', sa.String(255), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('checkins')
    op.drop_table('paidparticipants')
