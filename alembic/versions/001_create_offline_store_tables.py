"""Create offline store tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """
    Create offline store tables:
    - operations_queue: Ordered journal of local mutations awaiting sync
    - delta_tokens: Per-query incremental sync watermarks
    """

    # Create operations_queue table
    op.create_table(
        'operations_queue',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sequence', sa.BigInteger(), nullable=False),
        sa.Column(
            'kind',
            sa.Enum('UNKNOWN', 'ADD', 'DELETE', 'REPLACE', name='operationkind'),
            nullable=False
        ),
        sa.Column(
            'state',
            sa.Enum('PENDING', 'ATTEMPTED', 'COMPLETED', 'FAILED', name='operationstate'),
            nullable=False
        ),
        sa.Column('item_id', sa.String(length=255), nullable=False),
        sa.Column('table_name', sa.String(length=255), nullable=False),
        sa.Column('serialized_item', sa.Text(), nullable=False),
        sa.Column('version', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    # Replay order; unique so two operations never tie
    op.create_index('ix_operations_queue_sequence', 'operations_queue', ['sequence'], unique=True)
    op.create_index('ix_operations_queue_state', 'operations_queue', ['state'])

    # Create delta_tokens table
    op.create_table(
        'delta_tokens',
        sa.Column('token_id', sa.String(length=255), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('token_id')
    )


def downgrade():
    """Remove offline store tables"""
    op.drop_table('delta_tokens')

    op.drop_index('ix_operations_queue_state', table_name='operations_queue')
    op.drop_index('ix_operations_queue_sequence', table_name='operations_queue')
    op.drop_table('operations_queue')
