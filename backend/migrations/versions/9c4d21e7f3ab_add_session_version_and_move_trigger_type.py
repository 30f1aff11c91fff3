"""add version to game_session and trigger_type to game_move

Revision ID: 9c4d21e7f3ab
Revises: 5b7e0c1d2a90
Create Date: 2026-09-19 16:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9c4d21e7f3ab'
down_revision = '5b7e0c1d2a90'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    session_cols = {c['name'] for c in insp.get_columns('game_session')}
    with op.batch_alter_table('game_session') as batch_op:
        if 'version' not in session_cols:
            batch_op.add_column(sa.Column('version', sa.Integer(), nullable=False, server_default='1'))

    # Existing moves keep NULL; the archiver falls back to the board layout for them
    move_cols = {c['name'] for c in insp.get_columns('game_move')}
    with op.batch_alter_table('game_move') as batch_op:
        if 'trigger_type' not in move_cols:
            batch_op.add_column(sa.Column('trigger_type', sa.String(length=16), nullable=True))


def downgrade():
    with op.batch_alter_table('game_move') as batch_op:
        batch_op.drop_column('trigger_type')
    with op.batch_alter_table('game_session') as batch_op:
        batch_op.drop_column('version')
