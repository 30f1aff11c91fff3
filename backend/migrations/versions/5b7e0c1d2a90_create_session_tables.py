"""create room, theme, task, game_session, game_move, game_history

Revision ID: 5b7e0c1d2a90
Revises:
Create Date: 2026-09-02 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e0c1d2a90'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'theme',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('creator_id', sa.String(length=64), nullable=True),
    )
    op.create_index('ix_theme_creator_id', 'theme', ['creator_id'])

    op.create_table(
        'task',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('theme_id', sa.String(length=36), sa.ForeignKey('theme.id'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='interaction'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_task_theme_id', 'task', ['theme_id'])

    op.create_table(
        'room',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('player1_id', sa.String(length=64), nullable=False),
        sa.Column('player2_id', sa.String(length=64), nullable=True),
        sa.Column('player1_theme_id', sa.String(length=36), sa.ForeignKey('theme.id'), nullable=True),
        sa.Column('player2_theme_id', sa.String(length=36), sa.ForeignKey('theme.id'), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='waiting'),
    )
    op.create_index('ix_room_player1_id', 'room', ['player1_id'])
    op.create_index('ix_room_player2_id', 'room', ['player2_id'])

    op.create_table(
        'game_session',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('room_id', sa.String(length=36), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('player1_id', sa.String(length=64), nullable=False),
        sa.Column('player2_id', sa.String(length=64), nullable=False),
        sa.Column('current_player_id', sa.String(length=64), nullable=True),
        sa.Column('current_turn', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='playing'),
        sa.Column('board_state', sa.Text(), nullable=False),
        sa.Column('pending_task', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_game_session_room_id', 'game_session', ['room_id'])
    op.create_index('ix_game_session_player1_id', 'game_session', ['player1_id'])
    op.create_index('ix_game_session_player2_id', 'game_session', ['player2_id'])

    op.create_table(
        'game_move',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('player_id', sa.String(length=64), nullable=False),
        sa.Column('dice_value', sa.Integer(), nullable=False),
        sa.Column('old_position', sa.Integer(), nullable=False),
        sa.Column('new_position', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.String(length=36), nullable=True),
        sa.Column('task_completed', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_game_move_session_id', 'game_move', ['session_id'])

    op.create_table(
        'game_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.String(length=36), nullable=True),
        sa.Column('session_id', sa.String(length=36), nullable=False, unique=True),
        sa.Column('player1_id', sa.String(length=64), nullable=False),
        sa.Column('player2_id', sa.String(length=64), nullable=False),
        sa.Column('winner_id', sa.String(length=64), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('task_results', sa.Text(), nullable=False, server_default='[]'),
    )
    op.create_index('ix_game_history_player1_id', 'game_history', ['player1_id'])
    op.create_index('ix_game_history_player2_id', 'game_history', ['player2_id'])


def downgrade():
    op.drop_table('game_history')
    op.drop_table('game_move')
    op.drop_table('game_session')
    op.drop_table('room')
    op.drop_table('task')
    op.drop_table('theme')
