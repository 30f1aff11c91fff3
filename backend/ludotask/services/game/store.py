"""Session store: SQLAlchemy-backed persistence for live games.

Writes are staged on ``db.session`` and only become durable on ``commit()``,
so callers group a move append and its session update into one unit of work.
Every mutation of a session row goes through ``conditional_update_session``.
"""

import json
from functools import wraps
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ludotask import db
from ludotask.models import GameHistory, GameMove, GameSession, Room
from . import board
from .domain import (
    BoardState,
    CompletedSession,
    HistoryRecord,
    MoveRecord,
    PendingTask,
    PlayingSession,
    Session,
    STATUS_COMPLETED,
    STATUS_PLAYING,
)
from .errors import GameError, NotFound, StateConflict, UpstreamFailure


def _upstream(op_name):
    """Turn storage errors into UpstreamFailure after rolling back."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except GameError:
                raise
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.error(f"[store-error] op={op_name} {exc.__class__.__name__}: {exc}")
                raise UpstreamFailure('Game storage is unavailable, please try again') from exc
        return wrapper
    return decorator


def _winner_of(board_state: BoardState, player1_id: str, player2_id: str) -> Optional[str]:
    last = board.final_cell(board_state.board_size)
    if board_state.player1_position == last:
        return player1_id
    if board_state.player2_position == last:
        return player2_id
    return None


def session_from_row(row: GameSession) -> Session:
    board_state = BoardState.from_dict(json.loads(row.board_state or '{}'))
    common = dict(
        session_id=row.id,
        room_id=row.room_id,
        player1_id=row.player1_id,
        player2_id=row.player2_id,
        current_turn=row.current_turn,
        version=row.version,
        board=board_state,
        started_at=row.started_at,
    )
    if row.status == STATUS_COMPLETED:
        return CompletedSession(
            winner_id=_winner_of(board_state, row.player1_id, row.player2_id),
            ended_at=row.ended_at,
            **common,
        )
    pending = PendingTask.from_dict(json.loads(row.pending_task)) if row.pending_task else None
    return PlayingSession(current_player_id=row.current_player_id, pending_task=pending, **common)


def move_from_row(row: GameMove) -> MoveRecord:
    return MoveRecord(
        id=row.id,
        session_id=row.session_id,
        player_id=row.player_id,
        dice_value=row.dice_value,
        old_position=row.old_position,
        new_position=row.new_position,
        task_id=row.task_id,
        task_completed=row.task_completed,
        trigger_type=row.trigger_type,
        created_at=row.created_at,
    )


def _encode_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(patch)
    if 'board_state' in values:
        values['board_state'] = json.dumps(values['board_state'].to_dict())
    if 'pending_task' in values:
        pending = values['pending_task']
        values['pending_task'] = json.dumps(pending.to_dict()) if pending else None
    return values


class SessionStore:

    # ---- sessions ----

    @_upstream('get_session')
    def get_session(self, session_id: str) -> Session:
        row = GameSession.query.filter_by(id=session_id).first()
        if not row:
            raise NotFound('Game session not found')
        return session_from_row(row)

    @_upstream('find_active_session')
    def find_active_session(self, player_id: str) -> Optional[PlayingSession]:
        row = (
            GameSession.query
            .filter(or_(GameSession.player1_id == player_id, GameSession.player2_id == player_id))
            .filter(GameSession.status == STATUS_PLAYING)
            .order_by(GameSession.started_at.desc())
            .first()
        )
        return session_from_row(row) if row else None

    @_upstream('conditional_update_session')
    def conditional_update_session(
        self,
        session_id: str,
        expected_current_player_id: Optional[str],
        expected_version: int,
        patch: Dict[str, Any],
    ) -> int:
        """Apply ``patch`` only if the row still matches the read snapshot.

        Returns the new version. On mismatch the unit of work is rolled back
        and StateConflict is raised.
        """
        values = _encode_patch(patch)
        values['version'] = expected_version + 1
        matched = (
            GameSession.query
            .filter_by(id=session_id, current_player_id=expected_current_player_id, version=expected_version)
            .update(values, synchronize_session=False)
        )
        if matched != 1:
            db.session.rollback()
            current_app.logger.warning(
                f"[cas-miss] session={session_id} expected_player={expected_current_player_id} expected_version={expected_version}"
            )
            raise StateConflict('The game changed before your action was saved; refresh and try again')
        return expected_version + 1

    @_upstream('create_session')
    def create_session(
        self,
        room_id: str,
        player1_id: str,
        player2_id: str,
        first_player_id: Optional[str] = None,
        board_size: Optional[int] = None,
        special_cells: Optional[Dict[int, str]] = None,
    ) -> PlayingSession:
        if player1_id == player2_id:
            raise ValueError('a session needs two distinct players')
        size = board_size or current_app.config.get('BOARD_SIZE', board.DEFAULT_BOARD_SIZE)
        if special_cells is None:
            special_cells = board.default_special_cells()
        board.validate_layout(size, special_cells)
        first = first_player_id or player1_id
        if first not in (player1_id, player2_id):
            raise ValueError('first player must be one of the two players')

        state = BoardState(board_size=size, player1_position=0, player2_position=0, special_cells=dict(special_cells))
        row = GameSession(
            room_id=room_id,
            player1_id=player1_id,
            player2_id=player2_id,
            current_player_id=first,
            current_turn=1,
            status=STATUS_PLAYING,
            board_state=json.dumps(state.to_dict()),
            version=1,
        )
        db.session.add(row)
        Room.query.filter_by(id=room_id).update({'status': 'playing'}, synchronize_session=False)
        db.session.commit()
        current_app.logger.info(f"[session-start] session={row.id} room={room_id} first={first} board={size}")
        return session_from_row(row)

    @_upstream('delete_session')
    def delete_session(self, session_id: str) -> int:
        return GameSession.query.filter_by(id=session_id).delete(synchronize_session=False)

    # ---- rooms ----

    @_upstream('room_theme')
    def room_theme(self, room_id: str, player_id: str) -> Optional[str]:
        room = Room.query.filter_by(id=room_id).first()
        if not room:
            raise NotFound('Room not found')
        if player_id == room.player1_id:
            return room.player1_theme_id
        if player_id == room.player2_id:
            return room.player2_theme_id
        return None

    @_upstream('mark_room_completed')
    def mark_room_completed(self, room_id: str) -> None:
        Room.query.filter_by(id=room_id).update({'status': 'completed'}, synchronize_session=False)

    # ---- moves ----

    @_upstream('append_move')
    def append_move(self, move: Dict[str, Any]) -> int:
        row = GameMove(**move)
        db.session.add(row)
        db.session.flush()
        return row.id

    @_upstream('patch_move')
    def patch_move(self, move_id: int, fields: Dict[str, Any]) -> None:
        GameMove.query.filter_by(id=move_id).update(fields, synchronize_session=False)

    @_upstream('find_task_move')
    def find_task_move(self, session_id: str, task_id: str) -> Optional[int]:
        row = (
            GameMove.query
            .filter_by(session_id=session_id, task_id=task_id)
            .order_by(GameMove.created_at.desc(), GameMove.id.desc())
            .first()
        )
        return row.id if row else None

    @_upstream('list_moves')
    def list_moves(self, session_id: str) -> List[MoveRecord]:
        rows = (
            GameMove.query
            .filter_by(session_id=session_id)
            .order_by(GameMove.created_at.asc(), GameMove.id.asc())
            .all()
        )
        return [move_from_row(r) for r in rows]

    @_upstream('delete_moves')
    def delete_moves(self, session_id: str) -> int:
        return GameMove.query.filter_by(session_id=session_id).delete(synchronize_session=False)

    # ---- history ----

    @_upstream('history_exists')
    def history_exists(self, session_id: str) -> bool:
        return GameHistory.query.filter_by(session_id=session_id).first() is not None

    @_upstream('insert_history')
    def insert_history(self, record: HistoryRecord) -> None:
        db.session.add(GameHistory(
            room_id=record.room_id,
            session_id=record.session_id,
            player1_id=record.player1_id,
            player2_id=record.player2_id,
            winner_id=record.winner_id,
            started_at=record.started_at,
            ended_at=record.ended_at,
            task_results=json.dumps([r.to_dict() for r in record.task_results]),
        ))

    @_upstream('list_history')
    def list_history(self, player_id: str, limit: int = 50) -> List[GameHistory]:
        return (
            GameHistory.query
            .filter(or_(GameHistory.player1_id == player_id, GameHistory.player2_id == player_id))
            .order_by(GameHistory.ended_at.desc())
            .limit(limit)
            .all()
        )

    # ---- unit of work ----

    @_upstream('commit')
    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()
