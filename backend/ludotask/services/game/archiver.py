"""History archiver: turns a finished session into a ``game_history`` row.

Archival inserts the summary first and then removes the live rows. Cleanup
may fail independently of the insert; running ``archive`` or ``cleanup``
again is safe because the insert is skipped when a record already exists
and deleting missing rows is a no-op.
"""

from typing import Iterable, List, Optional

from flask import current_app

from . import board, rules
from .domain import (
    CompletedSession,
    HistoryRecord,
    MoveRecord,
    TaskResult,
    TRIGGER_COLLISION,
    TRIGGER_STAR,
    TRIGGER_TRAP,
)
from .errors import GameError, IllegalState, NotFound


def _trigger_for(move: MoveRecord, session: CompletedSession) -> str:
    if move.trigger_type:
        return move.trigger_type
    # Rows written before trigger_type was persisted
    kind = board.cell_kind(session.board.special_cells, move.new_position)
    if kind == board.CELL_TRAP:
        return TRIGGER_TRAP
    if kind == board.CELL_STAR:
        return TRIGGER_STAR
    return TRIGGER_COLLISION


def build_history(session: CompletedSession, moves: Iterable[MoveRecord], task_texts) -> HistoryRecord:
    results: List[TaskResult] = []
    for move in moves:
        if not move.task_id:
            continue
        roles = rules.assign_roles(_trigger_for(move, session), move.player_id, session.other_player(move.player_id))
        results.append(TaskResult(
            executor_id=roles.executor_id,
            observer_id=roles.observer_id,
            task_text=task_texts.get(move.task_id),
            completed=bool(move.task_completed),
            timestamp=move.created_at.isoformat() if move.created_at else '',
        ))
    return HistoryRecord(
        room_id=session.room_id,
        session_id=session.session_id,
        player1_id=session.player1_id,
        player2_id=session.player2_id,
        winner_id=session.winner_id,
        started_at=session.started_at,
        ended_at=session.ended_at,
        task_results=results,
    )


class HistoryArchiver:

    def __init__(self, store, task_source):
        self.store = store
        self.task_source = task_source

    def archive(self, session_id: str) -> Optional[HistoryRecord]:
        """Insert the history record once, then clean up live rows.

        Returns the inserted record, or None when it already existed.
        """
        session = self.store.get_session(session_id)
        if not isinstance(session, CompletedSession):
            raise IllegalState('Only finished games can be archived')

        record = None
        if self.store.history_exists(session_id):
            current_app.logger.info(f"[archive-skip] session={session_id} history already recorded")
        else:
            moves = self.store.list_moves(session_id)
            texts = self.task_source.describe_tasks(m.task_id for m in moves)
            record = build_history(session, moves, texts)
            self.store.insert_history(record)
            self.store.commit()
            current_app.logger.info(
                f"[archive] session={session_id} winner={record.winner_id} tasks={len(record.task_results)}"
            )

        self.cleanup(session_id)
        return record

    def cleanup(self, session_id: str) -> None:
        try:
            session = self.store.get_session(session_id)
        except NotFound:
            session = None
        if session is not None and not isinstance(session, CompletedSession):
            raise IllegalState('A game in progress cannot be cleaned up')
        if session is not None and not self.store.history_exists(session_id):
            raise IllegalState('Game history has not been recorded yet')
        try:
            moves = self.store.delete_moves(session_id)
            sessions = self.store.delete_session(session_id)
            self.store.commit()
        except GameError:
            self.store.rollback()
            raise
        current_app.logger.info(f"[cleanup] session={session_id} moves={moves} sessions={sessions}")
