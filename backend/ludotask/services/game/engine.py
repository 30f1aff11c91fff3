"""Turn engine: the only writer of live session state.

Each call re-reads the session, validates the actor against it, computes the
next state and writes it back with ``conditional_update_session`` keyed on the
snapshot's current player and version. Nothing is cached between calls.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import current_app

from . import board, rules
from .archiver import HistoryArchiver
from .domain import (
    BoardState,
    CompletedSession,
    HistoryRecord,
    PendingTask,
    PlayingSession,
    STATUS_COMPLETED,
    TASK_EXECUTED,
    TASK_PENDING,
    TRIGGER_COLLISION,
    TaskCard,
)
from .errors import GameError, IllegalActor, IllegalState
from .randomness import RandomProvider
from .store import SessionStore
from .task_source import TaskSource


@dataclass(frozen=True)
class RollResult:
    session_id: str
    player_id: str
    dice_value: int
    old_position: int
    new_position: int
    move_id: int
    trigger_type: Optional[str] = None
    pending_task: Optional[PendingTask] = None
    completed: bool = False
    winner_id: Optional[str] = None
    history: Optional[HistoryRecord] = None
    archive_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'session_id': self.session_id,
            'dice_value': self.dice_value,
            'old_position': self.old_position,
            'new_position': self.new_position,
            'trigger_type': self.trigger_type,
            'pending_task': self.pending_task.to_dict() if self.pending_task else None,
            'completed': self.completed,
            'winner_id': self.winner_id,
            'archived': self.history is not None,
            'archive_error': self.archive_error,
        }


@dataclass(frozen=True)
class VerifyResult:
    session_id: str
    trigger_type: str
    confirmed: bool
    penalty: Optional[int]
    board: BoardState
    next_player_id: str
    current_turn: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'session_id': self.session_id,
            'trigger_type': self.trigger_type,
            'confirmed': self.confirmed,
            'penalty': self.penalty,
            'game_state': self.board.to_dict(),
            'current_player_id': self.next_player_id,
            'current_turn': self.current_turn,
        }


class TurnEngine:

    def __init__(
        self,
        store: SessionStore,
        task_source: TaskSource,
        rng: Optional[RandomProvider] = None,
        archiver: Optional[HistoryArchiver] = None,
        task_draw_limit: int = 50,
    ):
        self.store = store
        self.task_source = task_source
        self.rng = rng or RandomProvider()
        self.archiver = archiver or HistoryArchiver(store, task_source)
        self.task_draw_limit = task_draw_limit

    # ---- reads ----

    def get_active_session(self, actor_id: str) -> Optional[PlayingSession]:
        return self.store.find_active_session(actor_id)

    def view(self, session_id: str, actor_id: str):
        session = self.store.get_session(session_id)
        if not session.is_member(actor_id):
            raise IllegalActor('You are not a player in this game')
        return session

    def _load_playing(self, session_id: str, actor_id: str) -> PlayingSession:
        session = self.store.get_session(session_id)
        if not session.is_member(actor_id):
            raise IllegalActor('You are not a player in this game')
        if isinstance(session, CompletedSession):
            raise IllegalState('This game has already finished')
        return session

    # ---- roll ----

    def roll(self, session_id: str, actor_id: str) -> RollResult:
        session = self._load_playing(session_id, actor_id)
        if session.current_player_id != actor_id:
            raise IllegalActor('Not your turn')
        if session.pending_task is not None:
            raise IllegalState('A task is waiting to be resolved before anyone can roll')

        dice = self.rng.roll_die()
        size = session.board.board_size
        old_pos = session.position_of(actor_id)
        new_pos = board.advance(old_pos, dice, size)
        moved_board = session.board_with(actor_id, new_pos)

        if new_pos == board.final_cell(size):
            return self._finish(session, actor_id, dice, old_pos, new_pos, moved_board)

        other_id = session.other_player(actor_id)
        trigger = rules.detect_trigger(session, actor_id, new_pos)
        if trigger is None:
            move_id = self.store.append_move(self._move(session, actor_id, dice, old_pos, new_pos))
            self._write(session, {
                'board_state': moved_board,
                'current_turn': session.current_turn + 1,
                'current_player_id': other_id,
            })
            current_app.logger.info(
                f"[roll] session={session.session_id} player={actor_id} dice={dice} {old_pos} -> {new_pos} next={other_id}"
            )
            return RollResult(session.session_id, actor_id, dice, old_pos, new_pos, move_id)

        roles = rules.assign_roles(trigger, actor_id, other_id)
        task = self._draw_task(session.room_id, roles.theme_owner_id)
        move_id = self.store.append_move(self._move(session, actor_id, dice, old_pos, new_pos, trigger))
        if task is not None:
            self.store.patch_move(move_id, {'task_id': task.id})
        pending = PendingTask(
            trigger_type=trigger,
            landing_position=new_pos,
            executor_id=roles.executor_id,
            observer_id=roles.observer_id,
            status=TASK_PENDING,
            task=task,
            dice_value=dice,
            attacker_old_position=old_pos if trigger == TRIGGER_COLLISION else None,
            move_id=move_id,
        )
        self._write(session, {'board_state': moved_board, 'pending_task': pending})
        current_app.logger.info(
            f"[trigger] session={session.session_id} type={trigger} at={new_pos} "
            f"executor={roles.executor_id} observer={roles.observer_id} task={task.id if task else None}"
        )
        return RollResult(
            session.session_id, actor_id, dice, old_pos, new_pos, move_id,
            trigger_type=trigger, pending_task=pending,
        )

    def _finish(self, session, actor_id, dice, old_pos, new_pos, final_board) -> RollResult:
        move_id = self.store.append_move(self._move(session, actor_id, dice, old_pos, new_pos))
        self.store.mark_room_completed(session.room_id)
        self._write(session, {
            'board_state': final_board,
            'status': STATUS_COMPLETED,
            'current_player_id': None,
            'pending_task': None,
            'ended_at': datetime.now(timezone.utc),
        })
        current_app.logger.info(
            f"[win] session={session.session_id} player={actor_id} dice={dice} {old_pos} -> {new_pos}"
        )

        history = None
        archive_error = None
        try:
            history = self.archiver.archive(session.session_id)
        except GameError as exc:
            # the win is committed; cleanup can be retried by the caller
            archive_error = exc.message
            current_app.logger.error(f"[archive-failed] session={session.session_id} {exc.kind}: {exc.message}")
        return RollResult(
            session.session_id, actor_id, dice, old_pos, new_pos, move_id,
            completed=True, winner_id=actor_id, history=history, archive_error=archive_error,
        )

    def _draw_task(self, room_id: str, theme_owner_id: str) -> Optional[TaskCard]:
        theme_id = self.store.room_theme(room_id, theme_owner_id)
        candidates = self.task_source.draw_candidate_tasks(theme_id, self.task_draw_limit)
        if not candidates:
            current_app.logger.info(f"[task-empty] room={room_id} theme={theme_id} placeholder task")
            return None
        return candidates[self.rng.pick_index(len(candidates))]

    @staticmethod
    def _move(session, player_id, dice, old_pos, new_pos, trigger=None) -> Dict[str, Any]:
        return {
            'session_id': session.session_id,
            'player_id': player_id,
            'dice_value': dice,
            'old_position': old_pos,
            'new_position': new_pos,
            'trigger_type': trigger,
        }

    def _write(self, session: PlayingSession, patch: Dict[str, Any]) -> int:
        try:
            version = self.store.conditional_update_session(
                session.session_id, session.current_player_id, session.version, patch
            )
            self.store.commit()
        except GameError:
            self.store.rollback()
            raise
        return version

    # ---- pending task lifecycle ----

    def confirm_execution(self, session_id: str, actor_id: str) -> PendingTask:
        session = self._load_playing(session_id, actor_id)
        pending = session.pending_task
        if pending is None:
            raise IllegalState('There is no task waiting to be confirmed')
        if pending.executor_id != actor_id:
            raise IllegalActor('Only the player performing the task can confirm it')
        if pending.status != TASK_PENDING:
            raise IllegalState('The task has already been confirmed')

        executed = pending.executed()
        self._write(session, {'pending_task': executed})
        current_app.logger.info(f"[task-executed] session={session_id} executor={actor_id}")
        return executed

    def verify(self, session_id: str, actor_id: str, confirmed: bool) -> VerifyResult:
        session = self._load_playing(session_id, actor_id)
        pending = session.pending_task
        if pending is None:
            raise IllegalState('There is no task waiting to be verified')
        if pending.observer_id != actor_id:
            raise IllegalActor('Only the observing player can verify the task')
        if pending.status != TASK_EXECUTED:
            raise IllegalState('The task has not been confirmed as performed yet')

        confirmed = bool(confirmed)
        resolution = rules.resolve_verification(session, pending, confirmed, self.rng.draw_penalty)
        next_player = session.other_player(session.current_player_id)
        next_turn = session.current_turn + 1

        move_id = pending.move_id
        if move_id is None and pending.task is not None:
            move_id = self.store.find_task_move(session_id, pending.task.id)
        if move_id is not None:
            self.store.patch_move(move_id, {'task_completed': confirmed})
        self._write(session, {
            'board_state': resolution.board,
            'pending_task': None,
            'current_turn': next_turn,
            'current_player_id': next_player,
        })
        current_app.logger.info(
            f"[verify] session={session_id} type={pending.trigger_type} confirmed={confirmed} "
            f"penalty={resolution.penalty} next={next_player}"
        )
        return VerifyResult(
            session_id=session_id,
            trigger_type=pending.trigger_type,
            confirmed=confirmed,
            penalty=resolution.penalty,
            board=resolution.board,
            next_player_id=next_player,
            current_turn=next_turn,
        )
