"""Immutable snapshots handed out by the session store.

A live session is either a ``PlayingSession`` or a ``CompletedSession``; only
the former can carry a pending task.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from . import board


STATUS_PLAYING = 'playing'
STATUS_COMPLETED = 'completed'

TRIGGER_STAR = 'star'
TRIGGER_TRAP = 'trap'
TRIGGER_COLLISION = 'collision'
TRIGGER_TYPES = (TRIGGER_STAR, TRIGGER_TRAP, TRIGGER_COLLISION)

TASK_PENDING = 'pending'
TASK_EXECUTED = 'executed'


@dataclass(frozen=True)
class TaskCard:
    id: str
    description: str
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'description': self.description, 'type': self.type}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['TaskCard']:
        if not data:
            return None
        return cls(id=data['id'], description=data.get('description', ''), type=data.get('type'))


@dataclass(frozen=True)
class BoardState:
    board_size: int
    player1_position: int
    player2_position: int
    special_cells: Dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'board_size': self.board_size,
            'player1_position': self.player1_position,
            'player2_position': self.player2_position,
            'special_cells': {str(k): v for k, v in sorted(self.special_cells.items())},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BoardState':
        data = data or {}
        return cls(
            board_size=int(data.get('board_size') or board.DEFAULT_BOARD_SIZE),
            player1_position=int(data.get('player1_position') or 0),
            player2_position=int(data.get('player2_position') or 0),
            special_cells=board.normalize_special_cells(data.get('special_cells')),
        )


@dataclass(frozen=True)
class PendingTask:
    trigger_type: str
    landing_position: int
    executor_id: str
    observer_id: str
    status: str = TASK_PENDING
    task: Optional[TaskCard] = None
    dice_value: Optional[int] = None
    attacker_old_position: Optional[int] = None
    penalty: Optional[int] = None
    move_id: Optional[int] = None

    def __post_init__(self):
        if self.executor_id == self.observer_id:
            raise ValueError('executor and observer must be different players')

    def executed(self) -> 'PendingTask':
        return replace(self, status=TASK_EXECUTED)

    def to_dict(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {'dice': self.dice_value}
        if self.attacker_old_position is not None:
            metadata['attacker_old_position'] = self.attacker_old_position
        if self.penalty is not None:
            metadata['penalty'] = self.penalty
        if self.move_id is not None:
            metadata['move_id'] = self.move_id
        return {
            'type': self.trigger_type,
            'position': self.landing_position,
            'executor_id': self.executor_id,
            'observer_id': self.observer_id,
            'status': self.status,
            'task': self.task.to_dict() if self.task else None,
            'metadata': metadata,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['PendingTask']:
        if not data:
            return None
        meta = data.get('metadata') or {}
        return cls(
            trigger_type=data['type'],
            landing_position=int(data['position']),
            executor_id=data['executor_id'],
            observer_id=data['observer_id'],
            status=data.get('status', TASK_PENDING),
            task=TaskCard.from_dict(data.get('task')),
            dice_value=meta.get('dice'),
            attacker_old_position=meta.get('attacker_old_position'),
            penalty=meta.get('penalty'),
            move_id=meta.get('move_id'),
        )


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    room_id: str
    player1_id: str
    player2_id: str
    current_turn: int
    version: int
    board: BoardState
    started_at: Optional[datetime]

    def is_member(self, player_id: Optional[str]) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def other_player(self, player_id: str) -> str:
        return self.player2_id if player_id == self.player1_id else self.player1_id

    def position_of(self, player_id: str) -> int:
        if player_id == self.player1_id:
            return self.board.player1_position
        return self.board.player2_position

    def board_with(self, player_id: str, position: int) -> BoardState:
        if player_id == self.player1_id:
            return replace(self.board, player1_position=position)
        return replace(self.board, player2_position=position)

    def to_dict(self) -> Dict[str, Any]:
        pending = getattr(self, 'pending_task', None)
        ended_at = getattr(self, 'ended_at', None)
        return {
            'id': self.session_id,
            'room_id': self.room_id,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'current_player_id': getattr(self, 'current_player_id', None),
            'current_turn': self.current_turn,
            'status': getattr(self, 'status', None),
            'game_state': self.board.to_dict(),
            'pending_task': pending.to_dict() if pending else None,
            'winner_id': getattr(self, 'winner_id', None),
            'version': self.version,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': ended_at.isoformat() if ended_at else None,
        }


@dataclass(frozen=True)
class PlayingSession(SessionSnapshot):
    current_player_id: str = ''
    pending_task: Optional[PendingTask] = None
    status: str = STATUS_PLAYING


@dataclass(frozen=True)
class CompletedSession(SessionSnapshot):
    winner_id: Optional[str] = None
    ended_at: Optional[datetime] = None
    status: str = STATUS_COMPLETED


Session = Union[PlayingSession, CompletedSession]


@dataclass(frozen=True)
class MoveRecord:
    id: int
    session_id: str
    player_id: str
    dice_value: int
    old_position: int
    new_position: int
    task_id: Optional[str] = None
    task_completed: Optional[bool] = None
    trigger_type: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TaskResult:
    executor_id: str
    observer_id: str
    task_text: Optional[str]
    completed: bool
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'executor_id': self.executor_id,
            'observer_id': self.observer_id,
            'task_text': self.task_text,
            'completed': self.completed,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class HistoryRecord:
    room_id: str
    session_id: str
    player1_id: str
    player2_id: str
    winner_id: Optional[str]
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    task_results: List[TaskResult] = field(default_factory=list)
