"""Role table and verification policy for triggered tasks.

| trigger   | executor   | observer   | task drawn from       |
|-----------|------------|------------|-----------------------|
| collision | non-mover  | mover      | mover's theme         |
| star      | non-mover  | mover      | mover's theme         |
| trap      | mover      | non-mover  | non-mover's theme     |
"""

from typing import Callable, NamedTuple, Optional

from . import board
from .domain import (
    BoardState,
    PendingTask,
    SessionSnapshot,
    TRIGGER_COLLISION,
    TRIGGER_STAR,
    TRIGGER_TRAP,
)


class Roles(NamedTuple):
    executor_id: str
    observer_id: str
    theme_owner_id: str


class Resolution(NamedTuple):
    board: BoardState
    penalty: Optional[int]


def detect_trigger(session: SessionSnapshot, mover_id: str, new_position: int) -> Optional[str]:
    """Collision wins over the cell kind; the final cell never triggers."""
    if new_position == board.final_cell(session.board.board_size):
        return None
    if new_position == session.position_of(session.other_player(mover_id)):
        return TRIGGER_COLLISION
    kind = board.cell_kind(session.board.special_cells, new_position)
    if kind == board.CELL_STAR:
        return TRIGGER_STAR
    if kind == board.CELL_TRAP:
        return TRIGGER_TRAP
    return None


def assign_roles(trigger_type: str, mover_id: str, other_id: str) -> Roles:
    if trigger_type == TRIGGER_TRAP:
        return Roles(executor_id=mover_id, observer_id=other_id, theme_owner_id=other_id)
    if trigger_type in (TRIGGER_STAR, TRIGGER_COLLISION):
        return Roles(executor_id=other_id, observer_id=mover_id, theme_owner_id=mover_id)
    raise ValueError(f'unknown trigger type {trigger_type!r}')


def resolve_verification(
    session: SessionSnapshot,
    pending: PendingTask,
    confirmed: bool,
    draw_penalty: Callable[[], int],
) -> Resolution:
    """Apply the observer's verdict to board positions.

    ``draw_penalty`` is only called for a failed star/trap task.
    """
    if pending.trigger_type == TRIGGER_COLLISION:
        if confirmed:
            # mover (observer) goes back to where the roll started
            old = pending.attacker_old_position or 0
            return Resolution(session.board_with(pending.observer_id, old), None)
        return Resolution(session.board_with(pending.executor_id, 0), None)

    if confirmed:
        return Resolution(session.board, None)

    penalty = draw_penalty()
    executor_pos = session.position_of(pending.executor_id)
    moved = session.board_with(pending.executor_id, board.step_back(executor_pos, penalty))
    return Resolution(moved, penalty)
