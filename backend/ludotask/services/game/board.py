"""Board model: positions, special cells and movement on the closed track.

Pure functions only. Session rows persist ``special_cells`` as a JSON object,
so keys arrive as strings and are normalized to ``int`` here.
"""

from typing import Dict, Mapping, Optional


CELL_STAR = 'star'
CELL_TRAP = 'trap'
CELL_KINDS = (CELL_STAR, CELL_TRAP)

DEFAULT_BOARD_SIZE = 49
STAR_CELLS = (2, 6, 10, 14, 18, 22, 26, 30, 34, 38, 42, 46)
TRAP_CELLS = (4, 8, 12, 16, 20, 24, 28, 32, 36, 40, 44, 47)

DIE_FACES = 6
MAX_PENALTY = 3


def default_special_cells() -> Dict[int, str]:
    cells = {i: CELL_STAR for i in STAR_CELLS}
    cells.update({i: CELL_TRAP for i in TRAP_CELLS})
    return cells


def normalize_special_cells(raw: Optional[Mapping]) -> Dict[int, str]:
    return {int(k): str(v) for k, v in (raw or {}).items()}


def validate_layout(board_size: int, special_cells: Mapping[int, str]) -> None:
    """Reject layouts that mark the start/end cell or use unknown kinds."""
    if board_size < 2:
        raise ValueError(f'board_size must be at least 2, got {board_size}')
    for index, kind in special_cells.items():
        if kind not in CELL_KINDS:
            raise ValueError(f'unknown cell kind {kind!r} at {index}')
        if not 0 < index < board_size - 1:
            raise ValueError(f'special cell {index} outside 1..{board_size - 2}')


def final_cell(board_size: int) -> int:
    return board_size - 1


def advance(position: int, dice_value: int, board_size: int) -> int:
    """Move forward, stopping on the final cell instead of overshooting."""
    return min(position + dice_value, final_cell(board_size))


def step_back(position: int, steps: int) -> int:
    return max(0, position - steps)


def cell_kind(special_cells: Mapping[int, str], position: int) -> Optional[str]:
    kind = special_cells.get(position)
    return kind if kind in CELL_KINDS else None
