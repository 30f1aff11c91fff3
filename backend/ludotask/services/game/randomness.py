import random
from typing import Optional

from .board import DIE_FACES, MAX_PENALTY


class RandomProvider:
    """Uniform draws for dice, task picks and verification penalties.

    Pass ``seed`` (or a ``random.Random``) for reproducible sequences.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random(seed)

    def roll_die(self) -> int:
        return self._rng.randint(1, DIE_FACES)

    def pick_index(self, count: int) -> int:
        if count <= 0:
            raise ValueError('cannot pick from an empty collection')
        return self._rng.randrange(count)

    def draw_penalty(self) -> int:
        return self._rng.randint(0, MAX_PENALTY)
