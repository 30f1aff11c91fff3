"""Game domain services: board model, turn engine and archival.

Routes and socket handlers call ``build_engine()`` instead of touching the
store directly, keeping transport concerns out of the game rules.
"""

from flask import current_app

from .archiver import HistoryArchiver
from .engine import RollResult, TurnEngine, VerifyResult
from .randomness import RandomProvider
from .store import SessionStore
from .task_source import TaskSource


def build_engine() -> TurnEngine:
    cfg = current_app.config
    limit = int(cfg.get('TASK_DRAW_LIMIT', 50))
    rng = cfg.get('RANDOM_PROVIDER') or current_app.extensions['ludotask.random']
    store = SessionStore()
    task_source = TaskSource(limit=limit)
    return TurnEngine(
        store=store,
        task_source=task_source,
        rng=rng,
        archiver=HistoryArchiver(store, task_source),
        task_draw_limit=limit,
    )


__all__ = [
    'HistoryArchiver',
    'RandomProvider',
    'RollResult',
    'SessionStore',
    'TaskSource',
    'TurnEngine',
    'VerifyResult',
    'build_engine',
]
