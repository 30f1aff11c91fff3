import json
from datetime import datetime

import pytest

from conftest import set_positions
from ludotask.models import GameHistory, GameMove
from ludotask.services.game.archiver import build_history
from ludotask.services.game.board import default_special_cells
from ludotask.services.game.domain import BoardState, CompletedSession, MoveRecord
from ludotask.services.game.errors import IllegalState


def completed_session():
    return CompletedSession(
        session_id='s1',
        room_id='r1',
        player1_id='alice',
        player2_id='bob',
        current_turn=9,
        version=12,
        board=BoardState(49, 48, 20, default_special_cells()),
        started_at=datetime(2026, 10, 1, 12, 0),
        winner_id='alice',
        ended_at=datetime(2026, 10, 1, 12, 30),
    )


def move(move_id, player, new_position, task_id=None, completed=None, trigger=None):
    return MoveRecord(
        id=move_id,
        session_id='s1',
        player_id=player,
        dice_value=3,
        old_position=new_position - 3,
        new_position=new_position,
        task_id=task_id,
        task_completed=completed,
        trigger_type=trigger,
        created_at=datetime(2026, 10, 1, 12, move_id),
    )


def test_results_follow_persisted_trigger_type():
    moves = [
        move(1, 'alice', 3),
        move(2, 'alice', 6, 't-star', True, 'star'),
        move(3, 'bob', 4, 't-trap', False, 'trap'),
        # cell 13 is plain; the persisted type decides
        move(4, 'bob', 13, 't-hit', True, 'collision'),
    ]
    texts = {'t-star': 'Sing', 't-trap': 'Dance'}
    record = build_history(completed_session(), moves, texts)

    assert record.winner_id == 'alice'
    assert [(r.executor_id, r.observer_id, r.task_text, r.completed) for r in record.task_results] == [
        ('bob', 'alice', 'Sing', True),
        ('bob', 'alice', 'Dance', False),
        ('alice', 'bob', None, True),
    ]
    assert record.task_results[0].timestamp == '2026-10-01T12:02:00'


def test_legacy_rows_fall_back_to_board_layout():
    moves = [
        move(1, 'bob', 8, 't1', True),    # trap cell
        move(2, 'bob', 10, 't2', True),   # star cell
        move(3, 'bob', 13, 't3', False),  # plain cell, so it was a collision
    ]
    record = build_history(completed_session(), moves, {})
    assert [(r.executor_id, r.observer_id) for r in record.task_results] == [
        ('bob', 'alice'),
        ('alice', 'bob'),
        ('alice', 'bob'),
    ]


def test_finished_game_history_lists_verified_tasks(engine, store, game, rng):
    rng.dice = [2, 1, 5]
    engine.roll(game.session_id, 'alice')          # star at 2
    engine.confirm_execution(game.session_id, 'bob')
    engine.verify(game.session_id, 'alice', True)
    engine.roll(game.session_id, 'bob')            # plain cell 1

    set_positions(game.session_id, 43, 1)
    result = engine.roll(game.session_id, 'alice')  # 43 + 5 = 48
    assert result.completed

    row = GameHistory.query.filter_by(session_id=game.session_id).one()
    assert row.winner_id == 'alice'
    assert row.room_id == game.room_id
    results = json.loads(row.task_results)
    assert len(results) == 1
    assert results[0]['executor_id'] == 'bob'
    assert results[0]['observer_id'] == 'alice'
    assert results[0]['task_text'] == 'Alice task one'
    assert results[0]['completed'] is True
    assert results[0]['timestamp']
    assert GameMove.query.filter_by(session_id=game.session_id).count() == 0


def test_archive_refuses_live_session(engine, game):
    with pytest.raises(IllegalState):
        engine.archiver.archive(game.session_id)
    with pytest.raises(IllegalState):
        engine.archiver.cleanup(game.session_id)


def test_history_listing_is_per_player(engine, store, game, rng):
    set_positions(game.session_id, 44, 0)
    rng.dice = [4]
    engine.roll(game.session_id, 'alice')

    assert [r.session_id for r in store.list_history('bob')] == [game.session_id]
    assert store.list_history('mallory') == []


def test_cleanup_keeps_rows_until_history_is_recorded(engine, store, game, rng, monkeypatch):
    from ludotask.models import GameSession
    from ludotask.services.game.errors import UpstreamFailure

    def broken_insert(record):
        raise UpstreamFailure('Game storage is unavailable, please try again')

    set_positions(game.session_id, 45, 7)
    rng.dice = [3]
    monkeypatch.setattr(engine.archiver.store, 'insert_history', broken_insert)
    result = engine.roll(game.session_id, 'alice')
    assert result.completed
    assert result.archive_error

    with pytest.raises(IllegalState):
        engine.archiver.cleanup(game.session_id)
    assert GameSession.query.filter_by(id=game.session_id).count() == 1
    assert GameMove.query.filter_by(session_id=game.session_id).count() == 1
    assert GameHistory.query.filter_by(session_id=game.session_id).count() == 0
