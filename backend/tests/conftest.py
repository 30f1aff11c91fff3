import json
import os
import sys
import pytest
from flask import g
from flask.testing import FlaskClient

# Ensure the backend root (containing the `ludotask` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from ludotask import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BOARD_SIZE = 49
    TASK_DRAW_LIMIT = 50
    HISTORY_PAGE_SIZE = 50
    LOG_LEVEL = 'DEBUG'


class ScriptedRandom:
    """Random provider that replays queued values; picks default to index 0."""

    def __init__(self, dice=None, picks=None, penalties=None):
        self.dice = list(dice or [])
        self.picks = list(picks or [])
        self.penalties = list(penalties or [])

    def roll_die(self):
        return self.dice.pop(0)

    def pick_index(self, count):
        idx = self.picks.pop(0) if self.picks else 0
        assert 0 <= idx < count
        return idx

    def draw_penalty(self):
        return self.penalties.pop(0)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import ludotask.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


class _FreshIdentityClient(FlaskClient):
    """The fixture keeps one app context pushed, so ``g`` is shared by every
    request; drop Flask-Login's cached user so each request resolves its own."""

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture()
def client(flask_app):
    flask_app.test_client_class = _FreshIdentityClient
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def rng(flask_app):
    scripted = ScriptedRandom()
    flask_app.config['RANDOM_PROVIDER'] = scripted
    return scripted


@pytest.fixture()
def store(flask_app):
    from ludotask.services.game import SessionStore
    return SessionStore()


@pytest.fixture()
def engine(flask_app, rng):
    from ludotask.services.game import build_engine
    return build_engine()


def _theme(title, owner, tasks):
    from ludotask.models import Theme, Task
    theme = Theme(title=title, creator_id=owner)
    db.session.add(theme)
    db.session.flush()
    for idx, text in enumerate(tasks):
        db.session.add(Task(theme_id=theme.id, description=text, order_index=idx))
    return theme


@pytest.fixture()
def room(flask_app):
    from ludotask.models import Room
    alice_theme = _theme('Alice picks', 'alice', ['Alice task one', 'Alice task two'])
    bob_theme = _theme('Bob picks', 'bob', ['Bob task one'])
    new_room = Room(
        player1_id='alice',
        player2_id='bob',
        player1_theme_id=alice_theme.id,
        player2_theme_id=bob_theme.id,
    )
    db.session.add(new_room)
    db.session.commit()
    return new_room


@pytest.fixture()
def game(store, room):
    return store.create_session(room.id, 'alice', 'bob')


def set_positions(session_id, player1_position, player2_position):
    """Place both tokens directly, bypassing the engine."""
    from ludotask.models import GameSession
    row = db.session.get(GameSession, session_id)
    state = json.loads(row.board_state)
    state['player1_position'] = player1_position
    state['player2_position'] = player2_position
    row.board_state = json.dumps(state)
    db.session.commit()


def headers(player_id):
    return {'X-Player-Id': player_id}
