from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One random stream per app so a configured seed is not replayed per request
    from ludotask.services.game.randomness import RandomProvider
    seed = flask_app.config.get('RANDOM_SEED')
    flask_app.extensions['ludotask.random'] = RandomProvider(seed=int(seed) if seed not in (None, '') else None)

    from ludotask.identity import register_identity
    register_identity(login_manager)

    from ludotask.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from ludotask.api.history import history
    flask_app.register_blueprint(history, url_prefix='/api/history')

    from ludotask.services.game.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    from ludotask.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo game."""
        from ludotask.models import Room, Theme, Task
        from ludotask.services.game.store import SessionStore
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            themes = {}
            for owner, title, tasks in [
                ('player-1', 'Warm-up', ['Tell a joke', 'Sing a line of a song', 'Do five jumping jacks']),
                ('player-2', 'Truths', ['Share a childhood memory', 'Name a secret talent', 'Describe your perfect day']),
            ]:
                theme = Theme(title=title, creator_id=owner)
                db.session.add(theme)
                db.session.flush()
                for idx, text in enumerate(tasks):
                    db.session.add(Task(theme_id=theme.id, description=text, order_index=idx))
                themes[owner] = theme.id

            room = Room(
                player1_id='player-1',
                player2_id='player-2',
                player1_theme_id=themes['player-1'],
                player2_theme_id=themes['player-2'],
            )
            db.session.add(room)
            db.session.commit()

            session = SessionStore().create_session(room.id, 'player-1', 'player-2')
            print(f'Database has been reset and seeded! session={session.session_id}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
