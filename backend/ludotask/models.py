from ludotask import db
from datetime import datetime, timezone
import json
import uuid


def generate_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def _loads(raw, default=None):
    if not raw:
        return default
    return json.loads(raw)


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    player1_id = db.Column(db.String(64), nullable=False, index=True)
    player2_id = db.Column(db.String(64), nullable=True, index=True)
    player1_theme_id = db.Column(db.String(36), db.ForeignKey('theme.id'), nullable=True)
    player2_theme_id = db.Column(db.String(36), db.ForeignKey('theme.id'), nullable=True)
    status = db.Column(db.String(32), default='waiting', nullable=False)  # waiting, playing, completed


class Theme(db.Model):
    __tablename__ = 'theme'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    title = db.Column(db.String(128), nullable=False)
    creator_id = db.Column(db.String(64), nullable=True, index=True)
    tasks = db.relationship('Task', backref='theme', lazy='dynamic')


class Task(db.Model):
    __tablename__ = 'task'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    theme_id = db.Column(db.String(36), db.ForeignKey('theme.id'), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(32), default='interaction', nullable=False)
    order_index = db.Column(db.Integer, default=0, nullable=False)


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id'), nullable=False, index=True)
    player1_id = db.Column(db.String(64), nullable=False, index=True)
    player2_id = db.Column(db.String(64), nullable=False, index=True)
    current_player_id = db.Column(db.String(64), nullable=True)
    current_turn = db.Column(db.Integer, default=1, nullable=False)
    status = db.Column(db.String(32), default='playing', nullable=False)  # playing, completed
    board_state = db.Column(db.Text, nullable=False)  # JSON: board_size, positions, special_cells
    pending_task = db.Column(db.Text, nullable=True)  # JSON-encoded pending task, cleared on verify
    # Bumped on every conditional write; guards transitions that keep current_player_id
    version = db.Column(db.Integer, default=1, nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)


class GameMove(db.Model):
    __tablename__ = 'game_move'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(36), nullable=False, index=True)
    player_id = db.Column(db.String(64), nullable=False)
    dice_value = db.Column(db.Integer, nullable=False)
    old_position = db.Column(db.Integer, nullable=False)
    new_position = db.Column(db.Integer, nullable=False)
    task_id = db.Column(db.String(36), nullable=True)
    task_completed = db.Column(db.Boolean, nullable=True)
    trigger_type = db.Column(db.String(16), nullable=True)  # star, trap, collision
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)


class GameHistory(db.Model):
    __tablename__ = 'game_history'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(36), nullable=True)
    session_id = db.Column(db.String(36), unique=True, nullable=False)
    player1_id = db.Column(db.String(64), nullable=False, index=True)
    player2_id = db.Column(db.String(64), nullable=False, index=True)
    winner_id = db.Column(db.String(64), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    task_results = db.Column(db.Text, nullable=False, default='[]')  # JSON list

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'session_id': self.session_id,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'winner_id': self.winner_id,
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
            'task_results': _loads(self.task_results, []),
        }
