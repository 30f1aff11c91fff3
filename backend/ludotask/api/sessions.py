from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from ludotask import socketio
from ludotask.services.game import build_engine
from ludotask.services.game.errors import NotFound


sessions = Blueprint('sessions', __name__)


def _notify(session_id: str) -> None:
    socketio.emit('state_update', {'session_id': session_id}, to=f"session:{session_id}", namespace='/ws')


@sessions.route('/active', methods=['GET'])
@login_required
def get_active_session():
    """Returns the single in-progress session for the calling player, if any."""
    session = build_engine().get_active_session(current_user.id)
    return jsonify({'session': session.to_dict() if session else None})


@sessions.route('/<string:session_id>', methods=['GET'])
@login_required
def get_session_state(session_id):
    session = build_engine().view(session_id, current_user.id)
    return jsonify({'session': session.to_dict()})


@sessions.route('/<string:session_id>/roll', methods=['POST'])
@login_required
def roll(session_id):
    """Rolls the die for the player whose turn it is."""
    result = build_engine().roll(session_id, current_user.id)
    _notify(session_id)
    if result.completed:
        socketio.emit('game_completed', {'session_id': session_id, 'winner_id': result.winner_id},
                      to=f"session:{session_id}", namespace='/ws')
    return jsonify(result.to_dict())


@sessions.route('/<string:session_id>/confirm', methods=['POST'])
@login_required
def confirm_execution(session_id):
    """Executor reports the drawn task as performed."""
    pending = build_engine().confirm_execution(session_id, current_user.id)
    _notify(session_id)
    return jsonify({'success': True, 'pending_task': pending.to_dict()})


@sessions.route('/<string:session_id>/verify', methods=['POST'])
@login_required
def verify(session_id):
    """Observer judges the task; positions are resolved and the turn passes."""
    data = request.get_json(silent=True) or {}
    confirmed = data.get('confirmed')
    if not isinstance(confirmed, bool):
        return jsonify({'success': False, 'error': 'confirmed must be true or false', 'kind': 'bad_request'}), 400
    result = build_engine().verify(session_id, current_user.id, confirmed)
    _notify(session_id)
    return jsonify(result.to_dict())


@sessions.route('/<string:session_id>/cleanup', methods=['POST'])
@login_required
def cleanup(session_id):
    """Finishes archival of a won game: records history if missing, then removes live rows.

    Only the two players may call it. Once the session is gone it is a no-op.
    """
    engine = build_engine()
    try:
        engine.view(session_id, current_user.id)
    except NotFound:
        return jsonify({'success': True, 'archived': False})
    engine.archiver.archive(session_id)
    return jsonify({'success': True, 'archived': True})
