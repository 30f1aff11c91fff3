from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
from ludotask.services.game import SessionStore


history = Blueprint('history', __name__)


@history.route('', methods=['GET'])
@login_required
def list_history():
    """Archived games of the calling player, newest first."""
    limit = int(current_app.config.get('HISTORY_PAGE_SIZE', 50))
    records = SessionStore().list_history(current_user.id, limit=limit)
    payload = []
    for record in records:
        data = record.to_dict()
        data['is_winner'] = record.winner_id == current_user.id
        data['completed_tasks'] = sum(1 for r in data['task_results'] if r.get('completed'))
        payload.append(data)
    return jsonify(payload)
