"""Player identity as provided by the upstream auth proxy.

Authentication happens before requests reach this service; the proxy forwards
the authenticated player id in the ``X-Player-Id`` header.
"""

from flask import jsonify
from flask_login import UserMixin

PLAYER_HEADER = 'X-Player-Id'


class PlayerIdentity(UserMixin):

    def __init__(self, player_id: str):
        self.id = player_id

    def __repr__(self):
        return f'<PlayerIdentity {self.id}>'


def register_identity(login_manager):
    @login_manager.request_loader
    def load_player_from_request(req):
        player_id = (req.headers.get(PLAYER_HEADER) or '').strip()
        if not player_id:
            return None
        return PlayerIdentity(player_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Sign in to play', 'kind': 'unauthenticated'}), 401
