class GameError(Exception):
    """Base for every failure the turn engine reports to callers.

    ``message`` is safe to show to a player; storage details stay in the
    chained exception and the log.
    """

    kind = 'game_error'
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'success': False, 'error': self.message, 'kind': self.kind}


class NotFound(GameError):
    kind = 'not_found'
    status_code = 404


class StateConflict(GameError):
    kind = 'state_conflict'
    status_code = 409


class IllegalActor(GameError):
    kind = 'illegal_actor'
    status_code = 403


class IllegalState(GameError):
    kind = 'illegal_state'
    status_code = 400


class UpstreamFailure(GameError):
    kind = 'upstream_failure'
    status_code = 502
