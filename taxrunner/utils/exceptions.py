class GameError(Exception):
    """Base class for request-local errors returned to the client as JSON"""
    status = 400
    code = 'bad-request'

    def __init__(self, code=None, message=None, **details):
        self.code = code or self.code
        self.message = message or self.code
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.code, **self.details}


class ValidationError(GameError):
    """Malformed or out-of-range input"""
    status = 400
    code = 'invalid-request'


class NotFoundError(GameError):
    """Unknown player, winner or claim"""
    status = 404
    code = 'not-found'


class AuthorizationError(GameError):
    """Wrong admin key or admin-only action"""
    status = 403
    code = 'forbidden'


class InvalidClaim(GameError):
    """Claim secret does not match the stored hash"""
    status = 403
    code = 'invalid-claim'


class RateLimited(GameError):
    status = 429
    code = 'rate-limited'


class AntiCheatRejected(GameError):
    """Score submission refused by the run validator"""
    status = 400
    code = 'anti-cheat'


class NoActiveRun(AntiCheatRejected):
    code = 'no-active-run'


class TooFast(AntiCheatRejected):
    code = 'too-fast'


class UnnaturalRhythm(AntiCheatRejected):
    code = 'unnatural-rhythm'
