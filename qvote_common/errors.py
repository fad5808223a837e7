"""
Error taxonomy shared by the voter client and the vote server
"""


class QVoteError(Exception):
    """Base class for quadratic vote errors"""


class VoteRejected(QVoteError):
    """A ballot change that was refused; the ballot is left untouched"""

    def __init__(self, reason, index=None):
        super().__init__(reason)
        self.reason = reason
        self.index = index


class SubmitError(QVoteError):
    """Submitting a ballot (or resuming its signature) did not go through"""

    def __init__(self, message, event_id=None, voter_id=None, status=None):
        super().__init__(message)
        self.event_id = event_id
        self.voter_id = voter_id
        self.status = status

    @property
    def rejected(self):
        # 4xx: the server looked at the ballot and refused it
        return self.status is not None and 400 <= self.status < 500

    def failure_route(self):
        return f"failure?event={self.event_id}&user={self.voter_id}"


class AuthFailure(QVoteError):
    """Signing callback presented a bad or missing shared secret"""


class VoterNotFound(QVoteError):
    """No voter record for the given id or hash"""

    def __init__(self, key):
        super().__init__(f"Voter not found: {key}")
        self.key = key


class InvalidTransition(QVoteError):
    """A state machine was asked for a transition its current state forbids"""

    def __init__(self, current, target):
        super().__init__(f"Cannot move from {current} to {target}")
        self.current = current
        self.target = target
