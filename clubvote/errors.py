# clubvote/errors.py
"""Domain exceptions raised by the credential, election and ledger services.

Exception hierarchy:
- VotingError: base class, carries the HTTP status the API answers with
  - InputError: missing or malformed request fields
  - state errors: UnknownIdentity, NoActiveChallenge, ChallengeExpired,
    TooManyAttempts, CodeMismatch, InvalidCredentials, LoginLocked,
    WeakPassword, ElectionNotActive, AlreadyVoted, AlreadyActive, NotActive,
    ElectionAlreadyEnded
  - ReferenceIntegrityError: InvalidPosition, InvalidCandidate
  - DeliveryError: the message channel could not deliver a code

Store failures are not wrapped; SQLAlchemy exceptions propagate as-is.
"""


class VotingError(Exception):
    """Base exception for rejected operations."""
    status_code = 400
    default_message = 'Request could not be completed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self):
        return {'success': False, 'message': self.message}


class InputError(VotingError):
    default_message = 'Invalid request'


# Credentials and sessions

class UnknownIdentity(VotingError):
    default_message = 'Invalid phone number. Please check and try again.'


class NoActiveChallenge(VotingError):
    default_message = 'Verification code has expired or was never sent. Please request a new code.'


class ChallengeExpired(VotingError):
    default_message = 'Verification code has expired. Please request a new code.'


class TooManyAttempts(VotingError):
    default_message = 'Too many failed attempts. Please request a new verification code.'


class CodeMismatch(VotingError):
    default_message = 'Invalid verification code. Please try again.'


class InvalidCredentials(VotingError):
    status_code = 401
    default_message = 'Invalid admin credentials'


class LoginLocked(VotingError):
    status_code = 429
    default_message = 'Too many failed login attempts. Try again later.'

    def __init__(self, retry_after_seconds, message=None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)

    def payload(self):
        data = super().payload()
        data['retryAfter'] = self.retry_after_seconds
        return data


class WeakPassword(VotingError):
    default_message = 'Password does not meet security requirements'


class AuthenticationRequired(VotingError):
    status_code = 401
    default_message = 'Authentication required'


# Election lifecycle

class ElectionNotActive(VotingError):
    status_code = 403
    default_message = 'Voting is not currently active'


class AlreadyActive(VotingError):
    default_message = 'Election is already in progress'


class NotActive(VotingError):
    default_message = 'No active election to end'


class ElectionAlreadyEnded(VotingError):
    default_message = 'Election has already ended and cannot be restarted'


class ResultsUnavailable(VotingError):
    status_code = 403
    default_message = 'Results are not available until the election has ended'


# Ballot

class AlreadyVoted(VotingError):
    status_code = 403
    default_message = 'You have already cast your vote in this election'

    def __init__(self, vote_id, message=None):
        self.vote_id = vote_id
        super().__init__(message)

    def payload(self):
        data = super().payload()
        data['voteId'] = self.vote_id
        return data


class ReferenceIntegrityError(VotingError):
    """A vote references a position or candidate that is not on the ballot."""


class InvalidPosition(ReferenceIntegrityError):
    def __init__(self, position_id):
        self.position_id = position_id
        super().__init__(f'Invalid position ID: {position_id}')


class InvalidCandidate(ReferenceIntegrityError):
    def __init__(self, position_id, candidate_id):
        self.position_id = position_id
        self.candidate_id = candidate_id
        super().__init__(f'Invalid candidate ID for position {position_id}')


# Infrastructure

class DeliveryError(VotingError):
    status_code = 502
    default_message = 'Could not deliver the verification code. Please try again.'
