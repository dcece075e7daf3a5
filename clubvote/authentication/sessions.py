# clubvote/authentication/sessions.py

import logging
from enum import Enum

from clubvote.security.tokens import generate_session_token

logger = logging.getLogger(__name__)


class OwnerType(Enum):
    MEMBER = "member"
    ADMIN = "admin"


class SessionManager:
    """Server-side sessions with sliding expiration.

    A token is only a lookup key; whether it is valid is decided by the
    session record in the store. Every successful validation pushes
    `expires_at` out to now + duration (last writer wins).
    """

    def __init__(self, store, clock, duration_ms):
        self.store = store
        self.clock = clock
        self.duration_ms = duration_ms

    def create(self, owner_type, owner_id, ip_address=None, user_agent=None):
        now = self.clock()
        token = generate_session_token()
        self.store.create('sessions', {
            'id': token,
            'owner_type': OwnerType(owner_type).value,
            'owner_id': owner_id,
            'created_at': now,
            'expires_at': now + self.duration_ms,
            'ip_address': ip_address,
            'user_agent': (user_agent or '')[:255] or None,
        })
        return token

    def validate(self, token, owner_type):
        """Return the refreshed session record, or None if there is no usable session."""
        if not token:
            return None

        session = self.store.find_by('sessions', 'id', token)
        if session is None or session['owner_type'] != OwnerType(owner_type).value:
            return None

        now = self.clock()
        if now > session['expires_at']:
            self.store.remove('sessions', 'id', token)
            logger.info("Expired %s session removed", session['owner_type'])
            return None

        return self.store.update('sessions', 'id', token, {'expires_at': now + self.duration_ms})

    def end(self, token):
        if token:
            self.store.remove('sessions', 'id', token)
        return True

