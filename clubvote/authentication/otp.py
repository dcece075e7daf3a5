# clubvote/authentication/otp.py

import threading
from dataclasses import dataclass

from clubvote.errors import ChallengeExpired, CodeMismatch, NoActiveChallenge, TooManyAttempts
from clubvote.security.tokens import codes_match, generate_otp

# Pending one-time codes, keyed by phone number.
# Held in process memory only; expiry and attempt limits are enforced when a
# code is checked, there is no background sweep.


@dataclass
class OneTimeCredential:
    code: str
    expires_at: int
    member_id: str
    attempts: int = 0


class OneTimeCodeStore:
    def __init__(self, code_length=6, ttl_ms=10 * 60 * 1000, max_attempts=5):
        self.code_length = code_length
        self.ttl_ms = ttl_ms
        self.max_attempts = max_attempts
        self._pending = {}
        self._lock = threading.Lock()

    def issue(self, contact, member_id, now):
        """Create a fresh code for `contact`, replacing any pending one."""
        code = generate_otp(self.code_length)
        with self._lock:
            self._pending[contact] = OneTimeCredential(
                code=code,
                expires_at=now + self.ttl_ms,
                member_id=member_id,
            )
        return code

    def discard(self, contact, code=None):
        """Drop the pending code; with `code`, only if it is still the current one."""
        with self._lock:
            pending = self._pending.get(contact)
            if pending is None:
                return False
            if code is not None and pending.code != code:
                return False
            del self._pending[contact]
            return True

    def pending(self, contact):
        with self._lock:
            return self._pending.get(contact)

    def check(self, contact, code, now):
        """Consume the code for `contact` and return the member id it was issued for.

        Every call that reaches the comparison counts as an attempt. The limit
        applies to wrong guesses: `max_attempts` (5) mismatches are allowed, and
        the next check, number `max_attempts + 1`, drops the entry with
        TooManyAttempts even if that guess is right. A correct code on the
        fifth check therefore still succeeds; rejecting the fifth check itself
        would leave only four usable guesses.
        """
        with self._lock:
            pending = self._pending.get(contact)
            if pending is None:
                raise NoActiveChallenge()

            if now > pending.expires_at:
                del self._pending[contact]
                raise ChallengeExpired()

            pending.attempts += 1
            if pending.attempts > self.max_attempts:
                del self._pending[contact]
                raise TooManyAttempts()

            if not codes_match(pending.code, code):
                raise CodeMismatch()

            del self._pending[contact]
            return pending.member_id

    def __len__(self):
        with self._lock:
            return len(self._pending)
