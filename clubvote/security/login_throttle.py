# clubvote/security/login_throttle.py

import threading
from collections import defaultdict
from datetime import datetime, timedelta

# Brute-force protection for admin password logins.
# Failures are counted per key (client address + username) in a sliding
# window; reaching the limit locks the key out for a fixed period.


class LoginThrottle:
    def __init__(self, max_attempts=5, window_minutes=15, lockout_minutes=30):
        """
        max_attempts: failures within `window_minutes` that trigger lockout
        window_minutes: sliding window to count failures
        lockout_minutes: how long a key stays locked once the limit is hit
        """
        self.failed_logins = defaultdict(list)  # key -> list[datetime]
        self.max_attempts = max_attempts
        self.window = timedelta(minutes=window_minutes)
        self.lockout_duration = timedelta(minutes=lockout_minutes)
        self.locks = {}  # key -> locked_until datetime
        self._lock = threading.Lock()

    def _now(self):
        # extracted for easier monkeypatching in tests
        return datetime.utcnow()

    @staticmethod
    def key_for(ip, username):
        return f"{ip or 'unknown'}|{(username or '').lower()}"

    def record_failed_attempt(self, key):
        """Record a failure for `key`.

        Returns the number of seconds the key is locked for, or 0 while it is
        still under the limit.
        """
        now = self._now()
        with self._lock:
            self._prune(now)
            locked_until = self.locks.get(key)
            if locked_until and now < locked_until:
                return int((locked_until - now).total_seconds())

            attempts = [t for t in self.failed_logins[key] if now - t <= self.window]
            attempts.append(now)
            self.failed_logins[key] = attempts

            if len(attempts) >= self.max_attempts:
                self.locks[key] = now + self.lockout_duration
                self.failed_logins[key] = []
                return int(self.lockout_duration.total_seconds())
            return 0

    def lockout_remaining(self, key):
        """Seconds left on the lockout for `key`, 0 if it is not locked."""
        now = self._now()
        with self._lock:
            locked_until = self.locks.get(key)
            if locked_until and now < locked_until:
                return max(1, int((locked_until - now).total_seconds()))
            return 0

    def is_locked(self, key):
        return self.lockout_remaining(key) > 0

    def reset(self, key):
        with self._lock:
            self.failed_logins.pop(key, None)
            self.locks.pop(key, None)

    def clear_old_records(self):
        with self._lock:
            self._prune(self._now())

    def _prune(self, now):
        # caller holds self._lock; runs on every recorded failure so keys
        # from one-off addresses do not accumulate
        for key, attempts in list(self.failed_logins.items()):
            pruned = [t for t in attempts if now - t <= self.window]
            if pruned:
                self.failed_logins[key] = pruned
            else:
                del self.failed_logins[key]

        for key, locked_until in list(self.locks.items()):
            if now >= locked_until:
                del self.locks[key]
