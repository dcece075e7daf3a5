import pytest
from datetime import datetime, timedelta
import types

from clubvote.security.login_throttle import LoginThrottle


class FrozenDateTime:
    """Helper to monkeypatch datetime.utcnow()"""
    def __init__(self, start):
        self._now = start

    def advance(self, **kwargs):
        self._now += timedelta(**kwargs)

    def utcnow(self):
        return self._now


@pytest.fixture
def frozen_datetime(monkeypatch):
    fd = FrozenDateTime(datetime(2025, 10, 23, 12, 0, 0))
    import clubvote.security.login_throttle as throttle_mod
    monkeypatch.setattr(throttle_mod, 'datetime', types.SimpleNamespace(utcnow=fd.utcnow))
    return fd


def test_lockout_after_max_attempts(frozen_datetime):
    throttle = LoginThrottle(max_attempts=3, window_minutes=15, lockout_minutes=30)
    key = throttle.key_for('1.2.3.4', 'officer')

    assert throttle.record_failed_attempt(key) == 0
    assert throttle.record_failed_attempt(key) == 0
    assert throttle.is_locked(key) is False

    assert throttle.record_failed_attempt(key) == 30 * 60
    assert throttle.is_locked(key) is True
    assert throttle.lockout_remaining(key) == 30 * 60


def test_lockout_expires(frozen_datetime):
    throttle = LoginThrottle(max_attempts=2, window_minutes=15, lockout_minutes=30)
    key = throttle.key_for('1.2.3.4', 'officer')
    throttle.record_failed_attempt(key)
    throttle.record_failed_attempt(key)

    frozen_datetime.advance(minutes=29)
    assert throttle.lockout_remaining(key) == 60

    frozen_datetime.advance(minutes=1)
    assert throttle.is_locked(key) is False


def test_failures_outside_window_do_not_count(frozen_datetime):
    throttle = LoginThrottle(max_attempts=3, window_minutes=15)
    key = throttle.key_for('5.6.7.8', 'officer')

    throttle.record_failed_attempt(key)
    throttle.record_failed_attempt(key)
    frozen_datetime.advance(minutes=16)

    assert throttle.record_failed_attempt(key) == 0
    assert throttle.is_locked(key) is False


def test_keys_are_isolated(frozen_datetime):
    throttle = LoginThrottle(max_attempts=2)
    officer = throttle.key_for('10.0.0.1', 'officer')
    other_ip = throttle.key_for('10.0.0.2', 'officer')
    other_user = throttle.key_for('10.0.0.1', 'chair')

    throttle.record_failed_attempt(officer)
    throttle.record_failed_attempt(officer)

    assert throttle.is_locked(officer) is True
    assert throttle.is_locked(other_ip) is False
    assert throttle.is_locked(other_user) is False


def test_key_ignores_username_case():
    assert LoginThrottle.key_for('10.0.0.1', 'Officer') == LoginThrottle.key_for('10.0.0.1', 'officer')
    assert LoginThrottle.key_for(None, None) == 'unknown|'


def test_reset_clears_failures(frozen_datetime):
    throttle = LoginThrottle(max_attempts=2)
    key = throttle.key_for('1.2.3.4', 'officer')
    throttle.record_failed_attempt(key)
    throttle.reset(key)

    assert throttle.record_failed_attempt(key) == 0
    assert throttle.is_locked(key) is False


def test_clear_old_records(frozen_datetime):
    throttle = LoginThrottle(max_attempts=2, window_minutes=15, lockout_minutes=30)
    locked = throttle.key_for('1.2.3.4', 'officer')
    stale = throttle.key_for('5.6.7.8', 'officer')

    throttle.record_failed_attempt(locked)
    throttle.record_failed_attempt(locked)
    throttle.record_failed_attempt(stale)

    frozen_datetime.advance(minutes=31)
    throttle.clear_old_records()

    assert stale not in throttle.failed_logins
    assert locked not in throttle.locks


def test_recording_a_failure_prunes_other_keys(frozen_datetime):
    throttle = LoginThrottle(max_attempts=2, window_minutes=15, lockout_minutes=30)
    locked = throttle.key_for('1.2.3.4', 'officer')
    stale = throttle.key_for('5.6.7.8', 'officer')
    fresh = throttle.key_for('9.9.9.9', 'chair')

    throttle.record_failed_attempt(locked)
    throttle.record_failed_attempt(locked)
    throttle.record_failed_attempt(stale)

    frozen_datetime.advance(minutes=31)
    throttle.record_failed_attempt(fresh)

    assert stale not in throttle.failed_logins
    assert locked not in throttle.failed_logins
    assert locked not in throttle.locks
    assert len(throttle.failed_logins[fresh]) == 1
