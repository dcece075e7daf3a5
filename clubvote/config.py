# clubvote/config.py

import os


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


class Config:
    """Defaults read from the environment; create_app() may override any key."""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///clubvote.sqlite')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sessions (member and admin share the same sliding window)
    SESSION_DURATION_MS = _env_int('SESSION_DURATION_MS', 30 * MINUTE_MS)
    SESSION_COOKIE_NAME_MEMBER = 'session_token'
    SESSION_COOKIE_NAME_ADMIN = 'admin_token'
    SESSION_COOKIE_SECURE = _env_bool('SESSION_COOKIE_SECURE', False)

    # One-time codes
    OTP_LENGTH = _env_int('OTP_LENGTH', 6)
    OTP_TTL_MS = _env_int('OTP_TTL_MS', 10 * MINUTE_MS)
    OTP_MAX_ATTEMPTS = _env_int('OTP_MAX_ATTEMPTS', 5)

    ELECTION_DEFAULT_DURATION_MS = _env_int('ELECTION_DEFAULT_DURATION_MS', 24 * HOUR_MS)

    # Admin brute-force throttle
    ADMIN_MAX_LOGIN_ATTEMPTS = _env_int('ADMIN_MAX_LOGIN_ATTEMPTS', 5)
    ADMIN_LOGIN_WINDOW_MINUTES = _env_int('ADMIN_LOGIN_WINDOW_MINUTES', 15)
    ADMIN_LOCKOUT_MINUTES = _env_int('ADMIN_LOCKOUT_MINUTES', 30)

    # Flask-Limiter
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    AUTH_RATE_LIMIT = os.environ.get('AUTH_RATE_LIMIT', '20/minute')

    # SMS delivery (Twilio); unset credentials fall back to the log channel
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')
    SMS_TIMEOUT_SECONDS = _env_int('SMS_TIMEOUT_SECONDS', 10)

    # Argon2id cost parameters for admin passwords
    PASSWORD_HASH_TIME_COST = _env_int('PASSWORD_HASH_TIME_COST', 3)
    PASSWORD_HASH_MEMORY_COST = _env_int('PASSWORD_HASH_MEMORY_COST', 65536)

    AUDIT_LOG_DIR = os.environ.get('AUDIT_LOG_DIR', 'logs')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
