# clubvote/services.py

from flask import current_app

from clubvote.audit.audit_logger import AuditLogger
from clubvote.authentication.credentials import CredentialManager
from clubvote.authentication.otp import OneTimeCodeStore
from clubvote.authentication.sessions import SessionManager
from clubvote.clock import now_ms
from clubvote.database.store import CollectionStore, DocumentStore
from clubvote.encryption.password_hashing import PasswordHashingService
from clubvote.messaging.sms import build_sms_channel
from clubvote.security.input_validator import InputValidator
from clubvote.security.login_throttle import LoginThrottle
from clubvote.voting.dashboard import DashboardAggregator
from clubvote.voting.election import ElectionStateMachine
from clubvote.voting.ledger import VoteLedger

EXTENSION_KEY = 'clubvote'


class VotingServices:
    """Service instances owned by one Flask app; routes reach them via get_services()."""

    def __init__(self, config, clock=None, sms_channel=None, audit_logger=None):
        self.clock = clock or now_ms
        self.store = CollectionStore()
        self.election_document = DocumentStore(defaults={
            'is_active': False,
            'start_time': None,
            'end_time': None,
            'duration': config['ELECTION_DEFAULT_DURATION_MS'],
        })
        self.audit = audit_logger or AuditLogger(log_dir=config['AUDIT_LOG_DIR'])
        self.validator = InputValidator(otp_length=config['OTP_LENGTH'])
        self.passwords = PasswordHashingService.from_config(config)
        self.throttle = LoginThrottle(
            max_attempts=config['ADMIN_MAX_LOGIN_ATTEMPTS'],
            window_minutes=config['ADMIN_LOGIN_WINDOW_MINUTES'],
            lockout_minutes=config['ADMIN_LOCKOUT_MINUTES'],
        )
        self.sms = sms_channel or build_sms_channel(config)
        self.otp_codes = OneTimeCodeStore(
            code_length=config['OTP_LENGTH'],
            ttl_ms=config['OTP_TTL_MS'],
            max_attempts=config['OTP_MAX_ATTEMPTS'],
        )
        self.sessions = SessionManager(self.store, self.clock, config['SESSION_DURATION_MS'])
        self.credentials = CredentialManager(
            self.store, self.otp_codes, self.sessions, self.sms, self.passwords,
            self.throttle, self.audit, self.clock,
        )
        self.election = ElectionStateMachine(
            self.election_document, self.clock,
            default_duration_ms=config['ELECTION_DEFAULT_DURATION_MS'],
            audit_logger=self.audit,
        )
        self.ledger = VoteLedger(self.store, self.election, self.clock, audit_logger=self.audit)
        self.dashboard = DashboardAggregator(self.store, self.election, self.ledger)


def init_services(app, **overrides):
    services = VotingServices(app.config, **overrides)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services():
    return current_app.extensions[EXTENSION_KEY]
