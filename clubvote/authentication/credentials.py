# clubvote/authentication/credentials.py

import logging

from clubvote.authentication.sessions import OwnerType
from clubvote.errors import (
    InvalidCredentials, LoginLocked, UnknownIdentity, WeakPassword,
)

logger = logging.getLogger(__name__)


class CredentialManager:
    """Member one-time-code login, admin password login, and their sessions."""

    def __init__(self, store, otp_codes, sessions, sms_channel, password_service,
                 throttle, audit_logger, clock):
        self.store = store
        self.otp_codes = otp_codes
        self.sessions = sessions
        self.sms = sms_channel
        self.passwords = password_service
        self.throttle = throttle
        self.audit = audit_logger
        self.clock = clock

    # -- members -----------------------------------------------------------

    def _voting_record(self, member_id):
        vote = self.store.find_by('votes', 'member_id', member_id)
        return {'has_voted': vote is not None, 'vote_id': vote['id'] if vote else None}

    @staticmethod
    def _member_summary(member):
        return {'id': member['id'], 'name': member['name']}

    def request_code(self, contact):
        """Send a fresh one-time code to an eligible member's phone."""
        member = self.store.find_by('members', 'phone_number', contact)
        if member is None or not member['is_eligible']:
            self.audit.log_event('otp_request_rejected', {'reason': 'unknown_or_ineligible'})
            raise UnknownIdentity()

        now = self.clock()
        code = self.otp_codes.issue(contact, member['id'], now)
        ttl_minutes = max(1, self.otp_codes.ttl_ms // 60000)
        try:
            self.sms.send_code(contact, code, ttl_minutes=ttl_minutes)
        except Exception:
            # A code the member never received must not stay redeemable
            self.otp_codes.discard(contact, code)
            self.audit.log_event('otp_delivery_failed', {}, actor_id=member['id'])
            raise

        self.audit.log_event('otp_issued', {}, actor_id=member['id'])
        logger.info("Verification code issued for member %s", member['id'])
        return {'message': 'Verification code sent to your phone.'}

    def resend_code(self, contact):
        """Replace any pending code with a new one; the old code stops working."""
        self.request_code(contact)
        return {'message': 'New verification code sent to your phone.'}

    def verify_code(self, contact, code, ip_address=None, user_agent=None):
        now = self.clock()
        try:
            member_id = self.otp_codes.check(contact, code, now)
        except Exception as e:
            self.audit.log_event('otp_verification_failed', {'reason': type(e).__name__})
            raise

        member = self.store.find_by('members', 'id', member_id)
        if member is None:
            raise UnknownIdentity('Member account not found. Please contact the administrator.')

        token = self.sessions.create(OwnerType.MEMBER, member['id'], ip_address, user_agent)
        self.audit.log_event('member_login', {'ip': ip_address}, actor_id=member['id'])

        result = {'session_token': token, 'member': self._member_summary(member)}
        result.update(self._voting_record(member['id']))
        return result

    def validate_session(self, token):
        session = self.sessions.validate(token, OwnerType.MEMBER)
        if session is None:
            return None

        member = self.store.find_by('members', 'id', session['owner_id'])
        if member is None:
            return None

        result = {
            'session_token': token,
            'owner_type': OwnerType.MEMBER.value,
            'owner_id': member['id'],
            'expires_at': session['expires_at'],
            'member': self._member_summary(member),
        }
        result.update(self._voting_record(member['id']))
        return result

    def end_session(self, token):
        return self.sessions.end(token)

    # -- admins ------------------------------------------------------------

    def verify_admin_credentials(self, username, password, ip_address=None, user_agent=None):
        key = self.throttle.key_for(ip_address, username)
        remaining = self.throttle.lockout_remaining(key)
        if remaining:
            self.audit.log_event('admin_login_locked', {'username': username, 'ip': ip_address})
            raise LoginLocked(remaining)

        admin = self.store.find_by('admins', 'username', username)
        password_ok = self.passwords.verify_or_burn(password, admin['password_hash'] if admin else None)
        if admin is None or not admin['is_active'] or not password_ok:
            locked_for = self.throttle.record_failed_attempt(key)
            self.audit.log_event('admin_login_failed', {'username': username, 'ip': ip_address})
            if locked_for:
                logger.warning("Admin login for %r locked for %ss", username, locked_for)
            raise InvalidCredentials()

        self.throttle.reset(key)
        if self.passwords.needs_rehash(admin['password_hash']):
            self.store.update('admins', 'id', admin['id'], {
                'password_hash': self.passwords.hash_password(password, enforce_policy=False),
            })

        token = self.sessions.create(OwnerType.ADMIN, admin['id'], ip_address, user_agent)
        self.audit.log_event('admin_login', {'ip': ip_address}, actor_id=admin['id'])
        logger.info("Admin login successful for %s", username)
        return {
            'admin_token': token,
            'admin': {'id': admin['id'], 'username': admin['username'], 'name': admin['name']},
            'is_using_default_password': bool(admin['is_default_password']),
        }

    def validate_admin_session(self, token):
        session = self.sessions.validate(token, OwnerType.ADMIN)
        if session is None:
            return None

        admin = self.store.find_by('admins', 'id', session['owner_id'])
        if admin is None or not admin['is_active']:
            return None

        return {
            'session_token': token,
            'owner_type': OwnerType.ADMIN.value,
            'owner_id': admin['id'],
            'expires_at': session['expires_at'],
            'admin': {'id': admin['id'], 'username': admin['username'], 'name': admin['name']},
            'is_using_default_password': bool(admin['is_default_password']),
        }

    def change_admin_password(self, admin_id, current_password, new_password):
        admin = self.store.find_by('admins', 'id', admin_id)
        if admin is None or not self.passwords.verify_password(current_password, admin['password_hash']):
            self.audit.log_event('admin_password_change_failed', {}, actor_id=admin_id)
            raise InvalidCredentials('Current password is incorrect')
        if new_password == current_password:
            raise WeakPassword('New password must be different from the current password')
        problems = self.passwords.policy_violations(new_password)
        if problems:
            raise WeakPassword(problems[0])

        self.store.update('admins', 'id', admin_id, {
            'password_hash': self.passwords.hash_password(new_password),
            'is_default_password': False,
            'updated_at': self.clock(),
        })
        self.audit.log_event('admin_password_changed', {}, actor_id=admin_id)
        return {'message': 'Password changed successfully'}
