# clubvote/security/input_validator.py

import re
import html
import bleach

from clubvote.errors import InputError

# Request-field validation for the auth, voting and admin endpoints.
# Every check raises InputError before any service is called.


class InputValidator:
    def __init__(self, otp_length=6):
        self.otp_length = otp_length
        self.patterns = {
            'phone_number': re.compile(r'^\+?[0-9]{10,15}$'),
            'otp': re.compile(r'^[0-9]{%d}$' % otp_length),
            'username': re.compile(r'^[A-Za-z0-9_.-]{3,80}$'),
            'record_id': re.compile(r'^[A-Za-z0-9_.:-]{1,64}$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE),
        }

    def sanitize_string(self, input_str, max_length=255):
        """Strip markup from free text such as names before it is stored."""
        if not isinstance(input_str, str):
            raise InputError("Input must be a string")
        if len(input_str) > max_length:
            input_str = input_str[:max_length]

        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)
        sanitized = bleach.clean(sanitized, tags=[], attributes={}, strip=True)
        return html.unescape(sanitized).strip()

    def validate_phone_number(self, phone_number):
        if not isinstance(phone_number, str) or not phone_number.strip():
            raise InputError('Phone number is required')
        phone_number = re.sub(r'[\s()-]', '', phone_number)
        if not self.patterns['phone_number'].match(phone_number):
            raise InputError('Invalid phone number format')
        return phone_number

    def validate_otp(self, code):
        if isinstance(code, int) and not isinstance(code, bool):
            code = str(code).zfill(self.otp_length)
        if not isinstance(code, str) or not code.strip():
            raise InputError('Verification code is required')
        code = code.strip()
        if not self.patterns['otp'].match(code):
            raise InputError(f'Verification code must be {self.otp_length} digits')
        return code

    def validate_credentials(self, username, password):
        if not username or not password:
            raise InputError('Username and password are required')
        if not isinstance(username, str) or not isinstance(password, str):
            raise InputError('Username and password must be strings')
        username = username.strip()
        if not self.patterns['username'].match(username):
            raise InputError('Invalid username format')
        return username, password

    def _record_id(self, value, label):
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not self.patterns['record_id'].match(value):
            raise InputError(f'Invalid {label}: {value!r}')
        return value

    def validate_vote_choices(self, votes):
        """Normalise {positionId: candidateId} to a dict of strings."""
        if not isinstance(votes, dict) or not votes:
            raise InputError('No votes submitted')
        choices = {}
        for position_id, candidate_id in votes.items():
            position_id = self._record_id(position_id, 'position ID')
            choices[position_id] = self._record_id(candidate_id, 'candidate ID')
        return choices

    def validate_duration(self, duration):
        """Optional election duration in milliseconds; None keeps the default."""
        if duration is None or duration == '':
            return None
        if isinstance(duration, bool):
            raise InputError('Duration must be a positive number (milliseconds)')
        try:
            parsed = int(duration)
        except (TypeError, ValueError):
            raise InputError('Duration must be a positive number (milliseconds)')
        if parsed < 1:
            raise InputError('Duration must be a positive number (milliseconds)')
        return parsed
