# clubvote/encryption/password_hashing.py

import re
import secrets
import string
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from clubvote.errors import WeakPassword

# Admin password storage using Argon2id. Members never have passwords.

MIN_LENGTH = 12
SYMBOLS = '!@#$%^&*(),.?":{}|<>'

_CHARACTER_CLASSES = (
    ('upper case letters', re.compile(r'[A-Z]')),
    ('lower case letters', re.compile(r'[a-z]')),
    ('digits', re.compile(r'\d')),
    ('symbols', re.compile('[' + re.escape(SYMBOLS) + ']')),
)


class PasswordHashingService:
    def __init__(self, time_cost=3, memory_cost=65536, parallelism=4):
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )
        self._dummy_hash = None

    @classmethod
    def from_config(cls, config):
        return cls(
            time_cost=config['PASSWORD_HASH_TIME_COST'],
            memory_cost=config['PASSWORD_HASH_MEMORY_COST'],
        )

    def hash_password(self, password: str, enforce_policy: bool = True) -> str:
        """Hash an admin password.

        `enforce_policy=False` is for bootstrap passwords set from the CLI,
        which the admin is forced to replace on first login.
        """
        if enforce_policy:
            problems = self.policy_violations(password)
            if problems:
                raise WeakPassword(problems[0])
        try:
            return self.ph.hash(password)
        except HashingError as e:
            raise ValueError(f"Password hashing failed: {str(e)}")

    def verify_password(self, password: str, hash_value: str) -> bool:
        # argon2 compares digests in constant time; VerifyMismatchError is a VerificationError
        try:
            return self.ph.verify(hash_value, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hash_value: str) -> bool:
        return self.ph.check_needs_rehash(hash_value)

    @property
    def dummy_hash(self):
        """Hash of a random secret, checked when no admin matches the username
        so unknown and known usernames cost the same argon2 work."""
        if self._dummy_hash is None:
            self._dummy_hash = self.ph.hash(secrets.token_hex(16))
        return self._dummy_hash

    def verify_or_burn(self, password, hash_value):
        """verify_password against `hash_value`, or against dummy_hash when it is None."""
        if hash_value is None:
            self.verify_password(password, self.dummy_hash)
            return False
        return self.verify_password(password, hash_value)

    @staticmethod
    def policy_violations(password):
        """Human-readable reasons `password` is rejected, empty when it is acceptable.

        At least MIN_LENGTH characters drawn from three of the four classes.
        """
        if not isinstance(password, str):
            return ['Password must be a string']
        problems = []
        if len(password) < MIN_LENGTH:
            problems.append(f'Password must be at least {MIN_LENGTH} characters long')
        missing = [name for name, pattern in _CHARACTER_CLASSES if not pattern.search(password)]
        if len(missing) > 1:
            problems.append('Password must mix at least three of: ' +
                            ', '.join(name for name, _ in _CHARACTER_CLASSES))
        return problems

    def is_strong_password(self, password) -> bool:
        return not self.policy_violations(password)

    def generate_secure_password(self, length=16) -> str:
        """Random password that satisfies the policy, used for CLI-created admins."""
        length = max(length, MIN_LENGTH)
        charset = string.ascii_letters + string.digits + SYMBOLS
        while True:
            password = ''.join(secrets.choice(charset) for _ in range(length))
            if self.is_strong_password(password):
                return password
