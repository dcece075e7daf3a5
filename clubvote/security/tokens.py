# clubvote/security/tokens.py

import secrets
import string

import pyotp
from pyotp.utils import strings_equal

# Opaque session tokens, one-time codes and record ids

_ID_ALPHABET = string.ascii_letters + string.digits


def generate_session_token(nbytes=32):
    """Random hex bearer token; carries no data, validity lives in the store."""
    return secrets.token_hex(nbytes)


def generate_otp(length=6):
    """Numeric one-time code of exactly `length` digits.

    Every code is derived from a fresh random base32 secret, so codes for
    different contacts (or a resend to the same contact) are unrelated.
    """
    if not 4 <= length <= 10:
        raise ValueError("OTP length must be between 4 and 10 digits")
    hotp = pyotp.HOTP(pyotp.random_base32(), digits=length)
    return hotp.at(0)


def codes_match(expected, submitted):
    """Constant-time comparison of a stored code with user input."""
    if not isinstance(submitted, str):
        submitted = str(submitted)
    return strings_equal(expected, submitted.strip())


def generate_random_code(length=8):
    return ''.join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_record_id(prefix, now, length=8):
    """Ids such as vote_1718000000000_a8Xk2PqZ."""
    return f"{prefix}_{now}_{generate_random_code(length)}"
