"""
Password and one-time code hashing utilities.

WHY: This module keeps every secret-handling primitive in one place:
1. Password hashing with bcrypt for provisioned client logins
2. Cryptographically random numeric OTP codes
3. Keyed, one-way OTP hashes bound to a (quotation, user) pair
4. Constant-time hash comparison
"""

import hashlib
import hmac
import re
import secrets
import string
from typing import Optional

from passlib.context import CryptContext

from client_portal.core.config import settings


# Password hashing context
# bcrypt with the default cost factor (12 rounds).
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# Password Hashing
# ============================================================================


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password (60 characters, includes salt and cost factor)
    """
    return pwd_context.hash(password)


def generate_temporary_password(length: int = 16) -> str:
    """
    Generate a random temporary password for a provisioned account.

    The result always mixes lower case, upper case and digits so that it
    satisfies the usual password policy on first login.

    Args:
        length: Total password length (minimum 8)

    Returns:
        Random password string
    """
    length = max(length, 8)
    alphabet = string.ascii_letters + string.digits
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.islower() for c in candidate)
            and any(c.isupper() for c in candidate)
            and any(c.isdigit() for c in candidate)
        ):
            return candidate


# ============================================================================
# One-Time Codes
# ============================================================================


def generate_otp_code(length: Optional[int] = None) -> str:
    """
    Generate a numeric one-time code.

    WHAT: Uniformly random code of exactly `length` ASCII digits, leading
    zeros included (e.g. "004217").

    WHY: secrets.randbelow draws from the OS CSPRNG, so codes are not
    predictable from earlier codes.

    Args:
        length: Number of digits (defaults to QUOTATION_OTP_LENGTH)

    Returns:
        Zero-padded digit string
    """
    length = length or settings.QUOTATION_OTP_LENGTH
    return str(secrets.randbelow(10 ** length)).zfill(length)


def is_well_formed_otp(code: Optional[str], length: Optional[int] = None) -> bool:
    """
    Check that a submitted code is exactly `length` ASCII digits.

    str.isdigit() accepts non-ASCII digits such as "١", so the check is a
    regex over [0-9].

    Args:
        code: Submitted code
        length: Required number of digits (defaults to QUOTATION_OTP_LENGTH)

    Returns:
        True if the code has the required format
    """
    length = length or settings.QUOTATION_OTP_LENGTH
    if not isinstance(code, str):
        return False
    return re.fullmatch(rf"[0-9]{{{length}}}", code) is not None


def hash_otp_code(
    code: str,
    quotation_id: int,
    user_id: int,
    secret: Optional[str] = None,
) -> str:
    """
    Compute the stored hash of a one-time code.

    WHAT: HMAC-SHA256 over "<quotation_id>:<user_id>:<code>", hex encoded.

    WHY: Binding the pair into the message means a hash copied from one
    (quotation, user) lineage never matches in another, and the secret key
    keeps the 10^6 code space from being enumerated offline.

    Args:
        code: Plaintext code
        quotation_id: Quotation the code was issued for
        user_id: User the code was issued to
        secret: HMAC key (defaults to OTP_HASH_SECRET)

    Returns:
        64-character hex digest
    """
    key = (secret or settings.OTP_HASH_SECRET).encode()
    message = f"{quotation_id}:{user_id}:{code}".encode()
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def verify_otp_code(
    code: str,
    quotation_id: int,
    user_id: int,
    code_hash: str,
    secret: Optional[str] = None,
) -> bool:
    """
    Compare a submitted code against a stored hash in constant time.

    Args:
        code: Submitted plaintext code
        quotation_id: Quotation the code is being used for
        user_id: User submitting the code
        code_hash: Stored hash from quotation_otps.code_hash
        secret: HMAC key (defaults to OTP_HASH_SECRET)

    Returns:
        True if the code matches
    """
    if not code_hash:
        return False
    expected = hash_otp_code(code, quotation_id, user_id, secret=secret)
    return hmac.compare_digest(expected, code_hash)
