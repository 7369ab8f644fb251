"""
OTP Hashing Utilities
=====================
Code generation, salted digests and constant-time comparison for OTP codes.
"""

import base64
import hashlib
import hmac
import secrets

MIN_CODE_LENGTH = 1
MAX_CODE_LENGTH = 12

SALT_BYTES = 16


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric OTP uniformly distributed over ``[0, 10**length)``.

    Leading zeros are kept, so every ``length``-digit string is equally likely.

    Args:
        length: Number of digits

    Returns:
        Zero-padded OTP string

    Raises:
        ValueError: If length is outside the supported range
    """
    if not isinstance(length, int) or isinstance(length, bool):
        raise ValueError("OTP length must be an integer")
    if length < MIN_CODE_LENGTH or length > MAX_CODE_LENGTH:
        raise ValueError(
            f"OTP length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}"
        )
    return str(secrets.randbelow(10 ** length)).zfill(length)


def generate_salt() -> str:
    """Generate a per-issuance salt as URL-safe text."""
    return _b64url(secrets.token_bytes(SALT_BYTES))


def hash_otp(otp: str, salt: str, pepper: str) -> str:
    """
    Digest an OTP with its salt, keyed by the server-side pepper.

    Args:
        otp: Plain OTP
        salt: Per-record salt
        pepper: Server secret, never stored with the record

    Returns:
        URL-safe HMAC-SHA256 digest
    """
    mac = hmac.new(pepper.encode(), f"{salt}:{otp}".encode(), hashlib.sha256)
    return _b64url(mac.digest())


def constant_time_equal(a: str, b: str) -> bool:
    """
    Compare two digests without an early exit on the first difference.

    Only a length mismatch returns early; digest length is not secret.
    """
    left = a.encode()
    right = b.encode()
    if len(left) != len(right):
        return False
    return hmac.compare_digest(left, right)


def verify_otp_hash(otp: str, salt: str, stored_hash: str, pepper: str) -> bool:
    """
    Verify an OTP against its stored digest.

    Args:
        otp: User-provided OTP
        salt: Salt stored with the record
        stored_hash: Digest stored with the record
        pepper: Server secret

    Returns:
        True if OTP matches
    """
    return constant_time_equal(hash_otp(otp, salt, pepper), stored_hash)
