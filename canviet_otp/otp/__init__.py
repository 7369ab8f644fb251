"""
OTP Issuance and Verification
=============================
Hashed, attempt-limited one-time passcodes over a shared key-value store.
"""

from .models import DeliveryPolicy, IssueResult, OTPChannel, OTPReason, OTPRecord, VerifyResult
from .exceptions import (
    ConfigurationError,
    DeliveryFailedError,
    InvalidSubjectError,
    OTPAlreadyIssuedError,
    OTPError,
)
from .hashing import constant_time_equal, generate_otp, generate_salt, hash_otp, verify_otp_hash
from .validators import PhoneSubjectValidator, SubjectValidator
from .engine import OTPEngine, record_keys
from .service import OTPService

__all__ = [
    # Models
    "DeliveryPolicy",
    "IssueResult",
    "OTPChannel",
    "OTPReason",
    "OTPRecord",
    "VerifyResult",
    # Exceptions
    "ConfigurationError",
    "DeliveryFailedError",
    "InvalidSubjectError",
    "OTPAlreadyIssuedError",
    "OTPError",
    # Hashing
    "constant_time_equal",
    "generate_otp",
    "generate_salt",
    "hash_otp",
    "verify_otp_hash",
    # Validators
    "PhoneSubjectValidator",
    "SubjectValidator",
    # Engine
    "OTPEngine",
    "OTPService",
    "record_keys",
]
