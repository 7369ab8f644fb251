"""
CanViet OTP Core
================
One-time passcode issuance and verification for email and phone channels.
"""

__version__ = "1.0.0"

from canviet_otp.config import OTPSettings, RedisSettings, SmtpSettings, TwilioSettings

from canviet_otp.otp import (
    ConfigurationError,
    DeliveryFailedError,
    DeliveryPolicy,
    InvalidSubjectError,
    IssueResult,
    OTPAlreadyIssuedError,
    OTPChannel,
    OTPEngine,
    OTPError,
    OTPReason,
    OTPService,
    VerifyResult,
)

from canviet_otp.store import InMemoryStore, KeyValueStore, RedisStore

__all__ = [
    "__version__",
    # Config
    "OTPSettings",
    "RedisSettings",
    "SmtpSettings",
    "TwilioSettings",
    # OTP
    "ConfigurationError",
    "DeliveryFailedError",
    "DeliveryPolicy",
    "InvalidSubjectError",
    "IssueResult",
    "OTPAlreadyIssuedError",
    "OTPChannel",
    "OTPEngine",
    "OTPError",
    "OTPReason",
    "OTPService",
    "VerifyResult",
    # Stores
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
]
