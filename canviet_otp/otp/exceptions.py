"""
OTP Exceptions
==============
Exception classes carrying a machine-readable reason.

Expected verification outcomes are returned as ``VerifyResult`` values and
never raised. Issuance failures the caller must branch on are raised as
``OTPError`` subclasses; store connectivity errors propagate unchanged.
"""

from typing import Optional

from .models import OTPReason


class ConfigurationError(Exception):
    """Raised when settings are unusable (e.g. missing pepper in production)."""
    pass


class OTPError(Exception):
    """Base exception for OTP operations."""

    reason: OTPReason

    def __init__(self, message: str, reason: Optional[OTPReason] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    def to_dict(self) -> dict:
        return {"ok": False, "reason": self.reason.value, "message": str(self)}


class InvalidSubjectError(OTPError):
    """Subject failed the channel's format or lookup check."""
    reason = OTPReason.INVALID_SUBJECT


class OTPAlreadyIssuedError(OTPError):
    """An unexpired code is already outstanding for the subject."""
    reason = OTPReason.ALREADY_ISSUED

    def __init__(self, message: str = "OTP already issued; please wait before requesting another"):
        super().__init__(message)


class DeliveryFailedError(OTPError):
    """The code could not be delivered and the issuance was rolled back."""
    reason = OTPReason.DELIVERY_FAILED

    def __init__(self, message: str, provider_error: Optional[str] = None):
        super().__init__(message)
        self.provider_error = provider_error
