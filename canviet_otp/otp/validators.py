"""
Subject Validators
==================
Per-channel precondition checks run before any store access.
"""

from typing import Iterable

import structlog

from canviet_otp.phone_utils import has_allowed_calling_code, mask_destination, normalize_phone

from .exceptions import InvalidSubjectError

logger = structlog.get_logger(__name__)


class SubjectValidator:
    """Accepts any non-empty subject."""

    def normalize(self, subject: str) -> str:
        """
        Synchronous format check.

        Raises:
            InvalidSubjectError: If the subject is empty
        """
        subject = (subject or "").strip()
        if not subject:
            raise InvalidSubjectError("Subject required")
        return subject

    async def validate(self, subject: str) -> str:
        """Full check before issuance; may consult remote services."""
        return self.normalize(subject)


class PhoneSubjectValidator(SubjectValidator):
    """
    E.164 numbers with an allowed calling code and national length.

    Ten-digit NANP input without a country code is normalized to ``+1``.

    An optional lookup runs only on issuance, never on verification.
    """

    def __init__(self, calling_codes: Iterable[str] = ("1",), lookup=None):
        self.calling_codes = tuple(calling_codes)
        self.lookup = lookup

    def normalize(self, subject: str) -> str:
        phone = normalize_phone(super().normalize(subject))
        if not has_allowed_calling_code(phone, self.calling_codes):
            raise InvalidSubjectError("Phone number format not supported")
        return phone

    async def validate(self, subject: str) -> str:
        phone = self.normalize(subject)
        if self.lookup is None:
            return phone
        result = await self.lookup.check(phone)
        if not result.valid:
            logger.warning(
                "Phone rejected by lookup",
                phone=mask_destination(phone),
                reason=result.reason,
            )
            raise InvalidSubjectError(
                f"Phone number rejected: {result.reason or 'invalid_number'}"
            )
        return phone
