"""
Phone Utilities
===============
Phone number validation, normalization and masking for OTP subjects.
"""

import re
from typing import Iterable

# National significant number lengths per calling code
NATIONAL_NUMBER_LENGTHS = {
    "1": 10,  # NANP: Canada, US
    "84": 9,  # Vietnam
}


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    pattern = r'^\+[1-9]\d{1,14}$'
    return bool(re.match(pattern, phone or ""))


def normalize_phone(phone: str, default_country: str = "1") -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        phone: Raw phone number
        default_country: Default country code (without +)

    Returns:
        E.164 formatted number
    """
    phone = (phone or "").strip()
    digits = re.sub(r'\D', '', phone)

    if phone.startswith('+'):
        return f"+{digits}"

    # NANP without country code
    if default_country == "1" and len(digits) == 10:
        return f"+1{digits}"

    if len(digits) == 11 and digits.startswith('1'):
        return f"+{digits}"

    return f"+{digits}"


def has_allowed_calling_code(phone: str, calling_codes: Iterable[str]) -> bool:
    """
    Check an E.164 number against allowed calling codes and national length.

    Calling codes without a known national length only require valid E.164.
    """
    if not validate_e164(phone):
        return False
    digits = phone[1:]
    for code in calling_codes:
        if not digits.startswith(code):
            continue
        expected = NATIONAL_NUMBER_LENGTHS.get(code)
        if expected is None or len(digits) - len(code) == expected:
            return True
    return False


def mask_destination(value: str) -> str:
    """Mask an email address or phone number for logs and responses."""
    if not value:
        return ""
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:2]}***{value[-2:]}"
