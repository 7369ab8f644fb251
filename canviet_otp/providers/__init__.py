"""
Code Delivery Providers
=======================
SMS, email and no-op senders, selected from configuration presence.
"""

import structlog

from canviet_otp.config import SmtpSettings, TwilioSettings

from .base import CodeSender, SendResult
from .email import SmtpEmailSender
from .noop import NoOpSender
from .twilio import LookupResult, TwilioLookup, TwilioSmsSender

logger = structlog.get_logger(__name__)


def build_sms_sender(settings: TwilioSettings) -> CodeSender:
    """Twilio when credentials are present, otherwise the no-op sender."""
    if settings.is_configured:
        return TwilioSmsSender(settings)
    logger.warning("Twilio not configured, SMS codes will not be delivered")
    return NoOpSender(channel="phone")


def build_email_sender(settings: SmtpSettings) -> CodeSender:
    """SMTP when credentials are present, otherwise the no-op sender."""
    if settings.is_configured:
        return SmtpEmailSender(settings)
    logger.warning("SMTP not configured, email codes will not be delivered")
    return NoOpSender(channel="email")


__all__ = [
    "CodeSender",
    "SendResult",
    "SmtpEmailSender",
    "NoOpSender",
    "TwilioSmsSender",
    "TwilioLookup",
    "LookupResult",
    "build_sms_sender",
    "build_email_sender",
]
