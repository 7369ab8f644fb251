"""
SMTP Email Sender
=================
Delivers verification codes by email over SMTP.

smtplib is blocking, so each send runs in the default thread pool executor.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr, make_msgid, parseaddr

import structlog

from canviet_otp.config import SmtpSettings
from canviet_otp.phone_utils import mask_destination

from .base import CodeSender, SendResult

logger = structlog.get_logger(__name__)

EMAIL_SUBJECT = "Your CanViet Exchange verification code"


def _expiry_text(ttl: int) -> str:
    if ttl >= 60 and ttl % 60 == 0:
        minutes = ttl // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{ttl} seconds"


def build_otp_email(sender: str, to: str, code: str, ttl: int) -> EmailMessage:
    """Build the plain-text + HTML verification message."""
    expires = _expiry_text(ttl)
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = EMAIL_SUBJECT
    message["Message-ID"] = make_msgid(domain=parseaddr(sender)[1].rpartition("@")[2] or None)
    message.set_content(
        f"Your verification code is: {code}\n\n"
        f"This code expires in {expires}. If you did not request it, ignore this email."
    )
    message.add_alternative(
        "<html><body>"
        "<p>Your verification code is:</p>"
        f"<p style=\"font-size:24px;font-weight:bold;letter-spacing:4px\">{code}</p>"
        f"<p>This code expires in {expires}. If you did not request it, ignore this email.</p>"
        "</body></html>",
        subtype="html",
    )
    return message


class SmtpEmailSender(CodeSender):
    """Sends codes with implicit TLS on port 465 and STARTTLS otherwise."""

    name = "smtp"

    def __init__(self, settings: SmtpSettings):
        super().__init__()
        self.settings = settings

    def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        context = ssl.create_default_context()
        if s.use_ssl:
            with smtplib.SMTP_SSL(s.host, s.port, timeout=s.timeout, context=context) as smtp:
                smtp.login(s.username, s.password)
                smtp.send_message(message)
        else:
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as smtp:
                smtp.starttls(context=context)
                smtp.login(s.username, s.password)
                smtp.send_message(message)

    async def send_code(self, to: str, code: str, ttl: int) -> SendResult:
        sender = formataddr((self.settings.from_name, self.settings.sender))
        message = build_otp_email(sender, to, code, ttl)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email send failed",
                to=mask_destination(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult(success=False, error_code=type(e).__name__, error_message=str(e))

        logger.info("Email code sent", to=mask_destination(to))
        return SendResult(success=True, provider_message_id=message["Message-ID"])
