"""
Twilio Providers
================
SMS delivery and phone number lookup over the Twilio REST API.
"""

from base64 import b64encode
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from urllib.parse import quote

import httpx
import structlog

from canviet_otp.config import TwilioSettings
from canviet_otp.phone_utils import mask_destination
from canviet_otp.retry import RetryExhausted, retry_with_backoff

from .base import CodeSender, SendResult

logger = structlog.get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
TWILIO_LOOKUP_BASE = "https://lookups.twilio.com/v2/PhoneNumbers"

# request never reached Twilio, safe to resend
UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


def _basic_auth(account_sid: str, auth_token: str) -> str:
    return b64encode(f"{account_sid}:{auth_token}".encode()).decode()


def _error_payload(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {"message": response.text[:200]}
    return data if isinstance(data, dict) else {"message": str(data)}


class TwilioSmsSender(CodeSender):
    """
    Delivers codes by SMS through Twilio.

    Uses the messaging service when configured, otherwise the sender number.
    Connection failures (request never sent) are retried with backoff; any
    later transport error is reported as failed without a resend.
    """

    name = "twilio"

    def __init__(
        self,
        settings: TwilioSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: int = 3,
        base_delay: float = 0.5,
    ):
        super().__init__()
        self.settings = settings
        self.base_url = f"{TWILIO_API_BASE}/Accounts/{settings.account_sid}"
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create HTTP client with auth."""
        auth = _basic_auth(self.settings.account_sid, self.settings.auth_token)
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Basic {auth}"},
            timeout=10.0,
            transport=self._transport,
        )
        await super().initialize()

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        await super().close()

    def build_message(self, code: str) -> str:
        try:
            return self.settings.sms_template.format(code=code)
        except (KeyError, IndexError, ValueError):
            logger.warning("Invalid SMS template, using default")
            return f"Your verification code is: {code}"

    async def send_code(self, to: str, code: str, ttl: int) -> SendResult:
        """Send the code via Twilio Messages API."""
        if not self._client:
            raise RuntimeError("Sender not initialized")

        payload = {"To": to, "Body": self.build_message(code)}
        if self.settings.messaging_service_sid:
            payload["MessagingServiceSid"] = self.settings.messaging_service_sid
        elif self.settings.phone_number:
            payload["From"] = self.settings.phone_number
        else:
            logger.error("Twilio sender has no messaging service or phone number")
            return SendResult(
                success=False,
                error_code="not_configured",
                error_message="Neither TWILIO_MESSAGING_SERVICE_SID nor TWILIO_PHONE_NUMBER is configured",
            )

        try:
            response = await retry_with_backoff(
                self._client.post,
                f"{self.base_url}/Messages.json",
                data=payload,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                retryable_exceptions=UNSENT_ERRORS,
            )
        except RetryExhausted as e:
            logger.error("Twilio send failed", to=mask_destination(to), error=str(e))
            return SendResult(success=False, error_code="transport_error", error_message=str(e))
        except httpx.TransportError as e:
            logger.error(
                "Twilio send outcome unknown, not retrying",
                to=mask_destination(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult(success=False, error_code="transport_error", error_message=str(e))

        if response.status_code == 201:
            data = response.json()
            logger.info("SMS code sent", to=mask_destination(to), sid=data.get("sid"))
            return SendResult(
                success=True,
                provider_message_id=data.get("sid"),
                raw_response=data,
            )

        error_data = _error_payload(response)
        logger.error(
            "Twilio rejected SMS",
            to=mask_destination(to),
            status_code=response.status_code,
            error_code=error_data.get("code"),
        )
        return SendResult(
            success=False,
            error_code=str(error_data.get("code", response.status_code)),
            error_message=error_data.get("message", "Unknown error"),
            raw_response=error_data,
        )


@dataclass
class LookupResult:
    """Outcome of a phone number lookup."""
    valid: bool
    skipped: bool = False
    reason: Optional[str] = None
    country_code: Optional[str] = None
    phone_number: Optional[str] = None
    national_format: Optional[str] = None
    errors: List[str] = field(default_factory=list)


class TwilioLookup:
    """
    Validates numbers with Twilio Lookup v2 before a code is sent.

    Fails open: network or API errors allow the number through so a lookup
    outage never blocks sign-in.
    """

    def __init__(
        self,
        settings: TwilioSettings,
        allowed_countries: Optional[Sequence[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        countries = allowed_countries if allowed_countries is not None else settings.lookup_countries
        self.allowed_countries = {c.upper() for c in countries}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        auth = _basic_auth(self.settings.account_sid, self.settings.auth_token)
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Basic {auth}"},
            timeout=5.0,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check(self, phone: str) -> LookupResult:
        if not self.settings.enable_lookup:
            return LookupResult(valid=True, skipped=True)
        if not self._client:
            logger.warning("Lookup skipped, client not initialized")
            return LookupResult(valid=True, skipped=True)

        try:
            response = await self._client.get(f"{TWILIO_LOOKUP_BASE}/{quote(phone)}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Lookup API error", phone=mask_destination(phone), error=str(e))
            return LookupResult(valid=True, skipped=True)

        if not data.get("valid"):
            errors = list(data.get("validation_errors") or [])
            logger.warning("Lookup validation failed", phone=mask_destination(phone), errors=errors)
            return LookupResult(valid=False, reason="invalid_number", errors=errors)

        country = (data.get("country_code") or "").upper()
        if self.allowed_countries and country not in self.allowed_countries:
            logger.warning(
                "Phone number from unsupported country",
                phone=mask_destination(phone),
                country_code=country,
            )
            return LookupResult(valid=False, reason="unsupported_country", country_code=country)

        return LookupResult(
            valid=True,
            country_code=country,
            phone_number=data.get("phone_number"),
            national_format=data.get("national_format"),
        )
