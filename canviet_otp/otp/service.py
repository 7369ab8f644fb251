"""
OTP Service
===========
Composition root wiring the store, senders and both channel engines.

Construct one instance at process start and pass it to request handlers.
"""

from typing import Optional

import structlog

from canviet_otp.config import OTPSettings
from canviet_otp.health import ComponentHealth, check_store
from canviet_otp.providers import CodeSender, TwilioLookup, build_email_sender, build_sms_sender
from canviet_otp.store import KeyValueStore, RedisStore

from .engine import OTPEngine
from .models import DeliveryPolicy, OTPChannel
from .validators import PhoneSubjectValidator, SubjectValidator

logger = structlog.get_logger(__name__)


class OTPService:
    """
    Email and phone OTP engines over one store.

    - ``email``: best-effort delivery, a failed email keeps the code valid
    - ``phone``: required delivery, a failed SMS rolls the issuance back
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: OTPSettings,
        email_sender: Optional[CodeSender] = None,
        sms_sender: Optional[CodeSender] = None,
        phone_lookup: Optional[TwilioLookup] = None,
    ):
        self.store = store
        self.settings = settings
        self.email_sender = email_sender
        self.sms_sender = sms_sender
        self.phone_lookup = phone_lookup

        self.email = OTPEngine(
            store,
            settings,
            channel=OTPChannel.EMAIL,
            sender=email_sender,
            policy=DeliveryPolicy.BEST_EFFORT,
            validator=SubjectValidator(),
            ttl=settings.ttl_seconds,
        )
        self.phone = OTPEngine(
            store,
            settings,
            channel=OTPChannel.PHONE,
            sender=sms_sender,
            policy=DeliveryPolicy.REQUIRED,
            validator=PhoneSubjectValidator(settings.phone_calling_codes, lookup=phone_lookup),
            ttl=settings.phone_ttl_seconds,
        )

    @classmethod
    def from_settings(cls, settings: Optional[OTPSettings] = None) -> "OTPService":
        """
        Build the service with a Redis store and configured providers.

        Providers without credentials fall back to the no-op sender; the
        lookup is only enabled alongside Twilio credentials.
        """
        settings = settings or OTPSettings.from_env()
        store = RedisStore.from_url(settings.redis.url)
        lookup = None
        if settings.twilio.is_configured and settings.twilio.enable_lookup:
            lookup = TwilioLookup(settings.twilio)
        return cls(
            store,
            settings,
            email_sender=build_email_sender(settings.smtp),
            sms_sender=build_sms_sender(settings.twilio),
            phone_lookup=lookup,
        )

    async def initialize(self) -> None:
        for sender in (self.email_sender, self.sms_sender):
            if sender is not None:
                await sender.initialize()
        if self.phone_lookup is not None:
            await self.phone_lookup.initialize()
        logger.info(
            "OTP service ready",
            store=self.store.name,
            email_provider=getattr(self.email_sender, "name", None),
            sms_provider=getattr(self.sms_sender, "name", None),
            dev_mode=self.settings.dev_mode,
        )

    async def close(self) -> None:
        for sender in (self.email_sender, self.sms_sender):
            if sender is not None:
                await sender.close()
        if self.phone_lookup is not None:
            await self.phone_lookup.close()
        await self.store.close()

    async def health(self) -> ComponentHealth:
        return await check_store(self.store)

    async def __aenter__(self) -> "OTPService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
