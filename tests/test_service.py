"""
Tests for OTPService and Health Checks
======================================
"""

import pytest


class TestOTPService:
    """Tests for service wiring."""

    @pytest.mark.asyncio
    async def test_channel_policies(self, store, settings, recording_sender):
        from canviet_otp.otp import DeliveryPolicy, OTPChannel, OTPService, PhoneSubjectValidator

        service = OTPService(store, settings, email_sender=recording_sender(), sms_sender=recording_sender())

        assert service.email.channel == OTPChannel.EMAIL
        assert service.email.policy == DeliveryPolicy.BEST_EFFORT
        assert service.phone.channel == OTPChannel.PHONE
        assert service.phone.policy == DeliveryPolicy.REQUIRED
        assert isinstance(service.phone.validator, PhoneSubjectValidator)

    @pytest.mark.asyncio
    async def test_channel_ttls(self, store, recording_sender):
        from canviet_otp.config import OTPSettings
        from canviet_otp.otp import OTPService

        settings = OTPSettings(pepper="p", ttl_seconds=300, phone_ttl_seconds=60)
        service = OTPService(store, settings, email_sender=recording_sender(), sms_sender=recording_sender())

        email = await service.email.issue("user@example.com", "email-verify")
        phone = await service.phone.issue("+16045550123", "phone-login")

        assert email.ttl == 300
        assert phone.ttl == 60

    @pytest.mark.asyncio
    async def test_sms_failure_is_fatal_email_failure_is_not(self, store, settings, recording_sender):
        from canviet_otp.otp import DeliveryFailedError, OTPService

        service = OTPService(
            store,
            settings,
            email_sender=recording_sender(success=False),
            sms_sender=recording_sender(success=False),
        )

        email = await service.email.issue("user@example.com", "email-verify")
        assert email.delivered is False

        with pytest.raises(DeliveryFailedError):
            await service.phone.issue("+16045550123", "phone-login")
        assert await store.get("otp:phone-login:+16045550123") is None

    @pytest.mark.asyncio
    async def test_lifecycle(self, store, settings, recording_sender):
        from canviet_otp.otp import OTPService

        email_sender = recording_sender()
        sms_sender = recording_sender()

        async with OTPService(store, settings, email_sender=email_sender, sms_sender=sms_sender):
            assert email_sender.initialized and sms_sender.initialized

        assert email_sender.closed and sms_sender.closed

    @pytest.mark.asyncio
    async def test_health(self, store, settings):
        from canviet_otp.otp import OTPService

        health = await OTPService(store, settings).health()

        assert health.status == "connected"
        assert health.latency_ms is not None

    def test_from_settings_without_providers(self):
        from canviet_otp.config import OTPSettings
        from canviet_otp.otp import OTPService
        from canviet_otp.providers import NoOpSender
        from canviet_otp.store import RedisStore

        service = OTPService.from_settings(OTPSettings(pepper="p"))

        assert isinstance(service.store, RedisStore)
        assert isinstance(service.email_sender, NoOpSender)
        assert isinstance(service.sms_sender, NoOpSender)
        assert service.phone_lookup is None

    def test_from_settings_with_twilio(self):
        from canviet_otp.config import OTPSettings, TwilioSettings
        from canviet_otp.otp import OTPService
        from canviet_otp.providers import TwilioLookup, TwilioSmsSender

        settings = OTPSettings(
            pepper="p",
            twilio=TwilioSettings(account_sid="AC1", auth_token="token", phone_number="+16045550000"),
        )
        service = OTPService.from_settings(settings)

        assert isinstance(service.sms_sender, TwilioSmsSender)
        assert isinstance(service.phone_lookup, TwilioLookup)
        assert service.phone.validator.lookup is service.phone_lookup


class UnreachableStore:
    name = "unreachable"

    def __init__(self, error=None):
        self.error = error

    async def ping(self):
        if self.error:
            raise self.error
        return False


class TestHealth:
    """Tests for store health checks."""

    @pytest.mark.asyncio
    async def test_connected(self, store):
        from canviet_otp.health import check_store

        health = await check_store(store)

        assert health.status == "connected"
        assert health.error is None

    @pytest.mark.asyncio
    async def test_disconnected(self):
        from canviet_otp.health import check_store

        health = await check_store(UnreachableStore())

        assert health.status == "disconnected"

    @pytest.mark.asyncio
    async def test_error(self):
        from canviet_otp.health import check_store

        health = await check_store(UnreachableStore(error=OSError("connection refused")))

        assert health.status == "error"
        assert health.error == "connection refused"
        assert health.model_dump()["status"] == "error"
