"""
Shared fixtures for canviet-otp tests.
"""

from typing import List, Optional, Tuple

import pytest

from canviet_otp.config import OTPSettings
from canviet_otp.providers.base import CodeSender, SendResult
from canviet_otp.store import InMemoryStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSender(CodeSender):
    """Sender that records deliveries and returns a scripted outcome."""

    name = "recording"

    def __init__(self, success: bool = True, raises: Optional[Exception] = None):
        super().__init__()
        self.success = success
        self.raises = raises
        self.sent: List[Tuple[str, str, int]] = []
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True
        await super().initialize()

    async def close(self) -> None:
        self.closed = True
        await super().close()

    async def send_code(self, to: str, code: str, ttl: int) -> SendResult:
        self.sent.append((to, code, ttl))
        if self.raises is not None:
            raise self.raises
        if self.success:
            return SendResult(success=True, provider_message_id=f"msg-{len(self.sent)}")
        return SendResult(success=False, error_code="30003", error_message="provider down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def settings():
    return OTPSettings(
        pepper="test-pepper",
        ttl_seconds=60,
        phone_ttl_seconds=60,
        max_attempts=3,
        code_length=6,
    )


@pytest.fixture
def email_engine(store, settings):
    from canviet_otp.otp import OTPEngine

    return OTPEngine(store, settings)


@pytest.fixture
def recording_sender():
    """The RecordingSender class, for tests that script delivery outcomes."""
    return RecordingSender
