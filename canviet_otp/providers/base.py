"""
Code Delivery Providers
=======================
Base class for channels that deliver plaintext OTP codes out of band.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SendResult:
    """Result of a code delivery."""
    success: bool
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None
    skipped: bool = False  # no provider configured


class CodeSender(ABC):
    """
    Abstract base class for code delivery providers.

    Provider failures are reported through ``SendResult`` rather than raised.
    """

    name: str = "base"

    def __init__(self):
        self._is_initialized = False

    async def initialize(self) -> None:
        """Initialize the sender (e.g., create HTTP clients)."""
        self._is_initialized = True
        logger.info("Code sender initialized", provider=self.name)

    async def close(self) -> None:
        """Clean up resources (e.g., close HTTP clients)."""
        self._is_initialized = False
        logger.info("Code sender closed", provider=self.name)

    @abstractmethod
    async def send_code(self, to: str, code: str, ttl: int) -> SendResult:
        """
        Deliver a code.

        Args:
            to: Destination (phone number or email address)
            code: Plaintext code
            ttl: Seconds until the code expires

        Returns:
            SendResult with delivery status
        """
        ...

    async def __aenter__(self) -> "CodeSender":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
