"""
No-Op Sender
============
Used when no delivery provider is configured.
"""

import structlog

from canviet_otp.phone_utils import mask_destination

from .base import CodeSender, SendResult

logger = structlog.get_logger(__name__)


class NoOpSender(CodeSender):
    """Logs the delivery (without the code) and reports success."""

    name = "noop"

    def __init__(self, channel: str = "unknown"):
        super().__init__()
        self.channel = channel

    async def send_code(self, to: str, code: str, ttl: int) -> SendResult:
        logger.warning(
            "Code delivery skipped, no provider configured",
            channel=self.channel,
            to=mask_destination(to),
            expires_in=ttl,
        )
        return SendResult(success=True, skipped=True)
