"""
Mock Message Channel

Logs the message instead of relying on a browser. Can simulate latency
and failures to exercise the checkout error path.
"""

import asyncio
import logging
import random
from collections import deque

from cardapio.services.messaging.base import BaseMessageChannel, MessageResult

logger = logging.getLogger(__name__)


class MockMessageChannel(BaseMessageChannel):
    """Mock message channel for development and tests."""

    def __init__(self, failure_rate: float = 0.0, latency: float = 0.0, history: int = 100):
        self.failure_rate = failure_rate
        self.latency = latency
        self.sent: deque[tuple[str, str]] = deque(maxlen=history)
        logger.info(f"MockMessageChannel initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def open_link(self, url: str, message: str) -> MessageResult:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

        if self._should_fail():
            logger.warning("Mock WhatsApp link failed (simulated)")
            return MessageResult(
                success=False,
                error_message="Simulated messaging failure",
                provider="mock",
            )

        self.sent.append((url, message))
        logger.info(f"Mock WhatsApp message:\n{message}")
        return MessageResult(success=True, url=url, provider="mock")
