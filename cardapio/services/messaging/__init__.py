"""
Message Channel Factory

Returns Mock or Link message channel based on ENV_MODE.
"""

import logging
from functools import lru_cache

from cardapio.core.config import get_settings
from cardapio.services.messaging.base import BaseMessageChannel, MessageResult
from cardapio.services.messaging.link import LinkMessageChannel
from cardapio.services.messaging.mock import MockMessageChannel

logger = logging.getLogger(__name__)


@lru_cache()
def get_message_channel() -> BaseMessageChannel:
    """Get the configured message channel."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Message Channel: Using MockMessageChannel (development mode)")
        return MockMessageChannel(failure_rate=settings.mock_failure_rate)

    logger.info(f"Message Channel: Using LinkMessageChannel ({settings.env_mode.value} mode)")
    return LinkMessageChannel()


def reset_message_channel() -> None:
    """Clear the cached channel instance."""
    get_message_channel.cache_clear()


__all__ = [
    "get_message_channel",
    "reset_message_channel",
    "BaseMessageChannel",
    "MessageResult",
    "LinkMessageChannel",
    "MockMessageChannel",
]
