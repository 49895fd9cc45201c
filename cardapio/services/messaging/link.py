"""
Link Message Channel

Production channel: the server cannot open a browser tab, so the link is
returned to the client, which opens it in a new browsing context.
"""

import logging

from cardapio.services.messaging.base import BaseMessageChannel, MessageResult

logger = logging.getLogger(__name__)


class LinkMessageChannel(BaseMessageChannel):
    """Hands the WhatsApp link back to the caller."""

    @property
    def provider_name(self) -> str:
        return "link"

    async def open_link(self, url: str, message: str) -> MessageResult:
        if not url.startswith("https://"):
            return MessageResult(
                success=False,
                error_message="Link de WhatsApp inválido",
                provider="link",
            )
        logger.info(f"WhatsApp link ready ({len(message)} chars)")
        return MessageResult(success=True, url=url, provider="link")
