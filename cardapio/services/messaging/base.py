"""
Message Channel Abstract Base Class

A finished checkout is handed to WhatsApp as a click-to-chat link. The
channel decides what "opening" that link means: handing it back to the
browser, or logging it during development.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class MessageResult:
    """Result from handing a message link to the channel."""
    success: bool
    url: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseMessageChannel(ABC):
    """Abstract base class for message channels."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def open_link(self, url: str, message: str) -> MessageResult:
        """
        Open a prepared WhatsApp link.

        Args:
            url: Full wa.me link including the encoded text
            message: Plain message body, for logging

        Returns:
            MessageResult: `url` is what the client must open
        """
        pass

    async def health_check(self) -> bool:
        return True
