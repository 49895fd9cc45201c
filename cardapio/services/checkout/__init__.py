"""
Checkout Factory

Builds the checkout submitter selected by CHECKOUT_MODE:
    - persist_then_message → PersistThenMessageSubmitter (default)
    - message_only → MessageOnlySubmitter
"""

import logging
from typing import Optional

from cardapio.core.config import get_settings
from cardapio.services.catalog.base import RestaurantInfo
from cardapio.services.checkout.session import CheckoutSession, DeliveryAddress
from cardapio.services.checkout.submission import (
    BaseSubmitter,
    CancellationToken,
    CheckoutResult,
    MessageOnlySubmitter,
    PersistThenMessageSubmitter,
)
from cardapio.services.checkout.wizard import CheckoutWizard, STEP_LABELS
from cardapio.services.inventory import get_inventory_repository
from cardapio.services.messaging import get_message_channel
from cardapio.services.orders import get_order_repository

logger = logging.getLogger(__name__)


def create_submitter(restaurant: Optional[RestaurantInfo] = None) -> BaseSubmitter:
    """Build the configured submitter for a restaurant's storefront."""
    settings = get_settings()
    channel = get_message_channel()

    if settings.persist_orders:
        return PersistThenMessageSubmitter(
            repository=get_order_repository(),
            channel=channel,
            restaurant_id=restaurant.id if restaurant else None,
            timeout=settings.checkout_submit_timeout,
            base_url=settings.whatsapp_base_url,
            inventory=get_inventory_repository(),
        )

    return MessageOnlySubmitter(
        channel=channel,
        restaurant_phone=restaurant.phone if restaurant else None,
        base_url=settings.whatsapp_base_url,
    )


__all__ = [
    "create_submitter",
    "BaseSubmitter",
    "CancellationToken",
    "CheckoutResult",
    "CheckoutSession",
    "CheckoutWizard",
    "DeliveryAddress",
    "MessageOnlySubmitter",
    "PersistThenMessageSubmitter",
    "STEP_LABELS",
]
