"""
Browsing Sessions

Each browser tab gets a session holding its own cart, at most one open
product selection and at most one open checkout. Sessions live in process
memory only; a restart (like a page reload in a browser) loses them, and
sessions left idle longer than the configured TTL are dropped.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from cardapio.core.errors import (
    CheckoutNotOpenError,
    SelectionNotOpenError,
    SessionNotFoundError,
    SubmissionInProgressError,
)
from cardapio.services.cart import CartStore
from cardapio.services.checkout.wizard import CheckoutWizard
from cardapio.services.product_selection import ProductSelection

logger = logging.getLogger(__name__)


@dataclass
class BrowsingSession:
    id: str
    restaurant_id: Optional[int] = None
    cart: CartStore = field(default_factory=CartStore)
    selection: Optional[ProductSelection] = None
    checkout: Optional[CheckoutWizard] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_seen: datetime = field(default_factory=datetime.now)

    @property
    def submitting(self) -> bool:
        return self.checkout is not None and self.checkout.submitting

    def editable_cart(self) -> CartStore:
        """The cart, unless an order built from it is being sent right now."""
        if self.submitting:
            raise SubmissionInProgressError()
        return self.cart

    def require_selection(self) -> ProductSelection:
        if self.selection is None:
            raise SelectionNotOpenError()
        return self.selection

    def require_checkout(self) -> CheckoutWizard:
        if self.checkout is None or self.checkout.closed:
            raise CheckoutNotOpenError()
        return self.checkout

    def close_selection(self) -> None:
        if self.selection is not None:
            self.selection.cancel()
        self.selection = None

    def close_checkout(self) -> None:
        if self.checkout is not None:
            self.checkout.close()
        self.checkout = None


class SessionRegistry:
    """
    In-memory map of session id to browsing session.

    With a `ttl`, sessions idle for longer are purged whenever a session
    is created or looked up. A session whose order is being sent is never
    purged.
    """

    def __init__(self, ttl: Optional[timedelta] = None) -> None:
        self._sessions: dict[str, BrowsingSession] = {}
        self.ttl = ttl

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, restaurant_id: Optional[int] = None) -> BrowsingSession:
        self.purge_expired()
        session = BrowsingSession(id=uuid.uuid4().hex, restaurant_id=restaurant_id)
        self._sessions[session.id] = session
        logger.debug(f"Session {session.id} created")
        return session

    def get(self, session_id: str) -> BrowsingSession:
        now = datetime.now()
        self.purge_expired(now)
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Sessão {session_id} não encontrada")
        session.last_seen = now
        return session

    def discard(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close_selection()
        session.close_checkout()
        return True

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop idle sessions; returns how many were removed."""
        if self.ttl is None:
            return 0
        cutoff = (now or datetime.now()) - self.ttl
        expired = [
            sid for sid, s in self._sessions.items()
            if s.last_seen < cutoff and not s.submitting
        ]
        for sid in expired:
            self.discard(sid)
        if expired:
            logger.info(f"🧹 Purged {len(expired)} idle session(s)")
        return len(expired)
