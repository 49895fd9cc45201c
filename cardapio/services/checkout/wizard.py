"""
Checkout Wizard

Three fixed steps, walked in order:

    0 Entrega        fulfillment type and address (always complete)
    1 Pagamento      needs a payment method
    2 Identificação  needs name and phone

`advance` and `submit` check the same guard as the UI; a programmatic
call on an incomplete step changes nothing and touches no collaborator.
"""

import copy
import logging
from typing import Any, Optional

from cardapio.core.errors import (
    CheckoutClosedError,
    CheckoutGuardError,
    DuplicateSubmissionError,
    EmptyCartError,
    SubmissionInProgressError,
)
from cardapio.services.cart import CartStore
from cardapio.services.checkout.session import CheckoutSession
from cardapio.services.checkout.submission import (
    BaseSubmitter,
    CancellationToken,
    CheckoutResult,
)
from cardapio.services.pricing import format_price

logger = logging.getLogger(__name__)

STEP_LABELS = ("Entrega", "Pagamento", "Identificação")
LAST_STEP = len(STEP_LABELS) - 1


class CheckoutWizard:
    """
    Checkout state machine for one browsing session.

    Example:
        >>> wizard = CheckoutWizard(cart, submitter)
        >>> wizard.advance()
        >>> wizard.update(payment_method="pix")
        >>> wizard.advance()
        >>> wizard.update(customer_name="Ana", customer_phone="11999999999")
        >>> result = await wizard.submit()
    """

    def __init__(self, cart: CartStore, submitter: BaseSubmitter):
        self.cart = cart
        self.submitter = submitter
        self.session = CheckoutSession()
        self.submitting = False
        self.completed = False
        self.closed = False
        self._token: Optional[CancellationToken] = None

    @property
    def step(self) -> int:
        return self.session.step

    def can_advance(self) -> bool:
        s = self.session
        if s.step == 0:
            return True
        if s.step == 1:
            return bool(s.payment_method)
        if s.step == 2:
            return bool(s.customer_name) and bool(s.customer_phone)
        return False

    def advance(self) -> bool:
        """Move forward one step if the current one is complete."""
        if self.closed or self.submitting:
            return False
        if self.session.step >= LAST_STEP or not self.can_advance():
            return False
        self.session.step += 1
        return True

    def back(self) -> bool:
        """Move back one step, keeping every answer."""
        if self.closed or self.submitting or self.session.step <= 0:
            return False
        self.session.step -= 1
        return True

    def update(self, **changes: Any) -> None:
        if self.closed:
            raise CheckoutClosedError()
        if self.submitting:
            raise SubmissionInProgressError()
        self.session.update(**changes)

    async def submit(self) -> CheckoutResult:
        """
        Hand the order off through the configured submitter.

        The cart lines and the form are copied once, up front; the stored
        order, the message and the returned total all come from that copy.
        On success only the copied lines leave the cart and the wizard
        closes. On failure both are left as they were so the customer can
        retry.

        Raises:
            CheckoutClosedError: wizard already closed or completed
            DuplicateSubmissionError: a submission is still running
            CheckoutGuardError: not on the last step or step incomplete
            EmptyCartError: nothing to order
        """
        if self.closed:
            raise CheckoutClosedError()
        if self.submitting:
            raise DuplicateSubmissionError()
        if self.session.step != LAST_STEP or not self.can_advance():
            raise CheckoutGuardError()
        if not self.cart:
            raise EmptyCartError()

        taken = self.cart.items
        ordered = self.cart.snapshot()
        form = copy.deepcopy(self.session)

        token = CancellationToken()
        self._token = token
        self.submitting = True
        try:
            result = await self.submitter.submit(form, ordered, token)
        finally:
            self.submitting = False
            self._token = None

        logger.info(
            f"Checkout submitted ({self.submitter.mode}, "
            f"order={result.order_id}, total={format_price(result.total)})"
        )
        self.cart.discard_lines(taken)
        self.completed = True
        self.closed = True
        return result

    def close(self) -> None:
        """Discard the checkout, cancelling a running submission."""
        if self._token is not None:
            self._token.cancel()
        self.closed = True

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.session.to_dict(),
            "step_label": STEP_LABELS[self.session.step],
            "total_steps": len(STEP_LABELS),
            "can_advance": self.can_advance(),
            "submitting": self.submitting,
            "total": round(self.cart.total, 2),
            "mode": self.submitter.mode,
        }
