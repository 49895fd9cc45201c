"""
Error Taxonomy

Domain exceptions raised by the cart, selection and checkout services,
plus the classification that turns any exception into the short
notification shown to the customer or staff member.

None of these errors clear the cart: callers abandon the operation
and leave session state as it was.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError


class CardapioError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    title: str = "Erro"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.title)
        self.message = message or self.title


class SessionNotFoundError(CardapioError):
    status_code = 404
    title = "Sessão não encontrada"


class ProductNotFoundError(CardapioError):
    status_code = 404
    title = "Produto não encontrado"


class RestaurantNotFoundError(CardapioError):
    status_code = 404
    title = "Restaurante não encontrado"


class OrderNotFoundError(CardapioError):
    status_code = 404
    title = "Pedido não encontrado"


class SelectionNotOpenError(CardapioError):
    status_code = 409
    title = "Nenhum produto selecionado"


class CheckoutNotOpenError(CardapioError):
    status_code = 409
    title = "Checkout não iniciado"


# =============================================================================
# CHECKOUT
# =============================================================================

class CheckoutError(CardapioError):
    """Base for checkout failures; the wizard and cart stay intact."""
    title = "Erro ao criar pedido"


class EmptyCartError(CheckoutError):
    title = "Carrinho vazio"


class CheckoutGuardError(CheckoutError):
    """Submit attempted while the current step is incomplete."""
    status_code = 422
    title = "Preencha os dados obrigatórios"


class InvalidCheckoutFieldError(CheckoutError):
    status_code = 422
    title = "Campo inválido"


class DuplicateSubmissionError(CheckoutError):
    status_code = 409
    title = "Pedido já está sendo enviado"


class SubmissionInProgressError(CheckoutError):
    """Cart or checkout edit attempted while the order is being sent."""
    status_code = 409
    title = "Pedido em envio, aguarde"


class CheckoutClosedError(CheckoutError):
    status_code = 409
    title = "Checkout encerrado"


class SubmissionCancelledError(CheckoutError):
    status_code = 409
    title = "Envio cancelado"


class SubmissionTimeoutError(CheckoutError):
    status_code = 504
    title = "Tempo esgotado ao enviar o pedido"


class PersistenceError(CheckoutError):
    status_code = 502
    title = "Falha ao salvar o pedido"


class MessageDeliveryError(CheckoutError):
    status_code = 502
    title = "Falha ao abrir o WhatsApp"


# =============================================================================
# CLASSIFICATION
# =============================================================================

@dataclass
class AppError:
    """A classified error, ready to be shown as a transient notification."""
    prefix: str
    title: str
    detail: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "title": self.title,
            "detail": self.detail,
            "timestamp": self.timestamp,
        }


_DB_MARKERS = ("relation", "column", "violates", "duplicate key", "PGRST")
_API_MARKERS = ("fetch", "timeout", "network")


def classify_error(error: BaseException, context: Optional[str] = None) -> AppError:
    """
    Map an exception to a notification category.

    Args:
        error: The exception raised
        context: Verb phrase describing what failed (e.g. "criar pedido")

    Returns:
        AppError with a bracketed prefix, a title and the raw detail
    """
    msg = str(error) or error.__class__.__name__

    if isinstance(error, CardapioError):
        return AppError(
            prefix="[Erro]",
            title=f"Falha ao {context}" if context else error.title,
            detail=error.message,
        )

    if isinstance(error, SQLAlchemyError) or any(m in msg for m in _DB_MARKERS):
        return AppError(
            prefix="[Erro BD]",
            title=f"Falha ao {context}" if context else "Erro de banco de dados",
            detail=msg,
        )

    status_match = re.search(r"(\d{3})", msg)
    lowered = msg.lower()
    if any(m in lowered for m in _API_MARKERS) or status_match:
        code = status_match.group(1) if status_match else "???"
        return AppError(
            prefix=f"[Erro API {code}]",
            title=f"Falha ao {context}" if context else "Erro de comunicação",
            detail=msg,
        )

    return AppError(
        prefix="[Erro]",
        title=context or "Erro inesperado",
        detail=msg,
    )
