"""
Pydantic Schemas for Request/Response Validation

Request bodies for the storefront session API (cart, product selection,
checkout) and the staff order board, plus the shared error and health
responses.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    NEW = "NEW"
    PREPARING = "PREPARING"
    DISPATCHED = "DISPATCHED"
    COMPLETED = "COMPLETED"


class OrderTypeEnum(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    LOCAL = "local"


class PaymentMethodEnum(str, Enum):
    PIX = "pix"
    CARD = "card"
    CASH = "cash"


class NoticeKindEnum(str, Enum):
    DISPATCHED = "dispatched"
    COMPLETED = "completed"


# =============================================================================
# SESSION / CART REQUESTS
# =============================================================================

class SessionCreate(BaseModel):
    """Open a browsing session, optionally bound to one restaurant."""
    restaurant_id: Optional[int] = Field(None, examples=[1])


class UpdateQuantityRequest(BaseModel):
    """New quantity for a cart line; zero or less removes it."""
    quantity: int = Field(..., examples=[2])


# =============================================================================
# PRODUCT SELECTION REQUESTS
# =============================================================================

class OpenSelectionRequest(BaseModel):
    product_id: int = Field(..., examples=[1])


class ToggleRemovedRequest(BaseModel):
    name: str = Field(..., min_length=1, examples=["Cebola"])


class ExtraDeltaRequest(BaseModel):
    extra_id: int = Field(..., examples=[1])
    delta: int = Field(..., ge=-99, le=99, examples=[1])


class CrossSellRequest(BaseModel):
    product_id: int = Field(..., examples=[3])


# =============================================================================
# CHECKOUT REQUESTS
# =============================================================================

class AddressUpdate(BaseModel):
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    cep: Optional[str] = None
    complement: Optional[str] = None


class CheckoutUpdateRequest(BaseModel):
    """Partial checkout form; only the fields sent are changed."""
    order_type: Optional[OrderTypeEnum] = None
    address: Optional[AddressUpdate] = None
    table: Optional[str] = Field(None, max_length=10)
    payment_method: Optional[PaymentMethodEnum] = None
    change_for: Optional[str] = Field(None, max_length=20, examples=["50,00"])
    customer_name: Optional[str] = Field(None, max_length=100, examples=["Ana"])
    customer_phone: Optional[str] = Field(None, max_length=20, examples=["(11) 99999-0000"])

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True, mode="json")
        if "address" in data:
            data["address"] = {k: v for k, v in (data["address"] or {}).items() if v is not None}
        return data


# =============================================================================
# STAFF REQUESTS
# =============================================================================

class StatusUpdateRequest(BaseModel):
    status: OrderStatusEnum = Field(..., examples=["PREPARING"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SessionResponse(BaseModel):
    session_id: str
    restaurant_id: Optional[int] = None


class CheckoutSubmitResponse(BaseModel):
    """Response after a checkout has been handed off."""
    success: bool = True
    message: str
    whatsapp_url: str
    total: float
    order_id: Optional[int] = None


class StatusUpdateResponse(BaseModel):
    success: bool = True
    changed: bool
    notice: Optional[str] = None
    order: dict[str, Any]


class NoticeLinkResponse(BaseModel):
    order_id: int
    kind: NoticeKindEnum
    whatsapp_url: str


class OrderListResponse(BaseModel):
    """Board columns for a restaurant."""
    total: int
    columns: List[dict[str, Any]]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    prefix: Optional[str] = None
    detail: Optional[str] = None
    timestamp: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    catalog_service: str
    order_repository: str
    message_channel: str
    timestamp: datetime
