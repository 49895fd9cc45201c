"""
SQLAlchemy Database Models

Catalog tables read by the menu and product selection:
- Restaurants with storefront branding and opening hours
- Categories, products, ingredients and recipes (removable ingredients)
- Ingredient stock levels, minimums, cost and expiry, with per-restaurant alert settings
- Extras and cross-sell rules

Order tables written by the checkout and updated by the staff order board.
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cardapio.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow, one column per status on the staff board."""
    NEW = "NEW"
    PREPARING = "PREPARING"
    DISPATCHED = "DISPATCHED"
    COMPLETED = "COMPLETED"


class OrderType(str, enum.Enum):
    """Fulfillment type as stored on the order."""
    DELIVERY = "DELIVERY"
    PICKUP = "PICKUP"
    LOCAL = "LOCAL"


class PaymentMethod(str, enum.Enum):
    """Payment method as stored on the order (paid outside the app)."""
    CASH = "CASH"
    PIX = "PIX"
    CARD = "CARD"


class Restaurant(Base):
    """
    A restaurant and its storefront settings.
    """
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(30), nullable=True)

    # =========================================================================
    # STOREFRONT
    # =========================================================================
    logo_url = Column(String(500), nullable=True)
    banner_url = Column(String(500), nullable=True)
    primary_color = Column(String(20), nullable=True)
    name_color = Column(String(20), nullable=True)
    promo_banner_text = Column(String(255), nullable=True)

    # =========================================================================
    # OPENING HOURS
    # =========================================================================
    open_time = Column(String(5), nullable=True)  # "18:00"
    close_time = Column(String(5), nullable=True)
    is_open = Column(Boolean, nullable=True, default=True)

    # =========================================================================
    # STOCK ALERTS
    # =========================================================================
    low_stock_threshold = Column(Integer, nullable=False, default=10)  # % above min_stock
    expiry_alert_days = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.name}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Category #{self.id} - {self.name}>"


class Product(Base):
    """
    A sellable menu item.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    sell_price = Column(Float, nullable=False, default=0.0)
    promo_price = Column(Float, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Product #{self.id} - {self.name}>"


class Ingredient(Base):
    """
    A stock item. Recipes and extras draw from it; `min_stock` plus the
    restaurant's threshold decide when it shows as running low.
    """
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(60), nullable=False, default="Outros")
    unit = Column(String(10), nullable=False, default="UN")

    # =========================================================================
    # STOCK
    # =========================================================================
    current_stock = Column(Float, nullable=False, default=0.0)
    min_stock = Column(Float, nullable=False, default=0.0)
    cost_price = Column(Float, nullable=False, default=0.0)
    expiration_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Ingredient #{self.id} - {self.name}>"


class Recipe(Base):
    """
    Ingredient used by a product; `can_remove` marks it as removable
    by the customer at no price change.
    """
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), nullable=False)
    quantity_used = Column(Float, nullable=False, default=1.0)
    can_remove = Column(Boolean, nullable=False, default=False)

    ingredient = relationship("Ingredient", lazy="joined")


class Extra(Base):
    """Priced add-on selectable in variable quantity per line item."""
    __tablename__ = "extras"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), nullable=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False, default=0.0)
    quantity_used = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CrossSellRule(Base):
    """
    When a product of `trigger_category_id` is opened, offer products
    of `suggest_category_id` in an extra selection step.
    """
    __tablename__ = "cross_sell_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    trigger_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    suggest_category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    step_label = Column(String(100), nullable=False, default="")
    display_order = Column(Integer, nullable=False, default=0)

    suggest_category = relationship("Category", foreign_keys=[suggest_category_id], lazy="joined")


class Order(Base):
    """
    Finalized order snapshot written by the checkout.

    Items are immutable once written; staff only move `status`.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=True)

    # =========================================================================
    # FULFILLMENT
    # =========================================================================
    order_type = Column(
        Enum(OrderType),
        default=OrderType.PICKUP,
        nullable=False,
        index=True
    )
    delivery_address = Column(String(500), nullable=True)

    # =========================================================================
    # PAYMENT (settled outside the app)
    # =========================================================================
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    change_for = Column(Float, nullable=True)
    total_amount = Column(Float, nullable=False, default=0.0)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.NEW,
        nullable=False,
        index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type.value} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_name = Column(String(120), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    extras_json = Column(JSON, nullable=False, default=list)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x product #{self.product_id}>"
