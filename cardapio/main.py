"""
FastAPI Application Entry Point

Cardápio Digital - digital menu, cart and WhatsApp checkout for restaurants.
Runs against a SQL database (production) or the in-memory demo menu
(development, tests).

Endpoints:
    - GET /api/menu, GET /api/restaurants/{id}/menu: Storefront menu
    - /api/sessions/{sid}/cart: Cart of a browsing session
    - /api/sessions/{sid}/selection: Product customization modal
    - /api/sessions/{sid}/checkout: Three-step checkout wizard
    - /api/restaurants/{id}/orders, /api/orders/{id}: Staff order board
    - /api/restaurants/{id}/dashboard-data, /api/restaurants/{id}/stock: Dashboard and stock
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import redis
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select, func

from cardapio.core.config import get_settings, setup_logging
from cardapio.core.errors import (
    CardapioError,
    OrderNotFoundError,
    RestaurantNotFoundError,
    classify_error,
)
from cardapio.database import async_session_maker, engine, init_db
from cardapio.models import OrderStatus
from cardapio.schemas import (
    CheckoutSubmitResponse,
    CheckoutUpdateRequest,
    CrossSellRequest,
    ErrorResponse,
    ExtraDeltaRequest,
    HealthResponse,
    NoticeKindEnum,
    NoticeLinkResponse,
    OpenSelectionRequest,
    OrderListResponse,
    OrderStatusEnum,
    SessionCreate,
    SessionResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    ToggleRemovedRequest,
    UpdateQuantityRequest,
)
from cardapio.services.catalog import RestaurantInfo, build_menu_sections, get_catalog_service
from cardapio.services.checkout import CheckoutWizard, create_submitter
from cardapio.services.inventory import (
    StockStatus,
    dashboard_inventory,
    get_inventory_repository,
    stock_report,
)
from cardapio.services.messaging import get_message_channel
from cardapio.services.order_board import (
    customer_notice_link,
    dashboard_stats,
    local_time,
    move_order,
    render_board,
)
from cardapio.services.orders import OrderRecord, get_order_repository
from cardapio.services.product_selection import open_selection
from cardapio.services.sessions import BrowsingSession, SessionRegistry
from cardapio.tasks import export_order_to_excel

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

sessions = SessionRegistry(ttl=timedelta(minutes=settings.session_ttl_minutes))


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Data backend: {settings.data_backend.value}")
    logger.info(f"   Checkout mode: {settings.checkout_mode.value}")
    logger.info("=" * 60)

    if settings.use_database:
        await init_db()
        logger.info("✅ Database initialized")

    logger.info(f"✅ Catalog Service: {get_catalog_service().provider_name}")
    logger.info(f"✅ Order Repository: {get_order_repository().provider_name}")
    logger.info(f"✅ Inventory Repository: {get_inventory_repository().provider_name}")
    logger.info(f"✅ Message Channel: {get_message_channel().provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Digital menu with per-session cart, product customization and a "
        "three-step checkout that hands the order off over WhatsApp."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def resolve_restaurant(restaurant_id: Optional[int] = None) -> RestaurantInfo:
    """Named restaurant, else DEFAULT_RESTAURANT_ID, else the first on record."""
    catalog = get_catalog_service()
    rid = restaurant_id if restaurant_id is not None else settings.default_restaurant_id

    restaurant = (
        await catalog.get_restaurant(rid) if rid is not None
        else await catalog.get_default_restaurant()
    )
    if restaurant is None:
        raise RestaurantNotFoundError(f"Restaurante #{rid} não encontrado" if rid else None)
    return restaurant


async def load_order(order_id: int) -> OrderRecord:
    order = await get_order_repository().get_order(order_id)
    if order is None:
        raise OrderNotFoundError(f"Pedido #{order_id} não encontrado")
    return order


def local_today() -> date:
    return local_time(datetime.now(timezone.utc)).date()


def session_state(session: BrowsingSession) -> dict[str, Any]:
    return {
        "session_id": session.id,
        "cart": session.cart.to_dict(),
        "selection": session.selection.to_dict() if session.selection else None,
        "checkout": session.checkout.to_dict() if session.checkout else None,
    }


def queue_excel_export(order: OrderRecord) -> None:
    """Hand a stored order to the Celery worker; the order stands even if this fails."""
    if not settings.excel_export_enabled:
        return
    try:
        export_order_to_excel.delay(order.to_dict())
    except Exception as e:
        logger.warning(f"Excel export not queued for Order #{order.id}: {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍔 Bem-vindo ao {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check() -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "not used"
    if settings.use_database:
        db_status = "healthy"
        try:
            async with async_session_maker() as db:
                await db.execute(select(func.now()))
        except Exception as e:
            db_status = f"unhealthy: {str(e)}"
            logger.error(f"Database health check failed: {e}")

    # Check Redis
    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    catalog_status = "healthy" if await get_catalog_service().health_check() else "unhealthy"
    orders_status = "healthy" if await get_order_repository().health_check() else "unhealthy"
    channel_status = "healthy" if await get_message_channel().health_check() else "unhealthy"

    overall = "operational" if all(
        s in ("healthy", "not used")
        for s in [db_status, redis_status, catalog_status, orders_status, channel_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        catalog_service=catalog_status,
        order_repository=orders_status,
        message_channel=channel_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

async def render_menu(restaurant: RestaurantInfo, search: Optional[str]) -> dict[str, Any]:
    catalog = get_catalog_service()
    categories = await catalog.list_categories(restaurant.id)
    products = await catalog.list_products(restaurant.id)
    sections = build_menu_sections(categories, products, search)

    return {
        "restaurant": restaurant.to_dict(),
        "featured": [p.to_dict() for p in products if p.is_featured],
        "promotions": [p.to_dict() for p in products if p.promo_price is not None],
        "sections": [
            {
                "category": {"id": s.category.id, "name": s.category.name},
                "products": [p.to_dict() for p in s.products],
            }
            for s in sections
        ],
    }


@app.get("/api/menu", tags=["Menu"], summary="Default Restaurant Menu")
async def default_menu(q: Optional[str] = Query(None, max_length=100)) -> dict[str, Any]:
    restaurant = await resolve_restaurant()
    return await render_menu(restaurant, q)


@app.get("/api/restaurants/{restaurant_id}/menu", tags=["Menu"])
async def restaurant_menu(
    restaurant_id: int,
    q: Optional[str] = Query(None, max_length=100),
) -> dict[str, Any]:
    restaurant = await resolve_restaurant(restaurant_id)
    return await render_menu(restaurant, q)


# =============================================================================
# SESSION & CART ENDPOINTS
# =============================================================================

@app.post("/api/sessions", response_model=SessionResponse, status_code=201, tags=["Cart"])
async def create_session(body: Optional[SessionCreate] = None) -> SessionResponse:
    """Start a browsing session with an empty cart."""
    restaurant_id = body.restaurant_id if body else None
    if restaurant_id is not None:
        await resolve_restaurant(restaurant_id)
    session = sessions.create(restaurant_id)
    return SessionResponse(session_id=session.id, restaurant_id=restaurant_id)


@app.delete("/api/sessions/{session_id}", tags=["Cart"])
async def delete_session(session_id: str) -> dict[str, bool]:
    return {"success": sessions.discard(session_id)}


@app.get("/api/sessions/{session_id}", tags=["Cart"])
async def get_session(session_id: str) -> dict[str, Any]:
    return session_state(sessions.get(session_id))


@app.get("/api/sessions/{session_id}/cart", tags=["Cart"])
async def get_cart(session_id: str) -> dict[str, Any]:
    return sessions.get(session_id).cart.to_dict()


@app.patch("/api/sessions/{session_id}/cart/items/{index}", tags=["Cart"])
async def update_cart_item(
    session_id: str,
    index: int,
    body: UpdateQuantityRequest,
) -> dict[str, Any]:
    cart = sessions.get(session_id).editable_cart()
    cart.update_quantity(index, body.quantity)
    return cart.to_dict()


@app.delete("/api/sessions/{session_id}/cart/items/{index}", tags=["Cart"])
async def remove_cart_item(session_id: str, index: int) -> dict[str, Any]:
    cart = sessions.get(session_id).editable_cart()
    cart.remove_item(index)
    return cart.to_dict()


@app.delete("/api/sessions/{session_id}/cart", tags=["Cart"])
async def clear_cart(session_id: str) -> dict[str, Any]:
    cart = sessions.get(session_id).editable_cart()
    cart.clear_cart()
    return cart.to_dict()


# =============================================================================
# PRODUCT SELECTION ENDPOINTS
# =============================================================================

@app.post("/api/sessions/{session_id}/selection", tags=["Selection"])
async def open_product(session_id: str, body: OpenSelectionRequest) -> dict[str, Any]:
    """Open the customization modal for a product."""
    session = sessions.get(session_id)
    selection = await open_selection(get_catalog_service(), body.product_id)
    session.close_selection()
    session.selection = selection
    return selection.to_dict()


@app.get("/api/sessions/{session_id}/selection", tags=["Selection"])
async def get_selection(session_id: str) -> dict[str, Any]:
    return sessions.get(session_id).require_selection().to_dict()


@app.post("/api/sessions/{session_id}/selection/removed", tags=["Selection"])
async def toggle_removed(session_id: str, body: ToggleRemovedRequest) -> dict[str, Any]:
    selection = sessions.get(session_id).require_selection()
    selection.toggle_removed(body.name)
    return selection.to_dict()


@app.post("/api/sessions/{session_id}/selection/extras", tags=["Selection"])
async def change_extra(session_id: str, body: ExtraDeltaRequest) -> dict[str, Any]:
    selection = sessions.get(session_id).require_selection()
    selection.change_extra(body.extra_id, body.delta)
    return selection.to_dict()


@app.post("/api/sessions/{session_id}/selection/next", tags=["Selection"])
async def selection_next(session_id: str) -> dict[str, Any]:
    selection = sessions.get(session_id).require_selection()
    selection.next_step()
    return selection.to_dict()


@app.post("/api/sessions/{session_id}/selection/back", tags=["Selection"])
async def selection_back(session_id: str) -> dict[str, Any]:
    selection = sessions.get(session_id).require_selection()
    selection.previous_step()
    return selection.to_dict()


@app.post("/api/sessions/{session_id}/selection/add", tags=["Selection"])
async def selection_add(session_id: str) -> dict[str, Any]:
    """Add the customized product as a new cart line and close the modal."""
    session = sessions.get(session_id)
    selection = session.require_selection()
    item = selection.add_to_cart(session.editable_cart())
    session.close_selection()
    return {"added": item.to_dict(), "cart": session.cart.to_dict()}


@app.post("/api/sessions/{session_id}/selection/cross-sell", tags=["Selection"])
async def selection_cross_sell(session_id: str, body: CrossSellRequest) -> dict[str, Any]:
    """Add a suggested product right away; the modal stays open."""
    session = sessions.get(session_id)
    item = session.require_selection().add_cross_sell(session.editable_cart(), body.product_id)
    return {"added": item.to_dict(), "cart": session.cart.to_dict()}


@app.delete("/api/sessions/{session_id}/selection", tags=["Selection"])
async def selection_cancel(session_id: str) -> dict[str, Any]:
    session = sessions.get(session_id)
    session.close_selection()
    return session.cart.to_dict()


# =============================================================================
# CHECKOUT ENDPOINTS
# =============================================================================

@app.post("/api/sessions/{session_id}/checkout", tags=["Checkout"])
async def open_checkout(session_id: str) -> dict[str, Any]:
    """Open the checkout wizard on step 0 with a blank form."""
    session = sessions.get(session_id)

    # Persisted orders can fall back to the owner of the first cart item
    restaurant = None
    if session.restaurant_id is not None or not settings.persist_orders:
        restaurant = await resolve_restaurant(session.restaurant_id)

    session.close_checkout()
    session.checkout = CheckoutWizard(session.cart, create_submitter(restaurant))
    return session.checkout.to_dict()


@app.get("/api/sessions/{session_id}/checkout", tags=["Checkout"])
async def get_checkout(session_id: str) -> dict[str, Any]:
    return sessions.get(session_id).require_checkout().to_dict()


@app.patch("/api/sessions/{session_id}/checkout", tags=["Checkout"])
async def update_checkout(session_id: str, body: CheckoutUpdateRequest) -> dict[str, Any]:
    wizard = sessions.get(session_id).require_checkout()
    wizard.update(**body.changes())
    return wizard.to_dict()


@app.post("/api/sessions/{session_id}/checkout/next", tags=["Checkout"])
async def checkout_next(session_id: str) -> dict[str, Any]:
    wizard = sessions.get(session_id).require_checkout()
    wizard.advance()
    return wizard.to_dict()


@app.post("/api/sessions/{session_id}/checkout/back", tags=["Checkout"])
async def checkout_back(session_id: str) -> dict[str, Any]:
    wizard = sessions.get(session_id).require_checkout()
    wizard.back()
    return wizard.to_dict()


@app.post(
    "/api/sessions/{session_id}/checkout/submit",
    response_model=CheckoutSubmitResponse,
    responses={
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    tags=["Checkout"],
    summary="Finish Order",
)
async def checkout_submit(session_id: str) -> CheckoutSubmitResponse:
    """
    Hand the order off.

    On success the submitted lines leave the cart and the wizard closes.
    On any failure the cart and the form are kept so the customer can retry.
    """
    session = sessions.get(session_id)
    wizard = session.require_checkout()
    result = await wizard.submit()
    # A checkout reopened while this one was awaiting stays open
    if session.checkout is wizard:
        session.checkout = None

    if result.order_id is not None:
        logger.info(f"Order #{result.order_id} created successfully")
        try:
            order = await get_order_repository().get_order(result.order_id)
        except Exception as e:
            logger.warning(f"Order #{result.order_id} saved but not re-read for export: {e}")
            order = None
        if order is not None:
            queue_excel_export(order)

    return CheckoutSubmitResponse(success=True, **result.to_dict())


@app.delete("/api/sessions/{session_id}/checkout", tags=["Checkout"])
async def close_checkout(session_id: str) -> dict[str, Any]:
    session = sessions.get(session_id)
    session.close_checkout()
    return session.cart.to_dict()


# =============================================================================
# STAFF ORDER BOARD ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants/{restaurant_id}/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="Order Board",
)
async def order_board(
    restaurant_id: int,
    status: Optional[OrderStatusEnum] = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> OrderListResponse:
    """Orders grouped in board columns, newest first within a column."""
    await resolve_restaurant(restaurant_id)
    orders = await get_order_repository().list_orders(
        restaurant_id,
        status=OrderStatus(status.value) if status else None,
        limit=limit,
    )
    return OrderListResponse(total=len(orders), columns=render_board(orders))


@app.get("/api/orders/{order_id}", tags=["Orders"])
async def get_order(order_id: int) -> dict[str, Any]:
    """Get a specific order by ID."""
    return (await load_order(order_id)).to_dict()


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=StatusUpdateResponse,
    tags=["Orders"],
)
async def update_order_status(order_id: int, body: StatusUpdateRequest) -> StatusUpdateResponse:
    """Move an order to another board column."""
    result = await move_order(get_order_repository(), order_id, OrderStatus(body.status.value))
    if result.changed:
        logger.info(f"Order #{order_id} moved to {result.order.status.value}")
    return StatusUpdateResponse(
        changed=result.changed,
        notice=result.notice,
        order=result.order.to_dict(),
    )


@app.get("/api/orders/{order_id}/notify", response_model=NoticeLinkResponse, tags=["Orders"])
async def notify_customer(
    order_id: int,
    kind: NoticeKindEnum = Query(NoticeKindEnum.DISPATCHED),
) -> NoticeLinkResponse:
    """WhatsApp link for telling the customer the order left or is ready."""
    order = await load_order(order_id)
    url = customer_notice_link(order, kind.value, settings.whatsapp_base_url)
    return NoticeLinkResponse(order_id=order.id, kind=kind, whatsapp_url=url)


@app.get("/api/restaurants/{restaurant_id}/dashboard-data", tags=["Dashboard"])
async def dashboard_data(restaurant_id: int) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""
    await resolve_restaurant(restaurant_id)
    orders = await get_order_repository().list_orders(restaurant_id)
    products = await get_catalog_service().list_products(restaurant_id)

    inventory = get_inventory_repository()
    ingredients = await inventory.list_ingredients(restaurant_id)
    alerts = await inventory.get_alert_settings(restaurant_id)

    return {
        **dashboard_stats(orders),
        "active_products": len(products),
        "stock": dashboard_inventory(ingredients, alerts, local_today()),
        "environment": settings.env_mode.value,
    }


# =============================================================================
# STOCK ENDPOINTS
# =============================================================================

@app.get("/api/restaurants/{restaurant_id}/stock", tags=["Stock"], summary="Ingredient Stock")
async def restaurant_stock(
    restaurant_id: int,
    q: Optional[str] = Query(None, max_length=100),
    status: Optional[StockStatus] = Query(None),
) -> dict[str, Any]:
    """Ingredients grouped by category with status badges and stock KPIs."""
    await resolve_restaurant(restaurant_id)
    inventory = get_inventory_repository()
    ingredients = await inventory.list_ingredients(restaurant_id)
    alerts = await inventory.get_alert_settings(restaurant_id)
    return stock_report(ingredients, alerts, local_today(), search=q, status=status)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(CardapioError)
async def cardapio_exception_handler(request: Request, exc: CardapioError) -> JSONResponse:
    """Domain errors become a classified notification payload."""
    classified = classify_error(exc)
    logger.warning(f"{classified.prefix} {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=classified.title,
            prefix=classified.prefix,
            detail=classified.detail,
            timestamp=classified.timestamp,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    classified = classify_error(exc)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "prefix": classified.prefix,
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cardapio.main:app", host=settings.api_host, port=settings.api_port)
