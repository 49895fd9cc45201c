from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient

from cardapio.core.errors import PersistenceError
from cardapio.main import app, sessions
from cardapio.services.checkout import CheckoutWizard
from cardapio.services.inventory import reset_inventory_repository
from cardapio.services.orders import get_order_repository


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sid(client):
    response = client.post("/api/sessions", json={})
    assert response.status_code == 201
    session_id = response.json()["session_id"]
    yield session_id
    sessions.discard(session_id)


def add_burger(client, sid, remove=None, extras=()):
    opened = client.post(f"/api/sessions/{sid}/selection", json={"product_id": 1})
    assert opened.status_code == 200
    if remove:
        client.post(f"/api/sessions/{sid}/selection/removed", json={"name": remove})
    for extra_id in extras:
        client.post(f"/api/sessions/{sid}/selection/extras", json={"extra_id": extra_id, "delta": 1})
    added = client.post(f"/api/sessions/{sid}/selection/add")
    assert added.status_code == 200
    return added.json()


def fill_checkout(client, sid, **form):
    base = f"/api/sessions/{sid}/checkout"
    assert client.post(base).status_code == 200
    client.patch(base, json={
        "order_type": "delivery",
        "address": {
            "street": "Rua A",
            "number": "10",
            "neighborhood": "Centro",
            "city": "São Paulo",
            "cep": "01000-000",
        },
    })
    client.post(f"{base}/next")
    client.patch(base, json={"payment_method": form.get("payment_method", "pix")})
    client.post(f"{base}/next")
    return client.patch(base, json={"customer_name": "Ana", "customer_phone": "11999999999"})


# =============================================================================
# ROOT / HEALTH / MENU
# =============================================================================

def test_root(client):
    data = client.get("/").json()
    assert data["menu"] == "/api/menu"


def test_health_reports_services(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "not used"
    assert data["catalog_service"] == "healthy"
    assert data["order_repository"] == "healthy"
    assert data["status"] in ("operational", "degraded")


def test_menu_groups_products(client):
    data = client.get("/api/menu").json()

    assert data["restaurant"]["name"] == "Cheff Burger"
    assert data["restaurant"]["is_open"] is True
    assert [s["category"]["name"] for s in data["sections"]] == ["Lanches", "Acompanhamentos", "Bebidas"]
    assert [p["name"] for p in data["featured"]] == ["X Burger"]
    assert [p["name"] for p in data["promotions"]] == ["X Salada"]


def test_menu_search(client):
    data = client.get("/api/restaurants/1/menu", params={"q": "suco"}).json()

    assert [s["category"]["name"] for s in data["sections"]] == ["Bebidas"]
    assert [p["name"] for p in data["sections"][0]["products"]] == ["Suco Natural"]


def test_unknown_restaurant_menu(client):
    response = client.get("/api/restaurants/99/menu")

    assert response.status_code == 404
    assert response.json()["prefix"] == "[Erro]"


# =============================================================================
# CART & SELECTION
# =============================================================================

def test_unknown_session(client):
    response = client.get("/api/sessions/nope/cart")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_selection_flow_adds_customized_line(client, sid):
    data = add_burger(client, sid, remove="Cebola", extras=[1])

    assert data["added"]["removed"] == ["Cebola"]
    assert data["cart"]["total"] == 24.0
    assert client.get(f"/api/sessions/{sid}/selection").status_code == 409


def test_selection_steps(client, sid):
    client.post(f"/api/sessions/{sid}/selection", json={"product_id": 1})

    for _ in range(6):
        data = client.post(f"/api/sessions/{sid}/selection/next").json()
    assert data["current_step"] == "crosssell-1"

    data = client.post(f"/api/sessions/{sid}/selection/back").json()
    assert data["current_step"] == "crosssell-0"


def test_cross_sell_keeps_modal_open(client, sid):
    client.post(f"/api/sessions/{sid}/selection", json={"product_id": 1})

    data = client.post(f"/api/sessions/{sid}/selection/cross-sell", json={"product_id": 4}).json()

    assert data["cart"]["items"][0]["product"]["name"] == "Refrigerante Lata"
    assert client.get(f"/api/sessions/{sid}/selection").status_code == 200


def test_cancel_selection_leaves_cart(client, sid):
    client.post(f"/api/sessions/{sid}/selection", json={"product_id": 1})
    client.post(f"/api/sessions/{sid}/selection/extras", json={"extra_id": 1, "delta": 2})

    data = client.delete(f"/api/sessions/{sid}/selection").json()

    assert data["items"] == []


def test_open_unknown_product(client, sid):
    response = client.post(f"/api/sessions/{sid}/selection", json={"product_id": 999})
    assert response.status_code == 404


def test_cart_quantity_and_removal(client, sid):
    add_burger(client, sid)
    add_burger(client, sid)

    data = client.patch(f"/api/sessions/{sid}/cart/items/0", json={"quantity": 3}).json()
    assert [i["quantity"] for i in data["items"]] == [3, 1]
    assert data["total"] == 80.0

    data = client.patch(f"/api/sessions/{sid}/cart/items/1", json={"quantity": 0}).json()
    assert len(data["items"]) == 1

    data = client.delete(f"/api/sessions/{sid}/cart/items/5").json()
    assert len(data["items"]) == 1

    data = client.delete(f"/api/sessions/{sid}/cart").json()
    assert data["items"] == [] and data["total"] == 0


# =============================================================================
# CHECKOUT
# =============================================================================

def test_checkout_without_opening(client, sid):
    response = client.post(f"/api/sessions/{sid}/checkout/submit")
    assert response.status_code == 409


def test_checkout_guard_blocks_next(client, sid):
    add_burger(client, sid)
    base = f"/api/sessions/{sid}/checkout"
    client.post(base)
    client.post(f"{base}/next")

    data = client.post(f"{base}/next").json()

    assert data["step"] == 1
    assert data["can_advance"] is False


def test_submit_before_last_step(client, sid):
    add_burger(client, sid)
    client.post(f"/api/sessions/{sid}/checkout")

    response = client.post(f"/api/sessions/{sid}/checkout/submit")

    assert response.status_code == 422
    assert client.get(f"/api/sessions/{sid}/cart").json()["total"] == 20.0


def test_submit_empty_cart(client, sid):
    fill_checkout(client, sid)

    response = client.post(f"/api/sessions/{sid}/checkout/submit")

    assert response.status_code == 400
    assert response.json()["error"] == "Carrinho vazio"


def test_invalid_checkout_field(client, sid):
    client.post(f"/api/sessions/{sid}/checkout")

    response = client.patch(f"/api/sessions/{sid}/checkout", json={"change_for": "abc"})

    assert response.status_code == 422


def test_full_checkout_and_board(client, sid):
    add_burger(client, sid, remove="Cebola", extras=[1])
    client.patch(f"/api/sessions/{sid}/cart/items/0", json={"quantity": 2})
    fill_checkout(client, sid)

    response = client.post(f"/api/sessions/{sid}/checkout/submit")

    assert response.status_code == 200
    result = response.json()
    assert result["total"] == 48.0
    assert result["order_id"] is not None
    assert result["whatsapp_url"].startswith("https://wa.me/?text=")
    assert unquote(result["whatsapp_url"].split("?text=", 1)[1]) == result["message"]
    assert result["message"] == (
        "*Novo Pedido*\n\n"
        "- 2x X Burger (Sem: Cebola) (+1x Bacon)\n"
        "\n*Total: R$ 48,00*"
        "\nTipo: Delivery"
        "\nEndereco: Rua A, 10, Centro - São Paulo - CEP 01000-000"
        "\nCliente: Ana - 11999999999"
        "\nPagamento: PIX"
    )
    assert client.get(f"/api/sessions/{sid}/cart").json()["items"] == []
    assert client.get(f"/api/sessions/{sid}/checkout").status_code == 409

    order_id = result["order_id"]
    order = client.get(f"/api/orders/{order_id}").json()
    assert order["status"] == "NEW"
    assert order["items"][0]["notes"] == "Sem Cebola"

    board = client.get("/api/restaurants/1/orders").json()
    new_column = board["columns"][0]
    assert new_column["status"] == "NEW"
    assert order_id in [o["id"] for o in new_column["orders"]]

    moved = client.patch(f"/api/orders/{order_id}/status", json={"status": "DISPATCHED"}).json()
    assert moved["changed"] is True
    assert moved["notice"] == "Pedido saiu para entrega!"

    again = client.patch(f"/api/orders/{order_id}/status", json={"status": "DISPATCHED"}).json()
    assert again["changed"] is False

    notice = client.get(f"/api/orders/{order_id}/notify", params={"kind": "dispatched"}).json()
    assert notice["whatsapp_url"].startswith("https://wa.me/11999999999?text=Ola%20Ana!")

    stats = client.get("/api/restaurants/1/dashboard-data").json()
    assert stats["total_orders"] >= 1
    assert stats["status_counts"]["DISPATCHED"] >= 1


def test_unknown_order(client):
    assert client.get("/api/orders/9999").status_code == 404
    response = client.patch("/api/orders/9999/status", json={"status": "COMPLETED"})
    assert response.status_code == 404


def test_invalid_status_value(client):
    response = client.patch("/api/orders/1/status", json={"status": "LOST"})
    assert response.status_code == 422


def test_close_checkout_keeps_cart(client, sid):
    add_burger(client, sid)
    fill_checkout(client, sid)

    data = client.delete(f"/api/sessions/{sid}/checkout").json()

    assert len(data["items"]) == 1
    assert client.post(f"/api/sessions/{sid}/checkout/submit").status_code == 409


def test_cart_locked_while_order_is_sent(client, sid):
    add_burger(client, sid)
    fill_checkout(client, sid)
    sessions.get(sid).checkout.submitting = True
    try:
        patched = client.patch(f"/api/sessions/{sid}/cart/items/0", json={"quantity": 5})
        cleared = client.delete(f"/api/sessions/{sid}/cart")
        client.post(f"/api/sessions/{sid}/selection", json={"product_id": 4})
        added = client.post(f"/api/sessions/{sid}/selection/add")
        edited = client.patch(f"/api/sessions/{sid}/checkout", json={"customer_name": "Bia"})
    finally:
        sessions.get(sid).checkout.submitting = False

    assert patched.status_code == 409
    assert patched.json()["error"] == "Pedido em envio, aguarde"
    assert cleared.status_code == 409
    assert added.status_code == 409
    assert edited.status_code == 409
    cart = client.get(f"/api/sessions/{sid}/cart").json()
    assert [i["quantity"] for i in cart["items"]] == [1]


def test_submit_succeeds_when_order_reread_fails(client, sid, monkeypatch):
    add_burger(client, sid)
    fill_checkout(client, sid)

    async def broken_get_order(order_id):
        raise PersistenceError("connection reset")

    monkeypatch.setattr(get_order_repository(), "get_order", broken_get_order)

    response = client.post(f"/api/sessions/{sid}/checkout/submit")

    assert response.status_code == 200
    assert response.json()["order_id"] is not None
    assert client.get(f"/api/sessions/{sid}/cart").json()["items"] == []


def test_submit_keeps_checkout_reopened_meanwhile(client, sid, monkeypatch):
    add_burger(client, sid)
    fill_checkout(client, sid)
    session = sessions.get(sid)
    wizard = session.checkout
    reopened = CheckoutWizard(session.cart, wizard.submitter)
    original_submit = wizard.submit

    async def submit_then_reopen():
        result = await original_submit()
        session.checkout = reopened
        return result

    monkeypatch.setattr(wizard, "submit", submit_then_reopen)

    response = client.post(f"/api/sessions/{sid}/checkout/submit")

    assert response.status_code == 200
    assert session.checkout is reopened
    assert client.get(f"/api/sessions/{sid}/checkout").status_code == 200


# =============================================================================
# STOCK & DASHBOARD
# =============================================================================

def test_stock_page(client):
    reset_inventory_repository()

    data = client.get("/api/restaurants/1/stock").json()
    assert data["settings"] == {"low_stock_threshold": 10, "expiry_alert_days": 1}
    assert data["metrics"]["total_items"] == 7
    assert data["metrics"]["out_of_stock"] == 1
    assert data["groups"][-1]["category"] == "Outros"

    low = client.get("/api/restaurants/1/stock", params={"status": "low"}).json()
    assert [i["name"] for g in low["groups"] for i in g["items"]] == ["Bacon"]

    searched = client.get("/api/restaurants/1/stock", params={"q": "PIC"}).json()
    assert [i["name"] for g in searched["groups"] for i in g["items"]] == ["Picles"]
    assert searched["metrics"] == data["metrics"]


def test_stock_page_rejects_bad_input(client):
    assert client.get("/api/restaurants/1/stock", params={"status": "empty"}).status_code == 422
    assert client.get("/api/restaurants/99/stock").status_code == 404


def test_dashboard_includes_stock_and_products(client):
    reset_inventory_repository()

    data = client.get("/api/restaurants/1/dashboard-data").json()

    assert data["active_products"] == 5
    assert "today_open_orders" in data
    assert data["stock"]["metrics"]["total_items"] == 7
    assert [i["name"] for i in data["stock"]["out_of_stock"]] == ["Picles"]
    assert data["stock"]["categories"][-1]["category"] == "Outros"


def test_checkout_deducts_demo_stock(client, sid):
    reset_inventory_repository()
    add_burger(client, sid, extras=[1])
    client.patch(f"/api/sessions/{sid}/cart/items/0", json={"quantity": 2})
    fill_checkout(client, sid)

    assert client.post(f"/api/sessions/{sid}/checkout/submit").status_code == 200

    stock = client.get("/api/restaurants/1/stock", params={"q": "bacon"}).json()
    bacon = stock["groups"][0]["items"][0]
    assert bacon["current_stock"] == pytest.approx(2.0)
    assert bacon["status"] == "low"


def test_delete_session(client):
    session_id = client.post("/api/sessions", json={}).json()["session_id"]

    assert client.delete(f"/api/sessions/{session_id}").json() == {"success": True}
    assert client.get(f"/api/sessions/{session_id}/cart").status_code == 404
