import random

import pytest

from cardapio.services.cart import CartStore, ProductSnapshot, SelectedExtra

BURGER = ProductSnapshot(id=1, name="X Burger", price=20.0, removables=("Cebola", "Picles"))
SODA = ProductSnapshot(id=4, name="Refrigerante Lata", price=6.0)
BACON = SelectedExtra(name="Bacon", price=4.0, qty=1, extra_id=1)


def expected_total(cart: CartStore) -> float:
    return sum(
        (item.product.price + sum(e.price * e.qty for e in item.extras)) * item.quantity
        for item in cart.items
    )


def test_add_item_appends_line_with_quantity_one(cart):
    item = cart.add_item(BURGER, ["Cebola"], [BACON])

    assert len(cart) == 1
    assert item.quantity == 1
    assert item.removed == ["Cebola"]
    assert cart.total == pytest.approx(24.0)


def test_identical_products_are_not_merged(cart):
    cart.add_item(SODA, [], [])
    cart.add_item(SODA, [], [])

    assert len(cart) == 2
    assert cart.item_count == 2


def test_update_quantity_to_zero_removes_line(cart):
    cart.add_item(BURGER, [], [])
    cart.add_item(SODA, [], [])

    cart.update_quantity(0, 0)

    assert [i.product.name for i in cart.items] == ["Refrigerante Lata"]


def test_update_quantity_negative_removes_line(cart):
    cart.add_item(BURGER, [], [])
    cart.update_quantity(0, -3)
    assert not cart


def test_out_of_range_index_is_ignored(cart):
    cart.add_item(BURGER, [], [])

    cart.remove_item(5)
    cart.update_quantity(7, 3)

    assert len(cart) == 1
    assert cart.items[0].quantity == 1


def test_remove_shifts_following_lines(cart):
    for product in (BURGER, SODA, BURGER):
        cart.add_item(product, [], [])

    cart.remove_item(0)

    assert [i.product.id for i in cart.items] == [4, 1]


def test_clear_cart(cart):
    cart.add_item(BURGER, [], [BACON])
    cart.clear_cart()
    assert cart.total == 0
    assert cart.to_dict()["items"] == []


def test_items_returns_a_copy(cart):
    cart.add_item(BURGER, [], [])
    cart.items.clear()
    assert len(cart) == 1


EXTRA_MENU = [
    SelectedExtra(name="Bacon", price=4.0, qty=1, extra_id=1),
    SelectedExtra(name="Cheddar", price=3.5, qty=2, extra_id=2),
    SelectedExtra(name="Ovo", price=2.25, qty=3, extra_id=3),
    SelectedExtra(name="Molho", price=0.9, qty=1, extra_id=4),
]


def test_total_matches_lines_after_random_edits(cart):
    rng = random.Random(1234)
    products = [BURGER, SODA, ProductSnapshot(id=5, name="Suco", price=7.49)]

    for _ in range(500):
        op = rng.choice(["add", "add", "qty", "remove"])
        if op == "add" or not cart:
            extras = rng.sample(EXTRA_MENU, rng.randint(0, 3))
            cart.add_item(rng.choice(products), [], extras)
        elif op == "qty":
            cart.update_quantity(rng.randrange(len(cart)), rng.randint(-1, 20))
        else:
            cart.remove_item(rng.randrange(len(cart) + 1))

        assert cart.total == pytest.approx(expected_total(cart))
        assert cart.item_count == sum(item.quantity for item in cart.items)
        assert all(1 <= item.quantity <= 20 for item in cart.items)


def test_to_dict_rounds_total(cart):
    cart.add_item(ProductSnapshot(id=9, name="Suco", price=8.5), [], [])
    cart.update_quantity(0, 3)

    data = cart.to_dict()

    assert data["total"] == 25.5
    assert data["item_count"] == 3
    assert data["items"][0]["product"]["name"] == "Suco"


def test_snapshot_is_independent(cart):
    cart.add_item(BURGER, ["Cebola"], [BACON])
    frozen = cart.snapshot()

    cart.update_quantity(0, 4)
    cart.items[0].removed.append("Picles")
    cart.add_item(SODA, [], [])

    assert len(frozen) == 1
    assert frozen.items[0].quantity == 1
    assert frozen.items[0].removed == ["Cebola"]
    assert frozen.total == pytest.approx(24.0)


def test_discard_lines_keeps_newer_lines(cart):
    cart.add_item(BURGER, [], [])
    cart.add_item(BURGER, [], [])
    taken = cart.items
    soda = cart.add_item(SODA, [], [])

    cart.discard_lines(taken)

    assert cart.items == [soda]
