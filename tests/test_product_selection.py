import copy

import pytest

from cardapio.core.errors import ProductNotFoundError
from cardapio.services.catalog.mock import MockCatalogService
from cardapio.services.product_selection import (
    EXTRAS_STEP,
    INFO_STEP,
    REMOVABLES_STEP,
    StepKind,
    StepType,
    count_steps,
    open_selection,
    resolve_step,
)


# =============================================================================
# STEP RESOLUTION
# =============================================================================

def test_resolve_step_full_wizard():
    steps = [resolve_step(i, True, True, 2) for i in range(count_steps(True, True, 2))]

    assert [s.key for s in steps] == ["info", "removables", "extras", "crosssell-0", "crosssell-1"]


def test_resolve_step_skips_missing_sections():
    assert resolve_step(1, False, True, 1) == EXTRAS_STEP
    assert resolve_step(2, False, True, 1) == StepKind(StepType.CROSS_SELL, 0)
    assert resolve_step(1, True, False, 0) == REMOVABLES_STEP


@pytest.mark.parametrize("index", [-1, 1, 5, 99])
def test_resolve_step_out_of_range_is_info(index):
    assert resolve_step(index, False, False, 0) == INFO_STEP


def test_count_steps_minimum_is_one():
    assert count_steps(False, False, 0) == 1


# =============================================================================
# SELECTION
# =============================================================================

async def test_open_selection_loads_options(catalog):
    selection = await open_selection(catalog, 1)

    assert selection.options.removables == ["Cebola", "Picles"]
    assert [e.name for e in selection.options.extras] == ["Bacon", "Cheddar"]
    assert [s.label for s in selection.options.cross_sell] == ["Que tal uma batata?", "Algo para beber?"]
    assert [p.name for p in selection.options.cross_sell[1].products] == ["Refrigerante Lata", "Suco Natural"]
    assert selection.total_steps == 5


async def test_open_unknown_product_raises(catalog):
    with pytest.raises(ProductNotFoundError):
        await open_selection(catalog, 999)


async def test_steps_never_leave_range(catalog):
    selection = await open_selection(catalog, 1)

    assert not selection.previous_step()
    for _ in range(10):
        selection.next_step()

    assert selection.step == selection.total_steps - 1
    assert selection.current_step.key == "crosssell-1"
    assert not selection.can_go_next


async def test_toggle_removed_twice_restores(catalog):
    selection = await open_selection(catalog, 1)

    selection.toggle_removed("Cebola")
    selection.toggle_removed("Picles")
    selection.toggle_removed("Cebola")

    assert selection.removed == ["Picles"]


async def test_extra_quantity_never_negative(catalog):
    selection = await open_selection(catalog, 1)

    assert selection.change_extra(1, -1) == 0
    assert selection.change_extra(1, 2) == 2
    assert selection.change_extra(1, -5) == 0
    assert selection.selected_extras() == []


async def test_preview_price_uses_sell_price_plus_extras(catalog):
    selection = await open_selection(catalog, 1)
    selection.change_extra(1, 1)
    selection.change_extra(2, 2)

    assert selection.preview_price == pytest.approx(20.0 + 4.0 + 7.0)


async def test_add_to_cart_creates_line_and_resets(catalog, cart):
    selection = await open_selection(catalog, 1)
    selection.next_step()
    selection.toggle_removed("Cebola")
    selection.change_extra(1, 1)

    item = selection.add_to_cart(cart)

    assert item.removed == ["Cebola"]
    assert [(e.name, e.qty) for e in item.extras] == [("Bacon", 1)]
    assert item.product.removables == ("Cebola", "Picles")
    assert cart.total == pytest.approx(24.0)
    assert selection.step == 0
    assert selection.removed == []
    assert selection.extra_quantities == {}


async def test_cart_price_ignores_promo_price(catalog, cart):
    selection = await open_selection(catalog, 2)
    item = selection.add_to_cart(cart)

    assert item.product.price == pytest.approx(22.90)


async def test_cancel_is_idempotent_and_leaves_cart(catalog, cart):
    first = await open_selection(catalog, 1)
    first.toggle_removed("Picles")
    first.change_extra(1, 2)
    first.add_to_cart(cart)
    (await open_selection(catalog, 4)).add_to_cart(cart)
    cart.update_quantity(1, 3)
    before = copy.deepcopy(cart.to_dict())

    selection = await open_selection(catalog, 1)
    selection.toggle_removed("Cebola")
    selection.change_extra(2, 1)
    selection.next_step()
    selection.next_step()
    selection.cancel()
    selection.cancel()

    assert cart.to_dict() == before
    assert selection.removed == []
    assert selection.extra_quantities == {}
    assert selection.step == 0


async def test_cross_sell_adds_plain_line_immediately(catalog, cart):
    selection = await open_selection(catalog, 1)
    selection.toggle_removed("Cebola")

    item = selection.add_cross_sell(cart, 3)

    assert item.product.name == "Batata Frita"
    assert item.removed == [] and item.extras == []
    assert selection.removed == ["Cebola"]
    assert len(cart) == 1


async def test_cross_sell_rejects_product_not_suggested(catalog, cart):
    selection = await open_selection(catalog, 1)

    with pytest.raises(ProductNotFoundError):
        selection.add_cross_sell(cart, 2)
    assert len(cart) == 0


async def test_failed_option_lookups_degrade_to_info_only(cart):
    demo = MockCatalogService.demo()
    degraded = MockCatalogService(
        restaurants=demo.restaurants,
        categories=demo.categories,
        products=demo.products,
        removables=demo.removables,
        extras=demo.extras,
        cross_sell_rules=demo.cross_sell_rules,
        options_unavailable=True,
    )

    selection = await open_selection(degraded, 1)

    assert selection.total_steps == 1
    assert selection.current_step == INFO_STEP
    selection.add_to_cart(cart)
    assert cart.total == pytest.approx(20.0)
