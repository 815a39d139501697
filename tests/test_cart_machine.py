import pytest

from farmly.core import cart_machine
from farmly.core.cart_machine import MAX_LINE_QUANTITY, AddAction, clamp_quantity, plan_add
from farmly.models.cart import CartLine, CartState, OrderKind


def line(pid=1, qty=1, price=2.0, stock=None):
    return CartLine(product_id=pid, product_name=f"P{pid}", seller_name="Farm", unit_price=price,
                    quantity=qty, stock=stock)


def test_add_to_empty_cart_sets_kind():
    state = cart_machine.add_item(CartState.empty(), line(1, 2), "STANDARD")
    assert state.kind is OrderKind.STANDARD
    assert state.event_id is None
    assert [(l.product_id, l.quantity) for l in state.lines] == [(1, 2)]


def test_add_same_product_merges_quantity():
    state = cart_machine.add_item(CartState.empty(), line(1, 2), "STANDARD")
    state = cart_machine.add_item(state, line(1, 3), "STANDARD")
    assert len(state.lines) == 1
    assert state.lines[0].quantity == 5


def test_merge_keeps_existing_price():
    state = cart_machine.add_item(CartState.empty(), line(1, 1, price=2.0), "STANDARD")
    state = cart_machine.add_item(state, line(1, 1, price=9.0), "STANDARD")
    assert state.lines[0].unit_price == 2.0


def test_add_other_product_appends_in_order():
    state = cart_machine.add_item(CartState.empty(), line(1), "STANDARD")
    state = cart_machine.add_item(state, line(2), "STANDARD")
    assert [l.product_id for l in state.lines] == [1, 2]


def test_kind_switch_replaces_cart():
    state = cart_machine.add_item(CartState.empty(), line(1), "STANDARD")
    state = cart_machine.add_item(state, line(2), "STANDARD")
    state = cart_machine.add_item(state, line(3), "PREORDER", event_id=7)
    assert state.kind is OrderKind.PREORDER
    assert state.event_id == 7
    assert [l.product_id for l in state.lines] == [3]

    state = cart_machine.add_item(state, line(4), "STANDARD", event_id=7)
    assert state.kind is OrderKind.STANDARD
    assert state.event_id is None
    assert [l.product_id for l in state.lines] == [4]


def test_other_event_replaces_preorder_cart():
    state = cart_machine.add_item(CartState.empty(), line(1), "PREORDER", event_id=7)
    state = cart_machine.add_item(state, line(1, 4), "PREORDER", event_id=8)
    assert state.event_id == 8
    assert [(l.product_id, l.quantity) for l in state.lines] == [(1, 4)]


def test_same_event_appends():
    state = cart_machine.add_item(CartState.empty(), line(1), "PREORDER", event_id=7)
    state = cart_machine.add_item(state, line(2), "PREORDER", event_id=7)
    assert state.event_id == 7
    assert len(state.lines) == 2


def test_plan_add_reports_each_outcome():
    empty = CartState.empty()
    standard = cart_machine.add_item(empty, line(1), "STANDARD")
    preorder = cart_machine.add_item(empty, line(1), "PREORDER", event_id=7)
    assert plan_add(empty, "STANDARD", product_id=1) is AddAction.APPEND
    assert plan_add(standard, "STANDARD", product_id=1) is AddAction.MERGE
    assert plan_add(standard, "PREORDER", 7, product_id=1) is AddAction.REPLACE_KIND
    assert plan_add(preorder, "PREORDER", 8, product_id=1) is AddAction.REPLACE_EVENT
    assert plan_add(preorder, "PREORDER", 7, product_id=2) is AddAction.APPEND
    assert plan_add(empty, "NONE", product_id=1) is AddAction.REJECT
    assert plan_add(empty, "WHOLESALE", product_id=1) is AddAction.REJECT


@pytest.mark.parametrize("kind", [None, "", "NONE", "bogus"])
def test_unknown_kind_is_ignored(kind):
    state = cart_machine.add_item(CartState.empty(), line(1), "STANDARD")
    assert cart_machine.add_item(state, line(2), kind) is state


def test_input_state_is_not_mutated():
    before = cart_machine.add_item(CartState.empty(), line(1), "STANDARD")
    snapshot = before.to_dict()
    cart_machine.add_item(before, line(1, 5), "STANDARD")
    cart_machine.add_item(before, line(9), "PREORDER", event_id=1)
    assert before.to_dict() == snapshot


def test_single_kind_and_unique_products_hold():
    state = CartState.empty()
    steps = [(1, "STANDARD", None), (2, "STANDARD", None), (1, "STANDARD", None),
             (3, "PREORDER", 5), (3, "PREORDER", 5), (4, "PREORDER", 6), (4, "PREORDER", 6)]
    for pid, kind, event in steps:
        state = cart_machine.add_item(state, line(pid), kind, event)
        ids = [l.product_id for l in state.lines]
        assert len(ids) == len(set(ids))
        if state.kind is not OrderKind.PREORDER:
            assert state.event_id is None
    assert state.kind is OrderKind.PREORDER
    assert state.event_id == 6
    assert [(l.product_id, l.quantity) for l in state.lines] == [(4, 2)]


def test_clamp_quantity():
    assert clamp_quantity(3) == 3
    assert clamp_quantity(0) == 1
    assert clamp_quantity(-4) == 1
    assert clamp_quantity(2.7) == 2
    assert clamp_quantity("x") == 1
    assert clamp_quantity(10, stock=4) == 4
    assert clamp_quantity(10, stock=0) == 0


def test_stock_caps_merge_and_rejects_sold_out():
    state = cart_machine.add_item(CartState.empty(), line(1, 3, stock=4), "STANDARD")
    state = cart_machine.add_item(state, line(1, 3, stock=4), "STANDARD")
    assert state.lines[0].quantity == 4

    sold_out = cart_machine.add_item(CartState.empty(), line(2, 1, stock=0), "STANDARD")
    assert sold_out.is_empty
    assert sold_out.kind is OrderKind.NONE


def test_remove_item_keeps_kind_and_event():
    state = cart_machine.add_item(CartState.empty(), line(1), "PREORDER", event_id=3)
    state = cart_machine.remove_item(state, 1)
    assert state.is_empty
    assert state.kind is OrderKind.PREORDER
    assert state.event_id == 3
    # unknown product is a no-op
    assert cart_machine.remove_item(state, 99).to_dict() == state.to_dict()


def test_clear_resets_everything():
    state = cart_machine.add_item(CartState.empty(), line(1), "PREORDER", event_id=3)
    assert cart_machine.clear() == CartState.empty()
    assert cart_machine.clear().to_dict() == {"type": None, "eventId": None, "items": []}
    assert not state.is_empty


def test_update_quantity():
    state = cart_machine.add_item(CartState.empty(), line(1, 2, stock=5), "STANDARD")
    assert cart_machine.update_quantity(state, 1, 4).lines[0].quantity == 4
    assert cart_machine.update_quantity(state, 1, 50).lines[0].quantity == 5
    assert cart_machine.update_quantity(state, 1, 0).lines[0].quantity == 1
    assert cart_machine.update_quantity(state, 42, 3) is state


def test_totals():
    state = cart_machine.add_item(CartState.empty(), line(1, 2, price=2.5), "STANDARD")
    state = cart_machine.add_item(state, line(2, 3, price=1.0), "STANDARD")
    assert cart_machine.total_price(state) == pytest.approx(8.0)
    assert cart_machine.item_count(state) == 5
    assert cart_machine.total_price(CartState.empty()) == 0.0


@pytest.mark.parametrize("huge, first", [
    (10 ** 400, MAX_LINE_QUANTITY),
    (2 ** 63, MAX_LINE_QUANTITY),
    (float("inf"), 1),
    ("1e400", 1),
])
def test_huge_quantities_are_capped(huge, first):
    state = cart_machine.add_item(CartState.empty(), line(1, huge), "STANDARD")
    assert state.lines[0].quantity == first

    merged = cart_machine.add_item(state, line(1, huge), "STANDARD")
    assert merged.lines[0].quantity <= MAX_LINE_QUANTITY

    updated = cart_machine.update_quantity(state, 1, 10 ** 400)
    assert updated.lines[0].quantity == MAX_LINE_QUANTITY
    assert cart_machine.total_price(updated) == pytest.approx(2.0 * MAX_LINE_QUANTITY)


def test_odd_stock_values_do_not_raise():
    assert clamp_quantity(5, stock=10 ** 400) == 5
    assert clamp_quantity(5, stock=float("nan")) == 5
    assert clamp_quantity(5, stock="3") == 3
    state = cart_machine.add_item(CartState.empty(), line(1, 2, stock=float("inf")), "STANDARD")
    assert cart_machine.add_item(state, line(1, 2), "STANDARD").lines[0].quantity == 4


def _expected_total(state):
    return sum(l.unit_price * l.quantity for l in state.lines)


@pytest.mark.parametrize("steps", [
    [("add", 1, 2, 2.5, "STANDARD", None), ("add", 2, 1, 4.0, "STANDARD", None),
     ("add", 1, 3, 9.0, "STANDARD", None), ("remove", 2), ("add", 3, 1, 1.25, "STANDARD", None),
     ("remove", 1), ("remove", 3)],
    [("add", 1, 1, 3.0, "PREORDER", 4), ("add", 2, 2, 1.5, "PREORDER", 4),
     ("add", 5, 1, 7.0, "STANDARD", None), ("add", 5, 4, 7.0, "STANDARD", None),
     ("add", 6, 2, 0.5, "PREORDER", 9), ("remove", 6), ("add", 7, 3, 2.0, "PREORDER", 9)],
    [("add", 1, 1, 1.0, "bogus", None), ("remove", 42), ("add", 1, 0, 1.0, "STANDARD", None),
     ("add", 1, 2, 1.0, "STANDARD", None), ("remove", 1), ("add", 2, 5, 0.1, "STANDARD", None)],
])
def test_total_matches_lines_after_every_step(steps):
    state = CartState.empty()
    for step in steps:
        if step[0] == "add":
            _, pid, qty, price, kind, event = step
            state = cart_machine.add_item(state, line(pid, qty, price=price), kind, event)
        else:
            state = cart_machine.remove_item(state, step[1])
        assert cart_machine.total_price(state) == pytest.approx(_expected_total(state))
        assert cart_machine.item_count(state) == sum(l.quantity for l in state.lines)
        assert all(l.quantity >= 1 for l in state.lines)
