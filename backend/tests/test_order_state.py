from datetime import datetime

import pytest
from bson import ObjectId

from models.order import OrderStatus
from utils import order_state
from utils.errors import Forbidden, InvalidState, InvalidTransition

NOW = datetime(2024, 5, 1, 12, 0)
SELLER = ObjectId()
BUYER = ObjectId()


def _order(status=OrderStatus.PENDING, **overrides):
    doc = {
        "_id": ObjectId(),
        "seller_id": SELLER,
        "buyer_id": BUYER,
        "status": OrderStatus(status).value,
        "is_cancelled": False,
        "accepted_at": None,
        "delivered_at": None,
    }
    doc.update(overrides)
    return doc


@pytest.mark.parametrize(
    "current,target",
    [
        (OrderStatus.PENDING, OrderStatus.ACCEPTED),
        (OrderStatus.ACCEPTED, OrderStatus.PROCESSING),
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
    ],
)
def test_advance_moves_one_step(current, target):
    order = _order(current)
    updated = order_state.advance(order, target, SELLER, NOW)

    assert updated["status"] == target.value
    assert updated["updated_at"] == NOW
    assert order["status"] == current.value


def test_advance_rejects_skipping_and_going_back():
    for current in OrderStatus:
        if current == OrderStatus.CANCELLED:
            continue
        allowed = order_state.next_status(current)
        for target in OrderStatus:
            if target == allowed:
                continue
            with pytest.raises(InvalidTransition):
                order_state.advance(_order(current), target, SELLER, NOW)


def test_active_statuses_exclude_terminal_ones():
    assert order_state.ACTIVE_STATUSES == ("PENDING", "ACCEPTED", "PROCESSING", "SHIPPED")
    assert all(order_state.next_status(s) is None for s in OrderStatus if order_state.is_terminal(s))


def test_delivered_has_no_successor():
    order = _order(OrderStatus.DELIVERED)
    assert order_state.is_terminal(OrderStatus.DELIVERED)

    for target in OrderStatus:
        with pytest.raises(InvalidTransition):
            order_state.advance(order, target, SELLER, NOW)


def test_unknown_status_is_invalid_transition():
    with pytest.raises(InvalidTransition):
        order_state.advance(_order(), "TELEPORTED", SELLER, NOW)


def test_accept_and_deliver_stamp_timestamps():
    accepted = order_state.advance(_order(), OrderStatus.ACCEPTED, SELLER, NOW)
    assert accepted["accepted_at"] == NOW
    assert accepted["delivered_at"] is None

    delivered = order_state.advance(_order(OrderStatus.SHIPPED), "DELIVERED", SELLER, NOW)
    assert delivered["delivered_at"] == NOW


def test_advance_checks_ownership_first():
    order = _order(is_cancelled=True)
    with pytest.raises(Forbidden):
        order_state.advance(order, OrderStatus.ACCEPTED, ObjectId(), NOW)


def test_cancelled_order_is_frozen():
    order = order_state.cancel(_order(), BUYER, NOW)

    assert order["status"] == OrderStatus.CANCELLED.value
    assert order["is_cancelled"] is True
    assert order["cancelled_at"] == NOW

    with pytest.raises(InvalidState):
        order_state.advance(order, OrderStatus.ACCEPTED, SELLER, NOW)
    with pytest.raises(InvalidState):
        order_state.cancel(order, BUYER, NOW)


def test_cancel_requires_buyer():
    with pytest.raises(Forbidden):
        order_state.cancel(_order(), ObjectId(), NOW)


@pytest.mark.parametrize(
    "status",
    [OrderStatus.ACCEPTED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED],
)
def test_cancel_only_while_pending(status):
    with pytest.raises(InvalidState):
        order_state.cancel(_order(status), BUYER, NOW)


def test_changed_fields_skips_untouched_keys():
    before = _order()
    after = order_state.advance(before, OrderStatus.ACCEPTED, SELLER, NOW)

    assert order_state.changed_fields(before, after) == {
        "status": "ACCEPTED",
        "accepted_at": NOW,
        "updated_at": NOW,
    }
