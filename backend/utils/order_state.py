from datetime import datetime
from typing import Optional

from models.order import OrderStatus
from utils.errors import Forbidden, InvalidState, InvalidTransition

# ============================================================
# ORDER STATE MACHINE
# ============================================================
# Seller-driven transitions move exactly one step forward.
# CANCELLED is entered only through cancel() (buyer, PENDING only)
# or through the cascade engine.
# ============================================================

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: OrderStatus.ACCEPTED,
    OrderStatus.ACCEPTED: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
    OrderStatus.DELIVERED: None,
    OrderStatus.CANCELLED: None,
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def next_status(status) -> Optional[OrderStatus]:
    try:
        return ORDER_TRANSITIONS[OrderStatus(status)]
    except ValueError:
        return None


def is_terminal(status) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


# statuses a cascade is allowed to cancel
ACTIVE_STATUSES = tuple(s.value for s in OrderStatus if not is_terminal(s))


def _coerce_status(value) -> Optional[OrderStatus]:
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def advance(order: dict, requested_status, actor_seller_id, now: Optional[datetime] = None) -> dict:
    """
    Validate a seller-initiated status change and return the updated
    order document. Nothing is persisted here.
    """
    if order.get("seller_id") != actor_seller_id:
        raise Forbidden("You can only update your own orders")

    if order.get("is_cancelled"):
        raise InvalidState("Cannot update cancelled orders")

    current = order.get("status")
    requested = _coerce_status(requested_status)
    allowed = next_status(current)

    if requested is None or allowed is None or requested != allowed:
        target = requested.value if requested else requested_status
        raise InvalidTransition(f"Cannot change status from {current} to {target}")

    now = now or datetime.utcnow()
    updated = dict(order)
    updated["status"] = requested.value
    updated["updated_at"] = now
    if requested == OrderStatus.ACCEPTED:
        updated["accepted_at"] = now
    if requested == OrderStatus.DELIVERED:
        updated["delivered_at"] = now
    return updated


def cancel(order: dict, requesting_buyer_id, now: Optional[datetime] = None) -> dict:
    if order.get("buyer_id") != requesting_buyer_id:
        raise Forbidden("You can only cancel your own orders")

    if order.get("is_cancelled") or order.get("status") != OrderStatus.PENDING.value:
        raise InvalidState("Only pending orders can be cancelled")

    now = now or datetime.utcnow()
    updated = dict(order)
    updated.update(cancellation_fields(now))
    return updated


def cancellation_fields(now: datetime) -> dict:
    # shared by buyer cancellation and cascade cancellation
    return {
        "status": OrderStatus.CANCELLED.value,
        "is_cancelled": True,
        "cancelled_at": now,
        "updated_at": now,
    }


def changed_fields(before: dict, after: dict) -> dict:
    return {k: v for k, v in after.items() if k != "_id" and before.get(k) != v}
