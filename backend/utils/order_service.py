import logging
from datetime import datetime
from typing import List, Optional

from config.constants import ORDERS, PRODUCTS, SELLER_PROFILES, USERS
from models.order import OrderStatus
from models.user import Actor
from utils import notifications
from utils import order_state
from utils.approval_gate import can_transact, is_active_seller
from utils.errors import Forbidden, InvalidState, NotFound
from utils.notifications import NotificationEvent
from utils.order_timeline import record_order_event
from utils.serializers import serialize_order

logger = logging.getLogger(__name__)


def _notification_payload(order: dict, product: Optional[dict], seller: Optional[dict]) -> dict:
    return {
        "order_id": str(order["_id"]),
        "status": order.get("status"),
        "product_name": (product or {}).get("name"),
        "price": (product or {}).get("price"),
        "business_name": (seller or {}).get("business_name"),
    }


async def _active_seller_profile(tx, actor: Actor) -> dict:
    profile = await tx.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not profile:
        raise NotFound("Seller profile not found")
    if not is_active_seller(profile):
        raise Forbidden("Seller account not approved or deactivated")
    return profile


# ======================================================
# PLACE ORDER (BUYER)
# ======================================================

async def place_order(
    store,
    actor: Actor,
    product_id,
    *,
    buyer_address: str,
    buyer_phone: str,
    buyer_notes: Optional[str] = None,
) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        product = await tx.get(PRODUCTS, product_id)
        if not product:
            raise NotFound("Product not available")

        seller = await tx.get(SELLER_PROFILES, product["seller_id"])

        # checked before availability so it holds for every product state
        if seller and seller.get("user_id") == actor.user_id:
            raise Forbidden("You cannot order your own product")

        if not can_transact(seller, product):
            raise NotFound("Product not available")

        order = {
            "buyer_id": actor.user_id,
            "seller_id": seller["_id"],
            "product_id": product["_id"],
            "buyer_address": buyer_address,
            "buyer_phone": buyer_phone,
            "buyer_notes": buyer_notes,
            "status": OrderStatus.PENDING.value,
            "is_cancelled": False,
            "accepted_at": None,
            "delivered_at": None,
            "cancelled_at": None,
            "created_at": now,
            "updated_at": now,
        }
        await tx.insert(ORDERS, order)

        await record_order_event(
            tx,
            order_id=order["_id"],
            event="ORDER_CREATED",
            actor_role="buyer",
            actor_id=actor.user_id,
            metadata={"product_id": str(product["_id"])},
        )

        seller_user = await tx.get(USERS, seller["user_id"])
        return order, product, seller, seller_user

    order, product, seller, seller_user = await store.run_transaction(work)

    logger.info(
        "ORDER_PLACED order=%s buyer=%s seller=%s",
        order["_id"],
        actor.user_id,
        seller["_id"],
    )

    payload = _notification_payload(order, product, seller)
    notifications.notify(
        NotificationEvent.ORDER_PLACED,
        actor.email,
        {**payload, "buyer_name": actor.full_name},
    )
    notifications.notify(
        NotificationEvent.NEW_ORDER,
        (seller_user or {}).get("email"),
        {**payload, "buyer_name": actor.full_name, "buyer_address": buyer_address},
    )

    return serialize_order(order, product=product, seller=seller, seller_user=seller_user)


# ======================================================
# SELLER ADVANCES ORDER
# ======================================================

async def advance_order(store, actor: Actor, order_id, requested_status) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        profile = await _active_seller_profile(tx, actor)

        order = await tx.get(ORDERS, order_id)
        if not order:
            raise NotFound("Order not found")

        updated = order_state.advance(order, requested_status, profile["_id"], now)

        matched = await tx.update(
            ORDERS,
            order["_id"],
            order_state.changed_fields(order, updated),
            where={"status": order["status"], "is_cancelled": False},
        )
        if not matched:
            raise InvalidState("Order was modified by another request")

        await record_order_event(
            tx,
            order_id=order["_id"],
            event=f"ORDER_{updated['status']}",
            actor_role="seller",
            actor_id=actor.user_id,
            metadata={"from": order["status"], "to": updated["status"]},
        )

        buyer = await tx.get(USERS, order["buyer_id"])
        product = await tx.get(PRODUCTS, order["product_id"])
        seller_user = await tx.get(USERS, profile["user_id"])
        return updated, buyer, product, profile, seller_user

    updated, buyer, product, profile, seller_user = await store.run_transaction(work)

    logger.info("ORDER_STATUS_CHANGED order=%s status=%s", updated["_id"], updated["status"])

    payload = _notification_payload(updated, product, profile)
    payload["buyer_name"] = (buyer or {}).get("full_name")

    if updated["status"] == OrderStatus.ACCEPTED.value:
        # first point at which the buyer may see how to reach the seller
        payload["seller_contact"] = {
            "email": (seller_user or {}).get("email"),
            "phone_number": (seller_user or {}).get("phone_number"),
            "payment_methods": profile.get("payment_methods") or [],
        }
        notifications.notify(NotificationEvent.ORDER_ACCEPTED, (buyer or {}).get("email"), payload)
    else:
        notifications.notify(NotificationEvent.ORDER_STATUS_CHANGED, (buyer or {}).get("email"), payload)

    return serialize_order(updated, product=product, seller=profile, seller_user=seller_user, buyer=buyer)


# ======================================================
# BUYER CANCELS ORDER
# ======================================================

async def cancel_order(store, actor: Actor, order_id) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        order = await tx.get(ORDERS, order_id)
        if not order:
            raise NotFound("Order not found")

        updated = order_state.cancel(order, actor.user_id, now)

        matched = await tx.update(
            ORDERS,
            order["_id"],
            order_state.changed_fields(order, updated),
            where={"status": OrderStatus.PENDING.value, "is_cancelled": False},
        )
        if not matched:
            raise InvalidState("Only pending orders can be cancelled")

        await record_order_event(
            tx,
            order_id=order["_id"],
            event="ORDER_CANCELLED_BY_BUYER",
            actor_role="buyer",
            actor_id=actor.user_id,
        )

        product = await tx.get(PRODUCTS, order["product_id"])
        seller = await tx.get(SELLER_PROFILES, order["seller_id"])
        return updated, product, seller

    updated, product, seller = await store.run_transaction(work)

    logger.info("ORDER_CANCELLED order=%s buyer=%s", updated["_id"], actor.user_id)

    notifications.notify(
        NotificationEvent.ORDER_CANCELLED,
        actor.email,
        {**_notification_payload(updated, product, seller), "buyer_name": actor.full_name},
    )

    return serialize_order(updated, product=product, seller=seller)


# ======================================================
# LISTINGS
# ======================================================

async def _index_by_id(store, collection: str, ids) -> dict:
    ids = list({i for i in ids if i is not None})
    if not ids:
        return {}
    docs = await store.find(collection, {"_id": {"$in": ids}})
    return {d["_id"]: d for d in docs}


async def list_buyer_orders(store, actor: Actor, status: Optional[OrderStatus] = None) -> List[dict]:
    query = {"buyer_id": actor.user_id}
    if status:
        query["status"] = OrderStatus(status).value

    orders = await store.find(ORDERS, query, sort=[("created_at", -1)])

    products = await _index_by_id(store, PRODUCTS, (o["product_id"] for o in orders))
    sellers = await _index_by_id(store, SELLER_PROFILES, (o["seller_id"] for o in orders))
    seller_users = await _index_by_id(store, USERS, (s.get("user_id") for s in sellers.values()))

    results = []
    for order in orders:
        seller = sellers.get(order["seller_id"])
        results.append(serialize_order(
            order,
            product=products.get(order["product_id"]),
            seller=seller,
            seller_user=seller_users.get((seller or {}).get("user_id")),
        ))
    return results


async def list_seller_orders(store, actor: Actor, status: Optional[OrderStatus] = None) -> List[dict]:
    profile = await store.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not profile:
        raise NotFound("Seller profile not found")

    query = {"seller_id": profile["_id"]}
    if status:
        query["status"] = OrderStatus(status).value

    orders = await store.find(ORDERS, query, sort=[("created_at", -1)])

    products = await _index_by_id(store, PRODUCTS, (o["product_id"] for o in orders))
    buyers = await _index_by_id(store, USERS, (o["buyer_id"] for o in orders))

    return [
        serialize_order(
            order,
            product=products.get(order["product_id"]),
            buyer=buyers.get(order["buyer_id"]),
        )
        for order in orders
    ]
