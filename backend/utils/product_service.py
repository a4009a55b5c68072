import logging
from datetime import datetime
from typing import List, Optional

from config.constants import PRODUCTS, SELLER_PROFILES, USERS
from models.user import Actor, SellerType
from utils import cloudinary as image_store
from utils import notifications
from utils.approval_gate import can_transact, can_view_product, is_active_seller
from utils.audit import log_audit
from utils.cascade import product_image_ids, soft_delete_fields
from utils.errors import AlreadyApproved, Forbidden, InvalidState, NotFound
from utils.notifications import NotificationEvent
from utils.serializers import serialize_product

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "price", "category_id")


async def _own_live_product(tx, actor: Actor, product_id) -> dict:
    profile = await tx.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not profile:
        raise NotFound("Seller profile not found")

    product = await tx.get(PRODUCTS, product_id)
    if not product or product.get("is_deleted"):
        raise NotFound("Product not found")

    if product["seller_id"] != profile["_id"]:
        raise Forbidden("You can only manage your own products")

    return product


# ======================================================
# SELLER: CREATE / UPDATE / DELETE
# ======================================================

async def create_product(store, actor: Actor, data: dict) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        profile = await tx.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
        if not is_active_seller(profile):
            raise Forbidden("Seller account not approved")

        product = {
            "seller_id": profile["_id"],
            "name": data["name"],
            "description": data.get("description"),
            "price": data["price"],
            "category_id": data.get("category_id"),
            "images": data.get("images") or [],
            # derived from the seller; kept in sync by the retype cascade
            "product_type": profile.get("seller_type"),
            "is_approved": False,
            "is_deleted": False,
            "deleted_at": None,
            "created_at": now,
            "updated_at": now,
        }
        return await tx.insert(PRODUCTS, product)

    product = await store.run_transaction(work)
    logger.info("PRODUCT_CREATED product=%s seller=%s", product["_id"], product["seller_id"])
    return serialize_product(product)


async def update_product(store, actor: Actor, product_id, changes: dict) -> dict:
    fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    if not fields:
        raise InvalidState("No fields to update")

    now = datetime.utcnow()

    async def work(tx):
        product = await _own_live_product(tx, actor, product_id)

        # any content edit sends the product back through approval
        fields["is_approved"] = False
        fields["updated_at"] = now

        matched = await tx.update(PRODUCTS, product["_id"], fields, where={"is_deleted": False})
        if not matched:
            raise NotFound("Product not found")

        updated = dict(product)
        updated.update(fields)
        return updated

    product = await store.run_transaction(work)
    logger.info("PRODUCT_UPDATED product=%s reapproval=required", product["_id"])
    return serialize_product(product)


async def delete_product(store, actor: Actor, product_id) -> None:
    now = datetime.utcnow()

    async def work(tx):
        product = await _own_live_product(tx, actor, product_id)

        matched = await tx.update(PRODUCTS, product["_id"], soft_delete_fields(now), where={"is_deleted": False})
        if not matched:
            raise NotFound("Product not found")
        return product

    product = await store.run_transaction(work)
    logger.info("PRODUCT_DELETED product=%s by=seller", product["_id"])
    image_store.schedule_image_cleanup(product_image_ids([product]))


# ======================================================
# READS
# ======================================================

async def get_product(store, actor: Optional[Actor], product_id) -> dict:
    product = await store.get(PRODUCTS, product_id)
    seller = await store.get(SELLER_PROFILES, product["seller_id"]) if product else None

    if not can_view_product(product, seller, actor):
        raise NotFound("Product not found")

    return serialize_product(product, seller)


async def list_products(store, product_type: Optional[SellerType] = None) -> List[dict]:
    query = {"is_approved": True, "is_deleted": False}
    if product_type:
        query["product_type"] = SellerType(product_type).value

    products = await store.find(PRODUCTS, query, sort=[("created_at", -1)])

    seller_ids = list({p["seller_id"] for p in products})
    sellers = {}
    if seller_ids:
        for s in await store.find(SELLER_PROFILES, {"_id": {"$in": seller_ids}}):
            sellers[s["_id"]] = s

    return [
        serialize_product(p, sellers.get(p["seller_id"]))
        for p in products
        if can_transact(sellers.get(p["seller_id"]), p)
    ]


async def list_my_products(store, actor: Actor) -> List[dict]:
    profile = await store.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not profile:
        raise NotFound("Seller profile not found")

    products = await store.find(
        PRODUCTS,
        {"seller_id": profile["_id"], "is_deleted": False},
        sort=[("created_at", -1)],
    )
    return [serialize_product(p) for p in products]


# ======================================================
# ADMIN: APPROVE / REMOVE
# ======================================================

async def list_pending_products(store) -> List[dict]:
    products = await store.find(
        PRODUCTS,
        {"is_approved": False, "is_deleted": False},
        sort=[("created_at", -1)],
    )
    return [serialize_product(p) for p in products]


async def approve_product(store, actor: Actor, product_id) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        product = await tx.get(PRODUCTS, product_id)
        if not product or product.get("is_deleted"):
            raise NotFound("Product not found")

        if product.get("is_approved"):
            raise AlreadyApproved("Product is already approved")

        fields = {"is_approved": True, "approved_at": now, "updated_at": now}
        matched = await tx.update(
            PRODUCTS,
            product["_id"],
            fields,
            where={"is_approved": False, "is_deleted": False},
        )
        if not matched:
            raise AlreadyApproved("Product is already approved")

        await log_audit(
            tx,
            actor_id=actor.user_id,
            actor_role=actor.role,
            action="PRODUCT_APPROVED",
            metadata={"product_id": str(product["_id"])},
        )

        seller = await tx.get(SELLER_PROFILES, product["seller_id"])
        seller_user = await tx.get(USERS, seller["user_id"]) if seller else None

        updated = dict(product)
        updated.update(fields)
        return updated, seller, seller_user

    product, seller, seller_user = await store.run_transaction(work)
    logger.info("PRODUCT_APPROVED product=%s admin=%s", product["_id"], actor.user_id)

    notifications.notify(
        NotificationEvent.PRODUCT_APPROVED,
        (seller_user or {}).get("email"),
        {
            "product_id": str(product["_id"]),
            "product_name": product.get("name"),
            "business_name": (seller or {}).get("business_name"),
        },
    )
    return serialize_product(product)


async def remove_product(store, actor: Actor, product_id) -> None:
    now = datetime.utcnow()

    async def work(tx):
        product = await tx.get(PRODUCTS, product_id)
        if not product or product.get("is_deleted"):
            raise NotFound("Product not found")

        matched = await tx.update(PRODUCTS, product["_id"], soft_delete_fields(now), where={"is_deleted": False})
        if not matched:
            raise NotFound("Product not found")

        await log_audit(
            tx,
            actor_id=actor.user_id,
            actor_role=actor.role,
            action="PRODUCT_REMOVED",
            metadata={"product_id": str(product["_id"])},
        )
        return product

    product = await store.run_transaction(work)
    logger.info("PRODUCT_DELETED product=%s by=admin", product["_id"])
    image_store.schedule_image_cleanup(product_image_ids([product]))
