import logging
from datetime import datetime
from typing import List

from config.constants import SELLER_PROFILES, USERS
from models.user import Actor, SellerType
from utils import cloudinary as image_store
from utils import notifications
from utils.cascade import (
    apply_plan,
    coerce_seller_type,
    load_seller_state,
    plan_approve_seller,
    plan_remove_seller,
    plan_retype_seller,
)
from utils.errors import AlreadyExists, InvalidState, NotFound
from utils.mongo import serialize_doc
from utils.notifications import NotificationEvent
from utils.serializers import serialize_user_brief

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "business_name",
    "business_description",
    "payment_methods",
    "average_shipping_cost",
    "estimated_delivery_days",
    "shipping_regions",
    "social_links",
)

# set at application time and never cleared afterwards
REQUIRED_PROFILE_FIELDS = ("business_name", "payment_methods")


# ======================================================
# SELLER SELF-SERVICE
# ======================================================

async def apply_for_seller(store, actor: Actor, application: dict) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        existing = await tx.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
        if existing:
            if existing.get("is_approved"):
                raise AlreadyExists("You are already an approved seller")
            raise AlreadyExists("Your seller application is pending approval")

        profile = {field: application.get(field) for field in PROFILE_FIELDS}
        profile.update({
            "user_id": actor.user_id,
            "is_approved": False,
            "seller_type": None,
            "is_deleted": False,
            "deleted_at": None,
            "created_at": now,
            "updated_at": now,
        })
        return await tx.insert(SELLER_PROFILES, profile)

    profile = await store.run_transaction(work)
    logger.info("SELLER_APPLIED profile=%s user=%s", profile["_id"], actor.user_id)
    return serialize_doc(profile)


async def get_my_profile(store, actor: Actor) -> dict:
    profile = await store.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not profile:
        raise NotFound("Seller profile not found")
    return serialize_doc(profile)


async def update_my_profile(store, actor: Actor, changes: dict) -> dict:
    # seller_type and approval are admin-owned and never accepted here
    fields = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
    if not fields:
        raise InvalidState("No fields to update")

    for key in REQUIRED_PROFILE_FIELDS:
        if key in fields and not fields[key]:
            raise InvalidState(f"{key} cannot be cleared")

    fields["updated_at"] = datetime.utcnow()

    async def work(tx):
        profile = await tx.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
        if not profile:
            raise NotFound("Seller profile not found")

        matched = await tx.update(SELLER_PROFILES, profile["_id"], fields, where={"is_deleted": False})
        if not matched:
            raise NotFound("Seller profile not found")

        updated = dict(profile)
        updated.update(fields)
        return updated

    return serialize_doc(await store.run_transaction(work))


# ======================================================
# ADMIN
# ======================================================

async def _with_users(store, profiles: List[dict]) -> List[dict]:
    user_ids = list({p["user_id"] for p in profiles})
    users = {}
    if user_ids:
        for u in await store.find(USERS, {"_id": {"$in": user_ids}}):
            users[u["_id"]] = u

    results = []
    for profile in profiles:
        data = serialize_doc(profile)
        data["user"] = serialize_user_brief(users.get(profile["user_id"]))
        results.append(data)
    return results


async def list_pending_sellers(store) -> List[dict]:
    profiles = await store.find(
        SELLER_PROFILES,
        {"is_approved": False, "is_deleted": False},
        sort=[("created_at", -1)],
    )
    return await _with_users(store, profiles)


async def list_sellers(store) -> List[dict]:
    profiles = await store.find(SELLER_PROFILES, {"is_deleted": False}, sort=[("created_at", -1)])
    return await _with_users(store, profiles)


async def approve_seller(store, actor: Actor, seller_id, seller_type: SellerType) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        profile = await tx.get(SELLER_PROFILES, seller_id)
        owner = await tx.get(USERS, profile["user_id"]) if profile else None

        plan = plan_approve_seller(profile, owner, seller_type, now)
        await apply_plan(tx, plan, actor, {"seller_type": coerce_seller_type(seller_type).value})

        return await tx.get(SELLER_PROFILES, seller_id), owner

    profile, owner = await store.run_transaction(work)
    logger.info("SELLER_APPROVED profile=%s type=%s", profile["_id"], profile.get("seller_type"))

    notifications.notify(
        NotificationEvent.SELLER_APPROVED,
        owner.get("email"),
        {
            "seller_id": str(profile["_id"]),
            "business_name": profile.get("business_name"),
            "seller_type": profile.get("seller_type"),
        },
    )
    return serialize_doc(profile)


async def retype_seller(store, actor: Actor, seller_id, seller_type: SellerType) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        profile = await tx.get(SELLER_PROFILES, seller_id)

        plan = plan_retype_seller(profile, seller_type, now)
        results = await apply_plan(tx, plan, actor, {"seller_type": coerce_seller_type(seller_type).value})

        return await tx.get(SELLER_PROFILES, seller_id), results[1]

    profile, updated_products = await store.run_transaction(work)
    logger.info(
        "SELLER_RETYPED profile=%s type=%s products=%s",
        profile["_id"],
        profile.get("seller_type"),
        updated_products,
    )

    data = serialize_doc(profile)
    data["updated_products"] = updated_products
    return data


async def remove_seller(store, actor: Actor, seller_id) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        profile = await tx.get(SELLER_PROFILES, seller_id)
        state = await load_seller_state(tx, profile)

        plan = plan_remove_seller(state, now)
        await apply_plan(tx, plan, actor)
        return plan

    plan = await store.run_transaction(work)
    logger.info(
        "SELLER_REMOVED profile=%s products=%s orders_cancelled=%s",
        plan.target_id,
        len(plan.deleted_product_ids),
        len(plan.cancelled_order_ids),
    )

    image_store.schedule_image_cleanup(plan.image_public_ids)
    return {
        "seller_id": str(plan.target_id),
        "deleted_products": len(plan.deleted_product_ids),
        "cancelled_orders": len(plan.cancelled_order_ids),
    }
