import logging
from datetime import datetime

from config.constants import USERS
from models.user import Actor, UserRole
from utils import cloudinary as image_store
from utils import notifications
from utils.audit import log_audit
from utils.cascade import apply_plan, load_user_state, plan_ban_user
from utils.errors import AlreadyExists, Forbidden, InvalidState, NotFound
from utils.notifications import NotificationEvent
from utils.mongo import serialize_value

logger = logging.getLogger(__name__)

REMOVE_ADMIN = "REMOVE_ADMIN"


def _cascade_summary(plan) -> dict:
    return {
        "user_id": str(plan.target_id),
        "deleted_products": len(plan.deleted_product_ids),
        "cancelled_orders": len(plan.cancelled_order_ids),
    }


# ======================================================
# BAN USER (SOFT DELETE + CASCADE)
# ======================================================

async def ban_user(store, actor: Actor, user_id) -> dict:
    now = datetime.utcnow()

    async def work(tx):
        user = await tx.get(USERS, user_id)
        if not user:
            raise NotFound("User not found")

        state = await load_user_state(tx, user)
        plan = plan_ban_user(state, now)
        await apply_plan(tx, plan, actor)
        return plan

    plan = await store.run_transaction(work)
    logger.info(
        "USER_BANNED user=%s admin=%s products=%s orders_cancelled=%s",
        plan.target_id,
        actor.user_id,
        len(plan.deleted_product_ids),
        len(plan.cancelled_order_ids),
    )

    image_store.schedule_image_cleanup(plan.image_public_ids)
    return _cascade_summary(plan)


# ======================================================
# ADD ADMIN (SUPER ADMIN ONLY)
# ======================================================

async def add_admin(store, actor: Actor, data: dict) -> dict:
    if not actor.is_super_admin:
        raise Forbidden("Super admin access required")

    email = data["email"].strip().lower()
    now = datetime.utcnow()

    async def work(tx):
        if await tx.find_one(USERS, {"email": email}):
            raise AlreadyExists("Email already registered")

        user = await tx.insert(USERS, {
            "email": email,
            "full_name": data["full_name"],
            "phone_number": data.get("phone_number"),
            "address": data.get("address"),
            "role": UserRole.ADMIN.value,
            "is_super_admin": False,
            "is_deleted": False,
            "deleted_at": None,
            "created_at": now,
        })

        await log_audit(
            tx,
            actor_id=actor.user_id,
            actor_role=actor.role,
            action="ADMIN_ADDED",
            metadata={"user_id": str(user["_id"])},
        )
        return user

    user = await store.run_transaction(work)
    logger.info("ADMIN_ADDED user=%s by=%s", user["_id"], actor.user_id)

    return {
        "id": serialize_value(user["_id"]),
        "email": user["email"],
        "full_name": user["full_name"],
        "role": user["role"],
        "is_super_admin": user["is_super_admin"],
        "created_at": serialize_value(user["created_at"]),
    }


# ======================================================
# REMOVE ADMIN (SUPER ADMIN ONLY)
# ======================================================

async def remove_admin(store, actor: Actor, user_id) -> dict:
    if not actor.is_super_admin:
        raise Forbidden("Super admin access required")

    now = datetime.utcnow()

    async def work(tx):
        user = await tx.get(USERS, user_id)
        if not user or user.get("is_deleted"):
            raise NotFound("User not found")

        if user.get("role") != UserRole.ADMIN.value:
            raise InvalidState("User is not an admin")

        state = await load_user_state(tx, user)
        plan = plan_ban_user(state, now)
        plan.trigger = REMOVE_ADMIN
        await apply_plan(tx, plan, actor)
        return plan

    plan = await store.run_transaction(work)
    logger.info("ADMIN_REMOVED user=%s by=%s", plan.target_id, actor.user_id)

    image_store.schedule_image_cleanup(plan.image_public_ids)
    return _cascade_summary(plan)


# ======================================================
# RESTORE USER
# ======================================================

async def restore_user(store, actor: Actor, user_id) -> dict:
    """
    Lifts the user's own soft delete only. Seller profile, products and
    cancelled orders removed by the ban stay as they are; a former seller
    comes back as a buyer and must apply again.
    """
    if not actor.is_super_admin:
        raise Forbidden("Super admin access required")

    now = datetime.utcnow()

    async def work(tx):
        user = await tx.get(USERS, user_id)
        if not user:
            raise NotFound("User not found")

        if not user.get("is_deleted"):
            raise InvalidState("User is not banned")

        fields = {"is_deleted": False, "deleted_at": None, "updated_at": now}
        if user.get("role") == UserRole.SELLER.value:
            fields["role"] = UserRole.BUYER.value

        matched = await tx.update(USERS, user["_id"], fields, where={"is_deleted": True})
        if not matched:
            raise InvalidState("User is not banned")

        await log_audit(
            tx,
            actor_id=actor.user_id,
            actor_role=actor.role,
            action="USER_RESTORED",
            metadata={"user_id": str(user["_id"])},
        )

        restored = dict(user)
        restored.update(fields)
        return restored

    user = await store.run_transaction(work)
    logger.info("USER_RESTORED user=%s admin=%s", user["_id"], actor.user_id)

    notifications.notify(
        NotificationEvent.ACCOUNT_RESTORED,
        user.get("email"),
        {"full_name": user.get("full_name")},
    )
    return {"user_id": str(user["_id"]), "role": user.get("role")}
