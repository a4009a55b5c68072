import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from config.constants import (
    ORDERS,
    PRODUCTS,
    SELLER_PROFILES,
    USERS,
)
from models.user import Actor, SellerType, UserRole
from utils.audit import log_audit
from utils.errors import AlreadyApproved, Forbidden, InvalidState, MarketplaceError, NotFound
from utils.order_state import ACTIVE_STATUSES, cancellation_fields
from utils.order_timeline import record_order_event

logger = logging.getLogger(__name__)

# ============================================================
# CASCADE ENGINE
# ============================================================
# Planners are pure: loaded state in, mutation list out.
# apply_plan() writes the whole list through one transaction,
# so either every mutation commits or none does.
# ============================================================

BAN_USER = "BAN_USER"
REMOVE_SELLER = "REMOVE_SELLER"
APPROVE_SELLER = "APPROVE_SELLER"
RETYPE_SELLER = "RETYPE_SELLER"


@dataclass(frozen=True)
class Mutation:
    collection: str
    fields: dict
    entity_id: Any = None
    query: Optional[dict] = None
    where: Optional[dict] = None
    conflict: Optional[MarketplaceError] = field(default=None, compare=False)

    @property
    def many(self) -> bool:
        return self.query is not None


def update_one(collection, entity_id, fields, *, where=None, conflict=None) -> Mutation:
    return Mutation(collection=collection, fields=fields, entity_id=entity_id, where=where, conflict=conflict)


def update_many(collection, query, fields) -> Mutation:
    return Mutation(collection=collection, fields=fields, query=query)


@dataclass
class CascadePlan:
    trigger: str
    target_id: Any
    mutations: List[Mutation] = field(default_factory=list)
    cancelled_order_ids: List[Any] = field(default_factory=list)
    deleted_product_ids: List[Any] = field(default_factory=list)
    image_public_ids: List[str] = field(default_factory=list)


@dataclass
class UserState:
    user: dict
    seller_profile: Optional[dict] = None
    products: List[dict] = field(default_factory=list)
    seller_orders: List[dict] = field(default_factory=list)
    buyer_orders: List[dict] = field(default_factory=list)


@dataclass
class SellerState:
    seller_profile: Optional[dict]
    owner: Optional[dict] = None
    products: List[dict] = field(default_factory=list)
    seller_orders: List[dict] = field(default_factory=list)


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def soft_delete_fields(now: datetime) -> dict:
    return {"is_deleted": True, "deleted_at": now, "updated_at": now}


def active_orders_query(**match) -> dict:
    query = dict(match)
    query["status"] = {"$in": list(ACTIVE_STATUSES)}
    return query


def coerce_seller_type(value) -> SellerType:
    try:
        return SellerType(value)
    except ValueError:
        raise InvalidState("Valid seller type (OFFICIAL or FAN_MADE) is required")


def product_image_ids(products: List[dict]) -> List[str]:
    ids = []
    for product in products:
        for image in product.get("images") or []:
            public_id = image.get("public_id")
            if public_id:
                ids.append(public_id)
    return ids


def _teardown_seller(plan: CascadePlan, seller_profile: dict, products, seller_orders, now):
    seller_id = seller_profile["_id"]

    plan.mutations.append(
        update_one(SELLER_PROFILES, seller_id, soft_delete_fields(now), where={"is_deleted": False})
    )
    plan.mutations.append(
        update_many(PRODUCTS, {"seller_id": seller_id, "is_deleted": False}, soft_delete_fields(now))
    )
    plan.mutations.append(
        update_many(ORDERS, active_orders_query(seller_id=seller_id), cancellation_fields(now))
    )

    plan.deleted_product_ids.extend(p["_id"] for p in products)
    plan.image_public_ids.extend(product_image_ids(products))
    plan.cancelled_order_ids.extend(o["_id"] for o in seller_orders)


# ------------------------------------------------------------
# Planners (pure)
# ------------------------------------------------------------

def plan_ban_user(state: UserState, now: datetime) -> CascadePlan:
    user = state.user

    if user.get("is_super_admin"):
        raise Forbidden("Cannot ban super admin")

    if user.get("is_deleted"):
        raise NotFound("User not found")

    plan = CascadePlan(trigger=BAN_USER, target_id=user["_id"])
    plan.mutations.append(
        update_one(USERS, user["_id"], soft_delete_fields(now), where={"is_deleted": False})
    )

    if state.seller_profile:
        _teardown_seller(plan, state.seller_profile, state.products, state.seller_orders, now)

    plan.mutations.append(
        update_many(ORDERS, active_orders_query(buyer_id=user["_id"]), cancellation_fields(now))
    )
    seen = set(plan.cancelled_order_ids)
    plan.cancelled_order_ids.extend(o["_id"] for o in state.buyer_orders if o["_id"] not in seen)

    return plan


def plan_remove_seller(state: SellerState, now: datetime) -> CascadePlan:
    profile = state.seller_profile
    if not profile or profile.get("is_deleted"):
        raise NotFound("Seller profile not found")

    owner = state.owner
    if owner and owner.get("is_super_admin"):
        raise Forbidden("Cannot remove super admin")

    plan = CascadePlan(trigger=REMOVE_SELLER, target_id=profile["_id"])
    _teardown_seller(plan, profile, state.products, state.seller_orders, now)

    if owner and not owner.get("is_deleted"):
        plan.mutations.append(
            update_one(USERS, owner["_id"], soft_delete_fields(now), where={"is_deleted": False})
        )

    return plan


def plan_approve_seller(profile: Optional[dict], owner: Optional[dict], seller_type: SellerType, now: datetime) -> CascadePlan:
    if not profile or profile.get("is_deleted"):
        raise NotFound("Seller profile not found")

    if profile.get("is_approved"):
        raise AlreadyApproved("Seller is already approved")

    if not owner or owner.get("is_deleted"):
        raise NotFound("Seller account not found")

    seller_type = coerce_seller_type(seller_type)
    plan = CascadePlan(trigger=APPROVE_SELLER, target_id=profile["_id"])

    # both writes share the transaction: approval and role flip are never observed apart
    plan.mutations.append(
        update_one(
            SELLER_PROFILES,
            profile["_id"],
            {
                "is_approved": True,
                "seller_type": seller_type.value,
                "approved_at": now,
                "updated_at": now,
            },
            where={"is_approved": False, "is_deleted": False},
            conflict=AlreadyApproved("Seller is already approved"),
        )
    )
    plan.mutations.append(
        update_one(
            USERS,
            owner["_id"],
            {"role": UserRole.SELLER.value, "updated_at": now},
            where={"is_deleted": False},
            conflict=NotFound("Seller account not found"),
        )
    )
    return plan


def plan_retype_seller(profile: Optional[dict], seller_type: SellerType, now: datetime) -> CascadePlan:
    if not profile or profile.get("is_deleted"):
        raise NotFound("Seller profile not found")

    seller_type = coerce_seller_type(seller_type)
    plan = CascadePlan(trigger=RETYPE_SELLER, target_id=profile["_id"])

    plan.mutations.append(
        update_one(
            SELLER_PROFILES,
            profile["_id"],
            {"seller_type": seller_type.value, "updated_at": now},
            where={"is_deleted": False},
            conflict=NotFound("Seller profile not found"),
        )
    )
    # product_type is a derived mirror of seller_type; this is the only writer after creation
    plan.mutations.append(
        update_many(
            PRODUCTS,
            {"seller_id": profile["_id"]},
            {"product_type": seller_type.value, "updated_at": now},
        )
    )
    return plan


# ------------------------------------------------------------
# Loading (inside the transaction)
# ------------------------------------------------------------

async def load_user_state(tx, user: dict) -> UserState:
    state = UserState(user=user)

    state.seller_profile = await tx.find_one(SELLER_PROFILES, {"user_id": user["_id"], "is_deleted": False})
    if state.seller_profile:
        seller_id = state.seller_profile["_id"]
        state.products = await tx.find(PRODUCTS, {"seller_id": seller_id, "is_deleted": False})
        state.seller_orders = await tx.find(ORDERS, active_orders_query(seller_id=seller_id))

    state.buyer_orders = await tx.find(ORDERS, active_orders_query(buyer_id=user["_id"]))
    return state


async def load_seller_state(tx, seller_profile: Optional[dict]) -> SellerState:
    state = SellerState(seller_profile=seller_profile)
    if not seller_profile:
        return state

    seller_id = seller_profile["_id"]
    state.owner = await tx.get(USERS, seller_profile["user_id"])
    state.products = await tx.find(PRODUCTS, {"seller_id": seller_id, "is_deleted": False})
    state.seller_orders = await tx.find(ORDERS, active_orders_query(seller_id=seller_id))
    return state


# ------------------------------------------------------------
# Apply
# ------------------------------------------------------------

async def apply_mutations(tx, mutations: List[Mutation]) -> List[int]:
    results = []

    for mutation in mutations:
        if mutation.many:
            results.append(await tx.update_many(mutation.collection, mutation.query, mutation.fields))
            continue

        matched = await tx.update(
            mutation.collection,
            mutation.entity_id,
            mutation.fields,
            where=mutation.where,
        )
        if not matched:
            # raising aborts the transaction; nothing from this plan is kept
            raise mutation.conflict or InvalidState(
                f"{mutation.collection} {mutation.entity_id} changed concurrently"
            )
        results.append(1)

    return results


async def apply_plan(tx, plan: CascadePlan, actor: Actor, metadata: dict | None = None) -> List[int]:
    results = await apply_mutations(tx, plan.mutations)

    for order_id in plan.cancelled_order_ids:
        await record_order_event(
            tx,
            order_id=order_id,
            event="ORDER_CANCELLED_BY_CASCADE",
            actor_role=actor.role.lower(),
            actor_id=actor.user_id,
            metadata={"trigger": plan.trigger, "target_id": str(plan.target_id)},
        )

    audit = {
        "target_id": str(plan.target_id),
        "cancelled_orders": len(plan.cancelled_order_ids),
        "deleted_products": len(plan.deleted_product_ids),
    }
    audit.update(metadata or {})

    await log_audit(
        tx,
        actor_id=actor.user_id,
        actor_role=actor.role,
        action=plan.trigger,
        metadata=audit,
    )

    logger.debug(
        "CASCADE_STAGED trigger=%s target=%s mutations=%s",
        plan.trigger,
        plan.target_id,
        len(plan.mutations),
    )
    return results
