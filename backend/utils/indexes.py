from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from config.constants import (
    AUDIT_LOGS,
    NOTIFICATION_OUTBOX,
    ORDER_TIMELINE,
    ORDERS,
    PRODUCTS,
    SELLER_PROFILES,
    USERS,
)

# Mongo error codes for an index that exists under the same keys with other options
INDEX_CONFLICT_CODES = {85, 86}


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create an index, replacing any existing index on the same key pattern
    whose options differ (IndexOptionsConflict / IndexKeySpecsConflict).
    """
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in INDEX_CONFLICT_CODES:
            raise

    stale = []
    async for idx in collection.list_indexes():
        if list(idx.get("key", {}).items()) == list(keys) and idx.get("name") != desired_name:
            stale.append(idx["name"])

    for name in stale:
        await collection.drop_index(name)

    await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # Users
    await _create_index_safe(
        db[USERS],
        [("email", ASCENDING)],
        name="users_email_unique_idx",
        unique=True,
        sparse=True,
    )

    # Seller profiles: at most one live profile per user
    await _create_index_safe(
        db[SELLER_PROFILES],
        [("user_id", ASCENDING)],
        name="seller_profiles_live_user_unique_idx",
        unique=True,
        partialFilterExpression={"is_deleted": False},
    )
    await _create_index_safe(
        db[SELLER_PROFILES],
        [("is_approved", ASCENDING), ("created_at", DESCENDING)],
        name="seller_profiles_approval_created_idx",
    )

    # Products
    await _create_index_safe(
        db[PRODUCTS],
        [("seller_id", ASCENDING), ("is_deleted", ASCENDING)],
        name="products_seller_deleted_idx",
    )
    await _create_index_safe(
        db[PRODUCTS],
        [("is_approved", ASCENDING), ("is_deleted", ASCENDING), ("created_at", DESCENDING)],
        name="products_visibility_created_idx",
    )

    # Orders
    await _create_index_safe(
        db[ORDERS],
        [("buyer_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="orders_buyer_status_created_idx",
    )
    await _create_index_safe(
        db[ORDERS],
        [("seller_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="orders_seller_status_created_idx",
    )

    # Order timeline / audit
    await _create_index_safe(
        db[ORDER_TIMELINE],
        [("order_id", ASCENDING), ("created_at", ASCENDING)],
        name="order_timeline_order_created_idx",
    )
    await _create_index_safe(
        db[AUDIT_LOGS],
        [("created_at", DESCENDING)],
        name="audit_logs_created_idx",
    )

    # Notification outbox
    await _create_index_safe(
        db[NOTIFICATION_OUTBOX],
        [("status", ASCENDING), ("created_at", ASCENDING)],
        name="notification_outbox_status_created_idx",
    )
