from datetime import datetime

from config.constants import ORDER_TIMELINE


async def record_order_event(
    tx,
    *,
    order_id,
    event: str,
    actor_role: str,
    actor_id=None,
    metadata: dict | None = None,
) -> dict:
    """
    Append one event to an order's history inside the caller's transaction.
    Cancellation events carry their cause here; the order document does not.
    """
    return await tx.insert(ORDER_TIMELINE, {
        "order_id": order_id,
        "event": event,
        "actor": {"role": actor_role, "id": actor_id},
        "metadata": metadata or {},
        "created_at": datetime.utcnow(),
    })
