import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from config.constants import NOTIFICATION_OUTBOX
from config.env import EMAIL_FROM, NOTIFICATIONS_ENABLED

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    ORDER_PLACED = "OrderPlaced"
    NEW_ORDER = "NewOrder"
    ORDER_ACCEPTED = "OrderAccepted"
    ORDER_STATUS_CHANGED = "OrderStatusChanged"
    ORDER_CANCELLED = "OrderCancelled"
    PRODUCT_APPROVED = "ProductApproved"
    SELLER_APPROVED = "SellerApproved"
    ACCOUNT_RESTORED = "AccountRestored"


Sender = Callable[[NotificationEvent, str, dict], Awaitable[None]]

_pending: set = set()


async def outbox_sender(event: NotificationEvent, recipient: str, payload: dict) -> None:
    # the mail relay drains this collection; formatting happens there
    from database import get_db

    db = get_db()
    await db[NOTIFICATION_OUTBOX].insert_one({
        "event": event.value,
        "recipient": recipient,
        "sender": EMAIL_FROM,
        "payload": payload,
        "status": "queued",
        "created_at": datetime.utcnow(),
    })


_sender: Sender = outbox_sender


def configure_sender(sender: Sender) -> None:
    global _sender
    _sender = sender


async def _deliver(event: NotificationEvent, recipient: str, payload: dict) -> None:
    try:
        await _sender(event, recipient, payload)
        logger.info("NOTIFICATION_QUEUED event=%s to=%s", event.value, recipient)
    except Exception:
        logger.exception("NOTIFICATION_FAILED event=%s to=%s", event.value, recipient)


def notify(event: NotificationEvent, recipient: Optional[str], payload: dict) -> Optional[asyncio.Task]:
    """
    Fire-and-forget. Call only after the triggering transaction committed;
    the returned task is never awaited on the request path.
    """
    if not NOTIFICATIONS_ENABLED:
        return None

    if not recipient:
        logger.warning("NOTIFICATION_SKIPPED event=%s reason=no_recipient", event.value)
        return None

    task = asyncio.get_running_loop().create_task(_deliver(event, recipient, payload))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task
