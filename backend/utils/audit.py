from datetime import datetime

from config.constants import AUDIT_LOGS


async def log_audit(
    tx,
    actor_id,
    actor_role: str,
    action: str,
    metadata: dict | None = None
):
    # written through the caller's transaction so the trail commits with the change
    await tx.insert(AUDIT_LOGS, {
        "actor_id": str(actor_id),
        "actor_role": actor_role,
        "action": action,
        "metadata": metadata or {},
        "created_at": datetime.utcnow()
    })
