from typing import Optional

from models.user import Actor


def is_active_seller(seller_profile: Optional[dict]) -> bool:
    if not seller_profile:
        return False
    return bool(seller_profile.get("is_approved")) and not seller_profile.get("is_deleted")


def can_transact(seller_profile: Optional[dict], product: Optional[dict]) -> bool:
    """
    True only when both sides of a sale are approved and live.
    Pure check over already-loaded documents; callers that mutate
    must re-load inside their transaction before relying on it.
    """
    if not is_active_seller(seller_profile) or not product:
        return False
    return bool(product.get("is_approved")) and not product.get("is_deleted")


def can_view_product(product: Optional[dict], seller_profile: Optional[dict], actor: Optional[Actor]) -> bool:
    if not product or product.get("is_deleted"):
        return False

    if actor is not None:
        if actor.is_admin:
            return True
        if seller_profile and seller_profile.get("user_id") == actor.user_id:
            return True

    return can_transact(seller_profile, product)
