from typing import Optional

from utils.mongo import serialize_doc, serialize_value


SELLER_PUBLIC_FIELDS = (
    "business_name",
    "business_description",
    "seller_type",
    "payment_methods",
    "average_shipping_cost",
    "estimated_delivery_days",
    "shipping_regions",
    "social_links",
)


def serialize_seller_public(seller: Optional[dict]) -> Optional[dict]:
    if not seller:
        return None

    data = {"id": serialize_value(seller["_id"])}
    for key in SELLER_PUBLIC_FIELDS:
        data[key] = serialize_value(seller.get(key))
    return data


def serialize_user_brief(user: Optional[dict]) -> Optional[dict]:
    if not user:
        return None

    return {
        "id": serialize_value(user["_id"]),
        "full_name": user.get("full_name"),
        "email": user.get("email"),
        "phone_number": user.get("phone_number"),
    }


def contact_revealed(order: dict) -> bool:
    # seller contact is withheld until the seller has accepted the order
    return order.get("accepted_at") is not None


def serialize_product(product: dict, seller: Optional[dict] = None) -> dict:
    data = serialize_doc(product)
    if seller is not None:
        data["seller"] = serialize_seller_public(seller)
    return data


def serialize_order(
    order: dict,
    *,
    product: Optional[dict] = None,
    seller: Optional[dict] = None,
    seller_user: Optional[dict] = None,
    buyer: Optional[dict] = None,
) -> dict:
    data = serialize_doc(order)

    if product is not None:
        data["product"] = {
            "id": serialize_value(product["_id"]),
            "name": product.get("name"),
            "price": product.get("price"),
            "images": serialize_value((product.get("images") or [])[:1]),
        }

    if seller is not None:
        seller_data = serialize_seller_public(seller)
        if contact_revealed(order) and seller_user is not None:
            seller_data["contact"] = {
                "email": seller_user.get("email"),
                "phone_number": seller_user.get("phone_number"),
            }
        data["seller"] = seller_data

    if buyer is not None:
        data["buyer"] = serialize_user_brief(buyer)

    return data
