from typing import Optional

from fastapi import APIRouter, Depends, Query

from database import get_store
from models.order import OrderCreate, OrderStatus, OrderStatusUpdate
from models.user import Actor, UserRole
from utils import order_service
from utils.guards import parse_object_id
from utils.security import get_current_actor, get_current_seller, require_role

router = APIRouter(prefix="/orders", tags=["Orders"])


# ======================================================
# BUYER
# ======================================================

@router.post("", status_code=201)
async def create_order(
    data: OrderCreate,
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    order = await order_service.place_order(
        store,
        actor,
        parse_object_id(data.product_id, "product_id"),
        buyer_address=data.buyer_address,
        buyer_phone=data.buyer_phone,
        buyer_notes=data.buyer_notes,
    )
    return {"success": True, "order": order}


@router.get("/buyer/my-orders")
async def my_orders(
    status: Optional[OrderStatus] = Query(None),
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    orders = await order_service.list_buyer_orders(store, actor, status)
    return {"count": len(orders), "orders": orders}


@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    order = await order_service.cancel_order(store, actor, parse_object_id(order_id, "order_id"))
    return {"success": True, "order": order}


# ======================================================
# SELLER
# ======================================================

@router.get("/seller/my-orders")
async def seller_orders(
    status: Optional[OrderStatus] = Query(None),
    actor: Actor = Depends(require_role(UserRole.SELLER)),
    store=Depends(get_store),
):
    orders = await order_service.list_seller_orders(store, actor, status)
    return {"count": len(orders), "orders": orders}


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    actor: Actor = Depends(get_current_seller),
    store=Depends(get_store),
):
    order = await order_service.advance_order(
        store,
        actor,
        parse_object_id(order_id, "order_id"),
        data.status,
    )
    return {"success": True, "order": order}
