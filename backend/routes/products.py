from typing import Optional

from fastapi import APIRouter, Depends, Query

from database import get_store
from models.product import ProductCreate, ProductUpdate
from models.user import Actor, SellerType, UserRole
from utils import product_service
from utils.guards import parse_object_id
from utils.security import get_current_seller, get_optional_actor, require_role

router = APIRouter(prefix="/products", tags=["Products"])


# ======================================================
# PUBLIC
# ======================================================

@router.get("")
async def list_products(
    product_type: Optional[SellerType] = Query(None),
    store=Depends(get_store),
):
    products = await product_service.list_products(store, product_type)
    return {"count": len(products), "products": products}


# declared before /{product_id} so "mine" is not parsed as an id
@router.get("/mine")
async def my_products(
    actor: Actor = Depends(require_role(UserRole.SELLER)),
    store=Depends(get_store),
):
    products = await product_service.list_my_products(store, actor)
    return {"count": len(products), "products": products}


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    store=Depends(get_store),
):
    product = await product_service.get_product(store, actor, parse_object_id(product_id, "product_id"))
    return {"product": product}


# ======================================================
# SELLER
# ======================================================

@router.post("", status_code=201)
async def create_product(
    data: ProductCreate,
    actor: Actor = Depends(get_current_seller),
    store=Depends(get_store),
):
    product = await product_service.create_product(store, actor, data.model_dump())
    return {
        "success": True,
        "message": "Product submitted for approval",
        "product": product,
    }


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    data: ProductUpdate,
    actor: Actor = Depends(get_current_seller),
    store=Depends(get_store),
):
    product = await product_service.update_product(
        store,
        actor,
        parse_object_id(product_id, "product_id"),
        data.model_dump(exclude_unset=True),
    )
    return {
        "success": True,
        "message": "Product updated and sent for re-approval",
        "product": product,
    }


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    actor: Actor = Depends(require_role(UserRole.SELLER)),
    store=Depends(get_store),
):
    await product_service.delete_product(store, actor, parse_object_id(product_id, "product_id"))
    return {"success": True, "message": "Product deleted"}
