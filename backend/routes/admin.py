from fastapi import APIRouter, Depends

from database import get_store
from models.seller import SellerTypeAssignment
from models.user import Actor, AdminCreate, UserRole
from utils import admin_service, product_service, seller_service
from utils.guards import parse_object_id
from utils.security import require_role, require_super_admin

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_role(UserRole.ADMIN)


# =====================================================
# SELLERS
# =====================================================

@router.get("/sellers/pending")
async def pending_sellers(admin: Actor = Depends(admin_only), store=Depends(get_store)):
    sellers = await seller_service.list_pending_sellers(store)
    return {"count": len(sellers), "sellers": sellers}


@router.get("/sellers")
async def all_sellers(admin: Actor = Depends(admin_only), store=Depends(get_store)):
    sellers = await seller_service.list_sellers(store)
    return {"count": len(sellers), "sellers": sellers}


@router.put("/sellers/{seller_id}/approve")
async def approve_seller(
    seller_id: str,
    data: SellerTypeAssignment,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    profile = await seller_service.approve_seller(
        store,
        admin,
        parse_object_id(seller_id, "seller_id"),
        data.seller_type,
    )
    return {"success": True, "message": "Seller approved", "profile": profile}


@router.put("/sellers/{seller_id}/type")
async def change_seller_type(
    seller_id: str,
    data: SellerTypeAssignment,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    profile = await seller_service.retype_seller(
        store,
        admin,
        parse_object_id(seller_id, "seller_id"),
        data.seller_type,
    )
    return {"success": True, "message": "Seller type updated", "profile": profile}


@router.delete("/sellers/{seller_id}")
async def remove_seller(
    seller_id: str,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    result = await seller_service.remove_seller(store, admin, parse_object_id(seller_id, "seller_id"))
    return {"success": True, "message": "Seller removed", **result}


# =====================================================
# PRODUCTS
# =====================================================

@router.get("/products/pending")
async def pending_products(admin: Actor = Depends(admin_only), store=Depends(get_store)):
    products = await product_service.list_pending_products(store)
    return {"count": len(products), "products": products}


@router.put("/products/{product_id}/approve")
async def approve_product(
    product_id: str,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    product = await product_service.approve_product(store, admin, parse_object_id(product_id, "product_id"))
    return {"success": True, "message": "Product approved", "product": product}


@router.delete("/products/{product_id}")
async def remove_product(
    product_id: str,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    await product_service.remove_product(store, admin, parse_object_id(product_id, "product_id"))
    return {"success": True, "message": "Product removed"}


# =====================================================
# USERS
# =====================================================

@router.post("/users/admins", status_code=201)
async def add_admin(
    data: AdminCreate,
    admin: Actor = Depends(require_super_admin),
    store=Depends(get_store),
):
    user = await admin_service.add_admin(store, admin, data.model_dump())
    return {"success": True, "message": "Admin added successfully", "admin": user}


@router.delete("/users/admins/{user_id}")
async def remove_admin(
    user_id: str,
    admin: Actor = Depends(require_super_admin),
    store=Depends(get_store),
):
    result = await admin_service.remove_admin(store, admin, parse_object_id(user_id, "user_id"))
    return {"success": True, "message": "Admin removed", **result}


@router.delete("/users/{user_id}/ban")
async def ban_user(
    user_id: str,
    admin: Actor = Depends(admin_only),
    store=Depends(get_store),
):
    result = await admin_service.ban_user(store, admin, parse_object_id(user_id, "user_id"))
    return {"success": True, "message": "User banned", **result}


@router.put("/users/{user_id}/restore")
async def restore_user(
    user_id: str,
    admin: Actor = Depends(require_super_admin),
    store=Depends(get_store),
):
    result = await admin_service.restore_user(store, admin, parse_object_id(user_id, "user_id"))
    return {"success": True, "message": "User restored", **result}
