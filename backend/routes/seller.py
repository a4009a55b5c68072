from fastapi import APIRouter, Depends

from database import get_store
from models.seller import SellerApplication, SellerProfileUpdate
from models.user import Actor
from utils import seller_service
from utils.security import get_current_actor

router = APIRouter(prefix="/seller", tags=["Seller"])


@router.post("/apply", status_code=201)
async def apply_for_seller(
    data: SellerApplication,
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    profile = await seller_service.apply_for_seller(store, actor, data.model_dump())
    return {
        "success": True,
        "message": "Seller application submitted",
        "profile": profile,
    }


@router.get("/profile")
async def get_profile(
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    return {"profile": await seller_service.get_my_profile(store, actor)}


@router.put("/profile")
async def update_profile(
    data: SellerProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    store=Depends(get_store),
):
    profile = await seller_service.update_my_profile(store, actor, data.model_dump(exclude_unset=True))
    return {"success": True, "profile": profile}
