from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from typing import Optional

from config.constants import USERS, SELLER_PROFILES
from database import get_store
from models.user import Actor, UserRole
from utils.approval_gate import is_active_seller
from utils.jwt import decode_token

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _actor_from_token(token: str, store) -> Actor:
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    user_id = payload.get("sub")

    if not user_id or not ObjectId.is_valid(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = await store.get(USERS, ObjectId(user_id))
    if not user or user.get("is_deleted"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or deactivated",
        )

    return Actor.from_user(user)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store=Depends(get_store),
) -> Actor:
    return await _actor_from_token(credentials.credentials, store)


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    store=Depends(get_store),
) -> Optional[Actor]:
    if not credentials:
        return None
    return await _actor_from_token(credentials.credentials, store)


def require_role(*roles: UserRole):
    allowed = {UserRole(r).value for r in roles}

    async def checker(actor: Actor = Depends(get_current_actor)):
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return actor

    return checker


async def require_super_admin(
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
) -> Actor:
    if not actor.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required",
        )
    return actor


async def get_current_seller(
    actor: Actor = Depends(require_role(UserRole.SELLER)),
    store=Depends(get_store),
) -> Actor:
    profile = await store.find_one(SELLER_PROFILES, {"user_id": actor.user_id, "is_deleted": False})
    if not is_active_seller(profile):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seller account not approved or deactivated",
        )
    return actor
