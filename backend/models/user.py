from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class SellerType(str, Enum):
    OFFICIAL = "OFFICIAL"
    FAN_MADE = "FAN_MADE"


@dataclass(frozen=True)
class Actor:
    """
    Verified caller identity, threaded explicitly into every core operation.
    """

    user_id: ObjectId
    role: str
    is_super_admin: bool = False
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @classmethod
    def from_user(cls, user: dict) -> "Actor":
        return cls(
            user_id=user["_id"],
            role=user.get("role", UserRole.BUYER.value),
            is_super_admin=bool(user.get("is_super_admin")),
            email=user.get("email"),
            full_name=user.get("full_name"),
        )


class AdminCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=2)
    phone_number: Optional[str] = None
    address: Optional[str] = None
