from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderCreate(BaseModel):
    product_id: str
    buyer_address: str = Field(..., min_length=5)
    buyer_phone: str = Field(..., min_length=10)
    buyer_notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
