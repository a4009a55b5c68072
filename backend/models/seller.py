from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from models.user import SellerType


class SellerApplication(BaseModel):
    business_name: str = Field(..., min_length=2)
    business_description: Optional[str] = None
    payment_methods: List[str] = Field(..., min_length=1)
    average_shipping_cost: Optional[float] = Field(None, ge=0)
    estimated_delivery_days: Optional[int] = Field(None, ge=0)
    shipping_regions: List[str] = []
    social_links: Dict[str, str] = {}


class SellerProfileUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=2)
    business_description: Optional[str] = None
    payment_methods: Optional[List[str]] = None
    average_shipping_cost: Optional[float] = Field(None, ge=0)
    estimated_delivery_days: Optional[int] = Field(None, ge=0)
    shipping_regions: Optional[List[str]] = None
    social_links: Optional[Dict[str, str]] = None


class SellerTypeAssignment(BaseModel):
    seller_type: SellerType
