from pydantic import BaseModel, Field
from typing import List, Optional

from config.constants import MAX_PRODUCT_IMAGES


class ProductImage(BaseModel):
    url: str
    public_id: str


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    category_id: Optional[str] = None

    images: List[ProductImage] = Field(..., min_length=1, max_length=MAX_PRODUCT_IMAGES)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    category_id: Optional[str] = None
