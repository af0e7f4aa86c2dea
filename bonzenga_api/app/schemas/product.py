"""
Pydantic models for the beauty product shop.

Products are sold by vendors next to their services and share the
service categories.  ``stock`` is decremented when an order is placed
and restored when it is cancelled.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common import Pagination
from .service import VendorBrief


MediaType = Literal["IMAGE", "VIDEO"]


class MediaIn(BaseModel):
    type: MediaType = "IMAGE"
    url: str = Field(..., min_length=1, example="https://cdn.example.com/shea-butter.jpg")
    alt: Optional[str] = Field(None, max_length=200)


class MediaRead(MediaIn):
    id: int
    product_id: int
    created_at: Optional[str] = None


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Shea Butter Hair Mask")
    description: Optional[str] = Field(None, example="Deep conditioning mask for natural hair")
    price: float = Field(..., gt=0, example=25.0)
    category: Optional[str] = Field(None, example="Hair Styling")
    stock: int = Field(0, ge=0, example=40)


class ProductCreate(ProductBase):
    is_active: bool = True
    media: List[MediaIn] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ProductRead(ProductBase):
    id: int
    vendor_id: int
    vendor_name: Optional[str] = None
    is_active: bool
    image: Optional[str] = Field(None, description="URL of the first image, if any")
    rating: Optional[float] = None
    review_count: int = 0
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class ProductReviewRead(BaseModel):
    id: int
    product_id: int
    customer_id: int
    customer_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: str


class ProductDetail(ProductRead):
    vendor: VendorBrief
    media: List[MediaRead] = Field(default_factory=list)
    recent_reviews: List[ProductReviewRead] = Field(default_factory=list)


class ProductList(BaseModel):
    products: List[ProductRead]
    pagination: Pagination


class ProductReviewList(BaseModel):
    reviews: List[ProductReviewRead]
    pagination: Pagination


class ProductStatusUpdate(BaseModel):
    is_active: bool
    reason: Optional[str] = Field(None, max_length=500)


class MediaCreate(BaseModel):
    media: List[MediaIn] = Field(..., min_length=1)


class ProductCategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    product_count: int = 0
