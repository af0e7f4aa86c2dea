"""
Public product shop endpoints for API v1.

Browsing is anonymous; reviewing a product requires a customer whose
order containing it was delivered.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from bonzenga_api.app.core.security import ROLE_CUSTOMER, require_roles
from bonzenga_api.app.schemas.product import (
    ProductCategoryRead,
    ProductDetail,
    ProductList,
    ProductReviewList,
    ProductReviewRead,
)
from bonzenga_api.app.schemas.review import ReviewCreate
from bonzenga_api.app.services.product_service import ProductService


router = APIRouter()


@router.get("", response_model=ProductList)
async def list_products(
    category: Optional[str] = Query(None, description="Category name, e.g. 'Hair Styling'"),
    vendor_id: Optional[int] = None,
    search: Optional[str] = Query(None, description="Match on name or description"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    in_stock: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ProductList:
    """List active products of approved vendors."""
    return await ProductService.list_products(
        category=category,
        vendor_id=vendor_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        page=page,
        limit=limit,
    )


@router.get("/categories", response_model=List[ProductCategoryRead])
async def list_categories() -> List[ProductCategoryRead]:
    return await ProductService.list_categories()


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(product_id: int) -> ProductDetail:
    return await ProductService.get_product(product_id)


@router.get("/{product_id}/reviews", response_model=ProductReviewList)
async def list_reviews(
    product_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> ProductReviewList:
    return await ProductService.list_reviews(product_id, page=page, limit=limit)


@router.post("/{product_id}/reviews", response_model=ProductReviewRead, status_code=status.HTTP_201_CREATED)
async def create_review(
    product_id: int,
    review: ReviewCreate,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> ProductReviewRead:
    """Review a product once, after an order containing it was delivered."""
    return await ProductService.create_review(product_id, review, current_user)
