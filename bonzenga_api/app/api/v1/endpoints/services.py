"""
Public service catalogue endpoints for API v1.

Browsing is anonymous; posting a review requires a customer who has
completed a booking that included the service.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from bonzenga_api.app.core.security import ROLE_CUSTOMER, require_roles
from bonzenga_api.app.schemas.review import ReviewCreate, ReviewRead
from bonzenga_api.app.schemas.service import CategoryRead, ServiceDetail, ServiceList
from bonzenga_api.app.services.catalog_service import CatalogService
from bonzenga_api.app.services.review_service import ReviewService


router = APIRouter()


@router.get("", response_model=ServiceList)
async def list_services(
    category: Optional[str] = Query(None, description="Category name, e.g. 'Hair Styling'"),
    vendor_id: Optional[int] = None,
    search: Optional[str] = Query(None, description="Match on name or description"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ServiceList:
    """List active services of approved vendors."""
    return await CatalogService.list_services(
        category=category,
        vendor_id=vendor_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories() -> List[CategoryRead]:
    return await CatalogService.list_categories()


@router.get("/{service_id}", response_model=ServiceDetail)
async def get_service(service_id: int) -> ServiceDetail:
    return await CatalogService.get_service(service_id)


@router.get("/{service_id}/reviews", response_model=List[ReviewRead])
async def list_reviews(
    service_id: int,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> List[ReviewRead]:
    return await ReviewService.list_reviews(service_id, limit=limit, offset=offset)


@router.post("/{service_id}/reviews", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
async def create_review(
    service_id: int,
    review: ReviewCreate,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> ReviewRead:
    """Review a service.

    One review per customer and service, and only after a completed
    booking that included it.
    """
    return await ReviewService.create_review(service_id, review, current_user)
