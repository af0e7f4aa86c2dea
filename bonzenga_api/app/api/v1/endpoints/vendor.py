"""
Vendor dashboard endpoints for API v1.

All routes act on the salon owned by the authenticated vendor; the
vendor id is always taken from the token, never from the request.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from bonzenga_api.app.core.security import ROLE_VENDOR, require_roles
from bonzenga_api.app.schemas.booking import BookingList, BookingRead, BookingStatusUpdate
from bonzenga_api.app.schemas.product import MediaCreate, MediaRead, ProductCreate, ProductList, ProductRead, ProductUpdate
from bonzenga_api.app.schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from bonzenga_api.app.schemas.vendor import VendorRead, VendorUpdate
from bonzenga_api.app.services.booking_service import BookingService
from bonzenga_api.app.services.product_service import ProductService
from bonzenga_api.app.services.vendor_service import VendorService


router = APIRouter()

vendor_only = require_roles(ROLE_VENDOR)


@router.get("/profile")
async def get_profile(current_user: dict = Depends(vendor_only)) -> dict:
    """Shop profile plus service, booking and revenue totals."""
    return await VendorService.get_profile(current_user["user_id"])


@router.put("/profile", response_model=VendorRead)
async def update_profile(data: VendorUpdate, current_user: dict = Depends(vendor_only)) -> VendorRead:
    return await VendorService.update_profile(current_user["user_id"], data)


@router.get("/services", response_model=List[ServiceRead])
async def list_services(current_user: dict = Depends(vendor_only)) -> List[ServiceRead]:
    return await VendorService.list_own_services(current_user["user_id"])


@router.post("/services", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(data: ServiceCreate, current_user: dict = Depends(vendor_only)) -> ServiceRead:
    """Add a service.  Names are unique within a vendor."""
    return await VendorService.create_service(current_user["user_id"], data)


@router.put("/services/{service_id}", response_model=ServiceRead)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: dict = Depends(vendor_only),
) -> ServiceRead:
    return await VendorService.update_service(current_user["user_id"], service_id, data)


@router.delete("/services/{service_id}")
async def delete_service(service_id: int, current_user: dict = Depends(vendor_only)) -> dict:
    """Delete a service, or deactivate it if bookings refer to it."""
    deleted = await VendorService.delete_service(current_user["user_id"], service_id)
    if deleted:
        return {"message": "Service deleted", "deleted": True}
    return {"message": "Service has bookings and was deactivated", "deleted": False}


@router.get("/appointments", response_model=BookingList)
async def list_appointments(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(vendor_only),
) -> BookingList:
    return await BookingService.list_bookings(current_user, status=status, page=page, limit=limit)


@router.patch("/appointments/{booking_id}/status", response_model=BookingRead)
async def update_appointment_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    current_user: dict = Depends(vendor_only),
) -> BookingRead:
    return await BookingService.update_status(booking_id, payload.status, current_user)


@router.get("/revenue")
async def get_revenue(
    range: Optional[str] = Query("month", description="week, month, quarter or year"),
    current_user: dict = Depends(vendor_only),
) -> dict:
    return await VendorService.revenue(current_user["user_id"], range)


@router.get("/dashboard")
async def get_dashboard(current_user: dict = Depends(vendor_only)) -> dict:
    return await VendorService.dashboard(current_user["user_id"])


@router.get("/products", response_model=ProductList)
async def list_products(
    status: Optional[str] = Query(None, description="active or inactive"),
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(vendor_only),
) -> ProductList:
    return await ProductService.list_own_products(
        current_user["user_id"], status=status, category=category, page=page, limit=limit
    )


@router.post("/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, current_user: dict = Depends(vendor_only)) -> ProductRead:
    return await ProductService.create_product(current_user["user_id"], data)


@router.put("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    current_user: dict = Depends(vendor_only),
) -> ProductRead:
    return await ProductService.update_product(current_user["user_id"], product_id, data)


@router.delete("/products/{product_id}")
async def delete_product(product_id: int, current_user: dict = Depends(vendor_only)) -> dict:
    """Delete a product, or deactivate it if orders or reviews refer to it."""
    deleted = await ProductService.delete_product(current_user["user_id"], product_id)
    if deleted:
        return {"message": "Product deleted", "deleted": True}
    return {"message": "Product has orders or reviews and was deactivated", "deleted": False}


@router.post("/products/{product_id}/media", response_model=List[MediaRead], status_code=status.HTTP_201_CREATED)
async def add_product_media(
    product_id: int,
    payload: MediaCreate,
    current_user: dict = Depends(vendor_only),
) -> List[MediaRead]:
    return await ProductService.add_media(current_user["user_id"], product_id, payload.media)


@router.delete("/products/{product_id}/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_product_media(
    product_id: int,
    media_id: int,
    current_user: dict = Depends(vendor_only),
) -> Response:
    await ProductService.remove_media(current_user["user_id"], product_id, media_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
