"""
Public vendor directory endpoints for API v1.

Only approved vendors are listed; a vendor that is pending, rejected
or suspended is reported as not found.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from bonzenga_api.app.core.security import ROLE_CUSTOMER, require_roles
from bonzenga_api.app.schemas.booking import BookingCreate, BookingRead
from bonzenga_api.app.schemas.vendor import VendorDetail, VendorSummary
from bonzenga_api.app.services.booking_service import BookingService
from bonzenga_api.app.services.vendor_service import VendorService


router = APIRouter()


@router.get("", response_model=List[VendorSummary])
async def list_vendors(
    search: Optional[str] = Query(None, description="Match on shop name, description, address or city"),
    category: Optional[str] = None,
    city: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> List[VendorSummary]:
    return await VendorService.list_public_vendors(
        search=search, category=category, city=city, limit=limit, offset=offset
    )


@router.get("/{vendor_id}", response_model=VendorDetail)
async def get_vendor(vendor_id: int) -> VendorDetail:
    """Vendor details with active services and approved beauticians."""
    return await VendorService.get_public_vendor(vendor_id)


@router.post("/{vendor_id}/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def book_vendor(
    vendor_id: int,
    booking: BookingCreate,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> BookingRead:
    """Create a booking at this vendor.

    Same as ``POST /bookings``; the vendor in the path wins over the
    one in the body.
    """
    booking = booking.model_copy(update={"vendor_id": vendor_id})
    return await BookingService.create_booking(booking, current_user)
