"""
Booking endpoints for API v1.

Covers the checkout quote, booking creation and the booking lifecycle.
Visibility is role based (see ``BookingService.scope_clause``): a
booking outside the caller's scope answers 404.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from bonzenga_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MANAGER,
    ROLE_VENDOR,
    get_current_user,
    require_roles,
)
from bonzenga_api.app.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingEventRead,
    BookingList,
    BookingRead,
    BookingStats,
    BookingStatusUpdate,
    QuoteRead,
    QuoteRequest,
)
from bonzenga_api.app.services.booking_service import BookingService


router = APIRouter()


@router.post("/quote", response_model=QuoteRead)
async def quote(cart: QuoteRequest) -> QuoteRead:
    """Price a cart without creating anything.

    Prices, tax and duration come from the stored services; the client
    only sends service ids and quantities.
    """
    return await BookingService.quote(cart)


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking: BookingCreate,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> BookingRead:
    """Book one or more services of a vendor.

    The booking starts ``PENDING`` with a pending payment for its total.
    """
    return await BookingService.create_booking(booking, current_user)


@router.get("", response_model=BookingList)
async def list_bookings(
    status: Optional[str] = None,
    service_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
) -> BookingList:
    return await BookingService.list_bookings(
        current_user, status=status, service_type=service_type, page=page, limit=limit
    )


@router.get("/stats", response_model=BookingStats)
async def booking_stats(current_user: dict = Depends(require_roles(ROLE_CUSTOMER))) -> BookingStats:
    return await BookingService.customer_stats(current_user["user_id"])


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    return await BookingService.get_booking(booking_id, current_user)


@router.get("/{booking_id}/events", response_model=List[BookingEventRead])
async def list_events(booking_id: int, current_user: dict = Depends(get_current_user)) -> List[BookingEventRead]:
    """Timeline of the booking, oldest event first."""
    return await BookingService.list_events(booking_id, current_user)


@router.patch("/{booking_id}/status", response_model=BookingRead)
async def update_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    current_user: dict = Depends(require_roles(ROLE_VENDOR, ROLE_MANAGER, ROLE_ADMIN)),
) -> BookingRead:
    return await BookingService.update_status(booking_id, payload.status, current_user)


@router.patch("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int,
    payload: Optional[BookingCancel] = None,
    current_user: dict = Depends(get_current_user),
) -> BookingRead:
    """Cancel a booking that has not been completed yet."""
    reason = payload.reason if payload else None
    return await BookingService.cancel_booking(booking_id, reason, current_user)
