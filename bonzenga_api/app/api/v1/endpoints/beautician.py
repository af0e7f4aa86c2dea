"""Beautician dashboard endpoints for API v1."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bonzenga_api.app.core.security import ROLE_BEAUTICIAN, require_roles
from bonzenga_api.app.schemas.beautician import BeauticianRead, BeauticianUpdate
from bonzenga_api.app.schemas.booking import BookingList, BookingRead, BookingStatusUpdate
from bonzenga_api.app.services.beautician_service import BeauticianService
from bonzenga_api.app.services.booking_service import BookingService


router = APIRouter()

beautician_only = require_roles(ROLE_BEAUTICIAN)


@router.get("/profile", response_model=BeauticianRead)
async def get_profile(current_user: dict = Depends(beautician_only)) -> BeauticianRead:
    return await BeauticianService.get_profile(current_user["user_id"])


@router.put("/profile", response_model=BeauticianRead)
async def update_profile(data: BeauticianUpdate, current_user: dict = Depends(beautician_only)) -> BeauticianRead:
    return await BeauticianService.update_profile(current_user["user_id"], data)


@router.get("/dashboard")
async def get_dashboard(current_user: dict = Depends(beautician_only)) -> dict:
    return await BeauticianService.dashboard(current_user["user_id"])


@router.get("/appointments", response_model=BookingList)
async def list_appointments(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(beautician_only),
) -> BookingList:
    """Bookings assigned to the current beautician."""
    return await BookingService.list_bookings(current_user, status=status, page=page, limit=limit)


@router.patch("/appointments/{booking_id}/status", response_model=BookingRead)
async def update_appointment_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    current_user: dict = Depends(beautician_only),
) -> BookingRead:
    """Start (``IN_PROGRESS``) or finish (``COMPLETED``) an assignment."""
    return await BookingService.update_status(booking_id, payload.status, current_user)


@router.get("/earnings")
async def get_earnings(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: dict = Depends(beautician_only),
) -> dict:
    return await BeauticianService.earnings(current_user["user_id"], start_date, end_date)
