"""
Manager console endpoints for API v1.

Managers moderate vendor and beautician applications, oversee every
appointment and read operational reports.  Administrators may use all
of these routes as well.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from bonzenga_api.app.core.security import ROLE_ADMIN, ROLE_MANAGER, require_roles
from bonzenga_api.app.schemas.beautician import BeauticianRead
from bonzenga_api.app.schemas.booking import AssignBeautician, BookingList, BookingRead, BookingStatusUpdate
from bonzenga_api.app.schemas.vendor import RejectRequest
from bonzenga_api.app.services.beautician_service import BeauticianService
from bonzenga_api.app.services.booking_service import BookingService
from bonzenga_api.app.services.manager_service import ManagerService


router = APIRouter()

staff_only = require_roles(ROLE_MANAGER, ROLE_ADMIN)


@router.get("/dashboard")
async def get_dashboard(current_user: dict = Depends(staff_only)) -> dict:
    return await ManagerService.dashboard()


@router.get("/vendors")
async def list_vendors(status: Optional[str] = None, current_user: dict = Depends(staff_only)) -> List[dict]:
    """All vendors, optionally filtered by moderation status."""
    return await ManagerService.list_vendors(status)


@router.get("/vendors/pending")
async def list_pending_vendors(current_user: dict = Depends(staff_only)) -> List[dict]:
    return await ManagerService.list_vendors("PENDING")


@router.patch("/vendors/{vendor_id}/approve")
async def approve_vendor(vendor_id: int, current_user: dict = Depends(staff_only)) -> dict:
    """Approve a pending (or previously rejected) vendor."""
    return await ManagerService.approve_vendor(vendor_id, current_user["user_id"])


@router.patch("/vendors/{vendor_id}/reject")
async def reject_vendor(
    vendor_id: int,
    payload: Optional[RejectRequest] = None,
    current_user: dict = Depends(staff_only),
) -> dict:
    return await ManagerService.reject_vendor(vendor_id, current_user["user_id"], payload.reason if payload else None)


@router.get("/beauticians", response_model=List[BeauticianRead])
async def list_beauticians(status: Optional[str] = None, current_user: dict = Depends(staff_only)) -> List[BeauticianRead]:
    return await BeauticianService.list_beauticians(status)


@router.get("/beauticians/pending", response_model=List[BeauticianRead])
async def list_pending_beauticians(current_user: dict = Depends(staff_only)) -> List[BeauticianRead]:
    return await BeauticianService.list_beauticians("PENDING")


@router.patch("/beauticians/{beautician_id}/approve", response_model=BeauticianRead)
async def approve_beautician(beautician_id: int, current_user: dict = Depends(staff_only)) -> BeauticianRead:
    return await ManagerService.approve_beautician(beautician_id, current_user["user_id"])


@router.patch("/beauticians/{beautician_id}/reject", response_model=BeauticianRead)
async def reject_beautician(
    beautician_id: int,
    payload: Optional[RejectRequest] = None,
    current_user: dict = Depends(staff_only),
) -> BeauticianRead:
    return await ManagerService.reject_beautician(
        beautician_id, current_user["user_id"], payload.reason if payload else None
    )


@router.get("/appointments", response_model=BookingList)
async def list_appointments(
    status: Optional[str] = None,
    service_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(staff_only),
) -> BookingList:
    return await BookingService.list_bookings(
        current_user, status=status, service_type=service_type, page=page, limit=limit
    )


@router.patch("/appointments/{booking_id}/status", response_model=BookingRead)
async def update_appointment_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    current_user: dict = Depends(staff_only),
) -> BookingRead:
    return await BookingService.update_status(booking_id, payload.status, current_user)


@router.patch("/bookings/{booking_id}/assign-beautician", response_model=BookingRead)
async def assign_beautician(
    booking_id: int,
    payload: AssignBeautician,
    current_user: dict = Depends(staff_only),
) -> BookingRead:
    """Assign an approved beautician; a pending booking becomes confirmed."""
    return await BookingService.assign_beautician(booking_id, payload.beautician_id, current_user)


@router.get("/reports")
async def get_reports(
    range: Optional[str] = Query("month", description="week, month, quarter or year"),
    current_user: dict = Depends(staff_only),
) -> dict:
    return await ManagerService.reports(range)
