"""
Payment endpoints for API v1.

Payments are simulated.  Card and mobile money payments settle at once
and confirm the booking; cash payments wait for the vendor or staff to
confirm them.  The test card ``4000 0000 0000 0002`` is always declined
and answers ``402 Payment Required``.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from bonzenga_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MANAGER,
    ROLE_VENDOR,
    get_current_user,
    require_roles,
)
from bonzenga_api.app.schemas.payment import PaymentMethodInfo, PaymentProcess, PaymentRead
from bonzenga_api.app.services.payment_service import PaymentService


router = APIRouter()


@router.get("/methods", response_model=List[PaymentMethodInfo])
async def list_methods() -> List[PaymentMethodInfo]:
    return PaymentService.list_methods()


@router.post("/process", response_model=PaymentRead)
async def process_payment(
    payment: PaymentProcess,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> PaymentRead:
    """Pay for a pending booking."""
    return await PaymentService.process_payment(payment, current_user)


@router.get("", response_model=List[PaymentRead])
async def list_payments(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[PaymentRead]:
    """Payment history visible to the caller."""
    return await PaymentService.list_payments(current_user, status=status, limit=limit, offset=offset)


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(payment_id: int, current_user: dict = Depends(get_current_user)) -> PaymentRead:
    return await PaymentService.get_payment(payment_id, current_user)


@router.post("/{payment_id}/confirm", response_model=PaymentRead)
async def confirm_payment(
    payment_id: int,
    current_user: dict = Depends(require_roles(ROLE_VENDOR, ROLE_MANAGER, ROLE_ADMIN)),
) -> PaymentRead:
    """Confirm a pending cash payment."""
    return await PaymentService.confirm_payment(payment_id, current_user)


@router.post("/{payment_id}/refund", response_model=PaymentRead)
async def refund_payment(
    payment_id: int,
    reason: Optional[str] = Body(None, embed=True),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> PaymentRead:
    """Refund a completed payment and cancel its booking if still open."""
    return await PaymentService.refund_payment(payment_id, current_user, reason=reason)
