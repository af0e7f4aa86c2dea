"""
Product order endpoints for API v1.

Customers place and cancel orders, vendors advance the delivery of
orders holding their products and administrators can do both.
An order outside the caller's scope answers 404.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bonzenga_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MANAGER,
    ROLE_VENDOR,
    require_roles,
)
from bonzenga_api.app.schemas.order import (
    DeliveryStatusUpdate,
    DeliveryTimeline,
    DeliveryUpdateRead,
    OrderCancel,
    OrderCreate,
    OrderList,
    OrderRead,
    OrderStatusUpdate,
)
from bonzenga_api.app.services.order_service import OrderService


router = APIRouter()

order_parties = require_roles(ROLE_ADMIN, ROLE_MANAGER, ROLE_VENDOR, ROLE_CUSTOMER)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    order: OrderCreate,
    current_user: dict = Depends(require_roles(ROLE_CUSTOMER)),
) -> OrderRead:
    """Order products from one or more vendors.

    Prices and tax come from the catalogue.  The order starts
    ``PENDING`` and the ordered quantities are taken off the stock.
    """
    return await OrderService.create_order(order, current_user)


@router.get("", response_model=OrderList)
async def list_orders(
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(order_parties),
) -> OrderList:
    return await OrderService.list_orders(
        current_user,
        status=status,
        customer_id=customer_id,
        vendor_id=vendor_id,
        page=page,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(order_id: int, current_user: dict = Depends(order_parties)) -> OrderRead:
    return await OrderService.get_order(order_id, current_user)


@router.get("/{order_id}/delivery-timeline", response_model=DeliveryTimeline)
async def get_delivery_timeline(order_id: int, current_user: dict = Depends(order_parties)) -> DeliveryTimeline:
    return await OrderService.delivery_timeline(order_id, current_user)


@router.patch("/{order_id}/cancel", response_model=OrderRead)
async def cancel_order(
    order_id: int,
    payload: OrderCancel,
    current_user: dict = Depends(order_parties),
) -> OrderRead:
    """Cancel an order that was not delivered yet and restock its products."""
    return await OrderService.cancel_order(order_id, payload.reason, current_user)


@router.patch("/{order_id}/delivery-status", response_model=DeliveryUpdateRead)
async def update_delivery_status(
    order_id: int,
    payload: DeliveryStatusUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_VENDOR)),
) -> DeliveryUpdateRead:
    return await OrderService.update_delivery_status(order_id, payload.status, payload.note, current_user)


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> OrderRead:
    """Set any order status.  ``CANCELLED`` restocks the products."""
    return await OrderService.update_status(order_id, payload.status, payload.note, current_user["user_id"])
