"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers under a unified prefix.
When new endpoints or domains are added, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import (
    admin,
    auth,
    beautician,
    bookings,
    customer,
    manager,
    orders,
    payments,
    products,
    services,
    vendor,
    vendors,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(customer.router, prefix="/customer", tags=["customer"])
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(vendors.router, prefix="/vendors", tags=["vendors"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(products.router, prefix="/products", tags=["products"])
router.include_router(orders.router, prefix="/orders", tags=["orders"])
# Role dashboards
router.include_router(vendor.router, prefix="/vendor", tags=["vendor"])
router.include_router(beautician.router, prefix="/beautician", tags=["beautician"])
router.include_router(manager.router, prefix="/manager", tags=["manager"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
