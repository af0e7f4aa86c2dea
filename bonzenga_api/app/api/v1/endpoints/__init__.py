"""
Endpoint subpackage for API v1.

Each module in this package defines an APIRouter for one area of the
marketplace (auth, catalogue, bookings, payments and the role
dashboards).  The routers are aggregated in ``router.py``.
"""
