"""
Administrator console endpoints for API v1.

Account administration, vendor, product and manager management,
commission and financial reports, platform settings and the audit
trail.  Only administrators (role 1) may call these routes.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from bonzenga_api.app.core.security import ROLE_ADMIN, ROLE_MANAGER, require_roles
from bonzenga_api.app.schemas.admin import AdminUserRead, CommissionUpdate, ManagerCreate, UserStatusUpdate
from bonzenga_api.app.schemas.product import ProductList, ProductRead, ProductStatusUpdate
from bonzenga_api.app.schemas.user import UserRead
from bonzenga_api.app.schemas.vendor import VendorStatusUpdate
from bonzenga_api.app.services.admin_service import AdminService
from bonzenga_api.app.services.audit_service import AuditService
from bonzenga_api.app.services.manager_service import ManagerService
from bonzenga_api.app.services.product_service import ProductService
from bonzenga_api.app.services.settings_service import SettingsService


router = APIRouter()

admin_only = require_roles(ROLE_ADMIN)


@router.get("/dashboard")
async def get_dashboard(current_user: dict = Depends(admin_only)) -> dict:
    return await AdminService.dashboard()


@router.get("/users", response_model=List[AdminUserRead])
async def list_users(
    role: Optional[str] = Query(None, description="Role name, e.g. CUSTOMER"),
    status: Optional[str] = None,
    search: Optional[str] = Query(None, description="Match on e‑mail or name"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(admin_only),
) -> List[AdminUserRead]:
    return await AdminService.list_users(role=role, status=status, search=search, limit=limit, offset=offset)


@router.patch("/users/{user_id}/status", response_model=UserRead)
async def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    current_user: dict = Depends(admin_only),
) -> UserRead:
    """Activate or suspend an account.  Admins cannot change their own status."""
    return await AdminService.set_user_status(user_id, payload.status, current_user["user_id"])


@router.get("/vendors")
async def list_vendors(status: Optional[str] = None, current_user: dict = Depends(admin_only)) -> List[dict]:
    return await ManagerService.list_vendors(status)


@router.patch("/vendors/{vendor_id}/status")
async def set_vendor_status(
    vendor_id: int,
    payload: VendorStatusUpdate,
    current_user: dict = Depends(admin_only),
) -> dict:
    """Set any vendor status (PENDING, APPROVED, REJECTED or SUSPENDED)."""
    return await ManagerService.set_vendor_status(
        vendor_id, payload.status, current_user["user_id"], reason=payload.reason
    )


@router.delete("/vendors/{vendor_id}")
async def delete_vendor(vendor_id: int, current_user: dict = Depends(admin_only)) -> dict:
    """Remove a vendor that has no open bookings."""
    return await AdminService.delete_vendor(vendor_id, current_user["user_id"])


@router.get("/products", response_model=ProductList)
async def list_products(
    category: Optional[str] = None,
    vendor_id: Optional[int] = None,
    status: Optional[str] = Query(None, description="active or inactive"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(admin_only),
) -> ProductList:
    return await ProductService.admin_list_products(
        category=category, vendor_id=vendor_id, status=status, page=page, limit=limit
    )


@router.patch("/products/{product_id}/status", response_model=ProductRead)
async def set_product_status(
    product_id: int,
    payload: ProductStatusUpdate,
    current_user: dict = Depends(admin_only),
) -> ProductRead:
    return await ProductService.set_status(product_id, payload.is_active, payload.reason, current_user["user_id"])


@router.get("/managers", response_model=List[UserRead])
async def list_managers(current_user: dict = Depends(admin_only)) -> List[UserRead]:
    return await AdminService.list_managers()


@router.post("/managers", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_manager(data: ManagerCreate, current_user: dict = Depends(admin_only)) -> UserRead:
    return await AdminService.create_manager(data, current_user["user_id"])


@router.patch("/managers/{manager_id}/status", response_model=UserRead)
async def set_manager_status(
    manager_id: int,
    payload: UserStatusUpdate,
    current_user: dict = Depends(admin_only),
) -> UserRead:
    return await AdminService.set_user_status(
        manager_id, payload.status, current_user["user_id"], expected_role=ROLE_MANAGER
    )


@router.get("/financials")
async def get_financials(
    range: Optional[str] = Query("month", description="week, month, quarter or year"),
    current_user: dict = Depends(admin_only),
) -> dict:
    """Revenue, commissions, refunds and per‑vendor payouts."""
    return await AdminService.financials(range)


@router.put("/commission")
async def set_commission(payload: CommissionUpdate, current_user: dict = Depends(admin_only)) -> dict:
    return await AdminService.set_commission(payload.rate, current_user["user_id"])


@router.get("/reports")
async def get_reports(
    range: Optional[str] = Query("month", description="week, month, quarter or year"),
    current_user: dict = Depends(admin_only),
) -> dict:
    return await AdminService.reports(range)


@router.get("/settings")
async def get_settings(current_user: dict = Depends(admin_only)) -> Dict[str, Any]:
    """All platform settings, defaults included."""
    return await SettingsService.platform_settings()


@router.get("/settings/{key}")
async def get_setting(key: str, current_user: dict = Depends(admin_only)) -> dict:
    setting = await SettingsService.get_setting(key)
    if not setting:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Setting not found")
    return setting


@router.put("/settings")
async def update_settings(
    updates: Dict[str, Any] = Body(..., example={"tax_rate": 0.16, "maintenance_mode": False}),
    current_user: dict = Depends(admin_only),
) -> Dict[str, Any]:
    """Change one or more settings.

    Unknown keys and values that cannot be converted to the declared
    type are rejected and nothing is stored.
    """
    return await SettingsService.update_platform_settings(updates, user_id=current_user["user_id"])


@router.get("/audit-logs")
async def list_audit_logs(
    user_id: Optional[int] = None,
    object_type: Optional[str] = Query(None, description="e.g. booking, payment, vendor, order"),
    object_id: Optional[int] = None,
    action: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(admin_only),
) -> List[dict]:
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        object_id=object_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
