"""
Business logic for the administrator console.

Administrators manage user accounts, vendors and managers, control the
platform commission and read the financial reports.  Commission is the
``default_commission_rate`` percentage of completed payment revenue;
a vendor's payout is its revenue minus that commission.
"""

import logging
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import AccessDeniedError, NotFoundError
from bonzenga_api.app.core.security import ROLE_CUSTOMER, ROLE_MANAGER, ROLE_VENDOR, hash_password
from ..schemas.admin import AdminUserRead, ManagerCreate
from ..schemas.user import UserRead
from .settings_service import SettingsService
from .statistics_service import ACTIVE_BOOKING_STATUSES, StatisticsService
from .user_service import USER_COLUMNS, UserService


logger = logging.getLogger(__name__)


USER_STATUSES = ("ACTIVE", "SUSPENDED", "PENDING")


class AdminService:
    """Account administration, commission and financial reporting."""

    @staticmethod
    def _commission(amount: float, rate: float) -> float:
        return round(amount * rate / 100.0, 2)

    @classmethod
    async def dashboard(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            role_counts = {
                row["role_id"]: row["cnt"]
                for row in cursor.execute("SELECT role_id, COUNT(*) AS cnt FROM users GROUP BY role_id").fetchall()
            }
            total_bookings = cursor.execute("SELECT COUNT(*) FROM bookings").fetchone()[0]
            pending_vendors = cursor.execute(
                "SELECT COUNT(*) FROM vendors WHERE status = 'PENDING'"
            ).fetchone()[0]
            revenue = StatisticsService.revenue(cursor)
            rate = SettingsService.read_value(cursor, "default_commission_rate")
            return {
                "total_users": sum(role_counts.values()),
                "total_vendors": role_counts.get(ROLE_VENDOR, 0),
                "total_managers": role_counts.get(ROLE_MANAGER, 0),
                "total_customers": role_counts.get(ROLE_CUSTOMER, 0),
                "total_bookings": total_bookings,
                "total_revenue": revenue,
                "total_commissions": cls._commission(revenue, rate),
                "pending_vendor_approvals": pending_vendors,
            }
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @classmethod
    async def list_users(
        cls,
        role: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AdminUserRead]:
        """List accounts with their booking count and amount spent."""
        where_clauses = []
        params: list = []
        if role:
            where_clauses.append("upper(r.name) = upper(?)")
            params.append(role)
        if status:
            where_clauses.append("u.status = ?")
            params.append(status.upper())
        if search:
            where_clauses.append("(u.email LIKE ? OR u.first_name LIKE ? OR u.last_name LIKE ?)")
            params.extend([f"%{search}%"] * 3)
        query = f"""
            SELECT {USER_COLUMNS},
                   (SELECT COUNT(*) FROM bookings b WHERE b.customer_id = u.id) AS total_bookings,
                   (SELECT COALESCE(SUM(p.amount), 0) FROM payments p
                     WHERE p.user_id = u.id AND p.status = 'COMPLETED') AS total_spent,
                   (SELECT MAX(b.created_at) FROM bookings b WHERE b.customer_id = u.id) AS last_booking_at
            FROM users u JOIN roles r ON r.id = u.role_id
        """
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY u.created_at DESC, u.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
            return [
                AdminUserRead(
                    **UserService.row_to_user(row).model_dump(),
                    total_bookings=row["total_bookings"],
                    total_spent=round(row["total_spent"], 2),
                    last_booking_at=row["last_booking_at"],
                )
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def set_user_status(
        cls,
        user_id: int,
        status: str,
        actor_id: int,
        expected_role: Optional[int] = None,
    ) -> UserRead:
        """Activate, suspend or park an account.

        Suspended and pending accounts can no longer log in or use
        existing tokens.  ``expected_role`` restricts the change to one
        kind of account (the managers page uses it).
        """
        status = status.upper()
        if status not in USER_STATUSES:
            raise ValueError(f"Invalid status: {status}. Must be one of: {', '.join(USER_STATUSES)}")
        if user_id == actor_id:
            raise AccessDeniedError("You cannot change your own account status")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id, role_id, status FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row or (expected_role is not None and row["role_id"] != expected_role):
                raise NotFoundError(f"User {user_id} not found")
            cursor.execute(
                "UPDATE users SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status, user_id),
            )
            conn.commit()
            user = UserService.fetch_user(cursor, user_id)
        finally:
            conn.close()
        logger.info("User %s status %s -> %s by admin %s", user_id, row["status"], status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="set_status",
            object_type="user",
            object_id=user_id,
            details={"from": row["status"], "to": status},
        )
        return user

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    @classmethod
    async def delete_vendor(cls, vendor_id: int, actor_id: int) -> Dict[str, Any]:
        """Remove a vendor from the marketplace.

        Refused while the vendor has bookings or product orders that are
        not finished.  Services and products without history are deleted
        and the rest deactivated.  The vendor profile is deleted when
        nothing references it and suspended otherwise.  The owning
        account is suspended either way.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            vendor = cursor.execute("SELECT id, shop_name FROM vendors WHERE id = ?", (vendor_id,)).fetchone()
            if not vendor:
                raise NotFoundError(f"Vendor {vendor_id} not found")
            placeholders = ", ".join("?" for _ in ACTIVE_BOOKING_STATUSES)
            active = cursor.execute(
                f"SELECT COUNT(*) FROM bookings WHERE vendor_id = ? AND status IN ({placeholders})",
                (vendor_id, *ACTIVE_BOOKING_STATUSES),
            ).fetchone()[0]
            if active:
                raise ValueError(f"Vendor has {active} active booking(s) and cannot be deleted")
            open_orders = cursor.execute(
                """
                SELECT COUNT(DISTINCT o.id) FROM orders o JOIN order_items oi ON oi.order_id = o.id
                WHERE oi.vendor_id = ? AND o.status NOT IN ('DELIVERED', 'CANCELLED', 'FAILED')
                """,
                (vendor_id,),
            ).fetchone()[0]
            if open_orders:
                raise ValueError(f"Vendor has {open_orders} open order(s) and cannot be deleted")

            cursor.execute(
                """
                DELETE FROM services
                WHERE vendor_id = ?
                  AND NOT EXISTS (SELECT 1 FROM booking_items bi WHERE bi.service_id = services.id)
                  AND NOT EXISTS (SELECT 1 FROM reviews rv WHERE rv.service_id = services.id)
                """,
                (vendor_id,),
            )
            removed_services = cursor.rowcount
            cursor.execute(
                "UPDATE services SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE vendor_id = ?",
                (vendor_id,),
            )
            cursor.execute(
                """
                DELETE FROM products
                WHERE vendor_id = ?
                  AND NOT EXISTS (SELECT 1 FROM order_items oi WHERE oi.product_id = products.id)
                  AND NOT EXISTS (SELECT 1 FROM product_reviews pr WHERE pr.product_id = products.id)
                """,
                (vendor_id,),
            )
            removed_products = cursor.rowcount
            cursor.execute(
                "UPDATE products SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE vendor_id = ?",
                (vendor_id,),
            )
            cursor.execute("UPDATE beauticians SET vendor_id = NULL WHERE vendor_id = ?", (vendor_id,))

            referenced = cursor.execute(
                """
                SELECT (SELECT COUNT(*) FROM bookings WHERE vendor_id = ?)
                     + (SELECT COUNT(*) FROM services WHERE vendor_id = ?)
                     + (SELECT COUNT(*) FROM reviews WHERE vendor_id = ?)
                     + (SELECT COUNT(*) FROM products WHERE vendor_id = ?)
                     + (SELECT COUNT(*) FROM order_items WHERE vendor_id = ?)
                """,
                (vendor_id, vendor_id, vendor_id, vendor_id, vendor_id),
            ).fetchone()[0]
            if referenced:
                cursor.execute(
                    "UPDATE vendors SET status = 'SUSPENDED', is_verified = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (vendor_id,),
                )
            else:
                cursor.execute("DELETE FROM vendors WHERE id = ?", (vendor_id,))
            cursor.execute(
                "UPDATE users SET status = 'SUSPENDED', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (vendor_id,),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info(
            "Vendor %s (%s) removed by admin %s; %s service(s) and %s product(s) deleted",
            vendor_id,
            vendor["shop_name"],
            actor_id,
            removed_services,
            removed_products,
        )
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="delete",
            object_type="vendor",
            object_id=vendor_id,
            details={"shop_name": vendor["shop_name"], "profile_kept": bool(referenced)},
        )
        return {
            "vendor_id": vendor_id,
            "deleted": not referenced,
            "services_deleted": removed_services,
            "products_deleted": removed_products,
        }

    # ------------------------------------------------------------------
    # Managers
    # ------------------------------------------------------------------

    @classmethod
    async def list_managers(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT {USER_COLUMNS} FROM users u JOIN roles r ON r.id = u.role_id
                WHERE u.role_id = ? ORDER BY u.created_at DESC, u.id DESC
                """,
                (ROLE_MANAGER,),
            ).fetchall()
            return [UserService.row_to_user(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def create_manager(cls, data: ManagerCreate, actor_id: int) -> UserRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone():
                raise ValueError("User already exists")
            cursor.execute(
                """
                INSERT INTO users (email, password, first_name, last_name, phone, role_id, status)
                VALUES (?, ?, ?, ?, ?, ?, 'ACTIVE')
                """,
                (data.email, hash_password(data.password), data.first_name, data.last_name, data.phone, ROLE_MANAGER),
            )
            conn.commit()
            user = UserService.fetch_user(cursor, cursor.lastrowid)
        finally:
            conn.close()
        logger.info("Manager account %s created by admin %s", user.email, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="create",
            object_type="manager",
            object_id=user.id,
            details={"email": user.email},
        )
        return user

    # ------------------------------------------------------------------
    # Money
    # ------------------------------------------------------------------

    @classmethod
    async def financials(cls, range_name: Optional[str] = None) -> Dict[str, Any]:
        since = StatisticsService.range_start(range_name)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rate = SettingsService.read_value(cursor, "default_commission_rate")
            revenue = StatisticsService.revenue(cursor, since=since)
            refunds = cursor.execute(
                """
                SELECT COALESCE(SUM(p.amount), 0) FROM payments p
                WHERE p.status = 'REFUNDED' AND p.updated_at >= ?
                """,
                (since,),
            ).fetchone()[0]
            payouts = []
            for vendor in StatisticsService.revenue_by_vendor(cursor, since=since):
                commission = cls._commission(vendor["revenue"], rate)
                payouts.append(
                    {
                        **vendor,
                        "commission": commission,
                        "payout": round(vendor["revenue"] - commission, 2),
                    }
                )
            return {
                "range": (range_name or "month").lower(),
                "since": since,
                "commission_rate": rate,
                "total_revenue": revenue,
                "total_commissions": cls._commission(revenue, rate),
                "total_refunds": round(refunds, 2),
                "vendor_payouts": payouts,
                "recent_transactions": StatisticsService.recent_transactions(cursor),
            }
        finally:
            conn.close()

    @classmethod
    async def set_commission(cls, rate: float, actor_id: int) -> Dict[str, Any]:
        if not 0 <= rate <= 100:
            raise ValueError("Commission rate must be between 0 and 100")
        await SettingsService.upsert_setting("default_commission_rate", float(rate), "float", actor_id)
        logger.info("Commission rate set to %s%% by admin %s", rate, actor_id)
        return {"commission_rate": float(rate)}

    @classmethod
    async def reports(cls, range_name: Optional[str] = None) -> Dict[str, Any]:
        since = StatisticsService.range_start(range_name)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            return {
                "range": (range_name or "month").lower(),
                "since": since,
                "user_growth": StatisticsService.user_growth(cursor, since),
                "bookings_by_status": StatisticsService.bookings_by_status(cursor, since=since),
                "revenue_by_day": StatisticsService.revenue_by_day(cursor, since),
                "top_vendors": StatisticsService.vendor_performance(cursor, since=since)[:5],
            }
        finally:
            conn.close()
