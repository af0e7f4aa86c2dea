"""
Business logic for the manager console.

Managers moderate the marketplace: they review vendor and beautician
applications, oversee appointments and read operational reports.
Administrators have access to everything a manager can do.
"""

import logging
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.beautician import BeauticianRead
from ..schemas.vendor import VendorSummary
from .beautician_service import BeauticianService
from .booking_service import BOOKING_SELECT, BookingService
from .statistics_service import ACTIVE_BOOKING_STATUSES, StatisticsService
from .vendor_service import VENDOR_COLUMNS, VENDOR_FROM, VendorService


logger = logging.getLogger(__name__)


VENDOR_STATUSES = ("PENDING", "APPROVED", "REJECTED", "SUSPENDED")


class ManagerService:
    """Moderation, oversight and reporting."""

    @classmethod
    async def dashboard(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            vendor_counts = {
                row["status"]: row["cnt"]
                for row in cursor.execute("SELECT status, COUNT(*) AS cnt FROM vendors GROUP BY status").fetchall()
            }
            pending_beauticians = cursor.execute(
                "SELECT COUNT(*) FROM beauticians WHERE status = 'PENDING'"
            ).fetchone()[0]
            by_status = StatisticsService.bookings_by_status(cursor)
            recent_rows = cursor.execute(
                BOOKING_SELECT + " ORDER BY b.created_at DESC, b.id DESC LIMIT 5"
            ).fetchall()
            return {
                "total_vendors": sum(vendor_counts.values()),
                "pending_vendors": vendor_counts.get("PENDING", 0),
                "approved_vendors": vendor_counts.get("APPROVED", 0),
                "pending_beauticians": pending_beauticians,
                "total_bookings": sum(by_status.values()),
                "active_bookings": sum(by_status[s] for s in ACTIVE_BOOKING_STATUSES),
                "completed_bookings": by_status["COMPLETED"],
                "total_revenue": StatisticsService.revenue(cursor),
                "recent_bookings": [BookingService.row_to_booking(cursor, row) for row in recent_rows],
            }
        finally:
            conn.close()

    @classmethod
    async def list_vendors(cls, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """All vendors regardless of status, each with booking and revenue totals."""
        query = f"SELECT {VENDOR_COLUMNS} {VENDOR_FROM}"
        params: list = []
        if status:
            status = status.upper()
            if status not in VENDOR_STATUSES:
                raise ValueError(f"Invalid vendor status: {status}")
            query += " WHERE v.status = ?"
            params.append(status)
        query += " ORDER BY v.created_at DESC, v.id DESC"
        conn = get_connection()
        try:
            cursor = conn.cursor()
            result = []
            for row in cursor.execute(query, params).fetchall():
                vendor = VendorService.row_to_vendor(cursor, row, model=VendorSummary, **VendorService.directory_extras(cursor, row["id"]))
                total_bookings = cursor.execute(
                    "SELECT COUNT(*) FROM bookings WHERE vendor_id = ?", (row["id"],)
                ).fetchone()[0]
                result.append(
                    {
                        **vendor.model_dump(),
                        "rejection_reason": row["rejection_reason"],
                        "total_bookings": total_bookings,
                        "total_revenue": StatisticsService.revenue(cursor, vendor_id=row["id"]),
                    }
                )
            return result
        finally:
            conn.close()

    @classmethod
    async def set_vendor_status(
        cls,
        vendor_id: int,
        status: str,
        actor_id: Optional[int],
        reason: Optional[str] = None,
        allowed_from: Optional[tuple] = None,
    ) -> Dict[str, Any]:
        """Change a vendor's moderation status.

        ``allowed_from`` restricts which current statuses may be changed;
        approval and rejection use it, the admin console does not.
        """
        status = status.upper()
        if status not in VENDOR_STATUSES:
            raise ValueError(f"Invalid vendor status: {status}")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id, status FROM vendors WHERE id = ?", (vendor_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Vendor {vendor_id} not found")
            if allowed_from is not None and row["status"] not in allowed_from:
                raise ValueError(f"Vendor is {row['status'].lower()} and cannot be {status.lower()}")
            cursor.execute(
                """
                UPDATE vendors SET status = ?, is_verified = ?, rejection_reason = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (status, int(status == "APPROVED"), reason if status == "REJECTED" else None, vendor_id),
            )
            conn.commit()
            vendor = VendorService.fetch_vendor(cursor, vendor_id)
        finally:
            conn.close()
        logger.info("Vendor %s status %s -> %s by user %s", vendor_id, row["status"], status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="set_status",
            object_type="vendor",
            object_id=vendor_id,
            details={"from": row["status"], "to": status, "reason": reason},
        )
        return {**vendor.model_dump(), "rejection_reason": reason if status == "REJECTED" else None}

    @classmethod
    async def approve_vendor(cls, vendor_id: int, actor_id: Optional[int]) -> Dict[str, Any]:
        return await cls.set_vendor_status(vendor_id, "APPROVED", actor_id, allowed_from=("PENDING", "REJECTED"))

    @classmethod
    async def reject_vendor(cls, vendor_id: int, actor_id: Optional[int], reason: Optional[str]) -> Dict[str, Any]:
        return await cls.set_vendor_status(
            vendor_id, "REJECTED", actor_id, reason=reason or "Application rejected", allowed_from=("PENDING",)
        )

    @classmethod
    async def _set_beautician_status(
        cls,
        beautician_id: int,
        status: str,
        actor_id: Optional[int],
        allowed_from: tuple,
        reason: Optional[str] = None,
    ) -> BeauticianRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id, status FROM beauticians WHERE id = ?", (beautician_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Beautician {beautician_id} not found")
            if row["status"] not in allowed_from:
                raise ValueError(f"Beautician is {row['status'].lower()} and cannot be {status.lower()}")
            cursor.execute(
                """
                UPDATE beauticians SET status = ?, is_verified = ?, rejection_reason = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (status, int(status == "APPROVED"), reason, beautician_id),
            )
            conn.commit()
            result = BeauticianService.fetch(cursor, beautician_id)
        finally:
            conn.close()
        logger.info("Beautician %s status %s -> %s by user %s", beautician_id, row["status"], status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="set_status",
            object_type="beautician",
            object_id=beautician_id,
            details={"from": row["status"], "to": status, "reason": reason},
        )
        return result

    @classmethod
    async def approve_beautician(cls, beautician_id: int, actor_id: Optional[int]) -> BeauticianRead:
        return await cls._set_beautician_status(beautician_id, "APPROVED", actor_id, ("PENDING", "REJECTED"))

    @classmethod
    async def reject_beautician(cls, beautician_id: int, actor_id: Optional[int], reason: Optional[str]) -> BeauticianRead:
        return await cls._set_beautician_status(
            beautician_id, "REJECTED", actor_id, ("PENDING",), reason=reason or "Application rejected"
        )

    @classmethod
    async def reports(cls, range_name: Optional[str] = None) -> Dict[str, Any]:
        since = StatisticsService.range_start(range_name)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            return {
                "range": (range_name or "month").lower(),
                "since": since,
                "bookings_by_status": StatisticsService.bookings_by_status(cursor, since=since),
                "revenue": StatisticsService.revenue(cursor, since=since),
                "vendor_performance": StatisticsService.vendor_performance(cursor, since=since),
            }
        finally:
            conn.close()
