"""
Business logic for vendors (salons).

Covers the public vendor directory, the vendor's own profile and
service management, and the vendor dashboard figures.  A vendor
profile shares its id with the owning user account.
"""

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from ..schemas.vendor import BeauticianBrief, VendorDetail, VendorRead, VendorSummary, VendorUpdate
from .catalog_service import SERVICE_COLUMNS, SERVICE_FROM, CatalogService
from .review_service import ReviewService
from .statistics_service import ACTIVE_BOOKING_STATUSES, StatisticsService, utc_timestamp


logger = logging.getLogger(__name__)


VENDOR_COLUMNS = "v.*, u.first_name, u.last_name, u.email, u.phone"
VENDOR_FROM = "FROM vendors v JOIN users u ON u.id = v.id"

DEFAULT_OPERATING_HOURS = {
    "monday": "09:00-18:00",
    "tuesday": "09:00-18:00",
    "wednesday": "09:00-18:00",
    "thursday": "09:00-18:00",
    "friday": "09:00-18:00",
    "saturday": "09:00-17:00",
    "sunday": "closed",
}


def _load_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default


class VendorService:
    """Service for vendor profiles, services and dashboards."""

    @staticmethod
    def row_to_vendor(cursor: sqlite3.Cursor, row: sqlite3.Row, model=VendorRead, **extra) -> VendorRead:
        rating, review_count = ReviewService.rating_summary(cursor, vendor_id=row["id"])
        return model(
            id=row["id"],
            shop_name=row["shop_name"],
            description=row["description"],
            address=row["address"],
            city=row["city"],
            state=row["state"],
            zip_code=row["zip_code"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            business_type=row["business_type"],
            years_in_business=row["years_in_business"],
            number_of_employees=row["number_of_employees"],
            services_offered=_load_json(row["services_offered"], []),
            operating_hours=_load_json(row["operating_hours"], DEFAULT_OPERATING_HOURS),
            status=row["status"],
            is_verified=bool(row["is_verified"]),
            owner_name=f"{row['first_name']} {row['last_name']}",
            email=row["email"],
            phone=row["phone"],
            rating=rating,
            review_count=review_count,
            created_at=row["created_at"],
            **extra,
        )

    @classmethod
    def fetch_vendor(cls, cursor: sqlite3.Cursor, vendor_id: int) -> VendorRead:
        row = cursor.execute(f"SELECT {VENDOR_COLUMNS} {VENDOR_FROM} WHERE v.id = ?", (vendor_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Vendor {vendor_id} not found")
        return cls.row_to_vendor(cursor, row)

    @staticmethod
    def directory_extras(cursor: sqlite3.Cursor, vendor_id: int) -> Dict[str, Any]:
        rows = cursor.execute(
            """
            SELECT DISTINCT c.name FROM services s
            JOIN service_categories c ON c.id = s.category_id
            WHERE s.vendor_id = ? AND s.is_active = 1
            ORDER BY c.name
            """,
            (vendor_id,),
        ).fetchall()
        service_count = cursor.execute(
            "SELECT COUNT(*) FROM services WHERE vendor_id = ? AND is_active = 1",
            (vendor_id,),
        ).fetchone()[0]
        return {"categories": [row["name"] for row in rows], "service_count": service_count}

    # ------------------------------------------------------------------
    # Public directory
    # ------------------------------------------------------------------

    @classmethod
    async def list_public_vendors(
        cls,
        search: Optional[str] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[VendorSummary]:
        """List approved vendors with optional search and filters."""
        where_clauses = ["v.status = 'APPROVED'"]
        params: list = []
        if search:
            where_clauses.append(
                "(v.shop_name LIKE ? OR v.description LIKE ? OR v.address LIKE ? OR v.city LIKE ?)"
            )
            params.extend([f"%{search}%"] * 4)
        if city:
            where_clauses.append("lower(v.city) = lower(?)")
            params.append(city)
        if category:
            where_clauses.append(
                """
                EXISTS (SELECT 1 FROM services s JOIN service_categories c ON c.id = s.category_id
                        WHERE s.vendor_id = v.id AND s.is_active = 1 AND lower(c.name) = lower(?))
                """
            )
            params.append(category)
        query = (
            f"SELECT {VENDOR_COLUMNS} {VENDOR_FROM} WHERE " + " AND ".join(where_clauses)
            + " ORDER BY v.created_at DESC, v.id DESC LIMIT ? OFFSET ?"
        )
        params.extend([limit, offset])
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(query, params).fetchall()
            return [
                cls.row_to_vendor(cursor, row, model=VendorSummary, **cls.directory_extras(cursor, row["id"]))
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def get_public_vendor(cls, vendor_id: int) -> VendorDetail:
        """Return an approved vendor with its active services and beauticians."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {VENDOR_COLUMNS} {VENDOR_FROM} WHERE v.id = ? AND v.status = 'APPROVED'",
                (vendor_id,),
            ).fetchone()
            if not row:
                raise NotFoundError(f"Vendor {vendor_id} not found")
            service_rows = cursor.execute(
                f"SELECT {SERVICE_COLUMNS} {SERVICE_FROM} WHERE s.vendor_id = ? AND s.is_active = 1 ORDER BY s.name",
                (vendor_id,),
            ).fetchall()
            beautician_rows = cursor.execute(
                """
                SELECT b.id, b.skills, b.experience, u.first_name, u.last_name
                FROM beauticians b JOIN users u ON u.id = b.id
                WHERE b.vendor_id = ? AND b.status = 'APPROVED' AND u.status = 'ACTIVE'
                ORDER BY u.first_name
                """,
                (vendor_id,),
            ).fetchall()
            return cls.row_to_vendor(
                cursor,
                row,
                model=VendorDetail,
                services=[CatalogService.row_to_service(cursor, s) for s in service_rows],
                beauticians=[
                    BeauticianBrief(
                        id=b["id"],
                        first_name=b["first_name"],
                        last_name=b["last_name"],
                        skills=_load_json(b["skills"], []),
                        experience=b["experience"],
                    )
                    for b in beautician_rows
                ],
                **cls.directory_extras(cursor, vendor_id),
            )
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Own profile
    # ------------------------------------------------------------------

    @classmethod
    async def get_profile(cls, vendor_id: int) -> Dict[str, Any]:
        """Return the vendor's own profile with summary statistics."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            vendor = cls.fetch_vendor(cursor, vendor_id)
            counts = cursor.execute(
                """
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status = 'COMPLETED' THEN 1 ELSE 0 END) AS completed
                FROM bookings WHERE vendor_id = ?
                """,
                (vendor_id,),
            ).fetchone()
            total_services = cursor.execute(
                "SELECT COUNT(*) FROM services WHERE vendor_id = ?", (vendor_id,)
            ).fetchone()[0]
            stats = {
                "total_services": total_services,
                "total_bookings": counts["total"] or 0,
                "completed_bookings": counts["completed"] or 0,
                "total_revenue": StatisticsService.revenue(cursor, vendor_id=vendor_id),
            }
            return {"vendor": vendor, "stats": stats}
        finally:
            conn.close()

    @classmethod
    async def update_profile(cls, vendor_id: int, data: VendorUpdate) -> VendorRead:
        updates = data.model_dump(exclude_unset=True)
        if "shop_name" in updates and updates["shop_name"] is None:
            raise ValueError("shop_name cannot be empty")
        for key in ("services_offered", "operating_hours"):
            if key in updates:
                updates[key] = json.dumps(updates[key]) if updates[key] is not None else None
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls.fetch_vendor(cursor, vendor_id)
            if updates:
                fields = [f"{name} = ?" for name in updates]
                cursor.execute(
                    f"UPDATE vendors SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(updates.values()) + [vendor_id],
                )
                conn.commit()
                logger.info("Vendor %s updated profile fields %s", vendor_id, sorted(updates))
            return cls.fetch_vendor(cursor, vendor_id)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Own services
    # ------------------------------------------------------------------

    @classmethod
    async def list_own_services(cls, vendor_id: int) -> List[ServiceRead]:
        """All services of the vendor, including inactive ones."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                f"SELECT {SERVICE_COLUMNS} {SERVICE_FROM} WHERE s.vendor_id = ? ORDER BY s.created_at DESC, s.id DESC",
                (vendor_id,),
            ).fetchall()
            return [CatalogService.row_to_service(cursor, row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    def _own_service(cursor: sqlite3.Cursor, vendor_id: int, service_id: int) -> sqlite3.Row:
        row = cursor.execute(
            "SELECT id, name FROM services WHERE id = ? AND vendor_id = ?",
            (service_id, vendor_id),
        ).fetchone()
        if not row:
            raise NotFoundError(f"Service {service_id} not found")
        return row

    @staticmethod
    def _check_unique_name(cursor: sqlite3.Cursor, vendor_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        row = cursor.execute(
            "SELECT id FROM services WHERE vendor_id = ? AND lower(name) = lower(?) AND id != ?",
            (vendor_id, name, exclude_id or 0),
        ).fetchone()
        if row:
            raise ValueError(f"A service named '{name}' already exists")

    @classmethod
    async def create_service(cls, vendor_id: int, data: ServiceCreate) -> ServiceRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._check_unique_name(cursor, vendor_id, data.name)
            category_id = CatalogService.resolve_category(cursor, data.category)
            cursor.execute(
                """
                INSERT INTO services (vendor_id, category_id, name, description, price, duration, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (vendor_id, category_id, data.name, data.description, data.price, data.duration, int(data.is_active)),
            )
            service_id = cursor.lastrowid
            conn.commit()
            logger.info("Vendor %s created service %s (%s)", vendor_id, service_id, data.name)
            return CatalogService.fetch_service(cursor, service_id)
        finally:
            conn.close()

    @classmethod
    async def update_service(cls, vendor_id: int, service_id: int, data: ServiceUpdate) -> ServiceRead:
        updates = data.model_dump(exclude_unset=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._own_service(cursor, vendor_id, service_id)
            if "name" in updates and updates["name"] is not None:
                cls._check_unique_name(cursor, vendor_id, updates["name"], exclude_id=service_id)
            if "category" in updates:
                updates["category_id"] = CatalogService.resolve_category(cursor, updates.pop("category"))
            if "is_active" in updates and updates["is_active"] is not None:
                updates["is_active"] = int(updates["is_active"])
            updates = {k: v for k, v in updates.items() if v is not None or k == "category_id"}
            if updates:
                fields = [f"{name} = ?" for name in updates]
                cursor.execute(
                    f"UPDATE services SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(updates.values()) + [service_id],
                )
                conn.commit()
                logger.info("Vendor %s updated service %s", vendor_id, service_id)
            return CatalogService.fetch_service(cursor, service_id)
        finally:
            conn.close()

    @classmethod
    async def delete_service(cls, vendor_id: int, service_id: int) -> bool:
        """Delete a service, or deactivate it if bookings reference it.

        Returns ``True`` when the row was removed and ``False`` when it
        was only deactivated.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._own_service(cursor, vendor_id, service_id)
            referenced = cursor.execute(
                "SELECT 1 FROM booking_items WHERE service_id = ? LIMIT 1", (service_id,)
            ).fetchone()
            if referenced:
                cursor.execute(
                    "UPDATE services SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (service_id,),
                )
                logger.info("Vendor %s deactivated booked service %s", vendor_id, service_id)
            else:
                cursor.execute("DELETE FROM reviews WHERE service_id = ?", (service_id,))
                cursor.execute("DELETE FROM services WHERE id = ?", (service_id,))
                logger.info("Vendor %s deleted service %s", vendor_id, service_id)
            conn.commit()
            return not referenced
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Dashboard and revenue
    # ------------------------------------------------------------------

    @classmethod
    async def dashboard(cls, vendor_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            today = date.today().isoformat()
            now = datetime.now(timezone.utc)
            month_start = utc_timestamp(now.replace(day=1, hour=0, minute=0, second=0, microsecond=0))
            # created_at is a UTC timestamp, so compare it with the UTC day.
            new_bookings = cursor.execute(
                "SELECT COUNT(*) FROM bookings WHERE vendor_id = ? AND date(created_at) = date(?)",
                (vendor_id, now.date().isoformat()),
            ).fetchone()[0]
            placeholders = ", ".join("?" for _ in ACTIVE_BOOKING_STATUSES)
            by_status = StatisticsService.bookings_by_status(cursor, vendor_id=vendor_id)
            upcoming = cursor.execute(
                f"""
                SELECT COUNT(*) FROM bookings
                WHERE vendor_id = ? AND status IN ({placeholders}) AND scheduled_date >= ?
                """,
                (vendor_id, *ACTIVE_BOOKING_STATUSES, today),
            ).fetchone()[0]
            total_services = cursor.execute(
                "SELECT COUNT(*) FROM services WHERE vendor_id = ? AND is_active = 1", (vendor_id,)
            ).fetchone()[0]
            total_customers = cursor.execute(
                "SELECT COUNT(DISTINCT customer_id) FROM bookings WHERE vendor_id = ?", (vendor_id,)
            ).fetchone()[0]
            rating, review_count = ReviewService.rating_summary(cursor, vendor_id=vendor_id)
            return {
                "new_bookings": new_bookings,
                "completed_services": by_status["COMPLETED"],
                "pending_bookings": by_status["PENDING"],
                "upcoming_appointments": upcoming,
                "monthly_revenue": StatisticsService.revenue(cursor, since=month_start, vendor_id=vendor_id),
                "total_services": total_services,
                "total_customers": total_customers,
                "rating": rating,
                "review_count": review_count,
            }
        finally:
            conn.close()

    @classmethod
    async def revenue(cls, vendor_id: int, range_name: Optional[str] = None) -> Dict[str, Any]:
        since = StatisticsService.range_start(range_name)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total_revenue = StatisticsService.revenue(cursor, since=since, vendor_id=vendor_id)
            paid_bookings = cursor.execute(
                """
                SELECT COUNT(DISTINCT p.booking_id) FROM payments p JOIN bookings b ON b.id = p.booking_id
                WHERE p.status = 'COMPLETED' AND b.vendor_id = ? AND COALESCE(p.confirmed_at, p.created_at) >= ?
                """,
                (vendor_id, since),
            ).fetchone()[0]
            return {
                "range": (range_name or "month").lower(),
                "since": since,
                "total_revenue": total_revenue,
                "total_bookings": paid_bookings,
                "average_booking_value": round(total_revenue / paid_bookings, 2) if paid_bookings else 0.0,
                "top_services": StatisticsService.top_services(cursor, vendor_id=vendor_id, since=since),
                "recent_transactions": StatisticsService.recent_transactions(cursor, vendor_id=vendor_id),
            }
        finally:
            conn.close()
