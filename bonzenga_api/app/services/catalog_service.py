"""
Business logic for the public service catalogue.

Only active services of ``APPROVED`` vendors are visible publicly.
Searching is plain ``LIKE`` matching on name and description.
"""

import logging
import sqlite3
from typing import List, Optional

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.common import Pagination
from ..schemas.service import CategoryRead, ServiceDetail, ServiceList, ServiceRead, VendorBrief
from .review_service import ReviewService


logger = logging.getLogger(__name__)


SERVICE_COLUMNS = (
    "s.id, s.vendor_id, s.name, s.description, s.price, s.duration, s.is_active, s.created_at, "
    "c.name AS category, v.shop_name AS vendor_name"
)
SERVICE_FROM = (
    "FROM services s "
    "JOIN vendors v ON v.id = s.vendor_id "
    "LEFT JOIN service_categories c ON c.id = s.category_id"
)

RECENT_REVIEWS = 5


class CatalogService:
    """Read access to services and categories."""

    @staticmethod
    def row_to_service(cursor: sqlite3.Cursor, row: sqlite3.Row) -> ServiceRead:
        rating, review_count = ReviewService.rating_summary(cursor, service_id=row["id"])
        return ServiceRead(
            id=row["id"],
            vendor_id=row["vendor_id"],
            vendor_name=row["vendor_name"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            duration=row["duration"],
            category=row["category"],
            is_active=bool(row["is_active"]),
            rating=rating,
            review_count=review_count,
            created_at=row["created_at"],
        )

    @staticmethod
    def resolve_category(cursor: sqlite3.Cursor, name: Optional[str]) -> Optional[int]:
        """Return the id of a category by case‑insensitive name."""
        if not name:
            return None
        row = cursor.execute(
            "SELECT id FROM service_categories WHERE lower(name) = lower(?)",
            (name.strip(),),
        ).fetchone()
        if not row:
            raise ValueError(f"Unknown category: {name}")
        return row["id"]

    @classmethod
    def fetch_service(cls, cursor: sqlite3.Cursor, service_id: int) -> ServiceRead:
        row = cursor.execute(
            f"SELECT {SERVICE_COLUMNS} {SERVICE_FROM} WHERE s.id = ?",
            (service_id,),
        ).fetchone()
        if not row:
            raise NotFoundError(f"Service {service_id} not found")
        return cls.row_to_service(cursor, row)

    @classmethod
    async def list_services(
        cls,
        category: Optional[str] = None,
        vendor_id: Optional[int] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ServiceList:
        """List publicly bookable services with filters and pagination."""
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValueError("min_price cannot be greater than max_price")
        where_clauses = ["s.is_active = 1", "v.status = 'APPROVED'"]
        params: list = []
        if category:
            where_clauses.append("lower(c.name) = lower(?)")
            params.append(category)
        if vendor_id is not None:
            where_clauses.append("s.vendor_id = ?")
            params.append(vendor_id)
        if search:
            where_clauses.append("(s.name LIKE ? OR s.description LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        if min_price is not None:
            where_clauses.append("s.price >= ?")
            params.append(min_price)
        if max_price is not None:
            where_clauses.append("s.price <= ?")
            params.append(max_price)
        where_sql = " WHERE " + " AND ".join(where_clauses)

        conn = get_connection()
        try:
            cursor = conn.cursor()
            total = cursor.execute(f"SELECT COUNT(*) {SERVICE_FROM}{where_sql}", params).fetchone()[0]
            rows = cursor.execute(
                f"SELECT {SERVICE_COLUMNS} {SERVICE_FROM}{where_sql} ORDER BY s.created_at DESC, s.id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            services = [cls.row_to_service(cursor, row) for row in rows]
            return ServiceList(services=services, pagination=Pagination.build(page, limit, total))
        finally:
            conn.close()

    @classmethod
    async def list_categories(cls) -> List[CategoryRead]:
        """List categories with the number of publicly bookable services in each."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT c.id, c.name, c.description,
                       COUNT(s.id) AS service_count
                FROM service_categories c
                LEFT JOIN services s ON s.category_id = c.id AND s.is_active = 1
                    AND s.vendor_id IN (SELECT id FROM vendors WHERE status = 'APPROVED')
                GROUP BY c.id
                ORDER BY c.name
                """
            ).fetchall()
            return [
                CategoryRead(id=row["id"], name=row["name"], description=row["description"], service_count=row["service_count"])
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def get_service(cls, service_id: int) -> ServiceDetail:
        """Return a publicly visible service with its vendor and latest reviews."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {SERVICE_COLUMNS}, v.status AS vendor_status {SERVICE_FROM} WHERE s.id = ?",
                (service_id,),
            ).fetchone()
            if not row or not row["is_active"] or row["vendor_status"] != "APPROVED":
                raise NotFoundError(f"Service {service_id} not found")
            vendor = cursor.execute(
                """
                SELECT v.id, v.shop_name, v.description, v.address, v.city, u.phone
                FROM vendors v JOIN users u ON u.id = v.id WHERE v.id = ?
                """,
                (row["vendor_id"],),
            ).fetchone()
            rating, review_count = ReviewService.rating_summary(cursor, vendor_id=vendor["id"])
            return ServiceDetail(
                **cls.row_to_service(cursor, row).model_dump(),
                vendor=VendorBrief(**dict(vendor), rating=rating, review_count=review_count),
                recent_reviews=ReviewService.service_reviews(cursor, service_id, limit=RECENT_REVIEWS),
            )
        finally:
            conn.close()
