"""
Business logic for service reviews.

Only customers who completed a booking that included a service may
review it, and only once.  Ratings are aggregated on the fly for
services, vendors and beauticians; no averages are cached.
"""

import html
import logging
import sqlite3
from typing import List, Optional, Tuple

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.review import ReviewCreate, ReviewRead


logger = logging.getLogger(__name__)


class ReviewService:
    """Service for handling service reviews."""

    @staticmethod
    def rating_summary(
        cursor: sqlite3.Cursor,
        vendor_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> Tuple[Optional[float], int]:
        """Return ``(average, count)`` for a vendor or a service.

        The average is rounded to one decimal and is ``None`` when there
        are no reviews.
        """
        if service_id is not None:
            row = cursor.execute(
                "SELECT AVG(rating) AS avg_rating, COUNT(*) AS cnt FROM reviews WHERE service_id = ?",
                (service_id,),
            ).fetchone()
        else:
            row = cursor.execute(
                "SELECT AVG(rating) AS avg_rating, COUNT(*) AS cnt FROM reviews WHERE vendor_id = ?",
                (vendor_id,),
            ).fetchone()
        if not row or not row["cnt"]:
            return None, 0
        return round(row["avg_rating"], 1), row["cnt"]

    @staticmethod
    def _row_to_review(row: sqlite3.Row) -> ReviewRead:
        comment = html.escape(row["comment"]) if row["comment"] is not None else None
        return ReviewRead(
            id=row["id"],
            service_id=row["service_id"],
            vendor_id=row["vendor_id"],
            customer_id=row["customer_id"],
            customer_name=f"{row['first_name']} {row['last_name']}",
            rating=row["rating"],
            comment=comment,
            created_at=row["created_at"],
        )

    @classmethod
    def service_reviews(cls, cursor: sqlite3.Cursor, service_id: int, limit: int = 20, offset: int = 0) -> List[ReviewRead]:
        rows = cursor.execute(
            """
            SELECT rv.*, u.first_name, u.last_name FROM reviews rv
            JOIN users u ON u.id = rv.customer_id
            WHERE rv.service_id = ?
            ORDER BY rv.created_at DESC, rv.id DESC
            LIMIT ? OFFSET ?
            """,
            (service_id, limit, offset),
        ).fetchall()
        return [cls._row_to_review(row) for row in rows]

    @classmethod
    async def create_review(cls, service_id: int, data: ReviewCreate, current_user: dict) -> ReviewRead:
        """Create a review for a service.

        The customer must have a ``COMPLETED`` booking containing the
        service and must not have reviewed it before.
        """
        customer_id = current_user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            service = cursor.execute(
                "SELECT id, vendor_id FROM services WHERE id = ?",
                (service_id,),
            ).fetchone()
            if not service:
                raise NotFoundError(f"Service {service_id} not found")
            completed = cursor.execute(
                """
                SELECT 1 FROM bookings b
                JOIN booking_items bi ON bi.booking_id = b.id
                WHERE b.customer_id = ? AND bi.service_id = ? AND b.status = 'COMPLETED'
                LIMIT 1
                """,
                (customer_id, service_id),
            ).fetchone()
            if not completed:
                raise ValueError("You can only review services from your completed bookings")
            existing = cursor.execute(
                "SELECT id FROM reviews WHERE service_id = ? AND customer_id = ?",
                (service_id, customer_id),
            ).fetchone()
            if existing:
                raise ValueError("You have already reviewed this service")
            cursor.execute(
                """
                INSERT INTO reviews (service_id, vendor_id, customer_id, rating, comment)
                VALUES (?, ?, ?, ?, ?)
                """,
                (service_id, service["vendor_id"], customer_id, data.rating, data.comment),
            )
            review_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(
                """
                SELECT rv.*, u.first_name, u.last_name FROM reviews rv
                JOIN users u ON u.id = rv.customer_id WHERE rv.id = ?
                """,
                (review_id,),
            ).fetchone()
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create review: %s", e)
            raise
        finally:
            conn.close()
        logger.info("Customer %s reviewed service %s with %s stars", customer_id, service_id, data.rating)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=customer_id,
            action="create",
            object_type="review",
            object_id=review_id,
            details={"service_id": service_id, "rating": data.rating},
        )
        return cls._row_to_review(row)

    @classmethod
    async def list_reviews(cls, service_id: int, limit: int = 20, offset: int = 0) -> List[ReviewRead]:
        """List reviews for a service, newest first."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM services WHERE id = ?", (service_id,)).fetchone():
                raise NotFoundError(f"Service {service_id} not found")
            return cls.service_reviews(cursor, service_id, limit=limit, offset=offset)
        finally:
            conn.close()
