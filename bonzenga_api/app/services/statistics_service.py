"""
Service layer for statistics and reporting.

This module holds the aggregate queries shared by the vendor, manager
and admin dashboards.  The helpers take an open cursor so a dashboard
can compose several of them over one connection.

Revenue always means the sum of ``COMPLETED`` payments, dated by
their confirmation time.  Reporting ranges are the rolling windows
``week`` (7 days), ``month`` (30), ``quarter`` (90) and ``year`` (365).
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .review_service import ReviewService


BOOKING_STATUSES = ("PENDING", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED")
ACTIVE_BOOKING_STATUSES = ("PENDING", "CONFIRMED", "IN_PROGRESS")

RANGE_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}

PAID_AT = "COALESCE(p.confirmed_at, p.created_at)"


def utc_timestamp(moment: datetime) -> str:
    """Format a datetime the way SQLite's ``CURRENT_TIMESTAMP`` does."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class StatisticsService:
    """Aggregations over bookings, payments and reviews."""

    @staticmethod
    def range_start(range_name: Optional[str]) -> str:
        """Return the UTC timestamp at which a reporting range begins."""
        range_name = (range_name or "month").lower()
        if range_name not in RANGE_DAYS:
            raise ValueError(f"Invalid range: {range_name}. Use one of {', '.join(RANGE_DAYS)}")
        return utc_timestamp(datetime.now(timezone.utc) - timedelta(days=RANGE_DAYS[range_name]))

    @staticmethod
    def revenue(cursor: sqlite3.Cursor, since: Optional[str] = None, vendor_id: Optional[int] = None) -> float:
        query = (
            "SELECT COALESCE(SUM(p.amount), 0) FROM payments p "
            "JOIN bookings b ON b.id = p.booking_id WHERE p.status = 'COMPLETED'"
        )
        params: List[Any] = []
        if since:
            query += f" AND {PAID_AT} >= ?"
            params.append(since)
        if vendor_id is not None:
            query += " AND b.vendor_id = ?"
            params.append(vendor_id)
        return round(cursor.execute(query, params).fetchone()[0], 2)

    @staticmethod
    def bookings_by_status(
        cursor: sqlite3.Cursor,
        since: Optional[str] = None,
        vendor_id: Optional[int] = None,
    ) -> Dict[str, int]:
        """Count bookings per status; every status is present, possibly zero."""
        query = "SELECT status, COUNT(*) AS cnt FROM bookings WHERE 1 = 1"
        params: List[Any] = []
        if since:
            query += " AND created_at >= ?"
            params.append(since)
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        query += " GROUP BY status"
        counts = {status: 0 for status in BOOKING_STATUSES}
        for row in cursor.execute(query, params).fetchall():
            counts[row["status"]] = row["cnt"]
        return counts

    @staticmethod
    def top_services(
        cursor: sqlite3.Cursor,
        vendor_id: Optional[int] = None,
        since: Optional[str] = None,
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        """Services ranked by revenue from completed bookings."""
        query = (
            "SELECT s.id, s.name, SUM(bi.quantity) AS bookings, SUM(bi.price * bi.quantity) AS revenue "
            "FROM booking_items bi "
            "JOIN bookings b ON b.id = bi.booking_id "
            "JOIN services s ON s.id = bi.service_id "
            "WHERE b.status = 'COMPLETED'"
        )
        params: List[Any] = []
        if vendor_id is not None:
            query += " AND b.vendor_id = ?"
            params.append(vendor_id)
        if since:
            query += " AND b.updated_at >= ?"
            params.append(since)
        query += " GROUP BY s.id ORDER BY revenue DESC, s.id LIMIT ?"
        params.append(limit)
        return [
            {"service_id": row["id"], "name": row["name"], "bookings": row["bookings"], "revenue": round(row["revenue"], 2)}
            for row in cursor.execute(query, params).fetchall()
        ]

    @staticmethod
    def recent_transactions(
        cursor: sqlite3.Cursor,
        vendor_id: Optional[int] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        query = (
            "SELECT p.id, p.booking_id, p.amount, p.currency, p.method, p.status, "
            f"{PAID_AT} AS paid_at, u.first_name, u.last_name "
            "FROM payments p JOIN bookings b ON b.id = p.booking_id "
            "JOIN users u ON u.id = p.user_id "
            "WHERE p.status IN ('COMPLETED', 'REFUNDED')"
        )
        params: List[Any] = []
        if vendor_id is not None:
            query += " AND b.vendor_id = ?"
            params.append(vendor_id)
        query += " ORDER BY paid_at DESC, p.id DESC LIMIT ?"
        params.append(limit)
        return [
            {
                "payment_id": row["id"],
                "booking_id": row["booking_id"],
                "customer": f"{row['first_name']} {row['last_name']}",
                "amount": row["amount"],
                "currency": row["currency"],
                "method": row["method"],
                "status": row["status"],
                "date": row["paid_at"],
            }
            for row in cursor.execute(query, params).fetchall()
        ]

    @staticmethod
    def vendor_performance(cursor: sqlite3.Cursor, since: Optional[str] = None) -> List[Dict[str, Any]]:
        """Per approved vendor: bookings, completions, revenue and rating.

        Sorting happens in Python because revenue and rating are
        computed per vendor.
        """
        vendors = cursor.execute(
            "SELECT id, shop_name FROM vendors WHERE status = 'APPROVED'"
        ).fetchall()
        results: List[Dict[str, Any]] = []
        for vendor in vendors:
            query = "SELECT COUNT(*) AS total, SUM(CASE WHEN status = 'COMPLETED' THEN 1 ELSE 0 END) AS completed FROM bookings WHERE vendor_id = ?"
            params: List[Any] = [vendor["id"]]
            if since:
                query += " AND created_at >= ?"
                params.append(since)
            counts = cursor.execute(query, params).fetchone()
            rating, review_count = ReviewService.rating_summary(cursor, vendor_id=vendor["id"])
            results.append(
                {
                    "vendor_id": vendor["id"],
                    "shop_name": vendor["shop_name"],
                    "bookings": counts["total"] or 0,
                    "completed": counts["completed"] or 0,
                    "revenue": StatisticsService.revenue(cursor, since=since, vendor_id=vendor["id"]),
                    "rating": rating,
                    "review_count": review_count,
                }
            )
        results.sort(key=lambda item: (item["revenue"], item["bookings"]), reverse=True)
        return results

    @staticmethod
    def revenue_by_vendor(cursor: sqlite3.Cursor, since: Optional[str] = None) -> List[Dict[str, Any]]:
        """Completed payment totals per vendor, whatever the vendor's status now is."""
        query = f"""
            SELECT b.vendor_id, v.shop_name, v.status, SUM(p.amount) AS revenue
            FROM payments p
            JOIN bookings b ON b.id = p.booking_id
            JOIN vendors v ON v.id = b.vendor_id
            WHERE p.status = 'COMPLETED'
        """
        params: List[Any] = []
        if since:
            query += f" AND {PAID_AT} >= ?"
            params.append(since)
        query += " GROUP BY b.vendor_id ORDER BY revenue DESC, b.vendor_id"
        return [
            {
                "vendor_id": row["vendor_id"],
                "shop_name": row["shop_name"],
                "vendor_status": row["status"],
                "revenue": round(row["revenue"], 2),
            }
            for row in cursor.execute(query, params).fetchall()
        ]

    @staticmethod
    def revenue_by_day(cursor: sqlite3.Cursor, since: str) -> List[Dict[str, Any]]:
        rows = cursor.execute(
            f"""
            SELECT date({PAID_AT}) AS day, SUM(p.amount) AS revenue, COUNT(*) AS payments
            FROM payments p
            WHERE p.status = 'COMPLETED' AND {PAID_AT} >= ?
            GROUP BY day ORDER BY day
            """,
            (since,),
        ).fetchall()
        return [{"date": row["day"], "revenue": round(row["revenue"], 2), "payments": row["payments"]} for row in rows]

    @staticmethod
    def user_growth(cursor: sqlite3.Cursor, since: str) -> Dict[str, int]:
        """New accounts per role since ``since``."""
        rows = cursor.execute(
            """
            SELECT r.name AS role, COUNT(u.id) AS cnt
            FROM roles r LEFT JOIN users u ON u.role_id = r.id AND u.created_at >= ?
            GROUP BY r.id ORDER BY r.id
            """,
            (since,),
        ).fetchall()
        return {row["role"]: row["cnt"] for row in rows}
