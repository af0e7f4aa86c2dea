"""
Business logic for beauticians.

A beautician's earnings are their share (``beautician_share`` platform
setting) of the totals of the ``COMPLETED`` bookings assigned to them,
dated by the scheduled day of the appointment.
"""

import json
import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.beautician import BeauticianRead, BeauticianUpdate
from .settings_service import SettingsService


logger = logging.getLogger(__name__)


BEAUTICIAN_SELECT = """
    SELECT b.*, u.email, u.first_name, u.last_name, u.phone, v.shop_name AS vendor_name
    FROM beauticians b
    JOIN users u ON u.id = b.id
    LEFT JOIN vendors v ON v.id = b.vendor_id
"""

USER_FIELDS = ("first_name", "last_name", "phone")


def _json_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    try:
        return list(json.loads(value))
    except (json.JSONDecodeError, TypeError):
        return []


class BeauticianService:
    """Service for beautician profiles, schedules and earnings."""

    @staticmethod
    def row_to_beautician(row: sqlite3.Row) -> BeauticianRead:
        return BeauticianRead(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row["phone"],
            vendor_id=row["vendor_id"],
            vendor_name=row["vendor_name"],
            skills=_json_list(row["skills"]),
            experience=row["experience"],
            certifications=_json_list(row["certifications"]),
            bio=row["bio"],
            city=row["city"],
            address=row["address"],
            status=row["status"],
            is_verified=bool(row["is_verified"]),
            created_at=row["created_at"],
        )

    @classmethod
    def fetch(cls, cursor: sqlite3.Cursor, beautician_id: int) -> BeauticianRead:
        row = cursor.execute(BEAUTICIAN_SELECT + " WHERE b.id = ?", (beautician_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Beautician {beautician_id} not found")
        return cls.row_to_beautician(row)

    @classmethod
    async def list_beauticians(cls, status: Optional[str] = None) -> List[BeauticianRead]:
        query = BEAUTICIAN_SELECT
        params: list = []
        if status:
            query += " WHERE b.status = ?"
            params.append(status.upper())
        query += " ORDER BY b.created_at DESC, b.id DESC"
        conn = get_connection()
        try:
            return [cls.row_to_beautician(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_profile(cls, beautician_id: int) -> BeauticianRead:
        conn = get_connection()
        try:
            return cls.fetch(conn.cursor(), beautician_id)
        finally:
            conn.close()

    @classmethod
    async def update_profile(cls, beautician_id: int, data: BeauticianUpdate) -> BeauticianRead:
        updates = data.model_dump(exclude_unset=True)
        for required in ("first_name", "last_name", "experience"):
            if required in updates and updates[required] is None:
                raise ValueError(f"{required} cannot be empty")
        user_updates = {k: updates.pop(k) for k in USER_FIELDS if k in updates}
        for key in ("skills", "certifications"):
            if key in updates:
                updates[key] = json.dumps(updates[key] or [])
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls.fetch(cursor, beautician_id)
            if user_updates:
                fields = [f"{name} = ?" for name in user_updates]
                cursor.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(user_updates.values()) + [beautician_id],
                )
            if updates:
                fields = [f"{name} = ?" for name in updates]
                cursor.execute(
                    f"UPDATE beauticians SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(updates.values()) + [beautician_id],
                )
            conn.commit()
            if user_updates or updates:
                logger.info("Beautician %s updated profile", beautician_id)
            return cls.fetch(cursor, beautician_id)
        finally:
            conn.close()

    @classmethod
    async def dashboard(cls, beautician_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            today = date.today().isoformat()
            upcoming = cursor.execute(
                """
                SELECT COUNT(*) FROM bookings
                WHERE beautician_id = ? AND status IN ('CONFIRMED', 'IN_PROGRESS') AND scheduled_date >= ?
                """,
                (beautician_id, today),
            ).fetchone()[0]
            completed = cursor.execute(
                "SELECT COUNT(*), COALESCE(SUM(total), 0) FROM bookings WHERE beautician_id = ? AND status = 'COMPLETED'",
                (beautician_id,),
            ).fetchone()
            share = SettingsService.read_value(cursor, "beautician_share")
            rating = cursor.execute(
                """
                SELECT AVG(rv.rating) FROM reviews rv
                WHERE EXISTS (
                    SELECT 1 FROM bookings b JOIN booking_items bi ON bi.booking_id = b.id
                    WHERE b.beautician_id = ? AND b.status = 'COMPLETED'
                      AND b.customer_id = rv.customer_id AND bi.service_id = rv.service_id
                )
                """,
                (beautician_id,),
            ).fetchone()[0]
            return {
                "upcoming_appointments": upcoming,
                "completed_appointments": completed[0],
                "total_earnings": round(completed[1] * share, 2),
                "average_rating": round(rating, 1) if rating is not None else None,
            }
        finally:
            conn.close()

    @classmethod
    async def earnings(
        cls,
        beautician_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Earnings over an optional ``YYYY-MM-DD`` date window with a monthly breakdown."""
        bounds: Dict[str, Optional[str]] = {"start_date": start_date, "end_date": end_date}
        for label, value in bounds.items():
            if value:
                try:
                    # Stored dates compare as text, so always keep YYYY-MM-DD.
                    bounds[label] = datetime.strptime(value, "%Y-%m-%d").date().isoformat()
                except ValueError:
                    raise ValueError(f"{label} must be in YYYY-MM-DD format")
        start_date, end_date = bounds["start_date"], bounds["end_date"]
        if start_date and end_date and start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        where = ["beautician_id = ?", "status = 'COMPLETED'"]
        params: list = [beautician_id]
        if start_date:
            where.append("scheduled_date >= ?")
            params.append(start_date)
        if end_date:
            where.append("scheduled_date <= ?")
            params.append(end_date)
        where_sql = " AND ".join(where)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            share = SettingsService.read_value(cursor, "beautician_share")
            rows = cursor.execute(
                f"""
                SELECT substr(scheduled_date, 1, 7) AS month, COUNT(*) AS jobs, SUM(total) AS gross
                FROM bookings WHERE {where_sql}
                GROUP BY month ORDER BY month
                """,
                params,
            ).fetchall()
            monthly = [
                {"month": row["month"], "earnings": round(row["gross"] * share, 2), "jobs": row["jobs"]}
                for row in rows
            ]
            return {
                "start_date": start_date,
                "end_date": end_date,
                "share": share,
                "total_earnings": round(sum(item["earnings"] for item in monthly), 2),
                "completed_jobs": sum(item["jobs"] for item in monthly),
                "monthly": monthly,
            }
        finally:
            conn.close()
