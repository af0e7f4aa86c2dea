"""
Business logic for the cart, checkout and bookings.

Pricing is always computed on the server from the stored services:

* ``subtotal`` is the sum of ``price * quantity`` over the items,
* ``tax`` is ``subtotal * tax_rate`` (platform setting) rounded to cents,
* ``total`` is ``subtotal + tax``,
* ``duration`` is the sum of ``duration * quantity``.

A booking moves through ``PENDING -> CONFIRMED -> IN_PROGRESS ->
COMPLETED``; it may be cancelled from any non‑terminal state.  Every
change is written to ``booking_events`` so a booking carries its own
timeline.  Visibility is role based: customers see their own
bookings, vendors the bookings at their salon, beauticians their
assignments and staff everything.  Bookings outside a caller's scope
are reported as not found.
"""

import json
import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import AccessDeniedError, NotFoundError
from bonzenga_api.app.core.security import (
    ROLE_BEAUTICIAN,
    ROLE_CUSTOMER,
    ROLE_VENDOR,
    STAFF_ROLES,
)
from ..schemas.booking import (
    BookingCreate,
    BookingEventRead,
    BookingItemIn,
    BookingItemRead,
    BookingList,
    BookingRead,
    BookingStats,
    QuoteItem,
    QuoteRead,
    QuoteRequest,
)
from ..schemas.common import Pagination
from .settings_service import SettingsService
from .statistics_service import ACTIVE_BOOKING_STATUSES, BOOKING_STATUSES


logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"IN_PROGRESS", "CANCELLED"},
    "IN_PROGRESS": {"COMPLETED", "CANCELLED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}

BOOKING_SELECT = """
    SELECT b.*,
           cu.first_name AS customer_first_name, cu.last_name AS customer_last_name,
           v.shop_name AS vendor_name,
           bu.first_name AS beautician_first_name, bu.last_name AS beautician_last_name,
           (SELECT p.status FROM payments p WHERE p.booking_id = b.id ORDER BY p.id DESC LIMIT 1) AS payment_status
    FROM bookings b
    JOIN users cu ON cu.id = b.customer_id
    JOIN vendors v ON v.id = b.vendor_id
    LEFT JOIN users bu ON bu.id = b.beautician_id
"""


class BookingService:
    """Service for carts, bookings and their lifecycle."""

    # ------------------------------------------------------------------
    # Helpers shared with the payment, beautician and manager services
    # ------------------------------------------------------------------

    @staticmethod
    def check_transition(current: str, new: str) -> None:
        """Raise ``ValueError`` unless ``current -> new`` is a legal move."""
        if new not in BOOKING_STATUSES:
            raise ValueError(f"Invalid status: {new}. Must be one of: {', '.join(BOOKING_STATUSES)}")
        if new not in ALLOWED_TRANSITIONS[current]:
            raise ValueError(f"Cannot change booking status from {current} to {new}")

    @staticmethod
    def record_event(
        cursor: sqlite3.Cursor,
        booking_id: int,
        event_type: str,
        data: Optional[dict] = None,
        created_by: Optional[int] = None,
    ) -> None:
        cursor.execute(
            "INSERT INTO booking_events (booking_id, type, data, created_by) VALUES (?, ?, ?, ?)",
            (booking_id, event_type, json.dumps(data) if data else None, created_by),
        )

    @classmethod
    def apply_status(
        cls,
        cursor: sqlite3.Cursor,
        booking: sqlite3.Row,
        new_status: str,
        actor_id: Optional[int],
        reason: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> None:
        """Move a booking to ``new_status`` and record the event.

        Cancelling also stores the reason and fails any payment that is
        still pending.  The caller commits.
        """
        cls.check_transition(booking["status"], new_status)
        if new_status == "CANCELLED":
            cursor.execute(
                """
                UPDATE bookings SET status = 'CANCELLED', cancellation_reason = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (reason, booking["id"]),
            )
            cursor.execute(
                """
                UPDATE payments SET status = 'FAILED', notes = 'Booking cancelled', updated_at = CURRENT_TIMESTAMP
                WHERE booking_id = ? AND status = 'PENDING'
                """,
                (booking["id"],),
            )
        else:
            cursor.execute(
                "UPDATE bookings SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (new_status, booking["id"]),
            )
        details: Dict[str, Any] = {"from": booking["status"], "to": new_status}
        if reason:
            details["reason"] = reason
        cls.record_event(
            cursor,
            booking["id"],
            event_type or ("CANCELLED" if new_status == "CANCELLED" else "STATUS_CHANGED"),
            details,
            actor_id,
        )

    @staticmethod
    def scope_clause(current_user: dict) -> Tuple[str, List[Any]]:
        """SQL condition restricting bookings to what the caller may see."""
        role_id = current_user.get("role_id")
        user_id = current_user.get("user_id")
        if role_id in STAFF_ROLES:
            return "1 = 1", []
        if role_id == ROLE_VENDOR:
            return "b.vendor_id = ?", [user_id]
        if role_id == ROLE_BEAUTICIAN:
            return "b.beautician_id = ?", [user_id]
        return "b.customer_id = ?", [user_id]

    @staticmethod
    def row_to_booking(cursor: sqlite3.Cursor, row: sqlite3.Row) -> BookingRead:
        items = cursor.execute(
            """
            SELECT bi.service_id, bi.quantity, bi.price, s.name, s.duration
            FROM booking_items bi JOIN services s ON s.id = bi.service_id
            WHERE bi.booking_id = ? ORDER BY bi.id
            """,
            (row["id"],),
        ).fetchall()
        beautician_name = None
        if row["beautician_id"] is not None:
            beautician_name = f"{row['beautician_first_name']} {row['beautician_last_name']}"
        return BookingRead(
            id=row["id"],
            customer_id=row["customer_id"],
            customer_name=f"{row['customer_first_name']} {row['customer_last_name']}",
            vendor_id=row["vendor_id"],
            vendor_name=row["vendor_name"],
            beautician_id=row["beautician_id"],
            beautician_name=beautician_name,
            address_id=row["address_id"],
            service_type=row["service_type"],
            status=row["status"],
            scheduled_date=row["scheduled_date"],
            scheduled_time=row["scheduled_time"],
            duration=row["duration"],
            subtotal=row["subtotal"],
            tax=row["tax"],
            total=row["total"],
            phone=row["phone"],
            notes=row["notes"],
            cancellation_reason=row["cancellation_reason"],
            payment_status=row["payment_status"],
            items=[
                BookingItemRead(
                    service_id=item["service_id"],
                    name=item["name"],
                    quantity=item["quantity"],
                    price=item["price"],
                    duration=item["duration"],
                )
                for item in items
            ],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def fetch_booking(cls, cursor: sqlite3.Cursor, booking_id: int, current_user: Optional[dict] = None) -> BookingRead:
        """Load a booking, applying the caller's visibility scope when given."""
        query = BOOKING_SELECT + " WHERE b.id = ?"
        params: List[Any] = [booking_id]
        if current_user is not None:
            clause, scope_params = cls.scope_clause(current_user)
            query += f" AND {clause}"
            params.extend(scope_params)
        row = cursor.execute(query, params).fetchone()
        if not row:
            raise NotFoundError(f"Booking {booking_id} not found")
        return cls.row_to_booking(cursor, row)

    @classmethod
    def visible_row(cls, cursor: sqlite3.Cursor, booking_id: int, current_user: dict) -> sqlite3.Row:
        clause, params = cls.scope_clause(current_user)
        row = cursor.execute(
            f"SELECT b.* FROM bookings b WHERE b.id = ? AND {clause}",
            [booking_id] + params,
        ).fetchone()
        if not row:
            raise NotFoundError(f"Booking {booking_id} not found")
        return row

    # ------------------------------------------------------------------
    # Cart and checkout
    # ------------------------------------------------------------------

    @classmethod
    def _price(cls, cursor: sqlite3.Cursor, vendor_id: int, items: List[BookingItemIn]) -> QuoteRead:
        vendor = cursor.execute("SELECT id, status FROM vendors WHERE id = ?", (vendor_id,)).fetchone()
        if not vendor:
            raise NotFoundError(f"Vendor {vendor_id} not found")
        if vendor["status"] != "APPROVED":
            raise ValueError("Vendor is not available for booking")
        if not items:
            raise ValueError("At least one service is required")

        quantities: Dict[int, int] = {}
        for item in items:
            quantities[item.service_id] = quantities.get(item.service_id, 0) + item.quantity

        quote_items: List[QuoteItem] = []
        subtotal = 0.0
        duration = 0
        for service_id, quantity in quantities.items():
            service = cursor.execute(
                "SELECT id, vendor_id, name, price, duration, is_active FROM services WHERE id = ?",
                (service_id,),
            ).fetchone()
            if not service or service["vendor_id"] != vendor_id or not service["is_active"]:
                raise ValueError(f"Service {service_id} is not available from this vendor")
            line_total = round(service["price"] * quantity, 2)
            subtotal += line_total
            duration += service["duration"] * quantity
            quote_items.append(
                QuoteItem(
                    service_id=service_id,
                    name=service["name"],
                    price=service["price"],
                    quantity=quantity,
                    duration=service["duration"],
                    line_total=line_total,
                )
            )
        subtotal = round(subtotal, 2)
        tax_rate = SettingsService.read_value(cursor, "tax_rate")
        tax = round(subtotal * tax_rate, 2)
        return QuoteRead(
            vendor_id=vendor_id,
            items=quote_items,
            subtotal=subtotal,
            tax=tax,
            total=round(subtotal + tax, 2),
            duration=duration,
            currency=settings.currency,
        )

    @classmethod
    async def quote(cls, data: QuoteRequest) -> QuoteRead:
        """Price a cart without persisting anything."""
        conn = get_connection()
        try:
            return cls._price(conn.cursor(), data.vendor_id, data.items)
        finally:
            conn.close()

    @classmethod
    async def create_booking(cls, data: BookingCreate, current_user: dict) -> BookingRead:
        """Create a booking and its pending payment.

        Validates the vendor, the items, the schedule and, for at‑home
        visits, the customer's address and contact phone.
        """
        customer_id = current_user.get("user_id")
        scheduled = date.fromisoformat(data.scheduled_date)
        now = datetime.now()
        if scheduled < now.date() or (
            scheduled == now.date() and data.scheduled_time < now.strftime("%H:%M")
        ):
            raise ValueError("Cannot book an appointment in the past")

        conn = get_connection()
        try:
            cursor = conn.cursor()
            quote = cls._price(cursor, data.vendor_id, data.items)

            if data.address_id is not None:
                address = cursor.execute(
                    "SELECT id FROM addresses WHERE id = ? AND user_id = ?",
                    (data.address_id, customer_id),
                ).fetchone()
                if not address:
                    raise ValueError("Address not found")
            phone = data.phone
            if not phone:
                user = cursor.execute("SELECT phone FROM users WHERE id = ?", (customer_id,)).fetchone()
                phone = user["phone"] if user else None
            if data.service_type == "AT_HOME":
                if data.address_id is None:
                    raise ValueError("An address is required for at-home services")
                if not phone:
                    raise ValueError("A contact phone number is required for at-home services")

            cursor.execute(
                """
                INSERT INTO bookings (customer_id, vendor_id, address_id, service_type, status,
                                      scheduled_date, scheduled_time, duration, subtotal, tax, total, phone, notes)
                VALUES (?, ?, ?, ?, 'PENDING', ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    customer_id,
                    data.vendor_id,
                    data.address_id,
                    data.service_type,
                    data.scheduled_date,
                    data.scheduled_time,
                    quote.duration,
                    quote.subtotal,
                    quote.tax,
                    quote.total,
                    phone,
                    data.notes,
                ),
            )
            booking_id = cursor.lastrowid
            for item in quote.items:
                cursor.execute(
                    "INSERT INTO booking_items (booking_id, service_id, quantity, price) VALUES (?, ?, ?, ?)",
                    (booking_id, item.service_id, item.quantity, item.price),
                )
            cursor.execute(
                "INSERT INTO payments (booking_id, user_id, amount, currency, status) VALUES (?, ?, ?, ?, 'PENDING')",
                (booking_id, customer_id, quote.total, quote.currency),
            )
            cls.record_event(
                cursor,
                booking_id,
                "CREATED",
                {"total": quote.total, "service_type": data.service_type},
                customer_id,
            )
            conn.commit()
            booking = cls.fetch_booking(cursor, booking_id)
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create booking for user %s: %s", customer_id, e)
            raise
        finally:
            conn.close()

        logger.info(
            "Customer %s booked vendor %s (booking %s, total %.2f %s)",
            customer_id, data.vendor_id, booking_id, quote.total, quote.currency,
        )
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=customer_id,
            action="create",
            object_type="booking",
            object_id=booking_id,
            details={"vendor_id": data.vendor_id, "total": quote.total},
        )
        return booking

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @classmethod
    async def get_booking(cls, booking_id: int, current_user: dict) -> BookingRead:
        conn = get_connection()
        try:
            return cls.fetch_booking(conn.cursor(), booking_id, current_user)
        finally:
            conn.close()

    @classmethod
    async def list_bookings(
        cls,
        current_user: dict,
        status: Optional[str] = None,
        service_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> BookingList:
        """List the bookings visible to the caller, newest first."""
        clause, params = cls.scope_clause(current_user)
        where = [clause]
        if status:
            status = status.upper()
            if status not in BOOKING_STATUSES:
                raise ValueError(f"Invalid status: {status}")
            where.append("b.status = ?")
            params.append(status)
        if service_type:
            where.append("b.service_type = ?")
            params.append(service_type.upper())
        where_sql = " WHERE " + " AND ".join(where)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total = cursor.execute(f"SELECT COUNT(*) FROM bookings b{where_sql}", params).fetchone()[0]
            rows = cursor.execute(
                BOOKING_SELECT + where_sql + " ORDER BY b.created_at DESC, b.id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return BookingList(
                bookings=[cls.row_to_booking(cursor, row) for row in rows],
                pagination=Pagination.build(page, limit, total),
            )
        finally:
            conn.close()

    @classmethod
    async def list_events(cls, booking_id: int, current_user: dict) -> List[BookingEventRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls.visible_row(cursor, booking_id, current_user)
            rows = cursor.execute(
                "SELECT * FROM booking_events WHERE booking_id = ? ORDER BY created_at, id",
                (booking_id,),
            ).fetchall()
            return [
                BookingEventRead(
                    id=row["id"],
                    booking_id=row["booking_id"],
                    type=row["type"],
                    data=json.loads(row["data"]) if row["data"] else None,
                    created_by=row["created_by"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def customer_stats(cls, customer_id: int) -> BookingStats:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            placeholders = ", ".join("?" for _ in ACTIVE_BOOKING_STATUSES)
            row = cursor.execute(
                f"""
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status IN ({placeholders}) THEN 1 ELSE 0 END) AS active,
                       SUM(CASE WHEN status = 'COMPLETED' THEN 1 ELSE 0 END) AS completed
                FROM bookings WHERE customer_id = ?
                """,
                (*ACTIVE_BOOKING_STATUSES, customer_id),
            ).fetchone()
            pending_payments = cursor.execute(
                """
                SELECT COUNT(*) FROM payments p JOIN bookings b ON b.id = p.booking_id
                WHERE b.customer_id = ? AND p.status = 'PENDING' AND b.status != 'CANCELLED'
                """,
                (customer_id,),
            ).fetchone()[0]
            total_spent = cursor.execute(
                "SELECT COALESCE(SUM(amount), 0) FROM payments WHERE user_id = ? AND status = 'COMPLETED'",
                (customer_id,),
            ).fetchone()[0]
            return BookingStats(
                active_bookings=row["active"] or 0,
                completed_bookings=row["completed"] or 0,
                pending_payments=pending_payments,
                total_bookings=row["total"] or 0,
                total_spent=round(total_spent, 2),
            )
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    async def update_status(cls, booking_id: int, new_status: str, current_user: dict) -> BookingRead:
        """Change a booking's status on behalf of its vendor, beautician or staff.

        Beauticians may only start and complete their own assignments.
        Customers use ``cancel_booking`` instead.
        """
        new_status = (new_status or "").strip().upper()
        role_id = current_user.get("role_id")
        actor_id = current_user.get("user_id")
        if role_id == ROLE_CUSTOMER:
            raise AccessDeniedError("Customers can only cancel their bookings")
        if role_id == ROLE_BEAUTICIAN and new_status not in ("IN_PROGRESS", "COMPLETED"):
            raise AccessDeniedError("Beauticians can only start or complete appointments")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            booking = cls.visible_row(cursor, booking_id, current_user)
            old_status = booking["status"]
            cls.apply_status(cursor, booking, new_status, actor_id)
            conn.commit()
            result = cls.fetch_booking(cursor, booking_id)
        finally:
            conn.close()
        logger.info("Booking %s moved from %s to %s by user %s", booking_id, old_status, new_status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="update_status",
            object_type="booking",
            object_id=booking_id,
            details={"from": old_status, "to": new_status},
        )
        return result

    @classmethod
    async def cancel_booking(cls, booking_id: int, reason: Optional[str], current_user: dict) -> BookingRead:
        """Cancel a booking as its customer or as staff."""
        role_id = current_user.get("role_id")
        actor_id = current_user.get("user_id")
        if role_id not in STAFF_ROLES and role_id != ROLE_CUSTOMER:
            raise AccessDeniedError("Only the customer or staff can cancel a booking")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            booking = cls.visible_row(cursor, booking_id, current_user)
            if booking["status"] in ("COMPLETED", "CANCELLED"):
                raise ValueError(f"Cannot cancel a booking that is {booking['status'].lower()}")
            default_reason = "Cancelled by customer" if role_id == ROLE_CUSTOMER else "Cancelled by staff"
            cls.apply_status(cursor, booking, "CANCELLED", actor_id, reason=reason or default_reason)
            conn.commit()
            result = cls.fetch_booking(cursor, booking_id)
        finally:
            conn.close()
        logger.info("Booking %s cancelled by user %s", booking_id, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="cancel",
            object_type="booking",
            object_id=booking_id,
            details={"reason": result.cancellation_reason},
        )
        return result

    @classmethod
    async def assign_beautician(cls, booking_id: int, beautician_id: int, current_user: dict) -> BookingRead:
        """Assign an approved beautician and confirm the booking."""
        actor_id = current_user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            booking = cursor.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if not booking:
                raise NotFoundError(f"Booking {booking_id} not found")
            if booking["status"] not in ("PENDING", "CONFIRMED"):
                raise ValueError("Only pending or confirmed bookings can be assigned")
            beautician = cursor.execute(
                """
                SELECT b.id, b.status, u.status AS user_status FROM beauticians b
                JOIN users u ON u.id = b.id WHERE b.id = ?
                """,
                (beautician_id,),
            ).fetchone()
            if not beautician:
                raise NotFoundError(f"Beautician {beautician_id} not found")
            if beautician["status"] != "APPROVED" or beautician["user_status"] != "ACTIVE":
                raise ValueError("Beautician is not approved")
            cursor.execute(
                "UPDATE bookings SET beautician_id = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (beautician_id, booking_id),
            )
            if booking["status"] == "PENDING":
                cls.apply_status(cursor, booking, "CONFIRMED", actor_id)
            cls.record_event(cursor, booking_id, "BEAUTICIAN_ASSIGNED", {"beautician_id": beautician_id}, actor_id)
            conn.commit()
            result = cls.fetch_booking(cursor, booking_id)
        finally:
            conn.close()
        logger.info("Beautician %s assigned to booking %s", beautician_id, booking_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="assign_beautician",
            object_type="booking",
            object_id=booking_id,
            details={"beautician_id": beautician_id},
        )
        return result
