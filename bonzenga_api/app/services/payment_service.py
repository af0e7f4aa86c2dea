"""
Business logic for payments.

There is no external gateway: ``process_payment`` validates the card
or mobile money details, optionally waits ``PAYMENT_SIMULATION_DELAY``
seconds and settles the booking's pending payment.  Settling marks the
payment ``COMPLETED`` with a ``TXN-<milliseconds>`` transaction id and
confirms the booking.  Cash payments stay ``PENDING`` until the vendor
or staff confirm them.

The card number ``4000000000000002`` is always declined, which lets
clients exercise the failure path.
"""

import asyncio
import logging
import sqlite3
import time
from datetime import date
from typing import List, Optional

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import AccessDeniedError, NotFoundError, PaymentDeclinedError
from bonzenga_api.app.core.security import ROLE_ADMIN, ROLE_VENDOR, STAFF_ROLES
from ..schemas.payment import PaymentMethodInfo, PaymentProcess, PaymentRead
from .booking_service import BookingService


logger = logging.getLogger(__name__)


DECLINED_TEST_CARD = "4000000000000002"

PAYMENT_METHODS = [
    PaymentMethodInfo(id="card", name="Credit / Debit Card", description="Visa, Mastercard and other major cards"),
    PaymentMethodInfo(
        id="mobile_money",
        name="Mobile Money",
        description="Pay from your mobile wallet",
        providers=["mpesa", "airtel", "orange"],
    ),
    PaymentMethodInfo(id="cash", name="Cash", description="Pay the vendor in person"),
]

PAYMENT_SELECT = """
    SELECT p.*, b.status AS booking_status, b.vendor_id, b.customer_id
    FROM payments p JOIN bookings b ON b.id = p.booking_id
"""


class PaymentService:
    """Service for the simulated payment flow."""

    @staticmethod
    def _row_to_payment(row: sqlite3.Row) -> PaymentRead:
        return PaymentRead(
            id=row["id"],
            booking_id=row["booking_id"],
            user_id=row["user_id"],
            amount=row["amount"],
            currency=row["currency"],
            method=row["method"],
            provider=row["provider"],
            status=row["status"],
            transaction_id=row["transaction_id"],
            card_last4=row["card_last4"],
            notes=row["notes"],
            confirmed_by=row["confirmed_by"],
            confirmed_at=row["confirmed_at"],
            booking_status=row["booking_status"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _scope_clause(current_user: dict) -> tuple:
        role_id = current_user.get("role_id")
        if role_id in STAFF_ROLES:
            return "1 = 1", []
        if role_id == ROLE_VENDOR:
            return "b.vendor_id = ?", [current_user.get("user_id")]
        return "p.user_id = ?", [current_user.get("user_id")]

    @classmethod
    def _fetch(cls, cursor: sqlite3.Cursor, payment_id: int, current_user: Optional[dict] = None) -> sqlite3.Row:
        query = PAYMENT_SELECT + " WHERE p.id = ?"
        params: list = [payment_id]
        if current_user is not None:
            clause, scope_params = cls._scope_clause(current_user)
            query += f" AND {clause}"
            params.extend(scope_params)
        row = cursor.execute(query, params).fetchone()
        if not row:
            raise NotFoundError(f"Payment {payment_id} not found")
        return row

    @staticmethod
    def new_transaction_id() -> str:
        return f"TXN-{int(time.time() * 1000)}"

    @staticmethod
    def validate_card(data: PaymentProcess) -> str:
        """Validate card fields and return the normalised card number."""
        number = (data.card_number or "").replace(" ", "").replace("-", "")
        if not number.isdigit() or not 13 <= len(number) <= 19:
            raise ValueError("Invalid card number")
        if not data.card_name or not data.card_name.strip():
            raise ValueError("Cardholder name is required")
        cvv = data.cvv or ""
        if not cvv.isdigit() or len(cvv) not in (3, 4):
            raise ValueError("Invalid CVV")
        month, sep, year = (data.expiry or "").partition("/")
        if not sep or not month.isdigit() or not year.isdigit() or len(year) != 2 or not 1 <= int(month) <= 12:
            raise ValueError("Expiry must be in MM/YY format")
        today = date.today()
        if (2000 + int(year), int(month)) < (today.year, today.month):
            raise ValueError("Card has expired")
        return number

    @staticmethod
    def validate_mobile(data: PaymentProcess) -> str:
        number = (data.mobile_number or "").replace(" ", "")
        digits = number[1:] if number.startswith("+") else number
        if not digits.isdigit() or not 8 <= len(digits) <= 15:
            raise ValueError("Invalid mobile money number")
        return number

    @classmethod
    def settle(
        cls,
        cursor: sqlite3.Cursor,
        payment_id: int,
        booking: sqlite3.Row,
        actor_id: Optional[int],
        method: Optional[str] = None,
    ) -> str:
        """Mark a payment completed and confirm its booking.  The caller commits."""
        transaction_id = cls.new_transaction_id()
        cursor.execute(
            """
            UPDATE payments SET status = 'COMPLETED', transaction_id = ?, method = COALESCE(?, method),
                   confirmed_by = ?, confirmed_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (transaction_id, method, actor_id, payment_id),
        )
        BookingService.record_event(
            cursor,
            booking["id"],
            "PAYMENT_COMPLETED",
            {"payment_id": payment_id, "transaction_id": transaction_id},
            actor_id,
        )
        if booking["status"] == "PENDING":
            BookingService.apply_status(cursor, booking, "CONFIRMED", actor_id)
        return transaction_id

    @classmethod
    def list_methods(cls) -> List[PaymentMethodInfo]:
        return PAYMENT_METHODS

    @classmethod
    async def process_payment(cls, data: PaymentProcess, current_user: dict) -> PaymentRead:
        """Pay for a pending booking through the simulated gateway."""
        user_id = current_user.get("user_id")
        card_number = None
        card_last4 = None
        mobile_number = None
        provider = None
        if data.method == "card":
            card_number = cls.validate_card(data)
            card_last4 = card_number[-4:]
            provider = "card"
        elif data.method == "mobile_money":
            mobile_number = cls.validate_mobile(data)
            provider = data.mobile_provider or "mpesa"
        else:
            provider = "cash"

        conn = get_connection()
        try:
            cursor = conn.cursor()
            booking = cursor.execute(
                "SELECT * FROM bookings WHERE id = ? AND customer_id = ?",
                (data.booking_id, user_id),
            ).fetchone()
            if not booking:
                raise NotFoundError(f"Booking {data.booking_id} not found")
            if booking["status"] != "PENDING":
                raise ValueError("Only pending bookings can be paid")
            payment = cursor.execute(
                "SELECT id FROM payments WHERE booking_id = ? AND status = 'PENDING' ORDER BY id DESC LIMIT 1",
                (booking["id"],),
            ).fetchone()
            if payment:
                payment_id = payment["id"]
            else:
                # A previous attempt failed; open a fresh payment for the booking total.
                cursor.execute(
                    "INSERT INTO payments (booking_id, user_id, amount, currency, status) VALUES (?, ?, ?, ?, 'PENDING')",
                    (booking["id"], user_id, booking["total"], settings.currency),
                )
                payment_id = cursor.lastrowid
            cursor.execute(
                """
                UPDATE payments SET method = ?, provider = ?, card_last4 = ?, mobile_number = ?,
                       updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (data.method.upper(), provider, card_last4, mobile_number, payment_id),
            )
            conn.commit()

            if data.method != "cash" and settings.payment_simulation_delay > 0:
                await asyncio.sleep(settings.payment_simulation_delay)

            if card_number == DECLINED_TEST_CARD:
                cursor.execute(
                    """
                    UPDATE payments SET status = 'FAILED', notes = 'Card declined', updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    (payment_id,),
                )
                BookingService.record_event(cursor, booking["id"], "PAYMENT_FAILED", {"payment_id": payment_id}, user_id)
                conn.commit()
                logger.warning("Payment %s for booking %s declined", payment_id, booking["id"])
                declined = True
            else:
                declined = False
                if data.method == "cash":
                    cursor.execute(
                        "UPDATE payments SET notes = 'Cash to be collected by the vendor' WHERE id = ?",
                        (payment_id,),
                    )
                else:
                    cls.settle(cursor, payment_id, booking, user_id)
                conn.commit()
            row = cls._fetch(cursor, payment_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=user_id,
            action="pay",
            object_type="payment",
            object_id=payment_id,
            details={"booking_id": data.booking_id, "method": data.method, "status": row["status"]},
        )
        if declined:
            raise PaymentDeclinedError("Payment declined by the card issuer")
        logger.info(
            "Payment %s for booking %s processed via %s: %s", payment_id, data.booking_id, data.method, row["status"]
        )
        return cls._row_to_payment(row)

    @classmethod
    async def list_payments(
        cls,
        current_user: dict,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[PaymentRead]:
        """Payment history scoped to the caller, newest first."""
        clause, params = cls._scope_clause(current_user)
        query = PAYMENT_SELECT + f" WHERE {clause}"
        if status:
            query += " AND p.status = ?"
            params.append(status.upper())
        query += " ORDER BY p.created_at DESC, p.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
            return [cls._row_to_payment(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_payment(cls, payment_id: int, current_user: dict) -> PaymentRead:
        conn = get_connection()
        try:
            return cls._row_to_payment(cls._fetch(conn.cursor(), payment_id, current_user))
        finally:
            conn.close()

    @classmethod
    async def confirm_payment(cls, payment_id: int, current_user: dict) -> PaymentRead:
        """Confirm a pending (cash) payment as the vendor or staff."""
        actor_id = current_user.get("user_id")
        if current_user.get("role_id") not in STAFF_ROLES + (ROLE_VENDOR,):
            raise AccessDeniedError("Only the vendor or staff can confirm payments")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            payment = cls._fetch(cursor, payment_id, current_user)
            if payment["status"] != "PENDING":
                raise ValueError(f"Payment is already {payment['status'].lower()}")
            booking = cursor.execute("SELECT * FROM bookings WHERE id = ?", (payment["booking_id"],)).fetchone()
            if booking["status"] == "CANCELLED":
                raise ValueError("Cannot confirm a payment for a cancelled booking")
            cls.settle(cursor, payment_id, booking, actor_id, method=payment["method"] or "CASH")
            conn.commit()
            row = cls._fetch(cursor, payment_id)
        finally:
            conn.close()
        logger.info("Payment %s confirmed by user %s", payment_id, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(user_id=actor_id, action="confirm", object_type="payment", object_id=payment_id)
        return cls._row_to_payment(row)

    @classmethod
    async def refund_payment(cls, payment_id: int, current_user: dict, reason: Optional[str] = None) -> PaymentRead:
        """Refund a completed payment and cancel the booking if it is still open."""
        actor_id = current_user.get("user_id")
        if current_user.get("role_id") != ROLE_ADMIN:
            raise AccessDeniedError("Only administrators can issue refunds")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            payment = cls._fetch(cursor, payment_id)
            if payment["status"] != "COMPLETED":
                raise ValueError("Only completed payments can be refunded")
            cursor.execute(
                "UPDATE payments SET status = 'REFUNDED', notes = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (reason or "Refunded by administrator", payment_id),
            )
            booking = cursor.execute("SELECT * FROM bookings WHERE id = ?", (payment["booking_id"],)).fetchone()
            BookingService.record_event(
                cursor, booking["id"], "REFUNDED", {"payment_id": payment_id, "amount": payment["amount"]}, actor_id
            )
            if booking["status"] not in ("COMPLETED", "CANCELLED"):
                BookingService.apply_status(cursor, booking, "CANCELLED", actor_id, reason=reason or "Payment refunded")
            conn.commit()
            row = cls._fetch(cursor, payment_id)
        finally:
            conn.close()
        logger.info("Payment %s refunded by user %s", payment_id, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="refund",
            object_type="payment",
            object_id=payment_id,
            details={"amount": row["amount"]},
        )
        return cls._row_to_payment(row)
