"""
Business logic for product orders and their delivery.

Placing an order prices the items from the catalogue, reserves stock
and snapshots the shipping address so later address edits do not
rewrite history.  Orders move through

``PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED``

and may end ``CANCELLED`` or ``FAILED``.  Each change appends a row to
``delivery_events`` which forms the order's delivery timeline.
Cancelling puts the reserved stock back.

Visibility mirrors bookings: customers see their own orders, vendors
the orders holding at least one of their products (with only their own
items listed) and staff everything.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import AccessDeniedError, NotFoundError
from bonzenga_api.app.core.security import ROLE_CUSTOMER, ROLE_VENDOR, STAFF_ROLES
from ..schemas.common import Pagination
from ..schemas.order import (
    DeliveryEventRead,
    DeliveryTimeline,
    DeliveryUpdateRead,
    OrderCreate,
    OrderItemRead,
    OrderList,
    OrderRead,
)
from .address_service import AddressService
from .settings_service import SettingsService


logger = logging.getLogger(__name__)


ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "FAILED")
TERMINAL_ORDER_STATUSES = ("DELIVERED", "CANCELLED", "FAILED")

DELIVERY_STATUSES = ("PENDING", "PROCESSING", "PACKED", "SHIPPED", "OUT_FOR_DELIVERY", "DELIVERED", "FAILED")

# Delivery steps that move the order itself forward.
DELIVERY_TO_ORDER_STATUS = {
    "PROCESSING": "PROCESSING",
    "PACKED": "PROCESSING",
    "SHIPPED": "SHIPPED",
    "OUT_FOR_DELIVERY": "SHIPPED",
    "DELIVERED": "DELIVERED",
    "FAILED": "FAILED",
}

ORDER_SELECT = """
    SELECT o.*, u.first_name AS customer_first_name, u.last_name AS customer_last_name,
           (SELECT de.status FROM delivery_events de WHERE de.order_id = o.id
            ORDER BY de.created_at DESC, de.id DESC LIMIT 1) AS delivery_status
    FROM orders o
    JOIN users u ON u.id = o.customer_id
"""


class OrderService:
    """Service for product orders, cancellation and delivery tracking."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def scope_clause(current_user: dict) -> Tuple[str, List[Any]]:
        """SQL condition restricting orders to what the caller may see."""
        role_id = current_user.get("role_id")
        user_id = current_user.get("user_id")
        if role_id in STAFF_ROLES:
            return "1 = 1", []
        if role_id == ROLE_VENDOR:
            return "EXISTS (SELECT 1 FROM order_items oi WHERE oi.order_id = o.id AND oi.vendor_id = ?)", [user_id]
        return "o.customer_id = ?", [user_id]

    @staticmethod
    def record_event(
        cursor: sqlite3.Cursor,
        order_id: int,
        status: str,
        note: Optional[str] = None,
        data: Optional[dict] = None,
        created_by: Optional[int] = None,
    ) -> int:
        cursor.execute(
            "INSERT INTO delivery_events (order_id, status, note, data, created_by) VALUES (?, ?, ?, ?, ?)",
            (order_id, status, note, json.dumps(data) if data else None, created_by),
        )
        return cursor.lastrowid

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> DeliveryEventRead:
        return DeliveryEventRead(
            id=row["id"],
            status=row["status"],
            note=row["note"],
            data=json.loads(row["data"]) if row["data"] else None,
            created_by=row["created_by"],
            timestamp=row["created_at"],
        )

    @staticmethod
    def row_to_order(cursor: sqlite3.Cursor, row: sqlite3.Row, vendor_id: Optional[int] = None) -> OrderRead:
        query = """
            SELECT oi.*, p.name, v.shop_name AS vendor_name
            FROM order_items oi
            JOIN products p ON p.id = oi.product_id
            JOIN vendors v ON v.id = oi.vendor_id
            WHERE oi.order_id = ?
        """
        params: List[Any] = [row["id"]]
        if vendor_id is not None:
            query += " AND oi.vendor_id = ?"
            params.append(vendor_id)
        items = cursor.execute(query + " ORDER BY oi.id", params).fetchall()
        return OrderRead(
            id=row["id"],
            customer_id=row["customer_id"],
            customer_name=f"{row['customer_first_name']} {row['customer_last_name']}",
            status=row["status"],
            subtotal=row["subtotal"],
            tax=row["tax"],
            total=row["total"],
            currency=row["currency"],
            shipping_address=json.loads(row["shipping_address"]),
            payment_method=row["payment_method"],
            phone=row["phone"],
            notes=row["notes"],
            cancellation_reason=row["cancellation_reason"],
            items=[
                OrderItemRead(
                    product_id=item["product_id"],
                    name=item["name"],
                    vendor_id=item["vendor_id"],
                    vendor_name=item["vendor_name"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    total_price=item["total_price"],
                )
                for item in items
            ],
            delivery_status=row["delivery_status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def fetch_order(cls, cursor: sqlite3.Cursor, order_id: int, current_user: Optional[dict] = None) -> OrderRead:
        """Load an order, applying the caller's visibility scope when given."""
        query = ORDER_SELECT + " WHERE o.id = ?"
        params: List[Any] = [order_id]
        vendor_id = None
        if current_user is not None:
            clause, scope_params = cls.scope_clause(current_user)
            query += f" AND {clause}"
            params.extend(scope_params)
            if current_user.get("role_id") == ROLE_VENDOR:
                vendor_id = current_user.get("user_id")
        row = cursor.execute(query, params).fetchone()
        if not row:
            raise NotFoundError(f"Order {order_id} not found")
        return cls.row_to_order(cursor, row, vendor_id)

    @classmethod
    def visible_row(cls, cursor: sqlite3.Cursor, order_id: int, current_user: dict) -> sqlite3.Row:
        clause, params = cls.scope_clause(current_user)
        row = cursor.execute(
            f"SELECT o.* FROM orders o WHERE o.id = ? AND {clause}",
            [order_id] + params,
        ).fetchone()
        if not row:
            raise NotFoundError(f"Order {order_id} not found")
        return row

    @staticmethod
    def _restore_stock(cursor: sqlite3.Cursor, order_id: int) -> None:
        cursor.execute(
            """
            UPDATE products SET stock = stock + (
                SELECT SUM(oi.quantity) FROM order_items oi
                WHERE oi.order_id = ? AND oi.product_id = products.id
            ), updated_at = CURRENT_TIMESTAMP
            WHERE id IN (SELECT product_id FROM order_items WHERE order_id = ?)
            """,
            (order_id, order_id),
        )

    @classmethod
    def _cancel(cls, cursor: sqlite3.Cursor, order: sqlite3.Row, reason: str, actor_id: Optional[int]) -> None:
        if order["status"] == "CANCELLED":
            raise ValueError("Order is already cancelled")
        if order["status"] in TERMINAL_ORDER_STATUSES:
            raise ValueError(f"Cannot cancel {order['status'].lower()} order")
        cursor.execute(
            """
            UPDATE orders SET status = 'CANCELLED', cancellation_reason = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (reason, order["id"]),
        )
        cls._restore_stock(cursor, order["id"])
        cls.record_event(
            cursor,
            order["id"],
            "CANCELLED",
            f"Order cancelled: {reason}",
            {"from": order["status"]},
            actor_id,
        )

    # ------------------------------------------------------------------
    # Placing orders
    # ------------------------------------------------------------------

    @classmethod
    async def create_order(cls, data: OrderCreate, current_user: dict) -> OrderRead:
        """Place an order for products of one or more vendors.

        Products must be active, sold by an approved vendor and in
        stock.  The ordered quantities are taken off the stock.
        """
        customer_id = current_user.get("user_id")
        quantities: Dict[int, int] = {}
        for item in data.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

        conn = get_connection()
        try:
            cursor = conn.cursor()
            address = AddressService.owned_address(cursor, customer_id, data.address_id)
            lines = []
            subtotal = 0.0
            for product_id, quantity in quantities.items():
                product = cursor.execute(
                    """
                    SELECT p.id, p.vendor_id, p.name, p.price, p.stock, p.is_active, v.status AS vendor_status
                    FROM products p JOIN vendors v ON v.id = p.vendor_id WHERE p.id = ?
                    """,
                    (product_id,),
                ).fetchone()
                if not product or not product["is_active"] or product["vendor_status"] != "APPROVED":
                    raise ValueError(f"Product {product_id} is not available")
                if product["stock"] < quantity:
                    raise ValueError(f"Insufficient stock for {product['name']}: {product['stock']} left")
                line_total = round(product["price"] * quantity, 2)
                subtotal += line_total
                lines.append((product, quantity, line_total))
            subtotal = round(subtotal, 2)
            tax = round(subtotal * SettingsService.read_value(cursor, "tax_rate"), 2)
            total = round(subtotal + tax, 2)

            phone = data.phone
            if not phone:
                user = cursor.execute("SELECT phone FROM users WHERE id = ?", (customer_id,)).fetchone()
                phone = user["phone"] if user else None
            snapshot = {
                key: address[key]
                for key in ("name", "street", "city", "state", "zip_code", "latitude", "longitude")
            }
            snapshot["address_id"] = address["id"]

            cursor.execute(
                """
                INSERT INTO orders (customer_id, status, subtotal, tax, total, currency,
                                    shipping_address, payment_method, phone, notes)
                VALUES (?, 'PENDING', ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    customer_id,
                    subtotal,
                    tax,
                    total,
                    settings.currency,
                    json.dumps(snapshot),
                    data.payment_method,
                    phone,
                    data.notes,
                ),
            )
            order_id = cursor.lastrowid
            for product, quantity, line_total in lines:
                cursor.execute(
                    """
                    INSERT INTO order_items (order_id, product_id, vendor_id, quantity, unit_price, total_price)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (order_id, product["id"], product["vendor_id"], quantity, product["price"], line_total),
                )
                cursor.execute(
                    "UPDATE products SET stock = stock - ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (quantity, product["id"]),
                )
            cls.record_event(
                cursor,
                order_id,
                "PENDING",
                "Order created and pending payment",
                {"total": total, "payment_method": data.payment_method},
                customer_id,
            )
            conn.commit()
            order = cls.fetch_order(cursor, order_id)
        except Exception as e:
            conn.rollback()
            logger.error("Failed to create order for user %s: %s", customer_id, e)
            raise
        finally:
            conn.close()

        logger.info(
            "Customer %s placed order %s (%d products, total %.2f %s)",
            customer_id, order_id, len(lines), total, settings.currency,
        )
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=customer_id,
            action="create",
            object_type="order",
            object_id=order_id,
            details={"total": total, "items": len(lines)},
        )
        return order

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @classmethod
    async def get_order(cls, order_id: int, current_user: dict) -> OrderRead:
        conn = get_connection()
        try:
            return cls.fetch_order(conn.cursor(), order_id, current_user)
        finally:
            conn.close()

    @classmethod
    async def list_orders(
        cls,
        current_user: dict,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> OrderList:
        """List the orders visible to the caller, newest first.

        ``customer_id`` and ``vendor_id`` narrow the list further and are
        only meaningful for staff.
        """
        clause, params = cls.scope_clause(current_user)
        where = [clause]
        if status:
            status = status.upper()
            if status not in ORDER_STATUSES:
                raise ValueError(f"Invalid status: {status}")
            where.append("o.status = ?")
            params.append(status)
        if customer_id is not None:
            where.append("o.customer_id = ?")
            params.append(customer_id)
        if vendor_id is not None:
            where.append("EXISTS (SELECT 1 FROM order_items fi WHERE fi.order_id = o.id AND fi.vendor_id = ?)")
            params.append(vendor_id)
        where_sql = " WHERE " + " AND ".join(where)
        own_items = current_user.get("user_id") if current_user.get("role_id") == ROLE_VENDOR else None
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total = cursor.execute(f"SELECT COUNT(*) FROM orders o{where_sql}", params).fetchone()[0]
            rows = cursor.execute(
                ORDER_SELECT + where_sql + " ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return OrderList(
                orders=[cls.row_to_order(cursor, row, own_items) for row in rows],
                pagination=Pagination.build(page, limit, total),
            )
        finally:
            conn.close()

    @classmethod
    async def delivery_timeline(cls, order_id: int, current_user: dict) -> DeliveryTimeline:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            order = cls.visible_row(cursor, order_id, current_user)
            rows = cursor.execute(
                "SELECT * FROM delivery_events WHERE order_id = ? ORDER BY created_at, id",
                (order_id,),
            ).fetchall()
            timeline = [cls._row_to_event(row) for row in rows]
            return DeliveryTimeline(
                order_id=order_id,
                current_status=timeline[-1].status if timeline else order["status"],
                timeline=timeline,
            )
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    async def cancel_order(cls, order_id: int, reason: Optional[str], current_user: dict) -> OrderRead:
        """Cancel an order as its customer or as staff and restock it."""
        role_id = current_user.get("role_id")
        actor_id = current_user.get("user_id")
        if role_id not in STAFF_ROLES and role_id != ROLE_CUSTOMER:
            raise AccessDeniedError("Only the customer or staff can cancel an order")
        reason = reason or ("Cancelled by customer" if role_id == ROLE_CUSTOMER else "Cancelled by staff")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            order = cls.visible_row(cursor, order_id, current_user)
            cls._cancel(cursor, order, reason, actor_id)
            conn.commit()
            result = cls.fetch_order(cursor, order_id)
        finally:
            conn.close()
        logger.info("Order %s cancelled by user %s", order_id, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="cancel",
            object_type="order",
            object_id=order_id,
            details={"reason": reason},
        )
        return result

    @classmethod
    async def update_delivery_status(
        cls,
        order_id: int,
        status: str,
        note: Optional[str],
        current_user: dict,
    ) -> DeliveryUpdateRead:
        """Append a delivery step and move the order along with it.

        Vendors may only update orders that contain their products.
        """
        status = status.upper()
        if status not in DELIVERY_STATUSES:
            raise ValueError(f"Invalid delivery status. Must be one of: {', '.join(DELIVERY_STATUSES)}")
        actor_id = current_user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            order = cls.visible_row(cursor, order_id, current_user)
            if order["status"] in TERMINAL_ORDER_STATUSES:
                raise ValueError(f"Cannot update delivery of {order['status'].lower()} order")
            new_status = DELIVERY_TO_ORDER_STATUS.get(status)
            if new_status and new_status != order["status"]:
                cursor.execute(
                    "UPDATE orders SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (new_status, order_id),
                )
            event_id = cls.record_event(
                cursor,
                order_id,
                status,
                note or f"Delivery status updated to {status}",
                {"from": order["status"], "to": new_status or order["status"]},
                actor_id,
            )
            conn.commit()
            event = cls._row_to_event(
                cursor.execute("SELECT * FROM delivery_events WHERE id = ?", (event_id,)).fetchone()
            )
            result = cls.fetch_order(cursor, order_id, current_user)
        finally:
            conn.close()
        logger.info("Order %s delivery status %s set by user %s", order_id, status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="update_delivery",
            object_type="order",
            object_id=order_id,
            details={"status": status, "note": note},
        )
        return DeliveryUpdateRead(order=result, delivery_event=event)

    @classmethod
    async def update_status(cls, order_id: int, status: str, note: Optional[str], actor_id: int) -> OrderRead:
        """Set an order's status as an administrator.

        ``CANCELLED`` goes through the regular cancellation so stock is
        restored.
        """
        status = status.upper()
        if status not in ORDER_STATUSES:
            raise ValueError(f"Invalid order status. Must be one of: {', '.join(ORDER_STATUSES)}")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            order = cursor.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
            if not order:
                raise NotFoundError(f"Order {order_id} not found")
            old_status = order["status"]
            if status == "CANCELLED":
                cls._cancel(cursor, order, note or "Cancelled by staff", actor_id)
            else:
                if old_status in TERMINAL_ORDER_STATUSES:
                    raise ValueError(f"Cannot change status of {old_status.lower()} order")
                cursor.execute(
                    "UPDATE orders SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (status, order_id),
                )
                if status in ("PROCESSING", "SHIPPED", "DELIVERED", "FAILED"):
                    cls.record_event(
                        cursor,
                        order_id,
                        status,
                        note or f"Order status updated to {status}",
                        {"from": old_status, "to": status},
                        actor_id,
                    )
            conn.commit()
            result = cls.fetch_order(cursor, order_id)
        finally:
            conn.close()
        logger.info("Order %s status %s -> %s by admin %s", order_id, old_status, status, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action="update_status",
            object_type="order",
            object_id=order_id,
            details={"from": old_status, "to": status},
        )
        return result
