"""
Business logic for the beauty product shop.

Only active products of ``APPROVED`` vendors are visible publicly.
Vendors manage their own products and media; administrators may
activate or deactivate any product.  Product reviews follow the same
rule as service reviews: one per customer, after an order containing
the product was delivered.
"""

import html
import logging
import sqlite3
from typing import List, Optional, Tuple

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.common import Pagination
from ..schemas.product import (
    MediaIn,
    MediaRead,
    ProductCategoryRead,
    ProductCreate,
    ProductDetail,
    ProductList,
    ProductRead,
    ProductReviewList,
    ProductReviewRead,
    ProductUpdate,
)
from ..schemas.review import ReviewCreate
from ..schemas.service import VendorBrief
from .catalog_service import CatalogService
from .review_service import ReviewService


logger = logging.getLogger(__name__)


PRODUCT_COLUMNS = (
    "p.id, p.vendor_id, p.name, p.description, p.price, p.stock, p.is_active, p.created_at, "
    "c.name AS category, v.shop_name AS vendor_name, v.status AS vendor_status"
)
PRODUCT_FROM = (
    "FROM products p "
    "JOIN vendors v ON v.id = p.vendor_id "
    "LEFT JOIN service_categories c ON c.id = p.category_id"
)

RECENT_REVIEWS = 5

PRODUCT_STATUS_FILTERS = {"active": 1, "inactive": 0}


class ProductService:
    """Service for products, their media and their reviews."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def rating_summary(cursor: sqlite3.Cursor, product_id: int) -> Tuple[Optional[float], int]:
        row = cursor.execute(
            "SELECT AVG(rating) AS avg_rating, COUNT(*) AS cnt FROM product_reviews WHERE product_id = ?",
            (product_id,),
        ).fetchone()
        if not row or not row["cnt"]:
            return None, 0
        return round(row["avg_rating"], 1), row["cnt"]

    @classmethod
    def row_to_product(cls, cursor: sqlite3.Cursor, row: sqlite3.Row) -> ProductRead:
        rating, review_count = cls.rating_summary(cursor, row["id"])
        image = cursor.execute(
            "SELECT url FROM product_media WHERE product_id = ? AND type = 'IMAGE' ORDER BY id LIMIT 1",
            (row["id"],),
        ).fetchone()
        return ProductRead(
            id=row["id"],
            vendor_id=row["vendor_id"],
            vendor_name=row["vendor_name"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            stock=row["stock"],
            category=row["category"],
            is_active=bool(row["is_active"]),
            image=image["url"] if image else None,
            rating=rating,
            review_count=review_count,
            created_at=row["created_at"],
        )

    @classmethod
    def fetch_product(cls, cursor: sqlite3.Cursor, product_id: int) -> ProductRead:
        row = cursor.execute(f"SELECT {PRODUCT_COLUMNS} {PRODUCT_FROM} WHERE p.id = ?", (product_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Product {product_id} not found")
        return cls.row_to_product(cursor, row)

    @staticmethod
    def _own_product(cursor: sqlite3.Cursor, vendor_id: int, product_id: int) -> sqlite3.Row:
        row = cursor.execute(
            "SELECT id, name FROM products WHERE id = ? AND vendor_id = ?",
            (product_id, vendor_id),
        ).fetchone()
        if not row:
            raise NotFoundError(f"Product {product_id} not found")
        return row

    @staticmethod
    def _insert_media(cursor: sqlite3.Cursor, product_id: int, media: List[MediaIn], default_alt: str) -> None:
        for item in media:
            cursor.execute(
                "INSERT INTO product_media (product_id, type, url, alt) VALUES (?, ?, ?, ?)",
                (product_id, item.type, item.url, item.alt or default_alt),
            )

    @staticmethod
    def _row_to_media(row: sqlite3.Row) -> MediaRead:
        return MediaRead(
            id=row["id"],
            product_id=row["product_id"],
            type=row["type"],
            url=row["url"],
            alt=row["alt"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_review(row: sqlite3.Row) -> ProductReviewRead:
        comment = html.escape(row["comment"]) if row["comment"] is not None else None
        return ProductReviewRead(
            id=row["id"],
            product_id=row["product_id"],
            customer_id=row["customer_id"],
            customer_name=f"{row['first_name']} {row['last_name']}",
            rating=row["rating"],
            comment=comment,
            created_at=row["created_at"],
        )

    @classmethod
    def _reviews(cls, cursor: sqlite3.Cursor, product_id: int, limit: int, offset: int = 0) -> List[ProductReviewRead]:
        rows = cursor.execute(
            """
            SELECT pr.*, u.first_name, u.last_name FROM product_reviews pr
            JOIN users u ON u.id = pr.customer_id
            WHERE pr.product_id = ?
            ORDER BY pr.created_at DESC, pr.id DESC
            LIMIT ? OFFSET ?
            """,
            (product_id, limit, offset),
        ).fetchall()
        return [cls._row_to_review(row) for row in rows]

    @classmethod
    def _list(cls, where_clauses: List[str], params: list, page: int, limit: int) -> ProductList:
        where_sql = " WHERE " + " AND ".join(where_clauses) if where_clauses else ""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total = cursor.execute(f"SELECT COUNT(*) {PRODUCT_FROM}{where_sql}", params).fetchone()[0]
            rows = cursor.execute(
                f"SELECT {PRODUCT_COLUMNS} {PRODUCT_FROM}{where_sql} ORDER BY p.created_at DESC, p.id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return ProductList(
                products=[cls.row_to_product(cursor, row) for row in rows],
                pagination=Pagination.build(page, limit, total),
            )
        finally:
            conn.close()

    @staticmethod
    def _status_clause(status: Optional[str], where_clauses: List[str]) -> None:
        if not status:
            return
        key = status.lower()
        if key not in PRODUCT_STATUS_FILTERS:
            raise ValueError("status must be 'active' or 'inactive'")
        where_clauses.append(f"p.is_active = {PRODUCT_STATUS_FILTERS[key]}")

    # ------------------------------------------------------------------
    # Public shop
    # ------------------------------------------------------------------

    @classmethod
    async def list_products(
        cls,
        category: Optional[str] = None,
        vendor_id: Optional[int] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        in_stock: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> ProductList:
        """List active products of approved vendors with filters and pagination."""
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValueError("min_price cannot be greater than max_price")
        where_clauses = ["p.is_active = 1", "v.status = 'APPROVED'"]
        params: list = []
        if category:
            where_clauses.append("lower(c.name) = lower(?)")
            params.append(category)
        if vendor_id is not None:
            where_clauses.append("p.vendor_id = ?")
            params.append(vendor_id)
        if search:
            where_clauses.append("(p.name LIKE ? OR p.description LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        if min_price is not None:
            where_clauses.append("p.price >= ?")
            params.append(min_price)
        if max_price is not None:
            where_clauses.append("p.price <= ?")
            params.append(max_price)
        if in_stock:
            where_clauses.append("p.stock > 0")
        return cls._list(where_clauses, params, page, limit)

    @classmethod
    async def list_categories(cls) -> List[ProductCategoryRead]:
        """Categories with the number of publicly visible products in each."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT c.id, c.name, c.description, COUNT(p.id) AS product_count
                FROM service_categories c
                LEFT JOIN products p ON p.category_id = c.id AND p.is_active = 1
                    AND p.vendor_id IN (SELECT id FROM vendors WHERE status = 'APPROVED')
                GROUP BY c.id
                ORDER BY c.name
                """
            ).fetchall()
            return [ProductCategoryRead(**dict(row)) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_product(cls, product_id: int) -> ProductDetail:
        """Return a publicly visible product with vendor, media and latest reviews."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(f"SELECT {PRODUCT_COLUMNS} {PRODUCT_FROM} WHERE p.id = ?", (product_id,)).fetchone()
            if not row or not row["is_active"] or row["vendor_status"] != "APPROVED":
                raise NotFoundError(f"Product {product_id} not found")
            vendor = cursor.execute(
                """
                SELECT v.id, v.shop_name, v.description, v.address, v.city, u.phone
                FROM vendors v JOIN users u ON u.id = v.id WHERE v.id = ?
                """,
                (row["vendor_id"],),
            ).fetchone()
            rating, review_count = ReviewService.rating_summary(cursor, vendor_id=vendor["id"])
            media = cursor.execute(
                "SELECT * FROM product_media WHERE product_id = ? ORDER BY created_at, id",
                (product_id,),
            ).fetchall()
            return ProductDetail(
                **cls.row_to_product(cursor, row).model_dump(),
                vendor=VendorBrief(**dict(vendor), rating=rating, review_count=review_count),
                media=[cls._row_to_media(m) for m in media],
                recent_reviews=cls._reviews(cursor, product_id, RECENT_REVIEWS),
            )
        finally:
            conn.close()

    @classmethod
    async def list_reviews(cls, product_id: int, page: int = 1, limit: int = 10) -> ProductReviewList:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM products WHERE id = ?", (product_id,)).fetchone():
                raise NotFoundError(f"Product {product_id} not found")
            total = cursor.execute(
                "SELECT COUNT(*) FROM product_reviews WHERE product_id = ?", (product_id,)
            ).fetchone()[0]
            return ProductReviewList(
                reviews=cls._reviews(cursor, product_id, limit, (page - 1) * limit),
                pagination=Pagination.build(page, limit, total),
            )
        finally:
            conn.close()

    @classmethod
    async def create_review(cls, product_id: int, data: ReviewCreate, current_user: dict) -> ProductReviewRead:
        """Review a product once, after an order containing it was delivered."""
        customer_id = current_user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM products WHERE id = ?", (product_id,)).fetchone():
                raise NotFoundError(f"Product {product_id} not found")
            delivered = cursor.execute(
                """
                SELECT 1 FROM orders o JOIN order_items oi ON oi.order_id = o.id
                WHERE o.customer_id = ? AND oi.product_id = ? AND o.status = 'DELIVERED'
                LIMIT 1
                """,
                (customer_id, product_id),
            ).fetchone()
            if not delivered:
                raise ValueError("You can only review products from your delivered orders")
            existing = cursor.execute(
                "SELECT id FROM product_reviews WHERE product_id = ? AND customer_id = ?",
                (product_id, customer_id),
            ).fetchone()
            if existing:
                raise ValueError("You have already reviewed this product")
            cursor.execute(
                "INSERT INTO product_reviews (product_id, customer_id, rating, comment) VALUES (?, ?, ?, ?)",
                (product_id, customer_id, data.rating, data.comment),
            )
            review_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(
                """
                SELECT pr.*, u.first_name, u.last_name FROM product_reviews pr
                JOIN users u ON u.id = pr.customer_id WHERE pr.id = ?
                """,
                (review_id,),
            ).fetchone()
        finally:
            conn.close()
        logger.info("Customer %s reviewed product %s with %s stars", customer_id, product_id, data.rating)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=customer_id,
            action="review",
            object_type="product",
            object_id=product_id,
            details={"review_id": review_id, "rating": data.rating},
        )
        return cls._row_to_review(row)

    # ------------------------------------------------------------------
    # Vendor management
    # ------------------------------------------------------------------

    @classmethod
    async def list_own_products(
        cls,
        vendor_id: int,
        status: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProductList:
        """All products of the vendor, including inactive ones."""
        where_clauses = ["p.vendor_id = ?"]
        params: list = [vendor_id]
        cls._status_clause(status, where_clauses)
        if category:
            where_clauses.append("lower(c.name) = lower(?)")
            params.append(category)
        return cls._list(where_clauses, params, page, limit)

    @classmethod
    async def create_product(cls, vendor_id: int, data: ProductCreate) -> ProductRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            category_id = CatalogService.resolve_category(cursor, data.category)
            cursor.execute(
                """
                INSERT INTO products (vendor_id, category_id, name, description, price, stock, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (vendor_id, category_id, data.name, data.description, data.price, data.stock, int(data.is_active)),
            )
            product_id = cursor.lastrowid
            cls._insert_media(cursor, product_id, data.media, data.name)
            conn.commit()
            logger.info("Vendor %s created product %s (%s)", vendor_id, product_id, data.name)
            return cls.fetch_product(cursor, product_id)
        finally:
            conn.close()

    @classmethod
    async def update_product(cls, vendor_id: int, product_id: int, data: ProductUpdate) -> ProductRead:
        updates = data.model_dump(exclude_unset=True)
        for required in ("name", "price", "stock", "is_active"):
            if required in updates and updates[required] is None:
                raise ValueError(f"{required} cannot be empty")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._own_product(cursor, vendor_id, product_id)
            if "category" in updates:
                updates["category_id"] = CatalogService.resolve_category(cursor, updates.pop("category"))
            if "is_active" in updates:
                updates["is_active"] = int(updates["is_active"])
            if updates:
                fields = [f"{name} = ?" for name in updates]
                cursor.execute(
                    f"UPDATE products SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(updates.values()) + [product_id],
                )
                conn.commit()
                logger.info("Vendor %s updated product %s fields %s", vendor_id, product_id, sorted(updates))
            return cls.fetch_product(cursor, product_id)
        finally:
            conn.close()

    @classmethod
    async def delete_product(cls, vendor_id: int, product_id: int) -> bool:
        """Delete a product, or deactivate it if orders or reviews reference it.

        Returns ``True`` when the row was removed.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._own_product(cursor, vendor_id, product_id)
            referenced = cursor.execute(
                """
                SELECT EXISTS (SELECT 1 FROM order_items WHERE product_id = ?)
                    OR EXISTS (SELECT 1 FROM product_reviews WHERE product_id = ?)
                """,
                (product_id, product_id),
            ).fetchone()[0]
            if referenced:
                cursor.execute(
                    "UPDATE products SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (product_id,),
                )
                logger.info("Vendor %s deactivated ordered product %s", vendor_id, product_id)
            else:
                cursor.execute("DELETE FROM products WHERE id = ?", (product_id,))
                logger.info("Vendor %s deleted product %s", vendor_id, product_id)
            conn.commit()
            return not referenced
        finally:
            conn.close()

    @classmethod
    async def add_media(cls, vendor_id: int, product_id: int, media: List[MediaIn]) -> List[MediaRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            product = cls._own_product(cursor, vendor_id, product_id)
            cls._insert_media(cursor, product_id, media, product["name"])
            conn.commit()
            rows = cursor.execute(
                "SELECT * FROM product_media WHERE product_id = ? ORDER BY created_at, id",
                (product_id,),
            ).fetchall()
            return [cls._row_to_media(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def remove_media(cls, vendor_id: int, product_id: int, media_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._own_product(cursor, vendor_id, product_id)
            cursor.execute("DELETE FROM product_media WHERE id = ? AND product_id = ?", (media_id, product_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Media {media_id} not found")
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @classmethod
    async def admin_list_products(
        cls,
        category: Optional[str] = None,
        vendor_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> ProductList:
        """Every product whatever its vendor's status."""
        where_clauses: List[str] = []
        params: list = []
        if category:
            where_clauses.append("lower(c.name) = lower(?)")
            params.append(category)
        if vendor_id is not None:
            where_clauses.append("p.vendor_id = ?")
            params.append(vendor_id)
        cls._status_clause(status, where_clauses)
        return cls._list(where_clauses, params, page, limit)

    @classmethod
    async def set_status(cls, product_id: int, is_active: bool, reason: Optional[str], actor_id: int) -> ProductRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            before = cls.fetch_product(cursor, product_id)
            cursor.execute(
                "UPDATE products SET is_active = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (int(is_active), product_id),
            )
            conn.commit()
            product = cls.fetch_product(cursor, product_id)
        finally:
            conn.close()
        action = "activate" if is_active else "deactivate"
        logger.info("Product %s %sd by admin %s", product_id, action, actor_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=actor_id,
            action=action,
            object_type="product",
            object_id=product_id,
            details={
                "product_name": before.name,
                "vendor_name": before.vendor_name,
                "reason": reason or "Admin action",
                "previous": before.is_active,
            },
        )
        return product
