"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``) and applying migrations on application start
(``init_db``).  It uses SQLite as a lightweight embedded database; to
switch to another DBMS you would replace connection logic and adapt
SQL syntax accordingly.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.  Reference
data (roles, service categories, platform settings and the bootstrap
staff accounts) is seeded with ``INSERT OR IGNORE`` after migrations
so that restarts never duplicate it.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


logger = logging.getLogger(__name__)


ROLE_NAMES = {
    1: "ADMIN",
    2: "MANAGER",
    3: "VENDOR",
    4: "BEAUTICIAN",
    5: "CUSTOMER",
}

SERVICE_CATEGORIES = [
    ("Hair Styling", "Cuts, colouring, braiding and styling"),
    ("Facial Treatments", "Facials, cleansing and skin care"),
    ("Nail Care", "Manicure, pedicure and nail art"),
    ("Makeup", "Everyday, event and bridal makeup"),
    ("Massage", "Relaxation and therapeutic massage"),
    ("Other", "Other beauty and wellness services"),
]


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            phone TEXT,
            avatar TEXT,
            role_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'ACTIVE',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id)
        );

        -- A vendor profile shares its primary key with the owning user.
        CREATE TABLE IF NOT EXISTS vendors (
            id INTEGER PRIMARY KEY,
            shop_name TEXT NOT NULL,
            description TEXT,
            address TEXT,
            city TEXT,
            state TEXT,
            zip_code TEXT,
            latitude REAL,
            longitude REAL,
            business_type TEXT,
            years_in_business INTEGER,
            number_of_employees INTEGER,
            services_offered TEXT,
            operating_hours TEXT,
            status TEXT NOT NULL DEFAULT 'PENDING',
            is_verified INTEGER NOT NULL DEFAULT 0,
            rejection_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS beauticians (
            id INTEGER PRIMARY KEY,
            vendor_id INTEGER,
            skills TEXT,
            experience INTEGER NOT NULL DEFAULT 0,
            certifications TEXT,
            bio TEXT,
            city TEXT,
            address TEXT,
            status TEXT NOT NULL DEFAULT 'PENDING',
            is_verified INTEGER NOT NULL DEFAULT 0,
            rejection_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(id) REFERENCES users(id),
            FOREIGN KEY(vendor_id) REFERENCES vendors(id)
        );

        CREATE TABLE IF NOT EXISTS service_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT
        );

        CREATE TABLE IF NOT EXISTS services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            vendor_id INTEGER NOT NULL,
            category_id INTEGER,
            name TEXT NOT NULL,
            description TEXT,
            price REAL NOT NULL,
            duration INTEGER NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(vendor_id, name),
            FOREIGN KEY(vendor_id) REFERENCES vendors(id),
            FOREIGN KEY(category_id) REFERENCES service_categories(id)
        );

        CREATE TABLE IF NOT EXISTS addresses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            type TEXT NOT NULL DEFAULT 'HOME',
            name TEXT,
            street TEXT NOT NULL,
            city TEXT NOT NULL,
            state TEXT,
            zip_code TEXT,
            latitude REAL,
            longitude REAL,
            is_default INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_id INTEGER NOT NULL,
            vendor_id INTEGER NOT NULL,
            beautician_id INTEGER,
            address_id INTEGER,
            service_type TEXT NOT NULL DEFAULT 'SALON',
            status TEXT NOT NULL DEFAULT 'PENDING',
            scheduled_date TEXT NOT NULL,
            scheduled_time TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0,
            subtotal REAL NOT NULL DEFAULT 0,
            tax REAL NOT NULL DEFAULT 0,
            total REAL NOT NULL DEFAULT 0,
            phone TEXT,
            notes TEXT,
            cancellation_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(customer_id) REFERENCES users(id),
            FOREIGN KEY(vendor_id) REFERENCES vendors(id),
            FOREIGN KEY(beautician_id) REFERENCES beauticians(id),
            FOREIGN KEY(address_id) REFERENCES addresses(id)
        );

        CREATE TABLE IF NOT EXISTS booking_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL,
            service_id INTEGER NOT NULL,
            quantity INTEGER NOT NULL DEFAULT 1,
            price REAL NOT NULL,
            FOREIGN KEY(booking_id) REFERENCES bookings(id) ON DELETE CASCADE,
            FOREIGN KEY(service_id) REFERENCES services(id)
        );

        CREATE TABLE IF NOT EXISTS booking_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            data TEXT,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(booking_id) REFERENCES bookings(id) ON DELETE CASCADE,
            FOREIGN KEY(created_by) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            amount REAL NOT NULL,
            currency TEXT NOT NULL DEFAULT 'CDF',
            method TEXT,
            provider TEXT,
            status TEXT NOT NULL DEFAULT 'PENDING',
            transaction_id TEXT,
            card_last4 TEXT,
            mobile_number TEXT,
            notes TEXT,
            confirmed_by INTEGER,
            confirmed_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(booking_id) REFERENCES bookings(id),
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(confirmed_by) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_id INTEGER NOT NULL,
            vendor_id INTEGER NOT NULL,
            customer_id INTEGER NOT NULL,
            rating INTEGER NOT NULL,
            comment TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(service_id, customer_id),
            FOREIGN KEY(service_id) REFERENCES services(id),
            FOREIGN KEY(vendor_id) REFERENCES vendors(id),
            FOREIGN KEY(customer_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            type TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );
        """,
    ),
    # Migration 2: indices on the foreign keys used by dashboards
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_bookings_customer_id ON bookings(customer_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_vendor_id ON bookings(vendor_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_beautician_id ON bookings(beautician_id);
        CREATE INDEX IF NOT EXISTS idx_booking_items_booking_id ON booking_items(booking_id);
        CREATE INDEX IF NOT EXISTS idx_booking_events_booking_id ON booking_events(booking_id);
        CREATE INDEX IF NOT EXISTS idx_payments_booking_id ON payments(booking_id);
        CREATE INDEX IF NOT EXISTS idx_payments_user_id ON payments(user_id);
        CREATE INDEX IF NOT EXISTS idx_services_vendor_id ON services(vendor_id);
        CREATE INDEX IF NOT EXISTS idx_addresses_user_id ON addresses(user_id);
        CREATE INDEX IF NOT EXISTS idx_reviews_vendor_id ON reviews(vendor_id);
        """,
    ),
    # Migration 3: beauty product shop and order delivery
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            vendor_id INTEGER NOT NULL,
            category_id INTEGER,
            name TEXT NOT NULL,
            description TEXT,
            price REAL NOT NULL,
            stock INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(vendor_id) REFERENCES vendors(id),
            FOREIGN KEY(category_id) REFERENCES service_categories(id)
        );

        CREATE TABLE IF NOT EXISTS product_media (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id INTEGER NOT NULL,
            type TEXT NOT NULL DEFAULT 'IMAGE',
            url TEXT NOT NULL,
            alt TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS product_reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id INTEGER NOT NULL,
            customer_id INTEGER NOT NULL,
            rating INTEGER NOT NULL,
            comment TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(product_id, customer_id),
            FOREIGN KEY(product_id) REFERENCES products(id),
            FOREIGN KEY(customer_id) REFERENCES users(id)
        );

        -- The shipping address is copied onto the order so later edits
        -- or deletion of the customer's address do not alter it.
        CREATE TABLE IF NOT EXISTS orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            subtotal REAL NOT NULL DEFAULT 0,
            tax REAL NOT NULL DEFAULT 0,
            total REAL NOT NULL DEFAULT 0,
            currency TEXT NOT NULL DEFAULT 'CDF',
            shipping_address TEXT NOT NULL,
            payment_method TEXT NOT NULL DEFAULT 'cash',
            phone TEXT,
            notes TEXT,
            cancellation_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(customer_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS order_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL,
            product_id INTEGER NOT NULL,
            vendor_id INTEGER NOT NULL,
            quantity INTEGER NOT NULL,
            unit_price REAL NOT NULL,
            total_price REAL NOT NULL,
            FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE,
            FOREIGN KEY(product_id) REFERENCES products(id),
            FOREIGN KEY(vendor_id) REFERENCES vendors(id)
        );

        CREATE TABLE IF NOT EXISTS delivery_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL,
            status TEXT NOT NULL,
            note TEXT,
            data TEXT,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE,
            FOREIGN KEY(created_by) REFERENCES users(id)
        );

        CREATE INDEX IF NOT EXISTS idx_products_vendor_id ON products(vendor_id);
        CREATE INDEX IF NOT EXISTS idx_product_media_product_id ON product_media(product_id);
        CREATE INDEX IF NOT EXISTS idx_orders_customer_id ON orders(customer_id);
        CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items(order_id);
        CREATE INDEX IF NOT EXISTS idx_order_items_vendor_id ON order_items(vendor_id);
        CREATE INDEX IF NOT EXISTS idx_delivery_events_order_id ON delivery_events(order_id);
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the package root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # bonzenga_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be read by
    name.  No type detection is enabled; timestamps come back as the
    strings SQLite stored.
    """
    db_path = get_database_path()
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    # Foreign keys are off by default in SQLite and must be enabled on
    # every connection.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, applies any
    migration newer than the recorded version and then seeds the
    reference data.  Safe to call on every start.
    """
    from .security import hash_password
    from ..services.settings_service import DEFAULT_SETTINGS, SettingsService

    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                logger.info("Applied migration %s", version)
                current_version = version

        for role_id, name in ROLE_NAMES.items():
            cursor.execute(
                "INSERT OR IGNORE INTO roles (id, name) VALUES (?, ?)",
                (role_id, name),
            )

        for name, description in SERVICE_CATEGORIES:
            cursor.execute(
                "INSERT OR IGNORE INTO service_categories (name, description) VALUES (?, ?)",
                (name, description),
            )

        for key, (value, type_str) in DEFAULT_SETTINGS.items():
            cursor.execute(
                "INSERT OR IGNORE INTO settings (key, value, type) VALUES (?, ?, ?)",
                (key, SettingsService._serialize(value, type_str), type_str),
            )

        # Bootstrap staff accounts.  Existing rows are left untouched so
        # a password changed after first start is never overwritten.
        staff = [
            (settings.admin_email, settings.admin_password, "Admin", "User", 1),
            (settings.manager_email, settings.manager_password, "Manager", "User", 2),
        ]
        for email, password, first_name, last_name, role_id in staff:
            if not email or not password:
                continue
            exists = cursor.execute(
                "SELECT id FROM users WHERE email = ?", (email.lower(),)
            ).fetchone()
            if exists:
                continue
            cursor.execute(
                """
                INSERT INTO users (email, password, first_name, last_name, role_id, status)
                VALUES (?, ?, ?, ?, ?, 'ACTIVE')
                """,
                (email.lower(), hash_password(password), first_name, last_name, role_id),
            )
            logger.info("Created bootstrap %s account %s", ROLE_NAMES[role_id].lower(), email)
