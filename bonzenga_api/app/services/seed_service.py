"""
Sample marketplace data for local development and demos.

``seed_sample_data`` is idempotent: accounts are keyed by email and
are only created when missing, and the sample bookings are only added
for a freshly created customer.
"""

import json
import logging
import sqlite3
from datetime import date, timedelta
from typing import Dict, Optional

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.core.db import get_connection, init_db
from bonzenga_api.app.core.security import ROLE_BEAUTICIAN, ROLE_CUSTOMER, ROLE_VENDOR, hash_password


logger = logging.getLogger(__name__)


SAMPLE_PASSWORD = "Password@123"

SAMPLE_VENDORS = [
    {
        "email": "elegant@homebonzenga.com",
        "first_name": "Grace",
        "last_name": "Mbuyi",
        "phone": "+243810000001",
        "shop_name": "Elegant Beauty Salon",
        "description": "Full service salon for hair, skin and nails",
        "address": "12 Avenue du Commerce",
        "city": "Kinshasa",
        "status": "APPROVED",
        "services": [
            ("Hair Cut & Style", "Hair Styling", 60, 50.0, "Professional cut and styling"),
            ("Facial Treatment", "Facial Treatments", 90, 80.0, "Deep cleansing facial"),
            ("Manicure & Pedicure", "Nail Care", 120, 60.0, "Complete hand and foot care"),
            ("Makeup Application", "Makeup", 90, 100.0, "Event and bridal makeup"),
        ],
    },
    {
        "email": "glamour@homebonzenga.com",
        "first_name": "Sarah",
        "last_name": "Ilunga",
        "phone": "+243810000002",
        "shop_name": "Glamour Studio",
        "description": "Makeup and nail studio",
        "address": "45 Boulevard du 30 Juin",
        "city": "Kinshasa",
        "status": "PENDING",
        "services": [],
    },
]

SAMPLE_CUSTOMER = {
    "email": "customer@homebonzenga.com",
    "first_name": "Marie",
    "last_name": "Kabila",
    "phone": "+243820000001",
}

SAMPLE_BEAUTICIAN = {
    "email": "beautician@homebonzenga.com",
    "first_name": "Esther",
    "last_name": "Tshala",
    "phone": "+243830000001",
    "skills": ["Hair Styling", "Makeup"],
    "experience": 5,
}


def _ensure_user(cursor: sqlite3.Cursor, data: dict, role_id: int) -> tuple:
    """Return ``(user_id, created)`` for the account with ``data['email']``."""
    row = cursor.execute("SELECT id FROM users WHERE email = ?", (data["email"],)).fetchone()
    if row:
        return row["id"], False
    cursor.execute(
        """
        INSERT INTO users (email, password, first_name, last_name, phone, role_id, status)
        VALUES (?, ?, ?, ?, ?, ?, 'ACTIVE')
        """,
        (data["email"], hash_password(SAMPLE_PASSWORD), data["first_name"], data["last_name"], data["phone"], role_id),
    )
    return cursor.lastrowid, True


def _seed_vendor(cursor: sqlite3.Cursor, data: dict) -> Dict[str, int]:
    vendor_id, created = _ensure_user(cursor, data, ROLE_VENDOR)
    if created:
        cursor.execute(
            """
            INSERT INTO vendors (id, shop_name, description, address, city, services_offered, status, is_verified)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                vendor_id,
                data["shop_name"],
                data["description"],
                data["address"],
                data["city"],
                json.dumps(sorted({service[1] for service in data["services"]})),
                data["status"],
                int(data["status"] == "APPROVED"),
            ),
        )
    service_ids = {}
    for name, category, duration, price, description in data["services"]:
        category_row = cursor.execute("SELECT id FROM service_categories WHERE name = ?", (category,)).fetchone()
        cursor.execute(
            """
            INSERT OR IGNORE INTO services (vendor_id, category_id, name, description, price, duration)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (vendor_id, category_row["id"] if category_row else None, name, description, price, duration),
        )
        service_ids[name] = cursor.execute(
            "SELECT id FROM services WHERE vendor_id = ? AND name = ?", (vendor_id, name)
        ).fetchone()["id"]
    return {"vendor_id": vendor_id, **service_ids}


def _add_booking(
    cursor: sqlite3.Cursor,
    customer_id: int,
    vendor_id: int,
    services: list,
    status: str,
    scheduled: date,
    beautician_id: Optional[int] = None,
    address_id: Optional[int] = None,
) -> int:
    rows = [
        cursor.execute("SELECT id, price, duration FROM services WHERE id = ?", (service_id,)).fetchone()
        for service_id in services
    ]
    subtotal = round(sum(row["price"] for row in rows), 2)
    tax = round(subtotal * 0.10, 2)
    cursor.execute(
        """
        INSERT INTO bookings (customer_id, vendor_id, beautician_id, address_id, service_type, status,
                              scheduled_date, scheduled_time, duration, subtotal, tax, total, phone)
        VALUES (?, ?, ?, ?, ?, ?, ?, '10:00', ?, ?, ?, ?, ?)
        """,
        (
            customer_id,
            vendor_id,
            beautician_id,
            address_id,
            "AT_HOME" if address_id else "SALON",
            status,
            scheduled.isoformat(),
            sum(row["duration"] for row in rows),
            subtotal,
            tax,
            round(subtotal + tax, 2),
            SAMPLE_CUSTOMER["phone"],
        ),
    )
    booking_id = cursor.lastrowid
    for row in rows:
        cursor.execute(
            "INSERT INTO booking_items (booking_id, service_id, quantity, price) VALUES (?, ?, 1, ?)",
            (booking_id, row["id"], row["price"]),
        )
    paid = status == "COMPLETED"
    cursor.execute(
        """
        INSERT INTO payments (booking_id, user_id, amount, currency, method, status, transaction_id, confirmed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, CASE WHEN ? THEN CURRENT_TIMESTAMP END)
        """,
        (
            booking_id,
            customer_id,
            round(subtotal + tax, 2),
            settings.currency,
            "CARD" if paid else None,
            "COMPLETED" if paid else "PENDING",
            f"TXN-SEED-{booking_id}" if paid else None,
            int(paid),
        ),
    )
    cursor.execute(
        "INSERT INTO booking_events (booking_id, type, data) VALUES (?, 'CREATED', ?)",
        (booking_id, json.dumps({"source": "seed"})),
    )
    return booking_id


def seed_sample_data() -> Dict[str, int]:
    """Create the sample vendors, services, customer, beautician and bookings.

    Returns a summary of how many bookings were added.
    """
    init_db()
    conn = get_connection()
    try:
        cursor = conn.cursor()
        vendors = [_seed_vendor(cursor, data) for data in SAMPLE_VENDORS]
        salon = vendors[0]

        beautician_id, created = _ensure_user(cursor, SAMPLE_BEAUTICIAN, ROLE_BEAUTICIAN)
        if created:
            cursor.execute(
                """
                INSERT INTO beauticians (id, vendor_id, skills, experience, city, status, is_verified)
                VALUES (?, ?, ?, ?, 'Kinshasa', 'APPROVED', 1)
                """,
                (beautician_id, salon["vendor_id"], json.dumps(SAMPLE_BEAUTICIAN["skills"]), SAMPLE_BEAUTICIAN["experience"]),
            )

        customer_id, created = _ensure_user(cursor, SAMPLE_CUSTOMER, ROLE_CUSTOMER)
        bookings_added = 0
        if created:
            cursor.execute(
                """
                INSERT INTO addresses (user_id, type, name, street, city, is_default)
                VALUES (?, 'HOME', 'Home', '8 Avenue Kasa-Vubu', 'Kinshasa', 1)
                """,
                (customer_id,),
            )
            address_id = cursor.lastrowid
            today = date.today()
            _add_booking(
                cursor,
                customer_id,
                salon["vendor_id"],
                [salon["Hair Cut & Style"]],
                "COMPLETED",
                today - timedelta(days=7),
                beautician_id=beautician_id,
            )
            _add_booking(
                cursor,
                customer_id,
                salon["vendor_id"],
                [salon["Facial Treatment"], salon["Manicure & Pedicure"]],
                "PENDING",
                today + timedelta(days=3),
                address_id=address_id,
            )
            bookings_added = 2
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    logger.info("Sample data ready (%s booking(s) added)", bookings_added)
    return {"vendors": len(vendors), "bookings_added": bookings_added}
