"""
Business logic for customer addresses.

A user has at most one default address.  Marking an address as
default clears the flag on all others, and a user's first address is
always made the default.  Addresses belonging to other users are
reported as not found.
"""

import logging
import sqlite3
from typing import List

from bonzenga_api.app.core.db import get_connection
from bonzenga_api.app.core.errors import NotFoundError
from ..schemas.address import AddressCreate, AddressRead, AddressUpdate


logger = logging.getLogger(__name__)


class AddressService:
    """CRUD for the current user's addresses."""

    @staticmethod
    def _row_to_address(row: sqlite3.Row) -> AddressRead:
        return AddressRead(
            id=row["id"],
            user_id=row["user_id"],
            type=row["type"],
            name=row["name"],
            street=row["street"],
            city=row["city"],
            state=row["state"],
            zip_code=row["zip_code"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            is_default=bool(row["is_default"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def owned_address(cursor: sqlite3.Cursor, user_id: int, address_id: int) -> sqlite3.Row:
        row = cursor.execute(
            "SELECT * FROM addresses WHERE id = ? AND user_id = ?",
            (address_id, user_id),
        ).fetchone()
        if not row:
            raise NotFoundError(f"Address {address_id} not found")
        return row

    @classmethod
    async def list_addresses(cls, user_id: int) -> List[AddressRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM addresses WHERE user_id = ? ORDER BY is_default DESC, created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
            return [cls._row_to_address(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def create_address(cls, user_id: int, data: AddressCreate) -> AddressRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            has_any = cursor.execute(
                "SELECT 1 FROM addresses WHERE user_id = ? LIMIT 1", (user_id,)
            ).fetchone()
            is_default = data.is_default or not has_any
            if is_default:
                cursor.execute("UPDATE addresses SET is_default = 0 WHERE user_id = ?", (user_id,))
            cursor.execute(
                """
                INSERT INTO addresses (user_id, type, name, street, city, state, zip_code, latitude, longitude, is_default)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    data.type,
                    data.name,
                    data.street,
                    data.city,
                    data.state,
                    data.zip_code,
                    data.latitude,
                    data.longitude,
                    int(is_default),
                ),
            )
            address_id = cursor.lastrowid
            conn.commit()
            logger.info("User %s added address %s", user_id, address_id)
            return cls._row_to_address(cls.owned_address(cursor, user_id, address_id))
        finally:
            conn.close()

    @classmethod
    async def update_address(cls, user_id: int, address_id: int, data: AddressUpdate) -> AddressRead:
        updates = data.model_dump(exclude_unset=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            current = cls.owned_address(cursor, user_id, address_id)
            if updates.get("is_default") is True:
                cursor.execute("UPDATE addresses SET is_default = 0 WHERE user_id = ?", (user_id,))
            elif updates.get("is_default") is False and current["is_default"]:
                # The default can only move by promoting another address.
                updates.pop("is_default")
            if "is_default" in updates:
                updates["is_default"] = int(updates["is_default"])
            for required in ("street", "city", "type"):
                if required in updates and updates[required] is None:
                    raise ValueError(f"{required} cannot be empty")
            if updates:
                fields = [f"{name} = ?" for name in updates]
                cursor.execute(
                    f"UPDATE addresses SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(updates.values()) + [address_id],
                )
            conn.commit()
            return cls._row_to_address(cls.owned_address(cursor, user_id, address_id))
        finally:
            conn.close()

    @classmethod
    async def delete_address(cls, user_id: int, address_id: int) -> None:
        """Delete an address; the newest remaining one becomes default if needed."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            current = cls.owned_address(cursor, user_id, address_id)
            in_use = cursor.execute(
                "SELECT 1 FROM bookings WHERE address_id = ? LIMIT 1", (address_id,)
            ).fetchone()
            if in_use:
                raise ValueError("Address is used by a booking and cannot be deleted")
            cursor.execute("DELETE FROM addresses WHERE id = ?", (address_id,))
            if current["is_default"]:
                cursor.execute(
                    """
                    UPDATE addresses SET is_default = 1
                    WHERE id = (SELECT id FROM addresses WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT 1)
                    """,
                    (user_id,),
                )
            conn.commit()
            logger.info("User %s deleted address %s", user_id, address_id)
        finally:
            conn.close()
