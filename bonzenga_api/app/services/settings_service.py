"""
Service layer for platform settings.

Settings are key/value pairs stored in the ``settings`` table.  Each
setting has a ``type`` used to convert the stored string back into
the appropriate Python type.  ``DEFAULT_SETTINGS`` declares every key
the platform understands; ``init_db`` seeds these and the admin
console may only change known keys.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection


logger = logging.getLogger(__name__)


DEFAULT_SETTINGS: Dict[str, tuple] = {
    "platform_name": ("Home Bonzenga", "string"),
    "support_email": ("support@homebonzenga.com", "string"),
    "currency": ("CDF", "string"),
    "default_commission_rate": (15.0, "float"),
    "tax_rate": (0.10, "float"),
    "beautician_share": (0.40, "float"),
    "minimum_payout_amount": (50.0, "float"),
    "maximum_payout_amount": (10000.0, "float"),
    "payout_processing_days": (7, "int"),
    "allow_user_registration": (True, "bool"),
    "require_vendor_approval": (True, "bool"),
    "maintenance_mode": (False, "bool"),
}


class SettingsService:
    """Service for managing platform settings."""

    @classmethod
    async def list_settings(cls) -> List[Dict[str, Any]]:
        """Return all settings as a list of dictionaries."""
        conn = get_connection()
        try:
            rows = conn.execute("SELECT key, value, type FROM settings ORDER BY key").fetchall()
            return [
                {"key": row["key"], "value": cls._deserialize(row["value"], row["type"]), "type": row["type"]}
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def get_setting(cls, key: str) -> Optional[Dict[str, Any]]:
        """Retrieve a single setting by key."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT key, value, type FROM settings WHERE key = ?", (key,)).fetchone()
            if not row:
                return None
            return {"key": row["key"], "value": cls._deserialize(row["value"], row["type"]), "type": row["type"]}
        finally:
            conn.close()

    @classmethod
    def read_value(cls, cursor: sqlite3.Cursor, key: str) -> Any:
        """Read a setting through an open cursor, falling back to its default.

        Other services call this while they already hold a connection.
        """
        row = cursor.execute("SELECT value, type FROM settings WHERE key = ?", (key,)).fetchone()
        if row:
            return cls._deserialize(row["value"], row["type"])
        default = DEFAULT_SETTINGS.get(key)
        return default[0] if default else None

    @classmethod
    async def platform_settings(cls) -> Dict[str, Any]:
        """Return every known setting as ``{key: value}`` merged over the defaults."""
        values = {key: default for key, (default, _) in DEFAULT_SETTINGS.items()}
        for item in await cls.list_settings():
            if item["key"] in values:
                values[item["key"]] = item["value"]
        return values

    @classmethod
    async def upsert_setting(cls, key: str, value: Any, type_str: str, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Insert or update a setting and return it with the deserialized value."""
        serialized = cls._serialize(value, type_str)
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO settings (key, value, type) VALUES (?, ?, ?)"
                " ON CONFLICT(key) DO UPDATE SET value = excluded.value, type = excluded.type",
                (key, serialized, type_str),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Setting %s updated", key)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=user_id,
            action="update",
            object_type="setting",
            details={"key": key, "value": value},
        )
        return {"key": key, "value": cls._deserialize(serialized, type_str), "type": type_str}

    @classmethod
    async def update_platform_settings(cls, updates: Dict[str, Any], user_id: Optional[int] = None) -> Dict[str, Any]:
        """Validate and store a batch of setting changes.

        Every key must be declared in ``DEFAULT_SETTINGS`` and every
        value must be convertible to the declared type.  Nothing is
        written unless the whole batch is valid.
        """
        if not updates:
            raise ValueError("No settings provided")
        coerced: Dict[str, Any] = {}
        for key, value in updates.items():
            if key not in DEFAULT_SETTINGS:
                raise ValueError(f"Unknown setting: {key}")
            type_str = DEFAULT_SETTINGS[key][1]
            coerced[key] = cls._coerce(key, value, type_str)
        for key, value in coerced.items():
            await cls.upsert_setting(key, value, DEFAULT_SETTINGS[key][1], user_id=user_id)
        return await cls.platform_settings()

    @staticmethod
    def _coerce(key: str, value: Any, type_str: str) -> Any:
        if value is None:
            raise ValueError(f"Setting {key} cannot be null")
        try:
            if type_str == "int":
                if isinstance(value, bool) or float(value) != int(float(value)):
                    raise ValueError
                return int(float(value))
            if type_str == "float":
                if isinstance(value, bool):
                    raise ValueError
                return float(value)
            if type_str == "bool":
                if isinstance(value, bool):
                    return value
                if str(value).lower() in {"1", "true", "yes"}:
                    return True
                if str(value).lower() in {"0", "false", "no"}:
                    return False
                raise ValueError
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for setting {key}: expected {type_str}")
        return str(value)

    @staticmethod
    def _serialize(value: Any, type_str: str) -> str:
        """Serialize a Python value to a string based on type."""
        if type_str == "int":
            return str(int(value))
        if type_str == "float":
            return str(float(value))
        if type_str == "bool":
            return "1" if bool(value) else "0"
        return str(value)

    @staticmethod
    def _deserialize(value: str, type_str: str) -> Any:
        """Deserialize a string back to a Python value based on type."""
        if type_str == "int":
            return int(value)
        if type_str == "float":
            return float(value)
        if type_str == "bool":
            return value not in {"0", "false", "False", ""}
        return value
