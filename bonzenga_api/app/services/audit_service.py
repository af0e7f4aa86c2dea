"""
Audit service for recording and querying system actions.

This module provides a centralized API for writing audit events to the
``audit_logs`` table and retrieving them with filters and pagination.
Registrations, approvals, booking status changes, payments, settings
changes and account status changes are recorded.  Only administrators
can read audit logs.  Filtering on ``object_type`` plus ``object_id``
gives the full trail of one booking, payment or order.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from bonzenga_api.app.core.db import get_connection


logger = logging.getLogger(__name__)


# Object types the services write; unknown filters are rejected rather
# than silently matching nothing.
OBJECT_TYPES = (
    "user",
    "manager",
    "vendor",
    "beautician",
    "booking",
    "payment",
    "review",
    "setting",
    "product",
    "order",
)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action.  May be ``None`` for
            system‑initiated actions.
        action : str
            Short description of the action (e.g. "create", "approve", "refund").
        object_type : str
            Type of object affected (e.g. "vendor", "booking", "payment").
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data about the action, stored as JSON.
        """
        conn = get_connection()
        try:
            details_json = json.dumps(details) if details else None
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, details_json),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Like ``log`` but never raises.

        Business operations call this after their own transaction has
        committed; a failing audit write is logged and must not turn a
        successful request into an error.
        """
        try:
            await cls.log(user_id, action, object_type, object_id, details)
        except Exception as e:
            logger.warning("Failed to write audit log for %s %s: %s", object_type, object_id, e)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        object_id: Optional[int] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records with optional filters and pagination.

        Date filters accept ISO date strings ("YYYY-MM-DD") and apply
        to the ``timestamp`` column; ``end_date`` is inclusive of the
        whole day.  Sorting is always newest first.
        """
        conn = get_connection()
        try:
            where_clauses: List[str] = []
            params: List[Any] = []
            if user_id is not None:
                where_clauses.append("user_id = ?")
                params.append(user_id)
            if object_type:
                object_type = object_type.lower()
                if object_type not in OBJECT_TYPES:
                    raise ValueError(f"Unknown object type: {object_type}")
                where_clauses.append("object_type = ?")
                params.append(object_type)
            if object_id is not None:
                where_clauses.append("object_id = ?")
                params.append(object_id)
            if action:
                where_clauses.append("action = ?")
                params.append(action)
            if start_date:
                where_clauses.append("date(timestamp) >= date(?)")
                params.append(start_date)
            if end_date:
                where_clauses.append("date(timestamp) <= date(?)")
                params.append(end_date)
            query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            logs = []
            for row in rows:
                details_data = None
                if row["details"]:
                    try:
                        details_data = json.loads(row["details"])
                    except json.JSONDecodeError:
                        details_data = row["details"]
                logs.append(
                    {
                        "id": row["id"],
                        "user_id": row["user_id"],
                        "action": row["action"],
                        "object_type": row["object_type"],
                        "object_id": row["object_id"],
                        "timestamp": row["timestamp"],
                        "details": details_data,
                    }
                )
            return logs
        finally:
            conn.close()
