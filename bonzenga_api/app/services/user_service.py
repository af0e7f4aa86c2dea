"""
Business logic for user accounts and authentication.

Handles registration for the self‑service roles (customer, vendor,
beautician), password login, refresh token exchange and profile
maintenance.  Vendor and beautician registrations also create the
matching profile row in the same transaction; those profiles start
``PENDING`` unless the ``require_vendor_approval`` platform setting is
switched off.
"""

import json
import logging
import sqlite3
from typing import Optional

from bonzenga_api.app.core.db import ROLE_NAMES, get_connection
from bonzenga_api.app.core.errors import AccessDeniedError, AuthenticationError, NotFoundError
from bonzenga_api.app.core.security import (
    ROLE_BEAUTICIAN,
    ROLE_CUSTOMER,
    ROLE_VENDOR,
    dashboard_path_for,
    decode_token,
    hash_password,
    issue_token_pair,
    verify_password,
    TOKEN_TYPE_REFRESH,
)
from ..schemas.user import AuthResponse, CurrentUser, PasswordChange, ProfileUpdate, UserCreate, UserRead
from .settings_service import SettingsService


logger = logging.getLogger(__name__)


SELF_SERVICE_ROLES = {
    "CUSTOMER": ROLE_CUSTOMER,
    "VENDOR": ROLE_VENDOR,
    "BEAUTICIAN": ROLE_BEAUTICIAN,
}

USER_COLUMNS = (
    "u.id, u.email, u.first_name, u.last_name, u.phone, u.avatar, "
    "u.role_id, r.name AS role, u.status, u.created_at"
)


class UserService:
    """Service for user accounts."""

    @staticmethod
    def row_to_user(row: sqlite3.Row) -> UserRead:
        return UserRead(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row["phone"],
            avatar=row["avatar"],
            role_id=row["role_id"],
            role=row["role"],
            status=row["status"],
            created_at=row["created_at"],
        )

    @classmethod
    def fetch_user(cls, cursor: sqlite3.Cursor, user_id: int) -> UserRead:
        row = cursor.execute(
            f"SELECT {USER_COLUMNS} FROM users u JOIN roles r ON r.id = u.role_id WHERE u.id = ?",
            (user_id,),
        ).fetchone()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return cls.row_to_user(row)

    @staticmethod
    def resolve_role(role: Optional[str]) -> int:
        """Map a requested role name to a self‑service role id."""
        if not role:
            return ROLE_CUSTOMER
        role_id = SELF_SERVICE_ROLES.get(role.strip().upper())
        if role_id is None:
            raise ValueError(f"Role {role} cannot be chosen at registration")
        return role_id

    @classmethod
    def _auth_response(cls, user: UserRead) -> AuthResponse:
        tokens = issue_token_pair(user.email, user.role_id)
        return AuthResponse(user=user, dashboard_path=dashboard_path_for(user.role_id), **tokens)

    @classmethod
    async def register(cls, data: UserCreate, role_id: int = ROLE_CUSTOMER) -> AuthResponse:
        """Create an account and return it with a fresh token pair.

        ``data`` may be a ``VendorRegister`` or ``BeauticianRegister``;
        profile fields missing from a plain ``UserCreate`` fall back to
        empty values (a vendor's shop name defaults to the owner's name).
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not SettingsService.read_value(cursor, "allow_user_registration"):
                raise AccessDeniedError("Registration is currently disabled")
            existing = cursor.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone()
            if existing:
                raise ValueError("User already exists")
            require_approval = SettingsService.read_value(cursor, "require_vendor_approval")
            profile_status = "PENDING" if require_approval else "APPROVED"

            cursor.execute(
                """
                INSERT INTO users (email, password, first_name, last_name, phone, role_id, status)
                VALUES (?, ?, ?, ?, ?, ?, 'ACTIVE')
                """,
                (data.email, hash_password(data.password), data.first_name, data.last_name, data.phone, role_id),
            )
            user_id = cursor.lastrowid

            if role_id == ROLE_VENDOR:
                cursor.execute(
                    """
                    INSERT INTO vendors (id, shop_name, description, address, city, state, zip_code,
                                         business_type, years_in_business, number_of_employees,
                                         services_offered, status, is_verified)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        getattr(data, "shop_name", None) or f"{data.first_name} {data.last_name}",
                        getattr(data, "description", None),
                        getattr(data, "address", None),
                        getattr(data, "city", None),
                        getattr(data, "state", None),
                        getattr(data, "zip_code", None),
                        getattr(data, "business_type", None),
                        getattr(data, "years_in_business", None),
                        getattr(data, "number_of_employees", None),
                        json.dumps(getattr(data, "services_offered", [])),
                        profile_status,
                        0 if require_approval else 1,
                    ),
                )
            elif role_id == ROLE_BEAUTICIAN:
                vendor_id = getattr(data, "vendor_id", None)
                if vendor_id is not None:
                    vendor = cursor.execute("SELECT id FROM vendors WHERE id = ?", (vendor_id,)).fetchone()
                    if not vendor:
                        raise ValueError(f"Vendor {vendor_id} does not exist")
                cursor.execute(
                    """
                    INSERT INTO beauticians (id, vendor_id, skills, experience, certifications, bio, city,
                                             address, status, is_verified)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        vendor_id,
                        json.dumps(getattr(data, "skills", [])),
                        getattr(data, "experience", 0),
                        json.dumps(getattr(data, "certifications", [])),
                        getattr(data, "bio", None),
                        getattr(data, "city", None),
                        getattr(data, "address", None),
                        profile_status,
                        0 if require_approval else 1,
                    ),
                )
            conn.commit()
            user = cls.fetch_user(cursor, user_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info("Registered %s account %s", ROLE_NAMES[role_id].lower(), data.email)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(
            user_id=user.id,
            action="register",
            object_type="user",
            object_id=user.id,
            details={"role": user.role},
        )
        return cls._auth_response(user)

    @classmethod
    async def login(cls, email: str, password: str) -> AuthResponse:
        """Authenticate by email and password.

        Unknown emails and wrong passwords produce the same error so the
        response does not reveal which accounts exist.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, u.password FROM users u JOIN roles r ON r.id = u.role_id WHERE u.email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid credentials")
        if row["status"] != "ACTIVE":
            raise AuthenticationError("Account is not active")
        logger.info("User %s logged in", email)
        return cls._auth_response(cls.row_to_user(row))

    @classmethod
    async def refresh(cls, refresh_token: str) -> AuthResponse:
        """Exchange a refresh token for a new token pair."""
        payload = decode_token(refresh_token, expected_type=TOKEN_TYPE_REFRESH)
        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users u JOIN roles r ON r.id = u.role_id WHERE u.email = ?",
                (payload.get("sub"),),
            ).fetchone()
        finally:
            conn.close()
        if not row or row["status"] != "ACTIVE":
            raise AuthenticationError("User account is not active")
        return cls._auth_response(cls.row_to_user(row))

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            return cls.fetch_user(conn.cursor(), user_id)
        finally:
            conn.close()

    @classmethod
    async def current_user(cls, user_id: int) -> CurrentUser:
        user = await cls.get_user(user_id)
        return CurrentUser(**user.model_dump(), dashboard_path=dashboard_path_for(user.role_id))

    @classmethod
    async def update_profile(cls, user_id: int, data: ProfileUpdate) -> UserRead:
        """Update the editable profile fields of the current user."""
        updates = data.model_dump(exclude_unset=True)
        for required in ("first_name", "last_name"):
            if required in updates and updates[required] is None:
                raise ValueError(f"{required} cannot be empty")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if updates:
                fields = [f"{name} = ?" for name in updates]
                params = list(updates.values()) + [user_id]
                cursor.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    params,
                )
                conn.commit()
                logger.info("User %s updated profile fields %s", user_id, sorted(updates))
            return cls.fetch_user(cursor, user_id)
        finally:
            conn.close()

    @classmethod
    async def change_password(cls, user_id: int, data: PasswordChange) -> None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT password FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            if not verify_password(data.current_password, row["password"]):
                raise ValueError("Current password is incorrect")
            conn.execute(
                "UPDATE users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (hash_password(data.new_password), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s changed password", user_id)
        from bonzenga_api.app.services.audit_service import AuditService
        await AuditService.record(user_id=user_id, action="change_password", object_type="user", object_id=user_id)
