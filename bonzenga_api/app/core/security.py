"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed
arbitrary claims, an expiration timestamp (``exp``) and a ``type``
claim distinguishing short‑lived ``access`` tokens from ``refresh``
tokens.  Only access tokens authenticate API requests; refresh tokens
can only be exchanged for a new pair at ``/auth/refresh``.

Passwords are hashed with PBKDF2‑HMAC‑SHA256 and stored as
``salthex$hashhex``.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings


ROLE_ADMIN = 1
ROLE_MANAGER = 2
ROLE_VENDOR = 3
ROLE_BEAUTICIAN = 4
ROLE_CUSTOMER = 5

STAFF_ROLES = (ROLE_ADMIN, ROLE_MANAGER)

DASHBOARD_PATHS = {
    ROLE_ADMIN: "/admin",
    ROLE_MANAGER: "/manager",
    ROLE_VENDOR: "/vendor",
    ROLE_BEAUTICIAN: "/beautician",
}

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

PBKDF2_ITERATIONS = 100_000


def dashboard_path_for(role_id: int) -> str:
    """Return the web dashboard a user lands on after login."""
    return DASHBOARD_PATHS.get(role_id, "/customer")


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def _encode_token(claims: Dict[str, object]) -> str:
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(claims, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def create_access_token(data: Dict[str, object], expires_delta: Optional[int] = None) -> str:
    """Create a signed access token with the given claims.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"sub": "user@example.com"}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.

    Returns
    -------
    str
        A token of the form ``header.payload.signature``.
    """
    to_encode = dict(data)
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    to_encode["type"] = TOKEN_TYPE_ACCESS
    return _encode_token(to_encode)


def create_refresh_token(data: Dict[str, object], expires_delta: Optional[int] = None) -> str:
    """Create a signed refresh token; see ``create_access_token``."""
    to_encode = dict(data)
    exp_seconds = expires_delta or settings.refresh_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    to_encode["type"] = TOKEN_TYPE_REFRESH
    return _encode_token(to_encode)


def decode_token(token: str, expected_type: Optional[str] = TOKEN_TYPE_ACCESS) -> Optional[Dict[str, object]]:
    """Verify and decode a token.

    Verifies the HMAC signature, the ``exp`` field and, unless
    ``expected_type`` is ``None``, the ``type`` claim.  Returns the
    payload dictionary on success and ``None`` otherwise.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
    except (ValueError, TypeError):
        return None
    # Constant‑time comparison to prevent timing attacks
    if not hmac.compare_digest(expected_sig, actual_sig):
        return None
    try:
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    if expected_type is not None and data.get("type") != expected_type:
        return None
    return data


def issue_token_pair(email: str, role_id: int) -> Dict[str, str]:
    """Return fresh access and refresh tokens for a user."""
    claims = {"sub": email, "role_id": role_id}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, object]:
    """Dependency that retrieves the current authenticated user.

    The token subject (email) is looked up in the database on every
    request so that role changes and suspensions take effect
    immediately.  Returns the token payload extended with ``user_id``,
    ``role_id`` and ``email``.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    from bonzenga_api.app.core.db import get_connection
    conn = get_connection()
    try:
        user_row = conn.execute(
            "SELECT id, email, role_id, status FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not user_row:
        raise _unauthorized("User no longer exists")
    if user_row["status"] != "ACTIVE":
        raise _unauthorized("User account is not active")
    payload["user_id"] = user_row["id"]
    payload["role_id"] = user_row["role_id"]
    payload["email"] = user_row["email"]
    return payload


# ---------------------------------------------------------------------------
# Role-based access control (RBAC) helpers
# ---------------------------------------------------------------------------

def require_roles(*role_ids: int) -> Callable[[Dict[str, object]], Dict[str, object]]:
    """Dependency factory to enforce that the current user has one of the specified roles.

    Use this in FastAPI endpoints via ``Depends(require_roles(ROLE_ADMIN,
    ROLE_MANAGER))``.  Role IDs correspond to entries in the ``roles``
    table.  If the authenticated user does not match any of the given
    role IDs, an HTTP 403 error is raised.
    """

    def _role_dependency(current_user: Dict[str, object] = Depends(get_current_user)) -> Dict[str, object]:
        if current_user.get("role_id") not in role_ids:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each password.  The
    resulting string contains the salt and hash separated by a ``$``
    (salt in hex, then hash in hex).
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    try:
        salt_hex, hash_hex = hashed_password.split('$', 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
