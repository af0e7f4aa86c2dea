"""
Authentication endpoints for API v1.

Registration for the self‑service roles, password login, refresh
token exchange and the current user lookup.  Every successful login
or registration returns the same payload: the user, an access/refresh
token pair and the dashboard path the client should navigate to.
"""

from fastapi import APIRouter, Depends, status

from bonzenga_api.app.core.security import ROLE_BEAUTICIAN, ROLE_CUSTOMER, ROLE_VENDOR, get_current_user
from bonzenga_api.app.schemas.user import (
    AuthResponse,
    BeauticianRegister,
    CurrentUser,
    LoginRequest,
    RefreshRequest,
    UserCreate,
    VendorRegister,
)
from bonzenga_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate) -> AuthResponse:
    """Register an account for the role named in ``role`` (customer by default).

    Staff roles cannot be requested here.  Vendor and beautician
    accounts created this way get an empty profile that can be filled
    in later; the dedicated routes below accept the profile up front.
    """
    return await UserService.register(user, UserService.resolve_role(user.role))


@router.post("/register-customer", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_customer(user: UserCreate) -> AuthResponse:
    return await UserService.register(user, ROLE_CUSTOMER)


@router.post("/register-vendor", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_vendor(user: VendorRegister) -> AuthResponse:
    """Register a vendor account together with its shop profile.

    The shop starts ``PENDING`` and is hidden from customers until a
    manager approves it.
    """
    return await UserService.register(user, ROLE_VENDOR)


@router.post("/register-beautician", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_beautician(user: BeauticianRegister) -> AuthResponse:
    return await UserService.register(user, ROLE_BEAUTICIAN)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest) -> AuthResponse:
    """Authenticate with e‑mail and password."""
    return await UserService.login(credentials.email, credentials.password)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(payload: RefreshRequest) -> AuthResponse:
    """Exchange a refresh token for a new token pair.

    Access tokens are not accepted here.
    """
    return await UserService.refresh(payload.refresh_token)


@router.get("/me", response_model=CurrentUser)
async def read_me(current_user: dict = Depends(get_current_user)) -> CurrentUser:
    return await UserService.current_user(current_user["user_id"])
