"""
Profile and address endpoints for API v1.

The profile routes work for any authenticated user; the address book
is what customers pick from when booking an at‑home service.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from bonzenga_api.app.core.security import get_current_user
from bonzenga_api.app.schemas.address import AddressCreate, AddressRead, AddressUpdate
from bonzenga_api.app.schemas.user import PasswordChange, ProfileUpdate, UserRead
from bonzenga_api.app.services.address_service import AddressService
from bonzenga_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/profile", response_model=UserRead)
async def get_profile(current_user: dict = Depends(get_current_user)) -> UserRead:
    return await UserService.get_user(current_user["user_id"])


@router.put("/profile", response_model=UserRead)
async def update_profile(data: ProfileUpdate, current_user: dict = Depends(get_current_user)) -> UserRead:
    """Update names, phone and avatar of the current user."""
    return await UserService.update_profile(current_user["user_id"], data)


@router.put("/profile/password")
async def change_password(data: PasswordChange, current_user: dict = Depends(get_current_user)) -> dict:
    """Change the password after checking the current one."""
    await UserService.change_password(current_user["user_id"], data)
    return {"message": "Password updated"}


@router.get("/addresses", response_model=List[AddressRead])
async def list_addresses(current_user: dict = Depends(get_current_user)) -> List[AddressRead]:
    return await AddressService.list_addresses(current_user["user_id"])


@router.post("/addresses", response_model=AddressRead, status_code=status.HTTP_201_CREATED)
async def create_address(data: AddressCreate, current_user: dict = Depends(get_current_user)) -> AddressRead:
    """Add an address.  The first address of a user becomes the default."""
    return await AddressService.create_address(current_user["user_id"], data)


@router.put("/addresses/{address_id}", response_model=AddressRead)
async def update_address(
    address_id: int,
    data: AddressUpdate,
    current_user: dict = Depends(get_current_user),
) -> AddressRead:
    return await AddressService.update_address(current_user["user_id"], address_id, data)


@router.delete("/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(address_id: int, current_user: dict = Depends(get_current_user)) -> Response:
    """Delete an address.

    Addresses referenced by a booking are kept so the booking keeps its
    location; such deletes are refused.
    """
    await AddressService.delete_address(current_user["user_id"], address_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
