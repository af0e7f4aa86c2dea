"""
Pydantic models for user accounts and authentication.

Registration comes in three flavours (customer, vendor, beautician)
which share the ``UserCreate`` fields.  Passwords are accepted on
input only and never returned.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class UserBase(BaseModel):
    email: str = Field(..., example="jane@example.com")
    first_name: str = Field(..., min_length=1, max_length=100, example="Jane")
    last_name: str = Field(..., min_length=1, max_length=100, example="Mbuyi")
    phone: Optional[str] = Field(None, max_length=32, example="+243 810 000 000")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v


class UserCreate(UserBase):
    """Schema for registering a user.

    ``role`` is only honoured by the generic ``/auth/register`` route;
    staff roles (ADMIN, MANAGER) can never be self‑assigned.
    """

    password: str = Field(..., min_length=6, example="Secret@123")
    role: Optional[str] = Field(None, example="CUSTOMER")


class VendorRegister(UserCreate):
    """Schema for registering a vendor account with its shop profile."""

    shop_name: str = Field(..., min_length=1, max_length=200, example="Elegant Beauty Salon")
    description: Optional[str] = None
    address: Optional[str] = Field(None, example="123 Boulevard du 30 Juin")
    city: Optional[str] = Field(None, example="Kinshasa")
    state: Optional[str] = None
    zip_code: Optional[str] = None
    business_type: Optional[str] = Field(None, example="salon")
    years_in_business: Optional[int] = Field(None, ge=0)
    number_of_employees: Optional[int] = Field(None, ge=0)
    services_offered: List[str] = Field(default_factory=list)


class BeauticianRegister(UserCreate):
    """Schema for registering a beautician account."""

    skills: List[str] = Field(default_factory=list, example=["braiding", "makeup"])
    experience: int = Field(0, ge=0, description="Years of experience")
    certifications: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    vendor_id: Optional[int] = Field(None, description="Salon the beautician works for")


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role_id: int
    role: str
    status: str
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(BaseModel):
    refresh_token: str


class AuthResponse(BaseModel):
    """Tokens issued at login, registration or refresh."""

    user: UserRead
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    dashboard_path: str


class CurrentUser(UserRead):
    dashboard_path: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    avatar: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)
