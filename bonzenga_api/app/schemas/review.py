"""
Pydantic schemas for service reviews.

Customers may review a service once, after a completed booking that
included it.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    """Schema for creating a new review."""

    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional textual comment")

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 1000:
            raise ValueError("Comment must be 1000 characters or fewer")
        return v or None


class ReviewRead(BaseModel):
    """Schema for reading a review from the API."""

    id: int
    service_id: int
    vendor_id: int
    customer_id: int
    customer_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: str
