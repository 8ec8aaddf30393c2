"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field

from nestery.models.booking import BookingStatus


class BookingCreate(BaseModel):
    property_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(..., ge=1)
    special_requests: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    loyalty_points_to_redeem: int = Field(default=0, ge=0)
    is_premium_booking: bool = False
    source_type: Optional[str] = Field(None, max_length=50)
    external_booking_id: Optional[str] = Field(None, max_length=100)
    metadata: Optional[dict[str, Any]] = None


class BookingUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""

    property_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    number_of_guests: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    # Accepted for parity with BookingCreate; has no effect on an existing booking
    loyalty_points_to_redeem: Optional[int] = Field(None, ge=0)
    is_premium_booking: Optional[bool] = None
    source_type: Optional[str] = Field(None, max_length=50)
    external_booking_id: Optional[str] = Field(None, max_length=100)
    metadata: Optional[dict[str, Any]] = None
    status: Optional[BookingStatus] = None
    cancellation_reason: Optional[str] = None


class BookingSearch(BaseModel):
    user_id: Optional[int] = None
    property_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    check_in_date_start: Optional[date] = None
    check_in_date_end: Optional[date] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    property_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    total_price: Decimal
    currency: str
    status: str
    confirmation_code: str
    cancellation_reason: Optional[str] = None
    loyalty_points_earned: int
    loyalty_points_redeemed: int
    is_premium_booking: bool
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None
    source_type: str
    external_booking_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int
    page: int
    limit: int


class BookingDeleteResponse(BaseModel):
    message: str
    booking_id: int
