"""
Booking endpoints. Thin adapter over the booking engine: authentication,
ownership checks for reads, response shaping and cache invalidation.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from nestery.core.exceptions import ForbiddenError
from nestery.core.logging import get_logger
from nestery.core.security import CurrentUser, get_current_user, require_admin
from nestery.db.session import get_db
from nestery.models.booking import BookingStatus
from nestery.schemas.booking import (
    BookingCreate,
    BookingDeleteResponse,
    BookingListResponse,
    BookingResponse,
    BookingSearch,
    BookingUpdate,
)
from nestery.services.booking_service import (
    create_booking,
    get_booking,
    list_bookings,
    list_user_bookings,
    remove_booking,
    search_bookings,
    update_booking,
)
from nestery.services.cache_service import (
    get_cached_user_bookings,
    invalidate_user_bookings,
    set_cached_user_bookings,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _list_response(bookings, total: int, page: int, limit: int) -> BookingListResponse:
    return BookingListResponse(
        items=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a property for the authenticated user.

    The booking starts as "pending". Loyalty points are redeemed and
    earned as part of the same request.
    """
    booking = await create_booking(db, user.id, booking_data)
    await invalidate_user_bookings(user.id)
    return booking


@router.get("/", response_model=BookingListResponse)
async def list_bookings_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List all bookings, newest first (admin only)."""
    bookings, total = await list_bookings(db, page, limit)
    return _list_response(bookings, total, page, limit)


@router.get("/search", response_model=BookingListResponse)
async def search_bookings_endpoint(
    user_id: Optional[int] = Query(None),
    property_id: Optional[int] = Query(None),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    check_in_date_start: Optional[date] = Query(None),
    check_in_date_end: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Search bookings by owner, property, status and check-in window (admin only)."""
    filters = BookingSearch(
        user_id=user_id,
        property_id=property_id,
        status=booking_status,
        check_in_date_start=check_in_date_start,
        check_in_date_end=check_in_date_end,
        page=page,
        limit=limit,
    )
    bookings, total = await search_bookings(db, filters)
    return _list_response(bookings, total, page, limit)


@router.get("/me", response_model=BookingListResponse)
async def list_my_bookings_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List the authenticated user's bookings, newest first.
    Cached in Redis per user and page; any write to the user's bookings
    invalidates the cache.
    """
    cached = await get_cached_user_bookings(user.id, page, limit)
    if cached:
        logger.info("my_bookings_cache_hit", user_id=user.id, page=page)
        return BookingListResponse(**cached)

    bookings, total = await list_user_bookings(db, user.id, page, limit)
    response = _list_response(bookings, total, page, limit)

    await set_cached_user_bookings(user.id, page, limit, response.model_dump(mode="json"))
    return response


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a booking. Users see their own bookings; admins see all."""
    booking = await get_booking(db, booking_id)
    if booking.user_id != user.id and not user.is_admin:
        raise ForbiddenError("You do not have permission to access this booking")
    return booking


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking_endpoint(
    booking_id: int,
    booking_data: BookingUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a booking. Admins may update any booking, users only their own.
    Setting status to "cancelled" requires cancellation_reason and reverses
    the booking's loyalty points.
    """
    acting_user_id = None if user.is_admin else user.id
    booking = await update_booking(db, booking_id, booking_data, acting_user_id)
    await invalidate_user_bookings(booking.user_id)
    return booking


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking_endpoint(
    booking_id: int,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a booking (admin only)."""
    booking = await get_booking(db, booking_id)
    owner_id = booking.user_id
    await remove_booking(db, booking_id)
    await invalidate_user_bookings(owner_id)
    return BookingDeleteResponse(message="Booking deleted successfully", booking_id=booking_id)
