"""
Booking lifecycle engine: creation, pricing, loyalty settlement and status changes.

CREATE FLOW
===========

  1. Resolve the user and the property (404 if either is missing)
  2. Reject stays whose check-out is not after check-in
  3. Reject the stay if any *confirmed* booking of the property intersects it:
       existing.check_in <= new.check_out AND existing.check_out >= new.check_in
     The bounds are inclusive, so a stay starting on another stay's check-out
     day also conflicts. Pending, cancelled and completed bookings never block.
  4. Price the stay (see pricing.py) and settle loyalty points:
       debit the redeemed points, persist the booking as "pending",
       credit the points earned on the final price

CANCELLATION
============

  Moving a booking to "cancelled" needs a reason and reverses its points:
  redeemed points are credited back, earned points are debited. The debit
  can take a balance below zero if the user already spent those points;
  that is accepted best-effort accounting, not a strict ledger.

  "cancelled" and "completed" are terminal: an update that would move a
  booking out of either is rejected, so a booking's points are reversed at
  most once. Between pending and confirmed any direction is allowed.
  Updates do not re-run the availability check.

CONCURRENCY
===========

  Everything runs on the request's AsyncSession and only flushes; the
  session dependency commits at the end of the request or rolls back on
  error, so the point debit, the booking row and the point credit of one
  request are a single transaction.

  - Loyalty deltas are one relative UPDATE each (user_service), so two
    concurrent bookings of the same user cannot lose an update.
  - The balance check in pricing reads a possibly stale balance; the debit
    itself is a conditional UPDATE (loyalty_points >= n), so two concurrent
    redemptions cannot both spend the same points.
  - The property row is read with SELECT ... FOR UPDATE before the
    availability check, serialising concurrent creates for one property on
    PostgreSQL. SQLite ignores the clause. Independently of the database,
    only confirmed bookings block and confirming does not re-check, so two
    overlapping pending bookings can both end up confirmed.
"""

import random
import time
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nestery.core.config import get_settings
from nestery.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from nestery.core.logging import get_logger
from nestery.core.metrics import (
    booking_cancellations,
    booking_latency,
    record_booking_attempt,
    record_loyalty_points,
)
from nestery.models.booking import Booking, BookingStatus
from nestery.schemas.booking import BookingCreate, BookingSearch, BookingUpdate
from nestery.services import pricing
from nestery.services.property_service import get_property
from nestery.services.user_service import add_loyalty_points, get_user, redeem_loyalty_points

logger = get_logger(__name__)

# Statuses a booking can never leave
TERMINAL_STATUSES = {BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value}

# Columns an update may never set to NULL
NON_NULLABLE_FIELDS = {
    "property_id",
    "check_in_date",
    "check_out_date",
    "number_of_guests",
    "is_premium_booking",
    "source_type",
    "status",
}


def generate_confirmation_code() -> str:
    """
    Human-facing code: PREFIX-<last 6 digits of epoch millis>-<4 random digits>.
    Not checked for collisions; it is a display code, not a secret.
    """
    prefix = get_settings().CONFIRMATION_CODE_PREFIX
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = random.randint(0, 9999)
    return f"{prefix}-{timestamp}-{suffix:04d}"


async def find_conflicting_booking(
    db: AsyncSession,
    property_id: int,
    check_in: date,
    check_out: date,
) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(
            Booking.property_id == property_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.check_in_date <= check_out,
            Booking.check_out_date >= check_in,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_booking(db: AsyncSession, user_id: int, data: BookingCreate) -> Booking:
    """Validate, price and persist a new pending booking."""
    with booking_latency.time():
        try:
            booking = await _create_booking(db, user_id, data)
        except HTTPException:
            record_booking_attempt("rejected")
            raise
        except Exception:
            record_booking_attempt("error")
            raise

    record_booking_attempt("success")
    return booking


async def _create_booking(db: AsyncSession, user_id: int, data: BookingCreate) -> Booking:
    settings = get_settings()

    user = await get_user(db, user_id)
    prop = await get_property(db, data.property_id, for_update=True)

    if data.check_in_date >= data.check_out_date:
        raise BadRequestError("Check-out date must be after check-in date")

    conflict = await find_conflicting_booking(
        db, data.property_id, data.check_in_date, data.check_out_date
    )
    if conflict:
        logger.warning(
            "booking_failed_unavailable",
            property_id=data.property_id,
            check_in=str(data.check_in_date),
            check_out=str(data.check_out_date),
            conflicting_booking_id=conflict.id,
        )
        raise BadRequestError("Property is not available for the selected dates")

    try:
        quote = pricing.quote(
            prop.base_price,
            data.check_in_date,
            data.check_out_date,
            is_premium_user=user.is_premium,
            is_premium_booking=data.is_premium_booking,
            points_to_redeem=data.loyalty_points_to_redeem,
            available_points=user.loyalty_points,
            settings=settings,
        )
    except BadRequestError:
        logger.warning(
            "booking_failed_insufficient_points",
            user_id=user_id,
            requested=data.loyalty_points_to_redeem,
            available=user.loyalty_points,
        )
        raise

    if quote.points_redeemed > 0:
        await redeem_loyalty_points(db, user_id, quote.points_redeemed)
        record_loyalty_points("redeemed", quote.points_redeemed)

    booking = Booking(
        user_id=user_id,
        property_id=data.property_id,
        check_in_date=data.check_in_date,
        check_out_date=data.check_out_date,
        number_of_guests=data.number_of_guests,
        total_price=quote.total_price,
        currency=prop.currency,
        status=BookingStatus.PENDING.value,
        confirmation_code=generate_confirmation_code(),
        special_requests=data.special_requests,
        payment_method=data.payment_method,
        is_premium_booking=data.is_premium_booking,
        loyalty_points_earned=quote.points_earned,
        loyalty_points_redeemed=quote.points_redeemed,
        source_type=data.source_type or settings.DEFAULT_SOURCE_TYPE,
        external_booking_id=data.external_booking_id,
        extra_metadata=data.metadata,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    if quote.points_earned > 0:
        await add_loyalty_points(db, user_id, quote.points_earned)
        record_loyalty_points("earned", quote.points_earned)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        property_id=data.property_id,
        nights=quote.nights,
        base_total=str(quote.base_total),
        premium_discount=str(quote.premium_discount),
        loyalty_discount=str(quote.loyalty_discount),
        total_price=str(quote.total_price),
        points_redeemed=quote.points_redeemed,
        points_earned=quote.points_earned,
        confirmation_code=booking.confirmation_code,
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError(f"Booking with ID {booking_id} not found")
    return booking


async def _paginate(db: AsyncSession, query, order_by, page: int, limit: int) -> tuple[list[Booking], int]:
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query.order_by(*order_by).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def list_bookings(db: AsyncSession, page: int = 1, limit: int = 10) -> tuple[list[Booking], int]:
    """All bookings, newest first."""
    return await _paginate(
        db,
        select(Booking),
        (Booking.created_at.desc(), Booking.id.desc()),
        page,
        limit,
    )


async def list_user_bookings(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Booking], int]:
    """One user's bookings, newest first."""
    return await _paginate(
        db,
        select(Booking).where(Booking.user_id == user_id),
        (Booking.created_at.desc(), Booking.id.desc()),
        page,
        limit,
    )


async def search_bookings(db: AsyncSession, filters: BookingSearch) -> tuple[list[Booking], int]:
    """
    Filter by user, property, status and an inclusive check-in window
    (either bound may be omitted). Ordered by check-in date ascending.
    """
    query = select(Booking)

    if filters.user_id is not None:
        query = query.where(Booking.user_id == filters.user_id)
    if filters.property_id is not None:
        query = query.where(Booking.property_id == filters.property_id)
    if filters.status is not None:
        query = query.where(Booking.status == filters.status.value)
    if filters.check_in_date_start is not None:
        query = query.where(Booking.check_in_date >= filters.check_in_date_start)
    if filters.check_in_date_end is not None:
        query = query.where(Booking.check_in_date <= filters.check_in_date_end)

    return await _paginate(
        db,
        query,
        (Booking.check_in_date.asc(), Booking.id.asc()),
        filters.page,
        filters.limit,
    )


async def _reverse_loyalty_points(db: AsyncSession, booking: Booking) -> None:
    if booking.loyalty_points_redeemed > 0:
        await add_loyalty_points(db, booking.user_id, booking.loyalty_points_redeemed)
        record_loyalty_points("reversed_redeemed", booking.loyalty_points_redeemed)

    if booking.loyalty_points_earned > 0:
        await add_loyalty_points(db, booking.user_id, -booking.loyalty_points_earned)
        record_loyalty_points("reversed_earned", booking.loyalty_points_earned)


async def update_booking(
    db: AsyncSession,
    booking_id: int,
    patch: BookingUpdate,
    acting_user_id: Optional[int] = None,
) -> Booking:
    """
    Apply a partial update. When acting_user_id is given the booking must
    belong to that user. Cancelling requires a reason and reverses points.
    """
    booking = await get_booking(db, booking_id)

    if acting_user_id is not None and booking.user_id != acting_user_id:
        logger.warning(
            "booking_update_forbidden",
            booking_id=booking_id,
            owner_id=booking.user_id,
            acting_user_id=acting_user_id,
        )
        raise ForbiddenError("You do not have permission to update this booking")

    changes = patch.model_dump(exclude_unset=True)
    # Redemption only happens at creation time
    changes.pop("loyalty_points_to_redeem", None)
    for field in NON_NULLABLE_FIELDS:
        if field in changes and changes[field] is None:
            del changes[field]

    if "status" in changes:
        changes["status"] = BookingStatus(changes["status"]).value
    if "metadata" in changes:
        changes["extra_metadata"] = changes.pop("metadata")

    previous_status = booking.status
    new_status = changes.get("status", previous_status)

    if previous_status in TERMINAL_STATUSES and new_status != previous_status:
        logger.warning(
            "booking_transition_rejected",
            booking_id=booking_id,
            previous_status=previous_status,
            requested_status=new_status,
        )
        raise BadRequestError(f"Cannot change the status of a {previous_status} booking")

    cancelling = (
        new_status == BookingStatus.CANCELLED.value
        and previous_status != BookingStatus.CANCELLED.value
    )

    if new_status == BookingStatus.CANCELLED.value:
        reason = (changes.get("cancellation_reason") or "").strip()
        if cancelling and not reason:
            raise BadRequestError("Cancellation reason is required")
        # A cancelled booking always keeps a reason
        if reason:
            changes["cancellation_reason"] = reason
        else:
            changes.pop("cancellation_reason", None)
    else:
        changes.pop("cancellation_reason", None)

    check_in = changes.get("check_in_date", booking.check_in_date)
    check_out = changes.get("check_out_date", booking.check_out_date)
    if check_in >= check_out:
        raise BadRequestError("Check-out date must be after check-in date")

    if cancelling:
        await _reverse_loyalty_points(db, booking)
        booking_cancellations.inc()

    for field, value in changes.items():
        setattr(booking, field, value)

    await db.flush()
    await db.refresh(booking)

    if cancelling:
        logger.info(
            "booking_cancelled",
            booking_id=booking.id,
            user_id=booking.user_id,
            previous_status=previous_status,
            points_restored=booking.loyalty_points_redeemed,
            points_revoked=booking.loyalty_points_earned,
        )
    else:
        logger.info(
            "booking_updated",
            booking_id=booking.id,
            previous_status=previous_status,
            status=booking.status,
            fields=sorted(changes),
        )
    return booking


async def remove_booking(db: AsyncSession, booking_id: int) -> None:
    """Hard delete; there is no soft-delete state."""
    result = await db.execute(delete(Booking).where(Booking.id == booking_id))
    if result.rowcount == 0:
        raise NotFoundError(f"Booking with ID {booking_id} not found")

    logger.info("booking_deleted", booking_id=booking_id)
