"""
Interleaved requests against the same rows, each on its own session.

SQLite serialises writers, so every session commits its write before the
next one writes; the interleaving is in what each session read earlier.
"""

from datetime import date

import pytest

from nestery.core.exceptions import BadRequestError
from nestery.models.booking import BookingStatus
from nestery.schemas.booking import BookingCreate, BookingSearch, BookingUpdate
from nestery.services.booking_service import create_booking, search_bookings, update_booking
from nestery.services.user_service import add_loyalty_points, get_user, redeem_loyalty_points


def _request(prop, check_in, check_out) -> BookingCreate:
    return BookingCreate(
        property_id=prop.id,
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_guests=2,
    )


@pytest.mark.asyncio
async def test_point_deltas_from_stale_reads_are_not_lost(session_factory, test_user):
    async with session_factory() as first, session_factory() as second:
        # Both requests start from the same balance
        assert (await get_user(first, test_user.id)).loyalty_points == 5000
        assert (await get_user(second, test_user.id)).loyalty_points == 5000

        await add_loyalty_points(first, test_user.id, 430)
        await first.commit()
        await add_loyalty_points(second, test_user.id, -2000)
        await second.commit()

    async with session_factory() as check:
        assert (await get_user(check, test_user.id)).loyalty_points == 3430


@pytest.mark.asyncio
async def test_second_redemption_cannot_overspend(session_factory, test_user):
    async with session_factory() as first, session_factory() as second:
        assert (await get_user(first, test_user.id)).loyalty_points == 5000
        assert (await get_user(second, test_user.id)).loyalty_points == 5000

        assert await redeem_loyalty_points(first, test_user.id, 3000) == 2000
        await first.commit()
        with pytest.raises(BadRequestError, match="Not enough loyalty points"):
            await redeem_loyalty_points(second, test_user.id, 3000)
        await second.rollback()

    async with session_factory() as check:
        assert (await get_user(check, test_user.id)).loyalty_points == 2000


@pytest.mark.asyncio
async def test_overlapping_pending_bookings_can_both_be_confirmed(
    session_factory, test_user, other_user, test_property
):
    """
    Known gap: only confirmed bookings block availability and confirming
    does not re-check it, so two overlapping requests that both pass the
    check while pending can both be confirmed afterwards.
    """
    async with session_factory() as first, session_factory() as second:
        ours = await create_booking(
            first, test_user.id, _request(test_property, date(2025, 6, 15), date(2025, 6, 20))
        )
        await first.commit()
        theirs = await create_booking(
            second, other_user.id, _request(test_property, date(2025, 6, 17), date(2025, 6, 22))
        )
        await second.commit()

        await update_booking(first, ours.id, BookingUpdate(status=BookingStatus.CONFIRMED))
        await first.commit()
        # Confirming the second booking is not checked against the first
        await update_booking(second, theirs.id, BookingUpdate(status=BookingStatus.CONFIRMED))
        await second.commit()

    async with session_factory() as check:
        _, total = await search_bookings(
            check,
            BookingSearch(property_id=test_property.id, status=BookingStatus.CONFIRMED),
        )
        assert total == 2

        # From here on the confirmed stays do block new requests
        with pytest.raises(BadRequestError):
            await create_booking(
                check, test_user.id, _request(test_property, date(2025, 6, 18), date(2025, 6, 19))
            )
