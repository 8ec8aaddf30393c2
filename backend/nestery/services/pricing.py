"""
Stay pricing and loyalty-point arithmetic.

PRICING RULES
=============

  nights  = ceil(check_out - check_in, in days)
  total   = base_price * nights
  premium : total *= (1 - PREMIUM_DISCOUNT_RATE)        if the user is premium
                                                          AND asked for a premium booking
  points  : discount = min(points * LOYALTY_POINT_VALUE,
                           total * MAX_LOYALTY_DISCOUNT_RATIO)
            total   -= discount
  earned  = floor(total)                                 1 point per currency unit paid

Worked example: base 100, 5 nights, premium -> 450.00; redeeming 2000
points is worth 20.00, under the 135.00 cap -> 430.00, earning 430 points.

Redemption always consumes the full requested points, even when the 30%
cap means only part of their value was applied. That is the existing
product behaviour and is kept as is.

Everything here is pure: no I/O, no session, so it can be tested directly.
"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Optional

from nestery.core.config import Settings, get_settings
from nestery.core.exceptions import BadRequestError

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    base_total: Decimal
    premium_discount: Decimal
    loyalty_discount: Decimal
    total_price: Decimal
    points_redeemed: int
    points_earned: int


def count_nights(check_in: date, check_out: date) -> int:
    seconds = (check_out - check_in).total_seconds()
    return math.ceil(seconds / 86400)


def loyalty_discount(
    points: int,
    total: Decimal,
    settings: Optional[Settings] = None,
) -> Decimal:
    """Value of redeemed points, capped at a share of the current total."""
    settings = settings or get_settings()
    value = Decimal(points) * settings.LOYALTY_POINT_VALUE
    cap = total * settings.MAX_LOYALTY_DISCOUNT_RATIO
    return min(value, cap)


def points_earned_for(total: Decimal) -> int:
    return int(total.to_integral_value(rounding=ROUND_FLOOR))


def quote(
    base_price: Decimal,
    check_in: date,
    check_out: date,
    *,
    is_premium_user: bool = False,
    is_premium_booking: bool = False,
    points_to_redeem: int = 0,
    available_points: int = 0,
    settings: Optional[Settings] = None,
) -> PriceQuote:
    """
    Price a stay. Raises BadRequestError when more points are requested
    than the user holds.
    """
    settings = settings or get_settings()
    base_price = Decimal(str(base_price))

    nights = count_nights(check_in, check_out)
    base_total = base_price * nights
    total = base_total

    premium_discount = Decimal("0")
    if is_premium_user and is_premium_booking:
        premium_discount = total * settings.PREMIUM_DISCOUNT_RATE
        total -= premium_discount

    applied = Decimal("0")
    points_redeemed = 0
    if points_to_redeem and points_to_redeem > 0:
        if points_to_redeem > available_points:
            raise BadRequestError("Not enough loyalty points")
        applied = loyalty_discount(points_to_redeem, total, settings)
        total -= applied
        points_redeemed = points_to_redeem

    return PriceQuote(
        nights=nights,
        base_total=base_total.quantize(CENTS, rounding=ROUND_HALF_UP),
        premium_discount=premium_discount.quantize(CENTS, rounding=ROUND_HALF_UP),
        loyalty_discount=applied.quantize(CENTS, rounding=ROUND_HALF_UP),
        total_price=total.quantize(CENTS, rounding=ROUND_HALF_UP),
        # Earned from the unrounded amount actually charged
        points_earned=points_earned_for(total),
        points_redeemed=points_redeemed,
    )
