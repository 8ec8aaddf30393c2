"""
Tests for stay pricing and loyalty-point arithmetic.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestery.core.config import Settings
from nestery.core.exceptions import BadRequestError
from nestery.services.pricing import count_nights, loyalty_discount, points_earned_for, quote

CHECK_IN = date(2025, 6, 15)
CHECK_OUT = date(2025, 6, 20)


def test_count_nights():
    assert count_nights(CHECK_IN, CHECK_OUT) == 5
    assert count_nights(date(2025, 12, 31), date(2026, 1, 1)) == 1


def test_plain_stay_price():
    result = quote(Decimal("100.00"), CHECK_IN, CHECK_OUT)
    assert result.nights == 5
    assert result.total_price == Decimal("500.00")
    assert result.points_earned == 500
    assert result.points_redeemed == 0


def test_premium_discount_needs_premium_user_and_premium_booking():
    both = quote(Decimal("100"), CHECK_IN, CHECK_OUT, is_premium_user=True, is_premium_booking=True)
    assert both.total_price == Decimal("450.00")
    assert both.premium_discount == Decimal("50.00")

    user_only = quote(Decimal("100"), CHECK_IN, CHECK_OUT, is_premium_user=True)
    booking_only = quote(Decimal("100"), CHECK_IN, CHECK_OUT, is_premium_booking=True)
    assert user_only.total_price == Decimal("500.00")
    assert booking_only.total_price == Decimal("500.00")


def test_premium_and_points_worked_example():
    """100/night, 5 nights, premium, 2000 points -> 430 paid, 430 earned."""
    result = quote(
        Decimal("100"),
        CHECK_IN,
        CHECK_OUT,
        is_premium_user=True,
        is_premium_booking=True,
        points_to_redeem=2000,
        available_points=3000,
    )
    assert result.loyalty_discount == Decimal("20.00")
    assert result.total_price == Decimal("430.00")
    assert result.points_earned == 430
    assert result.points_redeemed == 2000


def test_loyalty_discount_capped_at_thirty_percent():
    # 50000 points are worth 500.00 but only 30% of 500.00 may be discounted
    result = quote(
        Decimal("100"),
        CHECK_IN,
        CHECK_OUT,
        points_to_redeem=50000,
        available_points=50000,
    )
    assert result.loyalty_discount == Decimal("150.00")
    assert result.total_price == Decimal("350.00")
    # The whole request is consumed even though only part of its value applied
    assert result.points_redeemed == 50000


def test_redeeming_more_than_balance_is_rejected():
    with pytest.raises(BadRequestError) as exc_info:
        quote(Decimal("100"), CHECK_IN, CHECK_OUT, points_to_redeem=101, available_points=100)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Not enough loyalty points"


def test_points_earned_floors_fractional_totals():
    # 3 nights at 33.33 = 99.99 -> 99 points
    result = quote(Decimal("33.33"), date(2025, 1, 1), date(2025, 1, 4))
    assert result.total_price == Decimal("99.99")
    assert result.points_earned == 99
    assert points_earned_for(Decimal("430.999")) == 430


def test_loyalty_discount_helper():
    settings = Settings()
    assert loyalty_discount(2000, Decimal("450"), settings) == Decimal("20.00")
    assert loyalty_discount(20000, Decimal("450"), settings) == Decimal("135.00")


def test_rates_come_from_settings():
    settings = Settings(PREMIUM_DISCOUNT_RATE=Decimal("0.20"), MAX_LOYALTY_DISCOUNT_RATIO=Decimal("0.10"))
    result = quote(
        Decimal("100"),
        CHECK_IN,
        CHECK_OUT,
        is_premium_user=True,
        is_premium_booking=True,
        points_to_redeem=10000,
        available_points=10000,
        settings=settings,
    )
    # 500 -> 400 after 20% premium, then loyalty capped at 10% of 400
    assert result.total_price == Decimal("360.00")
