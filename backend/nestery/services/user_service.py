"""
User account operations needed by the booking engine.

Loyalty balance changes are applied as a single relative UPDATE
(loyalty_points = loyalty_points + delta) instead of read-modify-write,
so concurrent bookings for the same user cannot lose an update. The
delta semantics are unchanged: debits are negative, and nothing stops a
reversal from taking the balance below zero.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nestery.core.exceptions import BadRequestError, NotFoundError
from nestery.core.logging import get_logger
from nestery.models.user import User

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def add_loyalty_points(db: AsyncSession, user_id: int, delta: int) -> int:
    """Apply a signed loyalty-point delta and return the new balance."""
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(loyalty_points=User.loyalty_points + delta)
        .returning(User.loyalty_points)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError(f"User with ID {user_id} not found")

    logger.info("loyalty_points_applied", user_id=user_id, delta=delta, balance=balance)
    return balance


async def redeem_loyalty_points(db: AsyncSession, user_id: int, points: int) -> int:
    """
    Debit points only if the current balance covers them and return the new
    balance. The condition is evaluated by the database, so a balance read
    earlier in the request may be stale without allowing over-redemption.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.loyalty_points >= points)
        .values(loyalty_points=User.loyalty_points - points)
        .returning(User.loyalty_points)
        # Sync only rows the database actually changed, not a stale in-memory match
        .execution_options(synchronize_session="fetch")
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        logger.warning("loyalty_redemption_rejected", user_id=user_id, requested=points)
        raise BadRequestError("Not enough loyalty points")

    logger.info("loyalty_points_applied", user_id=user_id, delta=-points, balance=balance)
    return balance
