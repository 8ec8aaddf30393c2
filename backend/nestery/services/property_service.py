"""
Property catalog lookups used by the booking engine.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nestery.core.exceptions import NotFoundError
from nestery.models.property import Property


async def get_property(db: AsyncSession, property_id: int, for_update: bool = False) -> Property:
    """
    Get a property by ID.

    With for_update=True the row is locked until the surrounding transaction
    ends, which serialises concurrent bookings of the same property on
    databases that support SELECT ... FOR UPDATE.
    """
    query = select(Property).where(Property.id == property_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    prop = result.scalar_one_or_none()
    if not prop:
        raise NotFoundError("Property not found")
    return prop
