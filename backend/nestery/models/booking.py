"""
Booking model representing one reservation of a property.

Key design decisions:
- Index on (property_id, status) serves the availability check, which only
  looks at confirmed bookings of one property
- Index on check_in_date for range searches
- Status is a plain string guarded by a CHECK constraint; the engine does not
  enforce a transition table
- Deletion is a hard delete, there is no tombstone
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)

from nestery.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    number_of_guests = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    confirmation_code = Column(String(50), nullable=False)
    cancellation_reason = Column(Text, nullable=True)
    loyalty_points_earned = Column(Integer, nullable=False, default=0)
    loyalty_points_redeemed = Column(Integer, nullable=False, default=0)
    is_premium_booking = Column(Boolean, nullable=False, default=False)
    special_requests = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    source_type = Column(String(50), nullable=False, default="direct")
    external_booking_id = Column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="check_booking_dates_ordered"),
        CheckConstraint("number_of_guests > 0", name="check_booking_guests_positive"),
        CheckConstraint("total_price >= 0", name="check_booking_total_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
        Index("ix_bookings_property_status", "property_id", "status"),
        Index("ix_bookings_check_in_date", "check_in_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user={self.user_id}, property={self.property_id}, "
            f"status={self.status}, code={self.confirmation_code})>"
        )
