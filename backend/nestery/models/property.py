"""
Bookable property. Read-only from the booking engine's point of view.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String

from nestery.db.base import Base, TimestampMixin


class Property(Base, TimestampMixin):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)  # per night
    currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_property_base_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name}, price={self.base_price} {self.currency})>"
