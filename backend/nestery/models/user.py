"""
User account as seen by the booking engine.

Only the loyalty balance and premium flag matter here; the balance is
changed exclusively through signed deltas (see user_service).
"""

from sqlalchemy import Boolean, Column, Integer, String

from nestery.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # user, admin
    is_premium = Column(Boolean, nullable=False, default=False)
    # No CHECK >= 0: cancellation reversal may legitimately drive it negative
    loyalty_points = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, points={self.loyalty_points})>"
