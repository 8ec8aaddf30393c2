from nestery.models.user import User
from nestery.models.property import Property
from nestery.models.booking import Booking, BookingStatus

__all__ = ["User", "Property", "Booking", "BookingStatus"]
