from nestery.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    BookingSearch,
    BookingResponse,
    BookingListResponse,
    BookingDeleteResponse,
)

__all__ = [
    "BookingCreate", "BookingUpdate", "BookingSearch",
    "BookingResponse", "BookingListResponse", "BookingDeleteResponse",
]
