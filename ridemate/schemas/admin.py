from typing import List, Optional

from pydantic import Field

from .booking import BookingResponse
from .common import CamelModel
from .trip import TripResponse


class TripApproveRequest(CamelModel):
    admin_remarks: Optional[str] = Field(None, max_length=500)


class TripRejectRequest(CamelModel):
    admin_remarks: str = Field(..., min_length=1, max_length=500)


class PageMeta(CamelModel):
    total: int
    total_pages: int
    current_page: int


class AdminTripList(PageMeta):
    trips: List[TripResponse]


class AdminBookingList(PageMeta):
    bookings: List[BookingResponse]


class AdminTripDetail(CamelModel):
    trip: TripResponse
    bookings: List[BookingResponse]


class AdminTripReviewResponse(CamelModel):
    message: str
    trip: TripResponse
