from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Money stays Decimal internally and goes out as a JSON number
Money = Annotated[
    Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")
]


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Point(CamelModel):
    """Pickup/drop location."""

    location: str = Field(..., min_length=1, max_length=200)
    time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    details: Optional[List[ErrorDetail]] = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str


def page_meta(total: int, page: int, limit: int) -> Dict[str, Any]:
    """Pagination fields shared by admin listings."""
    return {
        "total": total,
        "total_pages": (total + limit - 1) // limit if limit else 0,
        "current_page": page,
    }
