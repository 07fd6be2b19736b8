from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class IncidentType(str, Enum):
    SUSPICIOUS = "suspicious"
    THEFT = "theft"
    VANDALISM = "vandalism"
    ASSAULT = "assault"
    NOISE = "noise"
    EMERGENCY = "emergency"
    ROAD_HAZARD = "road_hazard"
    OTHER = "other"


class IncidentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StatusFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def format_coordinates(point: LatLng) -> str:
    return f"{point.lat:.6f}, {point.lng:.6f}"


# Payload coming FROM the report form (keep these names exactly)
class IncidentIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: IncidentType = Field(..., description="Type of incident (lowercase)")
    title: str = Field(..., min_length=1, description="Short summary")
    description: str = Field(..., min_length=1, description="What happened")
    location: str = Field("", description="Street address or intersection")
    coordinates: Optional[LatLng] = Field(
        None, description="Point picked on the map; used when location is left blank"
    )

    @model_validator(mode="after")
    def _fill_location(self) -> "IncidentIn":
        if not self.location and self.coordinates is not None:
            self.location = format_coordinates(self.coordinates)
        if not self.location:
            raise ValueError("location must not be empty")
        return self


class Incident(BaseModel):
    id: str
    user_id: str
    type: IncidentType
    title: str
    description: str
    location: str
    status: IncidentStatus = IncidentStatus.PENDING
    created_at: datetime
    updated_at: datetime


class StatusUpdate(BaseModel):
    status: IncidentStatus


class BulkDeleteIn(BaseModel):
    ids: List[str] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    deleted_count: int


class IncidentPage(BaseModel):
    rows: List[Incident]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0
