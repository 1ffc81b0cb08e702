"""Domain vocabulary and schemas for police.uk crime reports.

Wire models mirror the data.police.uk JSON closely enough to drive caching
and simple summaries; fields the service never looks at are ignored rather
than rejected so upstream additions do not break parsing.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PERIOD_FORMAT = "%Y-%m"


class Granularity(str, Enum):
    """Spatial precision at which crime data is requested and cached."""
    STREET = "street"
    NEIGHBOURHOOD = "neighbourhood"
    FORCE = "force"


class _WireModel(BaseModel):
    """Immutable model that tolerates unknown upstream fields."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


def _numbers_to_str(value):
    """police.uk sends coordinates as strings; accept bare numbers too."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class AvailablePeriod(_WireModel):
    """One entry of /crimes-street-dates."""
    date: str


class AdministrativeArea(_WireModel):
    """Police force and neighbourhood that contain a coordinate."""
    force_id: str = Field(alias="force", min_length=1)
    neighbourhood_id: str = Field(alias="neighbourhood", min_length=1)


class BoundaryPoint(_WireModel):
    """One vertex of a neighbourhood boundary, kept in upstream string form."""
    latitude: str
    longitude: str

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_numbers(cls, value):
        return _numbers_to_str(value)

    def as_floats(self) -> tuple[float, float]:
        return float(self.latitude), float(self.longitude)


class Street(_WireModel):
    id: Optional[int] = None
    name: Optional[str] = None


class IncidentLocation(_WireModel):
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    street: Optional[Street] = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_numbers(cls, value):
        return _numbers_to_str(value)


class OutcomeStatus(_WireModel):
    category: Optional[str] = None
    date: Optional[str] = None


class CrimeIncident(_WireModel):
    """A single street-level crime as returned by police.uk."""
    category: Optional[str] = None
    location_type: Optional[str] = None
    location: Optional[IncidentLocation] = None
    context: Optional[str] = None
    outcome_status: Optional[OutcomeStatus] = None
    persistent_id: Optional[str] = None
    id: Optional[int] = None
    location_subtype: Optional[str] = None
    month: Optional[str] = None


class CrimeReport(_WireModel):
    """Result of one fetch cycle. Never mutated after construction."""
    summary: str = "No data available."
    crime_count: int = 0
    data_month: Optional[date] = None
    granularity: Optional[Granularity] = None
    area_identifier: Optional[str] = None
    incidents: List[CrimeIncident] = Field(default_factory=list)

    @property
    def period(self) -> Optional[str]:
        """Reporting period in wire form, or None for placeholder reports."""
        return format_period(self.data_month) if self.data_month else None


def parse_period(value: str) -> date:
    """Parse a 'YYYY-MM' string into the first day of that month."""
    return datetime.strptime(value, PERIOD_FORMAT).date()


def format_period(value: date) -> str:
    """Format a reporting period as 'YYYY-MM'."""
    return value.strftime(PERIOD_FORMAT)


def month_label(value: date) -> str:
    """Human-readable period, e.g. 'March 2024'."""
    return value.strftime("%B %Y")
