"""Cache-state dataclasses owned by the resolvers and the report service."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple

from crimewatch.domain import AdministrativeArea, BoundaryPoint, CrimeReport


@dataclass
class CachedPeriod:
    """Latest reporting period with the time it was resolved."""
    period: date
    resolved_at: datetime


@dataclass
class CachedArea:
    """Area resolved for an exact coordinate."""
    position: Tuple[float, float]
    area: AdministrativeArea


@dataclass
class CachedBoundary:
    """Boundary points and the neighbourhood they belong to."""
    neighbourhood_id: str
    points: List[BoundaryPoint]


@dataclass
class FetchMarkers:
    """Where and for which area each granularity last issued an incident fetch."""
    street_position: Optional[Tuple[float, float]] = None
    force_id: Optional[str] = None
    neighbourhood_id: Optional[str] = None
    force_radius_position: Optional[Tuple[float, float]] = None


@dataclass
class ReportCacheState:
    """Report and fetch markers; reset whenever the granularity changes."""
    markers: FetchMarkers = field(default_factory=FetchMarkers)
    last_report: Optional[CrimeReport] = None
