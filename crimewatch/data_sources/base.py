"""Interface for anything that can answer the police.uk queries the report service needs."""

from __future__ import annotations

import threading
from typing import List, Optional, Protocol, Sequence

from crimewatch.domain import AdministrativeArea, AvailablePeriod, BoundaryPoint, CrimeIncident


class CrimeDataSource(Protocol):
    """The HTTP requester collaborator of the report service.

    Implementations raise `crimewatch.errors.CrimeDataError` subclasses on
    failure and `FetchCancelled` when `cancel` is set.
    """

    def fetch_available_periods(
        self, *, cancel: Optional[threading.Event] = None, force_refresh: bool = False
    ) -> List[AvailablePeriod]:
        """Return every month for which street-level data is published."""
        ...

    def locate_neighbourhood(
        self,
        latitude: float,
        longitude: float,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> AdministrativeArea:
        """Return the force and neighbourhood containing a coordinate."""
        ...

    def fetch_boundary(
        self,
        force_id: str,
        neighbourhood_id: str,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[BoundaryPoint]:
        """Return the ordered boundary vertices of a neighbourhood."""
        ...

    def fetch_crimes_at_location(
        self,
        period: str,
        latitude: float,
        longitude: float,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[CrimeIncident]:
        """Return crimes snapped to the street point nearest a coordinate."""
        ...

    def fetch_crimes_in_polygon(
        self,
        period: str,
        polygon: Sequence[BoundaryPoint],
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[CrimeIncident]:
        """Return crimes inside a polygon."""
        ...
