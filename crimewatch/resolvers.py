"""Pre-flight resolvers: reporting period, administrative area, neighbourhood boundary.

Each resolver performs at most one upstream request per call and reports the
outcome as a `Resolution`; none of them raise.
"""

from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from crimewatch.app_types import CachedArea, CachedBoundary, CachedPeriod
from crimewatch.data_sources.base import CrimeDataSource
from crimewatch.domain import AdministrativeArea, BoundaryPoint, parse_period
from crimewatch.errors import (
    CrimeDataError,
    FetchCancelled,
    NotDetermined,
    ParseError,
    Resolution,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="resolvers")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _log_failure(stage: str, exc: CrimeDataError) -> None:
    """Cancellation is routine; everything else is an upstream problem worth a warning."""
    if isinstance(exc, FetchCancelled):
        logger.info(f"{stage} cancelled")
        return
    logger.warning(
        f"{stage} failed",
        extra={"kind": exc.kind.value, "status_code": exc.status_code, "error": str(exc)},
    )


class PeriodResolver:
    """Latest month for which police.uk publishes street-level crimes."""

    def __init__(
        self,
        source: CrimeDataSource,
        *,
        ttl_hours: float = 24.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._ttl = timedelta(hours=ttl_hours)
        self._clock = clock
        self._cached: Optional[CachedPeriod] = None

    @property
    def cached(self) -> Optional[CachedPeriod]:
        return self._cached

    def clear(self) -> None:
        self._cached = None

    def _fetch_latest(self, cancel: Optional[threading.Event], force_refresh: bool) -> date:
        available = self._source.fetch_available_periods(cancel=cancel, force_refresh=force_refresh)
        try:
            periods = [parse_period(entry.date) for entry in available]
        except ValueError as exc:
            raise ParseError(f"Unparseable crime month in listing: {exc}") from exc
        if not periods:
            raise NotDetermined("No crime months listed")
        return max(periods)

    def resolve_latest_period(
        self, force_refresh: bool = False, cancel: Optional[threading.Event] = None
    ) -> Resolution[date]:
        """Return the latest period, from cache when it is younger than the TTL.

        On failure the previously cached period (if any) is returned alongside
        the error so callers can keep going with slightly stale data.
        """
        now = self._clock()
        cached = self._cached
        if not force_refresh and cached is not None and now - cached.resolved_at < self._ttl:
            logger.debug("Returning cached crime month", extra={"period": cached.period.isoformat()})
            return Resolution(cached.period)

        try:
            latest = self._fetch_latest(cancel, force_refresh)
        except CrimeDataError as exc:
            _log_failure("Latest crime month lookup", exc)
            return Resolution(cached.period if cached else None, exc)

        self._cached = CachedPeriod(period=latest, resolved_at=now)
        logger.info("Resolved latest crime month", extra={"period": latest.isoformat()})
        return Resolution(latest)


class AreaResolver:
    """Police force and neighbourhood containing a coordinate.

    Only the most recent lookup is remembered, keyed by the exact coordinate,
    so repeated calls for the same fix do not hit the network.
    """

    def __init__(self, source: CrimeDataSource) -> None:
        self._source = source
        self._cached: Optional[CachedArea] = None

    @property
    def cached(self) -> Optional[CachedArea]:
        return self._cached

    def clear(self) -> None:
        self._cached = None

    def resolve_area(
        self,
        latitude: float,
        longitude: float,
        force_refresh: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> Resolution[AdministrativeArea]:
        cached = self._cached
        if not force_refresh and cached is not None and cached.position == (latitude, longitude):
            return Resolution(cached.area)

        try:
            area = self._source.locate_neighbourhood(
                latitude, longitude, cancel=cancel, force_refresh=force_refresh
            )
        except CrimeDataError as exc:
            _log_failure("Neighbourhood lookup", exc)
            return Resolution(None, exc)

        if cached is not None and cached.area != area:
            logger.info(
                "Neighbourhood changed",
                extra={"force": area.force_id, "neighbourhood": area.neighbourhood_id},
            )
        self._cached = CachedArea(position=(latitude, longitude), area=area)
        return Resolution(area)


class BoundaryResolver:
    """Neighbourhood boundary, cached for the neighbourhood it was fetched for."""

    def __init__(self, source: CrimeDataSource) -> None:
        self._source = source
        self._cached: Optional[CachedBoundary] = None

    @property
    def cached(self) -> Optional[CachedBoundary]:
        return self._cached

    def clear(self) -> None:
        self._cached = None

    def resolve_boundary(
        self,
        force_id: str,
        neighbourhood_id: str,
        force_refresh: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> Resolution[List[BoundaryPoint]]:
        """Return boundary points; an empty list and None both mean unavailable."""
        cached = self._cached
        if not force_refresh and cached is not None and cached.neighbourhood_id == neighbourhood_id:
            logger.debug("Returning cached neighbourhood boundary", extra={"neighbourhood": neighbourhood_id})
            return Resolution(cached.points)

        try:
            points = self._source.fetch_boundary(
                force_id, neighbourhood_id, cancel=cancel, force_refresh=force_refresh
            )
        except FetchCancelled as exc:
            _log_failure("Boundary lookup", exc)
            return Resolution(None, exc)
        except CrimeDataError as exc:
            _log_failure("Boundary lookup", exc)
            self.clear()
            return Resolution(None, exc)

        if not points:
            logger.warning("Boundary lookup returned no points", extra={"neighbourhood": neighbourhood_id})
            self.clear()
            return Resolution([], NotDetermined(f"Empty boundary for {force_id}/{neighbourhood_id}"))

        self._cached = CachedBoundary(neighbourhood_id=neighbourhood_id, points=list(points))
        logger.info(
            "Fetched neighbourhood boundary",
            extra={"neighbourhood": neighbourhood_id, "points": len(points)},
        )
        return Resolution(self._cached.points)
