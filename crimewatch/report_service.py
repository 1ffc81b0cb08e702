"""Crime report orchestration: decides when police.uk must be asked again.

A report is built in stages. The latest reporting period and the
force/neighbourhood for the coordinate are resolved first (concurrently);
those cheap lookups gate the expensive incident query. Whether the incident
query is needed depends on the configured granularity:

* street: refetch when the force changes or the position moves more than
  `street_threshold_m`;
* neighbourhood: refetch only when the neighbourhood id changes, movement
  inside the same neighbourhood never matters;
* force: refetch when the force changes or the position moves more than
  `force_radius_km * force_movement_multiplier` metres.

A change of reporting period or an explicit `force_refresh` always refetches.
`get_report` never raises; failures are reported through the summary text.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Tuple

from crimewatch import config
from crimewatch.app_types import FetchMarkers, ReportCacheState
from crimewatch.data_sources import build_data_source
from crimewatch.data_sources.base import CrimeDataSource
from crimewatch.domain import (
    AdministrativeArea,
    BoundaryPoint,
    CrimeIncident,
    CrimeReport,
    Granularity,
    format_period,
    month_label,
)
from crimewatch.errors import CrimeDataError, FetchCancelled, Resolution
from crimewatch.geo import circle_polygon, has_moved_significantly
from crimewatch.resolvers import AreaResolver, BoundaryResolver, PeriodResolver
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="report_service")

DEFAULT_STREET_THRESHOLD_M = 200.0
DEFAULT_FORCE_RADIUS_KM = 1.6
DEFAULT_FORCE_MOVEMENT_MULTIPLIER = 500.0

PERIOD_UNKNOWN_SUMMARY = "Could not determine latest crime data period."
AREA_UNKNOWN_SUMMARY = "Could not determine current police force/neighbourhood."
BOUNDARY_UNAVAILABLE_SUMMARY = "Could not fetch neighbourhood boundary."
CANCELLED_SUMMARY = "Request was cancelled."


def build_summary(crime_count: int, area_identifier: str, period: date) -> str:
    """Headline sentence for a successful fetch."""
    if crime_count > 0:
        return f"{crime_count} crime(s) reported in {area_identifier} for {month_label(period)}."
    return f"No crimes reported in {area_identifier} for {month_label(period)}."


def describe_failure(exc: CrimeDataError) -> str:
    """Summary text for an incident fetch that failed with a known error kind."""
    summary = f"API Error: {type(exc).__name__} - {exc.message.rstrip('.')}."
    if exc.status_code is not None:
        summary += f" (Status: {exc.status_code})"
    return summary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CrimeReportService:
    """Owns every cache and produces one `CrimeReport` per `get_report` call.

    One instance is meant to live for the whole application session. Calls
    are serialized by an instance lock so two callers can never both decide
    that the cache is stale and query police.uk twice.
    """

    def __init__(
        self,
        source: CrimeDataSource,
        *,
        granularity: Granularity = Granularity.NEIGHBOURHOOD,
        force_radius_km: float = DEFAULT_FORCE_RADIUS_KM,
        street_threshold_m: float = DEFAULT_STREET_THRESHOLD_M,
        force_movement_multiplier: float = DEFAULT_FORCE_MOVEMENT_MULTIPLIER,
        period_ttl_hours: float = 24.0,
        log_sink: Optional[Callable[[str], None]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._granularity = granularity
        self._force_radius_km = force_radius_km
        self._street_threshold_m = street_threshold_m
        self._force_movement_multiplier = force_movement_multiplier
        self._log_sink = log_sink

        self._periods = PeriodResolver(source, ttl_hours=period_ttl_hours, clock=clock)
        self._areas = AreaResolver(source)
        self._boundaries = BoundaryResolver(source)
        self._state = ReportCacheState()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, source: CrimeDataSource, settings, *, log_sink=None) -> "CrimeReportService":
        """Build a service with thresholds taken from `crimewatch.config.Settings`."""
        return cls(
            source,
            granularity=settings.default_granularity,
            force_radius_km=settings.force_radius_km,
            street_threshold_m=settings.street_movement_threshold_m,
            force_movement_multiplier=settings.force_movement_multiplier,
            period_ttl_hours=settings.period_ttl_hours,
            log_sink=log_sink,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def granularity(self) -> Granularity:
        return self._granularity

    @property
    def force_radius_km(self) -> float:
        return self._force_radius_km

    @property
    def force_movement_threshold_m(self) -> float:
        return self._force_radius_km * self._force_movement_multiplier

    @property
    def street_threshold_m(self) -> float:
        return self._street_threshold_m

    @property
    def latest_period(self) -> Optional[date]:
        cached = self._periods.cached
        return cached.period if cached else None

    @property
    def last_report(self) -> Optional[CrimeReport]:
        return self._state.last_report

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(self, granularity: Granularity, force_radius_km: Optional[float] = None) -> None:
        """Switch granularity (and force radius); drops report, markers, area and boundary on change.

        The reporting-period cache is kept: it does not depend on granularity.
        """
        granularity = Granularity(granularity)
        with self._lock:
            radius_changed = (
                granularity is Granularity.FORCE
                and force_radius_km is not None
                and force_radius_km != self._force_radius_km
            )
            if granularity is self._granularity and not radius_changed:
                self._log(f"Configuration unchanged: {granularity.value}.")
                return

            self._granularity = granularity
            if radius_changed:
                self._force_radius_km = force_radius_km
            self._state = ReportCacheState()
            self._areas.clear()
            self._boundaries.clear()
            self._log(
                f"Granularity set to {granularity.value}"
                + (f" (radius {self._force_radius_km} km)" if granularity is Granularity.FORCE else "")
                + ". Cached report cleared.",
                logging.INFO,
            )

    def reset(self) -> None:
        """Forget everything, including the reporting period."""
        with self._lock:
            self._state = ReportCacheState()
            self._periods.clear()
            self._areas.clear()
            self._boundaries.clear()
            self._log("All caches cleared.", logging.INFO)

    # ------------------------------------------------------------------
    # Report pipeline
    # ------------------------------------------------------------------

    def get_report(
        self,
        latitude: float,
        longitude: float,
        force_refresh: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> CrimeReport:
        """Return the current report for a coordinate, reusing the cached one when still valid."""
        with self._lock:
            try:
                return self._get_report_locked(latitude, longitude, force_refresh, cancel)
            except Exception as exc:
                logger.exception("Unexpected failure while building crime report")
                return self._fallback(f"An unexpected error ({type(exc).__name__}) occurred.")

    def _get_report_locked(
        self,
        latitude: float,
        longitude: float,
        force_refresh: bool,
        cancel: Optional[threading.Event],
    ) -> CrimeReport:
        self._log(
            f"Report requested at {latitude:.3f}, {longitude:.3f}"
            + (" (forced)" if force_refresh else "")
            + "."
        )
        period_res, area_res = self._resolve_preflight(latitude, longitude, force_refresh, cancel)

        if period_res.cancelled:
            return self._cancelled()
        period = period_res.value
        if period is None:
            self._log("Latest crime month unknown; returning cached or placeholder report.", logging.WARNING)
            return self._fallback(PERIOD_UNKNOWN_SUMMARY)

        needs_fetch = force_refresh
        last = self._state.last_report
        if last is not None and last.data_month != period:
            self._log(f"Crime month moved to {format_period(period)}; refetching.", logging.INFO)
            needs_fetch = True

        if area_res.cancelled:
            return self._cancelled()
        area = area_res.value
        if area is None:
            self._log("Police force/neighbourhood unknown; returning cached or placeholder report.", logging.WARNING)
            return self._fallback(AREA_UNKNOWN_SUMMARY)

        if not needs_fetch:
            needs_fetch = self._is_stale(area, latitude, longitude)
            self._log(f"Staleness check ({self._granularity.value}): needs fetch = {needs_fetch}.")

        if not needs_fetch and last is not None:
            self._log("Returning cached report; no fetch needed.")
            return last

        return self._fetch_report(period, area, latitude, longitude, force_refresh, cancel)

    def _resolve_preflight(
        self,
        latitude: float,
        longitude: float,
        force_refresh: bool,
        cancel: Optional[threading.Event],
    ) -> Tuple[Resolution[date], Resolution[AdministrativeArea]]:
        """Resolve period and area side by side; neither depends on the other."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="crimewatch-preflight") as pool:
            period_future = pool.submit(self._periods.resolve_latest_period, force_refresh, cancel)
            area_future = pool.submit(self._areas.resolve_area, latitude, longitude, force_refresh, cancel)
            return period_future.result(), area_future.result()

    def _is_stale(self, area: AdministrativeArea, latitude: float, longitude: float) -> bool:
        state = self._state
        markers = state.markers
        if state.last_report is None:
            return True

        if self._granularity is Granularity.STREET:
            return (
                area.force_id != markers.force_id
                or markers.street_position is None
                or has_moved_significantly(markers.street_position, (latitude, longitude), self._street_threshold_m)
            )

        if self._granularity is Granularity.NEIGHBOURHOOD:
            return area.neighbourhood_id != markers.neighbourhood_id

        return (
            area.force_id != markers.force_id
            or markers.force_radius_position is None
            or has_moved_significantly(
                markers.force_radius_position, (latitude, longitude), self.force_movement_threshold_m
            )
        )

    def _stamp_markers(self, area: AdministrativeArea, latitude: float, longitude: float) -> None:
        """Record what the incident fetch for the current granularity was issued for."""
        markers: FetchMarkers = self._state.markers
        markers.force_id = area.force_id
        if self._granularity is Granularity.STREET:
            markers.street_position = (latitude, longitude)
        elif self._granularity is Granularity.NEIGHBOURHOOD:
            markers.neighbourhood_id = area.neighbourhood_id
        else:
            markers.force_radius_position = (latitude, longitude)

    def _area_identifier(self, area: AdministrativeArea, latitude: float, longitude: float) -> str:
        if self._granularity is Granularity.STREET:
            return f"Street at {latitude:.3f}, {longitude:.3f}"
        if self._granularity is Granularity.NEIGHBOURHOOD:
            return f"Neighbourhood: {area.neighbourhood_id} (Force: {area.force_id})"
        return f"Force: {area.force_id} (Radius around: {latitude:.3f}, {longitude:.3f})"

    def _force_polygon(self, latitude: float, longitude: float) -> List[BoundaryPoint]:
        return [
            BoundaryPoint(latitude=f"{lat:.6f}", longitude=f"{lon:.6f}")
            for lat, lon in circle_polygon(latitude, longitude, self._force_radius_km)
        ]

    def _fetch_report(
        self,
        period: date,
        area: AdministrativeArea,
        latitude: float,
        longitude: float,
        force_refresh: bool,
        cancel: Optional[threading.Event],
    ) -> CrimeReport:
        granularity = self._granularity
        period_str = format_period(period)
        area_identifier = self._area_identifier(area, latitude, longitude)
        self._log(
            f"Fetching {granularity.value} crimes for {area_identifier}, month {period_str}.",
            logging.INFO,
        )

        incidents: Optional[List[CrimeIncident]] = None
        summary: Optional[str] = None
        try:
            if granularity is Granularity.STREET:
                incidents = self._source.fetch_crimes_at_location(
                    period_str, latitude, longitude, cancel=cancel, force_refresh=force_refresh
                )
            elif granularity is Granularity.NEIGHBOURHOOD:
                boundary = self._boundaries.resolve_boundary(
                    area.force_id, area.neighbourhood_id, force_refresh, cancel
                )
                if boundary.cancelled:
                    return self._cancelled()
                if not boundary.value:
                    self._log("Neighbourhood boundary unavailable; skipping incident fetch.", logging.WARNING)
                    self._stamp_markers(area, latitude, longitude)
                    return self._store(
                        CrimeReport(
                            summary=BOUNDARY_UNAVAILABLE_SUMMARY,
                            data_month=period,
                            granularity=granularity,
                        )
                    )
                incidents = self._source.fetch_crimes_in_polygon(
                    period_str, boundary.value, cancel=cancel, force_refresh=force_refresh
                )
            else:
                polygon = self._force_polygon(latitude, longitude)
                incidents = self._source.fetch_crimes_in_polygon(
                    period_str, polygon, cancel=cancel, force_refresh=force_refresh
                )
        except FetchCancelled:
            return self._cancelled()
        except CrimeDataError as exc:
            logger.warning(
                "Crime fetch failed",
                extra={"kind": exc.kind.value, "status_code": exc.status_code, "error": str(exc)},
            )
            summary = describe_failure(exc)
        except Exception as exc:
            logger.exception("Unexpected error during crime fetch")
            summary = f"An unexpected error ({type(exc).__name__}) occurred."

        self._stamp_markers(area, latitude, longitude)

        incidents = incidents or []
        if summary is None:
            summary = build_summary(len(incidents), area_identifier, period)
        report = CrimeReport(
            summary=summary,
            crime_count=len(incidents),
            data_month=period,
            granularity=granularity,
            area_identifier=area_identifier,
            incidents=incidents,
        )
        self._log(
            f"Fetched {report.crime_count} incidents for {area_identifier} "
            f"({granularity.value}) for month {period_str}.",
            logging.INFO,
        )
        return self._store(report)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _store(self, report: CrimeReport) -> CrimeReport:
        self._state.last_report = report
        self._log(f"Service response: {report.summary}", logging.INFO)
        return report

    def _fallback(self, summary: str) -> CrimeReport:
        """Previous report when there is one, else a placeholder that is not cached."""
        if self._state.last_report is not None:
            return self._state.last_report
        return CrimeReport(summary=summary)

    def _cancelled(self) -> CrimeReport:
        self._log("Report request cancelled.", logging.INFO)
        return self._fallback(CANCELLED_SUMMARY)

    def _log(self, message: str, level: int = logging.DEBUG) -> None:
        logger.log(level, message)
        if self._log_sink is None:
            return
        try:
            self._log_sink(message)
        except Exception:
            logger.exception("Log sink raised; message dropped")


def build_report_service(settings=None, *, source: Optional[CrimeDataSource] = None, log_sink=None) -> CrimeReportService:
    """Wire a report service to the configured police.uk client (or an injected source)."""
    settings = settings or config.settings
    source = source if source is not None else build_data_source(settings)
    logger.info(
        "Building crime report service",
        extra={"granularity": settings.default_granularity.value, "force_radius_km": settings.force_radius_km},
    )
    return CrimeReportService.from_settings(source, settings, log_sink=log_sink)
