"""Client for the data.police.uk endpoints used to build crime reports."""
from __future__ import annotations

import contextlib
import threading
from typing import Any, List, Optional, Sequence

import requests
from pydantic import TypeAdapter, ValidationError

from crimewatch.domain import (
    AdministrativeArea,
    AvailablePeriod,
    BoundaryPoint,
    CrimeIncident,
)
from crimewatch.errors import (
    FetchCancelled,
    ParseError,
    TransportError,
    UpstreamStatusError,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="police_client")

DEFAULT_BASE_URL = "https://data.police.uk/api"
POLYGON_SEPARATOR = ":"

_PERIODS = TypeAdapter(List[AvailablePeriod])
_AREA = TypeAdapter(AdministrativeArea)
_BOUNDARY = TypeAdapter(List[BoundaryPoint])
_INCIDENTS = TypeAdapter(List[CrimeIncident])


def format_coordinate(value: float) -> str:
    """Render a coordinate the way every police.uk query expects (5 dp)."""
    return f"{value:.5f}"


def format_polygon(points: Sequence[BoundaryPoint]) -> str:
    """Encode a boundary as 'lat,lon:lat,lon:...' for the poly form field."""
    return POLYGON_SEPARATOR.join(f"{p.latitude},{p.longitude}" for p in points)


def _raise_if_cancelled(cancel: Optional[threading.Event], context: str) -> None:
    if cancel is not None and cancel.is_set():
        raise FetchCancelled(f"{context} cancelled")


class PoliceApiClient:
    """Thin wrapper around a requests session for the police.uk API.

    Every method performs exactly one HTTP exchange on the session (retries,
    when configured, happen inside the session's adapters) and raises a
    `CrimeDataError` subclass on failure.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _bypass_cache(self, force_refresh: bool):
        """Skip the HTTP-level cache for forced refreshes when one is installed."""
        if force_refresh and hasattr(self.session, "cache_disabled"):
            return self.session.cache_disabled()
        return contextlib.nullcontext()

    def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict | None = None,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> Any:
        """Issue one request and return the decoded JSON body."""
        url = f"{self.base_url}/{path}"
        _raise_if_cancelled(cancel, f"{method} {path}")
        logger.debug("Police API request", extra={"method": method, "url": url})

        try:
            with self._bypass_cache(force_refresh):
                resp = self.session.request(method, url, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("Police API transport failure", extra={"url": url, "error": str(exc)})
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        _raise_if_cancelled(cancel, f"{method} {path}")
        logger.debug("Police API response", extra={"url": url, "status": resp.status_code})

        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise UpstreamStatusError(
                f"{method} {path} returned status {resp.status_code}",
                status_code=resp.status_code,
            ) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise ParseError(f"{method} {path} returned a non-JSON body") from exc

    @staticmethod
    def _validate(adapter: TypeAdapter, payload: Any, context: str):
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise ParseError(f"Unexpected {context} payload: {exc.error_count()} validation error(s)") from exc

    def fetch_available_periods(
        self, *, cancel: Optional[threading.Event] = None, force_refresh: bool = False
    ) -> List[AvailablePeriod]:
        """GET /crimes-street-dates."""
        payload = self._request("GET", "crimes-street-dates", cancel=cancel, force_refresh=force_refresh)
        return self._validate(_PERIODS, payload, "crimes-street-dates")

    def locate_neighbourhood(
        self,
        latitude: float,
        longitude: float,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> AdministrativeArea:
        """GET /locate-neighbourhood?q=<lat>,<lon>."""
        path = f"locate-neighbourhood?q={format_coordinate(latitude)},{format_coordinate(longitude)}"
        payload = self._request("GET", path, cancel=cancel, force_refresh=force_refresh)
        return self._validate(_AREA, payload, "locate-neighbourhood")

    def fetch_boundary(
        self,
        force_id: str,
        neighbourhood_id: str,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[BoundaryPoint]:
        """GET /<force>/<neighbourhood>/boundary."""
        payload = self._request(
            "GET", f"{force_id}/{neighbourhood_id}/boundary", cancel=cancel, force_refresh=force_refresh
        )
        if payload is None:
            return []
        return self._validate(_BOUNDARY, payload, "boundary")

    def fetch_crimes_at_location(
        self,
        period: str,
        latitude: float,
        longitude: float,
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[CrimeIncident]:
        """GET /crimes-at-location for a single point."""
        path = (
            f"crimes-at-location?date={period}"
            f"&lat={format_coordinate(latitude)}&lng={format_coordinate(longitude)}"
        )
        payload = self._request("GET", path, cancel=cancel, force_refresh=force_refresh)
        return self._validate(_INCIDENTS, payload, "crimes-at-location")

    def fetch_crimes_in_polygon(
        self,
        period: str,
        polygon: Sequence[BoundaryPoint],
        *,
        cancel: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> List[CrimeIncident]:
        """POST /crimes-street/all-crime with a form-encoded polygon."""
        form = {"date": period, "poly": format_polygon(polygon)}
        payload = self._request(
            "POST", "crimes-street/all-crime", data=form, cancel=cancel, force_refresh=force_refresh
        )
        return self._validate(_INCIDENTS, payload, "crimes-street/all-crime")
