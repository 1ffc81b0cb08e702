"""HTTP API for crime reports around a coordinate."""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from .activity_log import ActivityLog
from .config import settings
from .domain import Granularity
from .report_service import build_report_service
from .report_views import category_counts, recent_incidents
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="crimewatch/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured key; open when none is set."""
    if not settings.api_key:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
ACTIVITY_LOG = ActivityLog(max_entries=settings.activity_log_max_entries)
REPORT_SERVICE = build_report_service(settings, log_sink=ACTIVITY_LOG.add)


class CategoryCountOut(BaseModel):
    category: str
    count: int


class IncidentOut(BaseModel):
    """One recent incident with its distance from the requested point."""
    category: str
    street: str
    outcome: str
    month: str
    distance_km: float
    distance: str


class ReportResponse(BaseModel):
    """Crime report plus the derived category and recent-incident views."""
    summary: str
    crime_count: int
    period: Optional[str] = None
    granularity: Optional[Granularity] = None
    area_identifier: Optional[str] = None
    categories: list[CategoryCountOut] = []
    recent_incidents: list[IncidentOut] = []


class ConfigRequest(BaseModel):
    """Incoming granularity change."""
    granularity: Granularity
    force_radius_km: Optional[float] = Field(default=None, gt=0)


class ConfigResponse(BaseModel):
    granularity: Granularity
    force_radius_km: float
    street_threshold_m: float
    force_movement_threshold_m: float
    latest_period: Optional[str] = None


class LogsResponse(BaseModel):
    entries: list[str]


def _config_response() -> ConfigResponse:
    service = REPORT_SERVICE
    latest = service.latest_period
    return ConfigResponse(
        granularity=service.granularity,
        force_radius_km=service.force_radius_km,
        street_threshold_m=service.street_threshold_m,
        force_movement_threshold_m=service.force_movement_threshold_m,
        latest_period=latest.strftime("%Y-%m") if latest else None,
    )


@router.get("/report", response_model=ReportResponse)
def get_report(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    refresh: bool = False,
):
    """Return the crime report for a coordinate, refetching only when the cache is stale."""
    logger.info(f"Report requested for {latitude:.5f}, {longitude:.5f} (refresh={refresh})")
    report = REPORT_SERVICE.get_report(latitude, longitude, force_refresh=refresh)

    return ReportResponse(
        summary=report.summary,
        crime_count=report.crime_count,
        period=report.period,
        granularity=report.granularity,
        area_identifier=report.area_identifier,
        categories=[CategoryCountOut(category=c.category, count=c.count) for c in category_counts(report)],
        recent_incidents=[
            IncidentOut(
                category=row.category,
                street=row.street,
                outcome=row.outcome,
                month=row.month,
                distance_km=row.distance_km,
                distance=row.distance_label,
            )
            for row in recent_incidents(report, latitude, longitude)
        ],
    )


@router.get("/config", response_model=ConfigResponse)
def get_config():
    """Return the active granularity and movement thresholds."""
    return _config_response()


@router.post("/config", response_model=ConfigResponse)
def set_config(req: ConfigRequest):
    """Change granularity (and force radius); the cached report is dropped on change."""
    logger.info(f"Configuration change requested: {req.granularity.value} radius={req.force_radius_km}")
    REPORT_SERVICE.configure(req.granularity, req.force_radius_km)
    return _config_response()


@router.get("/logs", response_model=LogsResponse)
def get_logs(limit: Optional[int] = Query(default=None, ge=1)):
    """Return the activity log, oldest first."""
    return LogsResponse(entries=ACTIVITY_LOG.entries(limit))


@router.delete("/logs", response_model=LogsResponse)
def clear_logs():
    """Clear the activity log."""
    ACTIVITY_LOG.clear()
    return LogsResponse(entries=ACTIVITY_LOG.entries())
