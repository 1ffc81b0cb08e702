"""Presentation helpers that turn a CrimeReport into display-ready rows."""

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Tuple

from crimewatch.domain import CrimeIncident, CrimeReport
from crimewatch.geo import distance_meters

RECENT_INCIDENT_LIMIT = 10
UNKNOWN_CATEGORY = "Unknown Category"
UNKNOWN_LOCATION = "Location N/A"
PENDING_OUTCOME = "Outcome Pending"
UNKNOWN_MONTH = "N/A"


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int


@dataclass(frozen=True)
class IncidentRow:
    """One line of the recent-incidents list."""
    category: str
    street: str
    outcome: str
    month: str
    distance_km: float

    @property
    def distance_label(self) -> str:
        return format_distance(self.distance_km)


def format_category(raw: Optional[str]) -> str:
    """'anti-social-behaviour' -> 'anti social behaviour'."""
    label = (raw or "").replace("-", " ").strip()
    return label or UNKNOWN_CATEGORY


def format_distance(distance_km: float) -> str:
    if distance_km < 0:
        return "N/A"
    if distance_km < 0.1:
        return "< 100 m"
    return f"{distance_km:.1f} km away"


def incident_coordinates(incident: CrimeIncident) -> Optional[Tuple[float, float]]:
    """Parsed incident coordinates, or None when missing or malformed."""
    location = incident.location
    if location is None or location.latitude is None or location.longitude is None:
        return None
    try:
        return float(location.latitude), float(location.longitude)
    except ValueError:
        return None


def category_counts(report: CrimeReport) -> List[CategoryCount]:
    """Incidents per category, most frequent first (ties by name)."""
    counts = Counter(format_category(incident.category) for incident in report.incidents)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryCount(category=name, count=count) for name, count in ordered]


def recent_incidents(
    report: CrimeReport,
    latitude: float,
    longitude: float,
    limit: int = RECENT_INCIDENT_LIMIT,
) -> List[IncidentRow]:
    """First `limit` incidents in upstream order with distance from the query point.

    Distance is -1 when the incident has no usable coordinates.
    """
    rows: List[IncidentRow] = []
    for incident in report.incidents[:limit]:
        coords = incident_coordinates(incident)
        distance_km = -1.0
        if coords is not None:
            distance_km = distance_meters(latitude, longitude, coords[0], coords[1]) / 1000.0

        street = incident.location.street if incident.location else None
        outcome = incident.outcome_status.category if incident.outcome_status else None
        rows.append(
            IncidentRow(
                category=format_category(incident.category),
                street=(street.name if street and street.name else UNKNOWN_LOCATION),
                outcome=outcome or PENDING_OUTCOME,
                month=incident.month or UNKNOWN_MONTH,
                distance_km=distance_km,
            )
        )
    return rows
