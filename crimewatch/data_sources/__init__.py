"""Data source factories and the police.uk client."""

from .base import CrimeDataSource
from .factory import build_data_source, build_session
from .police_client import PoliceApiClient, format_coordinate, format_polygon

__all__ = [
    "build_data_source",
    "build_session",
    "CrimeDataSource",
    "PoliceApiClient",
    "format_coordinate",
    "format_polygon",
]
