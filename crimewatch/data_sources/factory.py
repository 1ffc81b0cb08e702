"""Factory helpers for building the police.uk data source at startup."""

from __future__ import annotations

import requests
import requests_cache
from retry_requests import retry

from crimewatch import config
from crimewatch.data_sources.police_client import PoliceApiClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_session(settings: config.Settings | None = None) -> requests.Session:
    """Build the HTTP session: optional in-memory response cache plus bounded retries."""
    settings = settings or config.settings

    if settings.http_cache_seconds > 0:
        session = requests_cache.CachedSession(
            "crimewatch_http",
            backend="memory",
            expire_after=settings.http_cache_seconds,
        )
        logger.info("Using requests_cache session", extra={"expire_after": settings.http_cache_seconds})
    else:
        session = requests.Session()

    session.headers.update({"User-Agent": settings.user_agent, "Accept": "application/json"})

    if settings.http_retries > 0:
        logger.info(
            "Retrying police.uk requests",
            extra={"retries": settings.http_retries, "backoff_factor": settings.http_backoff_factor},
        )
        # Exhausted status retries hand back the last response so its status code survives.
        session = retry(
            session,
            retries=settings.http_retries,
            backoff_factor=settings.http_backoff_factor,
            raise_on_status=False,
        )
    return session


def build_data_source(settings: config.Settings | None = None) -> PoliceApiClient:
    """Instantiate the police.uk client configured from settings."""
    settings = settings or config.settings
    logger.info("Using police.uk data source", extra={"base_url": settings.police_api_base_url})
    return PoliceApiClient(
        build_session(settings),
        base_url=settings.police_api_base_url,
        timeout=settings.http_timeout_seconds,
    )
