"""Failure taxonomy shared by the police API client, resolvers and report service.

The client raises these; resolvers turn them into `Resolution` values; the
report service turns everything into a `CrimeReport`. None of them reach a
caller of `CrimeReportService.get_report`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a stage could not produce a fresh value."""
    TRANSPORT = "transport"
    UPSTREAM_STATUS = "upstream_status"
    PARSE = "parse"
    NOT_DETERMINED = "not_determined"
    CANCELLED = "cancelled"


class CrimeDataError(Exception):
    """Base class for every failure the data pipeline knows how to recover from."""
    kind: FailureKind = FailureKind.NOT_DETERMINED

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(CrimeDataError):
    """Connection failure, DNS failure or timeout."""
    kind = FailureKind.TRANSPORT


class UpstreamStatusError(CrimeDataError):
    """Upstream answered with a non-2xx status."""
    kind = FailureKind.UPSTREAM_STATUS


class ParseError(CrimeDataError):
    """Body was not JSON or did not have the expected shape."""
    kind = FailureKind.PARSE


class NotDetermined(CrimeDataError):
    """A stage finished without a usable value (empty period list, missing ids)."""
    kind = FailureKind.NOT_DETERMINED


class FetchCancelled(CrimeDataError):
    """The caller's cancel event was set before or during a request."""
    kind = FailureKind.CANCELLED


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Value produced by a resolver plus the error that kept it from being fresh.

    `value` may be a previously cached value even when `error` is set (the
    period resolver falls back that way); callers decide by `value`.
    """
    value: Optional[T] = None
    error: Optional[CrimeDataError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @property
    def cancelled(self) -> bool:
        return self.error is not None and self.error.kind is FailureKind.CANCELLED
