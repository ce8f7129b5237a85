"""Error taxonomy for the metrics service layer."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException


@dataclass(frozen=True)
class MetricsError(Exception):
    code: str
    detail: str
    status_code: int = 400
    retryable: bool = False

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


class MetricsValidationError(MetricsError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=400, retryable=False)


class MetricsNotFoundError(MetricsError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=404, retryable=False)


class MetricsFetchError(MetricsError):
    def __init__(self, code: str, detail: str, status_code: int = 503):
        super().__init__(code=code, detail=detail, status_code=status_code, retryable=True)


class QualityFeedError(MetricsError):
    def __init__(self, code: str, detail: str, status_code: int = 502, retryable: bool = True):
        super().__init__(code=code, detail=detail, status_code=status_code, retryable=retryable)


def as_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, MetricsError):
        return exc.to_http_exception()
    if isinstance(exc, HTTPException):
        return exc
    return HTTPException(status_code=500, detail=str(exc) or "Metrics error")
