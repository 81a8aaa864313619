"""
Response envelopes for the gateway.

Errors raised anywhere in the service are rendered through ``error_response``
so every JSON error carries the same ``error``/``meta`` shape, stamped with
the request id and the running service version.
"""
from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import get_settings


def _service_version() -> str:
    return get_settings().APP_VERSION


class ResponseMeta(BaseModel):
    """Request id, timestamp and service version for an error envelope."""

    request_id: str | None = Field(
        default=None,
        description="X-Request-ID of the failed request"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Response timestamp (UTC)"
    )
    version: str = Field(
        default_factory=_service_version,
        description="Gateway version (APP_VERSION)"
    )

    @classmethod
    def for_request(cls, request: Request) -> "ResponseMeta":
        return cls(request_id=getattr(request.state, "request_id", None))


class ErrorDetail(BaseModel):
    code: str = Field(description="Machine-readable error code, e.g. ROLE_LOOKUP_FAILED")
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error context"
    )


class ErrorResponse(BaseModel):
    success: bool = Field(default=False)
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render an error envelope for ``request``."""
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
        meta=ResponseMeta.for_request(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


class HealthCheck(BaseModel):
    """One dependency's health (currently only the database)."""

    status: str = Field(description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Round-trip time in milliseconds")
    message: str | None = None


class HealthResponse(BaseModel):
    status: str = Field(description="healthy when every check is healthy, else degraded")
    service: str
    version: str
    environment: str
    checks: dict[str, HealthCheck] = Field(default_factory=dict)
