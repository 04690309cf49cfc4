from __future__ import annotations

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None


class HealthResponse(BaseModel):
    status: str


class MetricsResponse(BaseModel):
    counters: dict[str, int]
