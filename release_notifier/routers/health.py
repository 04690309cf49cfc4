from fastapi import APIRouter, Depends

from release_notifier.auth import require_token
from release_notifier.models.responses import HealthResponse, MetricsResponse
from release_notifier.observability import metrics_snapshot


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="healthy")


@router.get("/metrics", response_model=MetricsResponse, dependencies=[Depends(require_token)])
async def metrics():
    return MetricsResponse(counters=metrics_snapshot())
