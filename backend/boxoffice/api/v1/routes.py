from fastapi import APIRouter

from boxoffice.api.v1 import basket
from boxoffice.api.v1 import breakdown
from boxoffice.core.metrics import snapshot as metrics_snapshot

api_router = APIRouter()

api_router.include_router(breakdown.router)
api_router.include_router(basket.router)


@api_router.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.get("/health/ready", tags=["health"])
def readiness() -> dict[str, str]:
    return {"status": "ready"}


@api_router.get("/metrics", tags=["metrics"])
def metrics() -> dict:
    return metrics_snapshot()
