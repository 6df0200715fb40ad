from fastapi import APIRouter, Depends
from fastapi.responses import Response

from logguard.api.deps import get_container
from logguard.core.container import ServiceContainer
from logguard.schemas.metrics import PerformanceSummary

router = APIRouter()


@router.get("/metrics", response_model=PerformanceSummary, tags=["Metrics"])
def get_metrics(container: ServiceContainer = Depends(get_container)):
    return container.metrics.get_metrics()


@router.get("/metrics/export", tags=["Metrics"])
def export_metrics(container: ServiceContainer = Depends(get_container)):
    return Response(content=container.metrics.export_metrics(), media_type="application/json")


@router.post("/metrics/reset", response_model=PerformanceSummary, tags=["Metrics"])
def reset_metrics(container: ServiceContainer = Depends(get_container)):
    container.metrics.reset()
    return container.metrics.get_metrics()
