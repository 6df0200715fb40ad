import logging

from fastapi import APIRouter, Depends

from logguard.api.deps import get_container
from logguard.core.container import ServiceContainer
from logguard.schemas.dashboard import MonitoringStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/monitoring/start", response_model=MonitoringStatus, tags=["Monitoring"])
async def start_monitoring(container: ServiceContainer = Depends(get_container)):
    """Test the connections and start polling Graylog"""
    await container.start_monitoring()
    return container.monitoring_status()


@router.post("/monitoring/stop", response_model=MonitoringStatus, tags=["Monitoring"])
async def stop_monitoring(container: ServiceContainer = Depends(get_container)):
    """Request a stop; the poller finishes its current step first"""
    await container.stop_monitoring()
    return container.monitoring_status()


@router.get("/monitoring/status", response_model=MonitoringStatus, tags=["Monitoring"])
async def monitoring_status(container: ServiceContainer = Depends(get_container)):
    return container.monitoring_status()
