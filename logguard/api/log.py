from fastapi import APIRouter, Depends, Query
import logging

from logguard.api.deps import get_container
from logguard.core.container import ServiceContainer
from logguard.core.exceptions import ConfigurationError
from logguard.schemas.log import ConnectionStatus, LogSearchResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/logs/search", response_model=LogSearchResponse, tags=["Logs"])
def search_logs(
    query: str = Query("*", description="Graylog query string"),
    time_range: int = Query(300, alias="range", ge=1, description="Seconds to look back"),
    container: ServiceContainer = Depends(get_container),
):
    """One-shot search. Authentication and transport failures are returned as errors."""
    entries = container.graylog_client().search(query, time_range)
    return LogSearchResponse(query=query, range=time_range, total=len(entries), messages=entries)


@router.get("/logs/connection", response_model=ConnectionStatus, tags=["Logs"])
def test_connections(container: ServiceContainer = Depends(get_container)):
    """Check Graylog and the language model endpoint. A blank url counts as unreachable."""
    config = container.config()
    return ConnectionStatus(
        graylog=_reachable(lambda: container.graylog_client(config)),
        llm=_reachable(lambda: container.detector(config)),
    )


def _reachable(build_client) -> bool:
    try:
        client = build_client()
    except ConfigurationError as e:
        logger.warning(f"Connection test skipped: {e}")
        return False
    return client.test_connection()
