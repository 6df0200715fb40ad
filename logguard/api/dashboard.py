from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from logguard.api.deps import get_container, get_db
from logguard.core.container import ServiceContainer
from logguard.schemas.dashboard import DashboardSummaryStats
from logguard.services.alerting import get_alert_statistics

router = APIRouter()


@router.get(
    "/dashboard/summary-stats",
    response_model=DashboardSummaryStats,
    tags=["Dashboard"],
    summary="Get summary statistics for the dashboard"
)
def get_dashboard_summary_stats(
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    """
    Aggregated statistics for the main dashboard: alert counts by severity
    and status, conversation volume and the monitoring state.
    """
    stats = get_alert_statistics(db)
    correlator = container.reply_correlator()
    monitoring = container.monitoring_status()

    return DashboardSummaryStats(
        **stats,
        incoming_messages=len(correlator.list_incoming()),
        ai_responses=len(correlator.list_responses()),
        monitoring_state=monitoring.state,
        last_poll_at=monitoring.last_poll_at,
    )
