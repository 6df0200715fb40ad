from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict


def to_camel(string: str) -> str:
    """Converts snake_case_string to camelCaseString."""
    head, *rest = string.split('_')
    return head + ''.join(word.capitalize() for word in rest)


class DashboardSummaryStats(BaseModel):
    total_alerts: int
    active_alerts: int
    alerts_by_severity: Dict[str, int]
    alerts_by_status: Dict[str, int]
    incoming_messages: int
    ai_responses: int
    monitoring_state: str
    last_poll_at: Optional[str] = None

    # Serialized as camelCase for the dashboard
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MonitoringStatus(BaseModel):
    state: str
    is_monitoring: bool
    watermark: Optional[str] = None
    last_poll_at: Optional[str] = None
    last_error: Optional[str] = None
    entries_processed: int = 0
    alerts_created: int = 0
