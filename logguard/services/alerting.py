import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from logguard.core.exceptions import AlertNotFoundError, InvalidStatusTransition
from logguard.models.alert import Alert
from logguard.schemas.alert import (
    ALLOWED_TRANSITIONS,
    AlertCreate,
    AlertResponse,
    AlertStatus,
    AnalysisResult,
)
from logguard.schemas.log import LogEntry

logger = logging.getLogger(__name__)


def new_alert_id() -> str:
    return f"alert_{int(datetime.now(timezone.utc).timestamp() * 1000)}_{uuid4().hex[:9]}"


def alert_from_analysis(entry: LogEntry, analysis: AnalysisResult) -> AlertCreate:
    return AlertCreate(
        host=entry.host or "unknown",
        severity=analysis.severity,
        summary=analysis.summary,
        ai_suggestion=analysis.suggestion,
        confidence=analysis.confidence,
        log_content=entry.content,
        log_entry_id=entry.id or None,
    )


def trigger_alert(alert_data: AlertCreate, db: Session) -> AlertResponse:
    """
    Persist a new alert in status 'new'.

    Args:
        alert_data: Alert fields produced from a classifier verdict
        db: Database session

    Returns:
        The stored alert
    """
    db_alert = Alert(
        id=new_alert_id(),
        timestamp=datetime.now(timezone.utc),
        host=alert_data.host,
        severity=alert_data.severity.value,
        status=AlertStatus.NEW.value,
        summary=alert_data.summary,
        ai_suggestion=alert_data.ai_suggestion,
        confidence=alert_data.confidence,
        log_content=alert_data.log_content,
        log_entry_id=alert_data.log_entry_id,
    )
    try:
        db.add(db_alert)
        db.commit()
        db.refresh(db_alert)
    except Exception as e:
        logger.error(f"Failed to store alert for host {alert_data.host}: {e}")
        db.rollback()
        raise

    logger.warning(
        f"ALERT TRIGGERED: {db_alert.id} - Severity: {db_alert.severity} - Host: {db_alert.host} "
        f"- Confidence: {db_alert.confidence}"
    )
    if db_alert.severity == "critical":
        logger.critical(f"CRITICAL ALERT on {db_alert.host}: {db_alert.summary} - Alert ID: {db_alert.id}")
    return AlertResponse.model_validate(db_alert)


def get_alert(alert_id: str, db: Session) -> AlertResponse:
    db_alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not db_alert:
        raise AlertNotFoundError(alert_id)
    return AlertResponse.model_validate(db_alert)


def get_alerts(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    host: Optional[str] = None,
) -> Tuple[List[AlertResponse], int]:
    """Alerts newest first, with the total count before pagination."""
    query = db.query(Alert)
    if status:
        query = query.filter(Alert.status == status)
    if severity:
        query = query.filter(Alert.severity == severity)
    if host:
        query = query.filter(Alert.host == host)

    total = query.count()
    rows = query.order_by(desc(Alert.timestamp)).offset(skip).limit(limit).all()
    return [AlertResponse.model_validate(row) for row in rows], total


def update_alert_status(alert_id: str, status: AlertStatus, db: Session) -> AlertResponse:
    """
    Move an alert forward in its lifecycle (new -> acknowledged -> resolved).

    Re-applying the current status is a no-op; moving backwards raises
    InvalidStatusTransition.
    """
    db_alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not db_alert:
        raise AlertNotFoundError(alert_id)

    current = AlertStatus(db_alert.status)
    if status == current:
        return AlertResponse.model_validate(db_alert)
    if status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(alert_id, current.value, status.value)

    db_alert.status = status.value
    db_alert.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
        db.refresh(db_alert)
    except Exception as e:
        logger.error(f"Failed to update alert {alert_id}: {e}")
        db.rollback()
        raise

    logger.info(f"Alert {alert_id} status updated from '{current.value}' to '{status.value}'")
    return AlertResponse.model_validate(db_alert)


def get_alert_statistics(db: Session) -> Dict[str, Any]:
    by_severity = db.query(Alert.severity, func.count(Alert.id)).group_by(Alert.severity).all()
    by_status = db.query(Alert.status, func.count(Alert.id)).group_by(Alert.status).all()
    status_counts = {status: count for status, count in by_status}
    return {
        "total_alerts": sum(status_counts.values()),
        "active_alerts": status_counts.get(AlertStatus.NEW.value, 0) + status_counts.get(AlertStatus.ACKNOWLEDGED.value, 0),
        "alerts_by_severity": {severity: count for severity, count in by_severity},
        "alerts_by_status": status_counts,
    }
