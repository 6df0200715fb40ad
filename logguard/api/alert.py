from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from logguard.api.deps import get_db
from logguard.schemas.alert import AlertResponse, AlertUpdate, AlertSeverity, AlertStatus, PaginatedAlertResponse
from logguard.services import alerting

router = APIRouter()


@router.get("/alerts/", response_model=PaginatedAlertResponse, tags=["Alert"])
def get_alerts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    alert_status: Optional[AlertStatus] = Query(None, alias="status", description="Filter by status (new, acknowledged, resolved)"),
    severity: Optional[AlertSeverity] = Query(None, description="Filter by severity (critical, warning, info)"),
    host: Optional[str] = Query(None, description="Filter by host"),
    db: Session = Depends(get_db),
):
    """Get alerts, newest first, with optional filters"""
    alerts, total = alerting.get_alerts(
        db,
        skip=skip,
        limit=limit,
        status=alert_status.value if alert_status else None,
        severity=severity.value if severity else None,
        host=host,
    )
    return PaginatedAlertResponse(alerts=alerts, total=total, skip=skip, limit=limit)


@router.get("/alerts/{alert_id}", response_model=AlertResponse, tags=["Alert"])
def get_alert(alert_id: str, db: Session = Depends(get_db)):
    return alerting.get_alert(alert_id, db)


@router.put("/alerts/{alert_id}/status", response_model=AlertResponse, tags=["Alert"])
def update_alert_status(alert_id: str, alert_update: AlertUpdate, db: Session = Depends(get_db)):
    """Acknowledge or resolve an alert"""
    return alerting.update_alert_status(alert_id, alert_update.status, db)
