from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertStatus(str, Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


# Forward-only lifecycle; an alert is re-statused, never deleted
ALLOWED_TRANSITIONS = {
    AlertStatus.NEW: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED},
    AlertStatus.RESOLVED: set(),
}


class AnalysisResult(BaseModel):
    """Verdict returned by the anomaly classifier."""
    model_config = ConfigDict(populate_by_name=True)

    is_anomalous: bool = Field(alias="isAnomalous")
    severity: AlertSeverity
    summary: str
    suggestion: str
    confidence: int = Field(ge=0, le=100)

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class AlertBase(BaseModel):
    host: str
    severity: AlertSeverity
    summary: str = Field(..., description="Human readable summary of the issue")
    ai_suggestion: Optional[str] = Field(None, description="Remediation suggested by the model")
    confidence: int = Field(0, ge=0, le=100)


class AlertCreate(AlertBase):
    log_content: Optional[str] = None
    log_entry_id: Optional[str] = None


class AlertUpdate(BaseModel):
    status: AlertStatus = Field(..., description="New status for the alert")


class AlertResponse(AlertBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    status: AlertStatus
    log_content: Optional[str] = None
    log_entry_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class PaginatedAlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    alerts: List[AlertResponse]
    total: int
    skip: int
    limit: int
