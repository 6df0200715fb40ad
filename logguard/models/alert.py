from sqlalchemy import Column, Integer, String, DateTime, Text
from logguard.core.database import Base
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(String(64), primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, index=True)
    host = Column(String(255), nullable=False, index=True)
    severity = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default="new", index=True)
    summary = Column(Text, nullable=False)
    ai_suggestion = Column(Text, nullable=True)
    confidence = Column(Integer, nullable=False, default=0)
    log_content = Column(Text, nullable=True)
    log_entry_id = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Alert(id={self.id}, host='{self.host}', severity='{self.severity}', status='{self.status}')>"
