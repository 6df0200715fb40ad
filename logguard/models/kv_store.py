from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func

from logguard.core.database import Base


class KeyValue(Base):
    __tablename__ = "kv_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
