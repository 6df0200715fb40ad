from typing import Optional, Union, Dict, Any, List
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None if it is unusable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class LogEntry(BaseModel):
    """One message returned by the log store. Immutable once fetched."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="_id")
    timestamp: str
    host: str = ""
    level: Union[int, str, None] = None
    message: str = ""
    full_message: str = ""
    facility: str = ""
    source: str = ""

    @classmethod
    def from_graylog(cls, envelope: Dict[str, Any]) -> "LogEntry":
        # Search results wrap each record as {"index": ..., "message": {...}}
        data = envelope.get("message") if isinstance(envelope.get("message"), dict) else envelope
        return cls(
            _id=str(data.get("_id") or data.get("id") or ""),
            timestamp=str(data.get("timestamp") or ""),
            host=str(data.get("host") or data.get("source") or ""),
            level=data.get("level"),
            message=str(data.get("message") or ""),
            full_message=str(data.get("full_message") or ""),
            facility=str(data.get("facility") or ""),
            source=str(data.get("source") or ""),
        )

    @property
    def content(self) -> str:
        return self.full_message or self.message

    @property
    def parsed_timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


class LogSearchResponse(BaseModel):
    query: str
    range: int
    total: int
    messages: List[LogEntry]


class ConnectionStatus(BaseModel):
    graylog: bool
    llm: bool
