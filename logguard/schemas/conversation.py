from typing import Optional, Literal, Dict, Any
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_id(prefix: str) -> str:
    return f"{prefix}_{int(datetime.now(timezone.utc).timestamp() * 1000)}_{uuid4().hex[:9]}"


class IncomingMessage(BaseModel):
    """A message a human sent back to us over one of the notification channels."""
    id: str = Field(default_factory=lambda: make_id("msg"))
    timestamp: str = Field(default_factory=_now_iso)
    source: Literal["email", "telegram"]
    sender: str
    message: str
    related_alert_id: Optional[str] = None


class AIResponse(BaseModel):
    id: str = Field(default_factory=lambda: make_id("ai"))
    timestamp: str = Field(default_factory=_now_iso)
    alert_id: str = "unknown"
    user_message: str
    ai_response: str
    confidence: int = Field(85, ge=0, le=100)


class EmailWebhook(BaseModel):
    sender: str
    message: str
    alert_id: Optional[str] = None


class TelegramWebhook(BaseModel):
    """Subset of a Telegram Bot API update we care about."""
    update_id: Optional[int] = None
    message: Optional[Dict[str, Any]] = None


class ReplyResult(BaseModel):
    incoming: IncomingMessage
    response: Optional[AIResponse] = None
