"""
Runtime application configuration.

The persisted copy lives in the key-value store under ``logguard-config``;
environment settings only seed the defaults.
"""

from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from logguard.core.config import settings


def split_recipients(recipients: str) -> List[str]:
    """Turn a comma separated recipient string into a clean list."""
    return [r.strip() for r in (recipients or "").split(",") if r.strip()]


class GraylogConfig(BaseModel):
    url: str = Field(default_factory=lambda: settings.GRAYLOG_URL, min_length=1)
    username: str = Field(default_factory=lambda: settings.GRAYLOG_USERNAME)
    password: str = Field(default_factory=lambda: settings.GRAYLOG_PASSWORD)
    api_token: str = Field(default_factory=lambda: settings.GRAYLOG_API_TOKEN)


class LLMConfig(BaseModel):
    url: str = Field(default_factory=lambda: settings.OPENWEBUI_URL, min_length=1)
    api_key: str = Field(default_factory=lambda: settings.OPENWEBUI_API_KEY)
    model: str = Field(default_factory=lambda: settings.OPENWEBUI_MODEL)
    language: str = Field(default_factory=lambda: settings.LLM_LANGUAGE)


class TelegramConfig(BaseModel):
    enabled: bool = False
    bot_token: str = ""
    chat_id: str = ""


class EmailConfig(BaseModel):
    enabled: bool = False
    smtp: str = "smtp.gmail.com"
    port: int = 587
    username: str = ""
    password: str = ""
    recipients: str = ""


class RuleEmailConfig(BaseModel):
    enabled: bool = False
    recipients: str = ""


class NotificationRule(BaseModel):
    id: str = Field(default_factory=lambda: f"rule_{uuid4().hex[:9]}")
    name: str
    enabled: bool = True
    match_string: str = Field(..., min_length=1)
    telegram: Optional[TelegramConfig] = None
    email: Optional[RuleEmailConfig] = None

    def matches(self, log_content: str) -> bool:
        # Literal, case-sensitive substring match
        return self.enabled and self.match_string in log_content


class NotificationConfig(BaseModel):
    email: EmailConfig = Field(default_factory=EmailConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    rules: List[NotificationRule] = Field(default_factory=list)


class MonitoringConfig(BaseModel):
    poll_interval: float = Field(30.0, gt=0, description="Seconds between successful polls")
    error_interval: float = Field(60.0, gt=0, description="Seconds to wait after a failed poll")
    window_seconds: int = Field(60, gt=0, description="Minimum relative search window")
    confidence_threshold: int = Field(70, ge=0, le=100)
    search_query: str = "*"

    @field_validator("search_query")
    @classmethod
    def default_query(cls, v):
        return v.strip() or "*"


class AppConfig(BaseModel):
    graylog: GraylogConfig = Field(default_factory=GraylogConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)


class NotificationRuleCreate(BaseModel):
    name: str
    enabled: bool = True
    match_string: str = Field(..., min_length=1)
    telegram: Optional[TelegramConfig] = None
    email: Optional[RuleEmailConfig] = None
