"""
Error taxonomy shared by the clients, the poller and the API layer.
"""

from typing import Optional


class LogGuardError(Exception):
    """Base class for every error raised by logguard."""


class AuthenticationError(LogGuardError):
    """A remote service rejected our credentials (HTTP 401). Never retried automatically."""

    def __init__(self, service: str, message: str = "Authentication failed - Check your credentials"):
        self.service = service
        super().__init__(f"{service}: {message}")


class TransportError(LogGuardError):
    """Network failure or a non-401 error status. Safe for polling loops to retry."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class PollerStateError(LogGuardError):
    """start() called on a poller that is not idle."""


class MonitorStateError(LogGuardError):
    """Monitoring is already running, or not running when it should be."""


class AlertNotFoundError(LogGuardError):
    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class InvalidStatusTransition(LogGuardError):
    def __init__(self, alert_id: str, current: str, requested: str):
        self.alert_id = alert_id
        self.current = current
        self.requested = requested
        super().__init__(f"Alert {alert_id} cannot move from '{current}' to '{requested}'")


class RuleNotFoundError(LogGuardError):
    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Notification rule {rule_id} not found")


class ConfigurationError(LogGuardError, ValueError):
    """A required setting is missing or blank, so the client cannot be built."""
