"""
Process-wide service container.

One instance is created at startup (by the API app or the worker) and handed
to whoever needs the services. Components are rebuilt from the persisted
configuration whenever monitoring starts, so settings edits apply on the
next start without touching a running poller.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from logguard.core.config import settings
from logguard.core.database import SessionLocal
from logguard.core.exceptions import AlertNotFoundError, MonitorStateError
from logguard.schemas.config import AppConfig
from logguard.schemas.dashboard import MonitoringStatus
from logguard.services.alerting import get_alert
from logguard.services.anomaly_detector import LogAnomalyDetector
from logguard.services.config_service import ConfigService
from logguard.services.graylog_client import GraylogClient
from logguard.services.log_streamer import CancellationToken, LogStreamPoller
from logguard.services.metrics import PerformanceMetrics
from logguard.services.monitor import LogMonitor
from logguard.services.notification_service import AlertNotifier, TelegramSender, build_mail_transport
from logguard.services.reply_service import ReplyCorrelator
from logguard.services.storage_service import KeyValueStore

logger = logging.getLogger(__name__)


class ServiceContainer:

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        metrics: Optional[PerformanceMetrics] = None,
        timeout: float = settings.HTTP_TIMEOUT,
    ):
        self.session_factory = session_factory
        self.metrics = metrics or PerformanceMetrics()
        self.timeout = timeout
        self.store = KeyValueStore(session_factory)
        self.config_service = ConfigService(self.store)
        self.monitor: Optional[LogMonitor] = None

    def config(self) -> AppConfig:
        return self.config_service.load_config()

    # ── Factories ────────────────────────────────────────────
    def graylog_client(self, config: Optional[AppConfig] = None) -> GraylogClient:
        config = config or self.config()
        return GraylogClient(config.graylog, metrics=self.metrics, timeout=self.timeout)

    def detector(self, config: Optional[AppConfig] = None) -> LogAnomalyDetector:
        config = config or self.config()
        return LogAnomalyDetector(config.llm, metrics=self.metrics, timeout=self.timeout)

    def telegram_sender(self) -> TelegramSender:
        return TelegramSender(metrics=self.metrics, timeout=self.timeout)

    def notifier(self, config: Optional[AppConfig] = None) -> AlertNotifier:
        config = config or self.config()
        return AlertNotifier(
            config.notifications,
            telegram=self.telegram_sender(),
            mail_transport=build_mail_transport(config.notifications.email),
        )

    def _alert_context(self, alert_id: str) -> Optional[str]:
        db = self.session_factory()
        try:
            alert = get_alert(alert_id, db)
        except AlertNotFoundError:
            return None
        finally:
            db.close()
        return f"[{alert.severity.value}] {alert.host}: {alert.summary}. Suggested: {alert.ai_suggestion or '-'}"

    def reply_correlator(self, config: Optional[AppConfig] = None) -> ReplyCorrelator:
        config = config or self.config()
        return ReplyCorrelator(
            self.store,
            self.detector(config),
            telegram_config=config.notifications.telegram,
            telegram=self.telegram_sender(),
            mail_transport=build_mail_transport(config.notifications.email),
            alert_lookup=self._alert_context,
        )

    def build_monitor(self, config: Optional[AppConfig] = None) -> LogMonitor:
        config = config or self.config()
        poller = LogStreamPoller(
            self.graylog_client(config),
            query=config.monitoring.search_query,
            poll_interval=config.monitoring.poll_interval,
            error_interval=config.monitoring.error_interval,
            window_seconds=config.monitoring.window_seconds,
        )
        return LogMonitor(
            poller,
            self.detector(config),
            self.notifier(config),
            self.session_factory,
            confidence_threshold=config.monitoring.confidence_threshold,
        )

    # ── Monitoring lifecycle ─────────────────────────────────
    async def start_monitoring(self) -> CancellationToken:
        if self.monitor is not None and self.monitor.is_running:
            raise MonitorStateError("Monitoring is already running")
        self.monitor = self.build_monitor()
        return await self.monitor.start()

    async def stop_monitoring(self, wait: bool = False) -> None:
        if self.monitor is None:
            raise MonitorStateError("Monitoring is not running")
        await self.monitor.stop(wait=wait)

    def monitoring_status(self) -> MonitoringStatus:
        if self.monitor is None:
            return MonitoringStatus(state="idle", is_monitoring=False)
        return self.monitor.status()

    async def shutdown(self) -> None:
        if self.monitor is not None and self.monitor.is_running:
            await self.monitor.stop(wait=True)
