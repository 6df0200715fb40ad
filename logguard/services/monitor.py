import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from logguard.core.exceptions import MonitorStateError, TransportError
from logguard.schemas.alert import AlertCreate, AlertResponse
from logguard.schemas.dashboard import MonitoringStatus
from logguard.schemas.log import LogEntry
from logguard.services.alerting import alert_from_analysis, trigger_alert
from logguard.services.anomaly_detector import LogAnomalyDetector, should_escalate
from logguard.services.log_streamer import CancellationToken, LogStreamPoller, PollerState
from logguard.services.notification_service import AlertNotifier

logger = logging.getLogger(__name__)


class LogMonitor:
    """
    Poller -> classifier -> alert -> notifier.

    Entries of one poll batch are processed one after another, which bounds
    the number of model calls in flight to one.
    """

    def __init__(
        self,
        poller: LogStreamPoller,
        detector: LogAnomalyDetector,
        notifier: AlertNotifier,
        session_factory: Callable[[], Session],
        confidence_threshold: int = 70,
    ):
        self.poller = poller
        self.detector = detector
        self.notifier = notifier
        self.session_factory = session_factory
        self.confidence_threshold = confidence_threshold
        self.entries_processed = 0
        self.alerts_created = 0
        self._starting = False

    @property
    def state(self) -> PollerState:
        return self.poller.state

    @property
    def is_running(self) -> bool:
        return self._starting or self.state != PollerState.IDLE

    async def start(self) -> CancellationToken:
        if self.is_running:
            raise MonitorStateError("Monitoring is already running")
        self._starting = True
        try:
            if not await asyncio.to_thread(self.poller.client.test_connection):
                raise TransportError("graylog", "Graylog connection failed, monitoring not started")
            if not await asyncio.to_thread(self.detector.test_connection):
                logger.warning("AI service connection failed, using fallback analysis")
            token = self.poller.start(self.process_entry)
        finally:
            self._starting = False
        logger.info("Log monitoring started")
        return token

    async def stop(self, wait: bool = False) -> None:
        if self.state == PollerState.IDLE:
            raise MonitorStateError("Monitoring is not running")
        self.poller.stop()
        if wait:
            await self.poller.wait_stopped()

    def _store_alert(self, alert_data: AlertCreate) -> AlertResponse:
        db = self.session_factory()
        try:
            return trigger_alert(alert_data, db)
        finally:
            db.close()

    async def process_entry(self, entry: LogEntry) -> Optional[AlertResponse]:
        analysis = await asyncio.to_thread(self.detector.analyze, entry.content, entry.host, entry.timestamp)
        self.entries_processed += 1

        if not should_escalate(analysis, self.confidence_threshold):
            logger.debug(f"Log {entry.id} from {entry.host} not escalated (anomalous={analysis.is_anomalous}, confidence={analysis.confidence})")
            return None

        alert = await asyncio.to_thread(self._store_alert, alert_from_analysis(entry, analysis))
        self.alerts_created += 1

        # A failed channel must not undo the recorded alert
        try:
            await self.notifier.dispatch(alert, entry.content)
        except Exception as e:
            logger.error(f"Notification dispatch failed for alert {alert.id}: {e}", exc_info=True)
        return alert

    def status(self) -> MonitoringStatus:
        return MonitoringStatus(
            state=self.state.value,
            is_monitoring=self.state == PollerState.RUNNING,
            watermark=self.poller.watermark.isoformat() if self.poller.watermark else None,
            last_poll_at=self.poller.last_poll_at.isoformat() if self.poller.last_poll_at else None,
            last_error=self.poller.last_error,
            entries_processed=self.entries_processed,
            alerts_created=self.alerts_created,
        )
