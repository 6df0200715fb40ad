import asyncio
import logging
import smtplib
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, List, Optional, Tuple

import requests

from logguard.core.config import settings
from logguard.schemas.alert import AlertResponse
from logguard.schemas.config import (
    EmailConfig,
    NotificationConfig,
    NotificationRule,
    TelegramConfig,
    split_recipients,
)
from logguard.services.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


@dataclass
class DeliveryResult:
    channel: str
    target: str
    ok: bool
    error: Optional[str] = None


# ── Message formatting ───────────────────────────────────────

def format_telegram_message(alert: AlertResponse) -> str:
    return (
        "🚨 *LogGuard AI Alert*\n\n"
        f"*Level:* {alert.severity.value.upper()}\n"
        f"*Host:* {alert.host}\n"
        f"*Time:* {alert.timestamp.isoformat()}\n\n"
        f"*Issue:* {alert.summary}\n\n"
        "🤖 *AI Suggestion:*\n"
        f"{alert.ai_suggestion or 'No suggestion available'}\n\n"
        "💬 *Reply to this message to talk to the AI*\n"
        "The AI will process your reply and provide further assistance.\n\n"
        f"🔗 Alert ID: `{alert.id}`"
    )


def format_email(alert: AlertResponse) -> Tuple[str, str]:
    subject = f"LogGuard AI Alert - {alert.severity.value.upper()} on {alert.host}"
    body = (
        "Alert Details:\n"
        f"- Level: {alert.severity.value.upper()}\n"
        f"- Host: {alert.host}\n"
        f"- Timestamp: {alert.timestamp.isoformat()}\n"
        f"- Message: {alert.summary}\n\n"
        "AI Suggestion:\n"
        f"{alert.ai_suggestion or 'No suggestion available'}\n\n"
        "=== REPLY TO THIS EMAIL TO TALK TO THE AI ===\n"
        "The AI will process your reply and provide further assistance.\n"
        f"Alert ID: {alert.id}\n"
        "=============================================\n"
    )
    return subject, body


# ── Transports ───────────────────────────────────────────────

class MailTransport(ABC):

    @abstractmethod
    def send(self, recipients: List[str], subject: str, body: str) -> None:
        """Deliver one message. Raises on failure."""
        ...


class LoggingMailTransport(MailTransport):
    """Records the email in the application log instead of sending it."""

    def send(self, recipients: List[str], subject: str, body: str) -> None:
        logger.info(f"Email notification would be sent to {', '.join(recipients)}: Subject='{subject}'")
        logger.debug(body)


class SmtpMailTransport(MailTransport):

    def __init__(self, config: EmailConfig, timeout: float = settings.HTTP_TIMEOUT):
        self.config = config
        self.timeout = timeout

    def send(self, recipients: List[str], subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.config.username
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.config.smtp, self.config.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.config.username, self.config.password)
            smtp.send_message(message)
        logger.info(f"Email sent to {', '.join(recipients)}: Subject='{subject}'")


def build_mail_transport(config: EmailConfig) -> MailTransport:
    if config.smtp and config.username and config.password:
        return SmtpMailTransport(config)
    return LoggingMailTransport()


class TelegramSender:
    """
    Thin wrapper over the Bot API ``sendMessage`` method.

    Each send opens its own session; sends run concurrently on worker threads.
    """

    def __init__(
        self,
        session_factory: Callable[[], requests.Session] = requests.Session,
        metrics: Optional[PerformanceMetrics] = None,
        timeout: float = settings.HTTP_TIMEOUT,
        api_url: str = TELEGRAM_API_URL,
    ):
        self.session_factory = session_factory
        self.metrics = metrics
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def send_message(self, bot_token: str, chat_id: str, text: str) -> bool:
        """Returns False on a non-2xx status or a network error, never raises."""
        start = time.perf_counter()
        status = 0
        try:
            with self.session_factory() as session:
                response = session.post(
                    f"{self.api_url}/bot{bot_token}/sendMessage",
                    json={"chat_id": chat_id, "text": text, "parse_mode": "Markdown"},
                    timeout=self.timeout,
                )
            status = response.status_code
            if not 200 <= status < 300:
                logger.error(f"Telegram sendMessage to {chat_id} failed with status {status}")
                return False
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Telegram notification: {e}")
            return False
        finally:
            if self.metrics is not None:
                try:
                    # Keep the bot token out of the recorded endpoint
                    self.metrics.record_api_call(
                        "/bot<token>/sendMessage", "POST", status,
                        (time.perf_counter() - start) * 1000, 200 <= status < 300,
                    )
                except Exception as e:
                    logger.warning(f"Failed to record Telegram metrics: {e}")


# ── Dispatcher ───────────────────────────────────────────────

class AlertNotifier:
    """
    Fans an alert out to every applicable channel.

    Global channels fire whenever they are enabled. Each enabled rule whose
    match string occurs in the log content fires its own channels as well;
    rules are independent, so two rules pointing at the same chat both send.
    """

    def __init__(
        self,
        config: NotificationConfig,
        telegram: Optional[TelegramSender] = None,
        mail_transport: Optional[MailTransport] = None,
    ):
        self.config = config
        self.telegram = telegram or TelegramSender()
        self.mail_transport = mail_transport

    def matching_rules(self, log_content: str) -> List[NotificationRule]:
        return [rule for rule in self.config.rules if rule.matches(log_content)]

    def send_telegram_notification(self, alert: AlertResponse, telegram_config: TelegramConfig) -> bool:
        if not telegram_config.enabled or not telegram_config.bot_token:
            return False
        return self.telegram.send_message(
            telegram_config.bot_token,
            telegram_config.chat_id,
            format_telegram_message(alert),
        )

    def send_email_notification(self, alert: AlertResponse, recipients: str) -> bool:
        addresses = split_recipients(recipients)
        if not addresses:
            logger.warning(f"No email recipients configured for alert {alert.id}")
            return False
        if self.mail_transport is None:
            logger.error("No mail transport available, email notification skipped")
            return False
        subject, body = format_email(alert)
        try:
            self.mail_transport.send(addresses, subject, body)
            return True
        except Exception as e:
            logger.error(f"Failed to send email notification for alert {alert.id}: {e}")
            return False

    def plan(self, alert: AlertResponse, log_content: str) -> List[Tuple[str, str, Callable[[], bool]]]:
        """List (channel, target, sender) for every send this alert should trigger."""
        targets: List[Tuple[str, str, Callable[[], bool]]] = []

        if self.config.telegram.enabled:
            telegram_config = self.config.telegram
            targets.append(("telegram", "global", lambda: self.send_telegram_notification(alert, telegram_config)))

        if self.config.email.enabled:
            recipients = self.config.email.recipients
            targets.append(("email", "global", lambda: self.send_email_notification(alert, recipients)))

        for rule in self.matching_rules(log_content):
            if rule.telegram and rule.telegram.enabled and rule.telegram.bot_token:
                rule_telegram = rule.telegram
                targets.append(("telegram", rule.id, lambda c=rule_telegram: self.send_telegram_notification(alert, c)))
            if rule.email and rule.email.enabled and rule.email.recipients:
                rule_recipients = rule.email.recipients
                targets.append(("email", rule.id, lambda r=rule_recipients: self.send_email_notification(alert, r)))

        return targets

    async def dispatch(self, alert: AlertResponse, log_content: Optional[str] = None) -> List[DeliveryResult]:
        """Send to all targets concurrently and wait for every one to settle. Never raises."""
        content = log_content or alert.log_content or alert.summary
        targets = self.plan(alert, content)
        if not targets:
            logger.info(f"No notification channels apply to alert {alert.id}")
            return []

        outcomes = await asyncio.gather(
            *(asyncio.to_thread(sender) for _, _, sender in targets),
            return_exceptions=True,
        )

        results: List[DeliveryResult] = []
        for (channel, target, _), outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                result = DeliveryResult(channel, target, False, str(outcome))
            else:
                result = DeliveryResult(channel, target, bool(outcome))
            if result.ok:
                logger.info(f"Alert {alert.id} delivered via {channel} ({target})")
            else:
                logger.warning(f"Alert {alert.id} delivery via {channel} ({target}) failed: {result.error or 'rejected'}")
            results.append(result)
        return results
