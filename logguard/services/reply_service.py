"""
Conversation loop between operators and the language model.

Inbound replies (Telegram or email) and the model's answers are kept in two
bounded lists in the key-value store, newest first. They are linked only by
the alert id carried on the incoming message; the link is advisory.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from logguard.schemas.config import TelegramConfig
from logguard.schemas.conversation import AIResponse, EmailWebhook, IncomingMessage, make_id
from logguard.services import prompts
from logguard.services.anomaly_detector import LogAnomalyDetector
from logguard.services.notification_service import MailTransport, TelegramSender
from logguard.services.storage_service import KeyValueStore, MESSAGES_KEY, RESPONSES_KEY

logger = logging.getLogger(__name__)

MAX_INCOMING_MESSAGES = 100
MAX_AI_RESPONSES = 50
REPLY_CONFIDENCE = 85

_ALERT_ID_RE = re.compile(r"Alert ID:\s*`?([A-Za-z0-9_\-]+)`?")


def extract_alert_id(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = _ALERT_ID_RE.search(text)
    return match.group(1) if match else None


def incoming_from_telegram(update: Dict[str, Any]) -> Optional[IncomingMessage]:
    """Build an IncomingMessage from a Bot API update; None if it carries no text."""
    message = update.get("message") or {}
    text = message.get("text")
    chat_id = (message.get("chat") or {}).get("id")
    if not text or chat_id is None:
        return None
    replied_to = (message.get("reply_to_message") or {}).get("text")
    return IncomingMessage(
        id=make_id("tg"),
        source="telegram",
        sender=str(chat_id),
        message=text,
        related_alert_id=extract_alert_id(replied_to) or extract_alert_id(text),
    )


def incoming_from_email(payload: EmailWebhook) -> IncomingMessage:
    return IncomingMessage(
        id=make_id("email"),
        source="email",
        sender=payload.sender,
        message=payload.message,
        related_alert_id=payload.alert_id or extract_alert_id(payload.message),
    )


class BoundedList:
    """A newest-first list persisted under one key, trimmed to ``capacity``."""

    def __init__(self, store: KeyValueStore, key: str, capacity: int):
        self.store = store
        self.key = key
        self.capacity = capacity

    def prepend(self, item: Dict[str, Any]) -> None:
        # Every list sharing the store shares its lock
        with self.store.lock:
            items = self.load()
            items.insert(0, item)
            del items[self.capacity:]
            self.store.set(self.key, items)

    def load(self) -> List[Dict[str, Any]]:
        items = self.store.get(self.key, [])
        return items if isinstance(items, list) else []


class ReplyCorrelator:

    def __init__(
        self,
        store: KeyValueStore,
        detector: LogAnomalyDetector,
        telegram_config: Optional[TelegramConfig] = None,
        telegram: Optional[TelegramSender] = None,
        mail_transport: Optional[MailTransport] = None,
        alert_lookup: Optional[Callable[[str], Optional[str]]] = None,
    ):
        self.detector = detector
        self.telegram_config = telegram_config or TelegramConfig()
        self.telegram = telegram
        self.mail_transport = mail_transport
        self.alert_lookup = alert_lookup
        self._incoming = BoundedList(store, MESSAGES_KEY, MAX_INCOMING_MESSAGES)
        self._responses = BoundedList(store, RESPONSES_KEY, MAX_AI_RESPONSES)

    # ── Stores ───────────────────────────────────────────────
    def record_incoming(self, message: IncomingMessage) -> None:
        self._incoming.prepend(message.model_dump(mode="json"))
        logger.info(f"{message.source} message received from {message.sender} (alert: {message.related_alert_id or 'none'})")

    def record_response(self, response: AIResponse) -> None:
        self._responses.prepend(response.model_dump(mode="json"))

    @staticmethod
    def _parse_all(model, items: List[Dict[str, Any]]) -> list:
        parsed = []
        for item in items:
            try:
                parsed.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed stored {model.__name__}: {e}")
        return parsed

    def list_incoming(self) -> List[IncomingMessage]:
        return self._parse_all(IncomingMessage, self._incoming.load())

    def list_responses(self) -> List[AIResponse]:
        return self._parse_all(AIResponse, self._responses.load())

    def responses_for_alert(self, alert_id: str) -> List[AIResponse]:
        return [r for r in self.list_responses() if r.alert_id == alert_id]

    def responses_for_message(self, message: IncomingMessage) -> List[AIResponse]:
        return self.responses_for_alert(message.related_alert_id or "unknown")

    # ── Reply loop ───────────────────────────────────────────
    def build_prompt(self, message: IncomingMessage) -> str:
        alert_context = None
        if message.related_alert_id and self.alert_lookup is not None:
            try:
                alert_context = self.alert_lookup(message.related_alert_id)
            except Exception as e:
                logger.warning(f"Could not load context for alert {message.related_alert_id}: {e}")
        return prompts.reply_user_prompt(
            sender=message.sender,
            source=message.source,
            timestamp=message.timestamp,
            message=message.message,
            related_alert_id=message.related_alert_id,
            language=self.detector.language,
            alert_context=alert_context,
        )

    def process_reply(self, message: IncomingMessage) -> Optional[AIResponse]:
        """Ask the model for an answer, store it and relay it. Returns None on any failure."""
        try:
            text = self.detector.complete(
                system=prompts.reply_system_prompt(self.detector.language),
                user=self.build_prompt(message),
                temperature=0.7,
                max_tokens=800,
            )
            if not isinstance(text, str) or not text.strip():
                raise ValueError("Model returned an empty reply")

            response = AIResponse(
                alert_id=message.related_alert_id or "unknown",
                user_message=message.message,
                ai_response=text.strip(),
                confidence=REPLY_CONFIDENCE,
            )
            self.record_response(response)
        except Exception as e:
            logger.error(f"Failed to process incoming message {message.id}: {e}")
            return None

        self.relay(message, response.ai_response)
        return response

    def relay(self, original: IncomingMessage, text: str) -> bool:
        """Send the answer back over the channel the message came from. Failures are only logged."""
        try:
            if original.source == "telegram":
                if self.telegram is None or not self.telegram_config.bot_token:
                    logger.warning(f"No Telegram bot configured, AI response to {original.sender} not relayed")
                    return False
                return self.telegram.send_message(self.telegram_config.bot_token, original.sender, text)
            if original.source == "email":
                if self.mail_transport is None:
                    logger.warning(f"No mail transport configured, AI response to {original.sender} not relayed")
                    return False
                subject = "Re: LogGuard AI Alert"
                if original.related_alert_id:
                    subject += f" {original.related_alert_id}"
                self.mail_transport.send([original.sender], subject, text)
                return True
        except Exception as e:
            logger.error(f"Failed to send AI response to {original.sender}: {e}")
        return False
