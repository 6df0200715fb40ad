import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from logguard.api.deps import get_container
from logguard.core.container import ServiceContainer
from logguard.schemas.conversation import AIResponse, EmailWebhook, IncomingMessage, ReplyResult, TelegramWebhook
from logguard.services.reply_service import incoming_from_email, incoming_from_telegram

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/conversations/messages", response_model=List[IncomingMessage], tags=["Conversations"])
def list_messages(container: ServiceContainer = Depends(get_container)):
    """Incoming operator messages, newest first"""
    return container.reply_correlator().list_incoming()


@router.get("/conversations/responses", response_model=List[AIResponse], tags=["Conversations"])
def list_responses(
    alert_id: Optional[str] = Query(None, description="Only responses correlated with this alert"),
    container: ServiceContainer = Depends(get_container),
):
    correlator = container.reply_correlator()
    if alert_id:
        return correlator.responses_for_alert(alert_id)
    return correlator.list_responses()


@router.post("/webhooks/telegram", response_model=Optional[ReplyResult], tags=["Webhooks"])
def telegram_webhook(update: TelegramWebhook, container: ServiceContainer = Depends(get_container)):
    """Bot API update endpoint. Updates without text are acknowledged and ignored."""
    message = incoming_from_telegram(update.model_dump())
    if message is None:
        logger.info(f"Ignoring Telegram update {update.update_id} without text")
        return None
    correlator = container.reply_correlator()
    correlator.record_incoming(message)
    return ReplyResult(incoming=message, response=correlator.process_reply(message))


@router.post("/webhooks/email", response_model=ReplyResult, tags=["Webhooks"])
def email_webhook(payload: EmailWebhook, container: ServiceContainer = Depends(get_container)):
    message = incoming_from_email(payload)
    correlator = container.reply_correlator()
    correlator.record_incoming(message)
    return ReplyResult(incoming=message, response=correlator.process_reply(message))
