"""
Persisted application configuration and notification-rule management.
"""

import logging
import threading
from typing import List

from pydantic import ValidationError

from logguard.core.exceptions import RuleNotFoundError
from logguard.schemas.config import AppConfig, NotificationRule, NotificationRuleCreate
from logguard.services.storage_service import KeyValueStore, CONFIG_KEY

logger = logging.getLogger(__name__)


class ConfigService:

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._lock = threading.Lock()

    def load_config(self) -> AppConfig:
        """Stored config merged over the defaults. Falls back to defaults if unreadable."""
        data = self.store.get(CONFIG_KEY)
        if data:
            try:
                return AppConfig.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Stored configuration is invalid, using defaults: {e}")
        return AppConfig()

    def save_config(self, config: AppConfig) -> AppConfig:
        self.store.set(CONFIG_KEY, config.model_dump(mode="json"))
        logger.info("Configuration saved")
        return config

    def reset_config(self) -> AppConfig:
        self.store.delete(CONFIG_KEY)
        logger.info("Configuration reset to defaults")
        return AppConfig()

    # ── Notification rules ───────────────────────────────────
    def list_rules(self) -> List[NotificationRule]:
        return self.load_config().notifications.rules

    def add_rule(self, data: NotificationRuleCreate) -> NotificationRule:
        rule = NotificationRule(**data.model_dump())
        with self._lock:
            config = self.load_config()
            config.notifications.rules.append(rule)
            self.save_config(config)
        logger.info(f"Notification rule '{rule.name}' ({rule.id}) created")
        return rule

    def update_rule(self, rule_id: str, data: NotificationRuleCreate) -> NotificationRule:
        with self._lock:
            config = self.load_config()
            for index, existing in enumerate(config.notifications.rules):
                if existing.id == rule_id:
                    rule = NotificationRule(id=rule_id, **data.model_dump())
                    config.notifications.rules[index] = rule
                    self.save_config(config)
                    logger.info(f"Notification rule {rule_id} updated")
                    return rule
        raise RuleNotFoundError(rule_id)

    def delete_rule(self, rule_id: str) -> None:
        with self._lock:
            config = self.load_config()
            remaining = [r for r in config.notifications.rules if r.id != rule_id]
            if len(remaining) == len(config.notifications.rules):
                raise RuleNotFoundError(rule_id)
            config.notifications.rules = remaining
            self.save_config(config)
        logger.info(f"Notification rule {rule_id} deleted")
