import json
import logging
import threading
from typing import Any, Callable

from sqlalchemy.orm import Session

from logguard.models.kv_store import KeyValue

logger = logging.getLogger(__name__)

CONFIG_KEY = "logguard-config"
MESSAGES_KEY = "logguard-incoming-messages"
RESPONSES_KEY = "logguard-ai-responses"


class KeyValueStore:
    """
    JSON values stored under fixed logical keys in the ``kv_store`` table.

    Writes are serialized on ``lock``. Callers doing a read/modify/write hold
    the same (reentrant) lock around the whole sequence.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self.lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        db = self.session_factory()
        try:
            row = db.get(KeyValue, key)
            if row is None:
                return default
            return json.loads(row.value)
        except json.JSONDecodeError as e:
            logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
            return default
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self.lock:
            db = self.session_factory()
            try:
                db.merge(KeyValue(key=key, value=payload))
                db.commit()
            except Exception as e:
                logger.error(f"Error storing '{key}' in key-value store: {e}", exc_info=True)
                db.rollback()
                raise
            finally:
                db.close()

    def delete(self, key: str) -> bool:
        with self.lock:
            db = self.session_factory()
            try:
                row = db.get(KeyValue, key)
                if row is None:
                    return False
                db.delete(row)
                db.commit()
                return True
            finally:
                db.close()
