from logguard.models.alert import Alert
from logguard.models.kv_store import KeyValue

__all__ = ["Alert", "KeyValue"]
