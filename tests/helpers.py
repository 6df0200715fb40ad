"""Builders for fake HTTP responses and Graylog payloads."""

from datetime import datetime, timezone
from typing import Any, Dict, List
from unittest.mock import MagicMock


def make_response(status_code: int = 200, json_data: Any = None) -> MagicMock:
    """A stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data if json_data is not None else {}
    return response


def graylog_message(msg_id: str, ts: str, message: str = "hello", host: str = "web-01") -> Dict[str, Any]:
    return {"index": "graylog_0", "message": {"_id": msg_id, "timestamp": ts, "source": host, "message": message}}


def graylog_body(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"messages": messages, "total_results": len(messages)}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
