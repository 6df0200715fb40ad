"""
Tests for the Graylog search client: authentication modes, failure
classification and call metrics.
"""

from unittest.mock import MagicMock

import pytest
import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from logguard.core.exceptions import AuthenticationError, ConfigurationError, TransportError
from logguard.schemas.config import GraylogConfig
from logguard.services.graylog_client import PAGE_SIZE, SEARCH_PATH, SYSTEM_PATH, GraylogClient
from logguard.services.metrics import PerformanceMetrics
from tests.helpers import graylog_body, graylog_message, make_response


def build_client(response=None, side_effect=None, metrics=None, **config):
    values = {"url": "http://graylog:9000/", "username": "", "password": "", "api_token": ""}
    values.update(config)
    session = requests.Session()
    session.get = MagicMock(return_value=response, side_effect=side_effect)
    return GraylogClient(GraylogConfig(**values), metrics=metrics, timeout=5, session=session)


class TestAuthentication:

    def test_token_takes_precedence_over_basic(self):
        client = build_client(api_token="  tok-123 ", username="admin", password="secret")
        assert client.auth_mode == "bearer"
        assert client.session.headers["Authorization"] == "Bearer tok-123"
        assert client.session.auth is None

    def test_basic_auth_when_no_token(self):
        client = build_client(username="admin", password="secret")
        assert client.auth_mode == "basic"
        assert isinstance(client.session.auth, HTTPBasicAuth)
        assert client.session.auth.username == "admin"
        assert "Authorization" not in client.session.headers

    def test_blank_token_is_ignored(self):
        client = build_client(api_token="   ", username="admin", password="secret")
        assert client.auth_mode == "basic"

    def test_no_credentials(self):
        client = build_client()
        assert client.auth_mode == "none"
        assert client.session.auth is None

    def test_requested_by_header_always_sent(self):
        client = build_client()
        assert client.session.headers["X-Requested-By"] == "LogGuard-AI"

    def test_empty_url_rejected_by_config(self):
        with pytest.raises(ValidationError):
            GraylogConfig(url="", username="", password="", api_token="")

    def test_blank_default_url_rejected_by_client(self):
        config = GraylogConfig.model_construct(url="", username="", password="", api_token="")
        with pytest.raises(ConfigurationError):
            GraylogClient(config)


class TestSearch:

    def test_search_sends_relative_query(self):
        client = build_client(response=make_response(200, graylog_body([])))
        client.search("source:web", 120)

        args, kwargs = client.session.get.call_args
        assert args[0] == f"http://graylog:9000{SEARCH_PATH}"
        assert kwargs["params"] == {
            "query": "source:web",
            "range": "120",
            "limit": "50",
            "sort": "timestamp:desc",
        }
        assert kwargs["timeout"] == 5

    def test_blank_query_becomes_wildcard(self):
        client = build_client(response=make_response(200, graylog_body([])))
        client.search("", 60)
        assert client.session.get.call_args.kwargs["params"]["query"] == "*"

    def test_returns_entries_in_server_order(self):
        body = graylog_body([
            graylog_message("b", "2024-01-01T00:00:12.000Z", "second"),
            graylog_message("a", "2024-01-01T00:00:10.000Z", "first"),
        ])
        client = build_client(response=make_response(200, body))

        entries = client.search()

        assert [e.id for e in entries] == ["b", "a"]
        assert entries[0].host == "web-01"
        assert entries[0].content == "second"

    def test_empty_result_is_not_an_error(self):
        client = build_client(response=make_response(200, {"messages": []}))
        assert client.search() == []

    def test_missing_messages_key(self):
        client = build_client(response=make_response(200, {"total_results": 0}))
        assert client.search() == []

    def test_result_capped_at_page_size(self):
        messages = [graylog_message(str(i), "2024-01-01T00:00:00.000Z") for i in range(PAGE_SIZE + 10)]
        client = build_client(response=make_response(200, graylog_body(messages)))
        assert len(client.search()) == PAGE_SIZE

    def test_unauthorized_raises_authentication_error(self):
        client = build_client(response=make_response(401))
        with pytest.raises(AuthenticationError):
            client.search()

    def test_server_error_raises_transport_error(self):
        client = build_client(response=make_response(500))
        with pytest.raises(TransportError) as exc_info:
            client.search()
        assert exc_info.value.status_code == 500

    def test_forbidden_is_transport_not_auth(self):
        client = build_client(response=make_response(403))
        with pytest.raises(TransportError):
            client.search()

    def test_network_failure_raises_transport_error(self):
        client = build_client(side_effect=requests.exceptions.ConnectionError("refused"))
        with pytest.raises(TransportError):
            client.search()

    def test_non_json_body_raises_transport_error(self):
        client = build_client(response=make_response(200, ValueError("not json")))
        with pytest.raises(TransportError):
            client.search()


class TestMetrics:

    def test_each_call_is_recorded(self):
        metrics = PerformanceMetrics()
        client = build_client(response=make_response(200, graylog_body([])), metrics=metrics)

        client.search()

        recorded = metrics.get_endpoint_metrics(SEARCH_PATH)
        assert len(recorded) == 1
        assert recorded[0].method == "GET"
        assert recorded[0].status == 200
        assert recorded[0].success is True

    def test_failed_call_is_recorded_as_failure(self):
        metrics = PerformanceMetrics()
        client = build_client(response=make_response(500), metrics=metrics)

        with pytest.raises(TransportError):
            client.search()

        assert metrics.get_error_rate() == 100.0

    def test_network_failure_recorded_with_status_zero(self):
        metrics = PerformanceMetrics()
        client = build_client(side_effect=requests.exceptions.Timeout("slow"), metrics=metrics)

        with pytest.raises(TransportError):
            client.search()

        assert metrics.get_endpoint_metrics(SEARCH_PATH)[0].status == 0

    def test_broken_metrics_sink_does_not_affect_search(self):
        metrics = MagicMock()
        metrics.record_api_call.side_effect = RuntimeError("sink down")
        body = graylog_body([graylog_message("a", "2024-01-01T00:00:10.000Z")])
        client = build_client(response=make_response(200, body), metrics=metrics)

        assert len(client.search()) == 1


class TestConnection:

    def test_success(self):
        client = build_client(response=make_response(200, {"version": "5.0"}))
        assert client.test_connection() is True
        assert client.session.get.call_args.args[0] == f"http://graylog:9000{SYSTEM_PATH}"

    def test_unauthorized(self):
        assert build_client(response=make_response(401)).test_connection() is False

    def test_network_failure(self):
        client = build_client(side_effect=requests.exceptions.ConnectionError("down"))
        assert client.test_connection() is False
