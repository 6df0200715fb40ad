"""
Client for the Graylog REST API.

Search failures are classified so callers can tell a rejected credential
(AuthenticationError, never retried automatically) from a network or server
problem (TransportError, which the poller retries).
"""

import logging
import time
from typing import List, Optional

import requests
from requests.auth import HTTPBasicAuth

from logguard.core.config import settings
from logguard.core.exceptions import AuthenticationError, ConfigurationError, TransportError
from logguard.schemas.config import GraylogConfig
from logguard.schemas.log import LogEntry
from logguard.services.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/search/universal/relative"
SYSTEM_PATH = "/api/system"
PAGE_SIZE = 50


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class GraylogClient:

    def __init__(
        self,
        config: GraylogConfig,
        metrics: Optional[PerformanceMetrics] = None,
        timeout: float = settings.HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not config.url:
            raise ConfigurationError("Graylog url cannot be empty.")
        self.base_url = config.url.rstrip("/")
        self.metrics = metrics
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Requested-By": "LogGuard-AI",
        })
        self.auth_mode = self._configure_auth(config)

    def _configure_auth(self, config: GraylogConfig) -> str:
        """Bearer token wins over basic auth; the two are never sent together."""
        if config.api_token and config.api_token.strip():
            self.session.headers["Authorization"] = f"Bearer {config.api_token.strip()}"
            logger.info("Using API token authentication for Graylog")
            return "bearer"
        if config.username and config.password:
            self.session.auth = HTTPBasicAuth(config.username, config.password)
            logger.info(f"Using basic authentication for Graylog with username: {config.username}")
            return "basic"
        logger.warning("No Graylog credentials configured, requests will be unauthenticated")
        return "none"

    def _record(self, endpoint: str, method: str, status: int, duration_ms: float) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_api_call(endpoint, method, status, duration_ms, _is_success(status))
        except Exception as e:
            logger.warning(f"Failed to record metrics for {method} {endpoint}: {e}")

    def _get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        start = time.perf_counter()
        status = 0
        try:
            response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
            status = response.status_code
            return response
        finally:
            self._record(path, "GET", status, (time.perf_counter() - start) * 1000)

    def search(self, query: str = "*", time_range: int = 300) -> List[LogEntry]:
        """
        Run a relative search over the last ``time_range`` seconds.

        Returns at most PAGE_SIZE entries, newest first. An empty result is not
        an error.
        """
        params = {
            "query": query or "*",
            "range": str(int(time_range)),
            "limit": str(PAGE_SIZE),
            "sort": "timestamp:desc",
        }
        try:
            response = self._get(SEARCH_PATH, params=params)
        except requests.exceptions.RequestException as e:
            raise TransportError("graylog", f"Search request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("graylog")
        if not _is_success(response.status_code):
            raise TransportError(
                "graylog",
                f"Search failed: {response.status_code} - {getattr(response, 'reason', '')}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError("graylog", "Search returned a non-JSON body") from e

        messages = data.get("messages") if isinstance(data, dict) else None
        entries = [LogEntry.from_graylog(m) for m in (messages or []) if isinstance(m, dict)]
        logger.debug(f"Graylog search '{params['query']}' over {params['range']}s returned {len(entries)} entries")
        return entries[:PAGE_SIZE]

    def test_connection(self) -> bool:
        """Call the system endpoint. Never raises."""
        logger.info(f"Testing Graylog connection to {self.base_url} (auth: {self.auth_mode})")
        try:
            response = self._get(SYSTEM_PATH)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error testing Graylog connection: {e}")
            return False

        if _is_success(response.status_code):
            logger.info("Graylog connection successful")
            return True
        if response.status_code == 401:
            logger.error("Graylog authentication failed - Invalid credentials")
        else:
            logger.error(f"Graylog connection failed: {response.status_code}")
        return False
