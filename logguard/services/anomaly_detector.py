import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from logguard.core.config import settings
from logguard.core.exceptions import AuthenticationError, ConfigurationError, LogGuardError, TransportError
from logguard.schemas.alert import AlertSeverity, AnalysisResult
from logguard.schemas.config import LLMConfig
from logguard.services import prompts
from logguard.services.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/api/chat/completions"
MODELS_PATH = "/api/models"
DEFAULT_ESCALATION_THRESHOLD = 70


def heuristic_fallback(log_message: str) -> AnalysisResult:
    """Deterministic local guess used when the model output cannot be parsed."""
    lowered = (log_message or "").lower()
    return AnalysisResult(
        is_anomalous="error" in lowered or "failed" in lowered,
        severity=AlertSeverity.WARNING,
        summary="Log analysis completed with basic pattern matching",
        suggestion="Review the log manually for potential issues",
        confidence=50,
    )


def unavailable_result() -> AnalysisResult:
    """Returned when the model could not be reached at all."""
    return AnalysisResult(
        is_anomalous=False,
        severity=AlertSeverity.INFO,
        summary="Unable to analyze log with AI",
        suggestion="Manual review recommended",
        confidence=0,
    )


def should_escalate(result: AnalysisResult, threshold: int = DEFAULT_ESCALATION_THRESHOLD) -> bool:
    return result.is_anomalous and result.confidence > threshold


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, (int, float)):
        return value != 0
    raise TypeError(f"Cannot interpret {value!r} as a boolean")


def _strip_fences(text: str) -> str:
    clean = text.strip()
    if clean.startswith("```"):
        parts = clean.split("```")
        if len(parts) >= 2:
            clean = parts[1]
            if clean.startswith("json"):
                clean = clean[4:]
    clean = clean.strip()
    # Some models wrap the object in prose
    if not clean.startswith("{") and "{" in clean and "}" in clean:
        clean = clean[clean.index("{"):clean.rindex("}") + 1]
    return clean


def _content_text(content: Any) -> Optional[str]:
    """Flatten a message content field; lists of content parts are joined."""
    if content is None or isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    raise TransportError("llm", f"Completion content is not text: {type(content).__name__}")


class LogAnomalyDetector:
    """
    Asks an OpenWebUI-compatible chat completion endpoint whether a log line
    is anomalous.

    analyze() never raises: unparseable model output degrades to the keyword
    heuristic (confidence 50) and an unreachable model yields a "no analysis"
    result (confidence 0), so callers can tell the two apart.
    """

    def __init__(
        self,
        config: LLMConfig,
        metrics: Optional[PerformanceMetrics] = None,
        timeout: float = settings.HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not config.url:
            raise ConfigurationError("LLM url cannot be empty.")
        self.base_url = config.url.rstrip("/")
        self.model = config.model
        self.language = config.language
        self.metrics = metrics
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        })

    def _record(self, endpoint: str, method: str, status: int, duration_ms: float) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_api_call(endpoint, method, status, duration_ms, 200 <= status < 300)
        except Exception as e:
            logger.warning(f"Failed to record metrics for {method} {endpoint}: {e}")

    def test_connection(self) -> bool:
        start = time.perf_counter()
        status = 0
        try:
            response = self.session.get(f"{self.base_url}{MODELS_PATH}", timeout=self.timeout)
            status = response.status_code
            return 200 <= status < 300
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM connection test failed: {e}")
            return False
        finally:
            self._record(MODELS_PATH, "GET", status, (time.perf_counter() - start) * 1000)

    def complete(self, system: str, user: str, temperature: float, max_tokens: int) -> Optional[str]:
        """
        Run one chat completion and return the text of the first choice.

        Raises AuthenticationError on 401 and TransportError on any other
        network or HTTP failure, or when the body has no choices.
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        start = time.perf_counter()
        status = 0
        try:
            response = self.session.post(f"{self.base_url}{CHAT_COMPLETIONS_PATH}", json=payload, timeout=self.timeout)
            status = response.status_code
        except requests.exceptions.RequestException as e:
            raise TransportError("llm", f"Could not connect to model API at {self.base_url}: {e}") from e
        finally:
            self._record(CHAT_COMPLETIONS_PATH, "POST", status, (time.perf_counter() - start) * 1000)

        if status == 401:
            raise AuthenticationError("llm")
        if not 200 <= status < 300:
            raise TransportError("llm", f"HTTP error! status: {status}", status_code=status)

        try:
            data: Dict[str, Any] = response.json()
            message = data["choices"][0].get("message") or {}
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise TransportError("llm", f"Malformed completion body: {e}") from e
        return _content_text(message.get("content"))

    def _parse_verdict(self, text: Optional[str]) -> Optional[AnalysisResult]:
        if not text or not isinstance(text, str):
            return None
        try:
            data = json.loads(_strip_fences(text))
            if not isinstance(data, dict):
                return None
            confidence = int(float(data["confidence"]))
            return AnalysisResult(
                is_anomalous=_as_bool(data["isAnomalous"]),
                severity=data["severity"],
                summary=str(data.get("summary", "")),
                suggestion=str(data.get("suggestion", "")),
                confidence=min(max(confidence, 0), 100),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Could not parse model verdict: {e}. Raw: {text[:200]}")
            return None

    def analyze(self, log_message: str, host: str, timestamp: str) -> AnalysisResult:
        try:
            text = self.complete(
                system=prompts.analysis_system_prompt(self.language),
                user=prompts.analysis_user_prompt(log_message, host, timestamp, self.language),
                temperature=0.3,
                max_tokens=500,
            )
        except LogGuardError as e:
            logger.error(f"AI analysis failed: {e}")
            return unavailable_result()
        except Exception as e:
            logger.error(f"Unexpected error during AI analysis: {e}", exc_info=True)
            return unavailable_result()

        verdict = self._parse_verdict(text)
        if verdict is None:
            logger.info("Falling back to heuristic analysis")
            return heuristic_fallback(log_message)
        return verdict
