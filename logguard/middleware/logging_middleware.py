from fastapi import Request
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

REDACTED_HEADERS = {"authorization", "cookie", "x-api-key"}


def redact_headers(headers) -> dict:
    return {
        name: ("***" if name.lower() in REDACTED_HEADERS else value)
        for name, value in headers.items()
    }


async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url.path}")
    logger.debug(f"Headers: {redact_headers(request.headers)}")

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    logger.info(f"Response: {request.method} {request.url.path} {response.status_code} (took {process_time:.2f}ms)")

    return response
