import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

TRANSLATE_PATH = "/api/translate"
HEALTH_PATHS = ("/health", "/api/health")


class RequestMetrics:
    """In-process request and translation counters for one app instance.

    Counters start at zero on every process start; they are not persisted.
    """

    def __init__(self) -> None:
        self._started = time.monotonic()
        self.last_reset = datetime.now(timezone.utc)
        self.requests: Dict[str, int] = {"total": 0, "translate": 0, "health": 0, "errors": 0}
        self.by_language: Dict[str, int] = {}
        self.translations = 0
        self.total_characters = 0
        self.total_response_ms = 0.0

    def observe_request(self, path: str, status_code: int, duration_ms: float) -> None:
        self.requests["total"] += 1
        if path == TRANSLATE_PATH:
            self.requests["translate"] += 1
        elif path in HEALTH_PATHS:
            self.requests["health"] += 1
        if status_code >= 400:
            self.requests["errors"] += 1
        self.total_response_ms += duration_ms

    def observe_translation(self, source_language: Optional[str], target_language: str, characters: int) -> None:
        pair = f"{source_language or 'auto'}_to_{target_language}"
        self.by_language[pair] = self.by_language.get(pair, 0) + 1
        self.translations += 1
        self.total_characters += characters

    def snapshot(self) -> Dict[str, Any]:
        count = self.requests["total"]
        return {
            "requests": dict(self.requests),
            "translations": {
                "total": self.translations,
                "byLanguage": dict(self.by_language),
                "totalCharacters": self.total_characters,
                "averageLength": self.total_characters / self.translations if self.translations else 0,
            },
            "performance": {
                "requestCount": count,
                "totalResponseTime": round(self.total_response_ms, 3),
                "averageResponseTime": round(self.total_response_ms / count, 3) if count else 0,
            },
            "lastReset": self.last_reset.isoformat(),
            "uptime": round(time.monotonic() - self._started, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class MetricsMiddleware(BaseHTTPMiddleware):
    """Times every request and feeds ``app.state.metrics``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.time() - start_time) * 1000
            metrics: Optional[RequestMetrics] = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.observe_request(request.url.path, status_code, duration_ms)
            logger.info(
                "Request completed: %s %s status=%d duration_ms=%.1f",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
            )
