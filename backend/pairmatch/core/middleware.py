"""
FastAPI middleware for request context and logging
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from pairmatch.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PARTICIPANT_HEADER = "X-Participant-Id"


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every log line written while handling a request with its request id
    and, when the caller identified itself, its participant id.

    The request id is taken from X-Request-ID if the client sent one and is
    echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}
        participant_id = request.headers.get(PARTICIPANT_HEADER)
        if participant_id:
            context["participant_id"] = participant_id

        with LoggingConfig.bind(**context):
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"{request.method} {request.url.path} failed",
                    exc_info=True,
                    extra={"error_type": type(e).__name__, "duration_ms": _elapsed_ms(started)},
                )
                raise

            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"status_code": response.status_code, "duration_ms": _elapsed_ms(started)},
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
