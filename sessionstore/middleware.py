import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("sessionstore")

REQUEST_ID_HEADER = "X-Request-ID"
INSTANCE_HEADER = "X-Instance"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each response with a request id and the instance that served it.

    An incoming ``X-Request-ID`` from the event-ingestion layer is kept so a
    single id follows the call across services.
    """

    def __init__(self, app, instance: str = ""):
        super().__init__(app)
        self.instance = instance

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        if self.instance:
            response.headers[INSTANCE_HEADER] = self.instance

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d in %.1fms [req=%s instance=%s]",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
            request_id,
            self.instance or "-",
        )
        return response


def setup_logging(level: str = "INFO", instance: str = ""):
    log_level = getattr(logging, level.upper(), logging.INFO)
    prefix = f"[{instance}] " if instance else ""
    logging.basicConfig(level=log_level, format=f"%(asctime)s {prefix}%(levelname)s %(name)s: %(message)s")
    logging.getLogger("sessionstore").setLevel(log_level)
    # engine echo is far too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(max(log_level, logging.WARNING))
