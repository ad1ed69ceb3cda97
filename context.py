"""Request correlation ids.

`RequestContextMiddleware` stores a correlation id in a ContextVar so log
records can carry it without threading the request through every call. The
id is taken from an incoming `X-Request-ID` header when present and echoed
back on the response.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        id_token = request_id.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id.reset(id_token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the current request id ("-" outside a request)"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id.get() or "-"
        return True
