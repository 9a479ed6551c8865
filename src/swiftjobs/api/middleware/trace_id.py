"""X-Trace-Id propagation."""

import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from swiftjobs.logging_config import bind_request_context, clear_request_context
from swiftjobs.services.id_generator import generate_id

TRACE_HEADER = "X-Trace-Id"

# Caller-supplied ids are echoed into logs and headers
_ACCEPTED_TRACE_ID = re.compile(r"^[A-Za-z0-9_.:-]{8,64}$")


def resolve_trace_id(incoming: str | None) -> str:
    if incoming and _ACCEPTED_TRACE_ID.match(incoming):
        return incoming
    return generate_id("trc_")


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = resolve_trace_id(request.headers.get(TRACE_HEADER))
        request.state.trace_id = trace_id

        clear_request_context()
        bind_request_context(trace_id)
        response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response
