"""Render every API error as ``{"error": {code, message, details, trace_id, timestamp}}``."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from swiftjobs.errors.exceptions import AuthorizationError, SwiftJobsError
from swiftjobs.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    envelope = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "unknown"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json", exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SwiftJobsError)
    async def swiftjobs_error_handler(request: Request, exc: SwiftJobsError):
        if isinstance(exc, AuthorizationError):
            identity = getattr(request.state, "identity", None)
            logger.warning(
                "Access denied on %s %s for %s: %s",
                request.method,
                request.url.path,
                identity.user_id if identity else "anonymous",
                exc.message,
            )
        elif exc.status_code >= 500:
            logger.error("Request failed with %s: %s", exc.code, exc.message)
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [
            {"field": ".".join(str(p) for p in err["loc"][1:]) or str(err["loc"][0]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return error_response(request, 400, "VALIDATION_ERROR", "Request validation failed", fields)
