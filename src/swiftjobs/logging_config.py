"""structlog setup for the API and the hold sweeper.

Standard-library loggers (``logging.getLogger(__name__)`` in every module) are
rendered through structlog, so request-scoped context such as ``trace_id``,
``user_id`` and ``job_id`` lands on every line.
"""

import logging
import sys

import structlog

from swiftjobs import __version__

SERVICE_NAME = "swiftjobs-api"

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "aiosqlite")


def _add_service(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route all logging through structlog.

    Args:
        log_level: debug/info/warning/error.
        json_output: JSON lines for deployments; coloured console when running locally.
    """
    pre_chain = _pre_chain()
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, user_id: str | None = None) -> None:
    ctx = {"trace_id": trace_id}
    if user_id:
        ctx["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**ctx)


def bind_job_context(job_id: str) -> None:
    """Attach the job being operated on to every log line of this request."""
    structlog.contextvars.bind_contextvars(job_id=job_id)


def job_log_context(job_id: str, **extra):
    """Scoped job context for work outside a request (the hold sweeper)."""
    return structlog.contextvars.bound_contextvars(job_id=job_id, **extra)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
