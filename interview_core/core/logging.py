"""Structured logging for the session engine.

structlog renders JSON in production and a colored console in debug mode.
Stdlib loggers (uvicorn, httpx, redis) are routed through the same processor
chain. Every entry gets the request's correlation id when there is one, and
the session, user and question ids bound by session_log_context(). Candidate
source code is never written to the logs, only its length.
"""

import logging
import logging.config
from contextlib import AbstractContextManager

import structlog
from asgi_correlation_id.context import correlation_id

_CODE_FIELDS = ("code", "current_code", "submitted_code")
# Session-scoped ids first so grepping a session's timeline reads left to right
_SESSION_FIELDS = ("session_id", "user_id", "question_id")


def add_correlation_id(logger, method, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def redact_code(logger, method, event_dict):
    """Replace candidate source code with its size."""
    for field in _CODE_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str):
            event_dict[field] = f"<{len(value)} chars>"
    return event_dict


def order_session_fields(logger, method, event_dict):
    """Put event, session_id, user_id and question_id ahead of other keys."""
    head = {"event": event_dict.pop("event")} if "event" in event_dict else {}
    for field in _SESSION_FIELDS:
        if field in event_dict:
            head[field] = event_dict.pop(field)
    head.update(event_dict)
    return head


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog with a stdlib bridge.

    Call before any module grabs a logger; structlog caches the processor
    chain on first use.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        redact_code,
        order_session_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "session_engine": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "session_engine",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def session_log_context(
    session_id: str, user_id: str | None = None, question_id: str | None = None
) -> AbstractContextManager:
    """Bind session identifiers for the duration of a with-block.

    Use inside the task doing session work (timer loops, evaluations); the
    bindings are restored on exit so nothing leaks into unrelated log lines.
    """
    values = {"session_id": session_id}
    if user_id:
        values["user_id"] = user_id
    if question_id:
        values["question_id"] = question_id
    return structlog.contextvars.bound_contextvars(**values)
