"""
Structured logging with correlation IDs and short, bounded log lines.
"""
import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from fastapi import Request

REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Request correlation context
request_id: ContextVar[str] = ContextVar('request_id', default="")
request_context: ContextVar[Dict[str, Any]] = ContextVar('request_context', default={})

class TruncatingProcessor:
    """Keep event payloads short."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in ('message', 'error', 'client_note'):
            if key in event_dict and event_dict[key] is not None:
                event_dict[key] = str(event_dict[key])[:self.max_length]
        return event_dict

class CorrelationProcessor:
    """Add correlation ID and request context to all logs."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = request_id.get("")
        if correlation_id:
            event_dict['correlation_id'] = correlation_id

        context = request_context.get({})
        if context:
            for key, value in context.items():
                event_dict.setdefault(key, value)

        return event_dict

def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    """Configure structured logging for the application."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        CorrelationProcessor(),
        TruncatingProcessor(max_length=max_log_length),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=log_level, format="%(message)s")
    logging.getLogger().setLevel(log_level)

def get_logger(name: str = __name__):
    """Get a structured logger instance."""
    return structlog.get_logger(name)

def set_correlation_id(correlation_id: str):
    request_id.set(correlation_id)

def set_request_context(endpoint: Optional[str] = None, method: Optional[str] = None, **kwargs):
    """Set request context for current request."""
    context = {}
    if endpoint:
        context['endpoint'] = endpoint
    if method:
        context['method'] = method
    context.update(kwargs)
    request_context.set(context)

def clear_context():
    request_id.set("")
    request_context.set({})

class LoggingMiddleware:
    """FastAPI middleware for request logging with correlation IDs."""

    def __init__(self, log_requests: bool = False, log_responses: bool = False,
                 slow_threshold: float = 2.0):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.slow_threshold = slow_threshold
        self.logger = get_logger("middleware")

    async def __call__(self, request: Request, call_next):
        # Only echo caller-supplied ids that are short and header-safe
        supplied = request.headers.get("X-Request-ID", "")
        correlation_id = supplied if REQUEST_ID_RE.match(supplied) else str(uuid.uuid4())[:8]
        set_correlation_id(correlation_id)
        set_request_context(endpoint=request.url.path, method=request.method)
        request.state.correlation_id = correlation_id

        started = time.perf_counter()

        if self.log_requests:
            self.logger.info(
                "request_start",
                path=request.url.path,
                method=request.method,
                query_params=dict(request.query_params)
            )

        try:
            response = await call_next(request)
            duration = time.perf_counter() - started

            slow = duration > self.slow_threshold
            if self.log_responses or slow or response.status_code >= 400:
                self.logger.info(
                    "request_complete",
                    status_code=response.status_code,
                    duration=round(duration, 3),
                    slow=slow
                )

            response.headers["X-Request-ID"] = correlation_id
            return response

        except Exception as e:
            duration = time.perf_counter() - started
            self.logger.error(
                "request_error",
                error=str(e),
                duration=round(duration, 3),
                error_type=type(e).__name__
            )
            raise
        finally:
            clear_context()
