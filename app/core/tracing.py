# app/core/tracing.py - OpenTelemetry spans, request trace ids and structured logging

import os
import socket
import sys
import json
import random
import traceback
from datetime import datetime, timezone
from typing import Optional, Dict
from loguru import logger
from contextvars import ContextVar

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME as RESOURCE_SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from app.core.config import settings

SERVICE_NAME = "taskboard-api"
SERVICE_VERSION = "1.0.0"
TRACE_HEADER = b"x-trace-id"
UNTRACED_URLS = "/health,/docs,/redoc,/openapi.json"

# Context variables carrying the current request's trace context
_trace_id_context: ContextVar[str] = ContextVar('trace_id', default='no-trace')
_span_id_context: ContextVar[str] = ContextVar('span_id', default='no-span')

# Set by configure_tracer_provider(); None means local trace ids only
_tracer = None
_tracer_provider = None


def generate_trace_id() -> str:
    """Generate a 128-bit trace ID as 32-character hex string"""
    return f"{random.getrandbits(128):032x}"


def generate_span_id() -> str:
    """Generate a 64-bit span ID as 16-character hex string"""
    return f"{random.getrandbits(64):016x}"


def _span_ids(span) -> tuple[str, str]:
    span_context = span.get_span_context()
    return f"{span_context.trace_id:032x}", f"{span_context.span_id:016x}"


class TracingMiddleware:
    """
    Pure ASGI middleware giving every HTTP request a trace context.

    With a tracer configured the ids come from the active OpenTelemetry span
    (the FastAPI instrumentation's, or one started here); otherwise local
    random ids are used. The trace id is returned in the X-Trace-Id header.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if _tracer is None:
            await self._run(generate_trace_id(), generate_span_id(), scope, receive, send)
            return

        current_span = trace.get_current_span()
        if current_span.get_span_context().is_valid:
            await self._run(*_span_ids(current_span), scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "unknown")
        with _tracer.start_as_current_span(f"{method} {path}") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("http.url", path)
            span.set_attribute("http.scheme", scope.get("scheme", "http"))
            await self._run(*_span_ids(span), scope, receive, send)

    async def _run(self, trace_id: str, span_id: str, scope, receive, send):
        trace_token = _trace_id_context.set(trace_id)
        span_token = _span_id_context.set(span_id)

        async def send_with_trace(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((TRACE_HEADER, trace_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_trace)
        finally:
            _trace_id_context.reset(trace_token)
            _span_id_context.reset(span_token)


def configure_tracer_provider() -> TracerProvider:
    """Create the service TracerProvider with the exporters enabled in settings"""
    global _tracer, _tracer_provider

    resource = Resource.create({
        RESOURCE_SERVICE_NAME: SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "service.environment": settings.ENVIRONMENT,
        "service.instance.id": f"{SERVICE_NAME}-{settings.ENVIRONMENT}"
    })
    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    if settings.ENABLE_OTEL_CONSOLE_EXPORT:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("✅ Console span exporter enabled")

    if settings.ENABLE_EXTERNAL_TRACING:
        provider.add_span_processor(BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT, insecure=True)
        ))
        logger.info(f"✅ OTLP exporter enabled: {settings.OTLP_ENDPOINT}")

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    _tracer = provider.get_tracer(__name__)
    return provider


def instrument_database(db_engine) -> bool:
    """Emit a span per SQL statement; needs configure_tracer_provider() first"""
    if _tracer_provider is None:
        return False

    SQLAlchemyInstrumentor().instrument(
        engine=getattr(db_engine, "sync_engine", db_engine),
        tracer_provider=_tracer_provider,
    )
    logger.info("✅ SQLAlchemy instrumented")
    return True


def setup_tracing(app, db_engine=None) -> bool:
    """
    Install the tracing middleware and logging sinks, then OpenTelemetry when
    ENABLE_OTEL_EXPORTER is set. Returns True when spans are being recorded.
    """
    app.add_middleware(TracingMiddleware)
    setup_structured_logging(enable_json=settings.should_use_json_logging)

    setup_logger = logger.bind(trace_id=generate_trace_id(), span_id=generate_span_id())
    if not settings.ENABLE_OTEL_EXPORTER:
        setup_logger.info("📍 OpenTelemetry disabled in config - using local trace IDs only")
        return False

    setup_logger.info("🔧 Setting up OpenTelemetry tracing...")
    provider = configure_tracer_provider()
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls=UNTRACED_URLS)
    setup_logger.info("✅ FastAPI instrumented")

    if db_engine is not None:
        instrument_database(db_engine)

    setup_logger.info("🎉 OpenTelemetry tracing setup complete")
    return True


def format_stack_trace(exception_info) -> Optional[str]:
    """Format exception stack trace for logging"""
    if not exception_info:
        return None

    if exception_info.traceback:
        return ''.join(traceback.format_exception(
            exception_info.type,
            exception_info.value,
            exception_info.traceback
        ))
    return str(exception_info.value)


def _json_sink_factory():
    hostname = socket.gethostname()
    pid = os.getpid()
    environment = settings.ENVIRONMENT

    def json_sink(message):
        """Write one JSON document per log record to stderr"""
        record = message.record
        extra = record["extra"]
        trace_id = extra.get("trace_id") or _trace_id_context.get()
        span_id = extra.get("span_id") or _span_id_context.get()

        log_entry = {
            "@timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "service": {
                "name": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "environment": environment,
            },
            "host": {"hostname": hostname},
            "process": {"pid": pid},
            "log": {
                "origin": {
                    "file": {"name": record["file"].name, "line": record["line"]},
                    "function": record["function"]
                },
                "logger": record["name"]
            },
            "trace": {"id": trace_id, "span_id": span_id},
        }

        custom = {k: v for k, v in extra.items() if k not in ("trace_id", "span_id")}
        if custom:
            log_entry["custom"] = custom

        if record["exception"]:
            log_entry["error"] = {
                "type": record["exception"].type.__name__ if record["exception"].type else "UnknownError",
                "message": str(record["exception"].value),
                "stack_trace": format_stack_trace(record["exception"]),
            }

        sys.stderr.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
        sys.stderr.flush()

    return json_sink


def setup_structured_logging(enable_json: bool = None):
    """Replace loguru's default sink with a JSON or human-readable one"""
    if enable_json is None:
        enable_json = settings.should_use_json_logging

    logger.remove()

    if enable_json:
        logger.add(_json_sink_factory(), level=settings.LOG_LEVEL, enqueue=True, catch=True)
        return

    def format_with_trace(record):
        trace_id = record["extra"].get("trace_id") or _trace_id_context.get()
        trace_info = f" [trace:{trace_id[:8]}]" if trace_id != "no-trace" else ""
        return (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}:{function}:{line}</cyan>" + trace_info + " - <level>{message}</level>\n{exception}"
        )

    logger.add(
        sys.stderr,
        format=format_with_trace,
        level=settings.LOG_LEVEL,
        colorize=True,
        enqueue=True,
        catch=True
    )


def get_current_trace_span_ids() -> tuple[str, str]:
    """Get current trace_id and span_id, generating local ones outside a request"""
    trace_id = _trace_id_context.get()
    span_id = _span_id_context.get()
    if trace_id != "no-trace" and span_id != "no-span":
        return trace_id, span_id

    trace_id = generate_trace_id()
    span_id = generate_span_id()
    _trace_id_context.set(trace_id)
    _span_id_context.set(span_id)
    return trace_id, span_id


def get_current_trace_id() -> str:
    """Get current trace ID"""
    trace_id, _ = get_current_trace_span_ids()
    return trace_id


def get_trace_context() -> Dict[str, str]:
    """Get trace context"""
    trace_id, span_id = get_current_trace_span_ids()
    return {"trace_id": trace_id, "span_id": span_id}


def log_with_trace(level: str, message: str, **kwargs):
    """Log with the current trace context bound to the record"""
    trace_id, span_id = get_current_trace_span_ids()
    bound = logger.bind(trace_id=trace_id, span_id=span_id, **kwargs)
    try:
        log_func = getattr(bound, level.lower())
    except AttributeError:
        logger.error(f"Invalid log level: {level}")
        return
    log_func(message)


# Convenience functions
def info(message: str, **kwargs):
    """Log info with trace context"""
    log_with_trace("info", message, **kwargs)


def warning(message: str, **kwargs):
    """Log warning with trace context"""
    log_with_trace("warning", message, **kwargs)


def error(message: str, **kwargs):
    """Log error with trace context"""
    log_with_trace("error", message, **kwargs)


__all__ = [
    'setup_tracing', 'setup_structured_logging', 'TracingMiddleware',
    'get_current_trace_span_ids', 'get_current_trace_id', 'get_trace_context',
    'configure_tracer_provider', 'instrument_database', 'log_with_trace', 'info', 'warning', 'error'
]
