"""
Process logging for the API and the orchestration engine.

Records go to the console and, when the OpenTelemetry SDK is enabled, to an
OTLP log exporter; orchestration spans go to an OTLP span exporter. With
``OTEL_SDK_DISABLED`` set, a rotating local file replaces the exporters.
Each signal can be switched off on its own with ``OTEL_TRACES_EXPORTER=none``
or ``OTEL_LOGS_EXPORTER=none``.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as GrpcLogExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as HttpLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpSpanExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_PATH = os.getenv("LOG_FILE", "novablick.log")
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "novablick")

# Client libraries that log every provider request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "aiosqlite")

_HTTP_PROTOCOLS = {"http", "http/protobuf"}

# signal -> (exporter switch, protocol override, grpc exporter, http exporter)
_EXPORTERS: Dict[str, tuple[str, str, Callable[[], Any], Callable[[], Any]]] = {
    "traces": (
        "OTEL_TRACES_EXPORTER",
        "OTEL_EXPORTER_OTLP_TRACES_PROTOCOL",
        GrpcSpanExporter,
        HttpSpanExporter,
    ),
    "logs": (
        "OTEL_LOGS_EXPORTER",
        "OTEL_EXPORTER_OTLP_LOGS_PROTOCOL",
        GrpcLogExporter,
        HttpLogExporter,
    ),
}

_configured = False


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _build_exporter(signal: str) -> Optional[Any]:
    switch, protocol_key, grpc_exporter, http_exporter = _EXPORTERS[signal]
    if os.getenv(switch, "otlp").strip().lower() in {"none", "disabled"}:
        return None
    protocol = os.getenv(protocol_key) or os.getenv("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
    if protocol.strip().lower() in _HTTP_PROTOCOLS:
        return http_exporter()
    return grpc_exporter()


def _file_handler(log_path: str | Path) -> RotatingFileHandler:
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")


def _otel_handler(resource: Resource, level: str | int) -> Optional[logging.Handler]:
    tracer_provider = TracerProvider(resource=resource)
    span_exporter = _build_exporter("traces")
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tracer_provider)

    logger_provider = LoggerProvider(resource=resource)
    _logs.set_logger_provider(logger_provider)
    log_exporter = _build_exporter("logs")
    if log_exporter is None:
        return None
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    return LoggingHandler(level=level, logger_provider=logger_provider)


def setup_logging(
    *,
    service_name: Optional[str] = None,
    level: str | int = DEFAULT_LOG_LEVEL,
    log_path: str | Path = DEFAULT_LOG_PATH,
    with_console: bool = True,
) -> logging.Logger:
    """Configure the root logger once per process; later calls only adjust the level."""
    global _configured

    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return root
    _configured = True

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = []
    if with_console:
        handlers.append(logging.StreamHandler())

    otel_disabled = _env_flag("OTEL_SDK_DISABLED")
    if otel_disabled:
        handlers.append(_file_handler(log_path))
    else:
        resource = Resource.create({"service.name": service_name or DEFAULT_SERVICE_NAME})
        otel_handler = _otel_handler(resource, level)
        if otel_handler is not None:
            handlers.append(otel_handler)

    for handler in handlers:
        if not isinstance(handler, LoggingHandler):
            handler.setFormatter(formatter)
        if handler not in root.handlers:
            root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info("Logging initialized: level=%s otel=%s", level, "disabled" if otel_disabled else "enabled")
    return root


__all__ = ["setup_logging"]
