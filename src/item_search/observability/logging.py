"""JSON log lines for index builds and queries, correlated with the active trace.

Every record carries the trace/span ids of the current context and, while a
session-scoped read is running, the session key. Values passed through
``extra=`` (build stats, query text) are emitted as top-level JSON fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as GrpcOTLPLogExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as HttpOTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
import orjson

from item_search.config import ObservabilityCollectorConfig
from item_search.observability.context import get_trace_context


PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes every LogRecord has; anything else on a record came from ``extra=``
_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One orjson-encoded object per record."""

    MAX_MESSAGE_LEN = 2000
    MAX_FIELD_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_trace_context()
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }
        if "." in record.name:
            entry["component"] = record.name.rsplit(".", 1)[-1]
        if session := ctx.get("session"):
            entry["session"] = session
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key in _RECORD_FIELDS or key.startswith("_"):
                continue
            entry[key] = _clip(value, self.MAX_FIELD_LEN) if isinstance(value, str) else value

        return orjson.dumps(entry, default=_encode_fallback).decode("utf-8")


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _encode_fallback(value: Any) -> Any:
    """Encode values orjson does not handle natively."""
    if isinstance(value, (set, frozenset)):
        try:
            return sorted(value)
        except TypeError:
            return list(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Exception):
        return f"{type(value).__name__}: {value}"
    return repr(value)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Replace the root handlers with a single stream handler and return it.

    Args:
        level: Root log level name.
        json_output: Emit :class:`JsonFormatter` lines instead of plain text.
        logger_levels: Per-logger level overrides (logger name -> level name).
        stream: Destination stream; defaults to stdout.
    """
    root = logging.getLogger()
    root.setLevel(_level(level, logging.INFO))
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_level(logger_level, logging.INFO))
    return handler


def _level(name: str, default: int) -> int:
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else default


_log_export: dict[str, Any] = {"provider": None, "handler": None}


def init_log_exporter(
    service_name: str = "item-search-engine",
    resource_attributes: dict[str, str] | None = None,
) -> LoggerProvider:
    """Install a global OTel logger provider for ``service_name``."""
    provider = LoggerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    set_logger_provider(provider)
    _log_export["provider"] = provider
    return provider


def _log_exporter(config: ObservabilityCollectorConfig) -> GrpcOTLPLogExporter | HttpOTLPLogExporter:
    if config.otlp_protocol == "grpc":
        return GrpcOTLPLogExporter(
            endpoint=config.collector_endpoint,
            headers=config.headers,
            timeout=config.timeout_seconds,
            insecure=config.grpc_insecure,
        )
    endpoint = config.collector_endpoint
    if endpoint.endswith("/v1/traces"):
        endpoint = endpoint.removesuffix("/v1/traces") + "/v1/logs"
    return HttpOTLPLogExporter(endpoint=endpoint, headers=config.headers, timeout=config.timeout_seconds)


def configure_log_exporter(
    config: ObservabilityCollectorConfig | None,
    provider: LoggerProvider | None = None,
) -> None:
    """Ship root-logger records to the collector; installs the bridge handler once."""
    if not config or not config.enabled or _log_export["handler"] is not None:
        return

    active = provider or _log_export["provider"]
    if not isinstance(active, LoggerProvider):
        active = init_log_exporter(resource_attributes=dict(config.resource_attributes))

    active.add_log_record_processor(BatchLogRecordProcessor(_log_exporter(config)))
    handler = LoggingHandler(level=logging.INFO, logger_provider=active)
    logging.getLogger().addHandler(handler)
    _log_export["handler"] = handler
