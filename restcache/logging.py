import dataclasses
import enum
import json
import logging
import os
import queue
import sys
import traceback
from datetime import datetime, timezone
from logging import Handler
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, List, Optional, Tuple

from .config import Settings
from .constants import LOG_KEY_PREVIEW_CHARS

_REDACT_KEYS: set[str] = set()

_logger: Optional[logging.Logger] = None
_log_listener: Optional[QueueListener] = None

_MAX_DATA_STRING_CHARS = 5000


def _is_json_serializable(obj: Any) -> bool:
    try:
        json.dumps(obj)
        return True
    except (TypeError, ValueError):
        return False


def _sanitize_for_json(obj: Any) -> Any:
    """Recursively convert ``obj`` into a JSON-safe structure.

    Bytes are decoded as UTF-8 with replacement, dataclasses become dicts, keys
    listed in ``_REDACT_KEYS`` are masked, ``None`` values are dropped and any
    remaining non-serializable value falls back to ``repr``.
    """
    if isinstance(obj, bytes):
        return obj.decode("utf-8", "replace")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _sanitize_for_json(dataclasses.asdict(obj))
    if isinstance(obj, dict):
        cleaned = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() in _REDACT_KEYS:
                cleaned[k] = "***REDACTED***"
                continue
            value = _sanitize_for_json(v)
            if value is not None:
                cleaned[k] = value
        return cleaned
    if isinstance(obj, (list, tuple, set)):
        return [_sanitize_for_json(x) for x in obj if x is not None]
    if _is_json_serializable(obj):
        return obj
    return repr(obj)


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def preview_key(cache_key: Optional[str]) -> Optional[str]:
    """Shorten a cache key for log output."""
    if not cache_key or len(cache_key) <= LOG_KEY_PREVIEW_CHARS:
        return cache_key
    return cache_key[:LOG_KEY_PREVIEW_CHARS] + "..."


class LogEvent(enum.Enum):
    """Structured log events emitted by RestCache.

    Used in ``LogRecord.event`` so log consumers can filter cache activity
    without parsing messages.
    """

    REQUEST_FAILURE = "request_failure"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    CACHE_STORE = "cache_store"
    CACHE_STORE_FAILED = "cache_store_failed"
    CACHE_PASSTHROUGH = "cache_passthrough"
    CACHE_KEY_FAILED = "cache_key_failed"
    CACHE_DELETE = "cache_delete"
    CACHE_FLUSH = "cache_flush"
    CACHE_EVENT = "cache_event"
    STORE_EVENT = "store_event"
    HEALTH_CHECK = "health_check"
    CONFIGURATION = "configuration"


@dataclasses.dataclass
class LogError:
    """Exception details attached to a log entry."""

    name: str
    message: str
    stack_trace: Optional[str] = None
    args: Optional[Tuple[Any, ...]] = None


@dataclasses.dataclass
class LogRecord:
    """Primary payload transported via the logging system.

    Attributes:
        event: Identifier from :class:`LogEvent` or custom tag.
        message: Short human-readable summary.
        request_id: Correlator generated per HTTP request.
        data: Arbitrary contextual dictionary (sanitized/truncated).
        error: Optional :class:`LogError` with exception details.
    """

    event: str
    message: str
    request_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[LogError] = None


def _header(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
    }


def _exc_info_payload(record: logging.LogRecord, with_stack: bool) -> Dict[str, Any]:
    exc_type, exc_value, exc_tb = record.exc_info  # type: ignore[misc]
    payload: Dict[str, Any] = {
        "name": exc_type.__name__ if exc_type else "UnknownError",
        "message": str(exc_value),
        "args": exc_value.args if exc_value and hasattr(exc_value, "args") else [],
    }
    if with_stack:
        payload["stack_trace"] = "".join(
            traceback.format_exception(exc_type, exc_value, exc_tb)
        )
    return payload


class JSONFormatter(logging.Formatter):
    """Formats log records as compact JSON lines.

    Attached :class:`LogRecord` payloads are serialized under ``detail`` with
    oversized strings truncated; plain records carry ``message`` and, when an
    exception is attached, a full ``error`` block with stack trace.
    """

    def format(self, record: logging.LogRecord) -> str:
        out = _header(record)
        payload = getattr(record, "log_record", None)
        if isinstance(payload, LogRecord):
            detail = _sanitize_for_json(dataclasses.asdict(payload))
            data = detail.get("data") if isinstance(detail, dict) else None
            if isinstance(data, dict):
                for key, value in data.items():
                    if isinstance(value, str) and len(value) > _MAX_DATA_STRING_CHARS:
                        data[key] = value[:_MAX_DATA_STRING_CHARS] + "...[truncated]"
            out["detail"] = detail
        else:
            out["message"] = record.getMessage()
            if record.exc_info:
                out["error"] = _sanitize_for_json(_exc_info_payload(record, True))
        return _dumps(_sanitize_for_json(out))


class ConsoleJSONFormatter(JSONFormatter):
    """Console variant of :class:`JSONFormatter` that drops stack traces."""

    def format(self, record: logging.LogRecord) -> str:
        out = _header(record)
        payload = getattr(record, "log_record", None)
        if isinstance(payload, LogRecord):
            detail = _sanitize_for_json(dataclasses.asdict(payload))
            if isinstance(detail, dict) and isinstance(detail.get("error"), dict):
                detail["error"].pop("stack_trace", None)
            out["detail"] = detail
        else:
            out["message"] = record.getMessage()
            if record.exc_info:
                out["error"] = _sanitize_for_json(_exc_info_payload(record, False))
        return _dumps(_sanitize_for_json(out))


def _file_handler(path: str, level: Optional[int] = None) -> Optional[Handler]:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        if _logger:
            _logger.warning("Failed to configure file logging for %s: %s", path, e)
        return None
    if level is not None:
        handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def init_logging(settings: Settings) -> logging.Logger:
    """Route all application and uvicorn logs through a queue listener.

    Console output always goes to stdout; ``settings.log_file_path`` and
    ``settings.error_log_file_path`` add JSON-lines file handlers.
    """
    global _logger
    global _log_listener
    global _REDACT_KEYS

    shutdown_logging()

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(-1)
    queue_handler = QueueHandler(log_queue)

    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setFormatter(
        ConsoleJSONFormatter() if settings.log_pretty_console else JSONFormatter()
    )
    handlers: List[Handler] = [console_handler]

    if settings.log_file_path:
        file_handler = _file_handler(settings.log_file_path)
        if file_handler:
            handlers.append(file_handler)

    if settings.error_log_file_path:
        err_handler = _file_handler(settings.error_log_file_path, logging.ERROR)
        if err_handler:
            handlers.append(err_handler)

    _log_listener = QueueListener(log_queue, *handlers)
    _log_listener.start()

    for logger_name in ["", settings.app_name, "uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger = logging.getLogger(logger_name)
        logger.handlers = [queue_handler]
        logger.propagate = logger_name == ""
        if logger_name == "":
            logger.setLevel(logging.WARNING)
        elif logger_name == settings.app_name:
            logger.setLevel(settings.log_level.upper())
        else:
            logger.setLevel(logging.INFO)

    _logger = logging.getLogger(settings.app_name)
    _REDACT_KEYS = {k.lower() for k in settings.redact_log_fields}
    return _logger


def shutdown_logging() -> None:
    """Stop the queue listener, flushing pending records."""
    global _log_listener
    if _log_listener:
        _log_listener.stop()
        _log_listener = None


def _log(level: int, record: LogRecord, exc: Optional[Exception] = None) -> None:
    if exc:
        include_stack = any(
            isinstance(h, logging.FileHandler)
            for h in (_log_listener.handlers if _log_listener else ())
        )
        stack_str = (
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            if include_stack
            else None
        )
        sanitized = _sanitize_for_json(exc.args)
        record.error = LogError(
            name=type(exc).__name__,
            message=str(exc),
            stack_trace=stack_str,
            args=tuple(sanitized) if isinstance(sanitized, list) else (sanitized,),
        )
        if not record.message:
            record.message = str(exc) or "An unspecified error occurred"

    if _logger:
        _logger.log(level=level, msg=record.message, extra={"log_record": record})


def debug(record: LogRecord) -> None:
    _log(logging.DEBUG, record)


def info(record: LogRecord) -> None:
    _log(logging.INFO, record)


def warning(record: LogRecord, exc: Optional[Exception] = None) -> None:
    _log(logging.WARNING, record, exc=exc)


def error(record: LogRecord, exc: Optional[Exception] = None) -> None:
    _log(logging.ERROR, record, exc=exc)


def critical(record: LogRecord, exc: Optional[Exception] = None) -> None:
    _log(logging.CRITICAL, record, exc=exc)
