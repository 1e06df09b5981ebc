import contextvars
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

# Order matters: emails before phones so the local part of an address is not
# read as digits.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"), "[REDACTED_EMAIL]"),
    (
        re.compile(r"(?P<key>token|access_token|refresh_token|api_key|signature|sig)=[^&\s]+", re.IGNORECASE),
        r"\g<key>=[REDACTED_TOKEN]",
    ),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9._\-]+"), "Bearer [REDACTED_TOKEN]"),
    (re.compile(r"\+\d{1,3}[\s-]?\d{2,4}[\s-]?\d{3}[\s-]?\d{3,4}\b"), "[REDACTED_PHONE]"),
)
SENSITIVE_KEYS = frozenset(
    {
        "phone",
        "email",
        "authorization",
        "token",
        "access_token",
        "refresh_token",
        "crm_access_token",
        "api_key",
    }
)
# httpx logs full request URLs at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")

LOG_CONTEXT: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("log_context", default={})
_LOG_RECORD_ATTRS = frozenset(logging.LogRecord(None, 0, "", 0, "", (), None).__dict__)


def redact_pii(value: str) -> str:
    for pattern, replacement in _REDACTIONS:
        value = pattern.sub(replacement, value)
    return value


def _sanitize_value(value: Any, key: str | None = None) -> Any:
    if key and key.lower() in SENSITIVE_KEYS:
        return "[REDACTED]"
    if isinstance(value, str):
        return redact_pii(value)
    if isinstance(value, dict):
        return {item_key: _sanitize_value(item_value, item_key) for item_key, item_value in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    return value


def update_log_context(**kwargs: Any) -> dict[str, Any]:
    merged = dict(LOG_CONTEXT.get({}))
    merged.update((key, value) for key, value in kwargs.items() if value is not None)
    LOG_CONTEXT.set(merged)
    return merged


def clear_log_context() -> None:
    LOG_CONTEXT.set({})


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=``; a nested ``extra`` dict is flattened."""
    fields = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _LOG_RECORD_ATTRS and not key.startswith("_")
    }
    nested = fields.pop("extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    return fields


class RedactingJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_pii(record.getMessage()),
        }
        payload.update(_sanitize_value(LOG_CONTEXT.get({})))
        payload.update(_sanitize_value(_record_fields(record)))
        if record.exc_info and record.exc_info[0] is not None:
            payload["error_type"] = record.exc_info[0].__name__
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | int = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(RedactingJsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
