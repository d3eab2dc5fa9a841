"""Logging setup for NoteVault.

One stdout handler on the root logger. Two filters run on it: the first stamps
``request_id`` on every record (empty outside a request), the second redacts
credentials. Output is a JSON object per line (``LOG_FORMAT=json``) or a
plain line (``LOG_FORMAT=text``). Both carry the request id.

Modules log with ``logging.getLogger(__name__)`` and pass structured fields
through ``extra=``; the JSON formatter lifts them to top-level keys.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set per request by RequestContextMiddleware.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that are too chatty at INFO.
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
}

_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "request_id"}


class RequestIdFilter(logging.Filter):
    """Copy the current request id onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class RedactingFilter(logging.Filter):
    """Mask passwords, remember-me tokens and bearer tokens.

    Applied to the formatted message and to cached traceback text; request
    bodies logged at debug level can contain login payloads.
    """

    PATTERNS = (
        re.compile(r"(?i)(bearer\s+)[\w.\-]{16,}"),
        re.compile(r"(?i)((?:password|remember_token|access_token|secret)[\"']?\s*[:=]\s*[\"']?)[^\s,\"'}]{3,}"),
    )
    MASK = "[redacted]"

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = self.redact(str(record.msg))
        if record.exc_text:
            record.exc_text = self.redact(record.exc_text)
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        for pattern in cls.PATTERNS:
            text = pattern.sub(lambda m: m.group(1) + cls.MASK, text)
        return text


class JsonLineFormatter(logging.Formatter):
    """Render a record as one JSON object.

    Standard keys are ``ts``, ``level``, ``logger``, ``msg`` and, inside a
    request, ``request_id``. Fields given through ``extra=`` follow them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            entry["request_id"] = request_id

        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in entry
        )

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exc"] = record.exc_text
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """(Re)configure the root logger. Safe to call more than once.

    Args:
        log_level: Standard level name, INFO when omitted.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    use_json = (log_format or "json").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(RedactingFilter())
    handler.setFormatter(JsonLineFormatter() if use_json else logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
