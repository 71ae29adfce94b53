# legalletter/shared/logger.py
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# LogRecord attributes that are not "extra" fields
_RECORD_KEYS = set(vars(logging.LogRecord("x", 0, "", 0, "", None, None))) | {"message", "taskName"}

SENSITIVE_KEYS = {"password", "password_hash", "admin_secret", "secret", "token"}


def _redact(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS:
        return "***"
    if isinstance(value, dict):
        return {k: _redact(str(k), v) for k, v in value.items()}
    return value


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k not in _RECORD_KEYS:
                payload[k] = _redact(k, v)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", use_json: bool = False) -> logging.Logger:
    """Attach one stdout handler to the package logger (safe to call twice)."""
    log = logging.getLogger("legalletter")
    log.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter() if use_json
            else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        log.addHandler(handler)
    return log
