import json
import os
from datetime import datetime, timezone
from pathlib import Path
import contextvars
from typing import Any, Dict

# Path to the audit log file; can be overridden via EVENT_LOG_PATH env var or set_log_path.
_LOG_PATH = Path(os.environ.get("EVENT_LOG_PATH", "vems_event_log.jsonl"))

_current_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "current_request_id", default=None
)


def set_log_path(path: str | Path) -> None:
    """Override the log file path (useful for tests)."""
    global _LOG_PATH
    _LOG_PATH = Path(path)


def get_log_path() -> Path:
    """Return the current log file path."""
    return _LOG_PATH


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Set the correlation id attached to subsequent events."""
    return _current_request_id.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _current_request_id.reset(token)


def log_event(event: str, data: Dict[str, Any], *, request_id: str | None = None) -> None:
    """Append an event to the audit log as a JSON line.

    Parameters
    ----------
    event:
        Type of the event (e.g., "otp_issued", "booking_status").
    data:
        JSON-serializable payload. Never include OTP codes.
    request_id:
        Optional explicit correlation id. If omitted, the id set by the
        request middleware (via :func:`set_request_id`) is used.
    """
    rid = request_id if request_id is not None else _current_request_id.get()
    record = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "request_id": rid,
        "event": event,
        **data,
    }
    _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with _LOG_PATH.open("a", encoding="utf-8") as f:
        json.dump(record, f, ensure_ascii=False, default=str)
        f.write("\n")
