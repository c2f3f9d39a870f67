from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from typing import Any

from searchnos_indexer.util.time import utc_iso, utcnow

logger = logging.getLogger("searchnos_indexer")

# Ensure JSONL (message-only) output for this logger, without duplicate propagation.
if not logger.handlers:
    _h = logging.StreamHandler(sys.stdout)
    _h.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_h)
logger.setLevel(os.getenv("SEARCHNOS_LOG_LEVEL", "INFO").upper())
logger.propagate = False


# Debug toggle: allow event content in logs locally, but still never log secrets.
_DEBUG_LOG_PAYLOADS = os.getenv("SEARCHNOS_DEBUG_LOG_PAYLOADS", "false").lower() in (
    "1",
    "true",
    "yes",
    "on",
)

# Deny-list of keys that should never be logged raw.
_DENY_KEYS = {
    "authorization",
    "api_key",
    "token",
    "password",
    "secret",
    "sig",
}

# Keys only logged when _DEBUG_LOG_PAYLOADS is on.
_PAYLOAD_KEYS = {
    "content",
    "event_json",
    "body",
}


def _truncate_str(s: str, max_len: int = 800) -> str:
    return s if len(s) <= max_len else s[:max_len] + "...<truncated>"


def _sanitize_value(v: Any, depth: int = 0, max_depth: int = 3) -> Any:
    """
    Best-effort sanitizer to avoid huge logs and accidental leakage.
    Note: top-level deny-list keys are handled by log_event() itself.
    """
    if depth > max_depth:
        return "<max_depth>"

    if v is None or isinstance(v, (int, float, bool)):
        return v

    if isinstance(v, str):
        return _truncate_str(v)

    if isinstance(v, (list, tuple, set, frozenset)):
        return [_sanitize_value(x, depth + 1, max_depth) for x in list(v)[:50]]

    if isinstance(v, dict):
        out: dict[str, Any] = {}
        for k, vv in v.items():
            lk = str(k).lower()
            if lk in _DENY_KEYS:
                out[str(k)] = "<redacted>"
            else:
                out[str(k)] = _sanitize_value(vv, depth + 1, max_depth)
        return out

    return _truncate_str(str(v))


def error_fields(e: BaseException) -> dict[str, Any]:
    return {
        "type": type(e).__name__,
        "message": str(e),
        "stacktrace": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
    }


def log_event(
    *,
    level: str,
    event: str,
    msg: str,
    component: str = "indexer",
    **fields: Any,
) -> None:
    lvl = (level or "").upper()
    if lvl == "DEBUG" and not logger.isEnabledFor(logging.DEBUG):
        return

    payload: dict[str, Any] = {
        "ts": utc_iso(utcnow()),
        "level": lvl,
        "component": component,
        "event": event,
        "msg": msg,
    }

    for k, v in fields.items():
        lk = str(k).lower()

        if lk in _DENY_KEYS:
            payload[k] = "<redacted>"
            continue

        # Event payloads can be large and user-generated; keep them out of normal drift.
        if lk in _PAYLOAD_KEYS and not _DEBUG_LOG_PAYLOADS:
            continue

        payload[k] = _sanitize_value(v)

    line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    if lvl == "ERROR":
        logger.error(line)
    elif lvl == "WARN" or lvl == "WARNING":
        logger.warning(line)
    elif lvl == "DEBUG":
        logger.debug(line)
    else:
        logger.info(line)
