"""
Shared helpers for the record adapters: the response envelope and the
defensive coercions applied to flat record fields.
"""
import copy
import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# ---------- Envelope ----------

def ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def fail(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}


# ---------- Coercion ----------

def to_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """Leading-integer parse; zero or garbage falls back to `default`."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return default
        parsed = int(value)
    else:
        m = _INT_RE.match(str(value))
        if not m:
            return default
        parsed = int(m.group(1))
    return parsed or default


def to_float(value: Any, default: float = 0.0) -> float:
    """Leading-decimal parse; zero or garbage falls back to `default`."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        m = _FLOAT_RE.match(str(value))
        if not m:
            return default
        parsed = float(m.group(1))
    if parsed != parsed:
        return default
    return parsed or default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def split_lines(value: Any) -> List[str]:
    if not value:
        return []
    return [line for line in str(value).split("\n") if line.strip()]


def parse_json(value: Any, default: Any) -> Any:
    if not value:
        return copy.deepcopy(default)
    if isinstance(value, type(default)):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        logger.warning("Discarding undecodable JSON field: %.80r", value)
        return copy.deepcopy(default)
    if not isinstance(parsed, type(default)):
        return copy.deepcopy(default)
    return parsed


# ---------- Clock ----------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_millis() -> int:
    return int(time.time() * 1000)
