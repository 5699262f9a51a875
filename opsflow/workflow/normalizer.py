"""
Turn raw node-form values into the canonical config stored for a node.

Every optional string is trimmed and dropped when blank, lenient numeric
input becomes None instead of failing, and UI-only values (the
``__custom`` path sentinel, the schedule ``mode`` tab) never reach the
persisted config.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..config import settings
from .models import Frequency, LogicalOperator, NodeType, Operator

logger = logging.getLogger(__name__)

CUSTOM_PATH = "__custom"

# Ascending order matters for duration_from_delay_ms
DURATION_UNITS: List[Tuple[str, int]] = [
    ("seconds", 1000),
    ("minutes", 1000 * 60),
    ("hours", 1000 * 60 * 60),
    ("days", 1000 * 60 * 60 * 24),
]
_UNIT_MULTIPLIERS = dict(DURATION_UNITS)


# -------------------------
# GENERIC HELPERS
# -------------------------

def clean_str(value: Any) -> Optional[str]:
    """Trim a string; blank or non-string values become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def compact(config: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None or a blank string; trim the rest."""
    out: Dict[str, Any] = {}
    for key, value in config.items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        out[key] = value
    return out


def parse_int_lenient(raw: Any) -> Optional[int]:
    """Parse free-text numeric input. Anything unparseable clears the field."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def split_list(raw: Any) -> Optional[List[str]]:
    """Comma separated text (or a list) to a list of non-blank strings."""
    if raw is None:
        return None
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    cleaned = [s.strip() for s in items if isinstance(s, str) and s.strip()]
    return cleaned or None


@dataclass
class PathChoice:
    """A path picked from the suggestion list, or typed in by hand."""
    preset: Optional[str] = None
    custom: Optional[str] = None

    @property
    def value(self) -> Optional[str]:
        if self.custom is not None:
            return clean_str(self.custom)
        if self.preset == CUSTOM_PATH:
            return None
        return clean_str(self.preset)

    @classmethod
    def from_form(cls, raw: Dict[str, Any], key: str) -> "PathChoice":
        selected = raw.get(key)
        if selected == CUSTOM_PATH:
            return cls(preset=CUSTOM_PATH, custom=raw.get(f"{key}Custom") or "")
        if isinstance(selected, PathChoice):
            return selected
        return cls(preset=selected)


def resolve_path_choice(raw: Dict[str, Any], key: str) -> Optional[str]:
    """
    Read a path field that may have been set through the custom-path
    toggle. ``{"sourceKey": "__custom", "sourceKeyCustom": "a.b"}``
    resolves to ``"a.b"``; the sentinel itself is never returned.
    """
    return PathChoice.from_form(raw, key).value


def normalize_conditions(raw: Any) -> Optional[List[Dict[str, Any]]]:
    """Trim condition rows, drop rows without a field, omit an empty list."""
    if not raw:
        return None
    out: List[Dict[str, Any]] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        field = resolve_path_choice(entry, "field")
        if not field:
            continue
        operator = entry.get("operator") or Operator.EQUALS.value
        operator = operator.value if isinstance(operator, Operator) else str(operator).strip()
        row: Dict[str, Any] = {"field": field, "operator": operator}
        value = entry.get("value")
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, "") and operator not in (Operator.IS_EMPTY.value, Operator.IS_NOT_EMPTY.value):
            row["value"] = value
        value_to = entry.get("valueTo")
        if isinstance(value_to, str):
            value_to = value_to.strip()
        if value_to not in (None, ""):
            row["valueTo"] = value_to
        if entry.get("values") is not None:
            row["values"] = list(entry["values"])
        if entry.get("negate") is not None:
            row["negate"] = bool(entry["negate"])
        out.append(row)
    return out or None


def _logical_operator(raw: Any) -> str:
    try:
        return LogicalOperator(str(raw or "AND").strip().upper()).value
    except ValueError:
        return LogicalOperator.AND.value


# -------------------------
# DELAY
# -------------------------

def delay_ms_from_duration(value: Any, unit: str) -> int:
    """Duration × unit multiplier, clamped to [0, MAX_DELAY_MS]."""
    multiplier = _UNIT_MULTIPLIERS.get(unit, 1000)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        amount = 0.0
    delay = int(round(amount * multiplier))
    return min(settings.MAX_DELAY_MS, max(0, delay))


def duration_from_delay_ms(delay_ms: int) -> Tuple[int, str]:
    """
    Re-derive the (value, unit) pair shown for a stored delay: the
    coarsest unit, scanning seconds -> days, that divides it evenly.
    """
    if not delay_ms:
        return 0, "seconds"
    unit, multiplier = "seconds", 1000
    for name, size in DURATION_UNITS:
        if delay_ms % size == 0:
            unit, multiplier = name, size
    return int(round(delay_ms / multiplier)), unit


def normalize_delay(raw: Dict[str, Any]) -> Dict[str, Any]:
    if "delayMs" in raw and "durationValue" not in raw:
        delay_ms = min(settings.MAX_DELAY_MS, max(0, parse_int_lenient(raw["delayMs"]) or 0))
    else:
        delay_ms = delay_ms_from_duration(raw.get("durationValue", 0), raw.get("durationUnit", "seconds"))
    return compact({"delayMs": delay_ms, "resultKey": raw.get("resultKey")})


def derive_delay_form(config: Dict[str, Any], name: str = "Delay") -> Dict[str, Any]:
    delay_ms = config.get("delayMs")
    if not isinstance(delay_ms, int) or isinstance(delay_ms, bool):
        delay_ms = settings.DEFAULT_DELAY_MS
    value, unit = duration_from_delay_ms(delay_ms)
    return {
        "name": name,
        "durationValue": value,
        "durationUnit": unit,
        "resultKey": config.get("resultKey") or "",
    }


# -------------------------
# LOOP / QUERY / FILTER / CONDITION
# -------------------------

def normalize_loop(raw: Dict[str, Any]) -> Dict[str, Any]:
    return compact({
        "dataSource": resolve_path_choice(raw, "dataSource"),
        "sourceKey": resolve_path_choice(raw, "sourceKey"),
        "itemVariable": resolve_path_choice(raw, "itemVariable") or "item",
        "indexVariable": resolve_path_choice(raw, "indexVariable") or "index",
        "maxIterations": parse_int_lenient(raw.get("maxIterations")),
        "resultKey": raw.get("resultKey"),
        "emptyPathHandle": raw.get("emptyPathHandle"),
    })


def normalize_query(raw: Dict[str, Any]) -> Dict[str, Any]:
    order_field = clean_str(raw.get("orderByField"))
    order_by = raw.get("orderBy")
    if order_field:
        direction = "desc" if raw.get("orderByDirection") == "desc" else "asc"
        order_by = [{"field": order_field, "direction": direction}]
    return compact({
        "model": raw.get("model"),
        "filters": normalize_conditions(raw.get("filters")),
        "limit": parse_int_lenient(raw.get("limit")),
        "offset": parse_int_lenient(raw.get("offset")),
        "orderBy": order_by or None,
        "select": split_list(raw.get("selectFields", raw.get("select"))),
        "include": split_list(raw.get("includeRelations", raw.get("include"))),
        "resultKey": raw.get("resultKey"),
        "fallbackKey": raw.get("fallbackKey"),
    })


def normalize_filter(raw: Dict[str, Any]) -> Dict[str, Any]:
    return compact({
        "sourceKey": resolve_path_choice(raw, "sourceKey"),
        "logicalOperator": _logical_operator(raw.get("logicalOperator")),
        "conditions": normalize_conditions(raw.get("conditions")),
        "resultKey": raw.get("resultKey"),
        "fallbackKey": raw.get("fallbackKey"),
    })


def normalize_condition(raw: Dict[str, Any]) -> Dict[str, Any]:
    return compact({
        "logicalOperator": _logical_operator(raw.get("logicalOperator")),
        "conditions": normalize_conditions(raw.get("conditions")),
        "resultKey": raw.get("resultKey"),
    })


# -------------------------
# SCHEDULE
# -------------------------

def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date/time (a trailing ``Z`` means UTC) into an
    aware UTC datetime. Blank input gives None; anything else that does
    not parse raises ValueError.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = clean_str(value)
        if text is None:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Not an ISO-8601 date/time: {text}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_datetime(value: Any) -> Optional[str]:
    """ISO-8601 (UTC) when parseable, the trimmed text otherwise."""
    try:
        parsed = parse_datetime(value)
    except ValueError:
        return clean_str(value)
    if parsed is None:
        return None
    return parsed.isoformat().replace("+00:00", "Z")


def schedule_mode(config: Dict[str, Any]) -> str:
    """A non-empty cron expression means cron mode; anything else is frequency mode."""
    return "cron" if clean_str(config.get("cron")) else "frequency"


def normalize_schedule(raw: Dict[str, Any]) -> Dict[str, Any]:
    mode = raw.get("mode") or schedule_mode(raw)
    frequency = clean_str(raw.get("frequency"))
    is_active = raw.get("isActive")
    return compact({
        "cron": clean_str(raw.get("cron")) if mode == "cron" else None,
        "frequency": frequency.upper() if frequency and mode == "frequency" else None,
        "timezone": clean_str(raw.get("timezone")) or settings.DEFAULT_TIMEZONE,
        "startAt": normalize_datetime(raw.get("startAt")),
        "endAt": normalize_datetime(raw.get("endAt")),
        "isActive": True if is_active is None else bool(is_active),
        "resultKey": raw.get("resultKey"),
        "metadata": raw.get("metadata") or None,
    })


def derive_schedule_form(config: Dict[str, Any], name: str = "Schedule") -> Dict[str, Any]:
    frequency = clean_str(config.get("frequency"))
    frequency = frequency.upper() if frequency else None
    if frequency not in Frequency.__members__:
        frequency = Frequency.DAILY.value
    is_active = config.get("isActive")
    return {
        "name": name,
        "mode": schedule_mode(config),
        "cron": clean_str(config.get("cron")) or "",
        "frequency": frequency,
        "timezone": clean_str(config.get("timezone")) or settings.DEFAULT_TIMEZONE,
        "startAt": normalize_datetime(config.get("startAt")),
        "endAt": normalize_datetime(config.get("endAt")),
        "isActive": is_active if isinstance(is_active, bool) else True,
        "resultKey": config.get("resultKey") or "",
    }


# -------------------------
# TRIGGER / ACTION
# -------------------------

def normalize_trigger(raw: Dict[str, Any]) -> Dict[str, Any]:
    return compact({
        "module": raw.get("module"),
        "entityType": raw.get("entityType"),
        "eventType": raw.get("eventType"),
        "resultKey": raw.get("resultKey"),
    })


def normalize_action(raw: Dict[str, Any]) -> Dict[str, Any]:
    params = raw.get("params") or {}
    return compact({
        "tool": raw.get("tool"),
        "params": compact(params) or None,
        "resultKey": raw.get("resultKey"),
    })


_NORMALIZERS = {
    NodeType.TRIGGER: normalize_trigger,
    NodeType.ACTION: normalize_action,
    NodeType.DELAY: normalize_delay,
    NodeType.LOOP: normalize_loop,
    NodeType.QUERY: normalize_query,
    NodeType.FILTER: normalize_filter,
    NodeType.CONDITION: normalize_condition,
    NodeType.SCHEDULE: normalize_schedule,
}


def normalize(node_type: NodeType, raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize raw form values for any node type."""
    node_type = NodeType(node_type)
    config = _NORMALIZERS[node_type](raw or {})
    logger.debug("Normalized %s config: %s", node_type.value, config)
    return config
