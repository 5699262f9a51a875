""" {VARIABLE} interpolation for action params and condition values. """

import json
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from .conditions import MISSING, resolve_path

VARIABLE_PATTERN = re.compile(r"\{([A-Za-z0-9_.]+)\}")


def _full_name(payload: Mapping[str, Any]) -> Optional[str]:
    parts = [payload.get("firstName"), payload.get("lastName")]
    name = " ".join(str(p) for p in parts if p)
    return name or None


def _first(*keys: str) -> Callable[[Mapping[str, Any]], Any]:
    def _get(payload: Mapping[str, Any]) -> Any:
        for key in keys:
            if payload.get(key) is not None:
                return payload[key]
        return None
    return _get


# Friendly names offered by the message editor, per trigger module
MODULE_ALIASES: Dict[str, Dict[str, Callable[[Mapping[str, Any]], Any]]] = {
    "crm": {
        "CUSTOMER_NAME": _full_name,
        "CUSTOMER_FIRST_NAME": _first("firstName"),
        "CUSTOMER_LAST_NAME": _first("lastName"),
        "CUSTOMER_EMAIL": _first("email", "customerEmail"),
        "CUSTOMER_PHONE": _first("phone", "customerPhone"),
        "CUSTOMER_COMPANY": _first("company"),
        "DEAL_TITLE": _first("title"),
        "DEAL_VALUE": _first("value"),
        "DEAL_STAGE": _first("stage"),
    },
    "hr": {
        "EMPLOYEE_NAME": _full_name,
        "EMPLOYEE_EMAIL": _first("email"),
        "EMPLOYEE_POSITION": _first("position"),
        "EMPLOYEE_DEPARTMENT": _first("department"),
        "MANAGER_NAME": _first("managerName"),
        "TIMEOFF_TYPE": _first("type"),
    },
    "finance": {
        "INVOICE_NUMBER": _first("invoiceNumber"),
        "INVOICE_AMOUNT": _first("totalAmount", "amount"),
        "INVOICE_STATUS": _first("status"),
        "CUSTOMER_NAME": lambda p: p.get("customerName") or _full_name(p),
        "CUSTOMER_EMAIL": _first("customerEmail", "email"),
    },
    "projects": {
        "PROJECT_NAME": _first("name", "projectName"),
        "TASK_TITLE": _first("title", "taskTitle"),
        "TASK_STATUS": _first("status", "taskStatus"),
        "TASK_PRIORITY": _first("priority"),
    },
}


def extract_variables(text: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    seen: List[str] = []
    for name in VARIABLE_PATTERN.findall(text or ""):
        if name not in seen:
            seen.append(name)
    return seen


def system_variables(context: Mapping[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    organization = context.get("organization") or {}
    user = context.get("user") or {}
    return {
        "CURRENT_DATE": now.date().isoformat(),
        "CURRENT_TIME": now.strftime("%H:%M:%S"),
        "CURRENT_DATETIME": now.isoformat(timespec="seconds"),
        "ORGANIZATION_NAME": organization.get("name") or "Organization",
        "CURRENT_USER": user.get("name") or "System",
    }


def lookup_variable(name: str, context: Mapping[str, Any], now: Optional[datetime] = None) -> Any:
    """
    Resolve one placeholder name. Returns MISSING when nothing matches.

    Lookup order: system variables, aliases of the trigger's module
    (case-insensitive), then a dot path into the context and its
    ``payload``.
    """
    upper = name.upper()
    system = system_variables(context, now)
    if upper in system:
        return system[upper]

    trigger = context.get("trigger") or {}
    payload = context.get("payload") or trigger.get("payload") or {}
    module = str(trigger.get("module") or context.get("module") or "").lower()
    alias = MODULE_ALIASES.get(module, {}).get(upper)
    if alias is not None:
        value = alias(payload)
        if value is not None:
            return value

    value = resolve_path(context, name)
    if value is MISSING and isinstance(payload, Mapping):
        value = resolve_path(payload, name)
    return value


def render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, default=str)


def resolve_variables(text: str, context: Mapping[str, Any], now: Optional[datetime] = None) -> str:
    """Replace every resolvable placeholder; unknown ones are left as written."""
    if not isinstance(text, str) or "{" not in text:
        return text

    def _sub(match: "re.Match[str]") -> str:
        value = lookup_variable(match.group(1), context, now)
        if value is MISSING:
            return match.group(0)
        return render_value(value)

    return VARIABLE_PATTERN.sub(_sub, text)


def resolve_structure(value: Any, context: Mapping[str, Any]) -> Any:
    """
    Interpolate nested params. A string that is exactly one placeholder
    keeps the resolved value's type.
    """
    if isinstance(value, str):
        match = VARIABLE_PATTERN.fullmatch(value.strip())
        if match:
            resolved = lookup_variable(match.group(1), context)
            return value if resolved is MISSING else resolved
        return resolve_variables(value, context)
    if isinstance(value, dict):
        return {k: resolve_structure(v, context) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_structure(v, context) for v in value]
    return value
