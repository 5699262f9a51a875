import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import settings
from .models import Condition, ConditionGroup, LogicalOperator, Operator

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that does not resolve inside the payload."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

ConditionLike = Union[Condition, Dict[str, Any]]
GroupLike = Union[ConditionGroup, Dict[str, Any]]


def resolve_path(payload: Any, path: str) -> Any:
    """
    Walk a dot-delimited path through mappings and lists.

    Returns MISSING when any segment is absent; a present ``None`` is
    returned as ``None``.
    """
    if not path:
        return MISSING
    current = payload
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            if index >= len(current) or index < -len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def is_empty(value: Any) -> bool:
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def evaluate_condition(condition: ConditionLike, payload: Any, *, case_sensitive: Optional[bool] = None) -> bool:
    """
    Evaluate a single condition against a payload.

    Malformed conditions and type mismatches never raise; they simply
    do not match.
    """
    try:
        cond = condition if isinstance(condition, Condition) else Condition.from_dict(condition)
    except (ValueError, TypeError, AttributeError) as exc:
        logger.debug("Ignoring malformed condition %r: %s", condition, exc)
        return False

    if case_sensitive is None:
        case_sensitive = settings.CASE_SENSITIVE_MATCHING

    actual = resolve_path(payload, cond.field)
    try:
        result = _apply(cond, actual, case_sensitive)
    except (ValueError, TypeError, ArithmeticError) as exc:
        logger.debug("Condition on %s did not match: %s", cond.field, exc)
        result = False
    return not result if cond.negate else result


def evaluate_group(group: GroupLike, payload: Any, *, case_sensitive: Optional[bool] = None) -> bool:
    """
    Combine every condition of the group with its logical operator.
    An empty group always passes, for AND and OR alike.
    """
    if isinstance(group, ConditionGroup):
        conditions: Sequence[ConditionLike] = group.conditions
        operator = group.logical_operator
    else:
        group = group or {}
        conditions = group.get("conditions") or group.get("filters") or []
        try:
            operator = LogicalOperator(group.get("logicalOperator") or LogicalOperator.AND)
        except ValueError:
            logger.debug("Unknown logical operator %r, using AND", group.get("logicalOperator"))
            operator = LogicalOperator.AND

    if not conditions:
        return True

    results = (evaluate_condition(c, payload, case_sensitive=case_sensitive) for c in conditions)
    if operator == LogicalOperator.OR:
        return any(results)
    return all(results)


def filter_items(group: GroupLike, items: Iterable[Any], *, case_sensitive: Optional[bool] = None) -> List[Any]:
    """Keep the items of a collection that satisfy the group."""
    return [item for item in items if evaluate_group(group, item, case_sensitive=case_sensitive)]


# ---------------------------------------------------------------------------
# Operator semantics
# ---------------------------------------------------------------------------

def _apply(cond: Condition, actual: Any, case_sensitive: bool) -> bool:
    op = cond.operator

    if op == Operator.IS_EMPTY:
        return is_empty(actual)
    if op == Operator.IS_NOT_EMPTY:
        return not is_empty(actual)

    # every comparison needs a value to compare
    if actual is MISSING:
        return False

    expected = cond.value

    if op == Operator.EQUALS:
        return _equals(actual, expected, case_sensitive)
    if op == Operator.NOT_EQUALS:
        return not _equals(actual, expected, case_sensitive)

    if op in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        left, right = to_number(actual), to_number(expected)
        if left is None or right is None:
            return False
        if op == Operator.GT:
            return left > right
        if op == Operator.GTE:
            return left >= right
        if op == Operator.LT:
            return left < right
        return left <= right

    if op in (Operator.CONTAINS, Operator.NOT_CONTAINS):
        found = _contains(actual, expected, case_sensitive)
        if found is None:
            return False
        return found if op == Operator.CONTAINS else not found

    if op in (Operator.STARTS_WITH, Operator.ENDS_WITH):
        text, needle = _scalar_text(actual), _scalar_text(expected)
        if text is None or needle is None:
            return False
        if not case_sensitive:
            text, needle = text.lower(), needle.lower()
        return text.startswith(needle) if op == Operator.STARTS_WITH else text.endswith(needle)

    if op in (Operator.IN, Operator.NOT_IN):
        options = _option_list(cond)
        if options is None:
            return False
        member = any(_equals(actual, option, case_sensitive) for option in options)
        return member if op == Operator.IN else not member

    if op == Operator.BETWEEN:
        bounds = _between_bounds(cond)
        value = to_number(actual)
        if bounds is None or value is None:
            return False
        low, high = bounds
        return low <= value <= high

    raise ValueError(f"Unsupported operator: {op}")


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None or value is MISSING:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def comparable(value: Any) -> Tuple[int, Any]:
    """Sort key that puts numbers (numerically) before text."""
    number = to_number(value)
    if number is not None:
        return (0, number)
    return (1, _text(value))


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None or value is MISSING:
        return None
    if isinstance(value, (str, int, float)):
        return _text(value)
    return None


def _equals(actual: Any, expected: Any, case_sensitive: bool) -> bool:
    if expected is None:
        return actual is None or actual == ""
    left, right = to_number(actual), to_number(expected)
    if left is not None and right is not None:
        return left == right
    if isinstance(actual, (list, dict)) or isinstance(expected, (list, dict)):
        return actual == expected
    a, b = _text(actual), _text(expected)
    if not case_sensitive:
        a, b = a.lower(), b.lower()
    return a == b


def _contains(actual: Any, expected: Any, case_sensitive: bool) -> Optional[bool]:
    if isinstance(actual, str):
        needle = _scalar_text(expected)
        if needle is None:
            return None
        if not case_sensitive:
            return needle.lower() in actual.lower()
        return needle in actual
    if isinstance(actual, (list, tuple, set)):
        return any(_equals(item, expected, case_sensitive) for item in actual)
    return None


def _split_csv(value: Any) -> Optional[List[str]]:
    if not isinstance(value, str):
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _option_list(cond: Condition) -> Optional[List[Any]]:
    if cond.values is not None:
        return list(cond.values)
    if isinstance(cond.value, (list, tuple)):
        return list(cond.value)
    if isinstance(cond.value, (int, float)):
        # a lone scalar is a one-item list
        return [cond.value]
    return _split_csv(cond.value)


def _between_bounds(cond: Condition):
    if cond.value_to is not None and cond.value is not None:
        low, high = to_number(cond.value), to_number(cond.value_to)
    else:
        parts = _split_csv(cond.value)
        if parts is None or len(parts) != 2:
            return None
        low, high = to_number(parts[0]), to_number(parts[1])
    if low is None or high is None:
        return None
    return low, high
