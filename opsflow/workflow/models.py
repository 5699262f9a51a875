""" Data models for workflow representation """

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN = "in"
    NOT_IN = "not_in"
    BETWEEN = "between"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class NodeType(str, Enum):
    TRIGGER = "TRIGGER"
    ACTION = "ACTION"
    DELAY = "DELAY"
    LOOP = "LOOP"
    QUERY = "QUERY"
    FILTER = "FILTER"
    CONDITION = "CONDITION"
    SCHEDULE = "SCHEDULE"


class Frequency(str, Enum):
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


# Operators that never look at the comparison value
VALUELESS_OPERATORS = frozenset({Operator.IS_EMPTY, Operator.IS_NOT_EMPTY})


@dataclass
class Condition:
    field: str
    operator: Operator
    value: Any = None
    negate: bool = False
    value_to: Any = None                # upper bound for 'between'
    values: Optional[List[Any]] = None  # explicit list for 'in' / 'not_in'

    def __post_init__(self):
        self.field = (self.field or "").strip()
        if not self.field:
            raise ValueError("Condition field must not be empty")
        self.operator = Operator(self.operator)
        self.negate = bool(self.negate)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        return cls(
            field=data.get("field", ""),
            operator=data.get("operator", Operator.EQUALS),
            value=data.get("value"),
            negate=bool(data.get("negate", False)),
            value_to=data.get("valueTo"),
            values=data.get("values"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"field": self.field, "operator": self.operator.value}
        if self.value is not None and self.operator not in VALUELESS_OPERATORS:
            out["value"] = self.value
        if self.value_to is not None:
            out["valueTo"] = self.value_to
        if self.values is not None:
            out["values"] = list(self.values)
        if self.negate:
            out["negate"] = True
        return out


@dataclass
class ConditionGroup:
    conditions: List[Condition] = field(default_factory=list)
    logical_operator: LogicalOperator = LogicalOperator.AND

    def __post_init__(self):
        self.logical_operator = LogicalOperator(self.logical_operator)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ConditionGroup":
        data = data or {}
        raw = data.get("conditions") or data.get("filters") or []
        return cls(
            conditions=[c if isinstance(c, Condition) else Condition.from_dict(c) for c in raw],
            logical_operator=data.get("logicalOperator") or LogicalOperator.AND,
        )


@dataclass
class Edge:
    src: str
    dest: str
    handle: Optional[str] = None  # source handle: "true" / "false" / "body" / custom


@dataclass
class Node:
    id: str
    type: NodeType
    name: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    is_optional: bool = False

    def __post_init__(self):
        self.type = NodeType(self.type)


@dataclass
class Workflow:
    name: str
    id: str = ""
    description: str = ""
    outputs: List[str] = field(default_factory=list)
    variables: Dict[str, Any] = field(default_factory=dict)
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def get_node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def out_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.src == node_id]

    def in_degree(self, node_id: str) -> int:
        return sum(1 for e in self.edges if e.dest == node_id)
