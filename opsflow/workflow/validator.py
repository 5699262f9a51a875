""" Static checks run on a workflow before it is saved or executed. """

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import settings
from ..errors import ConfigValidationError
from .models import NodeType, Workflow
from .schema import parse_config_for_type


@dataclass
class Finding:
    message: str
    node_id: Optional[str] = None
    field: Optional[str] = None


@dataclass
class ValidationResult:
    errors: List[Finding] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error(self, message: str, node_id: Optional[str] = None, field: Optional[str] = None):
        self.errors.append(Finding(message, node_id, field))

    def warn(self, message: str, node_id: Optional[str] = None, field: Optional[str] = None):
        self.warnings.append(Finding(message, node_id, field))


def validate_workflow(workflow: Workflow) -> ValidationResult:
    result = ValidationResult()

    if not workflow.nodes:
        result.error("Workflow must have at least one node")
        return result

    seen = set()
    for node in workflow.nodes:
        if node.id in seen:
            result.error(f"Duplicate node id: {node.id}", node.id)
        seen.add(node.id)
        _validate_node(node, result)

    node_ids = {n.id for n in workflow.nodes}
    for edge in workflow.edges:
        if edge.src not in node_ids:
            result.error(f"Connection references non-existent source node: {edge.src}")
        if edge.dest not in node_ids:
            result.error(f"Connection references non-existent target node: {edge.dest}")
        if edge.src == edge.dest:
            result.error("Node cannot connect to itself", edge.src)

    if len(workflow.nodes) > 1:
        connected = {e.src for e in workflow.edges} | {e.dest for e in workflow.edges}
        for node in workflow.nodes:
            if node.id not in connected and node.type != NodeType.TRIGGER:
                result.warn("Node is not connected to any other nodes", node.id)

    cycle = find_cycle(workflow)
    if cycle:
        result.error(f"Circular dependency detected: {' -> '.join(cycle)}")

    return result


def _validate_node(node, result: ValidationResult) -> None:
    if not node.name:
        result.warn("Node has no name", node.id, "name")

    try:
        config = parse_config_for_type(node.type, node.config or {})
    except ConfigValidationError as e:
        for err in e.errors:
            loc = ".".join(str(p) for p in err.get("loc", ())) or None
            result.error(err.get("msg", "Invalid value"), node.id, loc)
        return

    if node.type == NodeType.LOOP:
        if not (config.get("sourceKey") or config.get("dataSource")):
            result.error("Loop node must have a data source", node.id, "dataSource")
        if (config.get("maxIterations") or 0) > settings.LOOP_WARNING_ITERATIONS:
            result.warn("Loop has a very high max iterations limit", node.id, "maxIterations")

    if node.type == NodeType.CONDITION and not config.get("conditions"):
        result.warn("Condition node has no conditions and always passes", node.id, "conditions")


def find_cycle(workflow: Workflow) -> List[str]:
    """Return the node ids of the first cycle found (DFS), or an empty list."""
    graph: Dict[str, List[str]] = {n.id: [] for n in workflow.nodes}
    for edge in workflow.edges:
        if edge.src in graph and edge.dest in graph:
            graph[edge.src].append(edge.dest)

    visited = set()
    stack: List[str] = []
    on_stack = set()

    def _visit(node_id: str) -> List[str]:
        visited.add(node_id)
        stack.append(node_id)
        on_stack.add(node_id)
        for neighbor in graph[node_id]:
            if neighbor not in visited:
                found = _visit(neighbor)
                if found:
                    return found
            elif neighbor in on_stack:
                return stack[stack.index(neighbor):] + [neighbor]
        stack.pop()
        on_stack.discard(node_id)
        return []

    for node_id in graph:
        if node_id not in visited:
            cycle = _visit(node_id)
            if cycle:
                return cycle
    return []
