""" Load and validate Workflow from YAML. """

import logging

import yaml

from ..errors import ConfigValidationError, WorkflowDefinitionError
from .models import Workflow, Node, Edge, NodeType
from .schema import parse_config_for_type
from .validator import validate_workflow

logger = logging.getLogger(__name__)


def load_workflow(yaml_text: str) -> Workflow:
    """
    Load a Workflow from a YAML string.
    """
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise WorkflowDefinitionError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise WorkflowDefinitionError("Workflow YAML must be a mapping")

    # basic validation
    for key in ["name", "nodes"]:
        if key not in data:
            raise WorkflowDefinitionError(f"Missing required top-level field: {key}")

    nodes = [_load_node(node_data) for node_data in data.get("nodes") or []]

    edges = []
    for edge_data in data.get("edges") or []:
        try:
            src, dest = edge_data["from"], edge_data["to"]
        except (KeyError, TypeError):
            raise WorkflowDefinitionError(f"Edge must have 'from' and 'to': {edge_data}")
        handle = edge_data.get("handle")
        edges.append(Edge(src=src, dest=dest, handle=str(handle).lower() if isinstance(handle, bool) else handle))

    workflow = Workflow(
        name=data["name"],
        id=str(data.get("id", "")),
        description=data.get("description", ""),
        outputs=data.get("outputs", []),
        variables=data.get("variables", {}),
        nodes=nodes,
        edges=edges,
    )
    _validate_workflow(workflow)

    return workflow


def _load_node(node_data) -> Node:
    if not isinstance(node_data, dict) or "id" not in node_data or "type" not in node_data:
        raise WorkflowDefinitionError(f"Node must have 'id' and 'type': {node_data}")

    try:
        node_type = NodeType(str(node_data["type"]).upper())
    except ValueError:
        raise WorkflowDefinitionError(f"Unsupported node type: {node_data['type']}")

    config = node_data.get("config")
    try:
        parsed = parse_config_for_type(node_type, config) if config is not None else {}
    except ConfigValidationError as e:
        raise WorkflowDefinitionError(f"Node {node_data['id']}: {e}") from e

    return Node(
        id=str(node_data["id"]),
        type=node_type,
        name=node_data.get("name", ""),
        config=parsed,
        is_optional=bool(node_data.get("optional", False)),
    )


def _validate_workflow(workflow: Workflow) -> None:
    result = validate_workflow(workflow)
    for warning in result.warnings:
        logger.warning("%s: %s", warning.node_id or workflow.name, warning.message)
    if not result.valid:
        details = "; ".join(
            f"{e.node_id}: {e.message}" if e.node_id else e.message for e in result.errors
        )
        raise WorkflowDefinitionError(details)
