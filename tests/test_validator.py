"""Tests for static workflow validation."""

from opsflow.workflow.models import Edge, Node, Workflow
from opsflow.workflow.validator import find_cycle, validate_workflow


def _messages(findings):
    return [f.message for f in findings]


def test_empty_workflow_is_invalid():
    """Test that a workflow needs nodes."""
    result = validate_workflow(Workflow(name="empty"))
    assert result.valid is False
    assert _messages(result.errors) == ["Workflow must have at least one node"]


def test_valid_workflow():
    """Test a small connected workflow."""
    wf = Workflow(
        name="ok",
        nodes=[
            Node("start", "TRIGGER", name="New deal"),
            Node("wait", "DELAY", name="Wait", config={"delayMs": 1000}),
        ],
        edges=[Edge("start", "wait")],
    )
    result = validate_workflow(wf)
    assert result.valid is True
    assert result.warnings == []


def test_node_config_errors_are_reported_per_node():
    """Test schema errors surface with node ids."""
    wf = Workflow(name="bad", nodes=[Node("f", "FILTER", name="Filter", config={"conditions": []})])
    result = validate_workflow(wf)

    assert result.valid is False
    assert result.errors[0].node_id == "f"
    assert result.errors[0].field == "sourceKey"


def test_loop_checks():
    """Test loop data source error and high limit warning."""
    wf = Workflow(name="loops", nodes=[
        Node("a", "LOOP", name="No source", config={"itemVariable": "x"}),
        Node("b", "LOOP", name="Huge", config={"sourceKey": "rows", "maxIterations": 5000}),
    ], edges=[Edge("a", "b")])
    result = validate_workflow(wf)

    assert "Loop node must have a data source" in _messages(result.errors)
    assert "Loop has a very high max iterations limit" in _messages(result.warnings)


def test_condition_without_conditions_is_a_warning():
    """Test that an empty condition node is allowed but flagged."""
    wf = Workflow(name="cond", nodes=[Node("c", "CONDITION", name="Check")])
    result = validate_workflow(wf)

    assert result.valid is True
    assert _messages(result.warnings) == ["Condition node has no conditions and always passes"]


def test_edges_to_unknown_nodes_and_self_loops():
    """Test connection errors."""
    wf = Workflow(
        name="edges",
        nodes=[Node("a", "TRIGGER", name="A"), Node("b", "DELAY", name="B")],
        edges=[Edge("a", "ghost"), Edge("b", "b"), Edge("a", "b")],
    )
    messages = _messages(validate_workflow(wf).errors)

    assert "Connection references non-existent target node: ghost" in messages
    assert "Node cannot connect to itself" in messages


def test_orphaned_nodes_are_warnings():
    """Test that unconnected non-trigger nodes are flagged."""
    wf = Workflow(name="orphans", nodes=[
        Node("t", "TRIGGER", name="Start"),
        Node("d", "DELAY", name="Lonely"),
    ])
    result = validate_workflow(wf)

    assert result.valid is True
    assert [w.node_id for w in result.warnings] == ["d"]


def test_cycle_is_reported_with_path():
    """Test cycle detection."""
    wf = Workflow(
        name="cycle",
        nodes=[Node(n, "DELAY", name=n) for n in ("a", "b", "c")],
        edges=[Edge("a", "b"), Edge("b", "c"), Edge("c", "a")],
    )
    assert find_cycle(wf) == ["a", "b", "c", "a"]
    assert "Circular dependency detected: a -> b -> c -> a" in _messages(validate_workflow(wf).errors)
