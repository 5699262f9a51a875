from typing import Dict, Any, Iterable, List, Optional, Set

from ..errors import NodeExecutionError, WorkflowDefinitionError
from ..handlers.base import NodeResult
from ..handlers.loop import BODY_HANDLE
from ..handlers.trigger import matches_event
from ..logging import log_error
from .conditions import MISSING, resolve_path
from .context import ExecutionContext, ExecutionStatus
from .factory import make_handler
from .models import Workflow, Node, Edge, NodeType
from .validator import find_cycle


def execute_workflow(
    workflow: Workflow,
    payload: Optional[Dict[str, Any]] = None,
    *,
    event: Optional[Dict[str, Any]] = None,
    trigger_id: Optional[str] = None,
    dry_run: bool = False,
    context: Optional[ExecutionContext] = None,
) -> ExecutionContext:
    """
    Walk the workflow graph from its start nodes and return the context.

    A failing node stops its own branch and marks the run FAILED; other
    branches still run.  Failures of optional nodes are only logged.
    A cyclic graph is rejected with WorkflowDefinitionError before any
    node runs.
    """
    cycle = find_cycle(workflow)
    if cycle:
        raise WorkflowDefinitionError(f"Circular dependency detected: {' -> '.join(cycle)}")

    payload = payload or {}
    context = context or ExecutionContext()
    context.workflow_id = workflow.id or workflow.name
    context.set_many({
        **workflow.variables,
        **payload,
        "payload": payload,
        "trigger": {**(event or {}), "payload": payload},
    })

    start = _start_nodes(workflow, event, trigger_id)
    context.log("", "workflow_started", start=[n.id for n in start])
    _run_from(workflow, start, context, dry_run)

    if context.status == ExecutionStatus.RUNNING:
        context.status = ExecutionStatus.COMPLETED
    context.log("", "workflow_finished", status=context.status.value)
    return context


def run_workflow(workflow: Workflow, payload: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
    """
    Run a workflow and return its declared outputs, or the whole data
    dict when it declares none.  Raises the first node failure.
    """
    context = execute_workflow(workflow, payload, **kwargs)
    if context.status == ExecutionStatus.FAILED:
        raise context.errors[0]
    if not workflow.outputs:
        return dict(context.data)
    outputs = {}
    for key in workflow.outputs:
        value = resolve_path(context.data, key)
        outputs[key] = None if value is MISSING else value
    return outputs


def _start_nodes(workflow: Workflow, event, trigger_id) -> List[Node]:
    if trigger_id:
        return [workflow.get_node(trigger_id)]
    triggers = [n for n in workflow.nodes if n.type == NodeType.TRIGGER]
    if triggers:
        return [n for n in triggers if matches_event(n.config, event)]
    return [n for n in workflow.nodes if workflow.in_degree(n.id) == 0]


def _run_from(workflow: Workflow, start: Iterable[Node], context: ExecutionContext,
              dry_run: bool, executed: Optional[Set[str]] = None) -> None:
    # repeatedly run ready nodes, following the edges each node selects
    executed = executed if executed is not None else set()
    ready: List[Node] = list(start)

    in_edges: Dict[str, List[Edge]] = {}
    for edge in workflow.edges:
        in_edges.setdefault(edge.dest, []).append(edge)

    while ready:
        node = ready.pop(0)
        if node.id in executed:
            continue

        # wait for predecessors that are already queued
        queued = {n.id for n in ready}
        if any(e.src in queued for e in in_edges.get(node.id, [])):
            ready.append(node)
            continue

        executed.add(node.id)
        result = _run_node(node, context, dry_run)
        if result is None:
            continue

        if result.iterations is not None:
            _run_loop(workflow, node, result, context, dry_run)

        for edge in workflow.out_edges(node.id):
            if _follows(edge, result):
                ready.append(workflow.get_node(edge.dest))


def _run_node(node: Node, context: ExecutionContext, dry_run: bool) -> Optional[NodeResult]:
    handler = make_handler(node)
    try:
        result = handler.dry_run(context) if dry_run else handler.execute(context)
    except Exception as e:
        error = e if isinstance(e, NodeExecutionError) else NodeExecutionError(node.id, str(e), e)
        log_error(context.workflow_id, node.id, e, {"optional": node.is_optional})
        if not node.is_optional:
            context.fail(error)
            return None
        context.set_result(node.id, {"error": str(e)}, name=node.name)
        return NodeResult(output={"error": str(e)})

    context.set_result(node.id, result.output, name=node.name, result_key=result.result_key)
    context.log(node.id, "node_completed", type=node.type.value, branch=result.branch)
    return result


def _run_loop(workflow: Workflow, node: Node, result: NodeResult, context: ExecutionContext, dry_run: bool):
    handler = make_handler(node)
    body = [workflow.get_node(e.dest) for e in workflow.out_edges(node.id) if e.handle == BODY_HANDLE]
    bound = (handler.item_variable, handler.index_variable)
    saved = {name: context.data[name] for name in bound if name in context.data}
    outputs = []
    for index, item in enumerate(result.iterations):
        context.data[handler.item_variable] = item
        context.data[handler.index_variable] = index
        context.data.pop("previousStep", None)
        _run_from(workflow, body, context, dry_run, executed=set())
        outputs.append(context.data.get("previousStep"))
    # restore whatever the loop variables shadowed
    for name in bound:
        context.data.pop(name, None)
    context.data.update(saved)

    output = {**result.output, "results": outputs}
    context.set_result(node.id, output, name=node.name, result_key=result.result_key)


def _follows(edge: Edge, result: NodeResult) -> bool:
    if result.branch is not None:
        # unlabelled edges belong to the "true" branch
        return edge.handle == result.branch or (not edge.handle and result.branch == "true")
    return edge.handle not in result.skip_handles
