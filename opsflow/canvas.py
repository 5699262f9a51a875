"""
Editor-side workflow graph with optimistic local edits.

Nodes and edges change locally first; ``save`` pushes pending creations,
updates and deletions to the workflow API one call at a time, then syncs
the connections.  A failed call is reported and its id stays pending so
the next save retries it; nothing already applied is rolled back.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

from .workflow.models import Edge, Node, NodeType, Workflow
from .workflow.schema import parse_config_for_type

logger = logging.getLogger(__name__)


@dataclass
class NodeState:
    id: str
    type: NodeType
    name: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    position: Tuple[float, float] = (0.0, 0.0)
    remote_id: Optional[str] = None

    def __post_init__(self):
        self.type = NodeType(self.type)


@dataclass
class EdgeState:
    id: str
    source: str
    target: str
    handle: Optional[str] = None


class WorkflowApi(Protocol):
    def create_node(self, workflow_id: str, node: NodeState) -> str:
        """Persist a new node and return its remote id."""
        ...

    def update_node(self, remote_id: str, node: NodeState) -> None:
        ...

    def delete_node(self, remote_id: str) -> None:
        ...

    def sync_connections(self, workflow_id: str, connections: List[Dict[str, Any]]) -> None:
        ...


@dataclass
class SaveReport:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    connections_synced: bool = False
    failures: List[Tuple[str, str, str]] = field(default_factory=list)  # (operation, id, message)

    @property
    def ok(self) -> bool:
        return not self.failures


class WorkflowCanvas:
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        self.nodes: Dict[str, NodeState] = {}
        self.edges: Dict[str, EdgeState] = {}
        self.pending_creations: Set[str] = set()
        self.pending_updates: Set[str] = set()
        # local id -> remote id of nodes removed since the last save
        self.pending_deletions: Dict[str, str] = {}
        self.has_unsaved_changes = False
        self._edges_dirty = False

    # -------------------------
    # LOADING
    # -------------------------

    def hydrate(self, nodes: List[NodeState], edges: List[EdgeState]) -> None:
        """Replace local state with what the server has; nothing is pending afterwards."""
        self.nodes = {n.id: n for n in nodes}
        for node in nodes:
            if node.remote_id is None:
                node.remote_id = node.id
        self.edges = {e.id: e for e in edges}
        self.pending_creations.clear()
        self.pending_updates.clear()
        self.pending_deletions.clear()
        self.has_unsaved_changes = False
        self._edges_dirty = False

    # -------------------------
    # LOCAL EDITS
    # -------------------------

    def add_node(self, node_type: NodeType, name: str = "", config: Optional[Dict[str, Any]] = None,
                 position: Tuple[float, float] = (0.0, 0.0)) -> NodeState:
        node = NodeState(
            id=f"node-{uuid.uuid4().hex[:12]}",
            type=node_type,
            name=name,
            config=dict(config or {}),
            position=position,
        )
        self.nodes[node.id] = node
        self.pending_creations.add(node.id)
        self._mark_dirty()
        return node

    def update_node(self, node_id: str, *, name: Optional[str] = None,
                    config: Optional[Dict[str, Any]] = None,
                    position: Optional[Tuple[float, float]] = None) -> NodeState:
        node = self.nodes[node_id]
        if name is not None:
            node.name = name
        if config is not None:
            node.config = parse_config_for_type(node.type, config) or {}
        if position is not None:
            node.position = position
        # a node not created yet is sent whole on creation
        if node_id not in self.pending_creations:
            self.pending_updates.add(node_id)
        self._mark_dirty()
        return node

    def delete_node(self, node_id: str) -> None:
        node = self.nodes.pop(node_id)
        for edge_id in [e.id for e in self.edges.values() if node_id in (e.source, e.target)]:
            del self.edges[edge_id]
            self._edges_dirty = True
        self.pending_updates.discard(node_id)
        if node_id in self.pending_creations:
            # never reached the server
            self.pending_creations.discard(node_id)
        else:
            self.pending_deletions[node_id] = node.remote_id or node_id
        self._mark_dirty()

    def connect(self, source: str, target: str, handle: Optional[str] = None) -> EdgeState:
        if source not in self.nodes or target not in self.nodes:
            raise KeyError(f"Unknown node in connection: {source} -> {target}")
        if source == target:
            raise ValueError("Node cannot connect to itself")
        for edge in self.edges.values():
            if (edge.source, edge.target, edge.handle) == (source, target, handle):
                return edge
        edge = EdgeState(id=f"edge-{uuid.uuid4().hex[:12]}", source=source, target=target, handle=handle)
        self.edges[edge.id] = edge
        self._edges_dirty = True
        self._mark_dirty()
        return edge

    def disconnect(self, edge_id: str) -> None:
        del self.edges[edge_id]
        self._edges_dirty = True
        self._mark_dirty()

    def _mark_dirty(self) -> None:
        self.has_unsaved_changes = True

    # -------------------------
    # SAVE
    # -------------------------

    def save(self, api: WorkflowApi) -> SaveReport:
        """Reconcile local changes with the API: create, update, delete, then connections."""
        report = SaveReport()

        for node_id in sorted(self.pending_creations):
            node = self.nodes[node_id]
            try:
                node.remote_id = api.create_node(self.workflow_id, node)
            except Exception as e:
                self._report(report, "create", node_id, e)
                continue
            self.pending_creations.discard(node_id)
            report.created.append(node_id)
            self._edges_dirty = True

        for node_id in sorted(self.pending_updates):
            node = self.nodes[node_id]
            try:
                api.update_node(node.remote_id or node_id, node)
            except Exception as e:
                self._report(report, "update", node_id, e)
                continue
            self.pending_updates.discard(node_id)
            report.updated.append(node_id)

        for node_id, remote_id in sorted(self.pending_deletions.items()):
            try:
                api.delete_node(remote_id)
            except Exception as e:
                self._report(report, "delete", node_id, e)
                continue
            del self.pending_deletions[node_id]
            report.deleted.append(node_id)

        if self._edges_dirty:
            try:
                api.sync_connections(self.workflow_id, self.connections())
            except Exception as e:
                self._report(report, "sync_connections", self.workflow_id, e)
            else:
                self._edges_dirty = False
                report.connections_synced = True

        if report.ok:
            self.has_unsaved_changes = False
        return report

    def _report(self, report: SaveReport, operation: str, item_id: str, error: Exception) -> None:
        logger.error("Failed to %s %s: %s", operation.replace("_", " "), item_id, error)
        report.failures.append((operation, item_id, str(error)))

    def connections(self) -> List[Dict[str, Any]]:
        """Edges expressed with the remote ids of their endpoints."""
        out = []
        for edge in self.edges.values():
            source, target = self.nodes[edge.source], self.nodes[edge.target]
            out.append({
                "edgeId": edge.id,
                "sourceNodeId": source.remote_id or source.id,
                "targetNodeId": target.remote_id or target.id,
                "sourceHandle": edge.handle,
            })
        return out

    def to_workflow(self, name: str = "") -> Workflow:
        """Build the executable graph from the current local state."""
        return Workflow(
            name=name or self.workflow_id,
            id=self.workflow_id,
            nodes=[Node(id=n.id, type=n.type, name=n.name, config=n.config) for n in self.nodes.values()],
            edges=[Edge(src=e.source, dest=e.target, handle=e.handle) for e in self.edges.values()],
        )
