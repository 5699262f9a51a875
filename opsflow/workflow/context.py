""" Execution context shared by node handlers during a workflow run. """
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..logging import log_event


class ExecutionStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class ExecutionContext:
    data: Dict[str, Any] = field(default_factory=dict)
    logs: List[Dict[str, Any]] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.RUNNING
    errors: List[Exception] = field(default_factory=list)
    workflow_id: str = ""

    def set_many(self, kv: Dict[str, Any]):
        self.data.update(kv)

    def set_result(self, node_id: str, output: Any, *, name: str = "", result_key: Optional[str] = None):
        """Store a node's output where downstream nodes can read it."""
        self.data[node_id] = output
        if name and name != node_id:
            self.data[name] = output
        self.data["previousStep"] = output
        if result_key:
            self.data[result_key] = output
            self.data.setdefault("results", {})[result_key] = output

    def log(self, node_id: str, event: str, **details: Any):
        entry = {"node_id": node_id, "event": event, **details}
        self.logs.append(entry)
        log_event(self.workflow_id, node_id, event, details)

    def fail(self, error: Exception):
        self.errors.append(error)
        self.status = ExecutionStatus.FAILED
