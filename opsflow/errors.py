"""Exceptions raised by opsflow."""

from typing import Any, Dict, List, Optional


class OpsflowError(Exception):
    """Base exception for opsflow."""

    pass


class ConfigValidationError(OpsflowError, ValueError):
    """A persisted node configuration does not match its schema."""

    def __init__(self, node_type: str, errors: List[Dict[str, Any]]):
        self.node_type = node_type
        self.errors = errors
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())) or '<root>'}: {e.get('msg')}"
            for e in errors
        )
        super().__init__(f"Invalid {node_type} config: {details}")


class FormValidationError(OpsflowError, ValueError):
    """A node form failed validation at submit time."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__(
            "Form has errors: " + ", ".join(f"{k}: {v}" for k, v in errors.items())
        )


class WorkflowDefinitionError(OpsflowError, ValueError):
    """Workflow definition is malformed or its graph is invalid."""

    pass


class NodeExecutionError(OpsflowError):
    """A node failed while the workflow was running."""

    def __init__(self, node_id: str, message: str, cause: Optional[Exception] = None):
        self.node_id = node_id
        self.cause = cause
        super().__init__(f"Node {node_id} failed: {message}")
