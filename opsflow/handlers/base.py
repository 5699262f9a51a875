from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from ..workflow.context import ExecutionContext
from ..workflow.models import Node


@dataclass
class NodeResult:
    """
    What a handler produced and which outgoing edges to follow.

    ``branch`` selects edges by handle; when it is None every edge is
    followed except those whose handle is in ``skip_handles``.
    """
    output: Any = None
    branch: Optional[str] = None
    skip_handles: FrozenSet[str] = frozenset()
    iterations: Optional[List[Any]] = None
    result_key: Optional[str] = None


class BaseHandler(ABC):
    """ Abstract base class for all node handlers. """

    def __init__(self, node: Node):
        self.node = node
        self.node_id = node.id
        self.config: Dict[str, Any] = node.config or {}

    @property
    def result_key(self) -> Optional[str]:
        return self.config.get("resultKey")

    @abstractmethod
    def execute(self, context: ExecutionContext) -> NodeResult:
        """
        Run the node.  Must be implemented by subclasses.
        """
        pass

    def dry_run(self, context: ExecutionContext) -> NodeResult:
        """
        Simulate execution without side effects.  Handlers that only
        read the context run normally.
        """
        return self.execute(context)
