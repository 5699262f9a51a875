""" Factory for creating handler instances based on node type. """
from typing import Dict, Type

from ..handlers.base import BaseHandler
from ..handlers.action import ActionHandler
from ..handlers.condition import ConditionHandler
from ..handlers.delay import DelayHandler
from ..handlers.filter import FilterHandler
from ..handlers.loop import LoopHandler
from ..handlers.query import QueryHandler
from ..handlers.schedule import ScheduleHandler
from ..handlers.trigger import TriggerHandler
from .models import Node, NodeType

_HANDLER_MAP: Dict[NodeType, Type[BaseHandler]] = {
    NodeType.TRIGGER: TriggerHandler,
    NodeType.ACTION: ActionHandler,
    NodeType.DELAY: DelayHandler,
    NodeType.LOOP: LoopHandler,
    NodeType.QUERY: QueryHandler,
    NodeType.FILTER: FilterHandler,
    NodeType.CONDITION: ConditionHandler,
    NodeType.SCHEDULE: ScheduleHandler,
}


def make_handler(node: Node) -> BaseHandler:
    cls = _HANDLER_MAP.get(node.type)
    if not cls:
        raise ValueError(f"Unsupported node type: {node.type}")
    return cls(node)
