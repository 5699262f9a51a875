import logging
from typing import Any, List

from .base import BaseHandler, NodeResult
from .condition import interpolate_conditions
from ..workflow.conditions import MISSING, filter_items, resolve_path

logger = logging.getLogger(__name__)


def as_items(value: Any) -> List[Any]:
    """Collections pass through; a single mapping counts as one item."""
    if value is MISSING or value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return [value]
    return []


class FilterHandler(BaseHandler):
    """ Keeps the items of ``sourceKey`` that satisfy its conditions. """
    def execute(self, context) -> NodeResult:
        source_key = self.config.get("sourceKey")
        source = resolve_path(context.data, source_key) if source_key else MISSING
        if source is MISSING:
            logger.warning("Filter %s: nothing found at %r", self.node_id, source_key)

        group = {
            "conditions": interpolate_conditions(self.config.get("conditions"), context.data),
            "logicalOperator": self.config.get("logicalOperator", "AND"),
        }
        matched = filter_items(group, as_items(source))

        key = self.result_key
        if not matched:
            key = self.config.get("fallbackKey") or key
        return NodeResult(output=matched, result_key=key)
