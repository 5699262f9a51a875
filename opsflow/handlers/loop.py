import logging

from .base import BaseHandler, NodeResult
from .filter import as_items
from ..config import settings
from ..workflow.conditions import MISSING, resolve_path

logger = logging.getLogger(__name__)

BODY_HANDLE = "body"


class LoopHandler(BaseHandler):
    """
    Resolves the collection to iterate. The executor runs the "body"
    successors once per item; the remaining edges run after the loop.
    """

    @property
    def item_variable(self) -> str:
        return self.config.get("itemVariable") or "item"

    @property
    def index_variable(self) -> str:
        return self.config.get("indexVariable") or "index"

    def execute(self, context) -> NodeResult:
        path = self.config.get("sourceKey") or self.config.get("dataSource")
        source = resolve_path(context.data, path) if path else MISSING
        items = as_items(source)

        limit = self.config.get("maxIterations")
        if limit is None:
            limit = settings.MAX_LOOP_ITERATIONS
        if len(items) > limit:
            logger.warning("Loop %s: %d items, stopping after %d", self.node_id, len(items), limit)
            items = items[:limit]

        empty_handle = self.config.get("emptyPathHandle")
        skip = frozenset({BODY_HANDLE, empty_handle} - {None})
        if not items and empty_handle:
            return NodeResult(
                output={"items": [], "count": 0},
                branch=empty_handle,
                result_key=self.result_key,
            )
        return NodeResult(
            output={"items": items, "count": len(items)},
            skip_handles=skip,
            iterations=items,
            result_key=self.result_key,
        )
