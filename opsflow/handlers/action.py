from .base import BaseHandler, NodeResult
from ..tools.registry import get_tool
from ..workflow.templates import resolve_structure


class ActionHandler(BaseHandler):
    """ Handler that wraps a tool from the registry. """
    def _prepare(self, context):
        tool_name = self.config.get("tool")
        if not tool_name:
            raise ValueError(f"Action {self.node_id} missing 'tool' parameter")
        params = resolve_structure(self.config.get("params") or {}, context.data)
        return tool_name, params

    def execute(self, context) -> NodeResult:
        """ Execute the tool with interpolated params. """
        tool_name, params = self._prepare(context)
        fn = get_tool(tool_name)
        result = fn(**params)

        # Ensure result is a dict
        if not isinstance(result, dict):
            result = {"result": result}

        return NodeResult(output=result, result_key=self.result_key)

    def dry_run(self, context) -> NodeResult:
        tool_name, params = self._prepare(context)
        get_tool(tool_name)
        return NodeResult(
            output={"tool": tool_name, "params": params, "dryRun": True},
            result_key=self.result_key,
        )
