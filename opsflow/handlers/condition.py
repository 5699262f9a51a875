from typing import Any, Dict, List

from .base import BaseHandler, NodeResult
from ..workflow.conditions import evaluate_group
from ..workflow.templates import resolve_variables


def interpolate_conditions(conditions: List[Dict[str, Any]], data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Resolve {VARIABLE} placeholders in condition values."""
    out = []
    for cond in conditions or []:
        cond = dict(cond)
        for key in ("value", "valueTo"):
            if isinstance(cond.get(key), str):
                cond[key] = resolve_variables(cond[key], data)
        out.append(cond)
    return out


class ConditionHandler(BaseHandler):
    """ Evaluates its condition group and picks the "true" or "false" branch. """
    def execute(self, context) -> NodeResult:
        group = {
            "conditions": interpolate_conditions(self.config.get("conditions"), context.data),
            "logicalOperator": self.config.get("logicalOperator", "AND"),
        }
        passed = evaluate_group(group, context.data)
        return NodeResult(
            output={"result": passed},
            branch="true" if passed else "false",
            result_key=self.result_key,
        )
