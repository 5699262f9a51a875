from typing import Any, Dict, List

from .base import BaseHandler, NodeResult
from .condition import interpolate_conditions
from ..tools.registry import get_model_records
from ..workflow.conditions import MISSING, comparable, filter_items, resolve_path


def _is_missing(record: Dict[str, Any], field: str) -> bool:
    value = resolve_path(record, field)
    return value is MISSING or value is None


def order_records(records: List[Dict[str, Any]], order_by: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # stable sorts applied from the last key to the first; missing values
    # always go last, whatever the direction
    for spec in reversed(order_by or []):
        field = spec["field"]
        present = [r for r in records if not _is_missing(r, field)]
        absent = [r for r in records if _is_missing(r, field)]
        present = sorted(
            present,
            key=lambda r: comparable(resolve_path(r, field)),
            reverse=spec.get("direction") == "desc",
        )
        records = present + absent
    return records


def select_fields(record: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    out = {}
    for name in fields:
        value = resolve_path(record, name)
        if value is not MISSING:
            out[name] = value
    return out


class QueryHandler(BaseHandler):
    """ Reads records of a registered model and narrows them down. """
    def execute(self, context) -> NodeResult:
        records = list(get_model_records(self.config["model"]))

        filters = interpolate_conditions(self.config.get("filters"), context.data)
        records = filter_items({"conditions": filters}, records)
        records = order_records(records, self.config.get("orderBy"))

        offset = self.config.get("offset") or 0
        limit = self.config.get("limit")
        records = records[offset:offset + limit] if limit is not None else records[offset:]

        select = self.config.get("select")
        if select:
            keep = list(select) + list(self.config.get("include") or [])
            records = [select_fields(r, keep) for r in records]

        key = self.result_key
        if not records:
            key = self.config.get("fallbackKey") or key
        return NodeResult(output=records, result_key=key)
