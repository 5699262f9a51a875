from typing import Any, Dict, Optional

from .base import BaseHandler, NodeResult

EVENT_KEYS = ("module", "entityType", "eventType")


def matches_event(config: Dict[str, Any], event: Optional[Dict[str, Any]]) -> bool:
    """A blank trigger field matches any event; comparison ignores case."""
    if not event:
        return True
    for key in EVENT_KEYS:
        expected = str(config.get(key) or "").strip().lower()
        if expected and expected != str(event.get(key) or "").strip().lower():
            return False
    return True


class TriggerHandler(BaseHandler):
    """ Entry point; passes the trigger payload through. """
    def execute(self, context) -> NodeResult:
        return NodeResult(output=context.data.get("payload"), result_key=self.result_key)
