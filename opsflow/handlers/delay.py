import time
from datetime import datetime, timezone

from .base import BaseHandler, NodeResult
from ..config import settings


class DelayHandler(BaseHandler):
    """ Pauses the branch for ``delayMs`` milliseconds. """

    @property
    def delay_ms(self) -> int:
        delay = self.config.get("delayMs", settings.DEFAULT_DELAY_MS)
        return min(settings.MAX_DELAY_MS, max(0, int(delay)))

    def execute(self, context) -> NodeResult:
        delay_ms = self.delay_ms
        time.sleep(delay_ms / 1000)
        output = {"delayMs": delay_ms, "resumedAt": datetime.now(timezone.utc).isoformat()}
        return NodeResult(output=output, result_key=self.result_key)

    def dry_run(self, context) -> NodeResult:
        return NodeResult(output={"delayMs": self.delay_ms, "skipped": True}, result_key=self.result_key)
