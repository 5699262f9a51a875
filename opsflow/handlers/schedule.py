from .base import BaseHandler, NodeResult
from ..workflow.scheduling import compute_next_run


class ScheduleHandler(BaseHandler):
    """ Reports when the schedule fires next. """
    def execute(self, context) -> NodeResult:
        next_run = compute_next_run(self.config)
        output = {
            "nextRunAt": next_run.isoformat() if next_run else None,
            "cron": self.config.get("cron"),
            "frequency": self.config.get("frequency"),
            "timezone": self.config.get("timezone"),
        }
        return NodeResult(output=output, result_key=self.result_key)
