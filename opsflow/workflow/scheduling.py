""" Cron parsing and next-run computation for SCHEDULE nodes. """

import calendar
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from apscheduler.triggers.cron import CronTrigger

from ..config import settings
from ..logging import log_error, log_event
from .models import Frequency, NodeType
from .normalizer import parse_datetime
from .schema import parse_config_for_type

logger = logging.getLogger(__name__)

# minute hour day month weekday
CRON_FIELDS: List[Tuple[str, int, int]] = [
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 7),
]

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
# APScheduler counts weekdays from Monday
_TRIGGER_DAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


@dataclass
class CronParseResult:
    is_valid: bool
    error: Optional[str] = None
    description: Optional[str] = None
    next_run: Optional[datetime] = None


def _int(text: str) -> Optional[int]:
    return int(text) if text.isdigit() else None


def validate_cron_field(value: str, low: int, high: int) -> bool:
    if value == "*":
        return True
    if "/" in value:
        base, _, step = value.partition("/")
        step_num = _int(step)
        return base == "*" and step_num is not None and 0 < step_num <= high
    if "-" in value:
        start, _, end = value.partition("-")
        start_num, end_num = _int(start), _int(end)
        return (
            start_num is not None
            and end_num is not None
            and low <= start_num < end_num <= high
        )
    if "," in value:
        nums = [_int(v) for v in value.split(",")]
        return all(n is not None and low <= n <= high for n in nums)
    num = _int(value)
    return num is not None and low <= num <= high


def parse_cron_expression(expression: str) -> CronParseResult:
    """Validate a five-field cron expression and describe it."""
    parts = (expression or "").strip().split()
    if len(parts) != 5:
        return CronParseResult(
            is_valid=False,
            error="Cron expression must have 5 fields: minute hour day month weekday",
        )
    for part, (name, low, high) in zip(parts, CRON_FIELDS):
        if not validate_cron_field(part, low, high):
            return CronParseResult(is_valid=False, error=f"Invalid {name} field")

    normalized = " ".join(parts)
    return CronParseResult(
        is_valid=True,
        description=describe_cron_expression(normalized),
        next_run=next_cron_run(normalized, settings.DEFAULT_TIMEZONE, _now()),
    )


def describe_cron_expression(expression: str) -> str:
    parts = expression.split()
    if len(parts) != 5:
        return f"Custom: {expression}"
    minute, hour, day, month, weekday = parts
    at = f"{hour}:{minute.zfill(2)}"

    if minute != "*" and hour != "*" and day == "*" and month == "*" and weekday == "*":
        return f"Daily at {at}"
    if minute != "*" and hour == "*" and day == "*" and month == "*" and weekday == "*":
        return f"Every hour at minute {minute}"
    if minute != "*" and hour != "*" and day == "*" and month == "*" and weekday != "*":
        index = _int(weekday)
        day_name = DAY_NAMES[index % 7] if index is not None and index <= 7 else weekday
        return f"Weekly on {day_name} at {at}"
    if minute != "*" and hour != "*" and day != "*" and month == "*" and weekday == "*":
        return f"Monthly on day {day} at {at}"
    return f"Custom: {expression}"


def _weekday_field(value: str) -> str:
    """Translate a cron weekday field (0 = Sunday) into weekday names."""
    if value == "*":
        return "*"
    if "/" in value:
        step = int(value.partition("/")[2])
        days = list(range(0, 7, step))
    elif "-" in value:
        start, _, end = value.partition("-")
        days = list(range(int(start), int(end) + 1))
    else:
        days = [int(v) for v in value.split(",")]
    return ",".join(_TRIGGER_DAYS[d % 7] for d in sorted(set(days)))


def build_cron_trigger(expression: str, tz: str) -> CronTrigger:
    minute, hour, day, month, weekday = expression.split()
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_weekday_field(weekday),
        timezone=tz,
    )


def next_cron_run(expression: str, tz: str, reference: datetime) -> Optional[datetime]:
    """First fire time strictly after ``reference``, in UTC."""
    trigger = build_cron_trigger(expression, tz)
    fire = trigger.get_next_fire_time(None, reference + timedelta(seconds=1))
    return fire.astimezone(timezone.utc) if fire else None


# -------------------------
# NEXT RUN
# -------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Any) -> Optional[datetime]:
    """Aware UTC datetime, or None for blank and unparseable values."""
    try:
        return parse_datetime(value)
    except ValueError:
        logger.warning("Ignoring unparseable schedule date %r", value)
        return None


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping to the last day of shorter months."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _advance(reference: datetime, frequency: str) -> datetime:
    if frequency == Frequency.HOURLY:
        return reference + timedelta(hours=1)
    if frequency == Frequency.DAILY:
        return reference + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return reference + timedelta(weeks=1)
    if frequency == Frequency.MONTHLY:
        return add_months(reference, 1)
    if frequency == Frequency.YEARLY:
        return add_months(reference, 12)
    logger.warning("Unknown frequency %r, defaulting to daily", frequency)
    return reference + timedelta(days=1)


def compute_next_run(config: Dict[str, Any], from_date: Optional[datetime] = None) -> Optional[datetime]:
    """
    Next time a schedule should fire after ``from_date`` (now by default).

    The reference is truncated to the minute. A future ``startAt`` is
    returned as-is, a past ``endAt`` or an inactive schedule yields None,
    and a candidate past ``endAt`` also yields None.
    """
    if config.get("isActive") is False:
        return None

    reference = (_as_utc(from_date) or _now()).replace(second=0, microsecond=0)
    start_at = _as_utc(config.get("startAt"))
    end_at = _as_utc(config.get("endAt"))

    if start_at and start_at > reference:
        return start_at
    if end_at and end_at < reference:
        return None

    cron = (config.get("cron") or "").strip()
    frequency = (config.get("frequency") or "").strip().upper()

    if cron:
        try:
            candidate = next_cron_run(cron, config.get("timezone") or settings.DEFAULT_TIMEZONE, reference)
        except (ValueError, LookupError) as e:
            logger.error("Failed to calculate next cron run for %r: %s", cron, e)
            return None
    elif frequency:
        candidate = _advance(reference, frequency)
    else:
        return reference + timedelta(minutes=settings.SCHEDULE_FALLBACK_MINUTES)

    if candidate is None or (end_at and candidate > end_at):
        return None
    return candidate


# -------------------------
# IN-MEMORY SCHEDULE BOOK
# -------------------------

@dataclass
class ScheduleRecord:
    workflow_id: str
    node_id: str
    config: Dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_status: Optional[str] = None
    last_error: Optional[str] = None
    run_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.config.get("isActive", True)


class ScheduleBook:
    """Keeps SCHEDULE node registrations and fires the ones that are due."""

    def __init__(self):
        self._records: Dict[str, ScheduleRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> ScheduleRecord:
        return self._records[record_id]

    def register(self, workflow_id: str, node_id: str, config: Dict[str, Any],
                 now: Optional[datetime] = None) -> ScheduleRecord:
        parsed = parse_config_for_type(NodeType.SCHEDULE, config)
        record = ScheduleRecord(workflow_id=workflow_id, node_id=node_id, config=parsed)
        record.next_run_at = compute_next_run(parsed, now)
        self._records[record.id] = record
        log_event(workflow_id, node_id, "schedule_registered", {
            "schedule_id": record.id,
            "next_run_at": record.next_run_at,
        })
        return record

    def update(self, record_id: str, changes: Dict[str, Any], now: Optional[datetime] = None) -> ScheduleRecord:
        """Merge config changes and recompute the next run."""
        record = self._records[record_id]
        merged = {**record.config, **changes}
        # cron and frequency are mutually exclusive
        if changes.get("cron"):
            merged.pop("frequency", None)
        elif changes.get("frequency"):
            merged.pop("cron", None)
        record.config = parse_config_for_type(NodeType.SCHEDULE, merged)
        record.next_run_at = compute_next_run(record.config, now)
        return record

    def remove(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def due(self, now: Optional[datetime] = None) -> List[ScheduleRecord]:
        now = _as_utc(now) or _now()
        ready = [
            r for r in self._records.values()
            if r.is_active and r.next_run_at is not None and r.next_run_at <= now
        ]
        return sorted(ready, key=lambda r: r.next_run_at)

    def run_due(self, now: Optional[datetime] = None,
                runner: Optional[Callable[[ScheduleRecord], Any]] = None) -> List[ScheduleRecord]:
        """
        Run every due schedule through ``runner`` and advance it.
        A failing runner is recorded on the record and logged.
        """
        now = _as_utc(now) or _now()
        fired = []
        for record in self.due(now):
            try:
                if runner is not None:
                    runner(record)
                record.last_status = "SUCCESS"
                record.last_error = None
            except Exception as e:
                record.last_status = "FAILED"
                record.last_error = str(e)
                log_error(record.workflow_id, record.node_id, e, {"schedule_id": record.id})
            record.last_run_at = now
            record.run_count += 1
            record.next_run_at = compute_next_run(record.config, now)
            fired.append(record)
        return fired
