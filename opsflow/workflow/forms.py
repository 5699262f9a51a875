""" Node edit forms: raw values, inline errors, and submit into a canonical config. """

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Set, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from ..config import settings
from ..errors import FormValidationError
from .models import Frequency, NodeType
from .normalizer import (
    DURATION_UNITS,
    clean_str,
    derive_delay_form,
    derive_schedule_form,
    normalize,
    parse_datetime,
    parse_int_lenient,
    resolve_path_choice,
    schedule_mode,
)
from .scheduling import parse_cron_expression
from .schema import parse_config_for_type

NumberInput = Union[int, float, str, None]


def _resolve_paths(data: Any, *keys: str) -> Any:
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key in keys:
        if key in data:
            data[key] = resolve_path_choice(data, key)
    return data


def _whole_number(value: NumberInput, *, minimum: int = 0) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = parse_int_lenient(value)
    if number is None:
        raise ValueError("Must be a whole number")
    if number < minimum:
        raise ValueError(f"Must be at least {minimum}")
    return number


class NodeForm(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = Field(default=None, validate_default=True)
    result_key: Optional[str] = Field(default=None, alias="resultKey")

    @field_validator("name")
    @classmethod
    def _name_required(cls, v):
        if not clean_str(v):
            raise ValueError("Name is required")
        return v.strip()


class TriggerForm(NodeForm):
    pass


class ActionForm(NodeForm):
    tool: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("tool")
    @classmethod
    def _tool_required(cls, v):
        if not clean_str(v):
            raise ValueError("Choose an action")
        return v


class DelayForm(NodeForm):
    duration_unit: Literal["seconds", "minutes", "hours", "days"] = Field(default="seconds", alias="durationUnit")
    duration_value: NumberInput = Field(default=None, alias="durationValue", validate_default=True)

    @field_validator("duration_value")
    @classmethod
    def _duration(cls, v, info: ValidationInfo):
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Duration is required")
        try:
            amount = float(v)
        except (TypeError, ValueError):
            raise ValueError("Duration must be a number")
        if amount < 0:
            raise ValueError("Duration cannot be negative")
        unit = info.data.get("duration_unit", "seconds")
        if amount * dict(DURATION_UNITS)[unit] > settings.MAX_DELAY_MS:
            raise ValueError("Delay cannot exceed 7 days")
        return amount


class LoopForm(NodeForm):
    data_source: Optional[str] = Field(default=None, alias="dataSource")
    source_key: Optional[str] = Field(default=None, alias="sourceKey", validate_default=True)
    max_iterations: NumberInput = Field(default=None, alias="maxIterations")

    @model_validator(mode="before")
    @classmethod
    def _custom_paths(cls, data):
        return _resolve_paths(data, "dataSource", "sourceKey", "itemVariable", "indexVariable")

    @field_validator("source_key")
    @classmethod
    def _collection_required(cls, v, info: ValidationInfo):
        if not clean_str(v) and not clean_str(info.data.get("data_source")):
            raise ValueError("Choose a collection to loop over")
        return v

    @field_validator("max_iterations")
    @classmethod
    def _max_iterations(cls, v):
        number = _whole_number(v)
        if number is not None and number > settings.MAX_LOOP_ITERATIONS:
            raise ValueError(f"Must be at most {settings.MAX_LOOP_ITERATIONS}")
        return number


class QueryForm(NodeForm):
    model: Optional[str] = Field(default=None, validate_default=True)
    limit: NumberInput = None
    offset: NumberInput = None

    @field_validator("model")
    @classmethod
    def _model_required(cls, v):
        if not clean_str(v):
            raise ValueError("Choose a data source")
        return v

    @field_validator("limit", "offset")
    @classmethod
    def _integers(cls, v):
        return _whole_number(v)


class FilterForm(NodeForm):
    source_key: Optional[str] = Field(default=None, alias="sourceKey", validate_default=True)

    @model_validator(mode="before")
    @classmethod
    def _custom_paths(cls, data):
        return _resolve_paths(data, "sourceKey")

    @field_validator("source_key")
    @classmethod
    def _source_required(cls, v):
        if not clean_str(v):
            raise ValueError("Source key is required")
        return v


class ConditionForm(NodeForm):
    pass


class ScheduleForm(NodeForm):
    mode: Literal["cron", "frequency"] = "frequency"
    cron: Optional[str] = Field(default=None, validate_default=True)
    frequency: Optional[str] = Field(default=None, validate_default=True)
    start_at: Any = Field(default=None, alias="startAt")
    end_at: Any = Field(default=None, alias="endAt")

    @field_validator("cron")
    @classmethod
    def _cron(cls, v, info: ValidationInfo):
        if info.data.get("mode") != "cron":
            return v
        if not clean_str(v):
            raise ValueError("Cron expression is required")
        parsed = parse_cron_expression(v)
        if not parsed.is_valid:
            raise ValueError(parsed.error)
        return v

    @field_validator("frequency")
    @classmethod
    def _frequency(cls, v, info: ValidationInfo):
        if info.data.get("mode") != "frequency":
            return v
        if not clean_str(v):
            raise ValueError("Choose a frequency")
        if v.strip().upper() not in Frequency.__members__:
            raise ValueError(f"Unknown frequency: {v}")
        return v

    @field_validator("start_at", "end_at")
    @classmethod
    def _date_time(cls, v):
        try:
            parse_datetime(v)
        except ValueError:
            raise ValueError("Enter a valid date and time") from None
        return v


FORM_MODELS: Dict[NodeType, Type[NodeForm]] = {
    NodeType.TRIGGER: TriggerForm,
    NodeType.ACTION: ActionForm,
    NodeType.DELAY: DelayForm,
    NodeType.LOOP: LoopForm,
    NodeType.QUERY: QueryForm,
    NodeType.FILTER: FilterForm,
    NodeType.CONDITION: ConditionForm,
    NodeType.SCHEDULE: ScheduleForm,
}


def _field_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors(include_url=False):
        key = str(err["loc"][0]) if err["loc"] else "form"
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(key, message)
    return errors


@dataclass
class FormState:
    """
    Values, inline errors and touched fields of one node form.

    ``update`` is the single way values change; ``submit`` validates,
    normalizes and checks the result against the node's config schema.
    """
    node_type: NodeType
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    touched: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.node_type = NodeType(self.node_type)

    @classmethod
    def for_node(cls, node_type: NodeType, config: Optional[Dict[str, Any]] = None,
                 name: Optional[str] = None) -> "FormState":
        """Prefill a form from a persisted config."""
        node_type = NodeType(node_type)
        config = config or {}
        label = name or node_type.value.title()
        if node_type == NodeType.DELAY:
            values = derive_delay_form(config, label)
        elif node_type == NodeType.SCHEDULE:
            values = derive_schedule_form(config, label)
        else:
            values = {**config, "name": label}
        return cls(node_type=node_type, values=values)

    def update(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.touched.add(name)
        self.errors.pop(name, None)
        if self.node_type == NodeType.SCHEDULE and name == "mode":
            # switching tabs clears the other mode's field
            if value == "cron":
                self.values["frequency"] = None
            else:
                self.values["cron"] = ""

    @property
    def mode(self) -> Optional[str]:
        if self.node_type != NodeType.SCHEDULE:
            return None
        return self.values.get("mode") or schedule_mode(self.values)

    def validate(self) -> bool:
        try:
            FORM_MODELS[self.node_type].model_validate(self.values)
        except ValidationError as e:
            self.errors = _field_errors(e)
            return False
        self.errors = {}
        return True

    def submit(self) -> Dict[str, Any]:
        if not self.validate():
            raise FormValidationError(self.errors)
        config = normalize(self.node_type, self.values)
        return parse_config_for_type(self.node_type, config)
