from datetime import datetime
from typing import Annotated, List, Optional, Dict, Any, Type, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError, field_validator, model_validator

from ..config import settings
from ..errors import ConfigValidationError
from .models import NodeType, Operator, LogicalOperator, Frequency
from .normalizer import normalize_datetime, parse_datetime


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

MAX_DELAY_MS = settings.MAX_DELAY_MS
MAX_ITEMS = 10000


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


class ConditionConfig(_ConfigModel):
    field: NonEmptyStr
    operator: Operator
    value: Optional[Any] = None
    value_to: Optional[Any] = Field(default=None, alias="valueTo")
    values: Optional[List[Any]] = None
    negate: Optional[bool] = None


class OrderByConfig(_ConfigModel):
    field: NonEmptyStr
    direction: Literal["asc", "desc"] = "asc"


class TriggerConfig(_ConfigModel):
    module: Optional[NonEmptyStr] = None
    entity_type: Optional[NonEmptyStr] = Field(default=None, alias="entityType")
    event_type: Optional[NonEmptyStr] = Field(default=None, alias="eventType")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")


class ActionConfig(_ConfigModel):
    tool: NonEmptyStr
    params: Dict[str, Any] = Field(default_factory=dict)
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")


class DelayConfig(_ConfigModel):
    delay_ms: int = Field(default=settings.DEFAULT_DELAY_MS, ge=0, le=MAX_DELAY_MS, alias="delayMs")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")


class LoopConfig(_ConfigModel):
    data_source: Optional[NonEmptyStr] = Field(default=None, alias="dataSource")
    source_key: Optional[NonEmptyStr] = Field(default=None, alias="sourceKey")
    item_variable: NonEmptyStr = Field(default="item", alias="itemVariable")
    index_variable: NonEmptyStr = Field(default="index", alias="indexVariable")
    max_iterations: Optional[int] = Field(default=None, ge=0, le=MAX_ITEMS, alias="maxIterations")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")
    empty_path_handle: Optional[NonEmptyStr] = Field(default=None, alias="emptyPathHandle")


class QueryConfig(_ConfigModel):
    model: NonEmptyStr
    filters: Optional[List[ConditionConfig]] = None
    order_by: Optional[List[OrderByConfig]] = Field(default=None, alias="orderBy")
    limit: Optional[int] = Field(default=None, ge=0, le=MAX_ITEMS)
    offset: Optional[int] = Field(default=None, ge=0)
    select: Optional[List[NonEmptyStr]] = None
    include: Optional[List[NonEmptyStr]] = None
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")
    fallback_key: Optional[NonEmptyStr] = Field(default=None, alias="fallbackKey")


class FilterConfig(_ConfigModel):
    source_key: NonEmptyStr = Field(alias="sourceKey")
    conditions: Optional[List[ConditionConfig]] = None
    logical_operator: LogicalOperator = Field(default=LogicalOperator.AND, alias="logicalOperator")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")
    fallback_key: Optional[NonEmptyStr] = Field(default=None, alias="fallbackKey")


class ConditionNodeConfig(_ConfigModel):
    conditions: Optional[List[ConditionConfig]] = None
    logical_operator: LogicalOperator = Field(default=LogicalOperator.AND, alias="logicalOperator")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")


class ScheduleConfig(_ConfigModel):
    cron: Optional[NonEmptyStr] = None
    frequency: Optional[Frequency] = None
    timezone: NonEmptyStr = settings.DEFAULT_TIMEZONE
    start_at: Optional[NonEmptyStr] = Field(default=None, alias="startAt")
    end_at: Optional[NonEmptyStr] = Field(default=None, alias="endAt")
    is_active: bool = Field(default=True, alias="isActive")
    result_key: Optional[NonEmptyStr] = Field(default=None, alias="resultKey")
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _upper_frequency(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("frequency"), str):
            data = {**data, "frequency": data["frequency"].strip().upper() or None}
        return data

    @field_validator("start_at", "end_at", mode="before")
    @classmethod
    def _iso_datetime(cls, v):
        # YAML may already hand over a datetime
        if isinstance(v, datetime):
            return normalize_datetime(v)
        if isinstance(v, str):
            parse_datetime(v)
        return v

    @model_validator(mode="after")
    def _one_recurrence(self) -> "ScheduleConfig":
        if not self.cron and not self.frequency:
            raise ValueError("Provide either a cron expression or a frequency")
        if self.cron and self.frequency:
            raise ValueError("A schedule uses either a cron expression or a frequency, not both")
        return self


CONFIG_SCHEMAS: Dict[NodeType, Type[BaseModel]] = {
    NodeType.TRIGGER: TriggerConfig,
    NodeType.ACTION: ActionConfig,
    NodeType.DELAY: DelayConfig,
    NodeType.LOOP: LoopConfig,
    NodeType.QUERY: QueryConfig,
    NodeType.FILTER: FilterConfig,
    NodeType.CONDITION: ConditionNodeConfig,
    NodeType.SCHEDULE: ScheduleConfig,
}

def parse_config_for_type(node_type: NodeType, config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Validate a persisted node config and return its canonical JSON form.
    A missing config stays None.
    """
    node_type = NodeType(node_type)
    if config is None:
        return None
    schema = CONFIG_SCHEMAS[node_type]
    try:
        model = schema.model_validate(config)
    except ValidationError as e:
        raise ConfigValidationError(node_type.value, e.errors(include_url=False))
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
