"""Tests for persisted node config schemas."""

import pytest
from opsflow.errors import ConfigValidationError
from opsflow.workflow.models import NodeType
from opsflow.workflow.schema import parse_config_for_type


def test_missing_config_stays_none():
    """Test that a node without config parses to None."""
    assert parse_config_for_type(NodeType.DELAY, None) is None


def test_delay_defaults_and_bounds():
    """Test the delay default and the 7 day cap."""
    assert parse_config_for_type(NodeType.DELAY, {}) == {"delayMs": 1000}
    assert parse_config_for_type(NodeType.DELAY, {"delayMs": 604_800_000})["delayMs"] == 604_800_000

    with pytest.raises(ConfigValidationError) as exc:
        parse_config_for_type(NodeType.DELAY, {"delayMs": 604_800_001})
    assert exc.value.node_type == "DELAY"

    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.DELAY, {"delayMs": -1})


def test_unknown_keys_are_dropped():
    """Test that extra keys do not survive parsing."""
    config = parse_config_for_type(NodeType.FILTER, {"sourceKey": "deals", "name": "Filter", "mode": "x"})
    assert config == {"sourceKey": "deals", "logicalOperator": "AND"}


def test_filter_requires_source_key():
    """Test the FILTER required field."""
    with pytest.raises(ConfigValidationError, match="sourceKey"):
        parse_config_for_type(NodeType.FILTER, {"conditions": []})


def test_condition_operators_are_checked():
    """Test that unknown operators are rejected."""
    good = {"conditions": [{"field": "amount", "operator": "gt", "value": 5}]}
    assert parse_config_for_type(NodeType.CONDITION, good)["conditions"][0]["operator"] == "gt"

    bad = {"conditions": [{"field": "amount", "operator": "bigger", "value": 5}]}
    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.CONDITION, bad)


def test_loop_defaults():
    """Test loop variable defaults."""
    config = parse_config_for_type(NodeType.LOOP, {"sourceKey": "contacts"})
    assert config == {"sourceKey": "contacts", "itemVariable": "item", "indexVariable": "index"}


def test_query_requires_model_and_limits():
    """Test query validation."""
    config = parse_config_for_type(NodeType.QUERY, {"model": "contacts", "limit": 5})
    assert config == {"model": "contacts", "limit": 5}

    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.QUERY, {"limit": 5})
    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.QUERY, {"model": "contacts", "limit": -1})


def test_schedule_needs_exactly_one_recurrence():
    """Test cron/frequency exclusivity in the schema."""
    config = parse_config_for_type(NodeType.SCHEDULE, {"frequency": "daily"})
    assert config == {"frequency": "DAILY", "timezone": "UTC", "isActive": True}

    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.SCHEDULE, {})
    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.SCHEDULE, {"cron": "0 9 * * *", "frequency": "DAILY"})


def test_action_requires_tool():
    """Test action validation."""
    config = parse_config_for_type(NodeType.ACTION, {"tool": "email.send", "params": {"to": "{email}"}})
    assert config == {"tool": "email.send", "params": {"to": "{email}"}}

    with pytest.raises(ConfigValidationError):
        parse_config_for_type(NodeType.ACTION, {"tool": "  "})


def test_schedule_dates_must_be_iso():
    """Test startAt/endAt validation in the schema."""
    config = parse_config_for_type(NodeType.SCHEDULE, {"frequency": "DAILY", "startAt": "2025-03-01T00:00:00Z"})
    assert config["startAt"] == "2025-03-01T00:00:00Z"

    with pytest.raises(ConfigValidationError, match="startAt"):
        parse_config_for_type(NodeType.SCHEDULE, {"frequency": "DAILY", "startAt": "next monday"})
    with pytest.raises(ConfigValidationError, match="endAt"):
        parse_config_for_type(NodeType.SCHEDULE, {"cron": "0 9 * * *", "endAt": "soon"})
