"""Tests for node config normalization."""

import pytest
from opsflow.workflow.models import NodeType
from opsflow.workflow.normalizer import (
    CUSTOM_PATH,
    PathChoice,
    compact,
    delay_ms_from_duration,
    derive_delay_form,
    derive_schedule_form,
    duration_from_delay_ms,
    normalize,
    normalize_delay,
    normalize_filter,
    normalize_loop,
    normalize_query,
    normalize_schedule,
    parse_int_lenient,
    resolve_path_choice,
    schedule_mode,
)

MAX_DELAY_MS = 604_800_000


def test_compact_drops_blank_values():
    """Test that None and blank strings are removed and strings trimmed."""
    assert compact({"a": " x ", "b": "   ", "c": None, "d": 0, "e": False}) == {"a": "x", "d": 0, "e": False}


@pytest.mark.parametrize("raw,expected", [
    ("25", 25), (" 7 ", 7), ("", None), ("abc", None), (None, None), (3, 3), ("2.0", 2), ("2.5", None),
])
def test_parse_int_lenient(raw, expected):
    """Test lenient integer parsing of free-text input."""
    assert parse_int_lenient(raw) == expected


def test_delay_round_trip_minutes():
    """Test 30 minutes normalizes to 1,800,000 ms and derives back to 30 minutes."""
    config = normalize_delay({"name": "Wait", "durationValue": 30, "durationUnit": "minutes"})
    assert config == {"delayMs": 1_800_000}

    form = derive_delay_form(config)
    assert form["durationValue"] == 30
    assert form["durationUnit"] == "minutes"


@pytest.mark.parametrize("delay_ms,expected", [
    (0, (0, "seconds")),
    (1500, (2, "seconds")),
    (90_000, (90, "seconds")),
    (120_000, (2, "minutes")),
    (7_200_000, (2, "hours")),
    (172_800_000, (2, "days")),
])
def test_duration_from_delay_ms(delay_ms, expected):
    """Test re-deriving the displayed unit from a stored delay."""
    assert duration_from_delay_ms(delay_ms) == expected


def test_delay_is_clamped():
    """Test clamping to [0, 7 days]."""
    assert delay_ms_from_duration(8, "days") == MAX_DELAY_MS
    assert delay_ms_from_duration(-5, "seconds") == 0
    assert normalize_delay({"durationValue": 10, "durationUnit": "days"})["delayMs"] == MAX_DELAY_MS
    assert normalize_delay({"durationValue": -1, "durationUnit": "hours"})["delayMs"] == 0
    assert normalize_delay({"delayMs": 10 ** 12})["delayMs"] == MAX_DELAY_MS


def test_derive_delay_form_defaults():
    """Test prefill for a delay without a stored value."""
    form = derive_delay_form({}, "Pause")
    assert form == {"name": "Pause", "durationValue": 1, "durationUnit": "seconds", "resultKey": ""}


def test_empty_result_key_is_omitted():
    """Test that blank optional strings never reach the config."""
    config = normalize_filter({"name": "Filter", "resultKey": "", "sourceKey": "deals"})
    assert "resultKey" not in config
    assert "name" not in config
    assert config["sourceKey"] == "deals"


def test_custom_path_sentinel_is_never_persisted():
    """Test that the custom path value replaces the sentinel."""
    raw = {"sourceKey": CUSTOM_PATH, "sourceKeyCustom": " payload.items "}
    assert resolve_path_choice(raw, "sourceKey") == "payload.items"

    config = normalize_filter(raw)
    assert config["sourceKey"] == "payload.items"
    assert CUSTOM_PATH not in config.values()

    # sentinel selected but nothing typed yet
    config = normalize_loop({"sourceKey": CUSTOM_PATH})
    assert "sourceKey" not in config


def test_path_choice():
    """Test the explicit preset/custom representation."""
    assert PathChoice(preset="contacts").value == "contacts"
    assert PathChoice(preset=CUSTOM_PATH).value is None
    assert PathChoice(preset=CUSTOM_PATH, custom="deals.items").value == "deals.items"


def test_normalize_loop_defaults_and_lenient_numbers():
    """Test loop normalization."""
    config = normalize_loop({"sourceKey": "contacts", "maxIterations": "abc", "resultKey": " "})
    assert config == {"sourceKey": "contacts", "itemVariable": "item", "indexVariable": "index"}

    config = normalize_loop({"dataSource": "deals", "maxIterations": "50", "itemVariable": "deal"})
    assert config["maxIterations"] == 50
    assert config["itemVariable"] == "deal"


def test_normalize_query():
    """Test query normalization: order by, lists and lenient numbers."""
    config = normalize_query({
        "model": "contacts",
        "filters": [
            {"field": " status ", "operator": "equals", "value": " active "},
            {"field": "", "operator": "equals", "value": "x"},
        ],
        "limit": "10",
        "offset": "",
        "orderByField": "createdAt",
        "orderByDirection": "desc",
        "selectFields": "id, email,",
    })
    assert config == {
        "model": "contacts",
        "filters": [{"field": "status", "operator": "equals", "value": "active"}],
        "limit": 10,
        "orderBy": [{"field": "createdAt", "direction": "desc"}],
        "select": ["id", "email"],
    }


def test_condition_rows_with_blank_fields_are_dropped():
    """Test that an all-blank conditions list is omitted."""
    config = normalize(NodeType.CONDITION, {"conditions": [{"field": "  ", "operator": "equals"}]})
    assert config == {"logicalOperator": "AND"}


def test_schedule_mode_exclusivity():
    """Test that cron and frequency never coexist."""
    cron = normalize_schedule({"mode": "cron", "cron": "0 9 * * *", "frequency": "DAILY"})
    assert cron["cron"] == "0 9 * * *"
    assert "frequency" not in cron

    freq = normalize_schedule({"mode": "frequency", "cron": "0 9 * * *", "frequency": "weekly"})
    assert freq["frequency"] == "WEEKLY"
    assert "cron" not in freq


def test_schedule_mode_is_derived():
    """Test mode derivation from the stored config."""
    assert schedule_mode({"cron": "0 9 * * *"}) == "cron"
    assert schedule_mode({"cron": "  ", "frequency": "DAILY"}) == "frequency"
    assert schedule_mode({}) == "frequency"

    config = normalize_schedule({"cron": "*/5 * * * *"})
    assert config["cron"] == "*/5 * * * *"
    assert config["timezone"] == "UTC"
    assert config["isActive"] is True


def test_schedule_dates_normalized_to_utc():
    """Test ISO-8601 normalization of start/end dates."""
    config = normalize_schedule({
        "frequency": "DAILY",
        "startAt": "2025-01-01T10:00:00+02:00",
        "endAt": "not a date",
    })
    assert config["startAt"] == "2025-01-01T08:00:00Z"
    assert config["endAt"] == "not a date"


def test_derive_schedule_form():
    """Test schedule prefill for both modes."""
    form = derive_schedule_form({"cron": "0 9 * * 1", "timezone": "Europe/London"})
    assert form["mode"] == "cron"
    assert form["cron"] == "0 9 * * 1"
    assert form["timezone"] == "Europe/London"

    form = derive_schedule_form({"frequency": "hourly", "isActive": False})
    assert form["mode"] == "frequency"
    assert form["frequency"] == "HOURLY"
    assert form["isActive"] is False


def test_normalize_dispatches_for_every_node_type():
    """Test that every node type has a normalizer."""
    for node_type in NodeType:
        assert isinstance(normalize(node_type, {}), dict)
