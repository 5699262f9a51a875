"""Tests for condition/filter evaluation."""

import pytest
from opsflow.workflow.conditions import (
    MISSING,
    evaluate_condition,
    evaluate_group,
    filter_items,
    resolve_path,
)
from opsflow.workflow.models import Condition, ConditionGroup


def test_resolve_path_nested_and_list_index():
    """Test dot paths through mappings and list indices."""
    payload = {"deal": {"contacts": [{"email": "a@x.io"}, {"email": "b@x.io"}]}, "note": None}

    assert resolve_path(payload, "deal.contacts.1.email") == "b@x.io"
    assert resolve_path(payload, "note") is None
    assert resolve_path(payload, "deal.owner") is MISSING
    assert resolve_path(payload, "deal.contacts.5") is MISSING
    assert resolve_path(payload, "") is MISSING


def test_evaluate_condition_equality_coerces_numbers():
    """Test that numeric strings compare as numbers."""
    payload = {"amount": 100, "code": "007"}

    assert evaluate_condition({"field": "amount", "operator": "equals", "value": "100"}, payload) is True
    assert evaluate_condition({"field": "amount", "operator": "equals", "value": "100.0"}, payload) is True
    assert evaluate_condition({"field": "code", "operator": "equals", "value": 7}, payload) is True
    assert evaluate_condition({"field": "amount", "operator": "not_equals", "value": 5}, payload) is True


def test_evaluate_condition_text_and_booleans():
    """Test text comparison, including booleans rendered as text."""
    payload = {"status": "Won", "active": True}

    assert evaluate_condition({"field": "status", "operator": "equals", "value": "Won"}, payload) is True
    assert evaluate_condition({"field": "status", "operator": "equals", "value": "won"}, payload) is False
    assert evaluate_condition({"field": "active", "operator": "equals", "value": "true"}, payload) is True


def test_case_insensitive_matching_on_request():
    """Test the case_sensitive switch."""
    payload = {"status": "Won", "title": "Big Deal"}

    assert evaluate_condition(
        {"field": "status", "operator": "equals", "value": "won"}, payload, case_sensitive=False
    ) is True
    assert evaluate_condition(
        {"field": "title", "operator": "starts_with", "value": "big"}, payload, case_sensitive=False
    ) is True
    assert evaluate_condition({"field": "title", "operator": "starts_with", "value": "big"}, payload) is False


def test_evaluate_condition_comparisons():
    """Test comparison operators (gt, gte, lt, lte)."""
    payload = {"score": 75, "label": "high"}

    assert evaluate_condition({"field": "score", "operator": "gt", "value": "50"}, payload) is True
    assert evaluate_condition({"field": "score", "operator": "lt", "value": 100}, payload) is True
    assert evaluate_condition({"field": "score", "operator": "gte", "value": 75}, payload) is True
    assert evaluate_condition({"field": "score", "operator": "lte", "value": 75}, payload) is True
    assert evaluate_condition({"field": "score", "operator": "gt", "value": 100}, payload) is False
    # non-numeric comparisons simply do not match
    assert evaluate_condition({"field": "label", "operator": "gt", "value": 1}, payload) is False


def test_contains_on_strings_and_lists():
    """Test contains / not_contains."""
    payload = {"email": "jane@acme.io", "tags": ["vip", "lead"], "count": 3}

    assert evaluate_condition({"field": "email", "operator": "contains", "value": "@acme"}, payload) is True
    assert evaluate_condition({"field": "tags", "operator": "contains", "value": "vip"}, payload) is True
    assert evaluate_condition({"field": "tags", "operator": "not_contains", "value": "churned"}, payload) is True
    assert evaluate_condition({"field": "count", "operator": "contains", "value": "3"}, payload) is False


def test_starts_with_and_ends_with():
    """Test prefix and suffix matching."""
    payload = {"phone": "+44 20 7946 0000"}

    assert evaluate_condition({"field": "phone", "operator": "starts_with", "value": "+44"}, payload) is True
    assert evaluate_condition({"field": "phone", "operator": "ends_with", "value": "0000"}, payload) is True
    assert evaluate_condition({"field": "phone", "operator": "ends_with", "value": "1111"}, payload) is False


def test_in_and_not_in():
    """Test membership from a CSV value or an explicit list."""
    payload = {"stage": "proposal", "priority": 2}

    assert evaluate_condition({"field": "stage", "operator": "in", "value": "lead, proposal"}, payload) is True
    assert evaluate_condition({"field": "stage", "operator": "not_in", "value": "won,lost"}, payload) is True
    assert evaluate_condition({"field": "priority", "operator": "in", "values": [1, 2, 3]}, payload) is True
    assert evaluate_condition({"field": "priority", "operator": "in", "value": 5}, payload) is False


@pytest.mark.parametrize("x,expected", [(7, True), (11, False), (5, True), (10, True), (4.99, False)])
def test_between_is_inclusive(x, expected):
    """Test between with a "min,max" value."""
    cond = {"field": "x", "operator": "between", "value": "5,10"}
    assert evaluate_condition(cond, {"x": x}) is expected


def test_between_with_value_to_and_malformed_bounds():
    """Test between using valueTo, and malformed bounds not matching."""
    assert evaluate_condition({"field": "x", "operator": "between", "value": 1, "valueTo": 3}, {"x": 2}) is True
    assert evaluate_condition({"field": "x", "operator": "between", "value": "5"}, {"x": 5}) is False
    assert evaluate_condition({"field": "x", "operator": "between", "value": "a,b"}, {"x": 5}) is False


def test_is_empty_and_is_not_empty():
    """Test emptiness checks, including missing fields."""
    payload = {"notes": "", "tags": [], "name": "Ann", "phone": None}

    assert evaluate_condition({"field": "notes", "operator": "is_empty"}, payload) is True
    assert evaluate_condition({"field": "tags", "operator": "is_empty"}, payload) is True
    assert evaluate_condition({"field": "phone", "operator": "is_empty"}, payload) is True
    assert evaluate_condition({"field": "missing", "operator": "is_empty"}, payload) is True
    assert evaluate_condition({"field": "name", "operator": "is_not_empty"}, payload) is True


def test_missing_field_never_matches_comparisons():
    """Test that a missing field fails every value comparison."""
    payload = {"other": 1}

    for operator in ["equals", "not_equals", "gt", "contains", "not_contains", "in", "not_in"]:
        assert evaluate_condition({"field": "absent", "operator": operator, "value": "1"}, payload) is False


def test_malformed_condition_does_not_raise():
    """Test that malformed conditions evaluate to False."""
    assert evaluate_condition({"field": "", "operator": "equals", "value": 1}, {"": 1}) is False
    assert evaluate_condition({"field": "x", "operator": "matches", "value": 1}, {"x": 1}) is False


@pytest.mark.parametrize("cond", [
    {"field": "x", "operator": "equals", "value": 3},
    {"field": "x", "operator": "gt", "value": 10},
    {"field": "y", "operator": "equals", "value": 3},
    {"field": "x", "operator": "between", "value": "1,5"},
])
def test_negate_inverts_result(cond):
    """Test that negate flips the outcome of the same condition."""
    payload = {"x": 3}
    plain = evaluate_condition(cond, payload)
    assert evaluate_condition({**cond, "negate": True}, payload) is (not plain)


@pytest.mark.parametrize("operator", ["AND", "OR"])
def test_empty_group_passes(operator):
    """Test that a group without conditions always passes."""
    assert evaluate_group({"conditions": [], "logicalOperator": operator}, {"anything": 1}) is True
    assert evaluate_group(ConditionGroup(logical_operator=operator), {}) is True


def test_group_and_or():
    """Test AND and OR combination."""
    conditions = [
        {"field": "amount", "operator": "gt", "value": 1000},
        {"field": "stage", "operator": "equals", "value": "won"},
    ]
    payload = {"amount": 5000, "stage": "lost"}

    assert evaluate_group({"conditions": conditions, "logicalOperator": "AND"}, payload) is False
    assert evaluate_group({"conditions": conditions, "logicalOperator": "OR"}, payload) is True


def test_group_from_dataclasses():
    """Test evaluating ConditionGroup / Condition objects."""
    group = ConditionGroup(
        conditions=[Condition(field="stage", operator="equals", value="won", negate=True)],
        logical_operator="AND",
    )
    assert evaluate_group(group, {"stage": "lost"}) is True


def test_filter_items_keeps_matching_records():
    """Test filtering a collection."""
    items = [
        {"name": "a", "amount": 10},
        {"name": "b", "amount": 500},
        {"name": "c", "amount": 900},
    ]
    group = {"conditions": [{"field": "amount", "operator": "gte", "value": "500"}]}

    assert [i["name"] for i in filter_items(group, items)] == ["b", "c"]
    assert filter_items(group, []) == []


def test_in_with_a_single_scalar_value():
    """Test that a lone number works as a one-item option list."""
    payload = {"priority": 5}

    assert evaluate_condition({"field": "priority", "operator": "in", "value": 5}, payload) is True
    assert evaluate_condition({"field": "priority", "operator": "in", "value": "5"}, payload) is True
    assert evaluate_condition({"field": "priority", "operator": "not_in", "value": 5}, payload) is False
    assert evaluate_condition({"field": "priority", "operator": "not_in", "value": 4}, payload) is True
