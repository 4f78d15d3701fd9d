from __future__ import annotations

import json

from menuplan.services.repair import (
    anchor_truncate,
    balance_delimiters,
    repair,
    started_days,
    strip_trailing_separators,
)
from menuplan.services.validator import check, validate

from payloads import make_day, make_week, week_json


def _truncated_in_day_five_total() -> str:
    payload = week_json()
    marker = '"calories": 2004'
    return payload[: payload.index(marker) + len('"calories": 20')]


def test_truncation_inside_day_five_keeps_only_complete_days():
    repaired = repair(_truncated_in_day_five_total())

    assert repaired is not None
    report = check(repaired, require_full_week=False)
    assert report.ok
    assert 1 <= len(report.days) <= 5
    # Never a half-written day five.
    for day in report.days:
        assert day.nutrition.calories >= 2000
    assert [day.dayName for day in report.days] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"][: len(report.days)]


def test_repair_is_idempotent_on_its_output():
    once = repair(_truncated_in_day_five_total())
    assert once is not None
    assert repair(once) == once


def test_valid_input_is_returned_unchanged():
    payload = week_json()
    assert repair(payload) == payload


def test_missing_root_brace_is_balanced():
    payload = week_json()
    repaired = repair(payload[:-1])
    assert repaired == payload
    assert len(validate(repaired).days) == 7


def test_missing_array_and_root_closers_recovers_full_week():
    payload = week_json()
    repaired = repair(payload[:-2])
    assert repaired is not None
    assert len(validate(repaired).days) == 7


def test_trailing_separator_before_closer_is_removed():
    payload = week_json()
    broken = payload[:-2] + ", ]}"
    repaired = repair(broken)
    assert repaired is not None
    assert len(validate(repaired).days) == 7


def test_unrepairable_text_returns_none():
    assert repair("") is None
    assert repair('{"weeklyMenu": "soon"') is None
    assert repair("{") is None


def test_balance_appends_brackets_then_braces():
    assert balance_delimiters('{"a": [{"b": 1}') == '{"a": [{"b": 1}]}'


def test_balance_inserts_brackets_before_closed_root_brace():
    assert balance_delimiters('{"weeklyMenu": [{"a": 1}}') == '{"weeklyMenu": [{"a": 1}]}'


def test_root_closed_without_day_array_closer_recovers_full_week():
    payload = week_json()
    broken = payload[:-2] + "}"
    repaired = repair(broken)
    assert repaired == payload


def test_balance_ignores_delimiters_inside_strings():
    text = '{"a": "x}]"'
    assert balance_delimiters(text) == text + "}"


def test_strip_trailing_separators_repeats_until_stable():
    assert strip_trailing_separators('[1, [2,],]') == "[1, [2]]"
    assert json.loads(strip_trailing_separators('{"a": {"b": 1,},}')) == {"a": {"b": 1}}


def test_anchor_truncate_closes_every_open_scope():
    payload = week_json(days=2)
    cut = payload.index('"Lunch 2"')
    repaired = anchor_truncate(payload[:cut])
    assert repaired is not None
    days = json.loads(repaired)["weeklyMenu"]
    assert [day["dayName"] for day in days] == ["Monday"]


def _eight_days() -> str:
    return json.dumps({"weeklyMenu": [make_day(index % 7) for index in range(8)]})


def test_started_days_counts_objects_in_the_day_array():
    assert started_days(week_json()) == 7
    assert started_days(_eight_days()[:-40]) == 8
    assert started_days(json.dumps(make_week()["weeklyMenu"])) == 7
    assert started_days('{"weeklyMenu": [') == 0


def test_truncated_week_with_more_than_seven_days_is_not_repaired():
    payload = _eight_days()
    truncated = payload[: payload.rindex('"nutrition"')]
    assert repair(truncated) is None


def test_truncated_bare_day_array_keeps_complete_days():
    payload = json.dumps(make_week()["weeklyMenu"])
    repaired = repair(payload[: payload.index('"Lunch 3"')])
    assert repaired is not None
    assert [day["dayName"] for day in json.loads(repaired)] == ["Monday", "Tuesday"]
