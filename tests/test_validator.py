from __future__ import annotations

import json
import unittest

from menuplan.errors import ParseError, SchemaError
from menuplan.services.validator import calorie_range, check, validate

from payloads import make_week, week_json


class StructuralValidatorTestCase(unittest.TestCase):
    def test_accepts_seven_complete_days(self):
        menu = validate(week_json())
        self.assertEqual(len(menu.days), 7)
        self.assertEqual([day.dayName for day in menu.days][0], "Monday")
        self.assertEqual(menu.days[0].meals.breakfast.name, "Breakfast 1")
        self.assertEqual(len(menu.days[0].meals.snacks), 1)

    def test_accepts_bare_day_array(self):
        menu = validate(json.dumps(make_week()["weeklyMenu"]))
        self.assertEqual(len(menu.days), 7)

    def test_malformed_text_is_parse_error(self):
        with self.assertRaises(ParseError):
            validate('{"weeklyMenu": [')

    def test_fewer_days_is_schema_error(self):
        with self.assertRaises(SchemaError) as ctx:
            validate(week_json(days=6))
        self.assertEqual(ctx.exception.check, "day_count")

    def test_more_days_is_schema_error(self):
        week = make_week()
        week["weeklyMenu"].append(week["weeklyMenu"][0])
        with self.assertRaises(SchemaError) as ctx:
            validate(json.dumps(week))
        self.assertEqual(ctx.exception.check, "day_count")

    def test_missing_day_collection_is_schema_error(self):
        with self.assertRaises(SchemaError) as ctx:
            validate('{"menu": []}')
        self.assertEqual(ctx.exception.check, "day_collection")

    def test_day_without_main_meal_reports_index(self):
        week = make_week()
        week["weeklyMenu"][3]["meals"] = {"snacks": []}
        with self.assertRaises(SchemaError) as ctx:
            validate(json.dumps(week))
        self.assertEqual(ctx.exception.check, "meal_presence")
        self.assertEqual(ctx.exception.day_index, 3)

    def test_single_main_meal_is_enough(self):
        week = make_week()
        meals = week["weeklyMenu"][2]["meals"]
        meals["breakfast"] = None
        meals["lunch"] = None
        meals.pop("snacks")
        menu = validate(json.dumps(week))
        self.assertIsNone(menu.days[2].meals.breakfast)
        self.assertEqual(menu.days[2].meals.snacks, [])

    def test_meal_with_zero_calories_is_rejected(self):
        week = make_week()
        week["weeklyMenu"][5]["meals"]["dinner"]["nutrition"]["calories"] = 0
        report = check(json.dumps(week))
        self.assertFalse(report.ok)
        issue = report.first_issue()
        self.assertEqual((issue.check, issue.day_index), ("day_schema", 5))

    def test_day_without_nutrition_is_rejected(self):
        week = make_week()
        del week["weeklyMenu"][1]["nutrition"]
        with self.assertRaises(SchemaError) as ctx:
            validate(json.dumps(week))
        self.assertEqual(ctx.exception.day_index, 1)

    def test_inconsistent_day_totals_are_tolerated(self):
        week = make_week()
        week["weeklyMenu"][0]["nutrition"]["calories"] = 9999
        menu = validate(json.dumps(week))
        self.assertEqual(menu.days[0].nutrition.calories, 9999)

    def test_days_are_enriched_with_calorie_range(self):
        menu = validate(week_json())
        self.assertEqual(menu.days[0].calorieRange.min, 1800)
        self.assertEqual(menu.days[0].calorieRange.max, 2200)
        self.assertEqual(menu.days[0].calorieRange.display, "1800-2200 kcal")

    def test_partial_week_check(self):
        report = check(week_json(days=4), require_full_week=False)
        self.assertTrue(report.ok)
        self.assertEqual(len(report.days), 4)
        self.assertIsNone(report.menu)

    def test_check_never_raises_on_garbage(self):
        report = check("not json at all")
        self.assertIsNotNone(report.parse_error)
        self.assertFalse(report.ok)


def test_accepted_menu_survives_reserialisation():
    menu = validate(week_json())
    again = validate(menu.model_dump_json())
    assert len(again.days) == 7
    assert all(day.meals.all_meals() for day in again.days)
    assert [day.dayName for day in again.days] == [day.dayName for day in menu.days]


def test_ingredient_objects_and_step_lists_are_normalised():
    week = make_week()
    lunch = week["weeklyMenu"][0]["meals"]["lunch"]
    lunch["ingredients"] = [{"name": "rice", "amount": "80g"}, "beans"]
    lunch["instructions"] = ["Cook rice.", "Add beans."]
    menu = validate(json.dumps(week))
    assert menu.days[0].meals.lunch.ingredients == ["rice", "beans"]
    assert menu.days[0].meals.lunch.instructions == "Cook rice. Add beans."


def test_calorie_range_rounds():
    assert calorie_range(1234).min == 1111
    assert calorie_range(1234).max == 1357
