from __future__ import annotations

import json
import unittest
from typing import List, Optional
from unittest import mock

import httpx

from menuplan.errors import ErrorKind, ExhaustedRetriesError, NetworkError, ServiceError
from menuplan.services.completion import HttpCompletionClient
from menuplan.services.menus import generate_week_menu, generate_week_menu_result
from menuplan.services.orchestrator import (
    AttemptFailure,
    AttemptSuccess,
    Exhausted,
    RetryOrchestrator,
    RetryPolicy,
    Succeeded,
    variant_for,
)
from menuplan.services.prompts import PromptVariant
from menuplan.config import Settings

from payloads import make_day, make_request, make_week, week_json


class ScriptedClient:
    """Plays back a list of responses; exceptions in the script are raised."""

    def __init__(self, script: List[object]) -> None:
        self.script = list(script)
        self.prompts: List[str] = []
        self.models: List[Optional[str]] = []

    def complete(self, prompt_text: str, model_hint: Optional[str] = None) -> str:
        self.prompts.append(prompt_text)
        self.models.append(model_hint)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class RetryOrchestratorTestCase(unittest.TestCase):
    def setUp(self):
        self.sleeps: List[float] = []
        self.request = make_request()

    def _orchestrator(self, client, **policy) -> RetryOrchestrator:
        return RetryOrchestrator(client, policy=RetryPolicy(**policy), model="test-model", sleep=self.sleeps.append)

    def test_succeeds_on_fifth_attempt_after_four_failures(self):
        client = ScriptedClient(
            [
                NetworkError("connection reset"),
                "Sorry, I can't produce that right now.",
                ServiceError(500, "upstream exploded"),
                '{"weeklyMenu": [',
                f"```json\n{week_json()}\n```",
            ]
        )
        result = self._orchestrator(client).run(self.request, seed=99)

        self.assertIsInstance(result, Succeeded)
        self.assertEqual(len(result.attempts), 5)
        self.assertEqual(len(client.prompts), 5)
        self.assertEqual(len(result.menu.days), 7)
        variants = [attempt.variant for attempt in result.attempts]
        self.assertEqual(
            variants,
            [PromptVariant.FULL, PromptVariant.SIMPLIFIED, PromptVariant.FULL, PromptVariant.SIMPLIFIED, PromptVariant.FULL],
        )
        self.assertIn("VARIETY HINTS", client.prompts[0])
        self.assertNotIn("VARIETY HINTS", client.prompts[1])
        self.assertIn("VARIETY HINTS", client.prompts[4])
        kinds = [attempt.kind for attempt in result.attempts[:4]]
        self.assertEqual(kinds, [ErrorKind.NETWORK, ErrorKind.NO_STRUCTURE, ErrorKind.SERVICE, ErrorKind.PARSE])
        self.assertIsInstance(result.attempts[4], AttemptSuccess)

    def test_backoff_doubles_and_is_capped(self):
        client = ScriptedClient(["no json here"])
        self._orchestrator(client).run(self.request, seed=1)
        self.assertEqual(self.sleeps, [1.0, 2.0, 4.0, 5.0])

    def test_always_unparsable_exhausts_after_max_attempts(self):
        client = ScriptedClient(["still not json"])
        result = self._orchestrator(client).run(self.request, seed=1)

        self.assertIsInstance(result, Exhausted)
        self.assertEqual(len(result.attempts), 5)
        self.assertEqual(len(client.prompts), 5)
        self.assertIsInstance(result.last_failure, AttemptFailure)
        self.assertEqual(result.last_failure.attempt, 5)
        self.assertEqual(result.last_failure.kind, ErrorKind.NO_STRUCTURE)

    def test_configured_attempt_count_is_respected(self):
        client = ScriptedClient(["{}"])
        result = self._orchestrator(client, max_attempts=3).run(self.request, seed=1)
        self.assertIsInstance(result, Exhausted)
        self.assertEqual(len(client.prompts), 3)
        self.assertEqual(result.last_failure.kind, ErrorKind.SCHEMA)

    def test_repairable_response_succeeds_first_time(self):
        client = ScriptedClient([week_json()[:-1]])
        result = self._orchestrator(client).run(self.request, seed=1)
        self.assertIsInstance(result, Succeeded)
        self.assertTrue(result.attempts[0].repaired)
        self.assertEqual(self.sleeps, [])

    def test_partial_week_is_not_a_success(self):
        truncated = week_json()
        truncated = truncated[: truncated.index('"calories": 2004') + len('"calories": 20')]
        client = ScriptedClient([truncated])
        result = self._orchestrator(client, max_attempts=2).run(self.request, seed=1)
        self.assertIsInstance(result, Exhausted)
        self.assertEqual(result.last_failure.kind, ErrorKind.PARSE)
        self.assertIn("repair recovered 4 of 7 days", result.last_failure.detail)

    def test_eight_day_week_is_rejected_not_trimmed(self):
        eight_days = json.dumps({"weeklyMenu": [make_day(index % 7) for index in range(8)]})
        client = ScriptedClient([eight_days])
        result = self._orchestrator(client, max_attempts=1).run(self.request, seed=1)

        self.assertIsInstance(result, Exhausted)
        self.assertEqual(result.last_failure.kind, ErrorKind.SCHEMA)
        self.assertIn("expected 7 days, got 8", result.last_failure.detail)

    def test_truncated_eight_day_week_is_not_trimmed_to_seven(self):
        eight_days = json.dumps({"weeklyMenu": [make_day(index % 7) for index in range(8)]})
        truncated = eight_days[: eight_days.rindex('"nutrition"')]
        client = ScriptedClient([truncated])
        result = self._orchestrator(client, max_attempts=1).run(self.request, seed=1)

        self.assertIsInstance(result, Exhausted)
        self.assertEqual(result.last_failure.kind, ErrorKind.PARSE)

    def test_missing_main_meal_keeps_its_day_and_check(self):
        week = make_week()
        week["weeklyMenu"][2]["meals"] = {"snacks": []}
        client = ScriptedClient([json.dumps(week)])
        result = self._orchestrator(client, max_attempts=1).run(self.request, seed=1)

        self.assertIsInstance(result, Exhausted)
        self.assertEqual(result.last_failure.kind, ErrorKind.SCHEMA)
        self.assertEqual(
            result.last_failure.detail,
            "day has none of breakfast, lunch or dinner (day 2, meal_presence)",
        )

    def test_bare_day_array_is_accepted(self):
        client = ScriptedClient([f"Sure!\n{json.dumps(make_week()['weeklyMenu'])}\nEnjoy."])
        result = self._orchestrator(client).run(self.request, seed=1)

        self.assertIsInstance(result, Succeeded)
        self.assertFalse(result.attempts[0].repaired)
        self.assertEqual(len(result.menu.days), 7)

    def test_unexpected_exception_is_contained(self):
        client = ScriptedClient([RuntimeError("boom"), week_json()])
        result = self._orchestrator(client).run(self.request, seed=1)
        self.assertIsInstance(result, Succeeded)
        self.assertEqual(result.attempts[0].kind, ErrorKind.SERVICE)
        self.assertIn("boom", result.attempts[0].detail)

    def test_model_hint_is_forwarded(self):
        client = ScriptedClient([week_json()])
        self._orchestrator(client).run(self.request, seed=1)
        self.assertEqual(client.models, ["test-model"])

    def test_seed_is_fixed_for_the_whole_run(self):
        client = ScriptedClient(["nope", "nope", week_json()])
        self._orchestrator(client).run(self.request, seed=31337)
        self.assertIn("generation seed 31337", client.prompts[0])
        self.assertIn("generation seed 31337", client.prompts[2])


def test_policy_delays():
    policy = RetryPolicy()
    assert [policy.delay_for(attempt) for attempt in range(1, 6)] == [0.0, 1.0, 2.0, 4.0, 5.0]


def test_variant_parity():
    assert [variant_for(attempt) for attempt in (1, 2, 3)] == [
        PromptVariant.FULL,
        PromptVariant.SIMPLIFIED,
        PromptVariant.FULL,
    ]


def test_facade_raises_exhausted_with_last_failure():
    settings = Settings(menu_max_attempts=2, menu_backoff_base_seconds=0, menu_backoff_max_seconds=0)
    client = ScriptedClient([ServiceError(503, "overloaded")])
    try:
        generate_week_menu_result(make_request(), client=client, settings=settings, seed=5)
    except ExhaustedRetriesError as exc:
        assert len(exc.attempts) == 2
        assert exc.last_failure.kind is ErrorKind.SERVICE
        assert "503" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("expected ExhaustedRetriesError")


def test_facade_closes_the_client_it_builds():
    settings = Settings(completion_backend="http", menu_max_attempts=1)
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": week_json()}}]})
    )
    client = HttpCompletionClient(settings, transport=transport)

    with mock.patch("menuplan.services.menus.build_completion_client", return_value=client):
        menu = generate_week_menu(make_request(), settings=settings)

    assert len(menu.days) == 7
    assert client.is_closed


def test_facade_leaves_a_caller_client_open():
    settings = Settings(completion_backend="http", menu_max_attempts=1)
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": week_json()}}]})
    )
    with HttpCompletionClient(settings, transport=transport) as client:
        generate_week_menu(make_request(), client=client, settings=settings)
        assert not client.is_closed
