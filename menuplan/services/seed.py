"""Deterministic, hash-based variety picks.

The generation seed is the only source of "randomness" the planner uses for
style choices: the same seed always produces the same cuisine, protein, grain
and so on, while two separate requests get different seeds.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable

from ..schemas import MenuRequest

CUISINES = ("mediterranean", "asian", "mexican", "italian", "french")
PROTEINS = ("chicken", "fish", "lentils", "tofu", "eggs")
GRAINS = ("oats", "quinoa", "brown rice", "whole-wheat pasta", "whole-grain bread")
FRUITS = ("apple", "banana", "strawberries", "blueberries", "orange")
VEGETABLES = ("broccoli", "spinach", "carrot", "zucchini", "tomato")
SPICES = ("turmeric", "ginger", "cumin", "oregano", "basil")
COOKING_METHODS = ("grilled", "oven-baked", "steamed", "stir-fried", "slow-stewed")

# (field, table, discriminator appended to the seed before hashing)
_CATEGORIES = (
    ("cuisine", CUISINES, ""),
    ("protein", PROTEINS, "1"),
    ("grain", GRAINS, "2"),
    ("fruit", FRUITS, "3"),
    ("vegetable", VEGETABLES, "4"),
    ("spice", SPICES, "5"),
    ("cooking_method", COOKING_METHODS, "6"),
)


@dataclass(frozen=True)
class VarietyElements:
    cuisine: str
    protein: str
    grain: str
    fruit: str
    vegetable: str
    spice: str
    cooking_method: str


def string_hash(text: str) -> int:
    """Order-sensitive polynomial hash (h * 31 + c) wrapped to a signed 32-bit int."""
    h = 0
    for char in text:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def pick_index(key: str, size: int) -> int:
    if size <= 0:
        raise ValueError("cannot pick from an empty table")
    return abs(string_hash(key)) % size


def derive_variety_elements(seed: int) -> VarietyElements:
    seed_text = str(seed)
    picks = {
        field: table[pick_index(seed_text + discriminator, len(table))]
        for field, table, discriminator in _CATEGORIES
    }
    return VarietyElements(**picks)


def new_generation_seed(
    request: MenuRequest,
    *,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> int:
    """Combine wall-clock millis, a random component and a hash of the request."""
    rng = rng or random.Random()
    timestamp = int(clock() * 1000)
    random_component = rng.randrange(1_000_000)
    request_hash = abs(string_hash(request.model_dump_json()))
    return timestamp + random_component + request_hash
