"""
Keyword rules that turn lab setup text into simulation settings.

Each rule fires when its keywords appear in a lower-cased setup line. Rules
are evaluated line by line in table order, so a later match overwrites an
earlier one for the same field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Tuple

from ..core.settings import Environment, FoodAvailability, Predation

FAVOR_PALE = "favor_pale"


@dataclass(frozen=True)
class LabRule:
    keywords: Tuple[str, ...]
    field: str
    value: Any
    require_all: bool = False

    def matches(self, text: str) -> bool:
        hits = (keyword in text for keyword in self.keywords)
        return all(hits) if self.require_all else any(hits)


LAB_RULES: Tuple[LabRule, ...] = (
    LabRule(("desert",), "environment", Environment.DESERT),
    LabRule(("snow", "snowy", "arctic"), "environment", Environment.ARCTIC),
    LabRule(("rocky",), "environment", Environment.DESERT),
    LabRule(("wolves", "predator", "introduce wolves"), "predation", Predation.HIGH),
    LabRule(("food availability", "tough"), "food_availability", FoodAvailability.LOW, require_all=True),
    LabRule(("tough food",), "food_availability", FoodAvailability.LOW),
    LabRule(("mutat",), "mutation_rate", 8),
    LabRule(("white fur",), FAVOR_PALE, True),
)


@dataclass
class SetupPatch:
    settings: Dict[str, Any] = field(default_factory=dict)
    favor_pale: bool = False

    def __bool__(self) -> bool:
        return bool(self.settings) or self.favor_pale


def scan_setup_lines(lines: Iterable[str], rules: Tuple[LabRule, ...] = LAB_RULES) -> SetupPatch:
    patch = SetupPatch()
    for line in lines:
        text = line.lower()
        for rule in rules:
            if not rule.matches(text):
                continue
            if rule.field == FAVOR_PALE:
                patch.favor_pale = True
            else:
                patch.settings[rule.field] = rule.value
    return patch
