from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class InvalidParameter(ValueError):
    """Raised when a settings update names an unknown field or value."""


class Environment(str, Enum):
    FOREST = "forest"
    DESERT = "desert"
    ARCTIC = "arctic"


class Predation(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FoodAvailability(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


MUTATION_RATE_MIN = 0
MUTATION_RATE_MAX = 10

# Lab front-end payloads use camelCase keys.
FIELD_ALIASES: Dict[str, str] = {
    "environment": "environment",
    "predation": "predation",
    "food_availability": "food_availability",
    "foodAvailability": "food_availability",
    "mutation_rate": "mutation_rate",
    "mutationRate": "mutation_rate",
}

_ENUM_FIELDS = {
    "environment": Environment,
    "predation": Predation,
    "food_availability": FoodAvailability,
}


def _coerce_mutation_rate(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParameter(f"mutation_rate must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidParameter(f"mutation_rate must be an integer, got {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise InvalidParameter(f"mutation_rate must be an integer, got {value!r}")
    if not MUTATION_RATE_MIN <= value <= MUTATION_RATE_MAX:
        raise InvalidParameter(
            f"mutation_rate must be within {MUTATION_RATE_MIN}..{MUTATION_RATE_MAX}, got {value}"
        )
    return value


def validate_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalise a partial settings mapping to canonical keys and enum members."""
    cleaned: Dict[str, Any] = {}
    for key, value in patch.items():
        name = FIELD_ALIASES.get(key)
        if name is None:
            raise InvalidParameter(f"Unknown setting: {key!r}")
        if name == "mutation_rate":
            cleaned[name] = _coerce_mutation_rate(value)
            continue
        enum_type = _ENUM_FIELDS[name]
        try:
            cleaned[name] = enum_type(value)
        except ValueError as exc:
            choices = ", ".join(member.value for member in enum_type)
            raise InvalidParameter(f"Invalid {name} {value!r}; expected one of: {choices}") from exc
    return cleaned


@dataclass(frozen=True)
class SimulationSettings:
    environment: Environment = Environment.FOREST
    predation: Predation = Predation.MEDIUM
    food_availability: FoodAvailability = FoodAvailability.MEDIUM
    mutation_rate: int = 5

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None) -> "SimulationSettings":
        return cls().merged(data or {})

    def merged(self, patch: Mapping[str, Any]) -> "SimulationSettings":
        return replace(self, **validate_patch(patch))

    @property
    def mutation_fraction(self) -> float:
        return self.mutation_rate / 10.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.value,
            "predation": self.predation.value,
            "food_availability": self.food_availability.value,
            "mutation_rate": self.mutation_rate,
        }


def patch_to_dict(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """JSON-friendly view of a validated patch."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in patch.items()}
