# SPDX-License-Identifier: MIT
"""
Headless generational predator-prey simulation used by the lab backend.

A population of prey and predators carries three heritable traits (speed,
camouflage, size). Each generation applies a survival pass driven by the
current environment, predation and food settings, reproduces the survivors
with mutation under fixed carrying capacities, and recomputes statistics.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union

import numpy as np

from ..core.config import SimulationConfig
from ..core.labs import ScienceLab
from ..core.settings import (
    Environment,
    FoodAvailability,
    InvalidParameter,
    Predation,
    SimulationSettings,
    patch_to_dict,
    validate_patch,
)
from .lab_rules import scan_setup_lines

logger = logging.getLogger("stemulator.simulation")

# ===================== Traits =====================
TRAITS = ("speed", "camouflage", "size")
TRAIT_MIN, TRAIT_MAX = 0.0, 10.0

# ===================== Survival =====================
PREY_BASE_SURVIVAL = 0.8
SPEED_WEIGHT = 0.01
CAMOUFLAGE_WEIGHT = 0.012
SIZE_WEIGHT = 0.005
PREY_SURVIVAL_MIN, PREY_SURVIVAL_MAX = 0.08, 0.95

PREDATOR_BASE_SURVIVAL = 0.4
PREDATOR_PREY_WEIGHT = 0.45
PREDATOR_SURVIVAL_MIN, PREDATOR_SURVIVAL_MAX = 0.1, 0.9

DENSITY_WEIGHT = 2.0
DENSITY_MULT_MAX = 1.6

PREDATION_PRESSURE = {
    Predation.LOW: 0.05,
    Predation.MEDIUM: 0.18,
    Predation.HIGH: 0.35,
}
FOOD_PENALTY = {
    FoodAvailability.LOW: 0.20,
    FoodAvailability.MEDIUM: 0.05,
    FoodAvailability.HIGH: 0.0,
}
PREDATOR_FOOD_ADJUSTMENT = {
    FoodAvailability.LOW: -0.05,
    FoodAvailability.MEDIUM: 0.0,
    FoodAvailability.HIGH: 0.05,
}
# (speed, camouflage, size)
ENV_BONUS = {
    Environment.FOREST: (0.0, 2.0, 0.0),
    Environment.DESERT: (1.0, 0.0, -1.0),
    Environment.ARCTIC: (0.0, 1.0, 1.0),
}

# ===================== Reproduction =====================
FOOD_OFFSPRING_MULT = {
    FoodAvailability.LOW: 0.4,
    FoodAvailability.MEDIUM: 0.7,
    FoodAvailability.HIGH: 1.0,
}
PREDATION_STRESS_MULT = {
    Predation.LOW: 1.0,
    Predation.MEDIUM: 0.85,
    Predation.HIGH: 0.65,
}
DENSITY_FACTOR_MIN = 0.1
MUTATION_SPREAD = 1.5
MIN_PREDATORS = {
    Predation.LOW: 1,
    Predation.MEDIUM: 3,
    Predation.HIGH: 5,
}
# (base, span) of the uniform draw for predators added to meet the floor
SYNTHETIC_PREDATOR_TRAITS = ((4.0, 4.0), (3.0, 4.0), (5.0, 4.0))

# ===================== Initial population =====================
DESERT_SPEED_BIAS = 2.0
DESERT_SIZE_BIAS = 3.0
ARCTIC_SIZE_BIAS = 3.0
PALE_CAMOUFLAGE_FLOOR = 7.0

SPAWN_MARGIN_X = 10.0
SPAWN_MARGIN_Y = 15.0
LOG_TAIL = 10


class Role(str, Enum):
    PREY = "prey"
    PREDATOR = "predator"


class RandomSource(Protocol):
    """Anything yielding uniform floats in [0, 1); `random.Random` qualifies."""

    def random(self) -> float:
        ...


class NumpyRandomSource:
    def __init__(self, seed: Optional[int] = None, generator: Optional[np.random.Generator] = None) -> None:
        self._rng = generator if generator is not None else np.random.default_rng(seed)

    def random(self) -> float:
        return float(self._rng.random())


def clamp_trait(value: float) -> float:
    return max(TRAIT_MIN, min(TRAIT_MAX, value))


@dataclass
class Organism:
    id: int
    x: float
    y: float
    speed: float
    camouflage: float
    size: float
    alive: bool = True
    role: Role = Role.PREY

    @property
    def is_predator(self) -> bool:
        return self.role is Role.PREDATOR

    def traits(self) -> Tuple[float, float, float]:
        return self.speed, self.camouflage, self.size

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data


@dataclass
class TraitDistribution:
    speed: List[float] = field(default_factory=list)
    camouflage: List[float] = field(default_factory=list)
    size: List[float] = field(default_factory=list)


@dataclass
class SimulationState:
    generation: int = 0
    organisms: List[Organism] = field(default_factory=list)
    environment: Environment = Environment.FOREST
    predation: Predation = Predation.MEDIUM
    food_availability: FoodAvailability = FoodAvailability.MEDIUM
    mutation_rate: int = 5
    population_history: List[int] = field(default_factory=list)
    trait_distribution: TraitDistribution = field(default_factory=TraitDistribution)
    survival_rate: float = 0.0
    actions: List[str] = field(default_factory=list)

    @property
    def settings(self) -> SimulationSettings:
        return SimulationSettings(
            environment=self.environment,
            predation=self.predation,
            food_availability=self.food_availability,
            mutation_rate=self.mutation_rate,
        )

    def alive(self) -> List[Organism]:
        return [o for o in self.organisms if o.alive]

    def alive_counts(self) -> Tuple[int, int]:
        prey = predators = 0
        for o in self.organisms:
            if not o.alive:
                continue
            if o.is_predator:
                predators += 1
            else:
                prey += 1
        return prey, predators

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["organisms"] = [o.to_dict() for o in self.organisms]
        data.update(self.settings.to_dict())
        return data


@dataclass
class LabSnapshot:
    environment: str
    parameters: Dict[str, Any]
    current_population: int
    last_actions: List[str]


# ===================== Probability rules =====================
def predator_density_multiplier(predator_count: int, prey_count: int) -> float:
    ratio = predator_count / prey_count if prey_count > 0 else 0.0
    return min(DENSITY_MULT_MAX, 1.0 + ratio * DENSITY_WEIGHT)


def prey_survival_probability(
    organism: Organism,
    environment: Environment,
    predation: Predation,
    food: FoodAvailability,
    density_multiplier: float = 1.0,
) -> float:
    speed_bonus, camo_bonus, size_bonus = ENV_BONUS[environment]
    prob = PREY_BASE_SURVIVAL
    prob += SPEED_WEIGHT * (organism.speed + speed_bonus)
    prob += CAMOUFLAGE_WEIGHT * (organism.camouflage + camo_bonus)
    prob += SIZE_WEIGHT * (organism.size + size_bonus)
    prob -= PREDATION_PRESSURE[predation] * density_multiplier
    prob -= FOOD_PENALTY[food]
    return max(PREY_SURVIVAL_MIN, min(PREY_SURVIVAL_MAX, prob))


def predator_survival_probability(prey_ratio: float, food: FoodAvailability) -> float:
    prob = PREDATOR_BASE_SURVIVAL + PREDATOR_PREY_WEIGHT * prey_ratio + PREDATOR_FOOD_ADJUSTMENT[food]
    return max(PREDATOR_SURVIVAL_MIN, min(PREDATOR_SURVIVAL_MAX, prob))


def base_offspring(survivor_count: int) -> float:
    if survivor_count < 6:
        return 3.0
    if survivor_count < 15:
        return 2.5
    return 2.0


def prey_offspring_rate(
    survivor_count: int,
    food: FoodAvailability,
    predation: Predation,
    max_prey: int = 120,
) -> float:
    density = max(DENSITY_FACTOR_MIN, 1.0 - survivor_count / max_prey)
    return base_offspring(survivor_count) * FOOD_OFFSPRING_MULT[food] * PREDATION_STRESS_MULT[predation] * density


# ===================== Simulation =====================
class PopulationSimulation:
    """
    Owns one population and its settings.

    Not thread-safe: callers running it from several threads must serialise
    access (see `PopulationSimulationBackend`).
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self._rng: RandomSource = rng if rng is not None else NumpyRandomSource(self.config.world.seed)
        self._defaults = SimulationSettings.from_mapping(asdict(self.config.defaults))
        self._check_limits()
        self._next_id = 0
        self._state = self._initial_state()

    # ----- public API -----
    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def settings(self) -> SimulationSettings:
        return self._state.settings

    def get_snapshot(self) -> SimulationState:
        return copy.deepcopy(self._state)

    def update_settings(self, patch: Optional[Mapping[str, Any]] = None, **changes: Any) -> SimulationSettings:
        merged: Dict[str, Any] = dict(patch or {})
        merged.update(changes)
        validated = validate_patch(merged)
        for name, value in validated.items():
            setattr(self._state, name, value)
        message = f"Settings updated: {json.dumps(patch_to_dict(validated))}"
        self._state.actions.append(message)
        logger.info(message)
        return self._state.settings

    def apply_lab_configuration(
        self,
        lab: Union[ScienceLab, Mapping[str, Any]],
        part_id: Optional[int] = None,
    ) -> SimulationSettings:
        if not isinstance(lab, ScienceLab):
            lab = ScienceLab.from_dict(dict(lab))
        parts = lab.parts_for(part_id)
        if not parts:
            logger.warning("Lab %s has no part %s; keeping current settings", lab.id, part_id)
        patch = scan_setup_lines(line for part in parts for line in part.setup)

        combined = self._state.settings.to_dict()
        combined.update(patch.settings)
        settings = self.update_settings(combined)

        self._state.organisms = self._initialize_population(
            environment=settings.environment,
            favor_pale=patch.favor_pale,
        )
        self._state.population_history = []
        part_label = "all" if part_id is None else part_id
        self._state.actions.append(f"Applied lab {lab.id} part {part_label}")
        logger.info("Applied lab %s part %s (%s)", lab.id, part_label, settings.to_dict())
        return settings

    def run_generation(self) -> None:
        state = self._state
        state.generation += 1
        self._survive()
        self._reproduce()
        self._update_stats()
        prey, predators = state.alive_counts()
        state.actions.append(f"Gen {state.generation}: {prey + predators} alive")
        logger.debug("Gen %d: %d prey, %d predators", state.generation, prey, predators)

    def reset(self) -> None:
        self._next_id = 0
        self._state = self._initial_state()
        logger.info("Simulation reset")

    def lab_snapshot(self) -> LabSnapshot:
        state = self._state
        settings = state.settings.to_dict()
        return LabSnapshot(
            environment=settings.pop("environment"),
            parameters=settings,
            current_population=len(state.alive()),
            last_actions=list(state.actions[-LOG_TAIL:]),
        )

    def counts(self) -> Tuple[int, int]:
        """Alive (prey, predators)."""
        return self._state.alive_counts()

    def trait_means(self) -> Dict[str, float]:
        dist = self._state.trait_distribution
        means = {}
        for name in TRAITS:
            values = getattr(dist, name)
            means[name] = float(np.mean(values)) if values else 0.0
        return means

    # ----- population -----
    def _split_population(self, count: int) -> Tuple[int, int]:
        prey_count = int(math.floor(count * self.config.world.prey_fraction))
        return prey_count, max(0, count - prey_count)

    def _check_limits(self) -> None:
        count = self.config.world.initial_population
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidParameter(f"initial_population must be a non-negative integer, got {count!r}")
        limits = self.config.limits
        prey_count, predator_count = self._split_population(count)
        if prey_count > limits.max_prey:
            raise InvalidParameter(
                f"initial_population {count} starts {prey_count} prey, above max_prey {limits.max_prey}"
            )
        if predator_count > limits.max_predators:
            raise InvalidParameter(
                f"initial_population {count} starts {predator_count} predators, "
                f"above max_predators {limits.max_predators}"
            )

    def _initial_state(self) -> SimulationState:
        settings = self._defaults
        return SimulationState(
            generation=0,
            organisms=self._initialize_population(environment=settings.environment),
            environment=settings.environment,
            predation=settings.predation,
            food_availability=settings.food_availability,
            mutation_rate=settings.mutation_rate,
        )

    def _initialize_population(
        self,
        count: Optional[int] = None,
        environment: Environment = Environment.FOREST,
        favor_pale: bool = False,
    ) -> List[Organism]:
        if count is None:
            count = self.config.world.initial_population
        prey_count, predator_count = self._split_population(count)
        organisms: List[Organism] = []

        for _ in range(prey_count):
            speed = self._uniform(TRAIT_MIN, TRAIT_MAX)
            camouflage = self._uniform(TRAIT_MIN, TRAIT_MAX)
            size = self._uniform(TRAIT_MIN, TRAIT_MAX)
            if environment is Environment.DESERT:
                speed = min(TRAIT_MAX, speed + self._uniform(0.0, DESERT_SPEED_BIAS))
                size = max(TRAIT_MIN, size - self._uniform(0.0, DESERT_SIZE_BIAS))
            elif environment is Environment.ARCTIC:
                size = min(TRAIT_MAX, size + self._uniform(0.0, ARCTIC_SIZE_BIAS))
            if favor_pale and environment is Environment.ARCTIC:
                camouflage = max(PALE_CAMOUFLAGE_FLOOR, camouflage)
            x, y = self._canvas_position()
            organisms.append(self._spawn(Role.PREY, (speed, camouflage, size), x, y))

        for _ in range(predator_count):
            traits = tuple(self._uniform(TRAIT_MIN, TRAIT_MAX) for _ in TRAITS)
            x, y = self._canvas_position()
            organisms.append(self._spawn(Role.PREDATOR, traits, x, y))

        return organisms

    def _spawn(self, role: Role, traits, x: float, y: float) -> Organism:
        speed, camouflage, size = (clamp_trait(v) for v in traits)
        organism = Organism(
            id=self._next_id,
            x=x,
            y=y,
            speed=speed,
            camouflage=camouflage,
            size=size,
            alive=True,
            role=role,
        )
        self._next_id += 1
        return organism

    # ----- generation step -----
    def _survive(self) -> None:
        state = self._state
        prey = [o for o in state.organisms if o.alive and not o.is_predator]
        predators = [o for o in state.organisms if o.alive and o.is_predator]
        density = predator_density_multiplier(len(predators), len(prey))

        for org in prey:
            prob = prey_survival_probability(
                org, state.environment, state.predation, state.food_availability, density
            )
            org.alive = self._rng.random() < prob

        prey_alive = sum(1 for o in prey if o.alive)
        prey_ratio = prey_alive / len(prey) if prey else 0.0
        prob = predator_survival_probability(prey_ratio, state.food_availability)
        for org in predators:
            org.alive = self._rng.random() < prob

    def _reproduce(self) -> None:
        state = self._state
        limits = self.config.limits
        survivors = [o for o in state.organisms if o.alive]
        surviving_prey = [o for o in survivors if not o.is_predator]
        surviving_predators = [o for o in survivors if o.is_predator]
        offspring: List[Organism] = list(survivors)
        mutation = state.settings.mutation_fraction

        prey_total = len(surviving_prey)
        rate = prey_offspring_rate(
            len(surviving_prey), state.food_availability, state.predation, limits.max_prey
        )
        guaranteed = int(math.floor(rate))
        fraction = rate - guaranteed
        for parent in surviving_prey:
            if prey_total >= limits.max_prey:
                break
            litter = guaranteed + (1 if self._rng.random() < fraction else 0)
            for _ in range(litter):
                if prey_total >= limits.max_prey:
                    break
                offspring.append(self._mutated_child(parent, mutation))
                prey_total += 1

        predator_total = len(surviving_predators)
        for parent in surviving_predators[::2]:
            if predator_total >= limits.max_predators:
                break
            offspring.append(self._mutated_child(parent, mutation))
            predator_total += 1

        minimum = MIN_PREDATORS[state.predation]
        while predator_total < minimum:
            traits = tuple(base + self._rng.random() * span for base, span in SYNTHETIC_PREDATOR_TRAITS)
            x, y = self._offspring_position()
            offspring.append(self._spawn(Role.PREDATOR, traits, x, y))
            predator_total += 1

        state.organisms = offspring

    def _mutated_child(self, parent: Organism, mutation: float) -> Organism:
        traits = tuple(value + self._jitter(mutation) for value in parent.traits())
        x, y = self._offspring_position()
        return self._spawn(parent.role, traits, x, y)

    def _update_stats(self) -> None:
        state = self._state
        alive = state.alive()
        prey_alive = [o for o in alive if not o.is_predator]
        state.population_history.append(len(alive))
        state.survival_rate = len(prey_alive) / len(alive) if alive else 0.0
        state.trait_distribution = TraitDistribution(
            speed=[o.speed for o in prey_alive],
            camouflage=[o.camouflage for o in prey_alive],
            size=[o.size for o in prey_alive],
        )

    # ----- random helpers -----
    def _uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self._rng.random()

    def _jitter(self, mutation: float) -> float:
        return (self._rng.random() - 0.5) * 2.0 * MUTATION_SPREAD * mutation

    def _canvas_position(self) -> Tuple[float, float]:
        world = self.config.world
        return self._uniform(0.0, world.width), self._uniform(0.0, world.height)

    def _offspring_position(self) -> Tuple[float, float]:
        world = self.config.world
        return (
            self._uniform(SPAWN_MARGIN_X, world.width - SPAWN_MARGIN_X),
            self._uniform(SPAWN_MARGIN_Y, world.height - SPAWN_MARGIN_Y),
        )
