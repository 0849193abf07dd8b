import random
from typing import Iterable, Optional

import pytest

from stemulator.core.config import SimulationConfig
from stemulator.core.labs import ScienceLab, bundled_labs, find_lab
from stemulator.sim.population import PopulationSimulation


class ScriptedRandom:
    """Replays fixed draws, then falls back to a constant."""

    def __init__(self, values: Iterable[float] = (), fallback: Optional[float] = None) -> None:
        self._values = list(values)
        self._fallback = fallback
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self._values:
            return self._values.pop(0)
        if self._fallback is None:
            raise AssertionError("scripted random source exhausted")
        return self._fallback


@pytest.fixture
def config() -> SimulationConfig:
    return SimulationConfig()


@pytest.fixture
def engine(config) -> PopulationSimulation:
    """Engine driven by a seeded stdlib generator."""
    return PopulationSimulation(config, rng=random.Random(1234))


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def constant_engine(config):
    """Factory for engines whose every draw returns the same value."""

    def _make(value: float, cfg: Optional[SimulationConfig] = None) -> PopulationSimulation:
        return PopulationSimulation(cfg or config, rng=ScriptedRandom(fallback=value))

    return _make


@pytest.fixture
def natural_selection_lab() -> ScienceLab:
    lab = find_lab(bundled_labs(), "HS-LS4-2")
    assert lab is not None
    return lab


@pytest.fixture
def lab_payload() -> dict:
    """Lab in the JSON shape served by the course backend."""
    return {
        "labId": "TEST-1",
        "title": "Arctic Hares",
        "discipline": "Life Science",
        "topic": "Evolution",
        "subTopic": "Adaptation",
        "labParts": [
            {
                "partId": 1,
                "title": "Snow",
                "setup": ["Move the population to a snowy tundra.", "Favor white fur."],
                "observations": [],
                "evidence": [],
                "predictions": ["What if wolves arrive?"],
            },
            {
                "partId": 2,
                "title": "Wolves",
                "setup": ["Introduce wolves."],
                "observations": [],
                "evidence": [],
                "predictions": [],
            },
        ],
    }
