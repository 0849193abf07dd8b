from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from ..sim.population import LabSnapshot, PopulationSimulation, RandomSource, SimulationState
from .config import SimulationConfig
from .labs import ScienceLab
from .settings import SimulationSettings

logger = logging.getLogger("stemulator.backend")


@dataclass
class BackendState:
    generation: int = 0
    population: int = 0
    prey: int = 0
    predators: int = 0
    survival_rate: float = 0.0
    mean_traits: Dict[str, float] = field(default_factory=dict)
    frame: Dict | None = None


class SimulationBackend(Protocol):
    """Interface the UI uses to control a simulation implementation."""

    def configure(self, config: SimulationConfig) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def step(self) -> BackendState:
        ...

    def step_once(self) -> BackendState:
        ...

    def snapshot(self) -> Dict:
        ...

    def simulation_state(self) -> SimulationState:
        ...

    def update_settings(self, patch: Mapping[str, Any]) -> SimulationSettings:
        ...

    def apply_lab(self, lab: ScienceLab, part_id: Optional[int] = None) -> SimulationSettings:
        ...

    def reset(self) -> None:
        ...

    def lab_snapshot(self) -> LabSnapshot:
        ...


class PopulationSimulationBackend:
    """
    Drives a `PopulationSimulation` through the backend protocol.

    The engine itself assumes a single writer; every call here takes the
    backend lock so a UI timer and button callbacks can share one instance.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        *,
        rng: Optional[RandomSource] = None,
        sleep_interval: float = 0.0,
    ) -> None:
        self._config = config or SimulationConfig()
        self._rng = rng
        self._lock = threading.Lock()
        self._running = False
        self._sleep_interval = max(0.0, float(sleep_interval))
        self._sim = PopulationSimulation(self._config, rng=self._rng)
        self._state = self._capture_state(include_frame=False)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def config(self) -> SimulationConfig:
        return self._config

    def configure(self, config: SimulationConfig) -> None:
        with self._lock:
            sim = PopulationSimulation(config, rng=self._rng)
            self._config = config
            self._sim = sim
            self._state = self._capture_state(include_frame=False)
        logger.info("Backend configured: %s", config.to_dict())

    def start(self) -> None:
        with self._lock:
            self._running = True

    def stop(self) -> None:
        with self._lock:
            self._running = False

    def step(self) -> BackendState:
        if self._sleep_interval:
            time.sleep(self._sleep_interval)
        with self._lock:
            if self._running:
                self._sim.run_generation()
            self._state = self._capture_state()
            return replace(self._state)

    def step_once(self) -> BackendState:
        """Advance exactly one generation regardless of the running flag."""
        with self._lock:
            self._sim.run_generation()
            self._state = self._capture_state()
            return replace(self._state)

    def snapshot(self) -> Dict:
        with self._lock:
            state = self._sim.get_snapshot()
            prey, predators = state.alive_counts()
            return {
                "config": self._config.to_dict(),
                "settings": state.settings.to_dict(),
                "state": {
                    "generation": state.generation,
                    "population": prey + predators,
                    "prey": prey,
                    "predators": predators,
                    "survival_rate": state.survival_rate,
                },
                "history": list(state.population_history),
                "traits": {
                    "speed": list(state.trait_distribution.speed),
                    "camouflage": list(state.trait_distribution.camouflage),
                    "size": list(state.trait_distribution.size),
                },
                "mean_traits": self._sim.trait_means(),
                "actions": list(state.actions[-10:]),
                "frame": self._capture_frame(state),
            }

    def simulation_state(self) -> SimulationState:
        with self._lock:
            return self._sim.get_snapshot()

    def update_settings(self, patch: Mapping[str, Any]) -> SimulationSettings:
        with self._lock:
            return self._sim.update_settings(patch)

    def apply_lab(
        self,
        lab: Union[ScienceLab, Mapping[str, Any]],
        part_id: Optional[int] = None,
    ) -> SimulationSettings:
        with self._lock:
            settings = self._sim.apply_lab_configuration(lab, part_id)
            self._state = self._capture_state(include_frame=False)
            return settings

    def reset(self) -> None:
        with self._lock:
            self._sim.reset()
            self._state = self._capture_state(include_frame=False)

    def lab_snapshot(self) -> LabSnapshot:
        with self._lock:
            return self._sim.lab_snapshot()

    # ----- internals -----
    def _capture_state(self, include_frame: bool = True) -> BackendState:
        sim = self._sim
        prey, predators = sim.counts()
        state = sim.get_snapshot()
        return BackendState(
            generation=state.generation,
            population=prey + predators,
            prey=prey,
            predators=predators,
            survival_rate=state.survival_rate,
            mean_traits=sim.trait_means(),
            frame=self._capture_frame(state) if include_frame else None,
        )

    def _capture_frame(self, state: SimulationState) -> Dict:
        world = self._config.world
        organisms: List[Dict[str, Any]] = [o.to_dict() for o in state.organisms if o.alive]
        return {
            "width": world.width,
            "height": world.height,
            "environment": state.environment.value,
            "organisms": organisms,
        }
