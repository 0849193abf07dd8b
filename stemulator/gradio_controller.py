from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from stemulator.core.config import DEFAULT_CONFIG, SimulationConfig
from stemulator.core.labs import ScienceLab
from stemulator.core.settings import SimulationSettings
from stemulator.core.simulation_backend import BackendState, SimulationBackend
from stemulator.core.tutor_context import build_sim_context, format_context_block, format_lab_snapshot

logger = logging.getLogger("stemulator.ui")


class GradioSimulationController:
    """UI-agnostic controller tailored for Gradio callbacks."""

    def __init__(
        self,
        backend: SimulationBackend,
        config: Optional[SimulationConfig] = None,
        labs: Optional[Iterable[ScienceLab]] = None,
    ) -> None:
        self._backend = backend
        self._config = config or DEFAULT_CONFIG
        self._backend.configure(self._config)
        self._lock = threading.Lock()
        self._running = False
        self._last_state: Optional[BackendState] = None
        self._labs: Dict[str, ScienceLab] = {lab.id: lab for lab in labs or []}
        self._active_lab: Optional[ScienceLab] = None

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    @property
    def labs(self) -> List[ScienceLab]:
        return list(self._labs.values())

    @property
    def active_lab(self) -> Optional[ScienceLab]:
        return self._active_lab

    def apply_config(self, config: SimulationConfig) -> None:
        with self._lock:
            self._backend.configure(config)
            self._config = config
            self._active_lab = None

    def start(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._backend.start()
            self._running = True
            return True

    def stop(self) -> bool:
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._backend.stop()
            return True

    def step_or_snapshot(self) -> Dict:
        with self._lock:
            if self._running:
                state = self._backend.step()
                self._last_state = state
                return _state_payload(state)
        snapshot = self._backend.snapshot()
        return _snapshot_payload(snapshot, self._last_state)

    def step_once(self) -> Dict:
        with self._lock:
            state = self._backend.step_once()
            self._last_state = state
            return _state_payload(state)

    def apply_settings(self, patch: Mapping[str, Any]) -> SimulationSettings:
        with self._lock:
            return self._backend.update_settings(patch)

    def apply_lab(self, lab_id: str, part_id: Optional[int] = None) -> SimulationSettings:
        lab = self._labs.get(lab_id)
        if lab is None:
            raise ValueError(f"Unknown lab: {lab_id}")
        with self._lock:
            settings = self._backend.apply_lab(lab, part_id)
            self._active_lab = lab
            self._last_state = None
        logger.info("Lab %s part %s applied from console", lab_id, part_id)
        return settings

    def reset(self) -> None:
        with self._lock:
            self._backend.reset()
            self._last_state = None
            self._active_lab = None

    def trait_distribution(self) -> Dict[str, List[float]]:
        return self._backend.snapshot().get("traits", {})

    def recent_actions(self) -> List[str]:
        return list(self._backend.lab_snapshot().last_actions)

    def tutor_context(self) -> str:
        state = self._backend.simulation_state()
        context = build_sim_context(state, self._active_lab)
        return format_context_block(context) + "\n\n" + format_lab_snapshot(self._backend.lab_snapshot())


def _state_payload(state: BackendState) -> Dict:
    payload = {
        "generation": state.generation,
        "population": state.population,
        "prey": state.prey,
        "predators": state.predators,
        "survival_rate": state.survival_rate,
        "mean_traits": dict(state.mean_traits),
        "frame": state.frame,
    }
    return payload


def _snapshot_payload(snapshot: Dict, last_state: Optional[BackendState]) -> Dict:
    state = snapshot.get("state", {})
    payload = {
        "generation": state.get("generation", getattr(last_state, "generation", 0) if last_state else 0),
        "population": state.get("population", getattr(last_state, "population", 0) if last_state else 0),
        "prey": state.get("prey", getattr(last_state, "prey", 0) if last_state else 0),
        "predators": state.get("predators", getattr(last_state, "predators", 0) if last_state else 0),
        "survival_rate": state.get(
            "survival_rate", getattr(last_state, "survival_rate", 0.0) if last_state else 0.0
        ),
        "mean_traits": snapshot.get("mean_traits", {}),
        "frame": snapshot.get("frame"),
    }
    return payload
