from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class WorldConfig:
    width: float = 800.0
    height: float = 600.0
    initial_population: int = 50
    prey_fraction: float = 0.85
    seed: Optional[int] = None


@dataclass
class LimitsConfig:
    max_prey: int = 120
    max_predators: int = 25


@dataclass
class DefaultsConfig:
    environment: str = "forest"
    predation: str = "medium"
    food_availability: str = "medium"
    mutation_rate: int = 5  # 0..10


@dataclass
class SimulationConfig:
    world: WorldConfig = field(default_factory=WorldConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def update_from_mapping(self, data: Dict[str, Any]) -> None:
        """Merge settings from a nested mapping into the config."""
        for section_name, section_values in data.items():
            section = getattr(self, section_name, None)
            if section is None:
                continue
            if not isinstance(section_values, dict):
                continue
            for key, value in section_values.items():
                if hasattr(section, key):
                    setattr(section, key, value)


def load_config(path: Path) -> SimulationConfig:
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to load config from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Config JSON must be an object at the top level.")
    config = SimulationConfig()
    config.update_from_mapping(data)
    return config


def save_config(config: SimulationConfig, path: Path) -> Path:
    path = Path(path)
    path.write_text(json.dumps(config.to_dict(), indent=2))
    return path


DEFAULT_CONFIG = SimulationConfig()
