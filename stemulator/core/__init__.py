# SPDX-License-Identifier: MIT
"""
Core services, domain models, and settings for the lab simulator.
"""

from .config import (
    DefaultsConfig,
    LimitsConfig,
    SimulationConfig,
    WorldConfig,
)  # noqa: F401
from .labs import LabPart, ScienceLab, bundled_labs, load_labs  # noqa: F401
from .settings import (
    Environment,
    FoodAvailability,
    InvalidParameter,
    Predation,
    SimulationSettings,
)  # noqa: F401
