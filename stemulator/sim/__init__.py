# SPDX-License-Identifier: MIT
"""
Simulation modules available to the lab backend.
"""

from .lab_rules import LAB_RULES, LabRule, SetupPatch, scan_setup_lines  # noqa: F401
from .population import (  # noqa: F401
    LabSnapshot,
    NumpyRandomSource,
    Organism,
    PopulationSimulation,
    RandomSource,
    Role,
    SimulationState,
    TraitDistribution,
)

__all__ = [
    "PopulationSimulation",
    "SimulationState",
    "Organism",
    "Role",
    "TraitDistribution",
    "LabSnapshot",
    "RandomSource",
    "NumpyRandomSource",
    "LabRule",
    "LAB_RULES",
    "SetupPatch",
    "scan_setup_lines",
]
