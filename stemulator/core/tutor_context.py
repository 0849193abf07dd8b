"""
Plain-text summaries of the running simulation for the AI tutor.

The tutor itself is a remote chat-completion service; this module only
produces the context blocks that get embedded in its prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..sim.population import LabSnapshot, SimulationState
from .labs import ScienceLab


@dataclass
class SimContext:
    lab_title: str
    discipline: str
    topic: str
    sub_topic: str
    environment: str
    predation: str
    food_availability: str
    mutation_rate: int
    generation: int
    population_size: int
    prey_count: int
    predator_count: int
    survival_rate: float
    avg_speed: float
    avg_camouflage: float
    avg_size: float


def _mean(values) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def build_sim_context(state: SimulationState, lab: Optional[ScienceLab] = None) -> SimContext:
    prey, predators = state.alive_counts()
    dist = state.trait_distribution
    return SimContext(
        lab_title=lab.title if lab else "Free exploration",
        discipline=lab.discipline if lab else "",
        topic=lab.topic if lab else "",
        sub_topic=lab.sub_topic if lab else "",
        environment=state.environment.value,
        predation=state.predation.value,
        food_availability=state.food_availability.value,
        mutation_rate=state.mutation_rate,
        generation=state.generation,
        population_size=prey + predators,
        prey_count=prey,
        predator_count=predators,
        survival_rate=state.survival_rate,
        avg_speed=_mean(dist.speed),
        avg_camouflage=_mean(dist.camouflage),
        avg_size=_mean(dist.size),
    )


def format_context_block(ctx: SimContext) -> str:
    lineage = " > ".join(part for part in (ctx.discipline, ctx.topic, ctx.sub_topic) if part)
    lab_line = f"{ctx.lab_title} ({lineage})" if lineage else ctx.lab_title
    lines = [
        "## Current Simulation State",
        f"- **Lab:** {lab_line}",
        f"- **Environment:** {ctx.environment}",
        f"- **Predation level:** {ctx.predation}",
        f"- **Food availability:** {ctx.food_availability}",
        f"- **Mutation rate:** {ctx.mutation_rate}/10",
        f"- **Generation:** {ctx.generation}",
        f"- **Total population:** {ctx.population_size} "
        f"({ctx.prey_count} prey, {ctx.predator_count} predators)",
        f"- **Survival rate:** {ctx.survival_rate * 100:.0f}%",
        f"- **Avg traits:** speed {ctx.avg_speed:.1f}, "
        f"camouflage {ctx.avg_camouflage:.1f}, size {ctx.avg_size:.1f}",
    ]
    return "\n".join(lines)


def format_lab_snapshot(snapshot: LabSnapshot) -> str:
    params = snapshot.parameters
    lines = [
        f"Environment: {snapshot.environment}",
        f"Predation: {params.get('predation')}, "
        f"food availability: {params.get('food_availability')}, "
        f"mutation rate: {params.get('mutation_rate')}",
        f"Current population: {snapshot.current_population}",
        "Recent actions:",
    ]
    lines.extend(f"- {action}" for action in snapshot.last_actions)
    return "\n".join(lines)
