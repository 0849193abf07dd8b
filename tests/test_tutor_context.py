import random

import pytest

from stemulator.core.config import SimulationConfig
from stemulator.core.tutor_context import build_sim_context, format_context_block, format_lab_snapshot
from stemulator.sim.population import PopulationSimulation


@pytest.fixture
def sim() -> PopulationSimulation:
    sim = PopulationSimulation(SimulationConfig(), rng=random.Random(8))
    sim.update_settings(environment="desert")
    for _ in range(3):
        sim.run_generation()
    return sim


def test_context_from_state(sim, natural_selection_lab):
    state = sim.get_snapshot()
    ctx = build_sim_context(state, natural_selection_lab)
    prey, predators = state.alive_counts()
    assert ctx.lab_title == "Natural Selection Simulator"
    assert ctx.sub_topic == "Natural Selection"
    assert ctx.environment == "desert"
    assert ctx.generation == 3
    assert (ctx.prey_count, ctx.predator_count) == (prey, predators)
    assert ctx.population_size == prey + predators
    expected = sum(state.trait_distribution.speed) / prey if prey else 0.0
    assert ctx.avg_speed == pytest.approx(expected)


def test_context_without_lab():
    sim = PopulationSimulation(SimulationConfig(), rng=random.Random(8))
    ctx = build_sim_context(sim.get_snapshot())
    assert ctx.lab_title == "Free exploration"
    # no generation has run, so no trait statistics yet
    assert ctx.avg_size == 0.0
    assert "- **Lab:** Free exploration\n" in format_context_block(ctx)


def test_context_block(sim, natural_selection_lab):
    ctx = build_sim_context(sim.get_snapshot(), natural_selection_lab)
    text = format_context_block(ctx)
    assert text.startswith("## Current Simulation State")
    assert "Life Science > Biological Evolution: Unity and Diversity > Natural Selection" in text
    assert "- **Mutation rate:** 5/10" in text
    assert f"{ctx.prey_count} prey, {ctx.predator_count} predators" in text


def test_lab_snapshot_text(sim):
    text = format_lab_snapshot(sim.lab_snapshot())
    assert text.splitlines()[0] == "Environment: desert"
    assert "mutation rate: 5" in text
    assert text.splitlines()[-1].startswith("- Gen 3:")
