import matplotlib.pyplot as plt
import pandas as pd

from stemulator.charts import (
    HISTORY_COLUMNS,
    append_history,
    export_history_csv,
    history_frame,
    plot_population,
    plot_traits,
)


def payload(generation, population=10, prey=8, predators=2):
    return {
        "generation": generation,
        "population": population,
        "prey": prey,
        "predators": predators,
        "survival_rate": prey / population,
        "mean_traits": {"speed": 5.0, "camouflage": 4.0, "size": 3.0},
    }


class TestHistory:
    def test_one_row_per_generation(self):
        history = append_history([], payload(1))
        history = append_history(history, payload(1, population=12, prey=10))
        history = append_history(history, payload(2))
        assert [row["generation"] for row in history] == [1, 2]
        assert history[0]["population"] == 12

    def test_restart_clears(self):
        history = append_history(None, payload(3))
        history = append_history(history, payload(0))
        assert [row["generation"] for row in history] == [0]

    def test_frame_columns(self):
        df = history_frame(append_history([], payload(1)))
        assert list(df.columns) == HISTORY_COLUMNS
        assert df.loc[0, "speed"] == 5.0
        assert history_frame(None).empty


class TestPlots:
    def test_population_plot(self):
        history = [row for g in range(1, 4) for row in append_history([], payload(g))]
        fig = plot_population(history_frame(history))
        assert len(fig.axes[0].get_lines()) == 3

    def test_empty_population_plot(self):
        assert plot_population(pd.DataFrame()) is None

    def test_trait_plot(self):
        fig = plot_traits({"speed": [1.0, 2.0], "camouflage": [3.0], "size": [9.5]})
        assert [ax.get_title() for ax in fig.axes] == ["speed", "camouflage", "size"]
        assert plot_traits({"speed": [], "camouflage": [], "size": []}) is None


def test_export_csv():
    assert export_history_csv([]) is None
    path = export_history_csv([append_history([], payload(1))[0]])
    df = pd.read_csv(path)
    assert list(df.columns) == HISTORY_COLUMNS
    assert len(df) == 1


def test_plots_do_not_accumulate_open_figures():
    history = []
    for g in range(1, 4):
        history = append_history(history, payload(g))
    before = len(plt.get_fignums())
    for _ in range(25):
        plot_population(history_frame(history))
        plot_traits({"speed": [1.0], "camouflage": [2.0], "size": [3.0]})
    assert len(plt.get_fignums()) == before
