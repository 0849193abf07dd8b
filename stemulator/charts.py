from __future__ import annotations

import tempfile
from typing import Any, Dict, List, Mapping, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd

HISTORY_COLUMNS = [
    "generation",
    "population",
    "prey",
    "predators",
    "survival_rate",
    "speed",
    "camouflage",
    "size",
]
TRAIT_COLORS = {"speed": "#d9822b", "camouflage": "#3a7d44", "size": "#5b6abf"}
MAX_HISTORY_ROWS = 5000


def history_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    traits = payload.get("mean_traits") or {}
    return {
        "generation": int(payload.get("generation", 0)),
        "population": int(payload.get("population", 0)),
        "prey": int(payload.get("prey", 0)),
        "predators": int(payload.get("predators", 0)),
        "survival_rate": float(payload.get("survival_rate", 0.0)),
        "speed": float(traits.get("speed", 0.0)),
        "camouflage": float(traits.get("camouflage", 0.0)),
        "size": float(traits.get("size", 0.0)),
    }


def append_history(history: Optional[List[Dict[str, Any]]], payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Record one row per generation; a smaller generation starts a new run."""
    row = history_row(payload)
    history = list(history or [])
    if history:
        last = history[-1]["generation"]
        if row["generation"] < last:
            history = []
        elif row["generation"] == last:
            history[-1] = row
            return history
    history.append(row)
    if len(history) > MAX_HISTORY_ROWS:
        history = history[-MAX_HISTORY_ROWS:]
    return history


def history_frame(history: Optional[List[Dict[str, Any]]]) -> pd.DataFrame:
    return pd.DataFrame(history or [], columns=HISTORY_COLUMNS)


def plot_population(df: pd.DataFrame):
    if df is None or df.empty:
        return None
    fig, ax = plt.subplots(figsize=(6.5, 3.6))
    ax.plot(df["generation"], df["population"], label="total", color="#444444")
    ax.plot(df["generation"], df["prey"], label="prey", color="#3a7d44")
    ax.plot(df["generation"], df["predators"], label="predators", color="#b23a48")
    ax.set_xlabel("generation")
    ax.set_ylabel("alive")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    plt.close(fig)
    return fig


def plot_traits(traits: Optional[Mapping[str, List[float]]], bins: int = 10):
    if not traits or not any(traits.get(name) for name in TRAIT_COLORS):
        return None
    fig, axes = plt.subplots(1, len(TRAIT_COLORS), figsize=(7.5, 2.8), sharey=True)
    for ax, (name, color) in zip(axes, TRAIT_COLORS.items()):
        ax.hist(traits.get(name, []), bins=bins, range=(0.0, 10.0), color=color)
        ax.set_title(name)
        ax.set_xlim(0.0, 10.0)
    axes[0].set_ylabel("prey")
    fig.tight_layout()
    plt.close(fig)
    return fig


def export_history_csv(history: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    if not history:
        return None
    df = history_frame(history)
    with tempfile.NamedTemporaryFile(mode="w", suffix=".csv", delete=False) as fp:
        df.to_csv(fp.name, index=False)
        return fp.name
