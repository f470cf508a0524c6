"""Chart generation using Plotly."""

import math
from typing import Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from ..simulation.results import ModelResult

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "background": "rgba(8, 9, 10, 1)",
}

# One color per strategy, cycled
STRATEGY_COLORS = ["#00d4ff", "#ffab00", "#00e676", "#ff5252", "#b388ff"]


def apply_dark_layout(fig: go.Figure, title: str, height: int = 340, showlegend: bool = True) -> None:
    """Apply dark theme layout."""
    fig.update_layout(
        title={
            "text": title,
            "x": 0,
            "xanchor": "left",
            "font": {"size": 11, "color": THEME["text_secondary"]}
        },
        hovermode="x unified",
        template="plotly_dark",
        height=height,
        margin=dict(l=50, r=20, t=60, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.04, xanchor="left", x=0),
        plot_bgcolor=THEME["background"],
        paper_bgcolor=THEME["background"],
        font={"color": THEME["text"], "size": 11},
    )
    fig.update_xaxes(gridcolor=THEME["grid"])
    fig.update_yaxes(gridcolor=THEME["grid"])


def plot_state_counts(
    result: ModelResult,
    panel: str = "by_state",
    free_y: bool = True,
    columns: int = 2,
    title: Optional[str] = None,
) -> go.Figure:
    """
    Plot state counts by Markov cycle.

    Args:
        result: Completed model run
        panel: "by_state" for one subplot per state (strategies overlaid),
            "by_strategy" for one subplot per strategy (states overlaid)
        free_y: Independent y axis per subplot
        columns: Subplots per row
        title: Figure title

    Returns:
        Plotly figure
    """
    if panel not in ("by_state", "by_strategy"):
        raise ValueError(f"Unknown panel layout '{panel}'")

    strategies = result.strategy_names
    state_names = result[strategies[0]].state_names
    panels = state_names if panel == "by_state" else strategies
    rows = math.ceil(len(panels) / columns)

    fig = make_subplots(
        rows=rows,
        cols=columns,
        subplot_titles=panels,
        shared_yaxes=False if free_y else "all",
    )

    for i, panel_name in enumerate(panels):
        row, col = divmod(i, columns)
        if panel == "by_state":
            series = [
                (name, result[name].counts[panel_name], STRATEGY_COLORS[j % len(STRATEGY_COLORS)])
                for j, name in enumerate(strategies)
            ]
        else:
            counts = result[panel_name].counts
            series = [
                (state, counts[state], STRATEGY_COLORS[j % len(STRATEGY_COLORS)])
                for j, state in enumerate(state_names)
            ]
        for label, values, color in series:
            fig.add_trace(
                go.Scatter(
                    x=values.index,
                    y=values.values,
                    mode="lines",
                    name=label,
                    legendgroup=label,
                    showlegend=(i == 0),
                    line=dict(color=color, width=2),
                ),
                row=row + 1,
                col=col + 1,
            )

    fig.update_xaxes(title_text="Markov cycle")
    fig.update_yaxes(title_text="Count")
    apply_dark_layout(
        fig,
        title or "State counts by Markov cycle",
        height=260 * rows,
    )
    return fig
