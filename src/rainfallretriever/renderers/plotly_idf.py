"""Plotly frequency-curve renderer.

One line per return period across the eight durations. Intensity spans
orders of magnitude between 5-min and 24-hr, so its y axis is log-scaled.
"""

import plotly.graph_objects as go

from rainfallretriever.models import RETURN_PERIODS, RainfallDataset, TableKind

_BG = "#ffffff"
_COLORS = ("#bae6fd", "#7dd3fc", "#38bdf8", "#0ea5e9", "#0284c7", "#075985")


def render_idf_chart(dataset: RainfallDataset, kind: TableKind) -> go.Figure:
    """Render one frequency table as a Plotly line chart.

    Args:
        dataset: Successful retrieval result.
        kind: Which table to plot.

    Returns:
        Plotly Figure object.
    """
    table = dataset.table(kind)
    durations = [record.duration for record in table]

    traces = [
        go.Scatter(
            x=durations,
            y=[record[period] for record in table],
            mode="lines+markers",
            line=dict(color=color, width=2),
            marker=dict(size=6),
            name=period,
            hovertemplate="%{x}: %{y:.2f}<extra>" + period + "</extra>",
        )
        for period, color in zip(RETURN_PERIODS, _COLORS)
    ]

    fig = go.Figure(data=traces)
    fig.update_layout(
        paper_bgcolor=_BG,
        plot_bgcolor=_BG,
        margin=dict(l=40, r=10, t=30, b=40),
        height=360,
        legend=dict(title="Return period", orientation="h", y=-0.2),
        xaxis=dict(title="Duration", type="category"),
        yaxis=dict(
            title=f"{kind.value.capitalize()} ({kind.unit})",
            type="log" if kind is TableKind.INTENSITY else "linear",
            gridcolor="#e2e8f0",
        ),
    )
    fig._config = {"displayModeBar": False}  # type: ignore[attr-defined]
    return fig
