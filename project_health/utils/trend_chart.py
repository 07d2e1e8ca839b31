from __future__ import annotations

import json
from typing import Any

import plotly.graph_objects as go

from ..domain.models import TrendSeries


def make_trend_figure(trend: TrendSeries, title: str | None = None) -> go.Figure:
    """
    Line chart of a trend: thick average line, thinner per-project lines.

    ``None`` points stay gaps (``connectgaps=False``) so a missing week is
    not drawn as a flat score.
    """
    fig = go.Figure()
    for series in trend.series:
        y = [float(p) if p is not None else None for p in series.points]
        if series.is_aggregate:
            line = dict(color=series.color_hint, width=3, shape="spline")
            marker = dict(size=0)
            mode = "lines"
        else:
            line = dict(color=series.color_hint, width=2, shape="spline")
            marker = dict(size=7, color="#ffffff", line=dict(width=2, color=series.color_hint))
            mode = "lines+markers"
        fig.add_trace(
            go.Scatter(
                x=trend.periods,
                y=y,
                name=series.label,
                mode=mode,
                line=line,
                marker=marker,
                connectgaps=False,
                hovertemplate="%{x}: %{y:.2f}<extra>" + series.label + "</extra>",
            )
        )

    fig.update_layout(
        title=title,
        hovermode="x unified",
        margin=dict(l=40, r=20, t=40 if title else 10, b=40),
        legend=dict(orientation="h", yanchor="top", y=-0.15, x=0),
        plot_bgcolor="#ffffff",
    )
    fig.update_yaxes(range=[1, 5], gridcolor="#f1f5f9")
    fig.update_xaxes(type="category", showgrid=False)
    return fig


def trend_figure_dict(trend: TrendSeries, title: str | None = None) -> dict[str, Any]:
    """JSON-serialisable figure for the web layer."""
    return json.loads(make_trend_figure(trend, title).to_json())
