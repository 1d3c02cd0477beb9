from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def gap_heatmap(matrix: pd.DataFrame, row_title: str, col_title: str, metric: str = "grants") -> alt.Chart:
    """Heatmap of a gap matrix (row_value x col_value), shaded by ``metric``."""
    return (
        alt.Chart(matrix)
        .mark_rect()
        .encode(
            x=alt.X("col_value:N", title=col_title, axis=alt.Axis(labelAngle=-40)),
            y=alt.Y("row_value:N", title=row_title),
            color=alt.Color(
                f"{metric}:Q",
                title="Funding" if metric == "funding" else "Grants",
                scale=alt.Scale(scheme="blues"),
            ),
            tooltip=[
                alt.Tooltip("row_value:N", title=row_title),
                alt.Tooltip("col_value:N", title=col_title),
                alt.Tooltip("grants:Q", title="Grants", format=","),
                alt.Tooltip("funding_display:N", title="Funding"),
            ],
        )
    )
