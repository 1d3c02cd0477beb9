from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import pandas as pd

from core.charts import gap_heatmap, to_vega_spec
from core.config import GAP_COL_DEFAULT, GAP_ROW_DEFAULT
from core.filters import GrantFilters
from core.normalize import explode_cell, norm_for_set
from core.query import PreparedGrant, evaluate_prepared, format_usd, parse_amount


UNSPECIFIED = "Unspecified"
GAP_COLUMNS = ["row_value", "col_value", "grants", "funding"]


def _cell_values(value: object, column: str) -> list:
    values = [norm_for_set(v) for v in explode_cell(value, column)]
    values = [v for v in values if v]
    return values or [UNSPECIFIED]


def compute_gap_matrix(
    grants: Sequence[Dict[str, object]],
    row_column: str = GAP_ROW_DEFAULT,
    col_column: str = GAP_COL_DEFAULT,
) -> pd.DataFrame:
    """Grant count and funding per (row value, column value) pair.

    Multi-valued cells are exploded, so a grant tagged with two interventions
    counts once under each. Funding is the full award in every cell it lands in.
    """
    pairs = []
    for g in grants:
        amount = parse_amount(g.get("Amount")) or 0.0
        for row_value in _cell_values(g.get(row_column), row_column):
            for col_value in _cell_values(g.get(col_column), col_column):
                pairs.append((row_value, col_value, amount))

    if not pairs:
        return pd.DataFrame(columns=GAP_COLUMNS)

    df = pd.DataFrame(pairs, columns=["row_value", "col_value", "amount"])
    matrix = (
        df.groupby(["row_value", "col_value"])
        .agg(grants=("amount", "size"), funding=("amount", "sum"))
        .reset_index()
        .sort_values(["row_value", "col_value"])
        .reset_index(drop=True)
    )
    return matrix[GAP_COLUMNS]


def compute_gap_finder(
    prepared: Sequence[PreparedGrant],
    filters: Optional[GrantFilters] = None,
    query: str = "",
    *,
    row_column: str = GAP_ROW_DEFAULT,
    col_column: str = GAP_COL_DEFAULT,
    metric: str = "grants",
) -> Dict[str, Any]:
    if metric not in ("grants", "funding"):
        raise ValueError(f"Unknown gap metric: {metric}")
    result = evaluate_prepared(prepared, filters, query)
    matrix = compute_gap_matrix(result.grants, row_column, col_column)

    payload: Dict[str, Any] = {
        "row_column": row_column,
        "col_column": col_column,
        "metric": metric,
        "matches": result.matches,
        "total_funding_display": result.total_funding_display,
        "rows": sorted(matrix["row_value"].unique().tolist()),
        "columns": sorted(matrix["col_value"].unique().tolist()),
        "cells": matrix.to_dict(orient="records"),
        "charts": {},
    }
    if matrix.empty:
        return payload

    matrix = matrix.assign(funding_display=matrix["funding"].apply(format_usd))
    payload["charts"]["heatmap"] = to_vega_spec(gap_heatmap(matrix, row_column, col_column, metric))
    return payload
