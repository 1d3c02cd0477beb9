from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    DomainModel,
    DomainsResponse,
    ExploreRequest,
    GapFinderRequest,
    GrantFiltersModel,
    HealthResponse,
    OptionsResponse,
)
from core.config import AMOUNT_DOMAIN, YEAR_DOMAIN
from core.data import grants_frame, load_explorer_data
from core.filters import GrantFilters, normalize_filters
from core.metrics_gaps import compute_gap_finder
from core.query import compute_explorer, evaluate_prepared


app = FastAPI(title="SCI Grant Explorer API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: GrantFiltersModel) -> GrantFilters:
    return normalize_filters(model.model_dump())


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


@app.get("/health", response_model=HealthResponse)
def health():
    try:
        data_ctx = load_explorer_data()
        return HealthResponse(
            status="ok",
            files=data_ctx["files"],
            grants=len(data_ctx["grants"]),
            option_columns=len(data_ctx["options"]),
        )
    except Exception as exc:
        logger.exception("health failed")
        return _error(exc)


@app.get("/meta/options", response_model=OptionsResponse)
def meta_options():
    try:
        data_ctx = load_explorer_data()
        return OptionsResponse(options=data_ctx["options"])
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.get("/meta/domains", response_model=DomainsResponse)
def meta_domains():
    return DomainsResponse(
        fiscal_year=DomainModel(min=YEAR_DOMAIN[0], max=YEAR_DOMAIN[1], step=YEAR_DOMAIN[2]),
        amount_usd=DomainModel(min=AMOUNT_DOMAIN[0], max=AMOUNT_DOMAIN[1], step=AMOUNT_DOMAIN[2]),
    )


@app.post("/explore")
def explore(request: ExploreRequest):
    try:
        data_ctx = load_explorer_data()
        f = _filters_from_model(request.filters)
        return _json(compute_explorer(data_ctx["prepared"], f, request.q, limit=request.limit))
    except Exception as exc:
        logger.exception("explore failed")
        return _error(exc)


@app.post("/gap-finder")
def gap_finder(request: GapFinderRequest):
    try:
        data_ctx = load_explorer_data()
        f = _filters_from_model(request.filters)
        payload = compute_gap_finder(
            data_ctx["prepared"],
            f,
            request.q,
            row_column=request.row_column,
            col_column=request.col_column,
            metric=request.metric,
        )
        return _json(payload)
    except Exception as exc:
        logger.exception("gap_finder failed")
        return _error(exc)


@app.post("/export")
def export_grants(request: ExploreRequest):
    try:
        data_ctx = load_explorer_data()
        f = _filters_from_model(request.filters)
        result = evaluate_prepared(data_ctx["prepared"], f, request.q)
        csv_bytes = grants_frame(result.grants).to_csv(index=False).encode("utf-8")
        return Response(
            content=csv_bytes,
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=grants.csv"},
        )
    except Exception as exc:
        logger.exception("export_grants failed")
        return _error(exc)
