from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from core.config import GAP_COL_DEFAULT, GAP_ROW_DEFAULT


# {"min": .., "max": ..} or [min, max]; bounds are coerced by core.filters.
RangeInput = Optional[Union[Dict[str, Any], List[Any]]]


class GrantFiltersModel(BaseModel):
    agency: List[str] = Field(default_factory=list)
    agency_ic: List[str] = Field(default_factory=list)
    objective_general: List[str] = Field(default_factory=list)
    objective_specific: List[str] = Field(default_factory=list)
    intervention: List[str] = Field(default_factory=list)
    readiness: List[str] = Field(default_factory=list)
    state: List[str] = Field(default_factory=list)
    fiscal_year: RangeInput = None
    amount_usd: RangeInput = None


class ExploreRequest(BaseModel):
    filters: GrantFiltersModel = Field(default_factory=GrantFiltersModel)
    q: str = ""
    limit: Optional[int] = None


class GapFinderRequest(BaseModel):
    filters: GrantFiltersModel = Field(default_factory=GrantFiltersModel)
    q: str = ""
    row_column: str = GAP_ROW_DEFAULT
    col_column: str = GAP_COL_DEFAULT
    metric: Literal["grants", "funding"] = "grants"


class OptionsResponse(BaseModel):
    options: Dict[str, List[str]]


class DomainModel(BaseModel):
    min: float
    max: float
    step: float


class DomainsResponse(BaseModel):
    fiscal_year: DomainModel
    amount_usd: DomainModel


class HealthResponse(BaseModel):
    status: str
    files: List[str]
    grants: int
    option_columns: int
