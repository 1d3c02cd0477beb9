from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

from core.config import CATEGORICAL_FILTERS, RANGE_FILTERS


@dataclass(frozen=True)
class Range:
    min: float
    max: float

    def as_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


RangeLike = Union[Range, Mapping[str, object], Sequence[object], None]


@dataclass(frozen=True)
class GrantFilters:
    agency: Tuple[str, ...] = ()
    agency_ic: Tuple[str, ...] = ()
    objective_general: Tuple[str, ...] = ()
    objective_specific: Tuple[str, ...] = ()
    intervention: Tuple[str, ...] = ()
    readiness: Tuple[str, ...] = ()
    state: Tuple[str, ...] = ()
    # None means "no constraint"
    fiscal_year: Optional[Range] = None
    amount_usd: Optional[Range] = None

    def selections(self) -> Iterable[Tuple[str, Tuple[str, ...]]]:
        """(record column, selected values) for every categorical filter."""
        for name, column in CATEGORICAL_FILTERS.items():
            yield column, getattr(self, name)

    def ranges(self) -> Iterable[Tuple[str, Optional[Range]]]:
        for name, column in RANGE_FILTERS.items():
            yield column, getattr(self, name)

    @property
    def is_default(self) -> bool:
        return self == GrantFilters()


@dataclass(frozen=True)
class ExplorerState:
    filters: GrantFilters = field(default_factory=GrantFilters)
    query: str = ""


def _as_float(value: object) -> float:
    if isinstance(value, bool) or value is None:
        return math.nan
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def range_bounds(range_like: RangeLike) -> Optional[Tuple[float, float]]:
    """Resolve a Range, ``{"min", "max"}`` mapping or ``[min, max]`` pair.

    Returns None when no range is set. Malformed bounds come back as NaN.
    """
    if range_like is None:
        return None
    if isinstance(range_like, Range):
        return _as_float(range_like.min), _as_float(range_like.max)
    if isinstance(range_like, Mapping):
        return _as_float(range_like.get("min")), _as_float(range_like.get("max"))
    if isinstance(range_like, (str, bytes)):
        return math.nan, math.nan
    try:
        items = list(range_like)
    except TypeError:
        return math.nan, math.nan
    lo = items[0] if len(items) > 0 else None
    hi = items[1] if len(items) > 1 else None
    return _as_float(lo), _as_float(hi)


def coerce_range(range_like: RangeLike) -> Optional[Range]:
    bounds = range_bounds(range_like)
    if bounds is None:
        return None
    return Range(*bounds)


def _as_selection(values: object) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str) or not isinstance(values, Iterable):
        values = [values]
    out = []
    for v in values:
        if v is None:
            continue
        s = str(v)
        if s not in out:
            out.append(s)
    return tuple(out)


def normalize_filters(raw: Optional[Mapping[str, object]]) -> GrantFilters:
    raw = raw or {}
    kwargs = {name: _as_selection(raw.get(name)) for name in CATEGORICAL_FILTERS}
    for name in RANGE_FILTERS:
        kwargs[name] = coerce_range(raw.get(name))  # type: ignore[assignment]
    return GrantFilters(**kwargs)  # type: ignore[arg-type]


def filters_to_dict(filters: GrantFilters) -> dict:
    out: dict = {name: list(getattr(filters, name)) for name in CATEGORICAL_FILTERS}
    for name in RANGE_FILTERS:
        rng = getattr(filters, name)
        out[name] = rng.as_dict() if rng is not None else None
    return out


# ---------------------------------------------------------------------------
# Transitions (each returns a new value)
# ---------------------------------------------------------------------------

def _check_categorical(name: str) -> None:
    if name not in CATEGORICAL_FILTERS:
        raise KeyError(f"Unknown categorical filter: {name}")


def set_selection(filters: GrantFilters, name: str, values: Iterable[str]) -> GrantFilters:
    _check_categorical(name)
    return replace(filters, **{name: _as_selection(list(values))})


def select_value(filters: GrantFilters, name: str, value: str) -> GrantFilters:
    _check_categorical(name)
    current = getattr(filters, name)
    if value in current:
        return filters
    return replace(filters, **{name: current + (value,)})


def deselect_value(filters: GrantFilters, name: str, value: str) -> GrantFilters:
    _check_categorical(name)
    current = getattr(filters, name)
    return replace(filters, **{name: tuple(v for v in current if v != value)})


def set_range(filters: GrantFilters, name: str, range_like: RangeLike) -> GrantFilters:
    if name not in RANGE_FILTERS:
        raise KeyError(f"Unknown range filter: {name}")
    return replace(filters, **{name: coerce_range(range_like)})


def clear_range(filters: GrantFilters, name: str) -> GrantFilters:
    return set_range(filters, name, None)


def reset_filters() -> GrantFilters:
    return GrantFilters()


def reset_state() -> ExplorerState:
    return ExplorerState()
