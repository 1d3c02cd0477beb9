from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.config import AMOUNT_COLUMN, CATEGORICAL_FILTERS, FISCAL_YEAR_COLUMN, SEARCHABLE_COLUMNS
from core.filters import GrantFilters, RangeLike, filters_to_dict, range_bounds
from core.normalize import Record, fold_text, parse_float, to_text


_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")


def normalize_text(value: object) -> str:
    return fold_text(value)


@dataclass(frozen=True)
class CategoryValue:
    """A categorical field resolved once: its normalized keys and whether it was a list."""

    keys: FrozenSet[str]
    is_list: bool = False


def categorical_value(value: object) -> CategoryValue:
    if isinstance(value, (list, tuple, set, frozenset)):
        return CategoryValue(frozenset(normalize_text(v) for v in value), is_list=True)
    return CategoryValue(frozenset([normalize_text(value)]))


def match_multi(selected: Optional[Iterable[str]], field_value: object) -> bool:
    wanted = [normalize_text(s) for s in (selected or [])]
    if not wanted:
        return True
    resolved = field_value if isinstance(field_value, CategoryValue) else categorical_value(field_value)
    return any(w in resolved.keys for w in wanted)


def in_range(range_like: RangeLike, value: Optional[float]) -> bool:
    bounds = range_bounds(range_like)
    if bounds is None:
        return True
    lo, hi = bounds
    # Non-finite bound: treated as unset.
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return True
    if value is None or not math.isfinite(value):
        return False
    return lo <= value <= hi


def _number(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    return parse_float(to_text(value).strip().replace(",", ""))


def parse_year(value: object) -> Optional[float]:
    return _number(value)


def parse_amount(value: object) -> Optional[float]:
    """Amount as a float; strings are stripped down to digits, dot and minus."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else None
    cleaned = _NON_NUMERIC_RE.sub("", to_text(value))
    if not cleaned:
        return None
    try:
        n = float(cleaned)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    n = _number(value)
    if n is None:
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(n)).quantize(q, rounding=ROUND_HALF_UP))


def format_usd(value: float) -> str:
    rounded = round_half_up(value, 0) or 0.0
    if rounded < 0:
        return f"-${abs(rounded):,.0f}"
    return f"${rounded:,.0f}"


def build_search_haystack(record: Mapping[str, object]) -> str:
    parts = []
    for key in SEARCHABLE_COLUMNS:
        text = to_text(record.get(key))
        if text != "":
            parts.append(text)
    return normalize_text(" ".join(parts))


def tokenize_query(query: Optional[str]) -> List[str]:
    tokens = [normalize_text(t) for t in (query or "").split()]
    return [t for t in tokens if t]


@dataclass(frozen=True)
class PreparedGrant:
    record: Record
    categories: Dict[str, CategoryValue]
    haystack: str
    year: Optional[float]
    amount: Optional[float]


def prepare_grant(record: Record) -> PreparedGrant:
    return PreparedGrant(
        record=record,
        categories={col: categorical_value(record.get(col)) for col in CATEGORICAL_FILTERS.values()},
        haystack=build_search_haystack(record),
        year=parse_year(record.get(FISCAL_YEAR_COLUMN)),
        amount=parse_amount(record.get(AMOUNT_COLUMN)),
    )


def prepare_grants(records: Iterable[Record]) -> Tuple[PreparedGrant, ...]:
    return tuple(prepare_grant(r) for r in records)


def grant_matches(grant: PreparedGrant, filters: GrantFilters, tokens: Sequence[str]) -> bool:
    for column, selected in filters.selections():
        if not match_multi(selected, grant.categories[column]):
            return False

    if not in_range(filters.fiscal_year, grant.year):
        return False
    if not in_range(filters.amount_usd, grant.amount):
        return False

    # Keyword search last
    if tokens and not all(t in grant.haystack for t in tokens):
        return False
    return True


@dataclass(frozen=True)
class ExplorerResult:
    grants: List[Record]
    matches: int
    total_funding: float

    @property
    def total_funding_display(self) -> str:
        return format_usd(self.total_funding)


def total_funding(grants: Iterable[PreparedGrant]) -> float:
    return float(sum(g.amount or 0.0 for g in grants))


def evaluate_prepared(
    prepared: Sequence[PreparedGrant],
    filters: Optional[GrantFilters] = None,
    query: str = "",
) -> ExplorerResult:
    filters = filters or GrantFilters()
    tokens = tokenize_query(query)
    hits = [g for g in prepared if grant_matches(g, filters, tokens)]
    return ExplorerResult(
        grants=[g.record for g in hits],
        matches=len(hits),
        total_funding=total_funding(hits),
    )


def evaluate(
    records: Iterable[Record],
    filters: Optional[GrantFilters] = None,
    query: str = "",
) -> ExplorerResult:
    """Filtered view of ``records`` for the given filters and search string.

    Pure: inputs are not mutated and record order is preserved.
    """
    return evaluate_prepared(prepare_grants(records), filters, query)


def compute_explorer(
    prepared: Sequence[PreparedGrant],
    filters: GrantFilters,
    query: str = "",
    *,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    result = evaluate_prepared(prepared, filters, query)
    rows = result.grants if limit is None else result.grants[: max(0, limit)]
    return {
        "matches": result.matches,
        "total_records": len(prepared),
        "total_funding": result.total_funding,
        "total_funding_display": result.total_funding_display,
        "query": (query or "").strip(),
        "filters": filters_to_dict(filters),
        "grants": rows,
    }
