"""Cell normalization: headers, numeric coercion, multi-value cell explosion.

Spreadsheet exports mix single values, delimiter-separated lists, JSON-style
array strings and currency strings in the same columns. Everything here is
total: a bad cell degrades locally and never aborts the batch.
"""

from __future__ import annotations

import json
import math
import re
import unicodedata
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.config import AMOUNT_COLUMN, FILTERABLE_COLUMNS, FISCAL_YEAR_COLUMN


Record = Dict[str, object]

_WS_RE = re.compile(r"\s+")
_CURRENCY_RE = re.compile(r"[$€£,]")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$", re.ASCII)
_NUMERIC_LIKE_RE = re.compile(
    r"^[$€£]?\s*\d{1,3}(?:,\d{3})*(?:\.\d+)?\s*$|^\s*\d+(?:\.\d+)?\s*$",
    re.ASCII,
)

DEFAULT_DELIMITERS: FrozenSet[str] = frozenset({";", "|", "\n"})
LIST_DELIMITERS: FrozenSet[str] = DEFAULT_DELIMITERS | {","}

# Lower-cased column-name fragment -> delimiter set. Commas stay out of the
# default set so values like "Clinical (Phase I, II, FS)" survive intact.
DELIMITER_POLICY: Dict[str, FrozenSet[str]] = {
    "agency ic": LIST_DELIMITERS,
    "objective": LIST_DELIMITERS,
    "intervention": LIST_DELIMITERS,
}


def to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)


def collapse_ws(s: str) -> str:
    return _WS_RE.sub(" ", s).strip()


def fold_text(value: object) -> str:
    """Case-fold, strip diacritics (NFKD minus combining marks), collapse whitespace."""
    s = unicodedata.normalize("NFKD", to_text(value).casefold())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return collapse_ws(s)


def collation_key(s: str) -> Tuple[str, str]:
    return fold_text(s), s


def normalize_header(h: object) -> str:
    return collapse_ws(to_text(h))


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------

def parse_float(s: str) -> Optional[float]:
    """Plain decimal literal to float; digit separators, ``inf`` and ``nan`` are rejected."""
    if not _DECIMAL_RE.match(s):
        return None
    n = float(s)
    return n if math.isfinite(n) else None


def parse_int_safe(value: object) -> Optional[int]:
    """Fiscal-year style parse: strip thousands separators, truncate toward zero."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    n = parse_float(to_text(value).strip().replace(",", ""))
    return None if n is None else math.trunc(n)


def parse_money_safe(value: object) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else None
    return parse_float(_CURRENCY_RE.sub("", to_text(value)).strip())


def normalize_record(row: Mapping[str, object]) -> Record:
    out: Record = {}
    for key, value in row.items():
        out[normalize_header(key)] = value

    if FISCAL_YEAR_COLUMN in out:
        year = parse_int_safe(out[FISCAL_YEAR_COLUMN])
        if year is not None:
            out[FISCAL_YEAR_COLUMN] = year
    if AMOUNT_COLUMN in out:
        amount = parse_money_safe(out[AMOUNT_COLUMN])
        if amount is not None:
            out[AMOUNT_COLUMN] = amount
    return out


def normalize_rows(rows: Iterable[Mapping[str, object]]) -> List[Record]:
    return [normalize_record(r) for r in rows]


def discover_columns(rows: Iterable[Mapping[str, object]]) -> List[str]:
    seen = set()
    for r in rows:
        seen.update(r.keys())
    return sorted(seen)


# ---------------------------------------------------------------------------
# Cell explosion
# ---------------------------------------------------------------------------

def delimiters_for(column: str) -> FrozenSet[str]:
    col = column.lower()
    for fragment, delims in DELIMITER_POLICY.items():
        if fragment in col:
            return delims
    return DEFAULT_DELIMITERS


def split_outside_parens(s: str, delimiters: Iterable[str]) -> List[str]:
    delims = set(delimiters)
    out: List[str] = []
    cur: List[str] = []
    depth = 0

    for ch in s:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)

        if depth == 0 and ch in delims:
            part = "".join(cur).strip()
            if part:
                out.append(part)
            cur = []
        else:
            cur.append(ch)

    part = "".join(cur).strip()
    if part:
        out.append(part)
    return out


def _json_array(s: str) -> Optional[List[str]]:
    try:
        parsed = json.loads(s)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, list):
        return None
    items = []
    for item in parsed:
        text = json.dumps(item) if isinstance(item, dict) else to_text(item)
        text = text.strip()
        if text:
            items.append(text)
    return items


def explode_cell(value: object, column: str) -> List[str]:
    """Split a cell into atomic values.

    Handles JSON array strings (``["A","B"]``), numeric/currency literals kept
    whole (``$123,456``), and delimiter-separated lists split outside
    parentheses.
    """
    s = to_text(value).strip()
    if not s:
        return []

    if s.startswith("[") and s.endswith("]"):
        items = _json_array(s)
        if items is not None:
            return items

    if _NUMERIC_LIKE_RE.match(s):
        return [s]

    return split_outside_parens(s, delimiters_for(column))


def norm_for_set(s: str) -> str:
    return collapse_ws(s)


def extract_unique_options(rows: Iterable[Mapping[str, object]], column: str) -> List[str]:
    values = set()
    for r in rows:
        for part in explode_cell(r.get(column), column):
            n = norm_for_set(part)
            if n:
                values.add(n)
    return sorted(values, key=collation_key)


def build_options(
    rows: Sequence[Mapping[str, object]],
    filterable: Iterable[str] = FILTERABLE_COLUMNS,
) -> Dict[str, List[str]]:
    allowed = set(filterable)
    return {
        col: extract_unique_options(rows, col)
        for col in discover_columns(rows)
        if col in allowed
    }


def build_artifacts(raw_rows: Iterable[Mapping[str, object]]) -> Tuple[List[Record], Dict[str, List[str]]]:
    records = normalize_rows(raw_rows)
    return records, build_options(records)
