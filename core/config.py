from __future__ import annotations

import os
from pathlib import Path


REPO_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.environ.get("GRANT_EXPLORER_DATA_DIR", str(REPO_DIR / "data")))

GRANTS_FILE = "grants.json"
OPTIONS_FILE = "options.json"
SOURCE_SUFFIXES = {".xlsx", ".xlsm", ".xls", ".csv"}

# Normalized headers that receive numeric coercion.
FISCAL_YEAR_COLUMN = "Fiscal Year"
AMOUNT_COLUMN = "Amount"

FILTERABLE_COLUMNS = (
    "Agency",
    "Agency IC",
    "Objective - General",
    "Objective - Specific",
    "Intervention",
    "Readiness",
    "State",
)

SEARCHABLE_COLUMNS = (
    "Project Title",
    "Project Abstract",
    "Agency",
    "Agency IC",
    "Project Number",
    "Objective - General",
    "Objective - Specific",
    "Intervention",
    "Readiness",
    "PI",
    "Organization",
    "State",
    "Mechanism",
)

# Filter field -> record column.
CATEGORICAL_FILTERS = {
    "agency": "Agency",
    "agency_ic": "Agency IC",
    "objective_general": "Objective - General",
    "objective_specific": "Objective - Specific",
    "intervention": "Intervention",
    "readiness": "Readiness",
    "state": "State",
}

RANGE_FILTERS = {
    "fiscal_year": FISCAL_YEAR_COLUMN,
    "amount_usd": AMOUNT_COLUMN,
}

# Slider domains: (min, max, step)
YEAR_DOMAIN = (2005, 2026, 1)
AMOUNT_DOMAIN = (0, 6_000_000, 10_000)

GAP_ROW_DEFAULT = "Objective - Specific"
GAP_COL_DEFAULT = "Intervention"
