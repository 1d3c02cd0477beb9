"""Test configuration for the grant explorer."""

from pathlib import Path
import sys

import pytest


# Ensure the local packages are importable when the repo isn't installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


RAW_ROWS = [
    {
        " Project   Title ": "Cancer Trial of Drug X",
        "Project Abstract": "A phase II study in adults.",
        "Agency": "NIH",
        "Agency IC": "NCI, NINDS",
        "Fiscal  Year": "2019",
        "Amount": "$100",
        "State": "CA",
        "Intervention": '["Drug","Device"]',
        "Objective - Specific": "Recovery",
        "PI": "José Núñez",
    },
    {
        " Project   Title ": "Spinal cord regeneration",
        "Project Abstract": "Axon growth after injury.",
        "Agency": "DoD",
        "Agency IC": "CDMRP",
        "Fiscal  Year": "2,021",
        "Amount": "$200.00",
        "State": "NY",
        "Intervention": "Cell Therapy; Rehabilitation",
        "Readiness": "Clinical (Phase I, II, FS)",
        "PI": "Ann Lee",
    },
    {
        " Project   Title ": "Cancer biomarkers",
        "Project Abstract": "",
        "Agency": "NIH",
        "Agency IC": "NCI",
        "Fiscal  Year": "2023",
        "Amount": "bad",
        "State": "CA",
        "Intervention": "",
        "PI": "",
    },
]


@pytest.fixture
def raw_rows():
    return [dict(r) for r in RAW_ROWS]


@pytest.fixture
def records(raw_rows):
    from core.normalize import normalize_rows

    return normalize_rows(raw_rows)


@pytest.fixture
def prepared(records):
    from core.query import prepare_grants

    return prepare_grants(records)


@pytest.fixture
def data_dir(tmp_path, records, monkeypatch):
    """Artifact directory with grants.json/options.json, wired in as DATA_DIR."""
    import core.data
    from core.normalize import build_options

    out = tmp_path / "data"
    core.data.write_artifacts(records, build_options(records), out)
    monkeypatch.setattr(core.data, "DATA_DIR", out)
    return out
