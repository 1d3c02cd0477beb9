from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from core.config import DATA_DIR, GRANTS_FILE, OPTIONS_FILE, SOURCE_SUFFIXES
from core.normalize import Record, build_artifacts
from core.query import prepare_grants


logger = logging.getLogger(__name__)


def artifact_paths(data_dir: Path = DATA_DIR) -> Tuple[Path, Path]:
    return data_dir / GRANTS_FILE, data_dir / OPTIONS_FILE


def file_signature(files: Sequence[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def read_sheet(path: Path) -> List[Dict[str, object]]:
    """Read the first sheet of an XLSX/CSV file as flat text rows.

    Blank cells come back as "" rather than NaN so every row carries every
    header, like a spreadsheet export with a default value.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    suffix = path.suffix.lower()
    if suffix not in SOURCE_SUFFIXES:
        raise ValueError(f"Unsupported source file type: {suffix or path.name}")

    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False)
    df = df.fillna("")
    return df.to_dict(orient="records")


def write_artifacts(
    records: Sequence[Record],
    options: Dict[str, List[str]],
    out_dir: Path = DATA_DIR,
) -> Tuple[Path, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    grants_path, options_path = artifact_paths(out_dir)
    grants_path.write_text(json.dumps(list(records), indent=2, ensure_ascii=False), encoding="utf-8")
    options_path.write_text(json.dumps(options, indent=2, ensure_ascii=False), encoding="utf-8")
    return grants_path, options_path


def build_data(source: Path, out_dir: Path = DATA_DIR) -> Dict[str, object]:
    raw_rows = read_sheet(source)
    records, options = build_artifacts(raw_rows)
    grants_path, options_path = write_artifacts(records, options, out_dir)
    logger.info("Wrote %d rows -> %s", len(records), grants_path)
    logger.info("Wrote options for %d columns -> %s", len(options), options_path)
    return {
        "rows": len(records),
        "option_columns": sorted(options),
        "grants_path": grants_path,
        "options_path": options_path,
    }


def _read_json(path: Path) -> object:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


@lru_cache(maxsize=4)
def _load_explorer_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    grants_path, options_path = (Path(name) for name, _ in files_sig)
    grants = _read_json(grants_path)
    options = _read_json(options_path)
    if not isinstance(grants, list):
        raise ValueError(f"{grants_path.name} must hold a JSON array of records")
    if not isinstance(options, dict):
        raise ValueError(f"{options_path.name} must hold a JSON object of option lists")

    return {
        "files": [Path(name).name for name, _ in files_sig],
        "grants": grants,
        "options": options,
        "prepared": prepare_grants(grants),
    }


def load_explorer_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    """Load both artifacts; raises FileNotFoundError when either is missing."""
    paths = artifact_paths(data_dir or DATA_DIR)
    missing = [p.name for p in paths if not p.exists()]
    if missing:
        raise FileNotFoundError(f"Missing data artifacts in {paths[0].parent}: {', '.join(missing)}")
    return _load_explorer_data_cached(file_signature(paths))


def grants_frame(grants: Sequence[Record]) -> pd.DataFrame:
    """Records as a DataFrame with columns in first-seen order."""
    columns: List[str] = []
    for r in grants:
        for key in r:
            if key not in columns:
                columns.append(key)
    return pd.DataFrame(list(grants), columns=columns)
