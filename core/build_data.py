"""Build grants.json and options.json from a spreadsheet export.

USAGE:
  python -m core.build_data grants.xlsx
  python -m core.build_data grants.csv --out ./data
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.config import DATA_DIR
from core.data import build_data


logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="build-data", description=__doc__.splitlines()[0])
    parser.add_argument("source", type=Path, help="path to the .xlsx or .csv export")
    parser.add_argument("--out", type=Path, default=DATA_DIR, help=f"output directory (default: {DATA_DIR})")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        build_data(args.source, args.out)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("build-data failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
