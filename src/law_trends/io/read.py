from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from law_trends.taxonomy import Snapshot, parse_snapshot


def load_raw_dataset(path: Path) -> dict[str, Any]:
    """Read the nested dataset JSON; the root must be an object keyed by domain."""
    # utf-8-sig strips BOM-prefixed exports.
    with Path(path).open("r", encoding="utf-8-sig") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Dataset root must be a JSON object: {path}")
    return data


def load_snapshot(path: Path, sample_limit: int = 2) -> Snapshot:
    return parse_snapshot(load_raw_dataset(path), sample_limit=sample_limit)
