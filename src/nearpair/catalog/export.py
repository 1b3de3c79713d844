"""
Result writers (CSV / JSON, chosen by file suffix).
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from nearpair.core.geo import DistanceUnit, convert_distance
from nearpair.domain.models import NearestPairResult

RESULT_COLUMNS = ["source_id", "label", "nearest_id", "nearest_lat", "nearest_lon", "distance_m"]


def results_as_rows(
    results: Iterable[NearestPairResult], *, unit: DistanceUnit | None = None
) -> list[dict[str, Any]]:
    """Flatten results into output rows; adds `distance_<unit>` when a non-meter unit is asked for."""
    rows: list[dict[str, Any]] = []
    for r in results:
        row: dict[str, Any] = {k: getattr(r, k) for k in RESULT_COLUMNS}
        if unit and unit != "m":
            row[f"distance_{unit}"] = convert_distance(r.distance_m, unit)
        rows.append(row)
    return rows


def write_rows(rows: Sequence[Mapping[str, Any]], path: str | Path, *, columns: list[str] | None = None) -> Path:
    """Write dict rows to `.csv` or `.json`; returns the written path."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() == ".json":
        p.write_text(json.dumps(list(rows), ensure_ascii=False, indent=2), encoding="utf-8")
        return p

    fieldnames = list(columns) if columns else _union_keys(rows)
    with p.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: "" if row.get(k) is None else row.get(k) for k in fieldnames})
    return p


def _union_keys(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    keys: list[str] = []
    for row in rows:
        for k in row:
            if k not in keys:
                keys.append(k)
    return keys


def write_results(
    results: Iterable[NearestPairResult], path: str | Path, *, unit: DistanceUnit | None = None
) -> Path:
    rows = results_as_rows(results, unit=unit)
    columns = list(RESULT_COLUMNS)
    if unit and unit != "m":
        columns.append(f"distance_{unit}")
    return write_rows(rows, path, columns=columns)
