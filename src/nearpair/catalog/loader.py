"""
Point table loader.

Input tables are CSV (with a header row) or JSON (an array of objects, or an
`{id: {...}}` object). Column names are configurable because newsroom
spreadsheets rarely agree on them; rows are validated into frozen `GeoPoint`s so
the finder can assume clean coordinates.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable, Mapping

from nearpair.domain.models import GeoPoint, parse_point
from nearpair.errors import DuplicatePointId, InvalidInputFile


def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read raw rows from a `.csv` or `.json` file.

    Raises:
        InvalidInputFile: When the file is missing/unreadable, has an unsupported
            suffix, or is not valid JSON of a supported shape.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".json":
        reader = _rows_from_json
    elif suffix in (".csv", ".txt", ""):
        reader = _rows_from_csv
    else:
        raise InvalidInputFile(f"Unsupported input format '{suffix}' for {p}; expected .csv or .json")

    try:
        return reader(p)
    except OSError as e:
        raise InvalidInputFile(f"Cannot read {p}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise InvalidInputFile(f"Cannot decode {p} as UTF-8: {e.reason}") from e
    except json.JSONDecodeError as e:
        raise InvalidInputFile(f"Invalid JSON in {p}: {e.msg} (line {e.lineno})") from e


def _rows_from_csv(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        return [dict(row) for row in csv.DictReader(f)]


def _rows_from_json(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, list):
        return [dict(r) for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict):
        # Allow {id: {...}} shape.
        return [{"id": k, **v} for k, v in payload.items() if isinstance(v, dict)]
    raise InvalidInputFile(f"Unsupported JSON shape in {path}: expected array or object.")


def _cell(row: Mapping[str, Any], field: str | None) -> Any:
    if not field:
        return None
    value = row.get(field)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def rows_to_points(
    rows: Iterable[Mapping[str, Any]],
    *,
    id_field: str | None = "id",
    label_field: str | None = None,
    lat_field: str = "latitude",
    lon_field: str = "longitude",
) -> list[GeoPoint]:
    """Validate rows into `GeoPoint`s.

    Rows without a value in `id_field` are identified by their 0-based row index.

    Raises:
        InvalidCoordinate: For the first row with missing/bad coordinates.
        DuplicatePointId: When two rows resolve to the same id.
    """
    points: list[GeoPoint] = []
    seen: dict[str, int] = {}
    for i, row in enumerate(rows):
        point_id = _cell(row, id_field)
        label = _cell(row, label_field)
        point = parse_point(
            {
                "id": i if point_id is None else point_id,
                "lat": _cell(row, lat_field),
                "lon": _cell(row, lon_field),
                "label": None if label is None else str(label),
            },
            where=f"row {i}",
        )
        if point.id in seen:
            raise DuplicatePointId(f"row {i}: id {point.id!r} already used by row {seen[point.id]}")
        seen[point.id] = i
        points.append(point)
    return points


def load_points(
    path: str | Path,
    *,
    id_field: str | None = "id",
    label_field: str | None = None,
    lat_field: str = "latitude",
    lon_field: str = "longitude",
) -> list[GeoPoint]:
    """Load and validate a point table from disk."""
    return rows_to_points(
        read_rows(path),
        id_field=id_field,
        label_field=label_field,
        lat_field=lat_field,
        lon_field=lon_field,
    )
