"""
Nearest-neighbor distance finder.

For every point of a set, find the closest *other* point of the same set and the
great-circle distance between them.

Rules:
- Self is excluded by position, so a point is never its own neighbor.
- Ties go to the candidate met first in input order (strict `<` replacement).
- Distances are meters; unit conversion is left to `nearpair.core.geo`.
- The whole call fails before any distance is computed when the input is invalid.

The scan is a brute-force O(n^2) fold; inputs are a few thousand points at most.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Sequence

from nearpair.core.geo import haversine_m
from nearpair.domain.models import GeoPoint, NearestPairResult, parse_point
from nearpair.errors import Cancelled, DuplicatePointId, EmptyInput, InvalidArgument

logger = logging.getLogger(__name__)


def validate_points(points: Iterable[Any]) -> list[GeoPoint]:
    """Validate raw input into a list of `GeoPoint`s with unique ids.

    Raises:
        InvalidCoordinate: On the first point with bad coordinates.
        DuplicatePointId: When two points share an id.
        EmptyInput: When fewer than two points remain.
    """
    out: list[GeoPoint] = []
    seen: dict[str, int] = {}
    for i, raw in enumerate(points):
        p = parse_point(raw, where=f"point #{i}")
        if p.id in seen:
            raise DuplicatePointId(f"point #{i}: id {p.id!r} already used by point #{seen[p.id]}")
        seen[p.id] = i
        out.append(p)

    if len(out) < 2:
        raise EmptyInput(f"Need at least 2 points to find nearest neighbors, got {len(out)}.")
    return out


def nearest_to(index: int, points: Sequence[GeoPoint]) -> NearestPairResult:
    """Fold over every other point and return the nearest one for `points[index]`."""
    source = points[index]
    best_j = -1
    best_d = 0.0
    for j, candidate in enumerate(points):
        if j == index:
            continue
        d = haversine_m(source.lat, source.lon, candidate.lat, candidate.lon)
        if best_j < 0 or d < best_d:
            best_j = j
            best_d = d

    nearest = points[best_j]
    return NearestPairResult(
        source_id=source.id,
        nearest_id=nearest.id,
        distance_m=best_d,
        nearest_lat=nearest.lat,
        nearest_lon=nearest.lon,
        label=source.label,
    )


def _scan(
    indexes: range,
    points: Sequence[GeoPoint],
    cancel_event: threading.Event | None,
) -> list[NearestPairResult]:
    out: list[NearestPairResult] = []
    for i in indexes:
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(f"Nearest-neighbor scan cancelled at point #{i}.")
        out.append(nearest_to(i, points))
    return out


def _chunks(n: int, parts: int) -> list[range]:
    """Split `range(n)` into at most `parts` contiguous, near-equal ranges."""
    parts = max(1, min(int(parts), n))
    size, extra = divmod(n, parts)
    out: list[range] = []
    start = 0
    for k in range(parts):
        stop = start + size + (1 if k < extra else 0)
        out.append(range(start, stop))
        start = stop
    return out


def find_nearest_pairs(
    points: Iterable[Any],
    *,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> list[NearestPairResult]:
    """Return one `NearestPairResult` per input point, in input order.

    `points` may hold `GeoPoint`s, `(id, lat, lon[, label])` tuples or mappings.
    With `workers > 1` the outer loop is partitioned across a thread pool; the
    output is the same as the sequential scan. If `cancel_event` is set while the
    scan runs, `Cancelled` is raised and no results are returned.
    """
    validated = validate_points(points)
    n = len(validated)
    workers = int(workers)
    if workers < 1:
        raise InvalidArgument("workers must be >= 1")

    logger.info("Finding nearest neighbors for %d points (workers=%d)", n, workers)
    if workers == 1:
        return _scan(range(n), validated, cancel_event)

    chunks = _chunks(n, workers)
    with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix="nearpair") as pool:
        futures = [pool.submit(_scan, chunk, validated, cancel_event) for chunk in chunks]
        try:
            parts = [f.result() for f in futures]
        except Cancelled:
            for f in futures:
                f.cancel()
            raise

    results = [r for part in parts for r in part]
    logger.debug("Nearest-neighbor scan finished: %d results", len(results))
    return results


def filter_close_pairs(results: Iterable[NearestPairResult], max_distance_m: float) -> list[NearestPairResult]:
    """Keep results whose neighbor is at most `max_distance_m` away (order preserved)."""
    limit = float(max_distance_m)
    if limit < 0:
        raise InvalidArgument(f"max distance must be >= 0, got {limit:g}")
    return [r for r in results if r.distance_m <= limit]


def mutual_pairs(results: Sequence[NearestPairResult]) -> list[tuple[str, str]]:
    """Return `(a, b)` id pairs that are each other's nearest neighbor.

    Each pair is listed once, in the order its first member appears. Mutuality is
    only reported here; the finder never enforces it.
    """
    nearest_of = {r.source_id: r.nearest_id for r in results}
    out: list[tuple[str, str]] = []
    emitted: set[frozenset[str]] = set()
    for r in results:
        if nearest_of.get(r.nearest_id) != r.source_id:
            continue
        key = frozenset((r.source_id, r.nearest_id))
        if key in emitted:
            continue
        emitted.add(key)
        out.append((r.source_id, r.nearest_id))
    return out
