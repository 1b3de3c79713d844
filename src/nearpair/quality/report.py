"""
Offline sanity report for a point table and its nearest-neighbor results.

Goal: a deterministic, network-free answer to "does this data look right before
it goes on a map?" Used by the `nearpair report` CLI command.
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import mean, median
from typing import Any, Sequence

from nearpair.domain.models import GeoPoint, NearestPairResult
from nearpair.neighbors.finder import find_nearest_pairs, mutual_pairs


@dataclass(frozen=True)
class Issue:
    severity: str  # "info" | "warning" | "error"
    code: str
    message: str
    count: int = 1
    sample: list[str] | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "count": int(self.count),
            "sample": list(self.sample or []),
        }


def point_issues(points: Sequence[GeoPoint]) -> list[Issue]:
    issues: list[Issue] = []

    by_coord: dict[tuple[float, float], list[str]] = {}
    for p in points:
        by_coord.setdefault((p.lat, p.lon), []).append(p.id)
    stacked = [ids for ids in by_coord.values() if len(ids) > 1]
    if stacked:
        issues.append(
            Issue(
                severity="warning",
                code="POINTS_COINCIDENT",
                message="Some points share identical coordinates (their nearest distance is 0).",
                count=sum(len(ids) for ids in stacked),
                sample=[",".join(ids) for ids in stacked[:8]],
            )
        )

    null_island = [p.id for p in points if p.lat == 0 and p.lon == 0]
    if null_island:
        issues.append(
            Issue(
                severity="warning",
                code="POINTS_AT_ORIGIN",
                message="Some points sit at (0, 0), which usually means a failed geocode.",
                count=len(null_island),
                sample=null_island[:8],
            )
        )

    unlabeled = [p.id for p in points if not p.label]
    if unlabeled and len(unlabeled) < len(points):
        issues.append(
            Issue(
                severity="info",
                code="POINTS_MISSING_LABEL",
                message="Some points have no label/category.",
                count=len(unlabeled),
                sample=unlabeled[:8],
            )
        )
    return issues


def distance_summary(results: Sequence[NearestPairResult]) -> dict[str, float | None]:
    distances = [r.distance_m for r in results]
    if not distances:
        return {"min_m": None, "max_m": None, "mean_m": None, "median_m": None}
    return {
        "min_m": min(distances),
        "max_m": max(distances),
        "mean_m": mean(distances),
        "median_m": median(distances),
    }


def build_points_report(
    points: Sequence[GeoPoint],
    results: Sequence[NearestPairResult] | None = None,
    *,
    workers: int = 1,
) -> dict[str, Any]:
    """Build a JSON-ready report; computes nearest neighbors when `results` is not given."""
    if results is None:
        results = find_nearest_pairs(points, workers=workers)

    labels: dict[str, int] = {}
    for p in points:
        key = p.label or ""
        labels[key] = labels.get(key, 0) + 1

    closest = min(results, key=lambda r: r.distance_m) if results else None
    return {
        "points": len(points),
        "labels": dict(sorted(labels.items())),
        "distances": distance_summary(results),
        "mutual_pairs": len(mutual_pairs(results)),
        "closest_pair": (
            None
            if closest is None
            else {
                "source_id": closest.source_id,
                "nearest_id": closest.nearest_id,
                "distance_m": closest.distance_m,
            }
        ),
        "issues": [i.as_dict() for i in point_issues(points)],
    }
