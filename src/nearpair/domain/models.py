"""
Domain models (Pydantic).

These types are the contract between layers:
- tabular loaders produce `GeoPoint`s,
- the finder turns them into `NearestPairResult`s,
- the geocoding client answers with `GeocodeResult`s.

All models are frozen: a loaded point never changes, and every pipeline step
returns new values instead of mutating what it was given.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nearpair.errors import InvalidCoordinate


class GeoPoint(BaseModel):
    """A labeled geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    id: str
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    label: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        # Row indexes and numeric store numbers are accepted as ids.
        if isinstance(value, bool) or value is None:
            raise ValueError("id must be a string or an integer")
        return str(value).strip()

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        # bool is an int subclass; lax mode would read True as 1.0.
        if isinstance(value, bool):
            raise ValueError("coordinate must be a number, not a boolean")
        return value


class NearestPairResult(BaseModel):
    """The nearest other point for one source point."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    nearest_id: str
    distance_m: float = Field(..., ge=0)
    nearest_lat: float
    nearest_lon: float
    label: str | None = None


class GeocodeResult(BaseModel):
    """One resolved address."""

    model_config = ConfigDict(frozen=True)

    query: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    formatted_address: str | None = None


def parse_point(value: Any, *, where: str | None = None) -> GeoPoint:
    """Coerce a `GeoPoint`, an `(id, lat, lon[, label])` tuple or a mapping into a `GeoPoint`.

    Raises:
        InvalidCoordinate: When the coordinates are missing, non-numeric, non-finite
            or outside [-90, 90] / [-180, 180].
    """
    if isinstance(value, GeoPoint):
        return value

    if isinstance(value, Mapping):
        payload = dict(value)
    elif isinstance(value, (tuple, list)) and len(value) in (3, 4):
        payload = {"id": value[0], "lat": value[1], "lon": value[2]}
        if len(value) == 4:
            payload["label"] = value[3]
    else:
        raise InvalidCoordinate(f"{where or 'point'}: expected (id, lat, lon) or a mapping, got {value!r}")

    try:
        return GeoPoint.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "point" for err in e.errors())
        label = where or f"point {payload.get('id')!r}"
        raise InvalidCoordinate(f"{label}: invalid {fields} ({_describe(payload)})") from e


def _describe(payload: Mapping[str, Any]) -> str:
    lat = payload.get("lat")
    lon = payload.get("lon")
    return f"lat={lat!r}, lon={lon!r}"


def is_valid_coordinate(lat: Any, lon: Any) -> bool:
    """Return True when `lat`/`lon` parse as finite, in-range degrees."""
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return False
    return -90 <= lat_f <= 90 and -180 <= lon_f <= 180
