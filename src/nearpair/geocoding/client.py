"""
Geocoding client (Google Geocoding API compatible).

Turns postal addresses into coordinates so address-only spreadsheets can be fed
to the nearest-neighbor finder. The API key is always handed to the client by
its caller; this module never reads credentials on its own.

Response handling:
- `OK` -> first result's `geometry.location` (`lat`/`lng`)
- `ZERO_RESULTS` -> `None` (the address is simply unknown)
- anything else (`REQUEST_DENIED`, `OVER_QUERY_LIMIT`, ...) -> `GeocodingError`

Successful payloads (including `ZERO_RESULTS`) are cached on disk; transport
failures fall back to a stale cached payload when one exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol

import httpx

from nearpair.config.settings import Settings
from nearpair.core.cache import FileCache
from nearpair.core.env import resolve_project_path
from nearpair.core.http import get_json
from nearpair.core.rate_limit import TokenBucketRateLimiter
from nearpair.domain.models import GeocodeResult, is_valid_coordinate
from nearpair.errors import GeocodingError

logger = logging.getLogger(__name__)

_CACHE_NAMESPACE = "geocode"
_ACCEPTED_STATUSES = ("OK", "ZERO_RESULTS")


class Geocoder(Protocol):
    def geocode(self, address: str) -> GeocodeResult | None: ...


def normalize_address(address: str) -> str:
    """Collapse whitespace so trivially different spellings share a cache entry."""
    return " ".join(str(address or "").split())


class GeocodingClient:
    """Resolves addresses through an HTTP geocoding API, with caching and throttling."""

    def __init__(
        self,
        settings: Settings,
        cache: FileCache,
        *,
        api_key: str,
        limiter: TokenBucketRateLimiter | None = None,
    ):
        if not api_key:
            raise GeocodingError(
                "A geocoding API key is required (set NEARPAIR_GEOCODER_API_KEY or geocoding.api_key)."
            )
        self._settings = settings
        self._cache = cache
        self._api_key = api_key
        self._limiter = limiter or TokenBucketRateLimiter(settings.geocoding.requests_per_minute)

    def _fetch(self, address: str) -> dict[str, Any]:
        """Call the geocoding API and return its JSON payload (accepted statuses only)."""
        self._limiter.acquire()
        logger.info("Geocoding %r", address)
        payload = get_json(
            self._settings.geocoding.base_url,
            params={"address": address, "key": self._api_key},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )
        if not isinstance(payload, dict):
            raise GeocodingError(f"Unexpected geocoding response for {address!r}: {type(payload).__name__}")
        status = payload.get("status")
        if status not in _ACCEPTED_STATUSES:
            detail = payload.get("error_message") or "no error message"
            raise GeocodingError(f"Geocoding {address!r} failed with status {status}: {detail}")
        return payload

    def geocode(self, address: str) -> GeocodeResult | None:
        """Return the best match for `address`, or None when the API knows no match."""
        query = normalize_address(address)
        if not query:
            return None

        payload = self._cache.get_or_set(
            _CACHE_NAMESPACE,
            query.lower(),
            lambda: self._fetch(query),
            ttl_seconds=int(self._settings.geocoding.cache_ttl_seconds),
            stale_if_error=True,
            stale_predicate=lambda exc: isinstance(exc, httpx.HTTPError),
        )
        return parse_geocode_payload(query, payload)


def parse_geocode_payload(query: str, payload: Mapping[str, Any]) -> GeocodeResult | None:
    """Extract the first result's location from a Google-style geocoding payload."""
    if payload.get("status") == "ZERO_RESULTS":
        return None
    results = payload.get("results") or []
    if not results:
        return None
    first = results[0]
    try:
        loc = first["geometry"]["location"]
        return GeocodeResult(
            query=query,
            lat=float(loc["lat"]),
            lon=float(loc["lng"]),
            formatted_address=first.get("formatted_address"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise GeocodingError(f"Malformed geocoding result for {query!r}") from e


@dataclass
class GeocodeSummary:
    total: int = 0
    geocoded: int = 0
    skipped: int = 0
    unresolved_rows: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "geocoded": self.geocoded,
            "skipped": self.skipped,
            "unresolved": len(self.unresolved_rows),
            "unresolved_rows": list(self.unresolved_rows),
        }


def geocode_rows(
    rows: Iterable[Mapping[str, Any]],
    geocoder: Geocoder,
    *,
    address_field: str,
    lat_field: str,
    lon_field: str,
    overwrite: bool = False,
) -> tuple[list[dict[str, Any]], GeocodeSummary]:
    """Return copies of `rows` with `lat_field`/`lon_field` filled from `address_field`.

    Rows that already carry valid coordinates are left alone unless `overwrite`.
    Unresolvable addresses keep empty coordinates and are listed (0-based) in the summary.
    """
    out: list[dict[str, Any]] = []
    summary = GeocodeSummary()
    for i, row in enumerate(rows):
        summary.total += 1
        new_row = dict(row)
        if not overwrite and is_valid_coordinate(new_row.get(lat_field), new_row.get(lon_field)):
            summary.skipped += 1
            out.append(new_row)
            continue

        result = geocoder.geocode(str(new_row.get(address_field) or ""))
        if result is None:
            logger.warning("Row %d: could not geocode %r", i, new_row.get(address_field))
            summary.unresolved_rows.append(i)
            new_row[lat_field] = ""
            new_row[lon_field] = ""
        else:
            summary.geocoded += 1
            new_row[lat_field] = result.lat
            new_row[lon_field] = result.lon
        out.append(new_row)
    return out, summary


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def build_geocoding_client(settings: Settings, *, api_key: str | None = None) -> GeocodingClient:
    """Wire a `GeocodingClient` from settings; an explicit `api_key` wins over the configured one."""
    return GeocodingClient(
        settings,
        build_cache(settings),
        api_key=api_key or settings.geocoding.api_key or "",
    )
