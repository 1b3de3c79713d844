"""
Error taxonomy.

Every error raised on purpose by NearPair derives from `NearPairError` so the CLI
can turn it into a clean message + non-zero exit code. Input validation errors
also subclass `ValueError` so plain Python callers can catch them the usual way.
"""

from __future__ import annotations


class NearPairError(Exception):
    """Base class for all NearPair errors."""


class InvalidCoordinate(NearPairError, ValueError):
    """A latitude/longitude is missing, non-numeric, non-finite or out of range."""


class EmptyInput(NearPairError, ValueError):
    """Fewer than two points were supplied, so no nearest neighbor exists."""


class DuplicatePointId(NearPairError, ValueError):
    """Two input points share the same identifier."""


class Cancelled(NearPairError):
    """A long-running computation was cancelled by its caller."""


class GeocodingError(NearPairError):
    """The geocoding API answered with an error status."""


class InvalidArgument(NearPairError, ValueError):
    """A tuning argument (worker count, distance threshold, ...) is out of range."""


class InvalidInputFile(NearPairError, ValueError):
    """An input table cannot be opened or parsed."""
