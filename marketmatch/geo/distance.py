"""Great-circle distance and radius filtering.

Distances use the haversine formula on a spherical Earth. Filtering compares
unrounded distances; ``round_distance`` is applied only when building
responses.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from marketmatch.domain.exceptions import NumericError
from marketmatch.domain.models import Candidate, GeoPoint

EARTH_RADIUS_KM = 6371.0


def _require_finite(value: float, field: str) -> float:
    if not math.isfinite(value):
        raise NumericError(f"{field} must be a finite number", field=field)
    return value


def round_distance(distance_km: Optional[float]) -> Optional[float]:
    """Round a distance to one decimal place, halves away from zero."""
    if distance_km is None:
        return None
    return float(Decimal(repr(distance_km)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class GeoFilter:
    """Haversine distance computation and radius filtering over candidates."""

    def __init__(self, earth_radius_km: float = EARTH_RADIUS_KM):
        self.earth_radius_km = _require_finite(earth_radius_km, "earth_radius_km")

    def distance(self, a: GeoPoint, b: GeoPoint) -> float:
        """Great-circle distance between two points in kilometres.

        Symmetric, and exactly 0.0 for identical points.

        Raises:
            NumericError: If any coordinate is NaN or infinite
        """
        lat1 = _require_finite(a.latitude, "lat")
        lon1 = _require_finite(a.longitude, "long")
        lat2 = _require_finite(b.latitude, "lat")
        lon2 = _require_finite(b.longitude, "long")

        if lat1 == lat2 and lon1 == lon2:
            return 0.0

        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        d_phi = math.radians(lat2 - lat1)
        d_lambda = math.radians(lon2 - lon1)

        h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        # Clamp rounding drift so asin stays in its domain
        h = min(1.0, max(0.0, h))
        return 2 * self.earth_radius_km * math.asin(math.sqrt(h))

    def filter_by_radius(
        self,
        candidates: Iterable[Candidate],
        origin: GeoPoint,
        max_distance_km: float,
    ) -> List[Tuple[Candidate, float]]:
        """Keep candidates within ``max_distance_km`` of ``origin``.

        Candidates without a location are excluded. The result is sorted by
        ascending distance; equal distances keep their input order.

        Returns:
            List of (candidate, distance_km) pairs
        """
        _require_finite(max_distance_km, "maxDistance")

        within = []
        for candidate in candidates:
            if candidate.location is None:
                continue
            distance_km = self.distance(origin, candidate.location)
            if distance_km <= max_distance_km:
                within.append((candidate, distance_km))

        within.sort(key=lambda pair: pair[1])
        return within

    def annotate(
        self,
        candidates: Iterable[Candidate],
        origin: Optional[GeoPoint],
    ) -> List[Tuple[Candidate, Optional[float]]]:
        """Pair each candidate with its distance from ``origin`` without filtering.

        The distance is None when either the origin or the candidate location
        is missing. Input order is preserved.
        """
        annotated = []
        for candidate in candidates:
            if origin is None or candidate.location is None:
                annotated.append((candidate, None))
            else:
                annotated.append((candidate, self.distance(origin, candidate.location)))
        return annotated
