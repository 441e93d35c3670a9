"""Geodistance computation and radius filtering."""

from .distance import EARTH_RADIUS_KM, GeoFilter, round_distance

__all__ = ["EARTH_RADIUS_KM", "GeoFilter", "round_distance"]
