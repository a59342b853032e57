"""Geo Distance Evaluator -- Haversine great-circle distance

Used to check a worker's claimed position against the task site. Planar
distance on raw lat/lng is not accurate enough at the tens-of-meters scale the
threshold checks work at.
"""

import math
from dataclasses import dataclass, field

from .exceptions import ValidationError
from .models.geo import GeoLocation

EARTH_RADIUS_M: float = 6_371_000.0


def validate_coordinate(lat: float, lng: float) -> None:
    """Raise ValidationError unless lat in [-90, 90] and lng in [-180, 180]"""
    if not isinstance(lat, (int, float)) or not math.isfinite(lat) or not -90 <= lat <= 90:
        raise ValidationError(f"Invalid latitude: {lat!r}", field="lat")
    if not isinstance(lng, (int, float)) or not math.isfinite(lng) or not -180 <= lng <= 180:
        raise ValidationError(f"Invalid longitude: {lng!r}", field="lng")


def distance_meters(a: GeoLocation, b: GeoLocation) -> float:
    """Great-circle distance between two coordinates in meters

    Args:
        a: first coordinate
        b: second coordinate

    Returns:
        distance in meters

    Raises:
        ValidationError: a coordinate is out of range
    """
    validate_coordinate(a.lat, a.lng)
    validate_coordinate(b.lat, b.lng)

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_phi = math.radians(b.lat - a.lat)
    delta_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


@dataclass(frozen=True)
class LocationCheck:
    """Result of comparing a claimed position against a site"""

    distance_m: float
    within_range: bool
    warnings: list[str] = field(default_factory=list)


def verify_location(
    site: GeoLocation,
    claimed: GeoLocation,
    threshold_m: float = 100.0,
) -> LocationCheck:
    """Soft-check a claimed position against the site

    Being further than threshold_m away yields a warning, never an error.
    """
    distance = distance_meters(site, claimed)
    within_range = distance <= threshold_m
    warnings: list[str] = []
    if not within_range:
        warnings.append(
            f"You are {round(distance)}m away from the task location "
            f"(allowed: {round(threshold_m)}m)"
        )
    return LocationCheck(distance_m=distance, within_range=within_range, warnings=warnings)
