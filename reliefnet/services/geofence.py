"""Proximity filtering of incident reports around a user's position.

Used for the "nearby alerts" view: given the user's current coordinates and
a collection of reports, return the ones within a radius, closest first.
Everything here is pure computation with no I/O.
"""

from dataclasses import dataclass
from math import asin, atan2, cos, degrees, isfinite, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 10.0
# Keeps points exactly on the radius inside the box despite float rounding
BOX_PADDING_DEG = 1e-6


class InvalidCoordinateError(ValueError):
    """Latitude/longitude missing, non-numeric or out of range."""


class InvalidRadiusError(ValueError):
    """Search radius is not a positive number."""


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def from_mapping(cls, data):
        """Build from {'lat', 'lng'} or {'latitude', 'longitude'}; None if either is missing."""
        if not data:
            return None
        lat = data.get('lat', data.get('latitude'))
        lng = data.get('lng', data.get('longitude'))
        if lat is None or lng is None:
            return None
        return cls(float(lat), float(lng))


def validate_coordinate(coord):
    """Raise InvalidCoordinateError unless coord is a usable Coordinate."""
    if coord is None:
        raise InvalidCoordinateError("Coordinate is required")
    lat, lng = coord.latitude, coord.longitude
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        raise InvalidCoordinateError("Latitude and longitude must be numbers")
    if not (isfinite(lat) and isfinite(lng)):
        raise InvalidCoordinateError("Latitude and longitude must be finite")
    if lat < -90 or lat > 90:
        raise InvalidCoordinateError(f"Latitude {lat} must be between -90 and 90")
    if lng < -180 or lng > 180:
        raise InvalidCoordinateError(f"Longitude {lng} must be between -180 and 180")
    return coord


def validate_radius(radius_km):
    """Raise InvalidRadiusError unless radius_km is a positive finite number."""
    if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) \
            or not isfinite(radius_km) or radius_km <= 0:
        raise InvalidRadiusError(f"Radius must be a positive number, got {radius_km!r}")
    return radius_km


def distance(lat1, lon1, lat2, lon2):
    """Calculate distance in km between two coordinates using Haversine formula."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    # Rounding can push a a hair past 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * atan2(sqrt(a), sqrt(1-a))
    return EARTH_RADIUS_KM * c


def coordinate_distance(a, b):
    """Haversine distance in km between two Coordinates."""
    return distance(a.latitude, a.longitude, b.latitude, b.longitude)


def get_bounding_box(lat, lng, radius_km):
    """
    Calculate a bounding box for SQL filtering that holds every point within
    radius_km of (lat, lng).
    Returns (min_lat, max_lat, min_lng, max_lng). A box that crosses the
    antimeridian comes back with min_lng > max_lng; see longitude_ranges().
    """
    angle = radius_km / EARTH_RADIUS_KM
    lat_delta = degrees(angle) + BOX_PADDING_DEG
    min_lat = lat - lat_delta
    max_lat = lat + lat_delta

    # A circle over a pole spans every longitude
    if min_lat <= -90.0 or max_lat >= 90.0:
        return (max(-90.0, min_lat), min(90.0, max_lat), -180.0, 180.0)

    # Widest longitude of a spherical circle (reached poleward of the centre)
    ratio = sin(angle) / cos(radians(lat))
    if ratio >= 1.0:
        return (min_lat, max_lat, -180.0, 180.0)
    lng_delta = degrees(asin(ratio)) + BOX_PADDING_DEG

    min_lng = lng - lng_delta
    max_lng = lng + lng_delta
    if min_lng < -180.0:
        min_lng += 360.0
    elif max_lng > 180.0:
        max_lng -= 360.0
    return (min_lat, max_lat, min_lng, max_lng)


def longitude_ranges(min_lng, max_lng):
    """Split a bounding box's longitude span into plain (low, high) ranges."""
    if min_lng <= max_lng:
        return [(min_lng, max_lng)]
    return [(min_lng, 180.0), (-180.0, max_lng)]


def _field(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def record_coordinates(record):
    """Coordinates of a report object or dict, or None when absent."""
    coords = _field(record, 'coordinates')
    if coords is None:
        return None
    if isinstance(coords, Coordinate):
        return coords
    if isinstance(coords, dict):
        return Coordinate.from_mapping(coords)
    return None


def filter_nearby(origin, records, radius_km=DEFAULT_RADIUS_KM, require_verified=False):
    """Return (record, distance_km) pairs within radius_km of origin.

    Records without coordinates are skipped. When require_verified is set,
    only records whose `verified` flag is truthy are considered. The radius
    boundary is inclusive. Results are ordered by ascending distance; records
    at the same distance keep their input order.

    Raises InvalidCoordinateError / InvalidRadiusError for caller mistakes.
    """
    validate_coordinate(origin)
    validate_radius(radius_km)

    matches = []
    for record in records:
        if require_verified and not _field(record, 'verified'):
            continue
        coords = record_coordinates(record)
        if coords is None:
            continue
        dist = coordinate_distance(origin, coords)
        if dist <= radius_km:
            matches.append((record, dist))

    # sort() is stable, so ties stay in input order
    matches.sort(key=lambda pair: pair[1])
    return matches
