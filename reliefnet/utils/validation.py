"""Request value parsing shared by route modules."""

from flask import current_app, request
from reliefnet.services.geofence import Coordinate, InvalidCoordinateError, validate_coordinate


def parse_coordinate(lat, lng):
    """Build a validated Coordinate from raw request values.

    Returns None when both are absent; raises InvalidCoordinateError when
    only one is given or either is not a valid number.
    """
    if lat in (None, '') and lng in (None, ''):
        return None
    if lat in (None, '') or lng in (None, ''):
        raise InvalidCoordinateError("Both latitude and longitude are required")
    try:
        coord = Coordinate(float(lat), float(lng))
    except (TypeError, ValueError):
        raise InvalidCoordinateError("Latitude and longitude must be numbers")
    return validate_coordinate(coord)


def parse_language(code):
    """Normalize a language code; None if missing or not supported."""
    if not isinstance(code, str) or not code:
        return None
    code = code.strip().lower()[:2]
    if code not in current_app.config['SUPPORTED_LANGUAGES']:
        return None
    return code


def clean_text(value):
    """Stripped string from a JSON field; '' when missing, None when not a string."""
    if value is None:
        return ''
    if not isinstance(value, str):
        return None
    return value.strip()


def json_object():
    """Request JSON body when it is an object, otherwise an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
