"""Web Mercator conversion between degrees and the tile-unit plane."""

from __future__ import annotations

import math


EARTH_CIRCUMFERENCE_M = 40_075_016.686

# sinh overflows a float beyond this argument; the latitude is +/-90 there anyway.
_SINH_LIMIT = 700.0


def _world_size(zoom: int) -> float:
    return float(2**zoom)


def _ln(value: float) -> float:
    # Mirrors IEEE log semantics instead of raising on the poles.
    if math.isnan(value) or value < 0.0:
        return math.nan
    if value == 0.0:
        return -math.inf
    return math.log(value)


def lon_to_x(lon: float, zoom: int) -> float:
    """Longitude to x in tile units, wrapping longitude into [-180, 180)."""
    if not -180.0 <= lon < 180.0:
        lon = (lon + 180.0) % 360.0 - 180.0
    return (lon + 180.0) / 360.0 * _world_size(zoom)


def lat_to_y(lat: float, zoom: int) -> float:
    """Latitude to y in tile units, wrapping latitude into [-90, 90)."""
    if not -90.0 <= lat < 90.0:
        lat = (lat + 90.0) % 180.0 - 90.0
    lat_rad = math.radians(lat)
    merc = _ln(math.tan(lat_rad) + 1.0 / math.cos(lat_rad))
    return (1.0 - merc / math.pi) / 2.0 * _world_size(zoom)


def x_to_lon(x: float, zoom: int) -> float:
    return x / _world_size(zoom) * 360.0 - 180.0


def y_to_lat(y: float, zoom: int) -> float:
    n = math.pi * (1.0 - 2.0 * y / _world_size(zoom))
    if abs(n) > _SINH_LIMIT:
        return math.copysign(90.0, n)
    return math.degrees(math.atan(math.sinh(n)))


def meters_to_pixels(meters: float, lat: float, zoom: int, tile_size: int) -> float:
    """Ground distance at ``lat`` converted to pixels at ``zoom``.

    Uses the Mercator scale factor ``1 / cos(lat)`` so a fixed ground radius
    grows on screen towards the poles.
    """
    scale = tile_size * _world_size(zoom) / EARTH_CIRCUMFERENCE_M
    return meters * scale / math.cos(math.radians(lat))
