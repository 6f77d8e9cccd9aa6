"""Viewport fitting: pick zoom, center and tile range for a set of features."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .features import Feature
from .models import NAN_EXTENT, Extent
from .projection import lat_to_y, lon_to_x

MAX_ZOOM = 17
FALLBACK_ZOOM = 1


@dataclass(frozen=True, slots=True)
class Bounds:
    """Resolved viewport of one render.

    ``x_center``/``y_center`` are in tile units at ``zoom``; the tile range
    ``[x_min, x_max) x [y_min, y_max)`` covers the whole canvas.
    """

    width: int
    height: int
    tile_size: int
    zoom: int
    x_center: float
    y_center: float
    x_min: int
    x_max: int
    y_min: int
    y_max: int

    def x_to_px(self, x: float) -> float:
        return _round_px((x - self.x_center) * self.tile_size + self.width / 2.0)

    def y_to_px(self, y: float) -> float:
        return _round_px((y - self.y_center) * self.tile_size + self.height / 2.0)

    def lon_to_px(self, lon: float) -> float:
        return self.x_to_px(lon_to_x(lon, self.zoom))

    def lat_to_px(self, lat: float) -> float:
        return self.y_to_px(lat_to_y(lat, self.zoom))

    @property
    def tile_count(self) -> int:
        return max(self.x_max - self.x_min, 0) * max(self.y_max - self.y_min, 0)


@dataclass(frozen=True, slots=True)
class Viewport:
    """Caller-controlled inputs to the fitting algorithm."""

    width: int
    height: int
    tile_size: int = 256
    padding: tuple[int, int] = (0, 0)
    zoom: int | None = None
    lon_center: float | None = None
    lat_center: float | None = None

    @property
    def center(self) -> tuple[float, float] | None:
        if self.lon_center is None or self.lat_center is None:
            return None
        return (self.lon_center, self.lat_center)


def _nan_min(left: float, right: float) -> float:
    if math.isnan(left):
        return right
    if math.isnan(right):
        return left
    return min(left, right)


def _nan_max(left: float, right: float) -> float:
    if math.isnan(left):
        return right
    if math.isnan(right):
        return left
    return max(left, right)


def combined_extent(
    features: Sequence[Feature],
    zoom: int,
    tile_size: int,
    center: tuple[float, float] | None = None,
) -> Extent:
    """Union of every feature's extent at ``zoom``.

    NaN components are skipped, so an empty feature list yields an all-NaN
    extent. With a ``(lon, lat)`` center the extent is grown symmetrically
    around it so the center stays in the middle of the fitted area.
    """
    lon_min, lat_min, lon_max, lat_max = NAN_EXTENT
    for feature in features:
        f_lon_min, f_lat_min, f_lon_max, f_lat_max = feature.extent(zoom, tile_size)
        lon_min = _nan_min(lon_min, f_lon_min)
        lat_min = _nan_min(lat_min, f_lat_min)
        lon_max = _nan_max(lon_max, f_lon_max)
        lat_max = _nan_max(lat_max, f_lat_max)

    if center is None:
        return (lon_min, lat_min, lon_max, lat_max)

    lon, lat = center
    return (
        _nan_min(lon_min, 2.0 * lon - lon_max),
        _nan_min(lat_min, 2.0 * lat - lat_max),
        _nan_max(lon_max, 2.0 * lon - lon_min),
        _nan_max(lat_max, 2.0 * lat - lat_min),
    )


def extent_size_px(extent: Extent, zoom: int, tile_size: int) -> tuple[float, float]:
    """Projected ``(width, height)`` of an extent in pixels."""
    lon_min, lat_min, lon_max, lat_max = extent
    width = (lon_to_x(lon_max, zoom) - lon_to_x(lon_min, zoom)) * tile_size
    height = (lat_to_y(lat_min, zoom) - lat_to_y(lat_max, zoom)) * tile_size
    return (width, height)


def fit_zoom(features: Sequence[Feature], viewport: Viewport) -> int:
    """Highest zoom at which all features fit inside the padded canvas."""
    available_w = viewport.width - 2 * viewport.padding[0]
    available_h = viewport.height - 2 * viewport.padding[1]
    for zoom in range(MAX_ZOOM, -1, -1):
        extent = combined_extent(features, zoom, viewport.tile_size, viewport.center)
        width, height = extent_size_px(extent, zoom, viewport.tile_size)
        # NaN sizes compare false and therefore fit, like an empty map.
        if width > available_w or height > available_h:
            continue
        return zoom
    return FALLBACK_ZOOM


def build_bounds(viewport: Viewport, features: Sequence[Feature]) -> Bounds:
    zoom = viewport.zoom if viewport.zoom is not None else fit_zoom(features, viewport)
    center = viewport.center

    if center is not None:
        x_center = lon_to_x(center[0], zoom)
        y_center = lat_to_y(center[1], zoom)
    else:
        lon_min, lat_min, lon_max, lat_max = combined_extent(
            features, zoom, viewport.tile_size
        )
        x_center = (lon_to_x(lon_min, zoom) + lon_to_x(lon_max, zoom)) / 2.0
        y_center = (lat_to_y(lat_max, zoom) + lat_to_y(lat_min, zoom)) / 2.0

    half_w = 0.5 * viewport.width / viewport.tile_size
    half_h = 0.5 * viewport.height / viewport.tile_size
    return Bounds(
        width=viewport.width,
        height=viewport.height,
        tile_size=viewport.tile_size,
        zoom=zoom,
        x_center=x_center,
        y_center=y_center,
        x_min=_floor(x_center - half_w),
        x_max=_ceil(x_center + half_w),
        y_min=_floor(y_center - half_h),
        y_max=_ceil(y_center + half_h),
    )


def _floor(value: float) -> int:
    # A NaN center has no tiles; collapse the range to empty.
    return math.floor(value) if math.isfinite(value) else 0


def _ceil(value: float) -> int:
    return math.ceil(value) if math.isfinite(value) else 0


def _round_px(value: float) -> float:
    # Half away from zero; the builtin round() would round half to even.
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)
