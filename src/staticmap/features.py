"""Drawable map features: lines, circles, icons and rectangles.

Every feature is an immutable value validated at construction time. It
reports the geographic area it covers at a given zoom (``extent``) so the
viewport can be fitted around it, and draws itself onto a ``Canvas`` using
the resolved ``Bounds`` of a render.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from PIL import Image

from .canvas import Canvas
from .errors import BuildError, CodecError
from .models import (
    BLACK,
    Color,
    Extent,
    GeoPoint,
    require_bool,
    require_finite,
    require_non_negative,
    require_present,
)
from .projection import lat_to_y, lon_to_x, meters_to_pixels, x_to_lon, y_to_lat
from .simplify import simplify as simplify_points

if TYPE_CHECKING:
    from .bounds import Bounds


def _geo_point(value: Any, field_name: str) -> GeoPoint:
    if isinstance(value, GeoPoint):
        lon, lat = value
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lon, lat = value
    else:
        raise BuildError(field_name, "expected a [lon, lat] pair")
    return GeoPoint(
        lon=require_finite(lon, f"{field_name}.lon"),
        lat=require_finite(lat, f"{field_name}.lat"),
    )


def _optional_stroke(value: Any, field_name: str) -> float | None:
    if value is None:
        return None
    width = require_non_negative(value, field_name)
    if width == 0.0:
        raise BuildError(field_name, "must be > 0; omit it for a filled shape")
    return width


@dataclass(frozen=True, slots=True)
class Line:
    """Polyline stroked through ``points`` in order."""

    points: tuple[GeoPoint, ...]
    color: Color = BLACK
    width: float = 1.0
    simplify: bool = False
    tolerance: float = 5.0

    def __post_init__(self) -> None:
        if isinstance(self.points, (str, bytes)) or not isinstance(self.points, Iterable):
            raise BuildError("line.points", "expected a sequence of [lon, lat] pairs")
        points = tuple(
            _geo_point(item, f"line.points[{idx}]") for idx, item in enumerate(self.points)
        )
        if not points:
            raise BuildError("line.points", "coordinates not supplied")
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "color", Color.parse(self.color, "line.color"))
        object.__setattr__(self, "width", require_non_negative(self.width, "line.width"))
        object.__setattr__(self, "simplify", require_bool(self.simplify, "line.simplify"))
        object.__setattr__(self, "tolerance", require_non_negative(self.tolerance, "line.tolerance"))

    @classmethod
    def from_coordinates(
        cls,
        lon_coordinates: Iterable[float],
        lat_coordinates: Iterable[float],
        **kwargs: Any,
    ) -> Line:
        lons = list(lon_coordinates)
        lats = list(lat_coordinates)
        if len(lons) != len(lats):
            raise BuildError(
                "line.lat_coordinates",
                f"expected {len(lons)} latitudes to match longitudes, got {len(lats)}",
            )
        return cls(points=tuple(zip(lons, lats)), **kwargs)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Line:
        kwargs = _style_kwargs(raw, "line", width_key="width")
        if "simplify" in raw:
            kwargs["simplify"] = raw["simplify"]
        if "tolerance" in raw:
            kwargs["tolerance"] = raw["tolerance"]
        if raw.get("points") is not None:
            return cls(points=raw["points"], **kwargs)
        lons = require_present(raw, "lon_coordinates", "line.lon_coordinates")
        lats = require_present(raw, "lat_coordinates", "line.lat_coordinates")
        if not isinstance(lons, list) or not isinstance(lats, list):
            raise BuildError("line.lon_coordinates", "expected lists of coordinates")
        return cls.from_coordinates(lons, lats, **kwargs)

    def extent(self, zoom: int, tile_size: int) -> Extent:
        lons = [point.lon for point in self.points]
        lats = [point.lat for point in self.points]
        return (min(lons), min(lats), max(lons), max(lats))

    def pixel_points(self, bounds: Bounds) -> list[tuple[float, float]]:
        points = [(bounds.lon_to_px(p.lon), bounds.lat_to_px(p.lat)) for p in self.points]
        if self.simplify:
            points = simplify_points(points, self.tolerance)
        return points

    def draw(self, bounds: Bounds, canvas: Canvas) -> None:
        canvas.stroke_path(self.pixel_points(bounds), self.color, self.width)


@dataclass(frozen=True, slots=True)
class Circle:
    """Circle around ``center``; the radius is in pixels or, optionally, meters."""

    center: GeoPoint
    radius: float = 1.0
    color: Color = BLACK
    radius_in_meters: bool = False
    stroke_width: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _geo_point(self.center, "circle.center"))
        object.__setattr__(self, "radius", require_non_negative(self.radius, "circle.radius"))
        object.__setattr__(self, "color", Color.parse(self.color, "circle.color"))
        object.__setattr__(
            self,
            "radius_in_meters",
            require_bool(self.radius_in_meters, "circle.radius_in_meters"),
        )
        object.__setattr__(
            self, "stroke_width", _optional_stroke(self.stroke_width, "circle.stroke_width")
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Circle:
        kwargs = _style_kwargs(raw, "circle", width_key="stroke_width")
        if "radius" in raw:
            kwargs["radius"] = raw["radius"]
        if "radius_in_meters" in raw:
            kwargs["radius_in_meters"] = raw["radius_in_meters"]
        return cls(center=_center_from_mapping(raw, "circle"), **kwargs)

    def radius_px(self, zoom: int, tile_size: int) -> float:
        if self.radius_in_meters:
            return meters_to_pixels(self.radius, self.center.lat, zoom, tile_size)
        return self.radius

    def extent(self, zoom: int, tile_size: int) -> Extent:
        margin = self.radius_px(zoom, tile_size) / tile_size
        x = lon_to_x(self.center.lon, zoom)
        y = lat_to_y(self.center.lat, zoom)
        return (
            x_to_lon(x - margin, zoom),
            y_to_lat(y + margin, zoom),
            x_to_lon(x + margin, zoom),
            y_to_lat(y - margin, zoom),
        )

    def draw(self, bounds: Bounds, canvas: Canvas) -> None:
        center = (bounds.lon_to_px(self.center.lon), bounds.lat_to_px(self.center.lat))
        radius = self.radius_px(bounds.zoom, bounds.tile_size)
        if self.stroke_width is None:
            canvas.fill_ellipse(center, radius, self.color)
        else:
            canvas.stroke_ellipse(center, radius, self.color, self.stroke_width)


@dataclass(frozen=True, slots=True)
class Icon:
    """Image placed so that the pixel at ``(x_offset, y_offset)`` sits on ``center``."""

    center: GeoPoint
    image: Image.Image = field(compare=False, repr=False)
    x_offset: float = 0.0
    y_offset: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _geo_point(self.center, "icon.center"))
        if not isinstance(self.image, Image.Image):
            raise BuildError("icon.image", "image not supplied")
        if self.image.mode != "RGBA":
            object.__setattr__(self, "image", self.image.convert("RGBA"))
        object.__setattr__(self, "x_offset", require_finite(self.x_offset, "icon.x_offset"))
        object.__setattr__(self, "y_offset", require_finite(self.y_offset, "icon.y_offset"))

    @classmethod
    def from_bytes(cls, center: GeoPoint | tuple[float, float], data: bytes, **kwargs: Any) -> Icon:
        try:
            image = Canvas.decode_png(data)
        except CodecError as exc:
            raise BuildError("icon.image", str(exc)) from exc
        return cls(center=center, image=image, **kwargs)

    @classmethod
    def from_path(cls, center: GeoPoint | tuple[float, float], path: str | Path, **kwargs: Any) -> Icon:
        icon_path = Path(path)
        try:
            data = icon_path.read_bytes()
        except OSError as exc:
            raise BuildError("icon.path", f"cannot read '{icon_path}': {exc}") from exc
        return cls.from_bytes(center, data, **kwargs)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path | None = None) -> Icon:
        path_raw = require_present(raw, "path", "icon.path")
        if not isinstance(path_raw, str) or not path_raw.strip():
            raise BuildError("icon.path", "expected a non-empty string")
        path = Path(path_raw.strip())
        if not path.is_absolute() and root_dir is not None:
            path = root_dir / path
        kwargs: dict[str, Any] = {}
        for key in ("x_offset", "y_offset"):
            if key in raw:
                kwargs[key] = raw[key]
        return cls.from_path(_center_from_mapping(raw, "icon"), path, **kwargs)

    def extent(self, zoom: int, tile_size: int) -> Extent:
        x = lon_to_x(self.center.lon, zoom)
        y = lat_to_y(self.center.lat, zoom)
        left = self.x_offset / tile_size
        right = (self.image.width - self.x_offset) / tile_size
        top = self.y_offset / tile_size
        bottom = (self.image.height - self.y_offset) / tile_size
        return (
            x_to_lon(x - left, zoom),
            y_to_lat(y + bottom, zoom),
            x_to_lon(x + right, zoom),
            y_to_lat(y - top, zoom),
        )

    def draw(self, bounds: Bounds, canvas: Canvas) -> None:
        x = bounds.lon_to_px(self.center.lon) - self.x_offset
        y = bounds.lat_to_px(self.center.lat) - self.y_offset
        canvas.composite(self.image, int(round(x)), int(round(y)))


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned box between two latitudes and two longitudes."""

    north: float
    south: float
    east: float
    west: float
    color: Color = BLACK
    stroke_width: float | None = None

    def __post_init__(self) -> None:
        for name in ("north", "south", "east", "west"):
            object.__setattr__(self, name, require_finite(getattr(self, name), f"rect.{name}"))
        object.__setattr__(self, "color", Color.parse(self.color, "rect.color"))
        object.__setattr__(
            self, "stroke_width", _optional_stroke(self.stroke_width, "rect.stroke_width")
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Rect:
        edges = {
            name: require_present(raw, name, f"rect.{name}")
            for name in ("north", "south", "east", "west")
        }
        return cls(**edges, **_style_kwargs(raw, "rect", width_key="stroke_width"))

    def extent(self, zoom: int, tile_size: int) -> Extent:
        return (
            min(self.west, self.east),
            min(self.south, self.north),
            max(self.west, self.east),
            max(self.south, self.north),
        )

    def draw(self, bounds: Bounds, canvas: Canvas) -> None:
        box = (
            bounds.lon_to_px(self.west),
            bounds.lat_to_px(self.north),
            bounds.lon_to_px(self.east),
            bounds.lat_to_px(self.south),
        )
        if self.stroke_width is None:
            canvas.fill_rect(box, self.color)
        else:
            canvas.stroke_rect(box, self.color, self.stroke_width)


Feature = Line | Circle | Icon | Rect

_FEATURE_TYPES = ("line", "circle", "icon", "rect")


def feature_from_mapping(raw: Mapping[str, Any], root_dir: Path | None = None) -> Feature:
    """Build one feature from a ``{"type": ..., ...}`` mapping."""
    kind = raw.get("type")
    if not isinstance(kind, str) or kind.strip().casefold() not in _FEATURE_TYPES:
        raise BuildError("type", "must be one of: " + ", ".join(_FEATURE_TYPES))
    kind = kind.strip().casefold()
    if kind == "line":
        return Line.from_mapping(raw)
    if kind == "circle":
        return Circle.from_mapping(raw)
    if kind == "icon":
        return Icon.from_mapping(raw, root_dir)
    return Rect.from_mapping(raw)


def _center_from_mapping(raw: Mapping[str, Any], prefix: str) -> GeoPoint:
    lon = require_present(raw, "lon", f"{prefix}.lon")
    lat = require_present(raw, "lat", f"{prefix}.lat")
    return _geo_point((lon, lat), f"{prefix}.center")


def _style_kwargs(raw: Mapping[str, Any], prefix: str, *, width_key: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if raw.get("color") is not None:
        kwargs["color"] = Color.parse(raw["color"], f"{prefix}.color")
    if raw.get(width_key) is not None:
        kwargs[width_key] = raw[width_key]
    return kwargs
