"""Value types shared by features, bounds and the tile pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple

from PIL import ImageColor

from .errors import BuildError


# (lon_min, lat_min, lon_max, lat_max) in degrees.
Extent = tuple[float, float, float, float]

NAN_EXTENT: Extent = (math.nan, math.nan, math.nan, math.nan)


class GeoPoint(NamedTuple):
    """Geographic position in degrees."""

    lon: float
    lat: float


def require_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BuildError(field_name, "expected a number")
    return float(value)


def require_finite(value: Any, field_name: str) -> float:
    number = require_number(value, field_name)
    if not math.isfinite(number):
        raise BuildError(field_name, "expected a finite number")
    return number


def require_non_negative(value: Any, field_name: str) -> float:
    number = require_finite(value, field_name)
    if number < 0.0:
        raise BuildError(field_name, "must be >= 0")
    return number


def require_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise BuildError(field_name, "expected a bool")
    return value


def require_present(raw: Any, key: str, field_name: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise BuildError(field_name, "not supplied")
    return value


@dataclass(frozen=True, slots=True)
class Color:
    """8-bit RGBA paint color."""

    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            channel = getattr(self, name)
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise BuildError(f"color.{name}", "expected an integer between 0 and 255")

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @classmethod
    def parse(cls, value: Any, field_name: str = "color") -> Color:
        """Accept ``Color``, ``#rrggbb[aa]``, a color name or ``[r, g, b(, a)]``."""
        if isinstance(value, Color):
            return value
        if isinstance(value, str):
            try:
                channels = ImageColor.getrgb(value.strip())
            except ValueError as exc:
                raise BuildError(field_name, f"unknown color '{value}'") from exc
            if len(channels) == 3:
                return cls(*channels)
            return cls(*channels[:4])
        if isinstance(value, (list, tuple)) and len(value) in (3, 4):
            channels = []
            for idx, item in enumerate(value):
                if isinstance(item, bool) or not isinstance(item, int):
                    raise BuildError(f"{field_name}[{idx}]", "expected an integer channel")
                channels.append(item)
            try:
                return cls(*channels)
            except BuildError as exc:
                raise BuildError(field_name, exc.message) from exc
        raise BuildError(field_name, "expected a color string or a list of 3-4 channels")


BLACK = Color()
