"""Typed configuration for maps, tile fetching and YAML map files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .bounds import MAX_ZOOM, Viewport
from .errors import BuildError
from .features import Feature, feature_from_mapping


DEFAULT_URL_TEMPLATE = "https://a.tile.osm.org/{z}/{x}/{y}.png"
DEFAULT_USER_AGENT = "staticmap/0.1"
_FETCHER_MODES = ("http", "noop")


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise BuildError(field_name, "expected a mapping")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BuildError(field_name, "expected a non-empty string")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BuildError(field_name, "expected an integer")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise BuildError(field_name, "expected a number")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise BuildError(field_name, "expected a bool")
    return value


def _optional(raw: Mapping[str, Any], key: str, default: Any) -> Any:
    value = raw.get(key)
    return default if value is None else value


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    p = Path(_str(value, field_name))
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class MapConfig:
    """Canvas, framing and tile source of one map."""

    width: int = 300
    height: int = 300
    padding: tuple[int, int] = (0, 0)
    tile_size: int = 256
    zoom: int | None = None
    lon_center: float | None = None
    lat_center: float | None = None
    url_template: str = DEFAULT_URL_TEMPLATE
    skip_failed_tiles: bool = False

    def __post_init__(self) -> None:
        _int(self.width, "map.width")
        _int(self.height, "map.height")
        if not isinstance(self.padding, (list, tuple)) or len(self.padding) != 2:
            raise BuildError("map.padding", "expected an [x, y] pair")
        padding = (_int(self.padding[0], "map.padding[0]"), _int(self.padding[1], "map.padding[1]"))
        if padding[0] < 0 or padding[1] < 0:
            raise BuildError("map.padding", "must be >= 0")
        object.__setattr__(self, "padding", padding)
        if _int(self.tile_size, "map.tile_size") <= 0:
            raise BuildError("map.tile_size", "must be > 0")
        if self.zoom is not None and not 0 <= _int(self.zoom, "map.zoom") <= MAX_ZOOM:
            raise BuildError("map.zoom", f"must be between 0 and {MAX_ZOOM}")
        if self.lon_center is not None:
            object.__setattr__(self, "lon_center", _float(self.lon_center, "map.lon_center"))
        if self.lat_center is not None:
            object.__setattr__(self, "lat_center", _float(self.lat_center, "map.lat_center"))
        _str(self.url_template, "map.url_template")
        _bool(self.skip_failed_tiles, "map.skip_failed_tiles")

    @property
    def viewport(self) -> Viewport:
        return Viewport(
            width=self.width,
            height=self.height,
            tile_size=self.tile_size,
            padding=self.padding,
            zoom=self.zoom,
            lon_center=self.lon_center,
            lat_center=self.lat_center,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        padding_raw = _optional(raw, "padding", [0, 0])
        if not isinstance(padding_raw, list) or len(padding_raw) != 2:
            raise BuildError("map.padding", "expected an [x, y] pair")
        return cls(
            width=_int(raw.get("width"), "map.width"),
            height=_int(raw.get("height"), "map.height"),
            padding=(padding_raw[0], padding_raw[1]),
            tile_size=_optional(raw, "tile_size", 256),
            zoom=raw.get("zoom"),
            lon_center=raw.get("lon_center"),
            lat_center=raw.get("lat_center"),
            url_template=_optional(raw, "url_template", DEFAULT_URL_TEMPLATE),
            skip_failed_tiles=_optional(raw, "skip_failed_tiles", False),
        )


@dataclass(frozen=True, slots=True)
class FetcherConfig:
    mode: str = "http"
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout_s: float = 20.0
    max_retries: int = 0
    retry_backoff_s: float = 0.5
    max_workers: int | None = None

    def __post_init__(self) -> None:
        if self.mode not in _FETCHER_MODES:
            raise BuildError("fetcher.mode", "must be one of: " + ", ".join(_FETCHER_MODES))
        if self.max_workers is not None and _int(self.max_workers, "fetcher.max_workers") < 1:
            raise BuildError("fetcher.max_workers", "must be >= 1")
        if _int(self.max_retries, "fetcher.max_retries") < 0:
            raise BuildError("fetcher.max_retries", "must be >= 0")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> FetcherConfig:
        mode = _str(_optional(raw, "mode", "http"), "fetcher.mode").casefold()
        return cls(
            mode=mode,
            user_agent=_str(_optional(raw, "user_agent", DEFAULT_USER_AGENT), "fetcher.user_agent"),
            request_timeout_s=_float(
                _optional(raw, "request_timeout_s", 20.0), "fetcher.request_timeout_s"
            ),
            max_retries=_int(_optional(raw, "max_retries", 0), "fetcher.max_retries"),
            retry_backoff_s=_float(_optional(raw, "retry_backoff_s", 0.5), "fetcher.retry_backoff_s"),
            max_workers=raw.get("max_workers"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    map: MapConfig
    fetcher: FetcherConfig
    features: tuple[Feature, ...]
    output_path: Path | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        fetcher_raw = raw.get("fetcher")
        features_raw = _optional(raw, "features", [])
        if not isinstance(features_raw, list):
            raise BuildError("features", "expected a list")
        features: list[Feature] = []
        for idx, item in enumerate(features_raw):
            item_mapping = _mapping(item, f"features[{idx}]")
            try:
                features.append(feature_from_mapping(item_mapping, root_dir))
            except BuildError as exc:
                raise BuildError(f"features[{idx}].{exc.field}", exc.message) from exc
        output_raw = raw.get("output")
        return cls(
            source_path=source_path.resolve(),
            map=MapConfig.from_mapping(_mapping(raw.get("map"), "map")),
            fetcher=(
                FetcherConfig()
                if fetcher_raw is None
                else FetcherConfig.from_mapping(_mapping(fetcher_raw, "fetcher"))
            ),
            features=tuple(features),
            output_path=(
                None if output_raw is None else _path_from_cfg(output_raw, "output", root_dir)
            ),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate a YAML map file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise BuildError("config", "top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
