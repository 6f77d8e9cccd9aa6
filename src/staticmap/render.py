"""Map composition: base layer plus features drawn in insertion order."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .bounds import Bounds, build_bounds
from .canvas import Canvas
from .config import AppConfig, MapConfig
from .errors import StaticMapError, TileError
from .features import Circle, Feature, Icon, Line, Rect
from .fetchers import HttpTileFetcher, TileFetcher, build_fetcher
from .tiles import draw_base_layer, tile_addresses

_LOGGER = logging.getLogger("staticmap.render")

_SUPPORTED_FEATURES = (Line, Circle, Icon, Rect)


class StaticMap:
    """A map image under construction.

    Features are drawn in the order they were added. Each call to
    ``render`` resolves a fresh ``Bounds`` and canvas, so a map can be
    rendered repeatedly.
    """

    def __init__(self, config: MapConfig | None = None, fetcher: TileFetcher | None = None) -> None:
        self.config = config or MapConfig()
        self.fetcher: TileFetcher = fetcher or HttpTileFetcher()
        self._features: list[Feature] = []
        self.skipped_tiles: list[TileError] = []

    @property
    def features(self) -> tuple[Feature, ...]:
        return tuple(self._features)

    def add_feature(self, feature: Feature) -> None:
        if not isinstance(feature, _SUPPORTED_FEATURES):
            raise TypeError(f"Unsupported feature type: {type(feature).__name__}")
        self._features.append(feature)

    def extend(self, features: Sequence[Feature]) -> None:
        for feature in features:
            self.add_feature(feature)

    def resolve_bounds(self) -> Bounds:
        return build_bounds(self.config.viewport, self._features)

    def tile_urls(self) -> list[str]:
        addresses = tile_addresses(self.resolve_bounds(), self.config.url_template)
        return [address.url for address in addresses]

    def render(self) -> Canvas:
        canvas = Canvas(self.config.width, self.config.height)
        bounds = self.resolve_bounds()
        _LOGGER.info(
            "Rendering %dx%d map at zoom %d, center (%.4f, %.4f), with %d features and %d tiles",
            bounds.width,
            bounds.height,
            bounds.zoom,
            bounds.x_center,
            bounds.y_center,
            len(self._features),
            bounds.tile_count,
        )
        self.skipped_tiles = draw_base_layer(
            canvas,
            bounds,
            self.config.url_template,
            self.fetcher,
            skip_failed_tiles=self.config.skip_failed_tiles,
        )
        for feature in self._features:
            feature.draw(bounds, canvas)
        return canvas

    def encode_png(self) -> bytes:
        return self.render().encode_png()

    def save_png(self, path: str | Path) -> Path:
        return self.render().save_png(path)


@dataclass(slots=True)
class RenderReport:
    output_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def build_map(cfg: AppConfig, *, offline: bool = False) -> StaticMap:
    static_map = StaticMap(cfg.map, build_fetcher(cfg.fetcher, offline=offline))
    static_map.extend(cfg.features)
    return static_map


def run_render(
    cfg: AppConfig,
    *,
    output_path: Path | None = None,
    offline: bool = False,
) -> RenderReport:
    """Render the map described by ``cfg`` and write it as PNG."""
    target = output_path or cfg.output_path
    report = RenderReport(output_path=target)
    if target is None:
        report.add_error("No output path given; pass --output or set 'output' in the config.")
        return report

    static_map = build_map(cfg, offline=offline)
    if offline or cfg.fetcher.mode == "noop":
        report.add_info("Offline mode: basemap tiles replaced by a placeholder image.")

    started = time.monotonic()
    try:
        bounds = static_map.resolve_bounds()
        canvas = static_map.render()
        canvas.save_png(target)
    except TileError as exc:
        report.add_error(f"Tile fetch failed for {exc.url}: {exc.cause}")
        return report
    except StaticMapError as exc:
        report.add_error(f"Render failed: {exc}")
        return report
    except OSError as exc:
        report.add_error(f"Failed writing {target}: {exc}")
        return report
    finally:
        if isinstance(static_map.fetcher, HttpTileFetcher):
            static_map.fetcher.close()

    for skipped in static_map.skipped_tiles:
        report.add_warning(f"Tile left blank: {skipped.url} ({skipped.cause})")
    report.summary = {
        "width": bounds.width,
        "height": bounds.height,
        "zoom": bounds.zoom,
        "features": len(static_map.features),
        "tiles": bounds.tile_count,
        "tiles_skipped": len(static_map.skipped_tiles),
    }
    report.add_info(
        "Render summary: "
        f"size={bounds.width}x{bounds.height}, "
        f"zoom={bounds.zoom}, "
        f"features={len(static_map.features)}, "
        f"tiles={bounds.tile_count}, "
        f"elapsed={time.monotonic() - started:.2f}s"
    )
    report.add_info(f"Map written to {target}")
    return report


def format_render_lines(report: RenderReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Map rendering completed with no errors.")
    return lines
