"""CLI entrypoint for rendering static maps from YAML map files."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .errors import BuildError
from .render import build_map, format_render_lines, run_render
from .util import setup_logging

LOGGER = logging.getLogger("staticmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticmap",
        description="Render static PNG maps from raster tiles and overlays.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="map.yaml", help="Path to YAML map file.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")

    render_p = subparsers.add_parser("render", help="Render the map and write a PNG.")
    add_common(render_p)
    render_p.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output PNG path. Overrides 'output' in the config.",
    )
    render_p.add_argument(
        "--offline",
        action="store_true",
        help="Use placeholder tiles instead of downloading the basemap.",
    )

    plan_p = subparsers.add_parser(
        "plan",
        help="Resolve zoom, center and tile URLs without fetching anything.",
    )
    add_common(plan_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig | None:
    setup_logging(args.log_file, verbose=args.verbose)
    try:
        return load_config(args.config)
    except (BuildError, FileNotFoundError) as exc:
        LOGGER.error("Invalid config %s: %s", args.config, exc)
        return None


def _run_render(cfg: AppConfig, *, output_path: Path | None, offline: bool) -> int:
    report = run_render(cfg, output_path=output_path, offline=offline)
    for line in format_render_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_plan(cfg: AppConfig) -> int:
    static_map = build_map(cfg, offline=True)
    bounds = static_map.resolve_bounds()
    LOGGER.info(
        "Canvas %dx%d, tile size %d, zoom %d",
        bounds.width,
        bounds.height,
        bounds.tile_size,
        bounds.zoom,
    )
    LOGGER.info("Center (tile units): x=%.6f, y=%.6f", bounds.x_center, bounds.y_center)
    LOGGER.info(
        "Tile range: x=[%d, %d), y=[%d, %d) -> %d tiles",
        bounds.x_min,
        bounds.x_max,
        bounds.y_min,
        bounds.y_max,
        bounds.tile_count,
    )
    for url in static_map.tile_urls():
        LOGGER.info("  %s", url)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    if cfg is None:
        return 1
    command = str(args.command)
    if command == "render":
        return _run_render(cfg, output_path=args.output, offline=bool(args.offline))
    if command == "plan":
        return _run_plan(cfg)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
