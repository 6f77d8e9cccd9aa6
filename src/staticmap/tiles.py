"""Base layer: tile addressing, fetching and compositing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image

from .bounds import Bounds
from .canvas import Canvas
from .errors import CodecError, TileError
from .fetchers import TileFetcher, TileResult

_LOGGER = logging.getLogger("staticmap.tiles")


@dataclass(frozen=True, slots=True)
class TileAddress:
    """One tile of the base layer.

    ``x``/``y`` are the unwrapped indices used for placement on the canvas;
    the URL carries the indices wrapped into the world.
    """

    x: int
    y: int
    url: str


def wrap_tile_index(index: int, zoom: int) -> int:
    return index % (1 << zoom)


def format_tile_url(template: str, zoom: int, x: int, y: int) -> str:
    """Substitute ``{z}``/``{x}``/``{y}`` (or legacy ``%z``/``%x``/``%y``)."""
    url = template
    for placeholder, value in (("z", zoom), ("x", x), ("y", y)):
        url = url.replace("{" + placeholder + "}", str(value))
        url = url.replace("%" + placeholder, str(value))
    return url


def tile_addresses(bounds: Bounds, url_template: str) -> list[TileAddress]:
    addresses: list[TileAddress] = []
    for x in range(bounds.x_min, bounds.x_max):
        for y in range(bounds.y_min, bounds.y_max):
            url = format_tile_url(
                url_template,
                bounds.zoom,
                wrap_tile_index(x, bounds.zoom),
                wrap_tile_index(y, bounds.zoom),
            )
            addresses.append(TileAddress(x=x, y=y, url=url))
    return addresses


def draw_base_layer(
    canvas: Canvas,
    bounds: Bounds,
    url_template: str,
    fetcher: TileFetcher,
    *,
    skip_failed_tiles: bool = False,
) -> list[TileError]:
    """Fetch every tile covering ``bounds`` and paste it onto ``canvas``.

    The first failing tile aborts with its ``TileError`` unless
    ``skip_failed_tiles`` is set, in which case failures are logged, left
    blank and returned.
    """
    addresses = tile_addresses(bounds, url_template)
    _LOGGER.debug(
        "Requesting %d tiles at zoom %d (x %d..%d, y %d..%d)",
        len(addresses),
        bounds.zoom,
        bounds.x_min,
        bounds.x_max,
        bounds.y_min,
        bounds.y_max,
    )
    results = fetcher.fetch([address.url for address in addresses])
    if len(results) != len(addresses):
        raise TileError(
            url_template,
            f"fetcher returned {len(results)} results for {len(addresses)} tiles",
        )

    skipped: list[TileError] = []
    for address, result in zip(addresses, results):
        try:
            tile = _decode_tile(address, result, bounds.tile_size)
        except TileError as exc:
            if not skip_failed_tiles:
                raise
            _LOGGER.warning("Skipping tile: %s", exc)
            skipped.append(exc)
            continue
        canvas.paste(
            tile,
            int(bounds.x_to_px(address.x)),
            int(bounds.y_to_px(address.y)),
        )
    return skipped


def _decode_tile(address: TileAddress, result: TileResult, tile_size: int) -> Image.Image:
    if isinstance(result, TileError):
        raise result
    if isinstance(result, BaseException):
        raise TileError(address.url, result) from result
    try:
        tile = Canvas.decode_png(result)
    except CodecError as exc:
        raise TileError(address.url, exc) from exc
    if tile.size != (tile_size, tile_size):
        tile = tile.resize((tile_size, tile_size), resample=Image.Resampling.NEAREST)
    return tile

