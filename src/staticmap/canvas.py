"""Pillow-backed RGBA drawing surface and PNG codec."""

from __future__ import annotations

import io
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from PIL import Image, ImageDraw, UnidentifiedImageError

from .errors import CodecError, InvalidSizeError
from .models import Color


PixelPoint = tuple[float, float]
PixelBox = tuple[float, float, float, float]


class Canvas:
    """RGBA pixel buffer that features and tiles are drawn onto.

    Shape primitives are rendered on a transparent layer and alpha-composited
    so translucent colors blend with the basemap; ``paste`` overwrites.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise InvalidSizeError(width, height)
        self._image = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def image(self) -> Image.Image:
        return self._image

    @contextmanager
    def _layer(self) -> Iterator[ImageDraw.ImageDraw]:
        layer = Image.new("RGBA", self._image.size, (0, 0, 0, 0))
        yield ImageDraw.Draw(layer)
        self._image.alpha_composite(layer)

    def fill_polygon(self, points: Sequence[PixelPoint], color: Color) -> None:
        if len(points) < 3:
            return
        with self._layer() as draw:
            draw.polygon(list(points), fill=color.rgba)

    def stroke_path(self, points: Sequence[PixelPoint], color: Color, width: float) -> None:
        """Stroke an open polyline with round caps and joints."""
        if not points:
            return
        line_width = max(int(round(width)), 1)
        radius = width / 2.0
        with self._layer() as draw:
            if len(points) > 1:
                draw.line(list(points), fill=color.rgba, width=line_width, joint="curve")
            if radius >= 1.0:
                for x, y in (points[0], points[-1]):
                    draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color.rgba)

    def fill_ellipse(self, center: PixelPoint, radius: float, color: Color) -> None:
        x, y = center
        with self._layer() as draw:
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color.rgba)

    def stroke_ellipse(self, center: PixelPoint, radius: float, color: Color, width: float) -> None:
        x, y = center
        with self._layer() as draw:
            draw.ellipse(
                (x - radius, y - radius, x + radius, y + radius),
                outline=color.rgba,
                width=max(int(round(width)), 1),
            )

    def fill_rect(self, box: PixelBox, color: Color) -> None:
        with self._layer() as draw:
            draw.rectangle(_ordered_box(box), fill=color.rgba)

    def stroke_rect(self, box: PixelBox, color: Color, width: float) -> None:
        with self._layer() as draw:
            draw.rectangle(_ordered_box(box), outline=color.rgba, width=max(int(round(width)), 1))

    def paste(self, image: Image.Image, x: int, y: int) -> None:
        """Overwrite pixels with ``image`` at ``(x, y)``; off-canvas parts are clipped."""
        self._image.paste(image, (x, y))

    def composite(self, image: Image.Image, x: int, y: int) -> None:
        """Blend an RGBA image over the canvas at ``(x, y)``; off-canvas parts are clipped."""
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        self._image.paste(rgba, (x, y), rgba)

    def encode_png(self) -> bytes:
        buffer = io.BytesIO()
        try:
            self._image.save(buffer, format="PNG")
        except (OSError, ValueError) as exc:
            raise CodecError(f"PNG encoding failed: {exc}") from exc
        return buffer.getvalue()

    def save_png(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.encode_png())
        return output_path

    @staticmethod
    def decode_png(data: bytes) -> Image.Image:
        """Decode image bytes into a detached RGBA image."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                return image.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise CodecError(f"Image decoding failed: {exc}") from exc


def _ordered_box(box: PixelBox) -> PixelBox:
    left, top, right, bottom = box
    return (min(left, right), min(top, bottom), max(left, right), max(top, bottom))
