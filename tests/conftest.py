"""Shared pytest fixtures for staticmap tests."""

import io
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from staticmap.errors import TileError


TILE_COLOR = (200, 210, 220, 255)


def png_bytes(width, height, color):
    """Encode a solid-color RGBA PNG."""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeTileFetcher:
    """In-memory fetcher serving one solid tile and recording every call."""

    def __init__(self, tile_bytes, failing_urls=()):
        self.tile_bytes = tile_bytes
        self.failing_urls = set(failing_urls)
        self.calls = []

    def fetch(self, urls):
        self.calls.append(list(urls))
        results = []
        for url in urls:
            if url in self.failing_urls:
                results.append(TileError(url, "HTTP 500 from fake server"))
            else:
                results.append(self.tile_bytes)
        return results


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def tile_png():
    """A 256x256 opaque tile in TILE_COLOR."""
    return png_bytes(256, 256, TILE_COLOR)


@pytest.fixture
def fake_fetcher(tile_png):
    return FakeTileFetcher(tile_png)


@pytest.fixture
def icon_png():
    """A 4x4 opaque red icon."""
    return png_bytes(4, 4, (255, 0, 0, 255))
