"""Exception types raised while building and rendering maps."""

from __future__ import annotations


class StaticMapError(Exception):
    """Base class for every failure surfaced by a map render."""


class BuildError(StaticMapError, ValueError):
    """A feature or map configuration is missing a field or has an invalid one."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InvalidSizeError(StaticMapError):
    """The requested canvas has zero area."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"Width or height of map is invalid: {width}x{height}")
        self.width = width
        self.height = height


class TileError(StaticMapError):
    """Fetching or decoding a single tile failed."""

    def __init__(self, url: str, cause: BaseException | str) -> None:
        super().__init__(f"Failed to get tile with url {url}: {cause}")
        self.url = url
        self.cause = cause


class CodecError(StaticMapError):
    """PNG encoding of the final image or decoding of an icon failed."""
