"""Tests for the staticmap.features module."""

import pytest
from PIL import Image

from staticmap.bounds import Bounds
from staticmap.canvas import Canvas
from staticmap.errors import BuildError
from staticmap.features import Circle, Icon, Line, Rect, feature_from_mapping
from staticmap.models import BLACK, Color, GeoPoint
from staticmap.projection import lat_to_y, lon_to_x

from conftest import png_bytes


RED = Color(255, 0, 0)


@pytest.fixture
def world_bounds():
    """A 100x100 canvas centred on (0, 0) at zoom 0."""
    return Bounds(
        width=100,
        height=100,
        tile_size=256,
        zoom=0,
        x_center=0.5,
        y_center=0.5,
        x_min=0,
        x_max=1,
        y_min=0,
        y_max=1,
    )


@pytest.fixture
def canvas():
    return Canvas(100, 100)


def _alpha(canvas, x, y):
    return canvas.image.getpixel((x, y))[3]


class TestLine:
    """Tests for the Line feature."""

    def test_defaults(self):
        line = Line(points=[(13.4, 52.5), (2.3, 48.9)])
        assert line.points == (GeoPoint(13.4, 52.5), GeoPoint(2.3, 48.9))
        assert line.color == BLACK
        assert line.width == 1.0
        assert line.simplify is False
        assert line.tolerance == 5.0

    def test_extent_is_bounding_box_of_points(self):
        line = Line(points=[(13.4, 52.5), (2.3, 48.9), (8.0, 50.1)])
        assert line.extent(10, 256) == (2.3, 48.9, 13.4, 52.5)

    def test_from_coordinates(self):
        line = Line.from_coordinates([1.0, 2.0], [3.0, 4.0], width=2)
        assert line.points == ((1.0, 3.0), (2.0, 4.0))
        assert line.width == 2.0

    def test_mismatched_coordinates_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Line.from_coordinates([1.0, 2.0], [3.0])
        assert exc_info.value.field == "line.lat_coordinates"

    def test_empty_points_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Line(points=[])
        assert exc_info.value.field == "line.points"

    def test_non_finite_coordinate_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Line(points=[(0.0, float("nan"))])
        assert exc_info.value.field == "line.points[0].lat"

    def test_negative_width_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Line(points=[(0.0, 0.0)], width=-1)
        assert exc_info.value.field == "line.width"

    def test_from_mapping_with_coordinate_lists(self):
        line = Line.from_mapping(
            {
                "lon_coordinates": [13.4, 2.3],
                "lat_coordinates": [52.5, 48.9],
                "color": "#ff0000",
                "width": 3,
                "simplify": True,
            }
        )
        assert line.color == RED
        assert line.width == 3.0
        assert line.simplify is True

    def test_from_mapping_missing_coordinates(self):
        with pytest.raises(BuildError) as exc_info:
            Line.from_mapping({"color": "red"})
        assert exc_info.value.field == "line.lon_coordinates"

    def test_simplified_pixel_points(self, world_bounds):
        line = Line(
            points=[(0.0, 0.0), (0.1, 0.0), (0.2, 0.0), (20.0, 0.0)],
            simplify=True,
            tolerance=5.0,
        )
        assert len(line.pixel_points(world_bounds)) == 2

    def test_draw_strokes_through_points(self, world_bounds, canvas):
        Line(points=[(-10.0, 0.0), (10.0, 0.0)], color=RED, width=3).draw(world_bounds, canvas)
        assert canvas.image.getpixel((50, 50)) == (255, 0, 0, 255)
        assert _alpha(canvas, 50, 10) == 0


class TestCircle:
    """Tests for the Circle feature."""

    def test_pixel_radius_extent(self):
        circle = Circle(center=(0.0, 0.0), radius=10)
        lon_min, lat_min, lon_max, lat_max = circle.extent(0, 256)
        assert lon_min == pytest.approx(-14.0625)
        assert lon_max == pytest.approx(14.0625)
        assert lat_min == pytest.approx(-lat_max)

    def test_extent_shrinks_with_zoom(self):
        circle = Circle(center=(5.0, 45.0), radius=10)
        low = circle.extent(3, 256)
        high = circle.extent(8, 256)
        assert (high[2] - high[0]) < (low[2] - low[0])

    def test_meter_radius_grows_with_latitude(self):
        radius = 500 * 1609.34
        at_equator = Circle(center=(0.0, 0.0), radius=radius, radius_in_meters=True)
        at_edinburgh = Circle(center=(-3.19, 55.98), radius=radius, radius_in_meters=True)
        at_arctic = Circle(center=(20.0, 70.0), radius=radius, radius_in_meters=True)
        assert (
            at_equator.radius_px(3, 256)
            < at_edinburgh.radius_px(3, 256)
            < at_arctic.radius_px(3, 256)
        )

    def test_pixel_radius_ignores_zoom(self):
        circle = Circle(center=(0.0, 0.0), radius=7)
        assert circle.radius_px(2, 256) == circle.radius_px(15, 256) == 7.0

    def test_zero_stroke_width_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Circle(center=(0.0, 0.0), stroke_width=0)
        assert exc_info.value.field == "circle.stroke_width"

    def test_from_mapping(self):
        circle = Circle.from_mapping(
            {"lon": 4.0, "lat": 54.0, "radius": 3, "color": [0, 0, 255, 128]}
        )
        assert circle.center == GeoPoint(4.0, 54.0)
        assert circle.radius == 3.0
        assert circle.color == Color(0, 0, 255, 128)

    def test_from_mapping_missing_lat(self):
        with pytest.raises(BuildError) as exc_info:
            Circle.from_mapping({"lon": 4.0})
        assert exc_info.value.field == "circle.lat"

    def test_filled_draw(self, world_bounds, canvas):
        Circle(center=(0.0, 0.0), radius=5, color=RED).draw(world_bounds, canvas)
        assert canvas.image.getpixel((50, 50)) == (255, 0, 0, 255)
        assert _alpha(canvas, 80, 50) == 0

    def test_stroked_draw_leaves_centre_empty(self, world_bounds, canvas):
        Circle(center=(0.0, 0.0), radius=20, color=RED, stroke_width=2).draw(world_bounds, canvas)
        assert _alpha(canvas, 50, 50) == 0
        assert any(_alpha(canvas, x, 50) > 0 for x in range(66, 72))


class TestIcon:
    """Tests for the Icon feature."""

    def test_from_bytes(self, icon_png):
        icon = Icon.from_bytes((1.0, 2.0), icon_png, x_offset=2, y_offset=2)
        assert icon.image.size == (4, 4)
        assert icon.image.mode == "RGBA"
        assert icon.x_offset == 2.0

    def test_invalid_bytes_rejected(self):
        with pytest.raises(BuildError) as exc_info:
            Icon.from_bytes((0.0, 0.0), b"definitely not an image")
        assert exc_info.value.field == "icon.image"

    def test_missing_file_rejected(self, temp_dir):
        with pytest.raises(BuildError) as exc_info:
            Icon.from_path((0.0, 0.0), temp_dir / "missing.png")
        assert exc_info.value.field == "icon.path"

    def test_from_mapping_resolves_relative_path(self, temp_dir, icon_png):
        (temp_dir / "pin.png").write_bytes(icon_png)
        icon = Icon.from_mapping({"lon": 1.0, "lat": 2.0, "path": "pin.png"}, temp_dir)
        assert icon.center == GeoPoint(1.0, 2.0)

    def test_extent_follows_offsets(self):
        """A pin anchored at its bottom centre extends only above the point."""
        image = Image.new("RGBA", (20, 40), (0, 0, 0, 255))
        icon = Icon(center=(10.0, 45.0), image=image, x_offset=10, y_offset=40)
        lon_min, lat_min, lon_max, lat_max = icon.extent(5, 256)
        assert lat_min == pytest.approx(45.0)
        assert lat_max > 45.0
        x = lon_to_x(10.0, 5)
        assert lon_to_x(lon_min, 5) == pytest.approx(x - 10 / 256)
        assert lon_to_x(lon_max, 5) == pytest.approx(x + 10 / 256)

    def test_extent_top_edge(self):
        image = Image.new("RGBA", (20, 40), (0, 0, 0, 255))
        icon = Icon(center=(10.0, 45.0), image=image, x_offset=10, y_offset=40)
        lat_max = icon.extent(5, 256)[3]
        assert lat_to_y(lat_max, 5) == pytest.approx(lat_to_y(45.0, 5) - 40 / 256)

    def test_draw_places_anchor_on_point(self, world_bounds, canvas, icon_png):
        Icon.from_bytes((0.0, 0.0), icon_png, x_offset=2, y_offset=2).draw(world_bounds, canvas)
        assert canvas.image.getpixel((48, 48)) == (255, 0, 0, 255)
        assert canvas.image.getpixel((51, 51)) == (255, 0, 0, 255)
        assert _alpha(canvas, 52, 52) == 0
        assert _alpha(canvas, 47, 47) == 0

    def test_image_excluded_from_equality(self):
        first = Icon(center=(0.0, 0.0), image=Image.new("RGBA", (2, 2)))
        second = Icon(center=(0.0, 0.0), image=Image.new("RGBA", (3, 3)))
        assert first == second


class TestRect:
    """Tests for the Rect feature."""

    def test_extent_normalises_edges(self):
        rect = Rect(north=10.0, south=20.0, east=-5.0, west=5.0)
        assert rect.extent(0, 256) == (-5.0, 10.0, 5.0, 20.0)

    def test_from_mapping_requires_all_edges(self):
        with pytest.raises(BuildError) as exc_info:
            Rect.from_mapping({"north": 1.0, "south": 0.0, "east": 1.0})
        assert exc_info.value.field == "rect.west"

    def test_filled_draw(self, world_bounds, canvas):
        Rect(north=10.0, south=-10.0, east=10.0, west=-10.0, color=RED).draw(world_bounds, canvas)
        assert canvas.image.getpixel((50, 50)) == (255, 0, 0, 255)
        assert _alpha(canvas, 5, 5) == 0

    def test_stroked_draw(self, world_bounds, canvas):
        rect = Rect(north=10.0, south=-10.0, east=10.0, west=-10.0, color=RED, stroke_width=1)
        rect.draw(world_bounds, canvas)
        assert _alpha(canvas, 50, 50) == 0
        assert _alpha(canvas, 43, 50) > 0


class TestFeatureFromMapping:
    """Tests for feature_from_mapping dispatch."""

    def test_dispatches_on_type(self):
        feature = feature_from_mapping({"type": "Rect", "north": 1, "south": 0, "east": 1, "west": 0})
        assert isinstance(feature, Rect)

    def test_unknown_type(self):
        with pytest.raises(BuildError) as exc_info:
            feature_from_mapping({"type": "polygon"})
        assert exc_info.value.field == "type"

    def test_icon_needs_path(self):
        with pytest.raises(BuildError) as exc_info:
            feature_from_mapping({"type": "icon", "lon": 0, "lat": 0})
        assert exc_info.value.field == "icon.path"

    def test_builds_icon_from_file(self, temp_dir):
        (temp_dir / "dot.png").write_bytes(png_bytes(3, 3, (0, 255, 0, 255)))
        feature = feature_from_mapping(
            {"type": "icon", "lon": 0, "lat": 0, "path": "dot.png"}, temp_dir
        )
        assert isinstance(feature, Icon)
        assert feature.image.size == (3, 3)
