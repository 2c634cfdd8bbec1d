"""Tests for geometry helpers: rotation, world transforms and bboxes."""

import pytest

from gridroute.errors import InvalidGeometryError
from gridroute.geometry import (
    body_bbox,
    footprint_bbox,
    local_footprint_bbox,
    outline_bbox,
    path_cells,
    path_crosses_bbox,
    path_edges,
    pin_positions,
    pin_stubs,
    rotate_pad,
    segments_overlap,
    to_world,
)
from gridroute.models import BBox, Component, Pad


@pytest.fixture
def amplifier():
    """Symbol with a 3x3 body and two pins with two-cell stubs."""
    pads = (
        Pad("1", (-3, 0), "IN", tip=(-1, 0)),
        Pad("2", (3, 0), "OUT", tip=(1, 0)),
    )
    return Component("U1", pads, (10, 10), body=BBox(-1, -1, 1, 1))


class TestRotatePad:
    """Tests for rotate_pad."""

    @pytest.mark.parametrize(
        "rotation,expected",
        [(0, (1, 0)), (90, (0, 1)), (180, (-1, 0)), (270, (0, -1))],
    )
    def test_quarter_turns(self, rotation, expected):
        assert rotate_pad((1, 0), rotation) == expected

    def test_four_turns_is_identity(self):
        point = (3, -2)
        for _ in range(4):
            point = rotate_pad(point, 90)
        assert point == (3, -2)

    def test_invalid_rotation(self):
        with pytest.raises(InvalidGeometryError):
            rotate_pad((1, 0), 30)


class TestWorldTransform:
    """Tests for to_world and pin positions."""

    def test_translation(self, resistor):
        assert pin_positions(resistor("R1", (5, 5))) == [(5, 5), (7, 5)]

    def test_rotation(self, resistor):
        assert pin_positions(resistor("R1", (5, 5), rotation=90)) == [(5, 5), (5, 7)]

    def test_mirror_before_rotation(self, resistor):
        """Test that mirror negates the column before rotating."""
        comp = resistor("R1", (5, 5), mirror=True)
        assert pin_positions(comp) == [(5, 5), (3, 5)]
        comp = resistor("R1", (5, 5), mirror=True, rotation=90)
        assert pin_positions(comp) == [(5, 5), (5, 3)]

    def test_unplaced_component(self, resistor):
        with pytest.raises(InvalidGeometryError):
            to_world(resistor("R1"), (0, 0))

    def test_pin_stubs(self, amplifier):
        assert pin_stubs(amplifier) == [((7, 10), (9, 10)), ((13, 10), (11, 10))]


class TestBoundingBoxes:
    """Tests for footprint, body and outline boxes."""

    def test_local_footprint_without_span(self):
        assert local_footprint_bbox([(0, 0), (2, 0)], 0) == BBox(0, 0, 2, 0)

    def test_local_footprint_span_is_centred(self):
        """Test that a span grows the pad box evenly on both sides."""
        assert local_footprint_bbox([(0, 0), (2, 0)], 0, (3, 3)) == BBox(0, -1, 2, 1)

    def test_local_footprint_span_rotates(self):
        assert local_footprint_bbox([(0, 0), (2, 0)], 90, (3, 1)) == BBox(0, 0, 0, 2)

    def test_local_footprint_without_pads(self):
        """Test that a part with no pads still covers its span."""
        assert local_footprint_bbox([], 0) == BBox(0, 0, 0, 0)
        assert local_footprint_bbox([], 0, (4, 4)) == BBox(-1, -1, 2, 2)

    def test_pinless_footprint_bbox(self):
        heatsink = Component("HS", (), (5, 5), span=(4, 4))
        box = footprint_bbox(heatsink)
        assert box == BBox(4, 4, 7, 7)
        assert box.width * box.height == 16

    def test_footprint_bbox_rotated(self, resistor):
        assert footprint_bbox(resistor("R1", (5, 5), rotation=90)) == BBox(5, 5, 5, 7)

    def test_footprint_bbox_at_other_position(self, resistor):
        comp = resistor("R1", (5, 5))
        assert footprint_bbox(comp, position=(0, 0), rotation=180) == BBox(-2, 0, 0, 0)

    def test_body_bbox(self, amplifier):
        assert body_bbox(amplifier) == BBox(9, 9, 11, 11)

    def test_outline_includes_stubs(self, amplifier):
        assert outline_bbox(amplifier, 0) == BBox(7, 9, 13, 11)
        assert outline_bbox(amplifier, 1) == BBox(6, 8, 14, 12)


class TestPathCells:
    """Tests for walking paths cell by cell."""

    def test_path_cells(self):
        cells = path_cells([(0, 0), (2, 0), (2, 2)])
        assert cells == [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)]

    def test_path_edges(self):
        assert len(path_edges([(0, 0), (2, 0), (2, 2)])) == 4

    def test_segments_overlap(self):
        """Test that only a shared span of nonzero length counts."""
        assert segments_overlap((0, 0), (3, 0), (2, 0), (5, 0))
        assert not segments_overlap((0, 0), (2, 0), (2, 0), (4, 0))
        assert not segments_overlap((0, 0), (3, 0), (1, -1), (1, 1))

    def test_path_crosses_bbox_ignores_endpoints(self):
        assert not path_crosses_bbox([(0, 0), (4, 0)], BBox(4, 0, 5, 1))
        assert path_crosses_bbox([(0, 0), (4, 0)], BBox(2, 0, 2, 0))
