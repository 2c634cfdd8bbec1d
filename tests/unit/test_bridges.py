"""Tests for bridge detection and single-connection drawing."""

import pytest

from gridroute.bridges import bridge_crosses, draw_connection, is_adjacent
from gridroute.errors import NoticeKind
from gridroute.geometry import path_cells
from gridroute.models import Board, Side, SolderBridge, Wire, WireBridge


class TestIsAdjacent:
    """Tests for is_adjacent."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ((2, 2), (2, 3), True),
            ((2, 2), (3, 2), True),
            ((2, 2), (3, 3), False),
            ((2, 2), (2, 2), False),
            ((2, 2), (2, 4), False),
        ],
    )
    def test_adjacency_is_symmetric(self, a, b, expected):
        assert is_adjacent(a, b) is expected
        assert is_adjacent(b, a) is expected


class TestBridgeCrosses:
    """Tests for bridge_crosses."""

    def test_perpendicular_wire_through_bridge(self):
        wire = Wire("w", ((2, 0), (2, 4)))
        assert bridge_crosses((2, 2), (3, 2), [wire])

    def test_wire_ending_on_bridge_joins_it(self):
        wire = Wire("w", ((2, 0), (2, 2)))
        assert not bridge_crosses((2, 2), (3, 2), [wire])

    def test_parallel_wire(self):
        wire = Wire("w", ((0, 2), (1, 2)))
        assert not bridge_crosses((2, 2), (3, 2), [wire])

    def test_other_side_is_ignored(self):
        wire = Wire("w", ((2, 0), (2, 4)), Side.TOP)
        assert not bridge_crosses((2, 2), (3, 2), [wire])
        assert bridge_crosses((2, 2), (3, 2), [wire], Side.TOP)

    def test_vertical_bridge(self):
        wire = Wire("w", ((0, 3), (6, 3)))
        assert bridge_crosses((4, 2), (4, 3), [wire])


class TestDrawConnection:
    """Tests for draw_connection."""

    def test_adjacent_holes_make_a_solder_bridge(self):
        result = draw_connection((2, 2), (2, 3), [], [], Board(10, 10))
        assert result.ok
        assert isinstance(result.connection, SolderBridge)

    def test_crossing_bridge_is_rejected(self):
        wire = Wire("w", ((0, 2), (5, 2)))
        result = draw_connection((2, 2), (2, 3), [], [wire], Board(10, 10))
        assert not result.ok
        assert result.notice.kind == NoticeKind.BRIDGE_REJECTED

    def test_solder_bridge_needs_adjacent_holes(self):
        result = draw_connection((2, 2), (2, 5), [], [], Board(10, 10), kind="solder_bridge")
        assert result.notice.kind == NoticeKind.BRIDGE_REJECTED

    def test_wire_avoids_pads(self, test_point):
        tp = test_point("TP1", (2, 1))
        result = draw_connection((0, 1), (5, 1), [tp], [], Board(10, 10), net_id="N1")
        wire = result.connection
        assert isinstance(wire, Wire)
        assert (2, 1) not in path_cells(wire.points)
        assert wire.net_id == "N1"
        assert wire.id == "wire-0-1-5-1"

    def test_wire_avoids_same_side_connections(self):
        existing = Wire("w", ((3, 0), (3, 2)))
        result = draw_connection((0, 1), (6, 1), [], [existing], Board(10, 10))
        assert not {(3, 0), (3, 1), (3, 2)} & set(path_cells(result.connection.points))

    def test_no_path(self):
        existing = Wire("w", ((3, 0), (3, 4)))
        result = draw_connection((0, 1), (6, 1), [], [existing], Board(10, 5))
        assert result.notice.kind == NoticeKind.NO_ROUTE_FOUND

    def test_wire_bridge(self):
        result = draw_connection((0, 0), (0, 5), [], [], Board(10, 10), kind="wire_bridge", connection_id="j1")
        assert isinstance(result.connection, WireBridge)
        assert result.connection.id == "j1"
        assert result.connection.side == Side.TOP

    def test_wire_bridge_blocked_by_either_side(self):
        existing = Wire("w", ((0, 2), (4, 2)), Side.BOTTOM)
        result = draw_connection((0, 0), (0, 5), [], [existing], Board(10, 10), kind="wire_bridge")
        assert result.notice.kind == NoticeKind.NO_ROUTE_FOUND

    def test_same_point(self):
        result = draw_connection((1, 1), (1, 1), [], [], Board(10, 10))
        assert not result.ok
