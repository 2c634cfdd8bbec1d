"""
Tests for the path search module.

These tests cover the shortcut routes, the A* fallback, blocking rules
and the path helpers used for persistence.
"""

import pytest

from gridroute.errors import NoRouteFoundError
from gridroute.geometry import path_cells, path_edges
from gridroute.models import BBox, Board, make_edge
from gridroute.obstacles import Obstacle
from gridroute.search import (
    count_turns,
    fallback_l_route,
    require_route,
    route_length,
    search,
    search_window,
    simplify_path,
    solder_points,
    straight_bridge_route,
    support_points,
)


def is_canonical(points):
    if any(a == b for a, b in zip(points, points[1:])):
        return False
    for a, b, c in zip(points, points[1:], points[2:]):
        if a[0] == b[0] == c[0] or a[1] == b[1] == c[1]:
            return False
    return True


class TestShortcuts:
    """Tests for direct, L and Z routes."""

    def test_start_equals_goal(self):
        assert search((3, 3), (3, 3)) is None

    def test_adjacent_cells(self):
        """Test that adjacent holes give a single-segment path."""
        assert search((2, 2), (2, 3)) == [(2, 2), (2, 3)]

    def test_direct_line(self):
        assert search((0, 0), (5, 0)) == [(0, 0), (5, 0)]

    def test_l_route_horizontal_first(self):
        assert search((0, 0), (3, 4)) == [(0, 0), (3, 0), (3, 4)]

    def test_l_route_vertical_first_when_corner_blocked(self):
        path = search((0, 0), (3, 4), blocked_cells=[(3, 0)])
        assert path == [(0, 0), (0, 4), (3, 4)]

    def test_z_route_when_both_corners_blocked(self):
        """Test that a two-corner route is found around blocked corners."""
        path = search((0, 0), (4, 4), blocked_cells=[(4, 0), (0, 4)])
        assert len(path) == 4
        assert route_length(path) == 8
        assert count_turns(path) == 2


class TestObstacleFreeProperties:
    """Properties that hold on an empty grid."""

    @pytest.mark.parametrize(
        "start,goal",
        [((0, 0), (7, 3)), ((5, 5), (1, 9)), ((2, 8), (2, 1)), ((9, 0), (0, 9)), ((3, 3), (4, 4))],
    )
    def test_length_and_canonical_form(self, start, goal):
        path = search(start, goal)
        assert path[0] == start
        assert path[-1] == goal
        assert route_length(path) == abs(start[0] - goal[0]) + abs(start[1] - goal[1])
        assert count_turns(path) <= 1
        assert is_canonical(path)

    def test_deterministic(self):
        blocked = [(3, y) for y in range(0, 8)]
        first = search((0, 0), (6, 0), blocked_cells=blocked, bounds=Board(10, 10))
        second = search((0, 0), (6, 0), blocked_cells=blocked, bounds=Board(10, 10))
        assert first == second


class TestAStar:
    """Tests for the A* fallback and blocking rules."""

    def test_blocked_straight_line_goes_around(self):
        path = search((0, 0), (4, 0), blocked_cells=[(2, 0)], bounds=Board(5, 3))
        assert path[0] == (0, 0)
        assert path[-1] == (4, 0)
        assert (2, 0) not in path_cells(path)
        assert is_canonical(path)

    def test_wall_with_gap(self):
        """Test routing through the single gap in a wall."""
        wall = [(3, y) for y in range(0, 9)]
        path = search((0, 0), (6, 0), blocked_cells=wall, bounds=Board(10, 10))
        cells = path_cells(path)
        assert (3, 9) in cells
        assert not set(wall) & set(cells)

    def test_unreachable(self):
        ring = [(4, 5), (6, 5), (5, 4), (5, 6)]
        assert search((0, 0), (5, 5), blocked_cells=ring, bounds=Board(10, 10)) is None

    def test_require_route_raises(self):
        ring = [(4, 5), (6, 5), (5, 4), (5, 6)]
        with pytest.raises(NoRouteFoundError) as excinfo:
            require_route((0, 0), (5, 5), blocked_cells=ring, bounds=Board(10, 10))
        assert excinfo.value.goal == (5, 5)

    def test_goal_inside_blocked_cells_is_reachable(self):
        """Test that start and goal are always traversable."""
        path = search((0, 0), (3, 0), blocked_cells=[(0, 0), (3, 0)])
        assert path == [(0, 0), (3, 0)]

    def test_bounds_limit_search(self):
        assert search((0, 0), (2, 0), blocked_cells=[(1, 0)], bounds=Board(3, 1)) is None

    def test_blocked_edge(self):
        path = search((0, 0), (3, 0), blocked_edges=[make_edge((1, 0), (2, 0))])
        assert make_edge((1, 0), (2, 0)) not in path_edges(path)

    def test_same_net_edge_is_exempt(self):
        edge = make_edge((1, 0), (2, 0))
        assert search((0, 0), (3, 0), blocked_edges=[edge], same_net_edges=[edge]) == [(0, 0), (3, 0)]

    def test_obstacle_with_allowed_cells(self):
        """Test that a corridor through an obstacle can be used."""
        wall = Obstacle("U1", BBox(2, 0, 2, 9), frozenset({(2, 4)}))
        path = search((0, 4), (4, 4), obstacles=[wall], bounds=Board(5, 10))
        assert path == [(0, 4), (4, 4)]

    def test_blocked_pin_cells_override_allowed(self):
        wall = Obstacle("U1", BBox(2, 0, 2, 9), frozenset({(2, 4)}))
        path = search(
            (0, 4), (4, 4), obstacles=[wall], blocked_pin_cells=[(2, 4)], bounds=Board(5, 10)
        )
        assert path is None

    def test_iteration_cap(self):
        path = search((0, 0), (40, 40), shortcuts=False, max_iterations=5)
        assert path is None

    def test_turn_penalty_prefers_fewer_turns(self):
        path = search((0, 0), (6, 6), shortcuts=False, turn_penalty=20)
        assert count_turns(path) == 1

    def test_congestion_steers_route(self):
        """Test that congested cells are avoided when a cheap detour exists."""
        congestion = {(x, 0): 50 for x in range(1, 6)}
        path = search((0, 0), (6, 0), congestion=congestion, shortcuts=False, bounds=Board(8, 4))
        assert not any(cell in congestion for cell in path_cells(path))


class TestPathHelpers:
    """Tests for fallback routes, support points and metrics."""

    def test_search_window_default(self):
        assert search_window((0, 0), (2, 3)) == BBox(-60, -60, 62, 63)

    def test_fallback_longer_leg_first(self):
        assert fallback_l_route((0, 0), (5, 2)) == [(0, 0), (5, 0), (5, 2)]
        assert fallback_l_route((0, 0), (1, 4)) == [(0, 0), (0, 4), (1, 4)]

    def test_fallback_straight(self):
        assert fallback_l_route((0, 0), (0, 4)) == [(0, 0), (0, 4)]

    def test_support_points(self):
        assert support_points([(0, 0), (12, 0)]) == [(0, 0), (5, 0), (10, 0), (12, 0)]

    def test_support_points_exact_multiple(self):
        assert support_points([(0, 0), (10, 0)]) == [(0, 0), (5, 0), (10, 0)]

    def test_solder_points_exclude_endpoints(self):
        assert solder_points([(0, 0), (3, 0), (3, 3)]) == [(3, 0)]
        assert solder_points([(0, 0), (12, 0)]) == [(5, 0), (10, 0)]

    def test_simplify_path(self):
        assert simplify_path([(0, 0), (1, 0), (1, 0), (2, 0), (2, 2)]) == [(0, 0), (2, 0), (2, 2)]

    def test_straight_bridge_route(self):
        assert straight_bridge_route((0, 0), (0, 4)) == [(0, 0), (0, 4)]
        assert straight_bridge_route((0, 0), (2, 4)) is None
        assert straight_bridge_route((0, 0), (0, 4), occupied=[(0, 2)]) is None
        assert straight_bridge_route((0, 0), (0, 4), occupied=[(0, 0), (0, 4)]) == [(0, 0), (0, 4)]

    def test_metrics(self):
        path = [(0, 0), (3, 0), (3, 2), (5, 2)]
        assert route_length(path) == 7
        assert count_turns(path) == 2
