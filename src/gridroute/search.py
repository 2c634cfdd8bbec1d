"""
Manhattan path search.

Finds rectilinear paths between two grid cells, minimizing
length + turn_penalty * turns (+ optional per-cell congestion).

Cheap shortcuts are tried first, in this order:
1. Direct line (same row or column)
2. L-route (horizontal first, then vertical first)
3. Z-route (two corners, middle leg swept outward from the midpoint)

A shortcut is only taken when every cell and edge on it is traversable,
so it never bypasses a blocking rule. Otherwise an A* search runs over
(cell, arrival direction) states so that turns can be priced.
"""

import heapq
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import MAX_SEARCH_ITERATIONS, SEARCH_EXPAND, SUPPORT_INTERVAL, TURN_PENALTY
from .errors import NoRouteFoundError
from .geometry import path_cells
from .models import BBox, Board, Edge, GridPosition, as_position, canonicalize
from .obstacles import Obstacle, ObstacleMap

logger = logging.getLogger(__name__)

# Fixed expansion order; ties beyond (f, h, insertion) resolve in this order
DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))
NO_DIRECTION = -1


def search_window(
    start: GridPosition, goal: GridPosition, bounds: Union[BBox, Board, None] = None
) -> BBox:
    """Cells the search may visit."""
    if isinstance(bounds, Board):
        return bounds.bbox
    if isinstance(bounds, BBox):
        return bounds
    return BBox.from_points([start, goal]).expanded(SEARCH_EXPAND)


def search(
    start: Tuple[int, int],
    goal: Tuple[int, int],
    obstacles: Iterable[Obstacle] = (),
    blocked_edges: Iterable[Edge] = (),
    same_net_edges: Iterable[Edge] = (),
    allowed_cells: Iterable[Tuple[int, int]] = (),
    blocked_pin_cells: Iterable[Tuple[int, int]] = (),
    *,
    blocked_cells: Iterable[Tuple[int, int]] = (),
    bounds: Union[BBox, Board, None] = None,
    turn_penalty: int = TURN_PENALTY,
    congestion: Optional[Mapping[Tuple[int, int], float]] = None,
    max_iterations: int = MAX_SEARCH_ITERATIONS,
    shortcuts: bool = True,
) -> Optional[List[GridPosition]]:
    """
    Find a canonical rectilinear path from start to goal.

    Args:
        start: Start cell; always traversable.
        goal: Goal cell; always traversable.
        obstacles: Component obstacles (bbox minus allowed corridor).
        blocked_edges: Edges used by other paths.
        same_net_edges: Edges exempt from blocked_edges.
        allowed_cells: Cells no obstacle may block.
        blocked_pin_cells: Pins of other nets.
        blocked_cells: Additional blocked cells (occupied holes).
        bounds: Board or BBox limiting the search; defaults to the
                start/goal box grown by SEARCH_EXPAND.
        turn_penalty: Extra cost per direction change.
        congestion: Extra cost per entered cell.
        max_iterations: Give up after this many expansions.
        shortcuts: Try direct/L/Z routes before A*.

    Returns:
        Corner points from start to goal, or None when start == goal or
        no path exists.
    """
    start, goal = as_position(start), as_position(goal)
    if start == goal:
        return None

    window = search_window(start, goal, bounds)
    obstacle_map = ObstacleMap(
        obstacles=obstacles,
        allowed_cells=allowed_cells,
        blocked_cells=blocked_cells,
        blocked_pin_cells=blocked_pin_cells,
        blocked_edges=blocked_edges,
        same_net_edges=same_net_edges,
    )

    def passable(cell: GridPosition) -> bool:
        if cell == start or cell == goal:
            return window.contains(cell)
        return window.contains(cell) and obstacle_map.is_free(cell)

    if shortcuts:
        path = _try_shortcuts(start, goal, window, passable, obstacle_map)
        if path is not None:
            logger.debug("Shortcut route %s -> %s: %d corners", start, goal, len(path))
            return path

    return _astar(start, goal, passable, obstacle_map, turn_penalty, congestion, max_iterations)


def _path_clear(points: Sequence[GridPosition], passable, obstacle_map: ObstacleMap) -> bool:
    cells = path_cells(points)
    for i, cell in enumerate(cells):
        if not passable(cell):
            return False
        if i and not obstacle_map.is_edge_free(cells[i - 1], cell):
            return False
    return True


def _try_shortcuts(start, goal, window: BBox, passable, obstacle_map) -> Optional[List[GridPosition]]:
    if start.col == goal.col or start.row == goal.row:
        candidate = [start, goal]
        if _path_clear(candidate, passable, obstacle_map):
            return candidate
        # A blocked straight line can only be bypassed with 2+ corners
        return None

    for corner in (GridPosition(goal.col, start.row), GridPosition(start.col, goal.row)):
        candidate = [start, corner, goal]
        if _path_clear(candidate, passable, obstacle_map):
            return candidate

    # H-V-H
    mid_col = round((start.col + goal.col) / 2)
    for mc in _sweep(mid_col, window.min_col, window.max_col):
        candidate = canonicalize([start, (mc, start.row), (mc, goal.row), goal])
        if _path_clear(candidate, passable, obstacle_map):
            return candidate

    # V-H-V
    mid_row = round((start.row + goal.row) / 2)
    for mr in _sweep(mid_row, window.min_row, window.max_row):
        candidate = canonicalize([start, (start.col, mr), (goal.col, mr), goal])
        if _path_clear(candidate, passable, obstacle_map):
            return candidate
    return None


def _sweep(center: int, low: int, high: int) -> Iterable[int]:
    """Yield center, center-1, center+1, center-2, ... within [low, high]."""
    for offset in range(0, max(center - low, high - center) + 1):
        for value in ((center,) if offset == 0 else (center - offset, center + offset)):
            if low <= value <= high:
                yield value


def _astar(start, goal, passable, obstacle_map, turn_penalty, congestion, max_iterations):
    def heuristic(cell: GridPosition) -> int:
        return abs(cell.col - goal.col) + abs(cell.row - goal.row)

    h0 = heuristic(start)
    seq = 0
    open_heap = [(h0, h0, seq, start, NO_DIRECTION)]
    g_score: Dict[Tuple[GridPosition, int], float] = {(start, NO_DIRECTION): 0}
    came_from: Dict[Tuple[GridPosition, int], Tuple[GridPosition, int]] = {}
    closed = set()
    iterations = 0

    while open_heap:
        iterations += 1
        if iterations > max_iterations:
            logger.debug("Search %s -> %s gave up after %d iterations", start, goal, max_iterations)
            return None

        _, _, _, cell, direction = heapq.heappop(open_heap)
        state = (cell, direction)
        if state in closed:
            continue
        closed.add(state)

        if cell == goal:
            logger.debug("A* route %s -> %s in %d iterations", start, goal, iterations)
            return _reconstruct(came_from, state)

        order = range(len(DIRECTIONS))
        if direction != NO_DIRECTION:
            # Straight ahead is pushed first so it wins exact ties
            order = [direction] + [d for d in order if d != direction]

        g_current = g_score[state]
        for nd in order:
            dc, dr = DIRECTIONS[nd]
            if direction != NO_DIRECTION and (dc, dr) == (-DIRECTIONS[direction][0], -DIRECTIONS[direction][1]):
                continue
            nxt = cell.offset(dc, dr)
            if not passable(nxt) or not obstacle_map.is_edge_free(cell, nxt):
                continue
            step = 1
            if direction != NO_DIRECTION and nd != direction:
                step += turn_penalty
            if congestion:
                step += congestion.get(nxt, 0)
            tentative = g_current + step
            next_state = (nxt, nd)
            if next_state in closed or tentative >= g_score.get(next_state, float("inf")):
                continue
            g_score[next_state] = tentative
            came_from[next_state] = state
            h = heuristic(nxt)
            seq += 1
            heapq.heappush(open_heap, (tentative + h, h, seq, nxt, nd))

    logger.debug("No route %s -> %s after %d iterations", start, goal, iterations)
    return None


def _reconstruct(came_from, state) -> List[GridPosition]:
    cells = [state[0]]
    while state in came_from:
        state = came_from[state]
        cells.append(state[0])
    cells.reverse()
    return simplify_path(cells)


def require_route(start: Tuple[int, int], goal: Tuple[int, int], **kwargs) -> List[GridPosition]:
    """Like ``search`` but raises NoRouteFoundError instead of returning None."""
    path = search(start, goal, **kwargs)
    if path is None:
        raise NoRouteFoundError(as_position(start), as_position(goal))
    return path


# =============================================================================
# Path helpers
# =============================================================================


def simplify_path(points: Sequence[Tuple[int, int]]) -> List[GridPosition]:
    """Remove duplicate and collinear interior points."""
    return canonicalize(points)


def fallback_l_route(start: Tuple[int, int], goal: Tuple[int, int]) -> List[GridPosition]:
    """
    L-shaped route that ignores every obstacle.

    The longer leg comes first. Only repair uses this, so that an edit is
    never refused because a wire cannot be routed cleanly.
    """
    start, goal = as_position(start), as_position(goal)
    if abs(goal.col - start.col) >= abs(goal.row - start.row):
        corner = (goal.col, start.row)
    else:
        corner = (start.col, goal.row)
    return simplify_path([start, corner, goal])


def support_points(points: Sequence[Tuple[int, int]], interval: int = SUPPORT_INTERVAL) -> List[GridPosition]:
    """
    Waypoints for persistence: every corner plus a support point every
    ``interval`` holes along straight runs longer than ``interval``.
    Endpoints are included.
    """
    points = [as_position(p) for p in points]
    if len(points) < 2:
        return points
    result = [points[0]]
    for a, b in zip(points, points[1:]):
        dc = (b.col > a.col) - (b.col < a.col)
        dr = (b.row > a.row) - (b.row < a.row)
        dist = a.manhattan(b)
        n = interval
        while n < dist:
            result.append(a.offset(dc * n, dr * n))
            n += interval
        result.append(b)
    return result


def solder_points(points: Sequence[Tuple[int, int]], interval: int = SUPPORT_INTERVAL) -> List[GridPosition]:
    """Holes that get a solder joint: corners and support points, endpoints excluded."""
    return support_points(points, interval)[1:-1]


def straight_bridge_route(
    start: Tuple[int, int],
    goal: Tuple[int, int],
    occupied: Iterable[Tuple[int, int]] = (),
    bounds: Union[BBox, Board, None] = None,
) -> Optional[List[GridPosition]]:
    """Straight jumper route, or None if not straight or a hole on it is taken."""
    start, goal = as_position(start), as_position(goal)
    if start == goal or (start.col != goal.col and start.row != goal.row):
        return None
    occupied = set(occupied)
    window = search_window(start, goal, bounds)
    for cell in path_cells([start, goal]):
        if not window.contains(cell):
            return None
        if cell != start and cell != goal and cell in occupied:
            return None
    return [start, goal]


def route_length(points: Sequence[Tuple[int, int]]) -> int:
    """Total Manhattan length of a path."""
    return sum(abs(b[0] - a[0]) + abs(b[1] - a[1]) for a, b in zip(points, points[1:]))


def count_turns(points: Sequence[Tuple[int, int]]) -> int:
    """Number of direction changes along a path."""
    turns = 0
    for prev, curr, nxt in zip(points, points[1:], points[2:]):
        prev_horizontal = prev[1] == curr[1]
        next_horizontal = curr[1] == nxt[1]
        if prev_horizontal != next_horizontal:
            turns += 1
    return turns
