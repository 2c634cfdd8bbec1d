"""
Obstacle model for grid routing.

Implements:
- Per-component obstacles with pin approach corridors
- An occupancy map answering "may a path enter this cell / cross this edge"
- Perfboard occupancy (pad holes, connection holes, wire-bridge holes)
- Placement collision checks for footprints and schematic symbols
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .config import COMPONENT_MARGIN, NET_EPSILON
from .errors import Notice, NoticeKind
from .geometry import (
    body_bbox,
    footprint_bbox,
    outline_bbox,
    pin_positions,
    pin_stubs,
    segment_cells,
)
from .models import (
    BBox,
    Board,
    Component,
    Connection,
    Edge,
    GridPosition,
    Side,
    WireBridge,
    as_position,
    connection_edges,
    connection_points,
    make_edge,
)
from .nets import NetIndex, points_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Obstacle:
    """
    A rectangle paths must stay out of, except through its allowed cells.

    Attributes:
        component_id: Component the obstacle was built from.
        bbox: Blocked rectangle (inclusive).
        allowed_cells: Cells inside bbox that paths may still use
                       (pin approach corridors).
    """

    component_id: str
    bbox: BBox
    allowed_cells: FrozenSet[GridPosition] = frozenset()

    def blocks(self, cell: Tuple[int, int]) -> bool:
        return self.bbox.contains(cell) and cell not in self.allowed_cells


class ObstacleMap:
    """
    Tracks which cells and edges a path may use.

    A cell is free unless it is inside an obstacle (and not one of that
    obstacle's allowed cells, nor globally allowed), is a blocked pin
    cell, is a blocked cell, or lies outside the bounds. An edge is free
    unless it is blocked and not exempted as a same-net edge. Cell answers
    are cached; the map is meant to be built once per search or batch.
    """

    def __init__(
        self,
        obstacles: Iterable[Obstacle] = (),
        allowed_cells: Iterable[Tuple[int, int]] = (),
        blocked_cells: Iterable[Tuple[int, int]] = (),
        blocked_pin_cells: Iterable[Tuple[int, int]] = (),
        blocked_edges: Iterable[Edge] = (),
        same_net_edges: Iterable[Edge] = (),
        bounds: Optional[BBox] = None,
    ):
        """
        Initialize the obstacle map.

        Args:
            obstacles: Component obstacles.
            allowed_cells: Cells that no obstacle may block.
            blocked_cells: Cells that are always blocked (occupied holes).
            blocked_pin_cells: Pins of other nets; always blocked.
            blocked_edges: Edges already used by other paths.
            same_net_edges: Edges exempt from blocked_edges.
            bounds: Search window; cells outside it are not free.
        """
        self.obstacles: List[Obstacle] = list(obstacles)
        self.allowed_cells: Set[GridPosition] = {as_position(c) for c in allowed_cells}
        self.blocked_cells: Set[GridPosition] = {as_position(c) for c in blocked_cells}
        self.blocked_pin_cells: Set[GridPosition] = {as_position(c) for c in blocked_pin_cells}
        self.blocked_edges: Set[Edge] = set(blocked_edges)
        self.same_net_edges: Set[Edge] = set(same_net_edges)
        self.bounds = bounds
        self._cell_cache: Dict[GridPosition, bool] = {}

    def in_bounds(self, cell: Tuple[int, int]) -> bool:
        return self.bounds is None or self.bounds.contains(cell)

    def is_free(self, cell: Tuple[int, int]) -> bool:
        """Check if a path may enter a cell."""
        cell = as_position(cell)
        cached = self._cell_cache.get(cell)
        if cached is not None:
            return cached
        free = self._compute_free(cell)
        self._cell_cache[cell] = free
        return free

    def _compute_free(self, cell: GridPosition) -> bool:
        if not self.in_bounds(cell):
            return False
        if cell in self.blocked_pin_cells or cell in self.blocked_cells:
            return False
        if cell in self.allowed_cells:
            return True
        return not any(obstacle.blocks(cell) for obstacle in self.obstacles)

    def is_edge_free(self, a: Tuple[int, int], b: Tuple[int, int]) -> bool:
        """Check if a path may step between two adjacent cells."""
        edge = make_edge(a, b)
        return edge not in self.blocked_edges or edge in self.same_net_edges


def _stub_direction(base: GridPosition, tip: GridPosition, body: BBox) -> Tuple[int, int]:
    """Unit step pointing from a pin base away from its component."""
    if base != tip:
        dc = (base.col > tip.col) - (base.col < tip.col)
        dr = (base.row > tip.row) - (base.row < tip.row)
        return dc, dr
    # Zero-length stub: leave by the nearest body side
    distances = [
        (base.col - body.min_col, (-1, 0)),
        (body.max_col - base.col, (1, 0)),
        (base.row - body.min_row, (0, -1)),
        (body.max_row - base.row, (0, 1)),
    ]
    return min(distances, key=lambda d: d[0])[1]


def pin_corridor(component: Component, margin: int = COMPONENT_MARGIN) -> Set[GridPosition]:
    """
    Cells of every pin's approach corridor.

    The corridor runs from where the stub meets the body, through the pin
    base, and outward across the margin ring to the first cell outside
    the obstacle.
    """
    body = body_bbox(component)
    cells: Set[GridPosition] = set()
    for base, tip in pin_stubs(component):
        if base.col == tip.col or base.row == tip.row:
            cells.update(segment_cells(tip, base))
        else:
            cells.update((base, tip))
        dc, dr = _stub_direction(base, tip, body)
        cur = base
        for _ in range(margin + 1):
            cur = cur.offset(dc, dr)
            cells.add(cur)
    return cells


def build_obstacles(components: Iterable[Component], margin: int = COMPONENT_MARGIN) -> List[Obstacle]:
    """Build one obstacle per placed component (schematic rule)."""
    obstacles = []
    for comp in components:
        if not comp.is_placed:
            continue
        obstacles.append(
            Obstacle(
                component_id=comp.id,
                bbox=outline_bbox(comp, margin),
                allowed_cells=frozenset(pin_corridor(comp, margin)),
            )
        )
    return obstacles


# =============================================================================
# Perfboard occupancy
# =============================================================================


def board_occupied_cells(
    components: Iterable[Component], exclude_ids: Iterable[str] = ()
) -> Set[GridPosition]:
    """Pad holes of every placed component."""
    exclude = set(exclude_ids)
    cells: Set[GridPosition] = set()
    for comp in components:
        if comp.is_placed and comp.id not in exclude:
            cells.update(pin_positions(comp))
    return cells


def connection_cells(conn: Connection) -> List[GridPosition]:
    points = connection_points(conn)
    cells = [points[0]]
    for a, b in zip(points, points[1:]):
        cells.extend(segment_cells(a, b)[1:])
    return cells


def connection_occupied_cells(
    connections: Iterable[Connection],
    side: Side = Side.BOTTOM,
    exclude: Iterable[str] = (),
) -> Set[GridPosition]:
    """Every hole used by a connection on the given side."""
    exclude = set(exclude)
    cells: Set[GridPosition] = set()
    for conn in connections:
        if conn.id in exclude or conn.side != side:
            continue
        cells.update(connection_cells(conn))
    return cells


def wire_bridge_cells(connections: Iterable[Connection], exclude: Iterable[str] = ()) -> Set[GridPosition]:
    """Holes under wire bridges; these block routing on both sides."""
    exclude = set(exclude)
    cells: Set[GridPosition] = set()
    for conn in connections:
        if isinstance(conn, WireBridge) and conn.id not in exclude:
            cells.update(connection_cells(conn))
    return cells


def occupied_edges(connections: Iterable[Connection], exclude: Iterable[str] = ()) -> Set[Edge]:
    exclude = set(exclude)
    edges: Set[Edge] = set()
    for conn in connections:
        if conn.id not in exclude:
            edges.update(connection_edges(conn))
    return edges


def other_net_pin_cells(
    components: Iterable[Component],
    endpoints: Sequence[Tuple[int, int]],
    connections: Union[Sequence[Connection], NetIndex],
    epsilon: float = NET_EPSILON,
) -> Set[GridPosition]:
    """
    Pin cells a path between endpoints must not touch.

    A pin is exempt when it is one of the endpoints or sits on a point of
    the endpoints' net; every other placed pin is returned.
    """
    index = connections if isinstance(connections, NetIndex) else NetIndex(connections, epsilon=epsilon)
    net_points = index.net_points(endpoints)
    cells: Set[GridPosition] = set()
    for comp in components:
        if not comp.is_placed:
            continue
        for pin in pin_positions(comp):
            if any(points_match(pin, p, epsilon) for p in net_points):
                continue
            cells.add(pin)
    return cells


# =============================================================================
# Placement collisions
# =============================================================================


def footprint_collision(component: Component, others: Iterable[Component]) -> Optional[str]:
    """Id of the first placed component whose footprint overlaps, or None."""
    box = footprint_bbox(component)
    for other in others:
        if other.id == component.id or not other.is_placed:
            continue
        if box.overlaps(footprint_bbox(other)):
            return other.id
    return None


def _stub_touches(stub: Tuple[GridPosition, GridPosition], box: BBox) -> bool:
    base, tip = stub
    if base.col == tip.col or base.row == tip.row:
        return any(box.contains(c) for c in segment_cells(tip, base))
    return box.contains(base) or box.contains(tip)


def _pins_intrude(a: Component, b: Component) -> bool:
    """Apply the pin rules for a's pins against b's geometry."""
    b_body = body_bbox(b)
    b_tight = outline_bbox(b, 0)
    b_bases = set(pin_positions(b))
    for stub in pin_stubs(a):
        if _stub_touches(stub, b_body):
            return True
        if _stub_touches(stub, b_tight) and stub[0] not in b_bases:
            return True
    return False


def symbol_collision(a: Component, b: Component) -> bool:
    """
    True when two schematic symbols may not sit where they are.

    Rules, in order: disjoint outlines never collide; overlapping bodies
    always collide; a pin stub entering the other body collides; a pin
    stub entering the other's outline is fine only when its base lands
    on one of the other's pin bases (a deliberate pin-to-pin joint).
    """
    if not (a.is_placed and b.is_placed):
        return False
    if not outline_bbox(a, 0).overlaps(outline_bbox(b, 0)):
        return False
    if body_bbox(a).overlaps(body_bbox(b)):
        return True
    return _pins_intrude(a, b) or _pins_intrude(b, a)


def check_placement(
    component: Component,
    others: Iterable[Component],
    board: Optional[Board] = None,
) -> Optional[Notice]:
    """
    Validate a proposed placement.

    With a board the perfboard rule applies (footprint inside the board,
    no footprint overlap); without one the schematic symbol rule does.
    """
    others = [o for o in others if o.id != component.id and o.is_placed]
    if board is not None:
        box = footprint_bbox(component)
        if not (board.contains((box.min_col, box.min_row)) and board.contains((box.max_col, box.max_row))):
            return Notice(NoticeKind.PLACEMENT_BLOCKED, "footprint leaves the board", component.id)
        hit = footprint_collision(component, others)
        if hit is not None:
            return Notice(NoticeKind.PLACEMENT_BLOCKED, f"footprint overlaps {hit}", component.id)
        return None
    for other in others:
        if symbol_collision(component, other):
            return Notice(NoticeKind.PLACEMENT_BLOCKED, f"symbol collides with {other.id}", component.id)
    return None
