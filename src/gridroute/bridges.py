"""
Bridge detection and single-connection drawing on the perfboard.

A solder bridge joins two adjacent holes with a blob of solder. It must
not cross a perpendicular connection on the same side of the board,
since that would short the two. A wire bridge is a straight jumper on
the component side whose holes block both sides.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .errors import Notice, NoticeKind
from .models import (
    Board,
    Component,
    Connection,
    GridPosition,
    Side,
    SolderBridge,
    Wire,
    WireBridge,
    as_position,
    connection_points,
)
from .obstacles import board_occupied_cells, connection_occupied_cells, wire_bridge_cells
from .search import search, straight_bridge_route

logger = logging.getLogger(__name__)


def is_adjacent(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    """True when two cells share a side."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def bridge_crosses(
    a: Tuple[int, int],
    b: Tuple[int, int],
    connections: Iterable[Connection],
    side: Side = Side.BOTTOM,
) -> bool:
    """
    Check if a solder bridge a-b would cross an existing connection.

    Only perpendicular segments on the same side count. A connection that
    ends at one of the bridge cells joins the bridge rather than crossing
    it, so it is ignored. Stricter checkers reject that case as well.
    """
    a, b = as_position(a), as_position(b)
    bridge_horizontal = a.row == b.row
    bridge_cells = {a, b}

    for conn in connections:
        if conn.side != side:
            continue
        points = connection_points(conn)
        ends = {points[0], points[-1]}
        for p, q in zip(points, points[1:]):
            segment_horizontal = p.row == q.row
            if segment_horizontal == bridge_horizontal:
                continue
            if bridge_horizontal:
                # Vertical segment at a fixed column
                hit = GridPosition(p.col, a.row)
                lo, hi = sorted((p.row, q.row))
                on_segment = lo <= a.row <= hi
            else:
                hit = GridPosition(a.col, p.row)
                lo, hi = sorted((p.col, q.col))
                on_segment = lo <= a.col <= hi
            if on_segment and hit in bridge_cells and hit not in ends:
                return True
    return False


@dataclass(frozen=True)
class DrawResult:
    """Outcome of drawing one connection: the connection or a notice."""

    connection: Optional[Connection] = None
    notice: Optional[Notice] = None

    @property
    def ok(self) -> bool:
        return self.connection is not None


def draw_connection(
    start: Tuple[int, int],
    goal: Tuple[int, int],
    components: Sequence[Component],
    connections: Sequence[Connection],
    board: Board,
    *,
    kind: str = "wire",
    side: Side = Side.BOTTOM,
    net_id: str = "",
    connection_id: str = "",
) -> DrawResult:
    """
    Draw a single connection between two holes.

    Args:
        start: First hole.
        goal: Second hole.
        components: Placed components (their pads block routing).
        connections: Existing connections.
        board: Board bounds.
        kind: "wire" (routed), "solder_bridge" or "wire_bridge".
        side: Side for wires and solder bridges.
        net_id: Net name stored on the new connection.
        connection_id: Id for the new connection; derived from the
                       endpoints when empty.

    Returns:
        DrawResult with either the new connection or a notice.
    """
    start, goal = as_position(start), as_position(goal)
    subject = f"{tuple(start)}->{tuple(goal)}"
    if start == goal:
        return DrawResult(notice=Notice(NoticeKind.NO_ROUTE_FOUND, "start and goal coincide", subject))
    conn_id = connection_id or f"{kind}-{start.col}-{start.row}-{goal.col}-{goal.row}"

    if kind == "wire_bridge":
        occupied = (
            board_occupied_cells(components)
            | connection_occupied_cells(connections, Side.TOP)
            | connection_occupied_cells(connections, Side.BOTTOM)
        )
        route = straight_bridge_route(start, goal, occupied, board)
        if route is None:
            return DrawResult(
                notice=Notice(NoticeKind.NO_ROUTE_FOUND, "wire bridge needs a clear straight line", subject)
            )
        return DrawResult(connection=WireBridge(conn_id, start, goal, net_id))

    if is_adjacent(start, goal):
        if bridge_crosses(start, goal, connections, side):
            logger.debug("Solder bridge %s rejected: crosses existing connection", subject)
            return DrawResult(
                notice=Notice(NoticeKind.BRIDGE_REJECTED, "bridge would cross a connection", subject)
            )
        return DrawResult(connection=SolderBridge(conn_id, start, goal, side, net_id))

    if kind == "solder_bridge":
        return DrawResult(notice=Notice(NoticeKind.BRIDGE_REJECTED, "holes are not adjacent", subject))

    blocked = (
        board_occupied_cells(components)
        | connection_occupied_cells(connections, side)
        | wire_bridge_cells(connections)
    )
    path = search(start, goal, blocked_cells=blocked, bounds=board)
    if path is None:
        return DrawResult(notice=Notice(NoticeKind.NO_ROUTE_FOUND, "no path on this side", subject))
    return DrawResult(connection=Wire(conn_id, tuple(path), side, net_id))
