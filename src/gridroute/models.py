"""
Data models for the grid routing engine.

This module contains the value types shared by every stage of the engine:
grid positions and bounding boxes, components with their pads, the closed
set of connection variants (wire, solder bridge, wire bridge), net-list
entries, and the snapshot/mutation pair used to hand geometry in and out
of the engine.

Classes:
    GridPosition: Integer (col, row) cell.
    BBox: Inclusive axis-aligned bounding box in grid cells.
    Side: Board side a connection lives on.
    Pad: Connectable point of a component, relative to its anchor.
    Component: A placed (or unplaced) part with pads and body geometry.
    Wire, SolderBridge, WireBridge: The connection variants.
    NetLabel, NetConnection, Net: Naming and net-list entries.
    Board: Bounded perfboard grid.
    Snapshot: Read-only view of components, connections and labels.
    UpdateConnection, AddConnection, RemoveConnection: Mutations.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from .errors import InvalidGeometryError, UnknownComponentError


class GridPosition(NamedTuple):
    """A grid cell. All routing and placement happens in these units."""

    col: int
    row: int

    def manhattan(self, other: Tuple[int, int]) -> int:
        return abs(self.col - other[0]) + abs(self.row - other[1])

    def offset(self, dc: int, dr: int) -> "GridPosition":
        return GridPosition(self.col + dc, self.row + dr)

    def to_dict(self) -> Dict[str, int]:
        return {"col": self.col, "row": self.row}

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> "GridPosition":
        return cls(int(data["col"]), int(data["row"]))


def as_position(value) -> GridPosition:
    """Coerce a (col, row) pair or {"col", "row"} dict into a GridPosition."""
    if isinstance(value, GridPosition):
        return value
    if isinstance(value, dict):
        return GridPosition.from_dict(value)
    col, row = value
    return GridPosition(int(col), int(row))


# An unordered pair of grid-adjacent cells, stored sorted
Edge = Tuple[GridPosition, GridPosition]


def make_edge(a: GridPosition, b: GridPosition) -> Edge:
    """Build the canonical edge between two adjacent cells."""
    a, b = as_position(a), as_position(b)
    if a.manhattan(b) != 1:
        raise InvalidGeometryError(f"Cells {tuple(a)} and {tuple(b)} are not adjacent")
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class BBox:
    """
    Inclusive bounding box in grid cells.

    A box with min == max covers exactly one cell. Overlap checks are
    inclusive, so boxes that share a border cell overlap.
    """

    min_col: int
    min_row: int
    max_col: int
    max_row: int

    @property
    def width(self) -> int:
        return self.max_col - self.min_col + 1

    @property
    def height(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def area(self) -> int:
        return self.width * self.height

    def contains(self, cell: Tuple[int, int]) -> bool:
        return (
            self.min_col <= cell[0] <= self.max_col
            and self.min_row <= cell[1] <= self.max_row
        )

    def overlaps(self, other: "BBox") -> bool:
        return (
            self.min_col <= other.max_col
            and self.max_col >= other.min_col
            and self.min_row <= other.max_row
            and self.max_row >= other.min_row
        )

    def expanded(self, amount: int) -> "BBox":
        return BBox(
            self.min_col - amount,
            self.min_row - amount,
            self.max_col + amount,
            self.max_row + amount,
        )

    def translated(self, dc: int, dr: int) -> "BBox":
        return BBox(self.min_col + dc, self.min_row + dr, self.max_col + dc, self.max_row + dr)

    def union(self, other: "BBox") -> "BBox":
        return BBox(
            min(self.min_col, other.min_col),
            min(self.min_row, other.min_row),
            max(self.max_col, other.max_col),
            max(self.max_row, other.max_row),
        )

    def cells(self) -> Iterable[GridPosition]:
        for row in range(self.min_row, self.max_row + 1):
            for col in range(self.min_col, self.max_col + 1):
                yield GridPosition(col, row)

    @classmethod
    def from_points(cls, points: Iterable[Tuple[int, int]]) -> "BBox":
        points = list(points)
        if not points:
            raise InvalidGeometryError("Cannot build a bounding box from no points")
        cols = [p[0] for p in points]
        rows = [p[1] for p in points]
        return cls(min(cols), min(rows), max(cols), max(rows))


class Side(Enum):
    """Board side a connection is placed on."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Pad:
    """
    A connectable point of a component.

    Attributes:
        number: Pin/pad number as used by the net-list.
        offset: Connectable point relative to the component anchor.
        name: Pin name (e.g. "VCC", "OUT"), used for zone classification.
        tip: Where the pin stub meets the body, relative to the anchor.
             None means the stub has zero length (perfboard pads).
    """

    number: str
    offset: GridPosition
    name: str = ""
    tip: Optional[GridPosition] = None

    def __post_init__(self):
        object.__setattr__(self, "number", str(self.number))
        object.__setattr__(self, "offset", as_position(self.offset))
        if self.tip is not None:
            object.__setattr__(self, "tip", as_position(self.tip))


VALID_ROTATIONS = (0, 90, 180, 270)


@dataclass(frozen=True)
class Component:
    """
    A component as seen by the engine.

    The engine resolves shape purely from these fields; it never stores
    geometry between calls.

    Attributes:
        id: Unique component id.
        pads: Connectable points, in pin order.
        position: Anchor cell, or None when the component is not placed.
        rotation: 0, 90, 180 or 270 degrees.
        mirror: Mirror across the vertical axis before rotating.
        body: Local body extent (schematic symbols). None means the body
              is the footprint bbox.
        span: Perfboard body size in holes (cols, rows), centred on the pads.
        reference: Designator such as "R1".
        category: Library category ("power", "connectors", ...).
        kind: Library id such as "power_vcc" or "resistor".
    """

    id: str
    pads: Tuple[Pad, ...] = ()
    position: Optional[GridPosition] = None
    rotation: int = 0
    mirror: bool = False
    body: Optional[BBox] = None
    span: Optional[GridPosition] = None
    reference: str = ""
    category: str = ""
    kind: str = ""

    def __post_init__(self):
        object.__setattr__(self, "pads", tuple(self.pads))
        if self.position is not None:
            object.__setattr__(self, "position", as_position(self.position))
        if self.span is not None:
            object.__setattr__(self, "span", as_position(self.span))
        rotation = self.rotation % 360
        if rotation not in VALID_ROTATIONS:
            raise InvalidGeometryError(f"Rotation must be a multiple of 90, got {self.rotation}")
        object.__setattr__(self, "rotation", rotation)

    @property
    def is_placed(self) -> bool:
        return self.position is not None

    def pad(self, number: str) -> Optional[Pad]:
        number = str(number)
        for pad in self.pads:
            if pad.number == number:
                return pad
        return None

    def moved(self, **changes) -> "Component":
        return replace(self, **changes)


# =============================================================================
# Connections (closed variant)
# =============================================================================


def canonicalize(points: Sequence[Tuple[int, int]]) -> List[GridPosition]:
    """
    Reduce a polyline to canonical form.

    Consecutive duplicates are dropped and every interior point that does
    not change direction is removed. Raises InvalidGeometryError if two
    consecutive points are not on a common row or column.
    """
    result: List[GridPosition] = []
    for raw in points:
        pt = as_position(raw)
        if result and pt == result[-1]:
            continue
        if result and pt.col != result[-1].col and pt.row != result[-1].row:
            raise InvalidGeometryError(
                f"Segment {tuple(result[-1])} -> {tuple(pt)} is not axis-aligned"
            )
        result.append(pt)
        while len(result) >= 3:
            a, b, c = result[-3], result[-2], result[-1]
            if (a.col == b.col == c.col) or (a.row == b.row == c.row):
                del result[-2]
                if result[-1] == result[-2]:
                    result.pop()
            else:
                break
    return result


@dataclass(frozen=True)
class Wire:
    """
    A routed rectilinear path.

    Points are stored in canonical form: no consecutive duplicates and no
    three collinear consecutive points.
    """

    id: str
    points: Tuple[GridPosition, ...]
    side: Side = Side.BOTTOM
    net_id: str = ""

    def __post_init__(self):
        points = canonicalize(self.points)
        if len(points) < 2:
            raise InvalidGeometryError(f"Wire {self.id!r} needs two distinct endpoints")
        object.__setattr__(self, "points", tuple(points))

    @property
    def start(self) -> GridPosition:
        return self.points[0]

    @property
    def end(self) -> GridPosition:
        return self.points[-1]

    def with_points(self, points: Sequence[Tuple[int, int]]) -> "Wire":
        return replace(self, points=tuple(points))


@dataclass(frozen=True)
class SolderBridge:
    """A blob of solder joining two adjacent holes."""

    id: str
    start: GridPosition
    end: GridPosition
    side: Side = Side.BOTTOM
    net_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "start", as_position(self.start))
        object.__setattr__(self, "end", as_position(self.end))
        if self.start.manhattan(self.end) != 1:
            raise InvalidGeometryError(
                f"Solder bridge {self.id!r} must join adjacent holes"
            )


@dataclass(frozen=True)
class WireBridge:
    """
    A straight jumper on the component side.

    Every hole under a wire bridge is a through-hole, so it blocks routing
    on both sides of the board.
    """

    id: str
    start: GridPosition
    end: GridPosition
    net_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "start", as_position(self.start))
        object.__setattr__(self, "end", as_position(self.end))
        if self.start == self.end:
            raise InvalidGeometryError(f"Wire bridge {self.id!r} has zero length")
        if self.start.col != self.end.col and self.start.row != self.end.row:
            raise InvalidGeometryError(f"Wire bridge {self.id!r} must be straight")

    @property
    def side(self) -> Side:
        return Side.TOP


Connection = Union[Wire, SolderBridge, WireBridge]

CONNECTION_TYPES = {
    Wire: "wire",
    WireBridge: "wire_bridge",
    SolderBridge: "solder_bridge",
}


def connection_points(conn: Connection) -> Tuple[GridPosition, ...]:
    """Return the polyline of any connection variant."""
    if isinstance(conn, Wire):
        return conn.points
    if isinstance(conn, (SolderBridge, WireBridge)):
        return (conn.start, conn.end)
    raise TypeError(f"Unknown connection type: {type(conn).__name__}")


def connection_endpoints(conn: Connection) -> Tuple[GridPosition, GridPosition]:
    points = connection_points(conn)
    return points[0], points[-1]


def connection_edges(conn: Connection) -> List[Edge]:
    """Return every grid edge covered by a connection."""
    points = connection_points(conn)
    edges: List[Edge] = []
    for a, b in zip(points, points[1:]):
        dc = (b.col > a.col) - (b.col < a.col)
        dr = (b.row > a.row) - (b.row < a.row)
        cur = a
        while cur != b:
            nxt = cur.offset(dc, dr)
            edges.append(make_edge(cur, nxt))
            cur = nxt
    return edges


# =============================================================================
# Labels, net-list and board
# =============================================================================


@dataclass(frozen=True)
class NetLabel:
    """A named label attached to a point; equal names join nets."""

    name: str
    position: GridPosition

    def __post_init__(self):
        object.__setattr__(self, "position", as_position(self.position))


@dataclass(frozen=True)
class NetConnection:
    """One pin on a net."""

    component_id: str
    pin_number: str
    pin_name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "pin_number", str(self.pin_number))


@dataclass(frozen=True)
class Net:
    """A named net from the external net-list."""

    name: str
    connections: Tuple[NetConnection, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "connections", tuple(self.connections))

    @property
    def component_ids(self) -> List[str]:
        seen: List[str] = []
        for conn in self.connections:
            if conn.component_id not in seen:
                seen.append(conn.component_id)
        return seen


@dataclass(frozen=True)
class Board:
    """A bounded perfboard of width x height holes."""

    width: int
    height: int

    @property
    def bbox(self) -> BBox:
        return BBox(0, 0, self.width - 1, self.height - 1)

    def contains(self, cell: Tuple[int, int]) -> bool:
        return 0 <= cell[0] < self.width and 0 <= cell[1] < self.height


# =============================================================================
# Snapshot and mutations
# =============================================================================


@dataclass(frozen=True)
class Snapshot:
    """
    Read-only view of one sheet/board handed to the engine.

    The engine never mutates a snapshot. Operations that change geometry
    return a list of mutations; ``apply_mutations`` produces the next
    snapshot.
    """

    components: Tuple[Component, ...] = ()
    connections: Tuple[Connection, ...] = ()
    labels: Tuple[NetLabel, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "components", tuple(self.components))
        object.__setattr__(self, "connections", tuple(self.connections))
        object.__setattr__(self, "labels", tuple(self.labels))

    def component(self, component_id: str) -> Component:
        for comp in self.components:
            if comp.id == component_id:
                return comp
        raise UnknownComponentError(component_id)

    def connection(self, connection_id: str) -> Optional[Connection]:
        for conn in self.connections:
            if conn.id == connection_id:
                return conn
        return None

    @property
    def placed_components(self) -> List[Component]:
        return [c for c in self.components if c.is_placed]

    def with_component(self, component: Component) -> "Snapshot":
        components = tuple(
            component if c.id == component.id else c for c in self.components
        )
        return replace(self, components=components)


@dataclass(frozen=True)
class UpdateConnection:
    """Replace the polyline of an existing connection."""

    connection_id: str
    points: Tuple[GridPosition, ...]


@dataclass(frozen=True)
class AddConnection:
    """Add a new connection."""

    connection: Connection


@dataclass(frozen=True)
class RemoveConnection:
    """Delete an existing connection."""

    connection_id: str


Mutation = Union[UpdateConnection, AddConnection, RemoveConnection]


def _update_points(conn: Connection, points: Sequence[GridPosition]) -> Connection:
    if isinstance(conn, Wire):
        return conn.with_points(points)
    if isinstance(conn, SolderBridge):
        return replace(conn, start=points[0], end=points[-1])
    if isinstance(conn, WireBridge):
        return replace(conn, start=points[0], end=points[-1])
    raise TypeError(f"Unknown connection type: {type(conn).__name__}")


def apply_mutations(snapshot: Snapshot, mutations: Iterable[Mutation]) -> Snapshot:
    """Return the snapshot that results from applying mutations in order."""
    connections: List[Connection] = list(snapshot.connections)
    for mutation in mutations:
        if isinstance(mutation, UpdateConnection):
            connections = [
                _update_points(c, mutation.points) if c.id == mutation.connection_id else c
                for c in connections
            ]
        elif isinstance(mutation, AddConnection):
            connections.append(mutation.connection)
        elif isinstance(mutation, RemoveConnection):
            connections = [c for c in connections if c.id != mutation.connection_id]
        else:
            raise TypeError(f"Unknown mutation type: {type(mutation).__name__}")
    return replace(snapshot, connections=tuple(connections))


# =============================================================================
# Persistence
# =============================================================================


def connection_to_dict(conn: Connection, waypoints: Optional[Sequence[GridPosition]] = None) -> dict:
    """
    Serialize a connection to the persisted document shape.

    Args:
        conn: Connection to serialize.
        waypoints: Interior points to store instead of the corners
                   (e.g. corners plus support points).

    Returns:
        Dict with id, type, from, to, waypoints, side and netId keys.
    """
    points = connection_points(conn)
    if waypoints is None:
        waypoints = points[1:-1]
    return {
        "id": conn.id,
        "type": CONNECTION_TYPES[type(conn)],
        "from": points[0].to_dict(),
        "to": points[-1].to_dict(),
        "waypoints": [p.to_dict() for p in waypoints] if waypoints else None,
        "side": conn.side.value,
        "netId": conn.net_id,
    }


def connection_from_dict(data: dict) -> Connection:
    """Inverse of ``connection_to_dict``; waypoints are re-canonicalized."""
    kind = data.get("type", "wire")
    start = as_position(data["from"])
    end = as_position(data["to"])
    net_id = data.get("netId") or ""
    if kind == "solder_bridge":
        return SolderBridge(data["id"], start, end, Side(data.get("side", "bottom")), net_id)
    if kind == "wire_bridge":
        return WireBridge(data["id"], start, end, net_id)
    if kind in ("wire", "bent_lead"):
        middle = [as_position(p) for p in (data.get("waypoints") or [])]
        return Wire(
            data["id"],
            tuple([start, *middle, end]),
            Side(data.get("side", "bottom")),
            net_id,
        )
    raise InvalidGeometryError(f"Unknown connection type: {kind!r}")

