"""
Bulk router: connect every net of a placed board.

Uses networkx for:
- Per-net minimum spanning tree over pin positions (Prim)
- Connectivity of pins already joined by existing connections

Each net is split into two-pin edges by its MST. Edges are routed in
priority order, each trying a solder bridge, then a wire on the
connection side, then a straight wire bridge on the component side.
Later passes add a congestion map, rip up competing routes of other nets
and finally retry with a relaxed turn penalty.

Nets are atomic: if any edge of a net is still unrouted after the last
pass, every connection of that net is removed and the net is reported
failed.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx

from .bridges import bridge_crosses, is_adjacent
from .config import (
    ADJACENT_PRIORITY,
    AUTOROUTE_MAX_ITERATIONS,
    CONGESTION_NEIGHBOUR_WEIGHT,
    CONGESTION_SPREAD,
    CONGESTION_TRACE_WEIGHT,
    DEFAULT_MAX_PASSES,
    POWER_NET_PRIORITY,
    RELAXED_MAX_ITERATIONS,
    RELAXED_TURN_PENALTY,
    RIPUP_MARGIN,
    SHORT_NET_BONUS,
    SHORT_NET_DISTANCE,
    TURN_PENALTY,
)
from .errors import Notice, NoticeKind
from .geometry import to_world
from .models import (
    BBox,
    Board,
    Component,
    Connection,
    GridPosition,
    Net,
    Side,
    SolderBridge,
    Wire,
    WireBridge,
    connection_endpoints,
    connection_points,
)
from .obstacles import (
    board_occupied_cells,
    connection_cells,
    connection_occupied_cells,
    wire_bridge_cells,
)
from .placement import GND_RE, PWR_RE, AutoLayout, LayoutMode, LayoutResult
from .search import search, straight_bridge_route
from .tracer import RoutingTrace, ascii_grid

logger = logging.getLogger(__name__)


@dataclass
class RouteOptions:
    """
    Settings for one autoroute run.

    Attributes:
        board: Board bounds
        connection_side: Side that wires and solder bridges go on
        clear_existing: Ignore existing connections entirely; when False
                        they are kept and block new routes
        max_passes: Number of routing passes
        turn_penalty: Turn penalty for regular passes
        relaxed_turn_penalty: Turn penalty for the last-resort retry
        max_iterations: Search cap for regular passes
        relaxed_max_iterations: Search cap for the last-resort retry
        allow_wire_bridges: Fall back to straight top-side jumpers
    """

    board: Board
    connection_side: Side = Side.BOTTOM
    clear_existing: bool = True
    max_passes: int = DEFAULT_MAX_PASSES
    turn_penalty: int = TURN_PENALTY
    relaxed_turn_penalty: int = RELAXED_TURN_PENALTY
    max_iterations: int = AUTOROUTE_MAX_ITERATIONS
    relaxed_max_iterations: int = RELAXED_MAX_ITERATIONS
    allow_wire_bridges: bool = True


@dataclass
class RouteResult:
    """
    Outcome of an autoroute run.

    Attributes:
        connections: Connections created by this run (existing ones are
                     not repeated here)
        routed: Nets that are fully connected
        failed: Nets that could not be connected
        failed_nets: Names of the failed nets, in input order
        notices: PARTIAL_BATCH_FAILURE when anything failed
    """

    connections: List[Connection] = field(default_factory=list)
    routed: int = 0
    failed: int = 0
    failed_nets: List[str] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.routed + self.failed


@dataclass
class _Edge:
    index: int
    net: str
    a: GridPosition
    b: GridPosition
    priority: float


def is_power_net(name: str) -> bool:
    return bool(GND_RE.match(name) or PWR_RE.match(name))


def congestion_map(
    connections: Sequence[Connection],
    spread: int = CONGESTION_SPREAD,
    trace_weight: float = CONGESTION_TRACE_WEIGHT,
    neighbour_weight: float = CONGESTION_NEIGHBOUR_WEIGHT,
) -> Dict[GridPosition, float]:
    """Per-cell cost of routing next to existing traces."""
    costs: Dict[GridPosition, float] = {}
    for conn in connections:
        for cell in connection_cells(conn):
            costs[cell] = costs.get(cell, 0) + trace_weight
            for dc in range(-spread, spread + 1):
                for dr in range(-spread, spread + 1):
                    if (dc or dr) and abs(dc) + abs(dr) <= spread:
                        near = cell.offset(dc, dr)
                        costs[near] = costs.get(near, 0) + neighbour_weight
    return costs


def mst_edges(pins: Sequence[Tuple[str, GridPosition]], joined: Optional[nx.Graph] = None) -> List[Tuple[int, int]]:
    """
    Pin index pairs of the net's minimum spanning tree.

    Args:
        pins: (component id, world position) per pin
        joined: Graph over positions already connected; pairs in the same
                connected component are not routed again

    Pairs of pins on the same component are left out unless the net
    cannot be spanned without them.
    """
    def build(skip_same_component: bool) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(range(len(pins)))
        for i in range(len(pins)):
            for j in range(i + 1, len(pins)):
                if skip_same_component and pins[i][0] == pins[j][0]:
                    continue
                weight = pins[i][1].manhattan(pins[j][1])
                if pins[i][1] == pins[j][1]:
                    weight = 0
                elif joined is not None and pins[i][1] in joined and pins[j][1] in joined:
                    if nx.has_path(joined, pins[i][1], pins[j][1]):
                        weight = 0
                graph.add_edge(i, j, weight=weight)
        return graph

    graph = build(True)
    if len(pins) > 1 and not nx.is_connected(graph):
        graph = build(False)
    edges = []
    for i, j, data in nx.minimum_spanning_edges(graph, algorithm="prim", data=True):
        if data["weight"] == 0:
            continue
        edges.append((min(i, j), max(i, j)))
    return edges


def edge_priority(distance: int, power: bool, pin_count: int) -> float:
    """Lower routes first."""
    priority = float(distance)
    if distance <= 1:
        priority += ADJACENT_PRIORITY
    if power:
        priority += POWER_NET_PRIORITY
    if pin_count == 2 and distance <= SHORT_NET_DISTANCE:
        priority -= SHORT_NET_BONUS
    return priority


class Autorouter:
    """
    Routes a whole net-list over a placed board.

    Example:
        >>> result = Autorouter(RouteOptions(Board(30, 20))).route(components, nets)
        >>> result.routed, result.failed
        (6, 0)
    """

    def __init__(self, options: RouteOptions):
        self.options = options

    # -------------------------------------------------------------------------
    # Net resolution
    # -------------------------------------------------------------------------

    def _resolve(self, components: Sequence[Component], nets: Sequence[Net]):
        """Split nets into (required, unplaced) with resolved pin positions."""
        by_id = {comp.id: comp for comp in components}
        required: List[Tuple[Net, List[Tuple[str, GridPosition]]]] = []
        blocked: List[Net] = []
        for net in nets:
            pads = []
            for conn in net.connections:
                comp = by_id.get(conn.component_id)
                if comp is None:
                    continue
                pad = comp.pad(conn.pin_number)
                if pad is None:
                    continue
                pads.append((comp, pad))
            if len(pads) < 2:
                continue
            if any(not comp.is_placed for comp, _ in pads):
                blocked.append(net)
                required.append((net, []))
                continue
            required.append((net, [(comp.id, to_world(comp, pad.offset)) for comp, pad in pads]))
        return required, blocked

    def _joined_graph(self, existing: Sequence[Connection]) -> nx.Graph:
        graph = nx.Graph()
        for conn in existing:
            a, b = connection_endpoints(conn)
            graph.add_edge(a, b)
        return graph

    # -------------------------------------------------------------------------
    # Routing a single edge
    # -------------------------------------------------------------------------

    def _current(self) -> List[Connection]:
        return self._existing + [self._routed[i] for i in sorted(self._routed)]

    def _next_id(self, prefix: str, net: str) -> str:
        while True:
            self._counter += 1
            candidate = f"{prefix}-{net}-{self._counter}"
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate

    def _route_edge(
        self,
        edge: _Edge,
        congestion: Optional[Mapping[GridPosition, float]] = None,
        relaxed: bool = False,
    ) -> Optional[Connection]:
        opts = self.options
        side = opts.connection_side
        a, b = edge.a, edge.b
        conns = self._current()
        source = "Autorouter._route_edge"

        if is_adjacent(a, b) and not bridge_crosses(a, b, conns, side):
            self._record(a, b, "solder_bridge", [a, b], source)
            return SolderBridge(self._next_id("bridge", edge.net), a, b, side, edge.net)

        blocked = self._pads | connection_occupied_cells(conns, side) | wire_bridge_cells(conns)
        blocked -= {a, b}
        method = "relaxed" if relaxed else "astar"
        path = search(
            a,
            b,
            blocked_cells=blocked,
            bounds=opts.board,
            turn_penalty=opts.relaxed_turn_penalty if relaxed else opts.turn_penalty,
            congestion=None if relaxed else congestion,
            max_iterations=opts.relaxed_max_iterations if relaxed else opts.max_iterations,
            shortcuts=relaxed or congestion is None,
        )
        self._record(a, b, method, path, source)
        if path is not None:
            return Wire(self._next_id("wire", edge.net), tuple(path), side, edge.net)

        if opts.allow_wire_bridges:
            occupied = (
                self._pads
                | connection_occupied_cells(conns, Side.TOP)
                | connection_occupied_cells(conns, Side.BOTTOM)
            )
            route = straight_bridge_route(a, b, occupied, opts.board)
            self._record(a, b, "wire_bridge", route, source)
            if route is not None:
                return WireBridge(self._next_id("jumper", edge.net), a, b, edge.net)
        return None

    def _record(self, a, b, method, path, source):
        if self._trace is not None:
            self._trace.record_step(a, b, method, path, source)

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    def _rip_up_and_retry(self, edge: _Edge, edges: List[_Edge], congestion) -> bool:
        box = BBox.from_points([edge.a, edge.b]).expanded(RIPUP_MARGIN)
        victims = [
            i
            for i, conn in sorted(self._routed.items())
            if edges[i].net != edge.net and any(box.contains(p) for p in connection_points(conn))
        ]
        if not victims:
            return False

        saved = {i: self._routed.pop(i) for i in victims}
        conn = self._route_edge(edge, congestion)
        if conn is None:
            self._routed.update(saved)
            return False
        self._routed[edge.index] = conn

        rerouted = []
        for i in victims:
            replacement = self._route_edge(edges[i], congestion)
            if replacement is None:
                break
            self._routed[i] = replacement
            rerouted.append(i)
        else:
            logger.debug("Rip-up freed %s by moving %d route(s)", edge.net, len(victims))
            return True

        # Both cannot coexist: put everything back
        del self._routed[edge.index]
        for i in rerouted:
            del self._routed[i]
        self._routed.update(saved)
        return False

    def route(
        self,
        components: Sequence[Component],
        nets: Sequence[Net],
        existing: Sequence[Connection] = (),
        trace: Optional[RoutingTrace] = None,
    ) -> RouteResult:
        """
        Route every net that needs a connection.

        Args:
            components: Components with positions; unplaced ones make
                        their nets fail
            nets: Net-list
            existing: Connections already on the board
            trace: Optional trace that records passes and decisions

        Returns:
            RouteResult where routed + failed equals the number of nets
            with two or more resolvable pins.
        """
        opts = self.options
        self._trace = trace
        if trace is not None and not trace.operation:
            trace.operation = "autoroute"
        self._existing = [] if opts.clear_existing else list(existing)
        self._taken: Set[str] = {conn.id for conn in self._existing}
        self._routed: Dict[int, Connection] = {}
        self._counter = 0
        self._pads = board_occupied_cells(components)

        required, blocked = self._resolve(components, nets)
        blocked_names = {net.name for net in blocked}
        joined = self._joined_graph(self._existing)

        edges: List[_Edge] = []
        for net, pins in required:
            if net.name in blocked_names:
                continue
            power = is_power_net(net.name)
            for i, j in mst_edges(pins, joined):
                a, b = pins[i][1], pins[j][1]
                priority = edge_priority(a.manhattan(b), power, len(pins))
                edges.append(_Edge(len(edges), net.name, a, b, priority))
        order = sorted(edges, key=lambda e: e.priority)

        for edge in order:
            conn = self._route_edge(edge)
            if conn is not None:
                self._routed[edge.index] = conn
        self._stage("pass_1", edges, components)

        for pass_num in range(2, opts.max_passes + 1):
            pending = [e for e in order if e.index not in self._routed]
            if not pending:
                break
            congestion = congestion_map([self._routed[i] for i in sorted(self._routed)])
            for edge in pending:
                conn = self._route_edge(edge, congestion)
                if conn is not None:
                    self._routed[edge.index] = conn
                    continue
                if self._rip_up_and_retry(edge, edges, congestion):
                    continue
                conn = self._route_edge(edge, relaxed=True)
                if conn is not None:
                    self._routed[edge.index] = conn
            self._stage(f"pass_{pass_num}", edges, components)

        failed_edges = {e.net for e in edges if e.index not in self._routed}
        result = RouteResult()
        for net, _ in required:
            if net.name in blocked_names or net.name in failed_edges:
                result.failed += 1
                result.failed_nets.append(net.name)
            else:
                result.routed += 1
        failed_set = set(result.failed_nets)
        result.connections = [
            self._routed[i] for i in sorted(self._routed) if edges[i].net not in failed_set
        ]

        if result.failed:
            message = f"{result.failed} of {result.total} nets could not be routed"
            result.notices.append(
                Notice(NoticeKind.PARTIAL_BATCH_FAILURE, message, ", ".join(result.failed_nets))
            )
            logger.warning("Autoroute failed nets: %s", ", ".join(result.failed_nets))
        logger.info("Autoroute: %d routed, %d failed", result.routed, result.failed)
        return result

    def _stage(self, name: str, edges: List[_Edge], components: Sequence[Component]):
        if self._trace is None:
            return
        self._trace.add_stage(
            name,
            {"edges": len(edges), "routed_edges": len(self._routed)},
            ascii_grid(self.options.board, components, self._current()),
        )


@dataclass
class PlaceAndRouteResult:
    """Layout, routing and the placed components they were computed on."""

    layout: LayoutResult
    route: RouteResult
    components: List[Component]


def place_and_route(
    components: Sequence[Component],
    nets: Sequence[Net],
    board: Board,
    mode: LayoutMode = LayoutMode.EASY_SOLDERING,
    options: Optional[RouteOptions] = None,
    *,
    seed: int = 0,
    sa_iterations: Optional[int] = None,
    trace: Optional[RoutingTrace] = None,
) -> PlaceAndRouteResult:
    """
    Auto-layout, then autoroute.

    Components that could not be placed stay unplaced, so every net that
    touches them is reported failed by the router.
    """
    layout_result = AutoLayout(board, mode, seed=seed, sa_iterations=sa_iterations, trace=trace).layout(
        components, nets
    )
    placed = layout_result.apply(components)
    options = options or RouteOptions(board)
    route_result = Autorouter(options).route(placed, nets, trace=trace)
    return PlaceAndRouteResult(layout_result, route_result, placed)
