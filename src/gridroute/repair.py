"""
Topology repair after component transforms.

When a component is moved, rotated or mirrored its pins change position.
Repair keeps the sheet electrically and visually consistent, in four
ordered steps:

1. Reroute connected paths: paths ending on an old pin position follow
   the pin to its new position and are re-searched end to end.
2. Pull-apart paths: pins that coincided with another component's pin
   (an implicit connection) and have moved away get a new explicit path
   from the old position to the new one.
3. Reroute blocked paths: paths that now run through the moved
   component, or along one of its pin stubs, are routed around it.
4. Reroute overlapping paths: of two different-net paths sharing a grid
   edge, the later one is rerouted.

Repair never refuses an edit: a connection that cannot be searched falls
back to an L-route and a NO_ROUTE_FOUND notice is reported. The input
snapshot is never modified; the result is a list of mutations.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .config import COMPONENT_MARGIN, MAX_SEARCH_ITERATIONS, NET_EPSILON, TURN_PENALTY
from .errors import Notice, NoticeKind
from .geometry import (
    outline_bbox,
    path_crosses_bbox,
    path_edges,
    pin_positions,
    pin_stubs,
    segments_overlap,
)
from .models import (
    AddConnection,
    Component,
    Connection,
    Edge,
    GridPosition,
    Mutation,
    RemoveConnection,
    Side,
    Snapshot,
    SolderBridge,
    UpdateConnection,
    Wire,
    WireBridge,
    apply_mutations,
    as_position,
    connection_edges,
    connection_endpoints,
    connection_points,
)
from .nets import NetIndex, points_match
from .obstacles import build_obstacles, check_placement, occupied_edges, other_net_pin_cells
from .search import fallback_l_route, search
from .tracer import RoutingTrace

logger = logging.getLogger(__name__)

PinMap = Mapping[str, Sequence[Tuple[int, int]]]


@dataclass
class RepairResult:
    """
    Outcome of a repair.

    Attributes:
        mutations: Changes to apply, in order.
        notices: Non-fatal problems (fallback routes, blocked placement).
        snapshot: The snapshot after the transform and the mutations.
    """

    mutations: List[Mutation] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)
    snapshot: Optional[Snapshot] = None

    @property
    def blocked(self) -> bool:
        return any(n.kind == NoticeKind.PLACEMENT_BLOCKED for n in self.notices)


class TopologyRepairer:
    """
    Runs the four repair steps against one post-transform snapshot.

    Example:
        >>> repairer = TopologyRepairer(after)
        >>> result = repairer.repair(["U1"], {"U1": old_pins}, {"U1": new_pins})
        >>> apply_mutations(after, result.mutations)
    """

    def __init__(
        self,
        snapshot: Snapshot,
        *,
        epsilon: float = NET_EPSILON,
        turn_penalty: int = TURN_PENALTY,
        margin: int = COMPONENT_MARGIN,
        max_iterations: int = MAX_SEARCH_ITERATIONS,
        trace: Optional[RoutingTrace] = None,
    ):
        self.snapshot = snapshot
        self.epsilon = epsilon
        self.turn_penalty = turn_penalty
        self.max_iterations = max_iterations
        self.trace = trace
        self.components: List[Component] = snapshot.placed_components
        self.obstacles = build_obstacles(self.components, margin)
        self.allowed_cells: Set[GridPosition] = set()
        for obstacle in self.obstacles:
            self.allowed_cells.update(obstacle.allowed_cells)
        self.working: Dict[str, Connection] = {}
        self.notices: List[Notice] = []

    def repair(
        self,
        component_ids: Iterable[str],
        old_pins: PinMap,
        new_pins: PinMap,
        moved: Optional[bool] = None,
    ) -> RepairResult:
        """
        Repair the sheet after the given components moved.

        Args:
            component_ids: Components that were transformed together.
            old_pins: Pin positions per component before the transform.
            new_pins: Pin positions per component after the transform,
                      index-aligned with old_pins.
            moved: Whether any component changed position, rotation or
                   mirror. Defaults to comparing the pins, which misses
                   components without pins.
        """
        component_ids = list(component_ids)
        self.working = {conn.id: conn for conn in self.snapshot.connections}
        self.notices = []

        pairs: List[Tuple[GridPosition, GridPosition]] = []
        for cid in component_ids:
            for old, new in zip(old_pins.get(cid, ()), new_pins.get(cid, ())):
                pairs.append((as_position(old), as_position(new)))
        if moved is None:
            moved = any(old != new for old, new in pairs)
        if not moved:
            return RepairResult([], [], self.snapshot)

        rerouted = self._reroute_connected(pairs)
        self._stage("reroute_connected", rerouted=sorted(rerouted))

        added = self._pull_apart(component_ids, old_pins, new_pins)
        self._stage("pull_apart", added=added)

        blocked = self._reroute_blocked(component_ids)
        self._stage("reroute_blocked", rerouted=blocked)

        overlapping = self._reroute_overlapping()
        self._stage("reroute_overlapping", rerouted=overlapping)

        mutations = self._diff()
        logger.debug(
            "Repair of %s: %d mutations, %d notices",
            ", ".join(component_ids),
            len(mutations),
            len(self.notices),
        )
        return RepairResult(mutations, list(self.notices), apply_mutations(self.snapshot, mutations))

    # -------------------------------------------------------------------------
    # Routing helpers
    # -------------------------------------------------------------------------

    def _stage(self, name: str, **data):
        if self.trace is not None:
            self.trace.add_stage(name, data)

    def _route(
        self,
        start: GridPosition,
        goal: GridPosition,
        blocked_edges: Set[Edge],
        exclude: Set[str] = frozenset(),
        seeds: Sequence[GridPosition] = (),
    ) -> Optional[List[GridPosition]]:
        if start == goal:
            return None
        index = NetIndex(list(self.working.values()), self.snapshot.labels, self.epsilon)
        seed_points = [start, goal, *seeds]
        same_ids = index.same_net(seed_points) - set(exclude)
        same_edges = occupied_edges(self.working[i] for i in same_ids)
        pin_cells = other_net_pin_cells(self.components, seed_points, index, self.epsilon)
        path = search(
            start,
            goal,
            self.obstacles,
            blocked_edges,
            same_edges,
            self.allowed_cells,
            pin_cells,
            turn_penalty=self.turn_penalty,
            max_iterations=self.max_iterations,
        )
        if self.trace is not None:
            self.trace.record_step(start, goal, "astar", path, "TopologyRepairer")
        return path

    def _route_or_fallback(self, conn_id: str, start, goal, blocked_edges, **kwargs) -> List[GridPosition]:
        path = self._route(start, goal, blocked_edges, **kwargs)
        if path is not None:
            return path
        path = fallback_l_route(start, goal)
        logger.warning("No route for %s from %s to %s; using L-route", conn_id, tuple(start), tuple(goal))
        self.notices.append(
            Notice(NoticeKind.NO_ROUTE_FOUND, "fell back to an L-route", conn_id)
        )
        if self.trace is not None:
            self.trace.record_step(start, goal, "fallback_l", path, "TopologyRepairer")
        return path

    def _remap(self, point: GridPosition, pairs) -> Optional[GridPosition]:
        for old, new in pairs:
            if points_match(point, old, self.epsilon):
                return new
        return None

    def _fresh_id(self, base: str) -> str:
        candidate, n = base, 1
        taken = set(self.working) | {c.id for c in self.snapshot.connections}
        while candidate in taken:
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    # -------------------------------------------------------------------------
    # Step 1: connected paths follow their pins
    # -------------------------------------------------------------------------

    def _reroute_connected(self, pairs) -> Set[str]:
        targets = []
        for conn in self.working.values():
            start, end = connection_endpoints(conn)
            new_start = self._remap(start, pairs)
            new_end = self._remap(end, pairs)
            if new_start is None and new_end is None:
                continue
            new_start = new_start if new_start is not None else start
            new_end = new_end if new_end is not None else end
            if (new_start, new_end) == (start, end):
                continue
            targets.append((conn, start, end, new_start, new_end))

        target_ids = {t[0].id for t in targets}
        blocked = occupied_edges(c for c in self.working.values() if c.id not in target_ids)

        for conn, start, end, new_start, new_end in targets:
            if new_start == new_end:
                logger.debug("Connection %s collapsed to a point; removing", conn.id)
                del self.working[conn.id]
                continue
            if isinstance(conn, (SolderBridge, WireBridge)) and new_start.manhattan(new_end) == 1:
                side = Side.BOTTOM if isinstance(conn, WireBridge) else conn.side
                replacement = SolderBridge(conn.id, new_start, new_end, side, conn.net_id)
            else:
                path = self._route_or_fallback(
                    conn.id, new_start, new_end, blocked, exclude={conn.id}, seeds=(start, end)
                )
                side = Side.BOTTOM if isinstance(conn, WireBridge) else conn.side
                replacement = Wire(conn.id, tuple(path), side, conn.net_id)
            self.working[conn.id] = replacement
            blocked.update(connection_edges(replacement))
        return target_ids

    # -------------------------------------------------------------------------
    # Step 2: implicit pin-to-pin joints become explicit paths
    # -------------------------------------------------------------------------

    def _already_joined(self, a: GridPosition, b: GridPosition) -> bool:
        for conn in self.working.values():
            first, last = connection_endpoints(conn)
            if (points_match(first, a, self.epsilon) and points_match(last, b, self.epsilon)) or (
                points_match(first, b, self.epsilon) and points_match(last, a, self.epsilon)
            ):
                return True
        return False

    def _pull_apart(self, component_ids: List[str], old_pins: PinMap, new_pins: PinMap) -> List[str]:
        group = set(component_ids)
        outside_pins: List[GridPosition] = []
        for comp in self.components:
            if comp.id not in group:
                outside_pins.extend(pin_positions(comp))

        added = []
        for cid in component_ids:
            for i, (old, new) in enumerate(zip(old_pins.get(cid, ()), new_pins.get(cid, ()))):
                old, new = as_position(old), as_position(new)
                if old == new:
                    continue
                if not any(points_match(old, p, self.epsilon) for p in outside_pins):
                    continue
                if self._already_joined(old, new):
                    continue
                conn_id = self._fresh_id(f"{cid}-pull-{i + 1}")
                blocked = occupied_edges(self.working.values())
                path = self._route_or_fallback(conn_id, old, new, blocked)
                self.working[conn_id] = Wire(conn_id, tuple(path))
                added.append(conn_id)
        return added

    # -------------------------------------------------------------------------
    # Step 3: paths now running through a moved component
    # -------------------------------------------------------------------------

    def _is_blocked_by(self, wire: Wire, comp: Component) -> bool:
        ends = connection_endpoints(wire)
        pins = pin_positions(comp)
        connected = any(points_match(e, p, self.epsilon) for e in ends for p in pins)
        if not connected and path_crosses_bbox(wire.points, outline_bbox(comp, 0)):
            return True
        for base, tip in pin_stubs(comp):
            if any(points_match(e, base, self.epsilon) for e in ends):
                continue
            for a, b in zip(wire.points, wire.points[1:]):
                if segments_overlap(a, b, base, tip):
                    return True
        return False

    def _reroute_blocked(self, component_ids: List[str]) -> List[str]:
        moved = [c for c in self.components if c.id in set(component_ids)]
        blocked_ids = [
            conn.id
            for conn in self.working.values()
            if isinstance(conn, Wire) and any(self._is_blocked_by(conn, comp) for comp in moved)
        ]
        if not blocked_ids:
            return []

        blocked_set = set(blocked_ids)
        edges = occupied_edges(c for c in self.working.values() if c.id not in blocked_set)
        for conn_id in blocked_ids:
            wire = self.working[conn_id]
            path = self._route_or_fallback(conn_id, wire.start, wire.end, edges, exclude={conn_id})
            self.working[conn_id] = wire.with_points(path)
            edges.update(path_edges(path))
        return blocked_ids

    # -------------------------------------------------------------------------
    # Step 4: different-net paths sharing an edge
    # -------------------------------------------------------------------------

    def _reroute_overlapping(self) -> List[str]:
        wires = [c for c in self.working.values() if isinstance(c, Wire)]
        if len(wires) < 2:
            return []
        index = NetIndex(list(self.working.values()), self.snapshot.labels, self.epsilon)
        edge_sets = {w.id: set(connection_edges(w)) for w in wires}

        marked: List[str] = []
        for i, a in enumerate(wires):
            if a.id in marked:
                continue
            net = index.net_of(a.id) or {a.id}
            for b in wires[i + 1:]:
                if b.id in marked or b.id in net:
                    continue
                if edge_sets[a.id] & edge_sets[b.id]:
                    marked.append(b.id)
        if not marked:
            return []

        marked_set = set(marked)
        edges = occupied_edges(c for c in self.working.values() if c.id not in marked_set)
        for conn_id in marked:
            wire = self.working[conn_id]
            path = self._route(wire.start, wire.end, edges, exclude={conn_id})
            if path is not None:
                wire = wire.with_points(path)
                self.working[conn_id] = wire
            edges.update(connection_edges(wire))
        return marked

    # -------------------------------------------------------------------------
    # Result
    # -------------------------------------------------------------------------

    def _diff(self) -> List[Mutation]:
        mutations: List[Mutation] = []
        original = {conn.id: conn for conn in self.snapshot.connections}
        for conn_id, conn in original.items():
            current = self.working.get(conn_id)
            if current is None:
                mutations.append(RemoveConnection(conn_id))
            elif type(current) is not type(conn):
                mutations.append(RemoveConnection(conn_id))
                mutations.append(AddConnection(current))
            elif connection_points(current) != connection_points(conn):
                mutations.append(UpdateConnection(conn_id, connection_points(current)))
        for conn_id, conn in self.working.items():
            if conn_id not in original:
                mutations.append(AddConnection(conn))
        return mutations


# =============================================================================
# Edit operations
# =============================================================================


def _placement_changed(old: Component, new: Component) -> bool:
    return (old.position, old.rotation, old.mirror) != (new.position, new.rotation, new.mirror)


def repair_after_transform(
    before: Snapshot, after: Snapshot, component_id: str, **kwargs
) -> RepairResult:
    """Repair after one component was moved, rotated or mirrored."""
    old = before.component(component_id)
    new = after.component(component_id)
    old_pins = {component_id: pin_positions(old) if old.is_placed else []}
    new_pins = {component_id: pin_positions(new) if new.is_placed else []}
    moved = _placement_changed(old, new)
    return TopologyRepairer(after, **kwargs).repair([component_id], old_pins, new_pins, moved)


def repair_after_group_move(
    before: Snapshot, after: Snapshot, component_ids: Iterable[str], **kwargs
) -> RepairResult:
    """Repair after several components moved together."""
    component_ids = list(component_ids)
    old_pins, new_pins = {}, {}
    moved = False
    for cid in component_ids:
        old, new = before.component(cid), after.component(cid)
        old_pins[cid] = pin_positions(old) if old.is_placed else []
        new_pins[cid] = pin_positions(new) if new.is_placed else []
        moved = moved or _placement_changed(old, new)
    return TopologyRepairer(after, **kwargs).repair(component_ids, old_pins, new_pins, moved)


def transform_component(
    snapshot: Snapshot,
    component_id: str,
    *,
    position: Optional[Tuple[int, int]] = None,
    rotation: Optional[int] = None,
    mirror: Optional[bool] = None,
    **kwargs,
) -> RepairResult:
    """
    Move, rotate and/or mirror a component, then repair the sheet.

    The new placement is validated first; if it collides with another
    symbol the result carries a PLACEMENT_BLOCKED notice, no mutations,
    and the unchanged snapshot.
    """
    comp = snapshot.component(component_id)
    changes = {}
    if position is not None:
        changes["position"] = as_position(position)
    if rotation is not None:
        changes["rotation"] = rotation
    if mirror is not None:
        changes["mirror"] = mirror
    moved = comp.moved(**changes)
    if moved == comp:
        return RepairResult([], [], snapshot)

    notice = check_placement(moved, snapshot.components)
    if notice is not None:
        logger.debug("Transform of %s blocked: %s", component_id, notice.message)
        return RepairResult([], [notice], snapshot)

    after = snapshot.with_component(moved)
    return repair_after_transform(snapshot, after, component_id, **kwargs)


def move_component_group(
    snapshot: Snapshot,
    component_ids: Iterable[str],
    delta: Tuple[int, int],
    **kwargs,
) -> RepairResult:
    """
    Translate several components by the same delta, then repair.

    Pins shared between members of the group stay joined; only pins
    shared with components outside the group are pulled apart.
    """
    component_ids = list(dict.fromkeys(component_ids))
    dc, dr = delta
    if (dc, dr) == (0, 0) or not component_ids:
        return RepairResult([], [], snapshot)

    group = set(component_ids)
    moved = []
    for cid in component_ids:
        comp = snapshot.component(cid)
        if comp.is_placed:
            moved.append(comp.moved(position=comp.position.offset(dc, dr)))
    outside = [c for c in snapshot.components if c.id not in group]
    for comp in moved:
        notice = check_placement(comp, outside)
        if notice is not None:
            return RepairResult([], [notice], snapshot)

    after = snapshot
    for comp in moved:
        after = after.with_component(comp)
    return repair_after_group_move(snapshot, after, component_ids, **kwargs)


def _point_on_connection(point: GridPosition, conn: Connection) -> bool:
    points = connection_points(conn)
    for a, b in zip(points, points[1:]):
        if a.col == b.col == point.col and min(a.row, b.row) <= point.row <= max(a.row, b.row):
            return True
        if a.row == b.row == point.row and min(a.col, b.col) <= point.col <= max(a.col, b.col):
            return True
    return False


def remove_dangling_wires(snapshot: Snapshot, epsilon: float = NET_EPSILON) -> List[RemoveConnection]:
    """
    Removals for wires with a floating endpoint.

    An endpoint is anchored when it touches a pin, a label, or any point
    of another remaining connection. Removing one wire can leave another
    floating, so the check repeats until nothing changes.
    """
    anchors: List[GridPosition] = [label.position for label in snapshot.labels]
    for comp in snapshot.placed_components:
        anchors.extend(pin_positions(comp))

    remaining = [c for c in snapshot.connections]
    removed: List[str] = []
    changed = True
    while changed:
        changed = False
        doomed = set()
        for conn in remaining:
            if not isinstance(conn, Wire):
                continue
            for end in connection_endpoints(conn):
                if any(points_match(end, a, epsilon) for a in anchors):
                    continue
                if any(
                    other.id != conn.id and other.id not in doomed and _point_on_connection(end, other)
                    for other in remaining
                ):
                    continue
                doomed.add(conn.id)
                break
        if doomed:
            changed = True
            removed.extend(c.id for c in remaining if c.id in doomed)
            remaining = [c for c in remaining if c.id not in doomed]
    if removed:
        logger.debug("Removing %d dangling wires", len(removed))
    return [RemoveConnection(conn_id) for conn_id in removed]
