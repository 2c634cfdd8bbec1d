"""
Auto-layout: place unplaced components on a bounded perfboard.

Uses networkx for:
- Connectivity graph between components (edge weight = shared nets)

Pipeline:
1. Connectivity analysis and zone classification (power, gnd, output)
2. Greedy placement: VCC anchored at the origin, then the most-connected
   component first, each scored over every free position and rotation
3. Simulated annealing on half-perimeter wire length plus zone penalties
4. Row alignment (modes that ask for it)
5. Validation: anything unplaced, out of bounds or overlapping is failed

Footprints never overlap in the result: a component that cannot be
placed is reported in ``failed_ids`` instead of being forced somewhere.
"""

import logging
import math
import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from .config import (
    PACK_AREA_WEIGHT,
    READING_ORDER_COL_WEIGHT,
    READING_ORDER_ROW_WEIGHT,
    SA_END_TEMPERATURE,
    SA_ITERATIONS_PER_PAIR,
    SA_MAX_ITERATIONS,
    SA_MIN_ITERATIONS,
    SA_SHIFT_PROBABILITY,
    WIRE_LENGTH_WEIGHT,
)
from .geometry import local_footprint_bbox, rotate_pad
from .models import BBox, Board, Component, GridPosition, Net
from .tracer import RoutingTrace

logger = logging.getLogger(__name__)

ROTATIONS = (0, 90, 180, 270)

GND_RE = re.compile(r"^(gnd|vss|ground|masse|0v|gnd\d*)$", re.IGNORECASE)
PWR_RE = re.compile(r"^(vcc|vdd|v\+|vin|\+\d+v?|\d+v|3v3|5v|12v|power|supply|vbat)$", re.IGNORECASE)
OUT_RE = re.compile(r"^(out|output|vout|q|y|do|dout|tx|mosi|sck|sda|scl)$", re.IGNORECASE)


class LayoutMode(Enum):
    """Placement strategy."""

    EXTRA_COMPACT = "extra_compact"
    COMPACT = "compact"
    EASY_SOLDERING = "easy_soldering"
    BEAUTIFUL = "beautiful"


@dataclass(frozen=True)
class ModePreset:
    """
    Tuning for one layout mode.

    Attributes:
        margin: Board edge margin (in holes)
        spacing: Minimum gap between footprints
        row_gap: Extra rows between aligned rows
        align_rows: Snap components to row bands after annealing
        routing_channel: Minimum gap reserved for traces
        zone_bias: Strength of the zone pull during greedy placement
        sa_multiplier: Scales the annealing iteration count
        zone_weight: Weight of the zone penalty during annealing
    """

    margin: int
    spacing: int
    row_gap: int
    align_rows: bool
    routing_channel: int
    zone_bias: float
    sa_multiplier: float
    zone_weight: float = 1.0

    @property
    def effective_spacing(self) -> int:
        return max(self.spacing, self.routing_channel)


MODE_PRESETS: Dict[LayoutMode, ModePreset] = {
    LayoutMode.EXTRA_COMPACT: ModePreset(0, 0, 0, False, 0, 0.15, 0.5, 1.0),
    LayoutMode.COMPACT: ModePreset(1, 1, 0, False, 2, 0.25, 1.0, 1.0),
    LayoutMode.EASY_SOLDERING: ModePreset(2, 2, 1, True, 3, 0.35, 1.0, 1.4),
    LayoutMode.BEAUTIFUL: ModePreset(2, 3, 2, True, 2, 0.45, 1.4, 2.2),
}


def classify_zone(component: Component, nets: Sequence[Net] = ()) -> str:
    """
    Board zone a component gravitates to.

    Returns "power" (top-left), "gnd" (bottom), "output" (right) or
    "general". Zones come from the library kind and category first, then
    from the names of the nets the component sits on.
    """
    kind = component.kind.lower()
    name = component.reference.lower()
    category = component.category.lower()

    if kind in ("power_vcc", "power_vdd") or name in ("vcc", "vdd"):
        return "power"
    if kind == "power_gnd" or name == "gnd":
        return "gnd"
    if category == "power" or "voltage_reg" in kind:
        return "power"

    net_names = [net.name for net in nets]
    if category == "connectors":
        has_gnd = any(GND_RE.match(n) for n in net_names)
        has_pwr = any(PWR_RE.match(n) for n in net_names)
        if has_gnd and not has_pwr:
            return "gnd"
        if has_pwr and not has_gnd:
            return "power"
        if any(OUT_RE.match(n) for n in net_names):
            return "output"

    for net in nets:
        if not OUT_RE.match(net.name):
            continue
        for conn in net.connections:
            if conn.component_id != component.id:
                continue
            pin_name = conn.pin_name
            if not pin_name:
                pad = component.pad(conn.pin_number)
                pin_name = pad.name if pad is not None else ""
            if OUT_RE.match(pin_name):
                return "output"
    return "general"


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def _local_offset(component: Component, offset: GridPosition) -> GridPosition:
    if component.mirror:
        return GridPosition(-offset.col, offset.row)
    return offset


@dataclass
class LayoutResult:
    """
    Outcome of an auto-layout run.

    Attributes:
        positions: Anchor per placed component id
        rotations: Rotation per placed component id
        placed: Number of placed components
        failed: Number of components that could not be placed
        failed_ids: Ids of those components, in input order
    """

    positions: Dict[str, GridPosition] = field(default_factory=dict)
    rotations: Dict[str, int] = field(default_factory=dict)
    placed: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)

    def apply(self, components: Iterable[Component]) -> List[Component]:
        """Components with the layout applied; failed ones come back unplaced."""
        result = []
        for comp in components:
            if comp.id in self.positions:
                result.append(comp.moved(position=self.positions[comp.id], rotation=self.rotations[comp.id]))
            else:
                result.append(comp.moved(position=None))
        return result


@dataclass
class _Info:
    comp: Component
    zone: str
    rotation: int = 0

    @property
    def pads(self) -> List[GridPosition]:
        return [_local_offset(self.comp, pad.offset) for pad in self.comp.pads]


class AutoLayout:
    """
    Places components on a board for one mode.

    Example:
        >>> result = AutoLayout(Board(30, 20), LayoutMode.COMPACT, seed=1).layout(components, nets)
        >>> result.placed, result.failed
        (4, 0)
    """

    def __init__(
        self,
        board: Board,
        mode: LayoutMode = LayoutMode.EASY_SOLDERING,
        *,
        margin: Optional[int] = None,
        spacing: Optional[int] = None,
        seed: int = 0,
        sa_iterations: Optional[int] = None,
        trace: Optional[RoutingTrace] = None,
    ):
        self.board = board
        self.mode = mode
        self.preset = MODE_PRESETS[mode]
        self.margin = self.preset.margin if margin is None else margin
        base_spacing = self.preset.spacing if spacing is None else spacing
        self.spacing = max(base_spacing, self.preset.routing_channel)
        self.seed = seed
        self.sa_iterations = sa_iterations
        self.trace = trace
        self._bbox_cache: Dict[Tuple[int, int], BBox] = {}

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _prepare(self, components: Sequence[Component], nets: Sequence[Net]):
        self.infos: List[_Info] = []
        index = {comp.id: i for i, comp in enumerate(components)}
        nets_for: List[List[Net]] = [[] for _ in components]
        for net in nets:
            for conn in net.connections:
                ci = index.get(conn.component_id)
                if ci is not None and net not in nets_for[ci]:
                    nets_for[ci].append(net)
        for i, comp in enumerate(components):
            self.infos.append(_Info(comp, classify_zone(comp, nets_for[i]), comp.rotation))

        # Nets as lists of (component index, pad offset), 2+ resolvable pins only
        self.nets: List[List[Tuple[int, GridPosition]]] = []
        self.comp_nets: List[List[int]] = [[] for _ in components]
        self.graph = nx.Graph()
        self.graph.add_nodes_from(range(len(components)))
        for net in nets:
            pins = []
            for conn in net.connections:
                ci = index.get(conn.component_id)
                if ci is None:
                    continue
                pad = components[ci].pad(conn.pin_number)
                if pad is None:
                    continue
                pins.append((ci, _local_offset(components[ci], pad.offset)))
            if len(pins) < 2:
                continue
            ni = len(self.nets)
            self.nets.append(pins)
            members = sorted({ci for ci, _ in pins})
            for ci in members:
                self.comp_nets[ci].append(ni)
            for x, a in enumerate(members):
                for b in members[x + 1:]:
                    weight = self.graph.get_edge_data(a, b, {"weight": 0})["weight"]
                    self.graph.add_edge(a, b, weight=weight + 1)

    def _local_bbox(self, ci: int, rotation: int) -> BBox:
        key = (ci, rotation)
        box = self._bbox_cache.get(key)
        if box is None:
            info = self.infos[ci]
            box = local_footprint_bbox(info.pads, rotation, info.comp.span)
            self._bbox_cache[key] = box
        return box

    def _world_bbox(self, ci: int, pos: GridPosition, rotation: int) -> BBox:
        return self._local_bbox(ci, rotation).translated(pos.col, pos.row)

    def _fits(self, ci: int, pos: GridPosition, rotation: int, boxes: Iterable[BBox]) -> bool:
        box = self._world_bbox(ci, pos, rotation)
        if not (self.board.contains((box.min_col, box.min_row)) and self.board.contains((box.max_col, box.max_row))):
            return False
        grown = box.expanded(self.spacing)
        return not any(grown.overlaps(other) for other in boxes)

    def _connection_weight(self, ci: int, placed: Iterable[int]) -> float:
        return sum(self.graph[ci][j]["weight"] for j in placed if self.graph.has_edge(ci, j))

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def layout(self, components: Sequence[Component], nets: Sequence[Net] = ()) -> LayoutResult:
        """
        Place every component.

        Args:
            components: Components to place; existing positions are ignored.
            nets: Net-list describing which pins must be connected.

        Returns:
            LayoutResult with positions for placed components and the
            ids of components that did not fit.
        """
        components = list(components)
        if not components:
            return LayoutResult()
        self._bbox_cache = {}
        self._prepare(components, nets)

        positions, rotations = self._greedy()
        self._stage("greedy", positions)

        if self.mode != LayoutMode.EXTRA_COMPACT:
            positions = self._anneal(positions, rotations)
            self._stage("annealing", positions)

        if self.preset.align_rows:
            band = (4 if self.mode == LayoutMode.BEAUTIFUL else 3) + self.preset.row_gap
            positions = self._align_rows(positions, rotations, band)
            self._stage("row_align", positions)

        result = self._validate(positions, rotations)
        self._stage("validate", positions, placed=result.placed, failed=result.failed)
        logger.info("Auto-layout (%s): %d placed, %d failed", self.mode.value, result.placed, result.failed)
        if result.failed:
            logger.warning("Auto-layout could not place: %s", ", ".join(result.failed_ids))
        return result

    def _stage(self, name: str, positions, **extra):
        if self.trace is not None:
            placed = sum(1 for p in positions if p is not None)
            self.trace.add_stage(name, {"placed": placed, **extra})

    # -------------------------------------------------------------------------
    # Greedy placement
    # -------------------------------------------------------------------------

    def _cost(self, ci, pos, rotation, positions, rotations, envelope: Optional[BBox]) -> float:
        bw, bh = self.board.width, self.board.height
        dbw, dbh = max(1, bw - 1), max(1, bh - 1)

        pack = 0.0
        if envelope is not None:
            grown = envelope.union(self._world_bbox(ci, pos, rotation))
            pack = (grown.area - envelope.area) * PACK_AREA_WEIGHT
        pack += READING_ORDER_ROW_WEIGHT * (pos.row / dbh) + READING_ORDER_COL_WEIGHT * (pos.col / dbw)

        wire = 0
        has_neighbour = False
        for ni in self.comp_nets[ci]:
            pins = self.nets[ni]
            for pci, pad in pins:
                if pci != ci:
                    continue
                mine = pos.offset(*rotate_pad(pad, rotation))
                for oci, opad in pins:
                    if oci == ci or positions[oci] is None:
                        continue
                    has_neighbour = True
                    other = positions[oci].offset(*rotate_pad(opad, rotations[oci]))
                    wire += mine.manhattan(other)
        wire_cost = WIRE_LENGTH_WEIGHT * wire / max(1, bw + bh) if has_neighbour else 0.0

        zb = self.preset.zone_bias
        zone = self.infos[ci].zone
        c, r = pos.col / dbw, pos.row / dbh
        if zone == "power":
            zone_cost = zb * 6 * (c + r)
        elif zone == "gnd":
            zone_cost = zb * 8 * (1 - r) + zb * 2 * c
        elif zone == "output":
            zone_cost = zb * 6 * (1 - c)
        else:
            zone_cost = 0.0
        return pack + wire_cost + zone_cost

    def _scan_area(self, envelope: Optional[BBox]) -> BBox:
        if envelope is None:
            return self.board.bbox
        pad = max(
            [10]
            + [
                max(self._local_bbox(i, 0).width, self._local_bbox(i, 0).height) + self.spacing * 2
                for i in range(len(self.infos))
            ]
        )
        return BBox(
            max(0, envelope.min_col - pad),
            max(0, envelope.min_row - pad),
            min(self.board.width - 1, envelope.max_col + pad * 2),
            min(self.board.height - 1, envelope.max_row + pad * 2),
        )

    def _find_best(self, ci, positions, rotations, boxes, envelope) -> Optional[Tuple[GridPosition, int]]:
        area = self._scan_area(envelope)
        best = None
        best_cost = math.inf
        for rotation in ROTATIONS:
            for pos in area.cells():
                if not self._fits(ci, pos, rotation, boxes):
                    continue
                cost = self._cost(ci, pos, rotation, positions, rotations, envelope)
                if cost < best_cost:
                    best_cost = cost
                    best = (pos, rotation)
        if best is not None:
            return best

        center = GridPosition(_round(self.board.width / 2), _round(self.board.height / 2))
        for rotation in ROTATIONS:
            pos = self._find_free(ci, center, rotation, boxes)
            if pos is not None:
                return pos, rotation
        return None

    def _find_nearest(self, ci, target, positions, rotations, boxes, envelope):
        best = None
        best_cost = math.inf
        for rotation in ROTATIONS:
            pos = self._find_free(ci, target, rotation, boxes)
            if pos is None:
                continue
            cost = self._cost(ci, pos, rotation, positions, rotations, envelope)
            if cost < best_cost:
                best_cost = cost
                best = (pos, rotation)
        return best

    def _find_free(self, ci, target: GridPosition, rotation: int, boxes, row_snap: int = 0) -> Optional[GridPosition]:
        """Row-major scan from target, then a diamond spiral."""
        pos = self._row_major_scan(ci, target, rotation, boxes, row_snap)
        if pos is None and row_snap:
            pos = self._spiral(ci, target, rotation, boxes, row_snap)
        if pos is None:
            pos = self._spiral(ci, target, rotation, boxes, 0)
        return pos

    def _snapped(self, row: int, row_snap: int) -> bool:
        return row_snap <= 0 or (row - self.margin) % row_snap == 0

    def _row_major_scan(self, ci, target, rotation, boxes, row_snap) -> Optional[GridPosition]:
        bw, bh = self.board.width, self.board.height
        max_r = max(bw, bh)
        for d_row in range(max_r + 1):
            for ro in ((0,) if d_row == 0 else (d_row, -d_row)):
                row = target.row + ro
                if row < 0 or row >= bh or not self._snapped(row, row_snap):
                    continue
                for d_col in range(max_r + 1):
                    if d_col + d_row > max_r:
                        break
                    for co in ((0,) if d_col == 0 else (d_col, -d_col)):
                        col = target.col + co
                        if col < 0 or col >= bw:
                            continue
                        pos = GridPosition(col, row)
                        if self._fits(ci, pos, rotation, boxes):
                            return pos
        return None

    def _spiral(self, ci, target, rotation, boxes, row_snap) -> Optional[GridPosition]:
        max_r = max(self.board.width, self.board.height)
        for radius in range(max_r + 1):
            for dc in range(-radius, radius + 1):
                dr = radius - abs(dc)
                for d_row in ((0,) if dr == 0 else (-dr, dr)):
                    pos = GridPosition(target.col + dc, target.row + d_row)
                    if not self._snapped(pos.row, row_snap):
                        continue
                    if self._fits(ci, pos, rotation, boxes):
                        return pos
        return None

    def _vcc_index(self) -> Optional[int]:
        for i, info in enumerate(self.infos):
            if info.zone != "power":
                continue
            kind = info.comp.kind.lower()
            name = info.comp.reference.lower()
            if kind in ("power_vcc", "power_vdd") or name in ("vcc", "vdd"):
                return i
        return None

    def _greedy(self):
        n = len(self.infos)
        positions: List[Optional[GridPosition]] = [None] * n
        rotations = [info.rotation for info in self.infos]
        boxes: Dict[int, BBox] = {}
        envelope: Optional[BBox] = None

        def place(ci, pos, rotation):
            nonlocal envelope
            positions[ci] = pos
            rotations[ci] = rotation
            boxes[ci] = self._world_bbox(ci, pos, rotation)
            envelope = boxes[ci] if envelope is None else envelope.union(boxes[ci])

        vcc = self._vcc_index()
        if vcc is not None:
            pads = self.infos[vcc].pads or [(0, 0)]
            for rotation in ROTATIONS:
                first = rotate_pad(pads[0], rotation)
                pos = GridPosition(-first.col, -first.row)
                if self._fits(vcc, pos, rotation, boxes.values()):
                    place(vcc, pos, rotation)
                    break

        remaining = [i for i in range(n) if positions[i] is None and self.infos[i].zone != "gnd"]
        gnd = [i for i in range(n) if positions[i] is None and self.infos[i].zone == "gnd"]

        while remaining:
            best_idx, best_conn = 0, -1.0
            placed = list(boxes)
            for k, ci in enumerate(remaining):
                conn = self._connection_weight(ci, placed)
                if self.infos[ci].zone == "power":
                    conn += 0.5
                if conn > best_conn:
                    best_conn, best_idx = conn, k
            ci = remaining.pop(best_idx)
            found = self._find_best(ci, positions, rotations, boxes.values(), envelope)
            if found is not None:
                place(ci, *found)
            else:
                logger.debug("Greedy placement found no room for %s", self.infos[ci].comp.id)

        bw, bh = self.board.width, self.board.height
        for ci in gnd:
            total = 0.0
            centroid = 0.0
            for j in boxes:
                if self.graph.has_edge(ci, j):
                    w = self.graph[ci][j]["weight"]
                    centroid += positions[j].col * w
                    total += w
            ideal_col = self.margin
            if total > 0:
                centroid /= total
                dist_left = abs(centroid - self.margin)
                dist_right = abs(centroid - (bw - self.margin - 1))
                if dist_right < dist_left * 0.6:
                    ideal_col = bw - self.margin - 2
            target = GridPosition(ideal_col, bh - self.margin - 1)
            found = self._find_nearest(ci, target, positions, rotations, boxes.values(), envelope)
            if found is not None:
                place(ci, *found)

        for i, info in enumerate(self.infos):
            info.rotation = rotations[i]
        return positions, rotations

    # -------------------------------------------------------------------------
    # Simulated annealing
    # -------------------------------------------------------------------------

    def _pin(self, ci, pad, positions, rotations) -> GridPosition:
        return positions[ci].offset(*rotate_pad(pad, rotations[ci]))

    def _net_hpwl(self, ni, positions, rotations) -> int:
        cols, rows = [], []
        for ci, pad in self.nets[ni]:
            if positions[ci] is None:
                continue
            p = self._pin(ci, pad, positions, rotations)
            cols.append(p.col)
            rows.append(p.row)
        if len(cols) < 2:
            return 0
        return max(cols) - min(cols) + max(rows) - min(rows)

    def _zone_penalty(self, ci, pos: GridPosition) -> float:
        w = self.preset.zone_weight
        dbw, dbh = max(1, self.board.width), max(1, self.board.height)
        c, r = pos.col / dbw, pos.row / dbh
        pen = w * 0.15 * c + w * 0.45 * r
        zone = self.infos[ci].zone
        if zone == "power":
            pen += w * 1.5 * (c + r)
        elif zone == "gnd":
            pen += w * 2.0 * (1 - r) + w * 0.5 * c
        elif zone == "output":
            pen += w * (1 - c)
        return pen

    def _iterations(self, n: int) -> int:
        if self.sa_iterations is not None:
            return self.sa_iterations
        return min(
            SA_MAX_ITERATIONS,
            max(SA_MIN_ITERATIONS, _round(SA_ITERATIONS_PER_PAIR * n * n * self.preset.sa_multiplier)),
        )

    def _anneal(self, positions, rotations):
        active = [i for i, p in enumerate(positions) if p is not None]
        if len(active) <= 1:
            return positions
        rng = random.Random(self.seed)
        pos = list(positions)
        boxes = {i: self._world_bbox(i, pos[i], rotations[i]) for i in active}
        iterations = self._iterations(len(active))
        bw, bh = self.board.width, self.board.height
        t_start = math.sqrt(bw * bh) * 0.35
        alpha = (SA_END_TEMPERATURE / t_start) ** (1 / max(1, iterations))
        temp = t_start

        def local_cost(indices) -> float:
            nets = set()
            for i in indices:
                nets.update(self.comp_nets[i])
            cost = sum(self._net_hpwl(ni, pos, rotations) for ni in nets)
            return cost + sum(self._zone_penalty(i, pos[i]) for i in indices)

        def total_cost() -> float:
            return sum(self._net_hpwl(ni, pos, rotations) for ni in range(len(self.nets))) + sum(
                self._zone_penalty(i, pos[i]) for i in active
            )

        current = total_cost()
        best_cost = current
        best = list(pos)
        accepted = 0

        for _ in range(iterations):
            if rng.random() < SA_SHIFT_PROBABILITY:
                ci = rng.choice(active)
                max_s = max(1, math.ceil(temp * 0.8))
                dc = rng.randint(-max_s, max_s)
                dr = rng.randint(-max_s, max_s)
                if dc == 0 and dr == 0:
                    temp *= alpha
                    continue
                new_pos = pos[ci].offset(dc, dr)
                others = [b for j, b in boxes.items() if j != ci]
                if not self._fits(ci, new_pos, rotations[ci], others):
                    temp *= alpha
                    continue
                before = local_cost([ci])
                old_pos = pos[ci]
                pos[ci] = new_pos
                delta = local_cost([ci]) - before
                if delta < 0 or rng.random() < math.exp(-delta / max(temp, 0.001)):
                    boxes[ci] = self._world_bbox(ci, new_pos, rotations[ci])
                    current += delta
                    accepted += 1
                else:
                    pos[ci] = old_pos
            else:
                ci, cj = rng.sample(active, 2)
                pi, pj = pos[ci], pos[cj]
                others = [b for k, b in boxes.items() if k not in (ci, cj)]
                if not self._fits(ci, pj, rotations[ci], others):
                    temp *= alpha
                    continue
                box_j = self._world_bbox(cj, pi, rotations[cj])
                if not self._fits(cj, pi, rotations[cj], others + [self._world_bbox(ci, pj, rotations[ci])]):
                    temp *= alpha
                    continue
                before = local_cost([ci, cj])
                pos[ci], pos[cj] = pj, pi
                delta = local_cost([ci, cj]) - before
                if delta < 0 or rng.random() < math.exp(-delta / max(temp, 0.001)):
                    boxes[ci] = self._world_bbox(ci, pj, rotations[ci])
                    boxes[cj] = box_j
                    current += delta
                    accepted += 1
                else:
                    pos[ci], pos[cj] = pi, pj

            if current < best_cost - 1e-9:
                best_cost = current
                best = list(pos)
            temp *= alpha

        logger.debug("Annealing: %d iterations, %d accepted, cost %.2f", iterations, accepted, best_cost)
        return best

    # -------------------------------------------------------------------------
    # Row alignment and validation
    # -------------------------------------------------------------------------

    def _align_rows(self, positions, rotations, band: int):
        order = sorted(
            (i for i, p in enumerate(positions) if p is not None),
            key=lambda i: positions[i].col,
        )
        result: List[Optional[GridPosition]] = [None] * len(positions)
        boxes: List[BBox] = []
        center = GridPosition(_round(self.board.width / 2), _round(self.board.height / 2))
        for ci in order:
            current = positions[ci]
            target_row = _round((current.row - self.margin) / band) * band + self.margin
            pos = self._find_free(ci, GridPosition(current.col, target_row), rotations[ci], boxes, band)
            if pos is None:
                pos = self._find_free(ci, current, rotations[ci], boxes)
            if pos is None:
                pos = self._find_free(ci, center, rotations[ci], boxes)
            if pos is None:
                continue
            result[ci] = pos
            boxes.append(self._world_bbox(ci, pos, rotations[ci]))
        return result

    def _validate(self, positions, rotations) -> LayoutResult:
        result = LayoutResult()
        accepted: List[BBox] = []
        for ci, info in enumerate(self.infos):
            pos = positions[ci]
            ok = pos is not None
            if ok:
                box = self._world_bbox(ci, pos, rotations[ci])
                inside = self.board.contains((box.min_col, box.min_row)) and self.board.contains(
                    (box.max_col, box.max_row)
                )
                ok = inside and not any(box.overlaps(other) for other in accepted)
            if ok:
                accepted.append(box)
                result.positions[info.comp.id] = pos
                result.rotations[info.comp.id] = rotations[ci]
            else:
                result.failed_ids.append(info.comp.id)
        result.placed = len(result.positions)
        result.failed = len(result.failed_ids)
        return result


def layout(
    components: Sequence[Component],
    nets: Sequence[Net],
    board: Board,
    mode: LayoutMode = LayoutMode.EASY_SOLDERING,
    **kwargs,
) -> LayoutResult:
    """Functional wrapper around ``AutoLayout``."""
    return AutoLayout(board, mode, **kwargs).layout(components, nets)
