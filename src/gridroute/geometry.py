"""
Grid geometry helpers.

Converts component-local pad offsets into world cells, derives the
bounding boxes the rest of the engine works with, and walks rectilinear
segments cell by cell.
"""

from typing import List, Sequence, Tuple

from .config import COMPONENT_MARGIN
from .errors import InvalidGeometryError
from .models import BBox, Component, Edge, GridPosition, as_position, make_edge


def rotate_pad(offset: Tuple[int, int], rotation: int) -> GridPosition:
    """Rotate a pad offset around (0, 0) by a multiple of 90 degrees."""
    col, row = offset
    r = rotation % 360
    if r == 0:
        return GridPosition(col, row)
    if r == 90:
        return GridPosition(-row, col)
    if r == 180:
        return GridPosition(-col, -row)
    if r == 270:
        return GridPosition(row, -col)
    raise InvalidGeometryError(f"Rotation must be a multiple of 90, got {rotation}")


def to_world(component: Component, offset: Tuple[int, int]) -> GridPosition:
    """
    Transform a component-local offset into a world cell.

    Mirror is applied first (negating the column), then rotation, then the
    translation to the component's anchor.
    """
    if component.position is None:
        raise InvalidGeometryError(f"Component {component.id!r} is not placed")
    col, row = offset
    if component.mirror:
        col = -col
    rotated = rotate_pad((col, row), component.rotation)
    return GridPosition(component.position.col + rotated.col, component.position.row + rotated.row)


def pin_positions(component: Component) -> List[GridPosition]:
    """World positions of every pad, in pad order."""
    return [to_world(component, pad.offset) for pad in component.pads]


def pin_stubs(component: Component) -> List[Tuple[GridPosition, GridPosition]]:
    """World (base, tip) segments of every pin; base is the connectable end."""
    stubs = []
    for pad in component.pads:
        base = to_world(component, pad.offset)
        tip = to_world(component, pad.tip) if pad.tip is not None else base
        stubs.append((base, tip))
    return stubs


def local_footprint_bbox(
    pads: Sequence[Tuple[int, int]],
    rotation: int,
    span: Tuple[int, int] = None,
) -> BBox:
    """
    Footprint bbox relative to an anchor at (0, 0).

    When span is given the pad bbox is grown to the full body size,
    centred on the pads (floor on the low side, ceil on the high side).
    """
    if pads:
        box = BBox.from_points([rotate_pad(p, rotation) for p in pads])
    else:
        box = BBox(0, 0, 0, 0)
    if span is not None:
        rotated_span = rotate_pad((span[0] - 1, span[1] - 1), rotation)
        span_cols = abs(rotated_span.col) + 1
        span_rows = abs(rotated_span.row) + 1
        extra_cols = span_cols - box.width
        extra_rows = span_rows - box.height
        min_col, max_col = box.min_col, box.max_col
        min_row, max_row = box.min_row, box.max_row
        if extra_cols > 0:
            min_col -= extra_cols // 2
            max_col += extra_cols - extra_cols // 2
        if extra_rows > 0:
            min_row -= extra_rows // 2
            max_row += extra_rows - extra_rows // 2
        box = BBox(min_col, min_row, max_col, max_row)
    return box


def _mirrored_offsets(component: Component) -> List[GridPosition]:
    if not component.mirror:
        return [pad.offset for pad in component.pads]
    return [GridPosition(-pad.offset.col, pad.offset.row) for pad in component.pads]


def footprint_bbox(component: Component, position: Tuple[int, int] = None, rotation: int = None) -> BBox:
    """
    Perfboard footprint bbox in world cells.

    Args:
        component: Component to measure.
        position: Anchor to evaluate at (defaults to the component's own).
        rotation: Rotation to evaluate at (defaults to the component's own).
    """
    position = as_position(position) if position is not None else component.position
    if position is None:
        raise InvalidGeometryError(f"Component {component.id!r} is not placed")
    rotation = component.rotation if rotation is None else rotation
    local = local_footprint_bbox(_mirrored_offsets(component), rotation, component.span)
    return local.translated(position.col, position.row)


def body_bbox(component: Component) -> BBox:
    """World bbox of the component body (the footprint when no body is given)."""
    if component.body is None:
        return footprint_bbox(component)
    b = component.body
    corners = [
        to_world(component, (b.min_col, b.min_row)),
        to_world(component, (b.max_col, b.min_row)),
        to_world(component, (b.max_col, b.max_row)),
        to_world(component, (b.min_col, b.max_row)),
    ]
    return BBox.from_points(corners)


def outline_bbox(component: Component, margin: int = COMPONENT_MARGIN) -> BBox:
    """Body plus every pin stub, grown by margin cells."""
    box = body_bbox(component)
    for base, tip in pin_stubs(component):
        box = box.union(BBox.from_points([base, tip]))
    return box.expanded(margin)


def segment_cells(a: Tuple[int, int], b: Tuple[int, int]) -> List[GridPosition]:
    """Every cell on a straight segment, both ends included."""
    a, b = as_position(a), as_position(b)
    if a.col != b.col and a.row != b.row:
        raise InvalidGeometryError(f"Segment {tuple(a)} -> {tuple(b)} is not axis-aligned")
    dc = (b.col > a.col) - (b.col < a.col)
    dr = (b.row > a.row) - (b.row < a.row)
    cells = [a]
    cur = a
    while cur != b:
        cur = cur.offset(dc, dr)
        cells.append(cur)
    return cells


def path_cells(points: Sequence[Tuple[int, int]]) -> List[GridPosition]:
    """Every cell visited by a rectilinear polyline, without repeats at corners."""
    if not points:
        return []
    cells = [as_position(points[0])]
    for a, b in zip(points, points[1:]):
        cells.extend(segment_cells(a, b)[1:])
    return cells


def path_edges(points: Sequence[Tuple[int, int]]) -> List[Edge]:
    cells = path_cells(points)
    return [make_edge(a, b) for a, b in zip(cells, cells[1:])]


def segments_overlap(
    a0: Tuple[int, int], a1: Tuple[int, int], b0: Tuple[int, int], b1: Tuple[int, int]
) -> bool:
    """True when two collinear axis-aligned segments share a nonzero-length span."""
    if a0[1] == a1[1] and b0[1] == b1[1] and a0[1] == b0[1]:
        lo_a, hi_a = sorted((a0[0], a1[0]))
        lo_b, hi_b = sorted((b0[0], b1[0]))
        return min(hi_a, hi_b) - max(lo_a, lo_b) > 0
    if a0[0] == a1[0] and b0[0] == b1[0] and a0[0] == b0[0]:
        lo_a, hi_a = sorted((a0[1], a1[1]))
        lo_b, hi_b = sorted((b0[1], b1[1]))
        return min(hi_a, hi_b) - max(lo_a, lo_b) > 0
    return False


def path_crosses_bbox(points: Sequence[Tuple[int, int]], box: BBox) -> bool:
    """True if any cell of the path other than its endpoints lies inside box."""
    cells = path_cells(points)
    return any(box.contains(cell) for cell in cells[1:-1])
