"""
gridroute - Manhattan grid routing and placement for perfboard CAD

Routes rectilinear wires between grid holes, detects solder bridges,
groups connections into nets, repairs wiring after component edits and
auto-places and auto-routes whole boards.

Example:
    >>> from gridroute import Board, Autorouter, RouteOptions
    >>> result = Autorouter(RouteOptions(Board(30, 20))).route(components, nets)
    >>> result.routed, result.failed
    (4, 0)

Edit Session Example:
    >>> from gridroute import transform_component, apply_mutations
    >>> result = transform_component(snapshot, "R1", position=(12, 4))
    >>> snapshot = apply_mutations(snapshot, result.mutations)

Debug Mode Example:
    >>> trace = RoutingTrace()
    >>> Autorouter(options).route(components, nets, trace=trace)
    >>> print(trace.summary())
"""

import logging

from .autorouter import (
    Autorouter,
    PlaceAndRouteResult,
    RouteOptions,
    RouteResult,
    congestion_map,
    mst_edges,
    place_and_route,
)
from .bridges import DrawResult, bridge_crosses, draw_connection, is_adjacent
from .errors import (
    GridRouteError,
    InvalidGeometryError,
    NoRouteFoundError,
    Notice,
    NoticeKind,
    UnknownComponentError,
)
from .geometry import footprint_bbox, outline_bbox, pin_positions, rotate_pad, to_world
from .models import (
    AddConnection,
    BBox,
    Board,
    Component,
    Connection,
    GridPosition,
    Net,
    NetConnection,
    NetLabel,
    Pad,
    RemoveConnection,
    Side,
    Snapshot,
    SolderBridge,
    UpdateConnection,
    Wire,
    WireBridge,
    apply_mutations,
    canonicalize,
    connection_from_dict,
    connection_to_dict,
)
from .nets import NetIndex, same_net
from .obstacles import ObstacleMap, build_obstacles, check_placement
from .placement import AutoLayout, LayoutMode, LayoutResult, ModePreset, classify_zone, layout
from .preview import BoardPreview, render_board
from .repair import (
    RepairResult,
    TopologyRepairer,
    move_component_group,
    remove_dangling_wires,
    repair_after_group_move,
    repair_after_transform,
    transform_component,
)
from .search import require_route, search, solder_points, support_points
from .tracer import RoutingTrace, SearchStep, TraceStage, ascii_grid

__version__ = "0.1.0"

__all__ = [
    # Data model
    "GridPosition",
    "BBox",
    "Board",
    "Side",
    "Pad",
    "Component",
    "Wire",
    "SolderBridge",
    "WireBridge",
    "Connection",
    "NetLabel",
    "NetConnection",
    "Net",
    "Snapshot",
    "UpdateConnection",
    "AddConnection",
    "RemoveConnection",
    "apply_mutations",
    "canonicalize",
    "connection_to_dict",
    "connection_from_dict",
    # Errors
    "GridRouteError",
    "InvalidGeometryError",
    "UnknownComponentError",
    "NoRouteFoundError",
    "Notice",
    "NoticeKind",
    # Geometry
    "rotate_pad",
    "to_world",
    "pin_positions",
    "footprint_bbox",
    "outline_bbox",
    # Path search
    "search",
    "require_route",
    "support_points",
    "solder_points",
    "ObstacleMap",
    "build_obstacles",
    "check_placement",
    # Bridges
    "is_adjacent",
    "bridge_crosses",
    "draw_connection",
    "DrawResult",
    # Nets
    "NetIndex",
    "same_net",
    # Repair
    "TopologyRepairer",
    "RepairResult",
    "repair_after_transform",
    "repair_after_group_move",
    "transform_component",
    "move_component_group",
    "remove_dangling_wires",
    # Placement
    "AutoLayout",
    "LayoutMode",
    "LayoutResult",
    "ModePreset",
    "classify_zone",
    "layout",
    # Autorouter
    "Autorouter",
    "RouteOptions",
    "RouteResult",
    "PlaceAndRouteResult",
    "place_and_route",
    "congestion_map",
    "mst_edges",
    # Debug/Tracing (for development and debugging)
    "RoutingTrace",
    "SearchStep",
    "TraceStage",
    "ascii_grid",
    "BoardPreview",
    "render_board",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
