"""
Routing trace: an optional recorder handed to the autorouter, the
repairer and auto-layout.

Each pipeline adds a TraceStage per phase (layout phase, autoroute pass,
repair step), optionally with an ASCII board snapshot, and a SearchStep
for every connection it tries. Nothing is recorded when no trace is
passed.

    >>> trace = RoutingTrace()
    >>> Autorouter(RouteOptions(board)).route(components, nets, trace=trace)
    >>> print(trace.summary())
    >>> trace.dump_to_file("route_trace.txt")
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .geometry import path_cells, pin_positions
from .models import Board, Component, Connection, Side, connection_points
from .search import count_turns, route_length

# Longest data value shown per stage line
VALUE_WIDTH = 100

# Board rows shown per stage in dumps
GRID_PREVIEW_ROWS = 15


@dataclass
class SearchStep:
    """
    Record of a single routing decision.

    Attributes:
        start: First endpoint (col, row)
        goal: Second endpoint (col, row)
        method: How the connection was made (e.g., "solder_bridge",
                "astar", "relaxed", "wire_bridge", "fallback_l")
        success: Whether the step produced a connection
        length: Manhattan length of the resulting path (0 on failure)
        turns: Number of corners in the resulting path
        source: The stage that made the decision
                (e.g., "Autorouter._route_edge")
    """

    start: Tuple[int, int]
    goal: Tuple[int, int]
    method: str
    success: bool
    length: int = 0
    turns: int = 0
    source: str = ""

    def __str__(self) -> str:
        outcome = "ok" if self.success else "FAILED"
        text = f"{tuple(self.start)} -> {tuple(self.goal)}: {self.method} {outcome}"
        if self.success:
            text += f" (len={self.length}, turns={self.turns})"
        if self.source:
            text += f" from {self.source}"
        return text


@dataclass
class TraceStage:
    """
    Snapshot of state at a pipeline stage.

    Attributes:
        name: Name of this pipeline stage
        data: Dictionary of relevant data at this stage
        grid_snapshot: Optional list of ASCII board rows at this point
    """

    name: str
    data: Dict[str, Any]
    grid_snapshot: Optional[List[str]] = None

    def __str__(self) -> str:
        lines = [f"[{self.name}]"]
        for key, value in self.data.items():
            text = str(value)
            if len(text) > VALUE_WIDTH:
                text = text[:VALUE_WIDTH] + "..."
            lines.append(f"  {key} = {text}")
        for row in (self.grid_snapshot or [])[:GRID_PREVIEW_ROWS]:
            lines.append(f"  |{row}|")
        return "\n".join(lines)


def ascii_grid(
    board: Board,
    components: Iterable[Component] = (),
    connections: Iterable[Connection] = (),
) -> List[str]:
    """
    Render a board as ASCII rows.

    '.' is a free hole, 'o' a pad, '*' a bottom-side trace, '=' a
    top-side jumper and '#' a hole used on both sides.
    """
    grid = [["." for _ in range(board.width)] for _ in range(board.height)]

    def put(cell, char):
        col, row = cell
        if not board.contains(cell):
            return
        current = grid[row][col]
        if current == "o":
            return
        if current in ("*", "=") and current != char:
            char = "#"
        grid[row][col] = char

    for conn in connections:
        char = "=" if conn.side == Side.TOP else "*"
        for cell in path_cells(connection_points(conn)):
            put(cell, char)
    for comp in components:
        if comp.is_placed:
            for pin in pin_positions(comp):
                if board.contains(pin):
                    grid[pin.row][pin.col] = "o"
    return ["".join(row) for row in grid]


@dataclass
class RoutingTrace:
    """
    Complete trace of a routing, repair or layout operation.

    Usage:
        >>> trace = RoutingTrace()
        >>> Autorouter(options).route(components, nets, trace=trace)
        >>> print(trace.summary())
        >>> failures = trace.get_failed_steps()
        >>> pass_two = trace.get_stage("pass_2")

    Attributes:
        stages: List of pipeline stages with their data
        steps: List of all routing decisions
        operation: Name of the traced operation ("autoroute", "repair", ...)
    """

    stages: List[TraceStage] = field(default_factory=list)
    steps: List[SearchStep] = field(default_factory=list)
    operation: str = ""

    def add_stage(
        self,
        name: str,
        data: Dict[str, Any],
        grid: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Add a pipeline stage snapshot.

        Args:
            name: Name of the stage (e.g., "pass_1")
            data: Dictionary of relevant data at this stage
            grid: Optional ASCII board rows (see ``ascii_grid``)
        """
        snapshot = list(grid) if grid is not None else None
        self.stages.append(TraceStage(name, dict(data), snapshot))

    def record_step(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        method: str,
        path: Optional[Sequence[Tuple[int, int]]] = None,
        source: str = "",
    ) -> None:
        """
        Record a routing decision.

        Args:
            start: First endpoint
            goal: Second endpoint
            method: Routing method tried
            path: Resulting corner points, or None on failure
            source: The stage that made the decision
        """
        if path:
            step = SearchStep(
                tuple(start), tuple(goal), method, True,
                route_length(path), count_turns(path), source,
            )
        else:
            step = SearchStep(tuple(start), tuple(goal), method, False, source=source)
        self.steps.append(step)

    def get_stage(self, name: str) -> Optional[TraceStage]:
        """Get a specific pipeline stage by name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def get_grid_at_stage(self, name: str) -> Optional[List[str]]:
        """Get the board snapshot at a specific stage."""
        stage = self.get_stage(name)
        if stage and stage.grid_snapshot:
            return stage.grid_snapshot
        return None

    def get_failed_steps(self) -> List[SearchStep]:
        return [s for s in self.steps if not s.success]

    def get_steps_by_method(self, method: str) -> List[SearchStep]:
        return [s for s in self.steps if s.method == method]

    def method_counts(self) -> Dict[str, int]:
        """Number of steps per routing method, most used first."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.method] = counts.get(step.method, 0) + 1
        return dict(sorted(counts.items(), key=lambda item: -item[1]))

    def summary(self) -> str:
        """Short report: operation, stages (+ when a board snapshot exists) and step counts."""
        failed = len(self.get_failed_steps())
        lines = [
            f"Trace of {self.operation or 'unnamed operation'}",
            f"Stages ({len(self.stages)}): "
            + ", ".join(("+" if s.grid_snapshot else "") + s.name for s in self.stages),
            f"Steps: {len(self.steps)} ({failed} failed)",
        ]
        for method, count in self.method_counts().items():
            lines.append(f"  {method}: {count}")
        return "\n".join(lines)

    def dump(self) -> str:
        """Summary followed by every stage and every routing step."""
        lines = [self.summary(), ""]
        lines.extend(str(stage) for stage in self.stages)
        lines.append("")
        lines.extend(f"{i:4d}  {step}" for i, step in enumerate(self.steps, 1))
        return "\n".join(lines)

    def dump_to_file(self, filename: str) -> None:
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.dump())
