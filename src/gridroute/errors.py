"""
Exceptions and result notices for the routing engine.

Routing "failures" such as an unreachable target or a board that is too
small are normal outcomes for a router. They are reported as ``Notice``
values inside results. Exceptions are reserved for malformed input.
"""

from dataclasses import dataclass
from enum import Enum


class GridRouteError(Exception):
    """Base class for gridroute exceptions."""

    pass


class InvalidGeometryError(GridRouteError, ValueError):
    """Raised when a path, bridge or rotation is not grid-aligned."""

    pass


class UnknownComponentError(GridRouteError, KeyError):
    """Raised when a snapshot does not contain the requested component."""

    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(f"Unknown component: {component_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class NoRouteFoundError(GridRouteError):
    """Raised by ``require_route`` when no path connects two cells."""

    def __init__(self, start, goal, message: str = ""):
        self.start = start
        self.goal = goal
        self.message = message or f"No route from {tuple(start)} to {tuple(goal)}"
        super().__init__(self.message)


class NoticeKind(Enum):
    """Kinds of non-fatal outcomes reported to the caller."""

    NO_ROUTE_FOUND = "no_route_found"
    PLACEMENT_BLOCKED = "placement_blocked"
    BRIDGE_REJECTED = "bridge_rejected"
    PARTIAL_BATCH_FAILURE = "partial_batch_failure"


@dataclass(frozen=True)
class Notice:
    """
    A user-facing report of something the engine could not do.

    Attributes:
        kind: What went wrong.
        message: Human readable explanation.
        subject: Id of the connection, component or net concerned.
    """

    kind: NoticeKind
    message: str
    subject: str = ""

    def __str__(self) -> str:
        if self.subject:
            return f"[{self.kind.value}] {self.subject}: {self.message}"
        return f"[{self.kind.value}] {self.message}"
