"""
Net grouping using networkx.

Uses networkx for:
- Graph representation of "connection touches connection" relations
- Connected components (the transitive closure that defines a net)

Connections join when an endpoint of one coincides with an endpoint of
another (within an epsilon, since seed points may arrive as real-valued
coordinates), or when they touch labels that carry the same name.
Endpoint matching goes through a spatial hash, so building the index is
near-linear in the number of connections.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx

from .config import NET_EPSILON
from .models import Connection, NetLabel, connection_endpoints

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


def points_match(a: Point, b: Point, epsilon: float = NET_EPSILON) -> bool:
    """True when two points coincide within epsilon on both axes."""
    return abs(a[0] - b[0]) <= epsilon and abs(a[1] - b[1]) <= epsilon


class _PointBuckets:
    """Spatial hash of points with unit-sized buckets."""

    def __init__(self, epsilon: float):
        self.epsilon = epsilon
        self.reach = max(1, math.ceil(epsilon))
        self.buckets: Dict[Tuple[int, int], List[Tuple[Point, object]]] = defaultdict(list)

    def add(self, point: Point, item: object):
        key = (math.floor(point[0]), math.floor(point[1]))
        self.buckets[key].append((point, item))

    def near(self, point: Point) -> Iterable[object]:
        bc, br = math.floor(point[0]), math.floor(point[1])
        for dc in range(-self.reach, self.reach + 1):
            for dr in range(-self.reach, self.reach + 1):
                for other, item in self.buckets.get((bc + dc, br + dr), ()):
                    if points_match(point, other, self.epsilon):
                        yield item


class NetIndex:
    """
    Electrical grouping of connections for one sheet or board.

    Example:
        >>> index = NetIndex(snapshot.connections, snapshot.labels)
        >>> index.same_net([(2, 2)])
        {'w1', 'w2'}
    """

    def __init__(
        self,
        connections: Sequence[Connection],
        labels: Sequence[NetLabel] = (),
        epsilon: float = NET_EPSILON,
    ):
        self.epsilon = epsilon
        self.connections = list(connections)
        self.labels = list(labels)
        self.order = {conn.id: i for i, conn in enumerate(self.connections)}
        self.graph: nx.Graph = nx.Graph()
        self._endpoints = _PointBuckets(epsilon)
        self._build()

    def _build(self):
        for conn in self.connections:
            self.graph.add_node(conn.id, kind="connection")
            for point in connection_endpoints(conn):
                for other in self._endpoints.near(point):
                    if other != conn.id:
                        self.graph.add_edge(conn.id, other)
                self._endpoints.add(point, conn.id)

        for label in self.labels:
            name_node = ("label", label.name)
            self.graph.add_node(name_node, kind="label")
            for conn_id in set(self._endpoints.near(label.position)):
                self.graph.add_edge(conn_id, name_node)

        logger.debug(
            "Net index: %d connections, %d labels, %d edges",
            len(self.connections),
            len(self.labels),
            self.graph.number_of_edges(),
        )

    def _connection_ids(self, nodes: Iterable) -> Set[str]:
        return {n for n in nodes if self.graph.nodes[n].get("kind") == "connection"}

    def touching(self, point: Point) -> Set[str]:
        """Connections with an endpoint at point."""
        return set(self._endpoints.near(point))

    def same_net(self, seeds: Iterable[Point]) -> Set[str]:
        """
        Ids of every connection electrically joined to any seed point.

        Seeds that touch no connection contribute nothing, so the result
        can be empty.
        """
        start: Set[str] = set()
        for seed in seeds:
            start.update(self.touching(seed))
        result: Set = set()
        for node in start:
            if node in result:
                continue
            result.update(nx.node_connected_component(self.graph, node))
        return self._connection_ids(result)

    def net_points(self, seeds: Iterable[Point]) -> List[Point]:
        """Seed points plus every endpoint of their net's connections."""
        seeds = list(seeds)
        points: List[Point] = list(seeds)
        ids = self.same_net(seeds)
        for conn in self.connections:
            if conn.id in ids:
                points.extend(connection_endpoints(conn))
        return points

    def groups(self) -> List[Set[str]]:
        """Connection ids per net, ordered by first appearance."""
        groups = []
        for component in nx.connected_components(self.graph):
            ids = self._connection_ids(component)
            if ids:
                groups.append(ids)
        groups.sort(key=lambda g: min(self.order[i] for i in g))
        return groups

    def net_names(self) -> Dict[str, str]:
        """
        Map every connection id to its net name.

        Nets touching a label take the label's name (alphabetically first
        if several differ); others are numbered Net-1, Net-2, ... in order
        of first appearance.
        """
        names: Dict[str, str] = {}
        counter = 0
        for group in self.groups():
            label_names = sorted(
                node[1]
                for node in nx.node_connected_component(self.graph, next(iter(group)))
                if isinstance(node, tuple) and node[0] == "label"
            )
            if label_names:
                name = label_names[0]
            else:
                counter += 1
                name = f"Net-{counter}"
            for conn_id in group:
                names[conn_id] = name
        return names

    def net_of(self, connection_id: str) -> Optional[Set[str]]:
        if connection_id not in self.graph:
            return None
        return self._connection_ids(nx.node_connected_component(self.graph, connection_id))


def same_net(
    seed_points: Iterable[Point],
    connections: Sequence[Connection],
    epsilon: float = NET_EPSILON,
    labels: Sequence[NetLabel] = (),
) -> Set[str]:
    """Convenience wrapper: ids of connections on the same net as the seeds."""
    return NetIndex(connections, labels, epsilon).same_net(seed_points)
